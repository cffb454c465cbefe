from typing import Any


class CustomBaseError(Exception):
    """Base class for all custom exceptions - controls logging behavior in @Logger.io"""

    def __init__(self, message: str, status_code: int) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class DomainError(CustomBaseError):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message, status_code)


class NotFoundError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 404)


class ConflictError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 409)


class VersionConflictError(ConflictError):
    """
    Stale expected version at the optimistic gate.

    Carries the record as currently stored, so the caller can take its version
    and retry without another read.
    """

    def __init__(self, *, current_record: Any, reason: str) -> None:
        self.current_record = current_record
        self.reason = reason
        super().__init__(reason)


class ConstraintUnsatisfiableError(DomainError):
    """No candidate meets the hard constraints. Not retryable until state changes."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason, 422)


class RetryExhaustedError(CustomBaseError):
    """Bounded retry budget consumed under contention - callers should try again later."""

    def __init__(self, message: str, *, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(message, 503)


class SlotTakenError(ConflictError):
    """The requested interval overlaps a live booking of the same room."""
