from typing import ClassVar, Optional

import attrs

from src.service.seating.domain.enum.record_kind import RecordKind


@attrs.define(frozen=True)
class Student:
    """
    Weak reference target of Seat.student_id.

    The student record never points at its seat; which seats a student holds
    is computed from the seats on read.
    """

    KIND: ClassVar[RecordKind] = RecordKind.STUDENT

    id: str
    name: str
    branch: str
    accessibility_needs: frozenset[str] = attrs.field(factory=frozenset, converter=frozenset)
    tags: frozenset[str] = attrs.field(factory=frozenset, converter=frozenset)
    preferences: frozenset[str] = attrs.field(factory=frozenset, converter=frozenset)

    @property
    def parent_id(self) -> Optional[str]:
        return None

    @property
    def has_accessibility_needs(self) -> bool:
        return bool(self.accessibility_needs)
