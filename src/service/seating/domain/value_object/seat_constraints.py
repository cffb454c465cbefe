from collections.abc import Iterable

import attrs

from src.service.seating.domain.entity.student_entity import Student


@attrs.define(frozen=True)
class SeatConstraints:
    """
    Requester constraint set for seat matching.

    hard: features a seat must carry or it is excluded.
    soft: preferences that raise the score but never exclude.
    """

    hard: frozenset[str] = attrs.field(factory=frozenset, converter=frozenset)
    soft: frozenset[str] = attrs.field(factory=frozenset, converter=frozenset)

    @classmethod
    def for_student(cls, student: Student) -> 'SeatConstraints':
        return cls(hard=student.accessibility_needs, soft=student.preferences)

    def missing_hard(self, features: Iterable[str]) -> frozenset[str]:
        return self.hard - frozenset(features)

    def is_satisfied_by(self, features: Iterable[str]) -> bool:
        return not self.missing_hard(features)
