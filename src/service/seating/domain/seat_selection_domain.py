"""
Seat Selection Domain
Pure in-room matching logic, no store and no gate.
"""

from collections.abc import Iterable
from typing import Optional

import attrs

from src.platform.logging.loguru_io import Logger
from src.service.seating.domain.entity.room_entity import Room
from src.service.seating.domain.entity.seat_entity import Seat
from src.service.seating.domain.seat_layout import RoomLayout
from src.service.seating.domain.seat_scoring import SeatScoringPolicy
from src.service.seating.domain.value_object.seat_constraints import SeatConstraints


@attrs.define(frozen=True)
class SeatCandidate:
    seat: Seat
    room: Room
    features: frozenset[str]
    score: float

    @property
    def sort_key(self) -> tuple[float, int, int]:
        # Best score first, then row-major for determinism
        return -self.score, self.seat.row, self.seat.col


class SeatSelectionDomain:
    def __init__(self, *, scoring_policy: SeatScoringPolicy) -> None:
        self.scoring_policy = scoring_policy

    def rank_candidates(
        self, *, room: Room, seats: list[Seat], constraints: SeatConstraints
    ) -> list[SeatCandidate]:
        """Available seats meeting every hard constraint, best first."""
        layout = RoomLayout(room=room, seats=seats)
        candidates = []
        for seat in seats:
            if not seat.is_candidate:
                continue
            features = layout.features_of(seat)
            score = self.scoring_policy.score(features, constraints)
            if score is None:
                continue
            candidates.append(SeatCandidate(seat=seat, room=room, features=features, score=score))
        candidates.sort(key=lambda c: c.sort_key)
        return candidates

    @Logger.io
    def select_best(
        self, *, room: Room, seats: list[Seat], constraints: SeatConstraints
    ) -> Optional[SeatCandidate]:
        candidates = self.rank_candidates(room=room, seats=seats, constraints=constraints)
        return candidates[0] if candidates else None

    def select_best_across(
        self, *, pool: Iterable[tuple[Room, list[Seat]]], constraints: SeatConstraints
    ) -> Optional[SeatCandidate]:
        """First room of the pool that has any candidate wins; inside it, the best seat."""
        for room, seats in pool:
            best = self.select_best(room=room, seats=seats, constraints=constraints)
            if best:
                return best
        return None

    def explain_unsatisfiable(
        self, *, pool: Iterable[tuple[Room, list[Seat]]], constraints: SeatConstraints
    ) -> str:
        """Human-readable reason why no candidate exists."""
        available_total = 0
        for room, seats in pool:
            layout = RoomLayout(room=room, seats=seats)
            for seat in seats:
                if not seat.is_candidate:
                    continue
                available_total += 1
                if constraints.is_satisfied_by(layout.features_of(seat)):
                    # Satisfiable in principle; the policy itself excluded it
                    return 'no available seat is accepted by the scoring policy'

        if available_total == 0:
            return 'no available seats'
        needs = ', '.join(sorted(constraints.hard))
        return f'no available seat satisfies accessibility requirement {needs}'
