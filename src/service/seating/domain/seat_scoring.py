"""
Seat Scoring
Pluggable scoring of one seat against one requester.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Optional

from src.service.seating.domain.enum.seat_feature import SCARCE_FEATURES
from src.service.seating.domain.value_object.seat_constraints import SeatConstraints


class SeatScoringPolicy(ABC):
    """Scoring strategy: higher is better, `None` excludes the seat."""

    @abstractmethod
    def score(self, features: frozenset[str], constraints: SeatConstraints) -> Optional[float]:
        pass


class WeightedFeatureScoring(SeatScoringPolicy):
    """
    Hard constraints filter, soft constraints add their weight.

    A seat carrying a scarce feature (wheelchair access, near exit) that the
    requester did not ask for is penalised, so those seats stay free for the
    students who need them.
    """

    def __init__(
        self,
        *,
        weights: Mapping[str, float],
        reserved_penalty: float = 0.5,
        default_weight: float = 1.0,
    ) -> None:
        self.weights = dict(weights)
        self.reserved_penalty = reserved_penalty
        self.default_weight = default_weight

    def score(self, features: frozenset[str], constraints: SeatConstraints) -> Optional[float]:
        if not constraints.is_satisfied_by(features):
            return None

        score = sum(
            self.weights.get(feature, self.default_weight)
            for feature in constraints.soft
            if feature in features
        )
        requested = constraints.hard | constraints.soft
        unrequested_scarce = (features & SCARCE_FEATURES) - requested
        return score - self.reserved_penalty * len(unrequested_scarce)
