"""Weight sets and score validation.

Weights are fractional throughout the package: a valid set sums to 1.0.
The percentage convention (sum to 100) exists only at the edges, and converts
through ``WeightSet.from_percentages`` / ``WeightSet.to_percentages`` once.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal

from ..exceptions import InvalidFactorScoreError, InvalidWeightSetError
from .scoring_config import SCORE_MAX, SCORE_MIN, Criterion

WeightScheme = Literal["fraction", "percentage"]

SCHEME_TOTALS: Mapping[WeightScheme, float] = MappingProxyType(
    {"fraction": 1.0, "percentage": 100.0}
)
# Tolerance relative to the scheme's unit: 1e-4 of 1.0, or 1e-2 of 100.
RELATIVE_TOLERANCE = 1e-4
PERCENT = 100.0


@dataclass(frozen=True)
class WeightSet:
    """Mapping from criterion identity to a non-negative fractional weight."""

    weights: MappingProxyType[str, float]

    @classmethod
    def from_mapping(cls, weights: Mapping[str, float]) -> WeightSet:
        return cls(weights=MappingProxyType({key: float(value) for key, value in weights.items()}))

    @classmethod
    def from_percentages(cls, percentages: Mapping[str, float]) -> WeightSet:
        """Convert percentage weights (sum 100) into the canonical fractional set."""
        return cls.from_mapping({key: float(value) / PERCENT for key, value in percentages.items()})

    def to_percentages(self) -> dict[str, float]:
        return {key: value * PERCENT for key, value in self.weights.items()}

    def get(self, criterion_id: str) -> float:
        return self.weights[criterion_id]

    @property
    def total(self) -> float:
        return math.fsum(self.weights.values())


def _is_score(value: object) -> bool:
    # bool is an int subclass; True/False are not ratings.
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and SCORE_MIN <= value <= SCORE_MAX
    )


def find_factor_score_error(
    scores: Mapping[str, object],
    criteria: Iterable[Criterion] | None = None,
) -> InvalidFactorScoreError | None:
    """Return the first problem with a score set, or None when it is valid."""
    if criteria is not None:
        expected = [c.criterion_id for c in criteria]
        for criterion_id in expected:
            if criterion_id not in scores:
                return InvalidFactorScoreError(criterion_id, None, "score is missing")
        known = set(expected)
        for key in scores:
            if key not in known:
                return InvalidFactorScoreError(key, scores[key], "criterion is not configured")
    for key, value in scores.items():
        if not _is_score(value):
            return InvalidFactorScoreError(
                key, value, f"must be an integer between {SCORE_MIN} and {SCORE_MAX}"
            )
    return None


def validate_factor_scores(
    scores: Mapping[str, object],
    criteria: Iterable[Criterion] | None = None,
) -> bool:
    """Return True iff every score is an integer in [1, 5].

    When ``criteria`` is given, every criterion must be scored and no unknown
    criterion may appear. Values are never clamped.
    """
    return find_factor_score_error(scores, criteria) is None


def require_factor_scores(
    scores: Mapping[str, object],
    criteria: Iterable[Criterion] | None = None,
) -> None:
    """Raise ``InvalidFactorScoreError`` unless ``validate_factor_scores`` holds."""
    error = find_factor_score_error(scores, criteria)
    if error is not None:
        raise error


def find_weight_error(
    weights: Mapping[str, float],
    criteria: Iterable[Criterion],
    scheme: WeightScheme = "fraction",
) -> InvalidWeightSetError | None:
    """Return the first problem with a weight assignment, or None when it is valid."""
    total = SCHEME_TOTALS[scheme]
    expected = [c.criterion_id for c in criteria]
    for criterion_id in expected:
        if criterion_id not in weights:
            return InvalidWeightSetError(criterion_id, "criterion has no weight")
    known = set(expected)
    for key in weights:
        if key not in known:
            return InvalidWeightSetError(key, "criterion is not configured")
    for key, value in weights.items():
        if not math.isfinite(value) or value < 0:
            return InvalidWeightSetError(key, f"weight must be a non-negative number, got {value}")
    weight_sum = math.fsum(weights.values())
    if abs(weight_sum - total) > RELATIVE_TOLERANCE * total:
        return InvalidWeightSetError(
            "total", f"weights must sum to {total:g}, got {weight_sum:.4f}"
        )
    return None


def validate_weights(
    weights: Mapping[str, float],
    criteria: Iterable[Criterion],
    scheme: WeightScheme = "fraction",
) -> bool:
    """Return True iff the weights cover exactly ``criteria`` and sum to the scheme total."""
    return find_weight_error(weights, criteria, scheme) is None


def require_weights(
    weights: WeightSet | Mapping[str, float],
    criteria: Iterable[Criterion],
) -> WeightSet:
    """Validate a fractional weight assignment and return it as a ``WeightSet``."""
    weight_set = weights if isinstance(weights, WeightSet) else WeightSet.from_mapping(weights)
    error = find_weight_error(weight_set.weights, criteria, "fraction")
    if error is not None:
        raise error
    return weight_set


def default_weights(criteria: Iterable[Criterion]) -> WeightSet:
    """Equal split (1/N) across all criteria."""
    ids = [c.criterion_id for c in criteria]
    if not ids:
        raise InvalidWeightSetError("criteria", "at least one criterion is required")
    share = 1.0 / len(ids)
    return WeightSet.from_mapping(dict.fromkeys(ids, share))


def reconcile_weights(weights: WeightSet, criteria: Iterable[Criterion]) -> WeightSet:
    """Align a stored weight set with the current criterion membership.

    Weights for removed criteria are dropped and newly added criteria take
    their configured default weight. The result is not guaranteed to be valid;
    callers revalidate it.
    """
    aligned: dict[str, float] = {}
    for criterion in criteria:
        if criterion.criterion_id in weights.weights:
            aligned[criterion.criterion_id] = weights.weights[criterion.criterion_id]
        else:
            aligned[criterion.criterion_id] = criterion.default_weight
    return WeightSet.from_mapping(aligned)
