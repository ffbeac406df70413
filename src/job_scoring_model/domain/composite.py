"""Composite score calculation for one rater's factor scores.

Usage example:
    from job_scoring_model.domain.composite import composite_score
    from job_scoring_model.domain.scoring_config import default_configuration
    from job_scoring_model.domain.weights import default_weights

    config = default_configuration()
    weights = default_weights(config.criteria)
    scores = {"client_engagement": 5, "search_difficulty": 4, "time_open": 3, "fee_size": 4}
    assert composite_score(scores, weights, config.criteria) == 4.0
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from .scoring_config import Criterion
from .weights import WeightSet, require_factor_scores, require_weights

_TWO_PLACES = Decimal("0.01")


def round_score(value: float) -> float:
    """Round to 2 decimals, half away from zero, on the shortest decimal repr.

    Every composite and final score passes through here before it is compared
    with rank thresholds.
    """
    return float(Decimal(repr(value)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class CriterionContribution:
    """How one criterion contributed to a composite score."""

    criterion_id: str
    criterion_name: str
    score: int
    weight: float
    contribution: float


def composite_score(
    scores: Mapping[str, int],
    weights: WeightSet | Mapping[str, float],
    criteria: Iterable[Criterion],
) -> float:
    """Weighted sum of factor scores, rounded to 2 decimals.

    Raises:
        InvalidFactorScoreError: If any score is missing, non-integer or outside 1-5.
        InvalidWeightSetError: If the weights do not cover ``criteria`` or sum to 1.0.
    """
    criteria = tuple(criteria)
    require_factor_scores(scores, criteria)
    weight_set = require_weights(weights, criteria)
    raw = math.fsum(scores[c.criterion_id] * weight_set.get(c.criterion_id) for c in criteria)
    return round_score(raw)


def score_breakdown(
    scores: Mapping[str, int],
    weights: WeightSet | Mapping[str, float],
    criteria: Iterable[Criterion],
) -> tuple[CriterionContribution, ...]:
    """Per-criterion contributions, in criterion display order."""
    criteria = tuple(criteria)
    require_factor_scores(scores, criteria)
    weight_set = require_weights(weights, criteria)
    ordered = sorted(criteria, key=lambda c: (c.order, c.criterion_id))
    return tuple(
        CriterionContribution(
            criterion_id=c.criterion_id,
            criterion_name=c.name,
            score=scores[c.criterion_id],
            weight=weight_set.get(c.criterion_id),
            contribution=scores[c.criterion_id] * weight_set.get(c.criterion_id),
        )
        for c in ordered
    )
