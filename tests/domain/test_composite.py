"""Tests for composite score calculation."""

import itertools

import pytest

from job_scoring_model.domain.composite import composite_score, round_score, score_breakdown
from job_scoring_model.domain.scoring_config import ScoringConfiguration
from job_scoring_model.domain.weights import WeightSet, default_weights
from job_scoring_model.exceptions import InvalidFactorScoreError, InvalidWeightSetError
from tests.support.scoring_config import scores, uniform_scores


def test_composite_score_is_weighted_sum(configuration: ScoringConfiguration) -> None:
    weights = default_weights(configuration.criteria)

    assert composite_score(scores(5, 4, 3, 4), weights, configuration.criteria) == 4.0


def test_composite_score_uses_uneven_weights(configuration: ScoringConfiguration) -> None:
    weights = WeightSet.from_mapping(
        {"client_engagement": 0.4, "search_difficulty": 0.3, "time_open": 0.2, "fee_size": 0.1}
    )

    # 5*0.4 + 2*0.3 + 3*0.2 + 1*0.1 = 3.3
    assert composite_score(scores(5, 2, 3, 1), weights, configuration.criteria) == 3.3


def test_composite_score_stays_in_domain_for_every_score_combination(
    configuration: ScoringConfiguration,
) -> None:
    weights = WeightSet.from_mapping(
        {"client_engagement": 0.35, "search_difficulty": 0.3, "time_open": 0.2, "fee_size": 0.15}
    )

    for combo in itertools.product(range(1, 6), repeat=4):
        value = composite_score(scores(*combo), weights, configuration.criteria)
        assert 1.0 <= value <= 5.0
        assert round(value, 2) == value


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(2.675, 2.68), (1.005, 1.01), (3.3349, 3.33), (4.0, 4.0), (2.4949999, 2.49)],
)
def test_round_score_rounds_half_up_on_decimal_repr(raw: float, expected: float) -> None:
    assert round_score(raw) == expected


def test_invalid_score_is_rejected_not_clamped(configuration: ScoringConfiguration) -> None:
    weights = default_weights(configuration.criteria)

    with pytest.raises(InvalidFactorScoreError) as exc_info:
        composite_score(scores(6, 4, 3, 4), weights, configuration.criteria)

    assert exc_info.value.field == "client_engagement"


def test_invalid_weights_are_rejected(configuration: ScoringConfiguration) -> None:
    weights = dict.fromkeys(configuration.criterion_ids, 0.30)

    with pytest.raises(InvalidWeightSetError):
        composite_score(uniform_scores(3), weights, configuration.criteria)


def test_score_breakdown_lists_contributions_in_display_order(
    configuration: ScoringConfiguration,
) -> None:
    weights = default_weights(configuration.criteria)

    rows = score_breakdown(scores(5, 4, 3, 4), weights, configuration.criteria)

    assert [row.criterion_id for row in rows] == list(configuration.criterion_ids)
    assert rows[0].criterion_name == "Client Engagement"
    assert rows[0].contribution == pytest.approx(1.25)
    assert sum(row.contribution for row in rows) == pytest.approx(4.0)
