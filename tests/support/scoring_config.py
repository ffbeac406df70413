"""Shared builders for scoring tests."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date

from job_scoring_model.domain.aggregation import Submission
from job_scoring_model.domain.scoring_config import ScoringConfiguration, default_configuration
from job_scoring_model.domain.validation_report import BulkTestJob

CRITERION_IDS = ("client_engagement", "search_difficulty", "time_open", "fee_size")


def uniform_scores(value: int, config: ScoringConfiguration | None = None) -> dict[str, int]:
    """Every configured criterion scored with the same value."""
    configuration = config or default_configuration()
    return dict.fromkeys(configuration.criterion_ids, value)


def scores(
    client_engagement: int,
    search_difficulty: int,
    time_open: int,
    fee_size: int,
) -> dict[str, int]:
    return {
        "client_engagement": client_engagement,
        "search_difficulty": search_difficulty,
        "time_open": time_open,
        "fee_size": fee_size,
    }


def submission(
    rater_id: str,
    value_scores: Mapping[str, int],
    *,
    role: str = "account_manager",
    on: date = date(2024, 1, 1),
    sequence: int = 0,
) -> Submission:
    return Submission.create(
        rater_id=rater_id,
        rater_role=role,
        submitted_on=on,
        scores=value_scores,
        sequence=sequence,
    )


def bulk_job(
    job_id: str,
    value_scores: Mapping[str, int] | None,
    expected_rank: str | None,
    *,
    title: str = "Data Engineer",
    organisation: str = "Acme",
) -> BulkTestJob:
    return BulkTestJob.create(
        job_id=job_id,
        title=title,
        organisation=organisation,
        scores=value_scores,
        expected_rank=expected_rank,
    )
