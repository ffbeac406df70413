"""Job rankings: the aggregated score and rank tier for one live job."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date
from types import MappingProxyType

from .aggregation import (
    DEFAULT_PRIVILEGED_ROLES,
    ScorerComposite,
    Submission,
    aggregate_submissions,
)
from .ranking import assign_rank
from .scoring_config import Rank, ScoringConfiguration
from .weights import WeightSet


@dataclass(frozen=True)
class JobRanking:
    """One computed ranking for a job; at most one per job is current."""

    job_id: str
    scoring_date: date
    final_score: float
    rank: Rank
    role_composites: MappingProxyType[str, float | None]
    composites: tuple[ScorerComposite, ...]
    is_current: bool = True

    def superseded(self) -> JobRanking:
        return replace(self, is_current=False)

    def same_outcome(self, other: JobRanking) -> bool:
        """True when both rankings carry the same score, rank and role breakdown."""
        return (
            self.final_score == other.final_score
            and self.rank.rank_id == other.rank.rank_id
            and dict(self.role_composites) == dict(other.role_composites)
            and self.composites == other.composites
        )


def calculate_job_ranking(
    job_id: str,
    submissions: Iterable[Submission],
    *,
    configuration: ScoringConfiguration,
    weights: WeightSet,
    scoring_date: date,
    privileged_roles: Sequence[str] = DEFAULT_PRIVILEGED_ROLES,
) -> JobRanking:
    """Compute a current ranking for a job from all of its submissions."""
    result = aggregate_submissions(
        submissions,
        weights,
        configuration.ordered_criteria,
        privileged_roles=privileged_roles,
        job_id=job_id,
    )
    return JobRanking(
        job_id=job_id,
        scoring_date=scoring_date,
        final_score=result.final_score,
        rank=assign_rank(result.final_score, configuration.ranks),
        role_composites=result.role_composites,
        composites=result.composites,
        is_current=True,
    )
