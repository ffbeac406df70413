"""Scoring session: the explicit context threaded through every scoring call.

A session pairs one configuration with one weight set that has been validated
against it, plus the roles whose composites are reported separately. There is
no process-wide "current weights" state; callers build a session and pass it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date

from ..exceptions import PrivilegedRolesError
from .aggregation import DEFAULT_PRIVILEGED_ROLES, MAX_PRIVILEGED_ROLES, Submission
from .composite import CriterionContribution, composite_score, score_breakdown
from .job_ranking import JobRanking, calculate_job_ranking
from .ranking import assign_rank
from .scoring_config import Rank, ScoringConfiguration
from .validation_report import BulkTestJob, ValidationReport, generate_validation_report
from .weights import WeightSet, default_weights, reconcile_weights, require_weights


def validate_privileged_roles(roles: Sequence[str]) -> tuple[str, ...]:
    cleaned = tuple(role.strip() for role in roles)
    if (
        not cleaned
        or len(cleaned) > MAX_PRIVILEGED_ROLES
        or any(not role for role in cleaned)
        or len(set(cleaned)) != len(cleaned)
    ):
        raise PrivilegedRolesError(tuple(roles), MAX_PRIVILEGED_ROLES)
    return cleaned


@dataclass(frozen=True)
class SingleJobResult:
    """Score, rank and breakdown for one set of factor scores."""

    score: float
    rank: Rank
    breakdown: tuple[CriterionContribution, ...]


@dataclass(frozen=True)
class ScoringSession:
    """A configuration plus a weight set known to be valid for it."""

    configuration: ScoringConfiguration
    weights: WeightSet
    privileged_roles: tuple[str, ...] = field(default=DEFAULT_PRIVILEGED_ROLES)

    def __post_init__(self) -> None:
        require_weights(self.weights, self.configuration.criteria)
        object.__setattr__(
            self, "privileged_roles", validate_privileged_roles(self.privileged_roles)
        )

    @classmethod
    def with_defaults(
        cls,
        configuration: ScoringConfiguration,
        privileged_roles: Sequence[str] = DEFAULT_PRIVILEGED_ROLES,
    ) -> ScoringSession:
        return cls(
            configuration=configuration,
            weights=default_weights(configuration.criteria),
            privileged_roles=tuple(privileged_roles),
        )

    def with_weights(self, weights: WeightSet | Mapping[str, float]) -> ScoringSession:
        weight_set = weights if isinstance(weights, WeightSet) else WeightSet.from_mapping(weights)
        return ScoringSession(self.configuration, weight_set, self.privileged_roles)

    def with_configuration(self, configuration: ScoringConfiguration) -> ScoringSession:
        """Move to a new configuration, reconciling weights with its criteria.

        Raises:
            InvalidWeightSetError: If the reconciled weights no longer sum to 1.0.
        """
        weights = reconcile_weights(self.weights, configuration.criteria)
        return ScoringSession(configuration, weights, self.privileged_roles)

    def score(self, scores: Mapping[str, int]) -> SingleJobResult:
        criteria = self.configuration.ordered_criteria
        value = composite_score(scores, self.weights, criteria)
        return SingleJobResult(
            score=value,
            rank=assign_rank(value, self.configuration.ranks),
            breakdown=score_breakdown(scores, self.weights, criteria),
        )

    def rank_job(
        self,
        job_id: str,
        submissions: Iterable[Submission],
        scoring_date: date,
    ) -> JobRanking:
        return calculate_job_ranking(
            job_id,
            submissions,
            configuration=self.configuration,
            weights=self.weights,
            scoring_date=scoring_date,
            privileged_roles=self.privileged_roles,
        )

    def validate_batch(self, jobs: Iterable[BulkTestJob]) -> ValidationReport:
        return generate_validation_report(
            jobs, configuration=self.configuration, weights=self.weights
        )
