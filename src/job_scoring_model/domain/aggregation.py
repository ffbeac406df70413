"""Multi-rater aggregation for one job.

Ordering rule used throughout this module: a submission is "later" than
another when its ``submitted_on`` date is later; on the same date the higher
``sequence`` (store insertion counter) wins; if those are equal too, the one
appearing later in the input wins.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from types import MappingProxyType

from ..exceptions import EmptyCompositeSetError, ScoreOutOfDomainError
from .composite import composite_score, round_score
from .scoring_config import SCORE_DOMAIN_MAX, SCORE_DOMAIN_MIN, Criterion
from .weights import WeightSet

ACCOUNT_MANAGER_ROLE = "account_manager"
SALES_PERSON_ROLE = "sales_person"
CEO_ROLE = "ceo"
DEFAULT_PRIVILEGED_ROLES = (ACCOUNT_MANAGER_ROLE, SALES_PERSON_ROLE, CEO_ROLE)
MAX_PRIVILEGED_ROLES = 3
UNKNOWN_ROLE = "unknown"


@dataclass(frozen=True)
class Submission:
    """One rater's factor scores for a job on a given date."""

    rater_id: str
    rater_role: str
    submitted_on: date
    scores: MappingProxyType[str, int]
    sequence: int = 0

    @classmethod
    def create(
        cls,
        *,
        rater_id: str,
        rater_role: str,
        submitted_on: date,
        scores: Mapping[str, int],
        sequence: int = 0,
    ) -> Submission:
        return cls(
            rater_id=rater_id,
            rater_role=rater_role or UNKNOWN_ROLE,
            submitted_on=submitted_on,
            scores=MappingProxyType(dict(scores)),
            sequence=sequence,
        )


@dataclass(frozen=True)
class ScorerComposite:
    """A rater's composite score derived from exactly one submission."""

    rater_id: str
    rater_role: str
    composite: float
    submitted_on: date
    sequence: int


@dataclass(frozen=True)
class AggregateResult:
    """Final score plus the composites and role breakdown it came from."""

    final_score: float
    composites: tuple[ScorerComposite, ...]
    role_composites: MappingProxyType[str, float | None]


def _recency_key(item: tuple[int, Submission]) -> tuple[date, int, int]:
    position, submission = item
    return (submission.submitted_on, submission.sequence, position)


def latest_submissions(submissions: Iterable[Submission]) -> tuple[Submission, ...]:
    """Keep only each rater's latest submission.

    Returns the retained submissions ordered from oldest to newest.
    """
    latest: dict[str, tuple[int, Submission]] = {}
    for position, submission in enumerate(submissions):
        current = latest.get(submission.rater_id)
        candidate = (position, submission)
        if current is None or _recency_key(candidate) > _recency_key(current):
            latest[submission.rater_id] = candidate
    retained = sorted(latest.values(), key=_recency_key)
    return tuple(submission for _, submission in retained)


def scorer_composites(
    submissions: Iterable[Submission],
    weights: WeightSet,
    criteria: Sequence[Criterion],
) -> tuple[ScorerComposite, ...]:
    """Deduplicate per rater, then compute one composite per retained submission."""
    return tuple(
        ScorerComposite(
            rater_id=submission.rater_id,
            rater_role=submission.rater_role,
            composite=composite_score(submission.scores, weights, criteria),
            submitted_on=submission.submitted_on,
            sequence=submission.sequence,
        )
        for submission in latest_submissions(submissions)
    )


def final_score(composites: Sequence[float], *, job_id: str | None = None) -> float:
    """Arithmetic mean of composite scores, rounded to 2 decimals."""
    if not composites:
        raise EmptyCompositeSetError(job_id)
    for value in composites:
        if not SCORE_DOMAIN_MIN <= value <= SCORE_DOMAIN_MAX:
            raise ScoreOutOfDomainError("composite score", value)
    return round_score(math.fsum(composites) / len(composites))


def role_breakdown(
    composites: Sequence[ScorerComposite],
    privileged_roles: Sequence[str] = DEFAULT_PRIVILEGED_ROLES,
) -> MappingProxyType[str, float | None]:
    """Expose each privileged role's composite, or None when no rater holds it.

    ``composites`` must be ordered oldest to newest (as ``scorer_composites``
    returns them); when several raters share a role, the latest one wins.
    """
    breakdown: dict[str, float | None] = dict.fromkeys(privileged_roles)
    for composite in composites:
        if composite.rater_role in breakdown:
            breakdown[composite.rater_role] = composite.composite
    return MappingProxyType(breakdown)


def aggregate_submissions(
    submissions: Iterable[Submission],
    weights: WeightSet,
    criteria: Sequence[Criterion],
    *,
    privileged_roles: Sequence[str] = DEFAULT_PRIVILEGED_ROLES,
    job_id: str | None = None,
) -> AggregateResult:
    """Reduce all submissions for one job into a final score and role breakdown."""
    composites = scorer_composites(submissions, weights, criteria)
    score = final_score([c.composite for c in composites], job_id=job_id)
    return AggregateResult(
        final_score=score,
        composites=composites,
        role_composites=role_breakdown(composites, privileged_roles),
    )
