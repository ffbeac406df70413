"""Production scoring workflow for live jobs.

A rater submits factor scores for a job; the job's ranking is recomputed from
every submission and replaces the previous current ranking. The whole unit
(duplicate check, ranking, persistence) runs while holding the store's lock
for that job, and the ranking is computed before anything is written, so a
failure leaves the store as it was.

Usage example:
    >>> from datetime import date
    >>> from job_scoring_model.application.production import submit_score
    >>> from job_scoring_model.domain.scoring_config import default_configuration
    >>> from job_scoring_model.domain.session import ScoringSession
    >>> from job_scoring_model.infrastructure import InMemorySubmissionStore
    >>> session = ScoringSession.with_defaults(default_configuration())
    >>> outcome = submit_score(
    ...     job_id="J1",
    ...     rater_id="R1",
    ...     rater_role="account_manager",
    ...     scores={"client_engagement": 5, "search_difficulty": 3,
    ...             "time_open": 4, "fee_size": 4},
    ...     submitted_on=date(2024, 1, 1),
    ...     session=session,
    ...     store=InMemorySubmissionStore(),
    ... )
    >>> outcome.ranking.rank.name
    'A'
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date

from ..domain.aggregation import Submission
from ..domain.job_ranking import JobRanking
from ..domain.session import ScoringSession
from ..domain.weights import require_factor_scores
from ..exceptions import DuplicateSubmissionError
from ..observability import get_logger
from ..protocols import SubmissionStore


@dataclass(frozen=True)
class SubmissionOutcome:
    """The stored submission and the ranking it produced."""

    submission: Submission
    ranking: JobRanking


def submit_score(
    *,
    job_id: str,
    rater_id: str,
    rater_role: str,
    scores: Mapping[str, int],
    submitted_on: date,
    session: ScoringSession,
    store: SubmissionStore,
    scoring_date: date | None = None,
) -> SubmissionOutcome:
    """Record one rater's scores and make the recomputed ranking current.

    Raises:
        InvalidFactorScoreError: If the scores do not cover the configured criteria.
        DuplicateSubmissionError: If the rater already submitted for this job on this date.
    """
    logger = get_logger("job_scoring_model.production")
    require_factor_scores(scores, session.configuration.ordered_criteria)

    with store.locked(job_id):
        existing = store.fetch_submissions(job_id)
        for submission in existing:
            if submission.rater_id == rater_id and submission.submitted_on == submitted_on:
                raise DuplicateSubmissionError(job_id, rater_id, submitted_on.isoformat())

        pending = Submission.create(
            rater_id=rater_id,
            rater_role=rater_role,
            submitted_on=submitted_on,
            scores=scores,
            sequence=max((s.sequence for s in existing), default=0) + 1,
        )
        ranking = session.rank_job(job_id, [*existing, pending], scoring_date or submitted_on)
        stored_submission = store.persist_submission(job_id, pending)
        stored_ranking = store.persist_ranking(job_id, ranking)

    logger.info(
        "Job %s scored %.2f (%s) from %s rater(s)",
        job_id,
        stored_ranking.final_score,
        stored_ranking.rank.name,
        len(stored_ranking.composites),
    )
    return SubmissionOutcome(submission=stored_submission, ranking=stored_ranking)


def recompute_ranking(
    *,
    job_id: str,
    session: ScoringSession,
    store: SubmissionStore,
    scoring_date: date,
) -> JobRanking | None:
    """Recompute a job's ranking, for instance after weights or ranks change.

    The current ranking is kept when the outcome is unchanged; otherwise the
    new ranking supersedes it. Returns None for a job with no submissions.
    """
    with store.locked(job_id):
        submissions = store.fetch_submissions(job_id)
        if not submissions:
            return None
        ranking = session.rank_job(job_id, submissions, scoring_date)
        current = store.current_ranking(job_id)
        if current is not None and current.same_outcome(ranking):
            return current
        stored = store.persist_ranking(job_id, ranking)

    get_logger("job_scoring_model.production").info(
        "Job %s re-ranked: %.2f (%s)", job_id, stored.final_score, stored.rank.name
    )
    return stored
