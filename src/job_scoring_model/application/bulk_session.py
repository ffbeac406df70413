"""Bulk-test session bookkeeping.

A session is the working set of test jobs a reviewer scores by hand before
running validation. It records which configuration revision and criteria it
was started under, so drift can be reported when the configuration changes
mid-session.

Usage example:
    >>> from datetime import UTC, datetime
    >>> from job_scoring_model.application.bulk_session import (
    ...     BulkTestSession,
    ...     next_incomplete_job,
    ...     record_scores,
    ... )
    >>> session = BulkTestSession.start(jobs, configuration=config, source_name="jobs.csv",
    ...                                 now=datetime.now(UTC))
    >>> session = record_scores(session, "job_1", {"client_engagement": 4}, config)
    >>> next_incomplete_job(session, config.ordered_criteria, current_job_id="job_1")
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError

from ..domain.scoring_config import Criterion, Rank, ScoringConfiguration
from ..domain.validation_report import BulkTestJob
from ..exceptions import (
    BulkSessionValidationError,
    BulkTestJobNotFoundError,
    RankNotDefinedError,
)
from ..infrastructure.io.validation import format_validation_error
from ..protocols import FileSystem

MANUAL_SOURCE_NAME = "Manual Entry"
_JOB_ID_PATTERN = re.compile(r"^job_(\d+)$")


@dataclass(frozen=True)
class BulkTestSession:
    """Test jobs under review plus the configuration snapshot they started from."""

    session_id: str
    created_at: datetime
    source_name: str
    config_revision: int | None
    criterion_ids: tuple[str, ...]
    jobs: tuple[BulkTestJob, ...]

    @classmethod
    def start(
        cls,
        jobs: Iterable[BulkTestJob],
        *,
        configuration: ScoringConfiguration,
        source_name: str,
        now: datetime,
    ) -> BulkTestSession:
        return cls(
            session_id=f"session_{now.strftime('%Y%m%dT%H%M%S')}",
            created_at=now,
            source_name=source_name,
            config_revision=configuration.revision,
            criterion_ids=configuration.criterion_ids,
            jobs=tuple(jobs),
        )

    def get_job(self, job_id: str) -> BulkTestJob:
        for job in self.jobs:
            if job.job_id == job_id:
                return job
        raise BulkTestJobNotFoundError(job_id)

    def with_job(self, updated: BulkTestJob) -> BulkTestSession:
        self.get_job(updated.job_id)
        return replace(
            self,
            jobs=tuple(updated if job.job_id == updated.job_id else job for job in self.jobs),
        )


@dataclass(frozen=True)
class CompletionStats:
    total: int
    complete: int
    incomplete: int
    completion_percentage: int
    source_name: str


def record_scores(
    session: BulkTestSession,
    job_id: str,
    scores: Mapping[str, int],
    configuration: ScoringConfiguration,
) -> BulkTestSession:
    """Merge new factor scores into one job.

    Raises:
        InvalidFactorScoreError: If a score is outside 1-5 or names an unknown criterion.
        BulkTestJobNotFoundError: If the job is not in the session.
    """
    job = session.get_job(job_id)
    return session.with_job(job.with_scores(scores, configuration.criteria))


def record_expected_rank(
    session: BulkTestSession,
    job_id: str,
    rank: str | None,
    configuration: ScoringConfiguration,
) -> BulkTestSession:
    """Set (or clear, with None) a job's expected rank, given by identity or name.

    Raises:
        RankNotDefinedError: If the rank is not configured.
    """
    rank_id: str | None = None
    if rank is not None:
        resolved = configuration.find_rank(rank)
        if resolved is None:
            raise RankNotDefinedError(rank)
        rank_id = resolved.rank_id
    return session.with_job(session.get_job(job_id).with_expected_rank(rank_id))


def _next_job_id(jobs: Iterable[BulkTestJob]) -> str:
    highest = 0
    for job in jobs:
        match = _JOB_ID_PATTERN.match(job.job_id)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"job_{highest + 1}"


def add_manual_job(
    session: BulkTestSession | None,
    title: str,
    organisation: str,
    *,
    configuration: ScoringConfiguration,
    now: datetime,
) -> tuple[BulkTestSession, BulkTestJob]:
    """Append a hand-entered job, starting a new session when there is none."""
    if session is None or not session.jobs:
        session = BulkTestSession.start(
            (), configuration=configuration, source_name=MANUAL_SOURCE_NAME, now=now
        )
    job = BulkTestJob.create(
        job_id=_next_job_id(session.jobs),
        title=title.strip(),
        organisation=organisation.strip(),
    )
    return replace(session, jobs=(*session.jobs, job)), job


def next_incomplete_job(
    session: BulkTestSession,
    criteria: Iterable[Criterion],
    current_job_id: str | None = None,
    *,
    ranks: Iterable[Rank] | None = None,
) -> BulkTestJob | None:
    """Find the next incomplete job after ``current_job_id``, wrapping around."""
    criteria = tuple(criteria)
    ranks = tuple(ranks) if ranks is not None else None
    jobs = session.jobs
    start = 0
    if current_job_id is not None:
        for index, job in enumerate(jobs):
            if job.job_id == current_job_id:
                start = index + 1
                break
    for job in (*jobs[start:], *jobs[:start]):
        if not job.is_complete(criteria, ranks):
            return job
    return None


def completion_stats(
    session: BulkTestSession,
    criteria: Iterable[Criterion],
    *,
    ranks: Iterable[Rank] | None = None,
) -> CompletionStats:
    criteria = tuple(criteria)
    ranks = tuple(ranks) if ranks is not None else None
    total = len(session.jobs)
    complete = sum(1 for job in session.jobs if job.is_complete(criteria, ranks))
    percentage = math.floor(100 * complete / total + 0.5) if total else 0
    return CompletionStats(
        total=total,
        complete=complete,
        incomplete=total - complete,
        completion_percentage=percentage,
        source_name=session.source_name,
    )


def check_configuration_drift(
    session: BulkTestSession, configuration: ScoringConfiguration
) -> tuple[str, ...]:
    """Warnings describing criterion and rank changes since the session started."""
    warnings: list[str] = []
    current = configuration.criterion_ids
    if len(current) != len(session.criterion_ids):
        warnings.append("Number of criteria has changed since the session was created")
    if sorted(current) != sorted(session.criterion_ids):
        warnings.append("Criteria have been added or removed since the session was created")
    rank_ids = {rank.rank_id for rank in configuration.ranks}
    orphaned = [
        job.job_id
        for job in session.jobs
        if job.expected_rank is not None and job.expected_rank not in rank_ids
    ]
    if orphaned:
        warnings.append(
            f"Expected rank is no longer configured for {len(orphaned)} job(s): "
            f"{', '.join(orphaned)}"
        )
    return tuple(warnings)


# =============================================================================
# Persistence
# =============================================================================


class _BulkJobModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    title: str
    organisation: str
    scores: dict[str, int] = {}
    expected_rank: str | None = None
    notes: str = ""


class _BulkSessionModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    session_id: str
    created_at: datetime
    source_name: str
    config_revision: int | None = None
    criterion_ids: tuple[str, ...] = ()
    jobs: tuple[_BulkJobModel, ...] = ()


def load_bulk_session(*, path: Path, fs: FileSystem) -> BulkTestSession | None:
    """Load the saved session, or None when nothing has been saved yet."""
    if not fs.exists(path):
        return None
    try:
        model = _BulkSessionModel.model_validate_json(fs.read_text(path))
    except ValidationError as exc:
        raise BulkSessionValidationError(str(path), format_validation_error(exc)) from exc
    return BulkTestSession(
        session_id=model.session_id,
        created_at=model.created_at,
        source_name=model.source_name,
        config_revision=model.config_revision,
        criterion_ids=model.criterion_ids,
        jobs=tuple(
            BulkTestJob.create(
                job_id=job.id,
                title=job.title,
                organisation=job.organisation,
                scores=job.scores,
                expected_rank=job.expected_rank,
                notes=job.notes,
            )
            for job in model.jobs
        ),
    )


def save_bulk_session(session: BulkTestSession, *, path: Path, fs: FileSystem) -> None:
    fs.write_json(
        {
            "session_id": session.session_id,
            "created_at": session.created_at.isoformat(),
            "source_name": session.source_name,
            "config_revision": session.config_revision,
            "criterion_ids": list(session.criterion_ids),
            "jobs": [
                {
                    "id": job.job_id,
                    "title": job.title,
                    "organisation": job.organisation,
                    "scores": dict(job.scores),
                    "expected_rank": job.expected_rank,
                    "notes": job.notes,
                }
                for job in session.jobs
            ],
        },
        path,
    )
