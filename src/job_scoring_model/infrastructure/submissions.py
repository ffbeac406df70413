"""In-memory submission store.

Usage example:
    from datetime import date

    from job_scoring_model.domain.aggregation import Submission
    from job_scoring_model.infrastructure import InMemorySubmissionStore

    store = InMemorySubmissionStore()
    with store.locked("J1"):
        store.persist_submission(
            "J1",
            Submission.create(
                rater_id="R1",
                rater_role="ceo",
                submitted_on=date(2024, 1, 1),
                scores={"client_engagement": 5},
            ),
        )
"""

from __future__ import annotations

import threading
from collections import defaultdict
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from typing_extensions import override

from ..domain.aggregation import Submission
from ..domain.job_ranking import JobRanking
from ..exceptions import DuplicateSubmissionError
from ..protocols import SubmissionStore


class InMemorySubmissionStore(SubmissionStore):
    """Thread-safe submission store holding everything in process memory.

    One re-entrant lock per job serialises the production workflow for that
    job; a store-wide lock guards the per-job lock table itself.
    """

    def __init__(self) -> None:
        self._submissions: dict[str, list[Submission]] = defaultdict(list)
        self._rankings: dict[str, list[JobRanking]] = defaultdict(list)
        self._job_locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, job_id: str) -> threading.RLock:
        with self._guard:
            lock = self._job_locks.get(job_id)
            if lock is None:
                lock = threading.RLock()
                self._job_locks[job_id] = lock
            return lock

    @override
    @contextmanager
    def locked(self, job_id: str) -> Iterator[None]:
        lock = self._lock_for(job_id)
        with lock:
            yield

    @override
    def fetch_submissions(self, job_id: str) -> list[Submission]:
        with self._lock_for(job_id):
            return list(self._submissions.get(job_id, ()))

    @override
    def persist_submission(self, job_id: str, submission: Submission) -> Submission:
        with self._lock_for(job_id):
            for existing in self._submissions.get(job_id, ()):
                if (
                    existing.rater_id == submission.rater_id
                    and existing.submitted_on == submission.submitted_on
                ):
                    raise DuplicateSubmissionError(
                        job_id, submission.rater_id, submission.submitted_on.isoformat()
                    )
            stored = submission
            if submission.sequence <= 0:
                history = self._submissions.get(job_id, ())
                next_sequence = max((s.sequence for s in history), default=0) + 1
                stored = replace(submission, sequence=next_sequence)
            self._submissions[job_id].append(stored)
            return stored

    @override
    def persist_ranking(self, job_id: str, ranking: JobRanking) -> JobRanking:
        with self._lock_for(job_id):
            history = self._rankings[job_id]
            for index, previous in enumerate(history):
                if previous.is_current:
                    history[index] = previous.superseded()
            stored = replace(ranking, is_current=True)
            history.append(stored)
            return stored

    @override
    def current_ranking(self, job_id: str) -> JobRanking | None:
        with self._lock_for(job_id):
            for ranking in reversed(self._rankings.get(job_id, ())):
                if ranking.is_current:
                    return ranking
            return None

    @override
    def ranking_history(self, job_id: str) -> list[JobRanking]:
        with self._lock_for(job_id):
            return list(self._rankings.get(job_id, ()))
