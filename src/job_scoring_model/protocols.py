"""Protocol definitions for dependency injection.

These protocols define the abstract interfaces that application use cases
depend on, enabling isolated unit testing with in-memory implementations.
"""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import AbstractContextManager
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    import pandas as pd

    from .domain.aggregation import Submission
    from .domain.job_ranking import JobRanking


@runtime_checkable
class FileSystem(Protocol):
    """Abstract filesystem for reading/writing configuration, batches and reports."""

    def read_csv(self, path: Path) -> pd.DataFrame:
        """Read CSV file into DataFrame (all columns as strings)."""
        ...

    def write_csv(self, df: pd.DataFrame, path: Path) -> None:
        """Write DataFrame to CSV file."""
        ...

    def read_json(self, path: Path) -> dict[str, object]:
        """Read JSON file."""
        ...

    def write_json(self, data: Mapping[str, object], path: Path) -> None:
        """Write JSON file."""
        ...

    def read_text(self, path: Path) -> str:
        """Read text file."""
        ...

    def write_text(self, content: str, path: Path) -> None:
        """Write text file."""
        ...

    def exists(self, path: Path) -> bool:
        """Check if path exists."""
        ...

    def mkdir(self, path: Path, parents: bool = True) -> None:
        """Create directory."""
        ...


@runtime_checkable
class SubmissionStore(Protocol):
    """Storage collaborator for production submissions and rankings.

    ``locked(job_id)`` must make everything done inside it atomic with respect
    to other submissions for the same job, so that at most one ranking is ever
    current and no ranking is computed from a partial submission set.
    """

    def locked(self, job_id: str) -> AbstractContextManager[None]:
        """Hold exclusive access to one job's submissions and rankings."""
        ...

    def fetch_submissions(self, job_id: str) -> list[Submission]:
        """Return every stored submission for the job, oldest first."""
        ...

    def persist_submission(self, job_id: str, submission: Submission) -> Submission:
        """Store a submission.

        Raises:
            DuplicateSubmissionError: If (job, rater, date) already exists.
        """
        ...

    def persist_ranking(self, job_id: str, ranking: JobRanking) -> JobRanking:
        """Store a ranking as current, marking the previous current one as superseded."""
        ...

    def current_ranking(self, job_id: str) -> JobRanking | None:
        """Return the job's current ranking, if any."""
        ...

    def ranking_history(self, job_id: str) -> list[JobRanking]:
        """Return every ranking computed for the job, oldest first."""
        ...
