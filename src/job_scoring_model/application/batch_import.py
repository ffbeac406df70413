"""Batch import of test jobs from CSV.

Usage example:
    >>> from pathlib import Path
    >>> from job_scoring_model.application.batch_import import import_batch
    >>> fs = ...  # Injected FileSystem from the CLI/composition root
    >>> config = ...  # Loaded ScoringConfiguration
    >>> result = import_batch(Path("data/batches/jobs.csv"), fs, config)
    >>> result.jobs[0].job_id
    'job_1'

Required columns are ``job_title`` and ``company``. A column named after a
criterion identity pre-fills that criterion's score, ``expected_rank`` (rank
identity or name) pre-fills the expected rank, and ``notes`` is kept as-is.
Rows missing a title or organisation are dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from ..config import DEFAULT_BATCH_WARNING_ROWS
from ..domain.scoring_config import ScoringConfiguration
from ..domain.validation_report import BulkTestJob
from ..domain.weights import find_factor_score_error
from ..exceptions import BatchImportError
from ..infrastructure.io.validation import validate_as
from ..observability import get_logger
from ..protocols import FileSystem
from ..schemas import (
    BATCH_EXPECTED_RANK_COLUMN,
    BATCH_NOTES_COLUMN,
    BATCH_ORGANISATION_COLUMN,
    BATCH_REQUIRED_COLUMNS,
    BATCH_TITLE_COLUMN,
    validate_columns,
)


@dataclass(frozen=True)
class BatchImportResult:
    """Imported jobs plus what was skipped and any advisories."""

    source: str
    jobs: tuple[BulkTestJob, ...]
    dropped_rows: int
    warnings: tuple[str, ...]


def _parse_score(text: str, *, source: str, line: int, column: str) -> int:
    try:
        value = int(text)
    except ValueError as exc:
        raise BatchImportError(
            source, f"row {line}: {column} score {text!r} is not an integer"
        ) from exc
    error = find_factor_score_error({column: value})
    if error is not None:
        raise BatchImportError(source, f"row {line}: {error.constraint} (got {value})")
    return value


def _read_frame(path: Path, fs: FileSystem, source: str) -> pd.DataFrame:
    if not fs.exists(path):
        raise BatchImportError(source, "file not found")
    if path.suffix.lower() != ".csv":
        raise BatchImportError(source, "file must be a CSV (.csv extension)")
    try:
        df = fs.read_csv(path)
    except pd.errors.EmptyDataError as exc:
        raise BatchImportError(source, "CSV file is empty") from exc
    df.columns = [str(column).strip().lower() for column in df.columns]
    return df


def import_batch(
    path: Path,
    fs: FileSystem,
    configuration: ScoringConfiguration,
    *,
    warning_rows: int = DEFAULT_BATCH_WARNING_ROWS,
) -> BatchImportResult:
    """Read a CSV of test jobs into ``BulkTestJob`` records.

    Raises:
        BatchImportError: If the file is missing, not a CSV, lacks the required
            columns, carries an invalid score or rank, or has no valid rows.
    """
    logger = get_logger("job_scoring_model.batch_import")
    source = str(path)
    df = _read_frame(path, fs, source)
    validate_columns(list(df.columns), BATCH_REQUIRED_COLUMNS, source)

    score_columns = [c.criterion_id for c in configuration.ordered_criteria if c.criterion_id in df]
    has_expected_rank = BATCH_EXPECTED_RANK_COLUMN in df
    has_notes = BATCH_NOTES_COLUMN in df

    jobs: list[BulkTestJob] = []
    dropped = 0
    records = validate_as(list[dict[str, str]], df.fillna("").astype(str).to_dict("records"))
    for line, row in enumerate(records, start=2):
        title = row[BATCH_TITLE_COLUMN].strip()
        organisation = row[BATCH_ORGANISATION_COLUMN].strip()
        if not title or not organisation:
            dropped += 1
            continue

        scores: dict[str, int] = {}
        for column in score_columns:
            text = row[column].strip()
            if text:
                scores[column] = _parse_score(text, source=source, line=line, column=column)

        expected_rank: str | None = None
        if has_expected_rank:
            rank_text = row[BATCH_EXPECTED_RANK_COLUMN].strip()
            if rank_text:
                rank = configuration.find_rank(rank_text)
                if rank is None:
                    raise BatchImportError(
                        source, f"row {line}: expected rank {rank_text!r} is not configured"
                    )
                expected_rank = rank.rank_id

        jobs.append(
            BulkTestJob.create(
                job_id=f"job_{len(jobs) + 1}",
                title=title,
                organisation=organisation,
                scores=scores,
                expected_rank=expected_rank,
                notes=row[BATCH_NOTES_COLUMN].strip() if has_notes else "",
            )
        )

    if not jobs:
        raise BatchImportError(source, "no valid job records found")

    warnings: list[str] = []
    if len(jobs) > warning_rows:
        message = (
            f"Large batch detected: {len(jobs)} jobs (advisory limit {warning_rows}). "
            "Scoring may be slow."
        )
        logger.warning(message)
        warnings.append(message)

    logger.info("Imported %s test jobs from %s (%s rows dropped)", len(jobs), source, dropped)
    return BatchImportResult(
        source=source,
        jobs=tuple(jobs),
        dropped_rows=dropped,
        warnings=tuple(warnings),
    )
