"""Column definitions for batch inputs and CSV artefacts.

These define the expected columns at each file boundary, enabling validation
and clear documentation of data contracts. Criterion columns are dynamic: they
follow the configured criteria, in configuration order.
"""

from __future__ import annotations

from collections.abc import Iterable

from .exceptions import BatchImportError

# Batch import CSV (header names are matched case-insensitively)
BATCH_TITLE_COLUMN = "job_title"
BATCH_ORGANISATION_COLUMN = "company"
BATCH_EXPECTED_RANK_COLUMN = "expected_rank"
BATCH_NOTES_COLUMN = "notes"
BATCH_REQUIRED_COLUMNS = frozenset([BATCH_TITLE_COLUMN, BATCH_ORGANISATION_COLUMN])

# Validation report CSV
REPORT_TITLE_COLUMN = "Job Title"
REPORT_ORGANISATION_COLUMN = "Organisation"
REPORT_EXPECTED_RANK_COLUMN = "Expected Rank"
REPORT_MODEL_RANK_COLUMN = "Model Rank"
REPORT_MODEL_SCORE_COLUMN = "Model Score"
REPORT_MATCH_COLUMN = "Match"

# Bulk-test data CSV
BULK_TITLE_COLUMN = "Job Title"
BULK_ORGANISATION_COLUMN = "Company"
BULK_EXPECTED_RANK_COLUMN = "Expected Rank"
BULK_SCORED_COLUMN = "Scored"

YES = "Yes"
NO = "No"


def validation_report_columns(criterion_names: Iterable[str]) -> tuple[str, ...]:
    return (
        REPORT_TITLE_COLUMN,
        REPORT_ORGANISATION_COLUMN,
        *criterion_names,
        REPORT_EXPECTED_RANK_COLUMN,
        REPORT_MODEL_RANK_COLUMN,
        REPORT_MODEL_SCORE_COLUMN,
        REPORT_MATCH_COLUMN,
    )


def bulk_test_columns(criterion_names: Iterable[str]) -> tuple[str, ...]:
    return (
        BULK_TITLE_COLUMN,
        BULK_ORGANISATION_COLUMN,
        *criterion_names,
        BULK_EXPECTED_RANK_COLUMN,
        BULK_SCORED_COLUMN,
    )


def validate_columns(df_columns: list[str], required: frozenset[str], source: str) -> None:
    """Validate that a DataFrame has the required columns.

    Args:
        df_columns: List of column names from DataFrame.
        required: Set of required column names.
        source: Name of the input, for error messages.

    Raises:
        BatchImportError: If required columns are missing.
    """
    missing = required - set(df_columns)
    if missing:
        raise BatchImportError(source, f"missing required columns: {', '.join(sorted(missing))}")
