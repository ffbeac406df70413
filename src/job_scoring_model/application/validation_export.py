"""CSV artefacts for validation reports and bulk-test data.

Both exports are one-way: nothing reads these files back.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import pandas as pd

from ..domain.scoring_config import ScoringConfiguration
from ..domain.validation_report import (
    AnalysedJob,
    BulkTestJob,
    ReportFilter,
    SortKey,
    ValidationReport,
)
from ..observability import get_logger
from ..protocols import FileSystem
from ..schemas import (
    BULK_EXPECTED_RANK_COLUMN,
    BULK_ORGANISATION_COLUMN,
    BULK_SCORED_COLUMN,
    BULK_TITLE_COLUMN,
    NO,
    REPORT_EXPECTED_RANK_COLUMN,
    REPORT_MATCH_COLUMN,
    REPORT_MODEL_RANK_COLUMN,
    REPORT_MODEL_SCORE_COLUMN,
    REPORT_ORGANISATION_COLUMN,
    REPORT_TITLE_COLUMN,
    YES,
    bulk_test_columns,
    validation_report_columns,
)


def _rank_name(rank_id: str | None, configuration: ScoringConfiguration) -> str:
    if rank_id is None:
        return ""
    rank = configuration.find_rank(rank_id)
    return rank.name if rank is not None else rank_id


def _score_cells(job: BulkTestJob, configuration: ScoringConfiguration) -> dict[str, object]:
    return {
        criterion.name: job.scores.get(criterion.criterion_id, "")
        for criterion in configuration.ordered_criteria
    }


def validation_report_frame(
    jobs: Iterable[AnalysedJob],
    configuration: ScoringConfiguration,
) -> pd.DataFrame:
    """Tabulate analysed jobs with one column per configured criterion."""
    columns = validation_report_columns(c.name for c in configuration.ordered_criteria)
    rows = [
        {
            REPORT_TITLE_COLUMN: analysed.title,
            REPORT_ORGANISATION_COLUMN: analysed.organisation,
            **_score_cells(analysed.job, configuration),
            REPORT_EXPECTED_RANK_COLUMN: _rank_name(analysed.job.expected_rank, configuration),
            REPORT_MODEL_RANK_COLUMN: analysed.model_rank.name,
            REPORT_MODEL_SCORE_COLUMN: f"{analysed.model_score:.2f}",
            REPORT_MATCH_COLUMN: YES if analysed.matched else NO,
        }
        for analysed in jobs
    ]
    return pd.DataFrame(rows, columns=list(columns))


def export_validation_report(
    report: ValidationReport,
    configuration: ScoringConfiguration,
    path: Path,
    fs: FileSystem,
    *,
    report_filter: ReportFilter = ReportFilter.ALL,
    sort_key: SortKey | None = None,
    descending: bool = False,
) -> Path:
    """Write the selected report view (matches then mismatches by default) to CSV."""
    jobs = report.sorted_view(report_filter, sort_key, descending=descending)
    fs.write_csv(validation_report_frame(jobs, configuration), path)
    get_logger("job_scoring_model.validation_export").info(
        "Wrote %s report rows to %s", len(jobs), path
    )
    return path


def bulk_test_frame(
    jobs: Iterable[BulkTestJob],
    configuration: ScoringConfiguration,
) -> pd.DataFrame:
    """Tabulate raw bulk-test jobs, complete or not."""
    criteria = configuration.ordered_criteria
    columns = bulk_test_columns(c.name for c in criteria)
    rows = [
        {
            BULK_TITLE_COLUMN: job.title,
            BULK_ORGANISATION_COLUMN: job.organisation,
            **_score_cells(job, configuration),
            BULK_EXPECTED_RANK_COLUMN: _rank_name(job.expected_rank, configuration),
            BULK_SCORED_COLUMN: YES if job.is_complete(criteria, configuration.ranks) else NO,
        }
        for job in jobs
    ]
    return pd.DataFrame(rows, columns=list(columns))


def export_bulk_test_data(
    jobs: Iterable[BulkTestJob],
    configuration: ScoringConfiguration,
    path: Path,
    fs: FileSystem,
) -> Path:
    frame = bulk_test_frame(jobs, configuration)
    fs.write_csv(frame, path)
    get_logger("job_scoring_model.validation_export").info(
        "Wrote %s bulk-test rows to %s", len(frame), path
    )
    return path
