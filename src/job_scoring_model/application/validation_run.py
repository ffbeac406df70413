"""Validation run: score a batch with candidate weights and write the report."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from pathlib import Path

from ..domain.session import ScoringSession
from ..domain.validation_report import BulkTestJob, ReportFilter, SortKey, ValidationReport
from ..observability import get_logger
from ..protocols import FileSystem
from .validation_export import export_validation_report


@dataclass(frozen=True)
class ValidationRun:
    report: ValidationReport
    output_path: Path


def report_filename(today: date) -> str:
    return f"validation-report-{today.isoformat()}.csv"


def run_validation(
    *,
    jobs: Iterable[BulkTestJob],
    session: ScoringSession,
    reports_dir: Path,
    fs: FileSystem,
    today: date,
    report_filter: ReportFilter = ReportFilter.ALL,
    sort_key: SortKey | None = None,
    descending: bool = False,
) -> ValidationRun:
    """Generate a validation report and export the selected view as CSV."""
    logger = get_logger("job_scoring_model.validation")
    report = session.validate_batch(jobs)
    summary = report.summary
    logger.info(
        "Validated %s jobs: %s complete, %s matched (%.1f%%), %s incomplete skipped",
        summary.total,
        summary.complete,
        summary.matched,
        summary.match_percentage,
        summary.incomplete,
    )
    output_path = export_validation_report(
        report,
        session.configuration,
        reports_dir / report_filename(today),
        fs,
        report_filter=report_filter,
        sort_key=sort_key,
        descending=descending,
    )
    return ValidationRun(report=report, output_path=output_path)
