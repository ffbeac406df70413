"""Tests for importing test jobs from CSV."""

from pathlib import Path

import pytest

from job_scoring_model.application.batch_import import import_batch
from job_scoring_model.domain.scoring_config import ScoringConfiguration
from job_scoring_model.exceptions import BatchImportError
from tests.fakes import InMemoryFileSystem

BATCH_PATH = Path("data/batches/jobs.csv")


def _write_csv(fs: InMemoryFileSystem, text: str, path: Path = BATCH_PATH) -> None:
    fs.write_text(text, path)


def test_imports_required_columns(
    in_memory_fs: InMemoryFileSystem, configuration: ScoringConfiguration
) -> None:
    _write_csv(
        in_memory_fs,
        "job_title,company\nData Engineer,Acme\nPlatform Lead,Globex\n",
    )

    result = import_batch(BATCH_PATH, in_memory_fs, configuration)

    assert [job.job_id for job in result.jobs] == ["job_1", "job_2"]
    assert result.jobs[1].title == "Platform Lead"
    assert result.jobs[1].organisation == "Globex"
    assert dict(result.jobs[0].scores) == {}
    assert result.dropped_rows == 0
    assert result.warnings == ()


def test_headers_are_case_insensitive(
    in_memory_fs: InMemoryFileSystem, configuration: ScoringConfiguration
) -> None:
    _write_csv(in_memory_fs, "Job_Title, Company \nData Engineer,Acme\n")

    result = import_batch(BATCH_PATH, in_memory_fs, configuration)

    assert result.jobs[0].organisation == "Acme"


def test_rows_without_title_or_company_are_dropped(
    in_memory_fs: InMemoryFileSystem, configuration: ScoringConfiguration
) -> None:
    _write_csv(
        in_memory_fs,
        "job_title,company\nData Engineer,Acme\n,Globex\nAnalyst,\n  ,  \n",
    )

    result = import_batch(BATCH_PATH, in_memory_fs, configuration)

    assert len(result.jobs) == 1
    assert result.dropped_rows == 3


def test_optional_columns_prefill_scores_rank_and_notes(
    in_memory_fs: InMemoryFileSystem, configuration: ScoringConfiguration
) -> None:
    _write_csv(
        in_memory_fs,
        "job_title,company,client_engagement,fee_size,expected_rank,notes\n"
        "Data Engineer,Acme,5,3,a,Retained search\n"
        "Analyst,Globex,,,,\n",
    )

    result = import_batch(BATCH_PATH, in_memory_fs, configuration)

    first, second = result.jobs
    assert dict(first.scores) == {"client_engagement": 5, "fee_size": 3}
    assert first.expected_rank == "rank_a"
    assert first.notes == "Retained search"
    assert dict(second.scores) == {}
    assert second.expected_rank is None


def test_missing_required_column(
    in_memory_fs: InMemoryFileSystem, configuration: ScoringConfiguration
) -> None:
    _write_csv(in_memory_fs, "job_title,notes\nData Engineer,x\n")

    with pytest.raises(BatchImportError) as exc_info:
        import_batch(BATCH_PATH, in_memory_fs, configuration)

    assert "company" in exc_info.value.reason


@pytest.mark.parametrize("value", ["6", "0", "4.5", "high"])
def test_invalid_score_names_the_row(
    in_memory_fs: InMemoryFileSystem, configuration: ScoringConfiguration, value: str
) -> None:
    _write_csv(
        in_memory_fs,
        f"job_title,company,time_open\nData Engineer,Acme,3\nAnalyst,Globex,{value}\n",
    )

    with pytest.raises(BatchImportError) as exc_info:
        import_batch(BATCH_PATH, in_memory_fs, configuration)

    assert exc_info.value.reason.startswith("row 3:")


def test_unknown_expected_rank(
    in_memory_fs: InMemoryFileSystem, configuration: ScoringConfiguration
) -> None:
    _write_csv(in_memory_fs, "job_title,company,expected_rank\nData Engineer,Acme,Z\n")

    with pytest.raises(BatchImportError) as exc_info:
        import_batch(BATCH_PATH, in_memory_fs, configuration)

    assert "'Z'" in exc_info.value.reason


def test_large_batch_warns_but_imports(
    in_memory_fs: InMemoryFileSystem, configuration: ScoringConfiguration
) -> None:
    rows = "".join(f"Role {i},Acme\n" for i in range(3))
    _write_csv(in_memory_fs, f"job_title,company\n{rows}")

    result = import_batch(BATCH_PATH, in_memory_fs, configuration, warning_rows=2)

    assert len(result.jobs) == 3
    assert len(result.warnings) == 1
    assert "Large batch" in result.warnings[0]


@pytest.mark.parametrize(
    ("text", "reason"),
    [
        ("", "CSV file is empty"),
        ("job_title,company\n", "no valid job records found"),
        ("job_title,company\n,\n", "no valid job records found"),
    ],
)
def test_empty_inputs(
    in_memory_fs: InMemoryFileSystem,
    configuration: ScoringConfiguration,
    text: str,
    reason: str,
) -> None:
    _write_csv(in_memory_fs, text)

    with pytest.raises(BatchImportError) as exc_info:
        import_batch(BATCH_PATH, in_memory_fs, configuration)

    assert exc_info.value.reason == reason


def test_missing_file(
    in_memory_fs: InMemoryFileSystem, configuration: ScoringConfiguration
) -> None:
    with pytest.raises(BatchImportError) as exc_info:
        import_batch(BATCH_PATH, in_memory_fs, configuration)

    assert exc_info.value.reason == "file not found"


def test_non_csv_file_is_rejected(
    in_memory_fs: InMemoryFileSystem, configuration: ScoringConfiguration
) -> None:
    path = Path("data/batches/jobs.xlsx")
    _write_csv(in_memory_fs, "job_title,company\nData Engineer,Acme\n", path)

    with pytest.raises(BatchImportError) as exc_info:
        import_batch(path, in_memory_fs, configuration)

    assert "CSV" in exc_info.value.reason
