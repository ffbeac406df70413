"""Tests for bulk-test session bookkeeping."""

from datetime import UTC, datetime
from pathlib import Path

import pytest

from job_scoring_model.application.bulk_session import (
    MANUAL_SOURCE_NAME,
    BulkTestSession,
    add_manual_job,
    check_configuration_drift,
    completion_stats,
    load_bulk_session,
    next_incomplete_job,
    record_expected_rank,
    record_scores,
    save_bulk_session,
)
from job_scoring_model.domain.scoring_config import (
    ScoringConfiguration,
    add_criterion,
    remove_criterion,
    remove_rank,
)
from job_scoring_model.exceptions import (
    BulkSessionValidationError,
    BulkTestJobNotFoundError,
    InvalidFactorScoreError,
    RankNotDefinedError,
)
from tests.fakes import InMemoryFileSystem
from tests.support.scoring_config import bulk_job, uniform_scores

NOW = datetime(2024, 3, 1, 9, 30, tzinfo=UTC)
SESSION_PATH = Path("data/bulk/session.json")


@pytest.fixture
def bulk_session(configuration: ScoringConfiguration) -> BulkTestSession:
    jobs = [
        bulk_job("job_1", uniform_scores(4), "rank_a"),
        bulk_job("job_2", None, None),
        bulk_job("job_3", uniform_scores(3), "rank_b"),
        bulk_job("job_4", {"fee_size": 2}, "rank_c"),
    ]
    return BulkTestSession.start(
        jobs, configuration=configuration, source_name="jobs.csv", now=NOW
    )


def test_start_records_configuration_snapshot(
    bulk_session: BulkTestSession, configuration: ScoringConfiguration
) -> None:
    assert bulk_session.session_id == "session_20240301T093000"
    assert bulk_session.config_revision == configuration.revision
    assert bulk_session.criterion_ids == configuration.criterion_ids


class TestNavigation:
    def test_next_incomplete_from_start(
        self, bulk_session: BulkTestSession, configuration: ScoringConfiguration
    ) -> None:
        job = next_incomplete_job(bulk_session, configuration.criteria)

        assert job is not None
        assert job.job_id == "job_2"

    def test_next_incomplete_wraps_around(
        self, bulk_session: BulkTestSession, configuration: ScoringConfiguration
    ) -> None:
        job = next_incomplete_job(bulk_session, configuration.criteria, current_job_id="job_4")

        assert job is not None
        assert job.job_id == "job_2"

    def test_next_incomplete_skips_current(
        self, bulk_session: BulkTestSession, configuration: ScoringConfiguration
    ) -> None:
        job = next_incomplete_job(bulk_session, configuration.criteria, current_job_id="job_2")

        assert job is not None
        assert job.job_id == "job_4"

    def test_none_when_all_complete(
        self, bulk_session: BulkTestSession, configuration: ScoringConfiguration
    ) -> None:
        for job_id, rank in (("job_2", "A"), ("job_4", "C")):
            bulk_session = record_scores(
                bulk_session, job_id, uniform_scores(2), configuration
            )
            bulk_session = record_expected_rank(bulk_session, job_id, rank, configuration)

        assert next_incomplete_job(bulk_session, configuration.criteria) is None


class TestRecording:
    def test_record_scores_merges(
        self, bulk_session: BulkTestSession, configuration: ScoringConfiguration
    ) -> None:
        updated = record_scores(bulk_session, "job_4", {"client_engagement": 5}, configuration)

        assert dict(updated.get_job("job_4").scores) == {"fee_size": 2, "client_engagement": 5}
        assert dict(bulk_session.get_job("job_4").scores) == {"fee_size": 2}

    def test_record_scores_rejects_out_of_range(
        self, bulk_session: BulkTestSession, configuration: ScoringConfiguration
    ) -> None:
        with pytest.raises(InvalidFactorScoreError):
            record_scores(bulk_session, "job_4", {"client_engagement": 6}, configuration)

    def test_record_scores_rejects_unconfigured_criterion(
        self, bulk_session: BulkTestSession, configuration: ScoringConfiguration
    ) -> None:
        with pytest.raises(InvalidFactorScoreError) as exc_info:
            record_scores(bulk_session, "job_4", {"fee_sze": 5}, configuration)

        assert exc_info.value.field == "fee_sze"
        assert "not configured" in str(exc_info.value)
        assert dict(bulk_session.get_job("job_4").scores) == {"fee_size": 2}

    def test_record_scores_for_unknown_job(
        self, bulk_session: BulkTestSession, configuration: ScoringConfiguration
    ) -> None:
        with pytest.raises(BulkTestJobNotFoundError):
            record_scores(bulk_session, "job_99", {"client_engagement": 5}, configuration)

    def test_record_expected_rank_by_name(
        self, bulk_session: BulkTestSession, configuration: ScoringConfiguration
    ) -> None:
        updated = record_expected_rank(bulk_session, "job_2", "b", configuration)

        assert updated.get_job("job_2").expected_rank == "rank_b"

    def test_record_unknown_rank(
        self, bulk_session: BulkTestSession, configuration: ScoringConfiguration
    ) -> None:
        with pytest.raises(RankNotDefinedError):
            record_expected_rank(bulk_session, "job_2", "Z", configuration)

    def test_clear_expected_rank(
        self, bulk_session: BulkTestSession, configuration: ScoringConfiguration
    ) -> None:
        updated = record_expected_rank(bulk_session, "job_1", None, configuration)

        assert updated.get_job("job_1").expected_rank is None


class TestManualJobs:
    def test_manual_job_without_session_starts_one(
        self, configuration: ScoringConfiguration
    ) -> None:
        session, job = add_manual_job(
            None, " Data Engineer ", "Acme", configuration=configuration, now=NOW
        )

        assert session.source_name == MANUAL_SOURCE_NAME
        assert job.job_id == "job_1"
        assert job.title == "Data Engineer"
        assert session.jobs == (job,)

    def test_manual_job_appends_to_existing_session(
        self, bulk_session: BulkTestSession, configuration: ScoringConfiguration
    ) -> None:
        session, job = add_manual_job(
            bulk_session, "Analyst", "Globex", configuration=configuration, now=NOW
        )

        assert job.job_id == "job_5"
        assert session.source_name == "jobs.csv"
        assert len(session.jobs) == 5


def test_completion_stats(
    bulk_session: BulkTestSession, configuration: ScoringConfiguration
) -> None:
    stats = completion_stats(bulk_session, configuration.criteria)

    assert (stats.total, stats.complete, stats.incomplete) == (4, 2, 2)
    assert stats.completion_percentage == 50
    assert stats.source_name == "jobs.csv"


def test_completion_percentage_rounds_half_up(configuration: ScoringConfiguration) -> None:
    jobs = [bulk_job(f"job_{i}", None, None) for i in range(1, 8)]
    jobs.append(bulk_job("job_8", uniform_scores(3), "rank_b"))
    session = BulkTestSession.start(jobs, configuration=configuration, source_name="x", now=NOW)

    assert completion_stats(session, configuration.criteria).completion_percentage == 13


class TestDrift:
    def test_no_drift(
        self, bulk_session: BulkTestSession, configuration: ScoringConfiguration
    ) -> None:
        assert check_configuration_drift(bulk_session, configuration) == ()

    def test_added_criterion_is_reported(
        self, bulk_session: BulkTestSession, configuration: ScoringConfiguration
    ) -> None:
        changed, _ = add_criterion(configuration, "Pipeline")

        warnings = check_configuration_drift(bulk_session, changed)

        assert len(warnings) == 2

    def test_swapped_criterion_is_reported(self, configuration: ScoringConfiguration) -> None:
        with_one, first = add_criterion(configuration, "Pipeline")
        session = BulkTestSession.start((), configuration=with_one, source_name="x", now=NOW)
        swapped, _ = add_criterion(remove_criterion(with_one, first.criterion_id), "Location")

        warnings = check_configuration_drift(session, swapped)

        assert warnings == ("Criteria have been added or removed since the session was created",)

    def test_removed_expected_rank_is_reported(
        self, bulk_session: BulkTestSession, configuration: ScoringConfiguration
    ) -> None:
        without_b = remove_rank(configuration, "rank_b")

        warnings = check_configuration_drift(bulk_session, without_b)

        assert warnings == ("Expected rank is no longer configured for 1 job(s): job_3",)

    def test_removed_expected_rank_makes_job_incomplete(
        self, bulk_session: BulkTestSession, configuration: ScoringConfiguration
    ) -> None:
        without_b = remove_rank(configuration, "rank_b")

        stats = completion_stats(bulk_session, without_b.criteria, ranks=without_b.ranks)
        following = next_incomplete_job(
            bulk_session, without_b.criteria, current_job_id="job_2", ranks=without_b.ranks
        )

        assert stats.complete == 1
        assert following is not None
        assert following.job_id == "job_3"


class TestPersistence:
    def test_save_then_load(
        self, bulk_session: BulkTestSession, in_memory_fs: InMemoryFileSystem
    ) -> None:
        save_bulk_session(bulk_session, path=SESSION_PATH, fs=in_memory_fs)

        assert load_bulk_session(path=SESSION_PATH, fs=in_memory_fs) == bulk_session

    def test_missing_file_means_no_session(self, in_memory_fs: InMemoryFileSystem) -> None:
        assert load_bulk_session(path=SESSION_PATH, fs=in_memory_fs) is None

    def test_invalid_file(self, in_memory_fs: InMemoryFileSystem) -> None:
        in_memory_fs.write_text('{"session_id": "s"}', SESSION_PATH)

        with pytest.raises(BulkSessionValidationError) as exc_info:
            load_bulk_session(path=SESSION_PATH, fs=in_memory_fs)

        assert "created_at" in str(exc_info.value)
