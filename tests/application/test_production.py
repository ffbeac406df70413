"""Tests for the production scoring workflow."""

from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest

from job_scoring_model.application.production import recompute_ranking, submit_score
from job_scoring_model.domain.session import ScoringSession
from job_scoring_model.exceptions import DuplicateSubmissionError, InvalidFactorScoreError
from job_scoring_model.infrastructure import InMemorySubmissionStore
from tests.support.scoring_config import scores, uniform_scores

JAN_1 = date(2024, 1, 1)
JAN_2 = date(2024, 1, 2)


@pytest.fixture
def store() -> InMemorySubmissionStore:
    return InMemorySubmissionStore()


def test_first_submission_creates_current_ranking(
    session: ScoringSession, store: InMemorySubmissionStore
) -> None:
    outcome = submit_score(
        job_id="J1",
        rater_id="R1",
        rater_role="account_manager",
        scores=scores(5, 3, 4, 4),
        submitted_on=JAN_1,
        session=session,
        store=store,
    )

    assert outcome.ranking.final_score == 4.0
    assert outcome.ranking.rank.name == "A"
    assert outcome.ranking.scoring_date == JAN_1
    assert outcome.submission.sequence == 1
    assert store.current_ranking("J1") == outcome.ranking


def test_duplicate_submission_changes_nothing(
    session: ScoringSession, store: InMemorySubmissionStore
) -> None:
    first = submit_score(
        job_id="J1",
        rater_id="R1",
        rater_role="account_manager",
        scores=scores(5, 3, 4, 4),
        submitted_on=JAN_1,
        session=session,
        store=store,
    )

    with pytest.raises(DuplicateSubmissionError):
        submit_score(
            job_id="J1",
            rater_id="R1",
            rater_role="account_manager",
            scores=uniform_scores(1),
            submitted_on=JAN_1,
            session=session,
            store=store,
        )

    assert store.fetch_submissions("J1") == [first.submission]
    assert store.ranking_history("J1") == [first.ranking]


def test_invalid_scores_are_rejected_before_storage(
    session: ScoringSession, store: InMemorySubmissionStore
) -> None:
    with pytest.raises(InvalidFactorScoreError):
        submit_score(
            job_id="J1",
            rater_id="R1",
            rater_role="ceo",
            scores={"client_engagement": 5},
            submitted_on=JAN_1,
            session=session,
            store=store,
        )

    assert store.fetch_submissions("J1") == []
    assert store.current_ranking("J1") is None


def test_new_ranking_supersedes_previous(
    session: ScoringSession, store: InMemorySubmissionStore
) -> None:
    submit_score(
        job_id="J1",
        rater_id="R1",
        rater_role="account_manager",
        scores=scores(5, 3, 4, 4),
        submitted_on=JAN_1,
        session=session,
        store=store,
    )
    second = submit_score(
        job_id="J1",
        rater_id="R2",
        rater_role="sales_person",
        scores=uniform_scores(2),
        submitted_on=JAN_2,
        session=session,
        store=store,
    )

    history = store.ranking_history("J1")
    assert [r.is_current for r in history] == [False, True]
    assert second.ranking.final_score == 3.0
    assert second.ranking.rank.name == "B"
    assert dict(second.ranking.role_composites) == {
        "account_manager": 4.0,
        "sales_person": 2.0,
        "ceo": None,
    }


def test_same_rater_on_a_later_date_replaces_earlier_scores(
    session: ScoringSession, store: InMemorySubmissionStore
) -> None:
    for day, value in ((JAN_1, 5), (JAN_2, 1)):
        outcome = submit_score(
            job_id="J1",
            rater_id="R1",
            rater_role="ceo",
            scores=uniform_scores(value),
            submitted_on=day,
            session=session,
            store=store,
        )

    assert outcome.ranking.final_score == 1.0
    assert len(store.fetch_submissions("J1")) == 2


def test_concurrent_submissions_leave_one_current_ranking(
    session: ScoringSession, store: InMemorySubmissionStore
) -> None:
    def submit(rater_number: int) -> None:
        submit_score(
            job_id="J1",
            rater_id=f"R{rater_number}",
            rater_role="account_manager",
            scores=uniform_scores(rater_number % 5 + 1),
            submitted_on=JAN_1,
            session=session,
            store=store,
        )

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(submit, range(20)))

    history = store.ranking_history("J1")
    assert len(store.fetch_submissions("J1")) == 20
    assert sum(1 for r in history if r.is_current) == 1
    assert history[-1].is_current
    assert len(history[-1].composites) == 20


class TestRecompute:
    def test_unchanged_outcome_keeps_current_ranking(
        self, session: ScoringSession, store: InMemorySubmissionStore
    ) -> None:
        outcome = submit_score(
            job_id="J1",
            rater_id="R1",
            rater_role="ceo",
            scores=scores(5, 3, 4, 4),
            submitted_on=JAN_1,
            session=session,
            store=store,
        )

        ranking = recompute_ranking(job_id="J1", session=session, store=store, scoring_date=JAN_2)

        assert ranking == outcome.ranking
        assert len(store.ranking_history("J1")) == 1

    def test_new_weights_supersede_current_ranking(
        self, session: ScoringSession, store: InMemorySubmissionStore
    ) -> None:
        submit_score(
            job_id="J1",
            rater_id="R1",
            rater_role="ceo",
            scores=scores(5, 3, 4, 4),
            submitted_on=JAN_1,
            session=session,
            store=store,
        )
        reweighted = session.with_weights(
            {"client_engagement": 0.7, "search_difficulty": 0.1, "time_open": 0.1, "fee_size": 0.1}
        )

        ranking = recompute_ranking(
            job_id="J1", session=reweighted, store=store, scoring_date=JAN_2
        )

        assert ranking is not None
        assert ranking.final_score == 4.6
        assert ranking.scoring_date == JAN_2
        assert [r.is_current for r in store.ranking_history("J1")] == [False, True]

    def test_job_without_submissions(
        self, session: ScoringSession, store: InMemorySubmissionStore
    ) -> None:
        assert (
            recompute_ranking(job_id="J9", session=session, store=store, scoring_date=JAN_1)
            is None
        )
