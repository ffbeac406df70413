"""Validation reporting: compare model ranks with human-expected ranks.

A batch of test jobs is scored with a candidate weight set. Complete jobs
(every criterion scored and an expected rank recorded) are ranked and compared
with the expected rank; incomplete jobs are set aside and never counted.

Usage example:
    from job_scoring_model.domain.scoring_config import default_configuration
    from job_scoring_model.domain.validation_report import (
        BulkTestJob,
        ReportFilter,
        SortKey,
        generate_validation_report,
    )
    from job_scoring_model.domain.weights import default_weights

    config = default_configuration()
    job = BulkTestJob.create(
        job_id="job_1",
        title="Data Engineer",
        organisation="Acme",
        scores={"client_engagement": 5, "search_difficulty": 4, "time_open": 4, "fee_size": 5},
        expected_rank="rank_a",
    )
    report = generate_validation_report(
        [job], configuration=config, weights=default_weights(config.criteria)
    )
    assert report.summary.match_percentage == 100.0
    rows = report.sorted_view(ReportFilter.MISMATCHES, SortKey.SCORE, descending=True)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from enum import StrEnum
from types import MappingProxyType

from ..exceptions import InvalidFactorScoreError
from .composite import CriterionContribution, composite_score, score_breakdown
from .ranking import assign_rank
from .scoring_config import Criterion, Rank, ScoringConfiguration
from .weights import WeightSet, require_factor_scores, require_weights, validate_factor_scores


class ReportFilter(StrEnum):
    """Which analysed jobs a report view includes."""

    ALL = "all"
    MATCHES = "matches"
    MISMATCHES = "mismatches"


class SortKey(StrEnum):
    """Columns a report view can be sorted by."""

    TITLE = "title"
    ORGANISATION = "organisation"
    SCORE = "score"
    MATCH = "match"


@dataclass(frozen=True)
class BulkTestJob:
    """A test job with (possibly partial) scores and an optional expected rank."""

    job_id: str
    title: str
    organisation: str
    scores: MappingProxyType[str, int]
    expected_rank: str | None = None
    notes: str = ""

    @classmethod
    def create(
        cls,
        *,
        job_id: str,
        title: str,
        organisation: str,
        scores: Mapping[str, int] | None = None,
        expected_rank: str | None = None,
        notes: str = "",
    ) -> BulkTestJob:
        return cls(
            job_id=job_id,
            title=title,
            organisation=organisation,
            scores=MappingProxyType(dict(scores or {})),
            expected_rank=expected_rank or None,
            notes=notes,
        )

    def is_complete(
        self,
        criteria: Iterable[Criterion],
        ranks: Iterable[Rank] | None = None,
    ) -> bool:
        """Every criterion carries a valid score and an expected rank is set.

        When ``ranks`` is given, the expected rank must be one of them.
        """
        if self.expected_rank is None:
            return False
        if ranks is not None and self.expected_rank not in {r.rank_id for r in ranks}:
            return False
        for criterion in criteria:
            value = self.scores.get(criterion.criterion_id)
            if value is None or not validate_factor_scores({criterion.criterion_id: value}):
                return False
        return True

    def with_scores(
        self,
        scores: Mapping[str, int],
        criteria: Iterable[Criterion] | None = None,
    ) -> BulkTestJob:
        """Record (merge) scores; each value must be an integer in 1-5.

        When ``criteria`` is given, every key must name one of them. A partial
        set is accepted.
        """
        if criteria is not None:
            known = {criterion.criterion_id for criterion in criteria}
            for key, value in scores.items():
                if key not in known:
                    raise InvalidFactorScoreError(key, value, "criterion is not configured")
        require_factor_scores(scores)
        merged = {**self.scores, **scores}
        return replace(self, scores=MappingProxyType(merged))

    def with_expected_rank(self, rank_id: str | None) -> BulkTestJob:
        return replace(self, expected_rank=rank_id or None)


@dataclass(frozen=True)
class AnalysedJob:
    """A complete test job after scoring with the candidate weights."""

    job: BulkTestJob
    model_score: float
    model_rank: Rank
    matched: bool
    breakdown: tuple[CriterionContribution, ...]

    @property
    def title(self) -> str:
        return self.job.title

    @property
    def organisation(self) -> str:
        return self.job.organisation


@dataclass(frozen=True)
class ValidationSummary:
    """Match statistics over the complete jobs in a batch."""

    total: int
    complete: int
    incomplete: int
    matched: int
    mismatched: int
    match_percentage: float


@dataclass(frozen=True)
class ValidationReport:
    """Outcome of a validation run; views never alter the stored tuples."""

    summary: ValidationSummary
    matches: tuple[AnalysedJob, ...]
    mismatches: tuple[AnalysedJob, ...]
    incomplete: tuple[BulkTestJob, ...]

    @property
    def analysed(self) -> tuple[AnalysedJob, ...]:
        return (*self.matches, *self.mismatches)

    def view(self, report_filter: ReportFilter = ReportFilter.ALL) -> tuple[AnalysedJob, ...]:
        """Matches followed by mismatches, or just one of the two."""
        if report_filter is ReportFilter.MATCHES:
            return self.matches
        if report_filter is ReportFilter.MISMATCHES:
            return self.mismatches
        return self.analysed

    def sorted_view(
        self,
        report_filter: ReportFilter = ReportFilter.ALL,
        sort_key: SortKey | None = None,
        *,
        descending: bool = False,
    ) -> tuple[AnalysedJob, ...]:
        jobs = self.view(report_filter)
        if sort_key is None:
            return jobs
        return sort_jobs(jobs, sort_key, descending=descending)


_SORT_KEYS: Mapping[SortKey, Callable[[AnalysedJob], str | float | int]] = MappingProxyType(
    {
        SortKey.TITLE: lambda job: job.title.casefold(),
        SortKey.ORGANISATION: lambda job: job.organisation.casefold(),
        SortKey.SCORE: lambda job: job.model_score,
        SortKey.MATCH: lambda job: 1 if job.matched else 0,
    }
)


def sort_jobs(
    jobs: Sequence[AnalysedJob],
    sort_key: SortKey,
    *,
    descending: bool = False,
) -> tuple[AnalysedJob, ...]:
    """Stable sort; jobs with equal keys keep their relative order in both directions."""
    return tuple(sorted(jobs, key=_SORT_KEYS[sort_key], reverse=descending))


def analyse_job(
    job: BulkTestJob,
    *,
    configuration: ScoringConfiguration,
    weights: WeightSet,
) -> AnalysedJob:
    """Score one complete test job as a single-rater job."""
    criteria = configuration.ordered_criteria
    score = composite_score(job.scores, weights, criteria)
    rank = assign_rank(score, configuration.ranks)
    return AnalysedJob(
        job=job,
        model_score=score,
        model_rank=rank,
        matched=rank.rank_id == job.expected_rank,
        breakdown=score_breakdown(job.scores, weights, criteria),
    )


def summarise(total: int, incomplete: int, matched: int, mismatched: int) -> ValidationSummary:
    complete = matched + mismatched
    percentage = 100.0 * matched / complete if complete else 0.0
    return ValidationSummary(
        total=total,
        complete=complete,
        incomplete=incomplete,
        matched=matched,
        mismatched=mismatched,
        match_percentage=percentage,
    )


def generate_validation_report(
    jobs: Iterable[BulkTestJob],
    *,
    configuration: ScoringConfiguration,
    weights: WeightSet,
) -> ValidationReport:
    """Partition, score and compare a batch of test jobs.

    Raises:
        InvalidWeightSetError: If ``weights`` is not valid for the configuration.
    """
    criteria = configuration.ordered_criteria
    require_weights(weights, criteria)
    matches: list[AnalysedJob] = []
    mismatches: list[AnalysedJob] = []
    incomplete: list[BulkTestJob] = []
    total = 0
    for job in jobs:
        total += 1
        if not job.is_complete(criteria, configuration.ranks):
            incomplete.append(job)
            continue
        # Scores are restricted to configured criteria; stale extras are ignored.
        scoped = replace(
            job,
            scores=MappingProxyType({c.criterion_id: job.scores[c.criterion_id] for c in criteria}),
        )
        analysed = analyse_job(scoped, configuration=configuration, weights=weights)
        analysed = replace(analysed, job=job)
        (matches if analysed.matched else mismatches).append(analysed)
    return ValidationReport(
        summary=summarise(total, len(incomplete), len(matches), len(mismatches)),
        matches=tuple(matches),
        mismatches=tuple(mismatches),
        incomplete=tuple(incomplete),
    )
