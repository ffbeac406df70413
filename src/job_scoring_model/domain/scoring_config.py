"""Domain model for the administrator-editable scoring configuration.

A configuration holds the ordered criteria raters score (1-5 each) and the
ordered rank tiers a final score maps onto. It is an explicit versioned
schema: every mutation returns a new configuration with ``revision`` bumped
and is rejected unless the result passes ``validate_configuration``.

Usage example:
    from job_scoring_model.domain.scoring_config import (
        add_criterion,
        default_configuration,
    )

    config = default_configuration()
    config, criterion = add_criterion(config, "Candidate Pipeline")
    assert criterion.criterion_id == "custom_candidate_pipeline"
    assert config.revision == 2
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from types import MappingProxyType

from ..exceptions import (
    ConfigurationValidationError,
    CriterionNotFoundError,
    CriterionNotRemovableError,
    RankNotDefinedError,
)

SCHEMA_VERSION = 1
SCORE_MIN = 1
SCORE_MAX = 5
SCORE_VALUES = tuple(range(SCORE_MIN, SCORE_MAX + 1))
SCORE_DOMAIN_MIN = 1.0
SCORE_DOMAIN_MAX = 5.0
# Final scores carry 2 decimals, so adjacent ranks may be 0.01 apart.
RANK_STEP = 0.01
MIN_RANK_COUNT = 2
DEFAULT_RANK_COLOR = "#667eea"

_EPSILON = 1e-9
_GENERIC_SCALE = MappingProxyType(
    {
        5: "Excellent",
        4: "Good",
        3: "Average",
        2: "Below Average",
        1: "Poor",
    }
)


@dataclass(frozen=True)
class Criterion:
    """One scored factor, rated 1-5 by each rater."""

    criterion_id: str
    name: str
    description: str
    default_weight: float
    scale_descriptions: MappingProxyType[int, str]
    removable: bool
    order: int


@dataclass(frozen=True)
class Rank:
    """A named tier covering the inclusive score range [min_score, max_score]."""

    rank_id: str
    name: str
    min_score: float
    max_score: float
    color: str
    order: int

    def contains(self, score: float) -> bool:
        return self.min_score - _EPSILON <= score <= self.max_score + _EPSILON


@dataclass(frozen=True)
class ScoringConfiguration:
    """Versioned set of criteria and rank tiers."""

    schema_version: int
    revision: int
    criteria: tuple[Criterion, ...]
    ranks: tuple[Rank, ...]

    @property
    def ordered_criteria(self) -> tuple[Criterion, ...]:
        return tuple(sorted(self.criteria, key=lambda c: (c.order, c.criterion_id)))

    @property
    def ordered_ranks(self) -> tuple[Rank, ...]:
        return tuple(sorted(self.ranks, key=lambda r: (r.order, r.rank_id)))

    @property
    def criterion_ids(self) -> tuple[str, ...]:
        return tuple(c.criterion_id for c in self.ordered_criteria)

    def get_criterion(self, criterion_id: str) -> Criterion:
        for criterion in self.criteria:
            if criterion.criterion_id == criterion_id:
                return criterion
        raise CriterionNotFoundError(criterion_id)

    def get_rank(self, rank_id: str) -> Rank:
        for rank in self.ranks:
            if rank.rank_id == rank_id:
                return rank
        raise RankNotDefinedError(rank_id)

    def find_rank(self, value: str) -> Rank | None:
        """Resolve a rank by identity, falling back to a case-insensitive name match."""
        text = value.strip()
        for rank in self.ranks:
            if rank.rank_id == text:
                return rank
        lowered = text.casefold()
        for rank in self.ranks:
            if rank.name.casefold() == lowered:
                return rank
        return None


def default_configuration() -> ScoringConfiguration:
    """Return the bootstrap configuration: four criteria, three ranks (A/B/C)."""
    criteria = (
        Criterion(
            criterion_id="client_engagement",
            name="Client Engagement",
            description="Quality of client relationship and decision-making",
            default_weight=0.25,
            scale_descriptions=MappingProxyType(
                {
                    5: "Highly Engaged: Responds within 24h, quick interviews",
                    4: "Good: Responds within 48h, generally timely",
                    3: "Moderate: Responds within a week, some delays",
                    2: "Low: Slow responses (>1 week), minimal feedback",
                    1: "Poor: Very unresponsive, ghosts candidates",
                }
            ),
            removable=False,
            order=1,
        ),
        Criterion(
            criterion_id="search_difficulty",
            name="Search Difficulty",
            description="How hard it is to find qualified candidates",
            default_weight=0.25,
            scale_descriptions=MappingProxyType(
                {
                    5: "Very Easy: Large talent pool, common skills",
                    4: "Easy: Good talent pool, standard requirements",
                    3: "Moderate: Limited pool, some specialised skills",
                    2: "Difficult: Scarce talent, niche skills",
                    1: "Very Difficult: Extremely rare skill combination",
                }
            ),
            removable=False,
            order=2,
        ),
        Criterion(
            criterion_id="time_open",
            name="Time Open",
            description="How long the job has been open (urgency)",
            default_weight=0.25,
            scale_descriptions=MappingProxyType(
                {
                    5: "Brand New: 0-14 days open",
                    4: "Fresh: 15-30 days open",
                    3: "Moderate: 31-60 days open",
                    2: "Stale: 61-90 days open",
                    1: "Very Stale: 90+ days open",
                }
            ),
            removable=False,
            order=3,
        ),
        Criterion(
            criterion_id="fee_size",
            name="Fee Size",
            description="Revenue potential of the placement",
            default_weight=0.25,
            scale_descriptions=MappingProxyType(
                {
                    5: "Excellent: £40k+ fee",
                    4: "Good: £30k-40k fee",
                    3: "Moderate: £20k-30k fee",
                    2: "Low: £10k-20k fee",
                    1: "Very Low: <£10k fee",
                }
            ),
            removable=False,
            order=4,
        ),
    )
    ranks = (
        Rank(rank_id="rank_a", name="A", min_score=4.0, max_score=5.0, color="#28a745", order=1),
        Rank(rank_id="rank_b", name="B", min_score=2.5, max_score=3.99, color="#ffc107", order=2),
        Rank(rank_id="rank_c", name="C", min_score=1.0, max_score=2.49, color="#dc3545", order=3),
    )
    return ScoringConfiguration(
        schema_version=SCHEMA_VERSION,
        revision=1,
        criteria=criteria,
        ranks=ranks,
    )


# =============================================================================
# Validation
# =============================================================================


def _require_unique(values: Iterable[str], field: str) -> None:
    seen: set[str] = set()
    for value in values:
        if value in seen:
            raise ConfigurationValidationError(field, f"duplicate identity {value!r}")
        seen.add(value)


def _require_text(value: str, field: str) -> None:
    if not value.strip():
        raise ConfigurationValidationError(field, "must not be empty")


def _validate_criterion(criterion: Criterion) -> None:
    field = f"criteria.{criterion.criterion_id or '<blank>'}"
    _require_text(criterion.criterion_id, "criteria.criterion_id")
    _require_text(criterion.name, f"{field}.name")
    weight = criterion.default_weight
    if not math.isfinite(weight) or weight < 0.0 or weight > 1.0:
        raise ConfigurationValidationError(
            f"{field}.default_weight", f"must be a fraction in [0, 1], got {weight}"
        )
    if set(criterion.scale_descriptions) != set(SCORE_VALUES):
        raise ConfigurationValidationError(
            f"{field}.scale_descriptions", "must describe exactly the scores 1-5"
        )


def _validate_rank(rank: Rank) -> None:
    field = f"ranks.{rank.rank_id or '<blank>'}"
    _require_text(rank.rank_id, "ranks.rank_id")
    _require_text(rank.name, f"{field}.name")
    for bound_name, bound in (("min_score", rank.min_score), ("max_score", rank.max_score)):
        if not math.isfinite(bound) or not (
            SCORE_DOMAIN_MIN - _EPSILON <= bound <= SCORE_DOMAIN_MAX + _EPSILON
        ):
            raise ConfigurationValidationError(
                f"{field}.{bound_name}",
                f"must lie in [{SCORE_DOMAIN_MIN}, {SCORE_DOMAIN_MAX}], got {bound}",
            )
    if rank.min_score > rank.max_score + _EPSILON:
        raise ConfigurationValidationError(field, "min_score must not exceed max_score")


def _validate_rank_coverage(ranks: tuple[Rank, ...]) -> None:
    ascending = sorted(ranks, key=lambda r: r.min_score)
    lowest = ascending[0]
    highest = ascending[-1]
    if abs(lowest.min_score - SCORE_DOMAIN_MIN) > _EPSILON:
        raise ConfigurationValidationError(
            "ranks", f"lowest rank {lowest.name!r} must start at {SCORE_DOMAIN_MIN}"
        )
    if abs(highest.max_score - SCORE_DOMAIN_MAX) > _EPSILON:
        raise ConfigurationValidationError(
            "ranks", f"highest rank {highest.name!r} must end at {SCORE_DOMAIN_MAX}"
        )
    for lower, upper in zip(ascending, ascending[1:], strict=False):
        step = upper.min_score - lower.max_score
        if step < _EPSILON:
            raise ConfigurationValidationError(
                "ranks", f"ranks {lower.name!r} and {upper.name!r} overlap"
            )
        if step > RANK_STEP + _EPSILON:
            raise ConfigurationValidationError(
                "ranks",
                f"gap between {lower.name!r} (max {lower.max_score}) and "
                f"{upper.name!r} (min {upper.min_score})",
            )


def validate_configuration(config: ScoringConfiguration) -> None:
    """Validate every configuration invariant, raising on the first violation."""
    if config.schema_version != SCHEMA_VERSION:
        raise ConfigurationValidationError(
            "schema_version", f"expected {SCHEMA_VERSION}, got {config.schema_version}"
        )
    if config.revision < 1:
        raise ConfigurationValidationError("revision", "must be a positive integer")
    if not config.criteria:
        raise ConfigurationValidationError("criteria", "at least one criterion is required")
    for criterion in config.criteria:
        _validate_criterion(criterion)
    _require_unique((c.criterion_id for c in config.criteria), "criteria")

    if len(config.ranks) < MIN_RANK_COUNT:
        raise ConfigurationValidationError(
            "ranks", f"at least {MIN_RANK_COUNT} ranks are required"
        )
    for rank in config.ranks:
        _validate_rank(rank)
    _require_unique((r.rank_id for r in config.ranks), "ranks")
    _require_unique((r.name.strip().casefold() for r in config.ranks), "ranks.name")
    _validate_rank_coverage(config.ranks)


# =============================================================================
# Mutations
# =============================================================================


def _slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", name.strip().lower()).strip("_")


def _unique_id(prefix: str, name: str, existing: Iterable[str]) -> str:
    base = f"{prefix}{_slug(name) or 'item'}"
    taken = set(existing)
    candidate = base
    suffix = 2
    while candidate in taken:
        candidate = f"{base}_{suffix}"
        suffix += 1
    return candidate


def _commit(config: ScoringConfiguration, **changes: object) -> ScoringConfiguration:
    updated = replace(config, revision=config.revision + 1, **changes)
    validate_configuration(updated)
    return updated


def _renumber_ranks(ranks: Iterable[Rank]) -> tuple[Rank, ...]:
    descending = sorted(ranks, key=lambda r: r.min_score, reverse=True)
    return tuple(replace(rank, order=index) for index, rank in enumerate(descending, start=1))


def add_criterion(
    config: ScoringConfiguration,
    name: str,
    description: str = "",
    *,
    criterion_id: str | None = None,
    default_weight: float = 0.0,
    scale_descriptions: Mapping[int, str] | None = None,
) -> tuple[ScoringConfiguration, Criterion]:
    """Append a removable criterion and return the new configuration with it."""
    new_id = criterion_id or _unique_id("custom_", name, (c.criterion_id for c in config.criteria))
    criterion = Criterion(
        criterion_id=new_id,
        name=name.strip(),
        description=description.strip(),
        default_weight=default_weight,
        scale_descriptions=MappingProxyType(dict(scale_descriptions or _GENERIC_SCALE)),
        removable=True,
        order=max((c.order for c in config.criteria), default=0) + 1,
    )
    updated = _commit(config, criteria=(*config.criteria, criterion))
    return updated, criterion


def update_criterion(
    config: ScoringConfiguration,
    criterion_id: str,
    *,
    name: str | None = None,
    description: str | None = None,
    default_weight: float | None = None,
    order: int | None = None,
) -> ScoringConfiguration:
    """Update display fields of one criterion."""
    current = config.get_criterion(criterion_id)
    updated = replace(
        current,
        name=current.name if name is None else name.strip(),
        description=current.description if description is None else description.strip(),
        default_weight=current.default_weight if default_weight is None else default_weight,
        order=current.order if order is None else order,
    )
    criteria = tuple(updated if c.criterion_id == criterion_id else c for c in config.criteria)
    return _commit(config, criteria=criteria)


def remove_criterion(config: ScoringConfiguration, criterion_id: str) -> ScoringConfiguration:
    """Delete a removable criterion. Weight sets must be reconciled afterwards."""
    current = config.get_criterion(criterion_id)
    if not current.removable:
        raise CriterionNotRemovableError(criterion_id)
    criteria = tuple(c for c in config.criteria if c.criterion_id != criterion_id)
    return _commit(config, criteria=criteria)


def update_scale_description(
    config: ScoringConfiguration,
    criterion_id: str,
    score: int,
    text: str,
) -> ScoringConfiguration:
    """Replace the descriptive text for one score value of one criterion."""
    if score not in SCORE_VALUES:
        raise ConfigurationValidationError(
            f"criteria.{criterion_id}.scale_descriptions", f"score {score} is not in 1-5"
        )
    current = config.get_criterion(criterion_id)
    descriptions = dict(current.scale_descriptions)
    descriptions[score] = text.strip()
    updated = replace(current, scale_descriptions=MappingProxyType(descriptions))
    criteria = tuple(updated if c.criterion_id == criterion_id else c for c in config.criteria)
    return _commit(config, criteria=criteria)


def add_rank(
    config: ScoringConfiguration,
    name: str,
    min_score: float,
    max_score: float,
    color: str = DEFAULT_RANK_COLOR,
    *,
    rank_id: str | None = None,
) -> tuple[ScoringConfiguration, Rank]:
    """Insert a rank, trimming the neighbouring ranks it overlaps.

    A rank that would be swallowed whole, or split in two, is rejected; use
    ``replace_ranks`` for that kind of re-tiering.
    """
    new_rank = Rank(
        rank_id=rank_id or _unique_id("rank_", name, (r.rank_id for r in config.ranks)),
        name=name.strip(),
        min_score=float(min_score),
        max_score=float(max_score),
        color=color,
        order=0,
    )
    _validate_rank(new_rank)
    adjusted: list[Rank] = []
    for rank in config.ranks:
        below = rank.min_score < new_rank.min_score - _EPSILON
        above = rank.max_score > new_rank.max_score + _EPSILON
        overlaps = (
            rank.max_score >= new_rank.min_score - _EPSILON
            and rank.min_score <= new_rank.max_score + _EPSILON
        )
        if not overlaps:
            adjusted.append(rank)
        elif below and above:
            raise ConfigurationValidationError(
                "ranks", f"new rank {new_rank.name!r} would split rank {rank.name!r}"
            )
        elif below:
            adjusted.append(replace(rank, max_score=round(new_rank.min_score - RANK_STEP, 2)))
        elif above:
            adjusted.append(replace(rank, min_score=round(new_rank.max_score + RANK_STEP, 2)))
        else:
            raise ConfigurationValidationError(
                "ranks", f"new rank {new_rank.name!r} would cover rank {rank.name!r} entirely"
            )
    ranks = _renumber_ranks((*adjusted, new_rank))
    updated = _commit(config, ranks=ranks)
    return updated, updated.get_rank(new_rank.rank_id)


def update_rank(
    config: ScoringConfiguration,
    rank_id: str,
    *,
    name: str | None = None,
    color: str | None = None,
    min_score: float | None = None,
    max_score: float | None = None,
) -> ScoringConfiguration:
    """Update one rank; bound changes must keep coverage contiguous."""
    current = config.get_rank(rank_id)
    updated = replace(
        current,
        name=current.name if name is None else name.strip(),
        color=current.color if color is None else color,
        min_score=current.min_score if min_score is None else float(min_score),
        max_score=current.max_score if max_score is None else float(max_score),
    )
    ranks = tuple(updated if r.rank_id == rank_id else r for r in config.ranks)
    return _commit(config, ranks=ranks)


def remove_rank(config: ScoringConfiguration, rank_id: str) -> ScoringConfiguration:
    """Delete a rank; its range is absorbed by the next lower rank (or the next higher)."""
    removed = config.get_rank(rank_id)
    if len(config.ranks) <= MIN_RANK_COUNT:
        raise ConfigurationValidationError(
            "ranks", f"at least {MIN_RANK_COUNT} ranks are required"
        )
    ascending = sorted(config.ranks, key=lambda r: r.min_score)
    index = next(i for i, r in enumerate(ascending) if r.rank_id == rank_id)
    remaining = [r for r in ascending if r.rank_id != rank_id]
    if index > 0:
        neighbour = ascending[index - 1]
        absorbed = replace(neighbour, max_score=removed.max_score)
    else:
        neighbour = ascending[index + 1]
        absorbed = replace(neighbour, min_score=removed.min_score)
    ranks = _renumber_ranks(absorbed if r.rank_id == neighbour.rank_id else r for r in remaining)
    return _commit(config, ranks=ranks)


def replace_ranks(config: ScoringConfiguration, ranks: Iterable[Rank]) -> ScoringConfiguration:
    """Swap in a complete rank scheme in a single validated edit."""
    return _commit(config, ranks=tuple(ranks))


def reset_configuration(config: ScoringConfiguration) -> ScoringConfiguration:
    """Return the default configuration as the next revision of ``config``."""
    defaults = default_configuration()
    return replace(defaults, revision=config.revision + 1)
