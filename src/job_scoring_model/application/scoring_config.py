"""Persistence and strict validation for the scoring configuration.

The configuration is stored as JSON:

    {
      "schema_version": 1,
      "revision": 4,
      "criteria": [
        {"id": "client_engagement", "name": "Client Engagement", "description": "...",
         "default_weight": 0.25, "scale_descriptions": {"1": "...", "5": "..."},
         "removable": false, "order": 1}
      ],
      "ranks": [
        {"id": "rank_a", "name": "A", "min_score": 4.0, "max_score": 5.0,
         "color": "#28a745", "order": 1}
      ]
    }

``ConfigurationStore`` is the configuration collaborator used by commands: it
bootstraps the default configuration when no file exists yet, and persists
every successful mutation.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..domain import scoring_config as domain
from ..domain.scoring_config import Criterion, Rank, ScoringConfiguration
from ..exceptions import (
    ConfigurationValidationError,
    ScoringConfigFileNotFoundError,
    ScoringConfigValidationError,
)
from ..infrastructure.io.validation import format_validation_error
from ..observability import get_logger
from ..protocols import FileSystem


class _CriterionModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    name: str
    description: str = ""
    default_weight: float
    scale_descriptions: dict[int, str]
    removable: bool
    order: int

    @field_validator("id", "name")
    @classmethod
    def _validate_non_empty(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError
        return text


class _RankModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    name: str
    min_score: float
    max_score: float
    color: str = domain.DEFAULT_RANK_COLOR
    order: int

    @field_validator("id", "name")
    @classmethod
    def _validate_non_empty(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError
        return text


class _ScoringConfigurationModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: int
    revision: int = 1
    criteria: tuple[_CriterionModel, ...]
    ranks: tuple[_RankModel, ...]

    @field_validator("schema_version")
    @classmethod
    def _validate_schema_version(cls, value: int) -> int:
        if value != domain.SCHEMA_VERSION:
            raise ValueError
        return value


def _to_domain(model: _ScoringConfigurationModel) -> ScoringConfiguration:
    return ScoringConfiguration(
        schema_version=model.schema_version,
        revision=model.revision,
        criteria=tuple(
            Criterion(
                criterion_id=item.id,
                name=item.name,
                description=item.description.strip(),
                default_weight=item.default_weight,
                scale_descriptions=MappingProxyType(dict(item.scale_descriptions)),
                removable=item.removable,
                order=item.order,
            )
            for item in model.criteria
        ),
        ranks=tuple(
            Rank(
                rank_id=item.id,
                name=item.name,
                min_score=item.min_score,
                max_score=item.max_score,
                color=item.color,
                order=item.order,
            )
            for item in model.ranks
        ),
    )


def configuration_to_payload(config: ScoringConfiguration) -> dict[str, object]:
    """Serialise a configuration into its JSON document shape."""
    return {
        "schema_version": config.schema_version,
        "revision": config.revision,
        "criteria": [
            {
                "id": c.criterion_id,
                "name": c.name,
                "description": c.description,
                "default_weight": c.default_weight,
                "scale_descriptions": {
                    str(score): text for score, text in sorted(c.scale_descriptions.items())
                },
                "removable": c.removable,
                "order": c.order,
            }
            for c in config.ordered_criteria
        ],
        "ranks": [
            {
                "id": r.rank_id,
                "name": r.name,
                "min_score": r.min_score,
                "max_score": r.max_score,
                "color": r.color,
                "order": r.order,
            }
            for r in config.ordered_ranks
        ],
    }


def load_scoring_configuration(*, path: Path, fs: FileSystem) -> ScoringConfiguration:
    """Load and validate a scoring configuration from JSON."""
    if not fs.exists(path):
        raise ScoringConfigFileNotFoundError(str(path))

    payload = fs.read_text(path)
    try:
        model = _ScoringConfigurationModel.model_validate_json(payload)
    except ValidationError as exc:
        raise ScoringConfigValidationError(str(path), format_validation_error(exc)) from exc

    config = _to_domain(model)
    try:
        domain.validate_configuration(config)
    except ConfigurationValidationError as exc:
        raise ScoringConfigValidationError(str(path), f"{exc.field}: {exc.constraint}") from exc
    return config


def save_scoring_configuration(config: ScoringConfiguration, *, path: Path, fs: FileSystem) -> None:
    domain.validate_configuration(config)
    fs.write_json(configuration_to_payload(config), path)


class ConfigurationStore:
    """File-backed configuration collaborator.

    Every mutation is validated by the domain layer before anything is written;
    a rejected edit leaves both the cached and the stored configuration as
    they were.
    """

    def __init__(self, *, path: Path, fs: FileSystem) -> None:
        self._path = path
        self._fs = fs
        self._configuration: ScoringConfiguration | None = None
        self._logger = get_logger("job_scoring_model.scoring_config")

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> ScoringConfiguration:
        """Return the stored configuration, writing the defaults on first use."""
        if self._configuration is None:
            if self._fs.exists(self._path):
                self._configuration = load_scoring_configuration(path=self._path, fs=self._fs)
            else:
                self._logger.info("No scoring configuration at %s; writing defaults", self._path)
                defaults = domain.default_configuration()
                save_scoring_configuration(defaults, path=self._path, fs=self._fs)
                self._configuration = defaults
        return self._configuration

    def get_criteria(self) -> tuple[Criterion, ...]:
        return self.load().ordered_criteria

    def get_ranks(self) -> tuple[Rank, ...]:
        return self.load().ordered_ranks

    def _apply(
        self, mutate: Callable[[ScoringConfiguration], ScoringConfiguration]
    ) -> ScoringConfiguration:
        updated = mutate(self.load())
        save_scoring_configuration(updated, path=self._path, fs=self._fs)
        self._configuration = updated
        self._logger.info("Saved scoring configuration revision %s", updated.revision)
        return updated

    def add_criterion(
        self,
        name: str,
        description: str = "",
        *,
        default_weight: float = 0.0,
        scale_descriptions: Mapping[int, str] | None = None,
    ) -> Criterion:
        updated, criterion = domain.add_criterion(
            self.load(),
            name,
            description,
            default_weight=default_weight,
            scale_descriptions=scale_descriptions,
        )
        self._apply(lambda _: updated)
        return criterion

    def update_criterion(
        self,
        criterion_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        default_weight: float | None = None,
        order: int | None = None,
    ) -> ScoringConfiguration:
        return self._apply(
            lambda config: domain.update_criterion(
                config,
                criterion_id,
                name=name,
                description=description,
                default_weight=default_weight,
                order=order,
            )
        )

    def remove_criterion(self, criterion_id: str) -> ScoringConfiguration:
        return self._apply(lambda config: domain.remove_criterion(config, criterion_id))

    def update_scale_description(
        self, criterion_id: str, score: int, text: str
    ) -> ScoringConfiguration:
        return self._apply(
            lambda config: domain.update_scale_description(config, criterion_id, score, text)
        )

    def add_rank(
        self,
        name: str,
        min_score: float,
        max_score: float,
        color: str = domain.DEFAULT_RANK_COLOR,
    ) -> Rank:
        updated, rank = domain.add_rank(self.load(), name, min_score, max_score, color)
        self._apply(lambda _: updated)
        return rank

    def update_rank(
        self,
        rank_id: str,
        *,
        name: str | None = None,
        color: str | None = None,
        min_score: float | None = None,
        max_score: float | None = None,
    ) -> ScoringConfiguration:
        return self._apply(
            lambda config: domain.update_rank(
                config,
                rank_id,
                name=name,
                color=color,
                min_score=min_score,
                max_score=max_score,
            )
        )

    def remove_rank(self, rank_id: str) -> ScoringConfiguration:
        return self._apply(lambda config: domain.remove_rank(config, rank_id))

    def replace_ranks(self, ranks: Iterable[Rank]) -> ScoringConfiguration:
        return self._apply(lambda config: domain.replace_ranks(config, ranks))

    def reset(self) -> ScoringConfiguration:
        return self._apply(domain.reset_configuration)

    def export_to(self, path: Path) -> Path:
        """Write the current configuration to another JSON file."""
        save_scoring_configuration(self.load(), path=path, fs=self._fs)
        self._logger.info("Exported scoring configuration to %s", path)
        return path

    def import_from(self, path: Path) -> ScoringConfiguration:
        """Replace the current configuration with a validated JSON file.

        The imported configuration becomes the next revision of the current one.
        """
        imported = load_scoring_configuration(path=path, fs=self._fs)
        current = self.load()
        return self._apply(lambda _: _as_next_revision(imported, current.revision))


def _as_next_revision(config: ScoringConfiguration, current_revision: int) -> ScoringConfiguration:
    return ScoringConfiguration(
        schema_version=config.schema_version,
        revision=max(config.revision, current_revision + 1),
        criteria=config.criteria,
        ranks=config.ranks,
    )
