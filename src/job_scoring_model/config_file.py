"""Typed parsing and validation for application config files.

A config file is TOML with a schema version and a ``[scoring]`` table:

    schema_version = 1

    [scoring]
    config_path = "data/config/scoring_config.json"
    batch_warning_rows = 250
    privileged_roles = ["account_manager", "ceo"]
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .exceptions import ConfigFileNotFoundError, ConfigFileParseError, ConfigFileValidationError
from .infrastructure.io.validation import format_validation_error
from .protocols import FileSystem

_SCHEMA_VERSION = 1


@dataclass(frozen=True)
class AppConfigFile:
    """Validated settings loaded from a TOML file; None means "not set"."""

    config_path: str | None = None
    weights_path: str | None = None
    bulk_session_path: str | None = None
    reports_dir: str | None = None
    batch_warning_rows: int | None = None
    privileged_roles: tuple[str, ...] | None = None


class _ScoringSectionModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    config_path: str | None = None
    weights_path: str | None = None
    bulk_session_path: str | None = None
    reports_dir: str | None = None
    batch_warning_rows: int | None = None
    privileged_roles: tuple[str, ...] | None = None

    @field_validator("config_path", "weights_path", "bulk_session_path", "reports_dir")
    @classmethod
    def _validate_non_empty_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip()
        if not text:
            raise ValueError
        return text

    @field_validator("batch_warning_rows")
    @classmethod
    def _validate_positive_int(cls, value: int | None) -> int | None:
        if value is None:
            return None
        if value < 1:
            raise ValueError
        return value

    @field_validator("privileged_roles")
    @classmethod
    def _validate_roles(cls, value: tuple[str, ...] | None) -> tuple[str, ...] | None:
        if value is None:
            return None
        cleaned = tuple(item.strip() for item in value if item.strip())
        if not cleaned:
            raise ValueError
        return cleaned


class _ConfigFileModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: int
    scoring: _ScoringSectionModel

    @field_validator("schema_version")
    @classmethod
    def _validate_schema_version(cls, value: int) -> int:
        if value != _SCHEMA_VERSION:
            raise ValueError
        return value


def load_app_config_file(*, path: Path, fs: FileSystem) -> AppConfigFile:
    """Load and validate an application TOML config file."""
    if not fs.exists(path):
        raise ConfigFileNotFoundError(str(path))

    raw_payload = fs.read_text(path)
    try:
        payload: object = tomllib.loads(raw_payload)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigFileParseError(str(path), str(exc)) from exc

    try:
        model = _ConfigFileModel.model_validate(payload)
    except ValidationError as exc:
        raise ConfigFileValidationError(str(path), format_validation_error(exc)) from exc

    section = model.scoring
    return AppConfigFile(
        config_path=section.config_path,
        weights_path=section.weights_path,
        bulk_session_path=section.bulk_session_path,
        reports_dir=section.reports_dir,
        batch_warning_rows=section.batch_warning_rows,
        privileged_roles=section.privileged_roles,
    )
