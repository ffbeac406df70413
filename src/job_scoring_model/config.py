"""Centralised, injectable settings for the job scoring model."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Self

from dotenv import load_dotenv

from .config_file import AppConfigFile
from .domain.aggregation import DEFAULT_PRIVILEGED_ROLES

DEFAULT_CONFIG_PATH = "data/config/scoring_config.json"
DEFAULT_WEIGHTS_PATH = "data/config/weights.json"
DEFAULT_BULK_SESSION_PATH = "data/bulk/session.json"
DEFAULT_REPORTS_DIR = "data/reports"
DEFAULT_BATCH_WARNING_ROWS = 100


class PositiveIntegerEnvVarError(ValueError):
    """Raised when an environment variable must be a positive integer."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a positive integer.")


@dataclass(frozen=True)
class AppConfig:
    """Immutable settings for every command.

    Load from environment with `AppConfig.from_env()` or construct directly for testing.
    """

    config_path: str = DEFAULT_CONFIG_PATH
    weights_path: str = DEFAULT_WEIGHTS_PATH
    bulk_session_path: str = DEFAULT_BULK_SESSION_PATH
    reports_dir: str = DEFAULT_REPORTS_DIR
    batch_warning_rows: int = DEFAULT_BATCH_WARNING_ROWS
    privileged_roles: tuple[str, ...] = field(default=DEFAULT_PRIVILEGED_ROLES)

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> Self:
        """Load settings from environment variables.

        Args:
            dotenv_path: Optional path to .env file. If None, uses default .env discovery.

        Returns:
            AppConfig instance populated from environment.
        """
        load_dotenv(dotenv_path)

        return cls(
            config_path=_text_or_default(os.getenv("SCORING_CONFIG_PATH", ""), DEFAULT_CONFIG_PATH),
            weights_path=_text_or_default(
                os.getenv("SCORING_WEIGHTS_PATH", ""), DEFAULT_WEIGHTS_PATH
            ),
            bulk_session_path=_text_or_default(
                os.getenv("BULK_SESSION_PATH", ""), DEFAULT_BULK_SESSION_PATH
            ),
            reports_dir=_text_or_default(os.getenv("REPORTS_DIR", ""), DEFAULT_REPORTS_DIR),
            batch_warning_rows=_parse_optional_positive_int(
                os.getenv("BATCH_WARNING_ROWS", ""),
                env_name="BATCH_WARNING_ROWS",
            )
            or DEFAULT_BATCH_WARNING_ROWS,
            privileged_roles=_parse_list(os.getenv("PRIVILEGED_ROLES", ""))
            or DEFAULT_PRIVILEGED_ROLES,
        )

    def with_overrides(
        self,
        *,
        config_path: str | None = None,
        weights_path: str | None = None,
        reports_dir: str | None = None,
        batch_warning_rows: int | None = None,
    ) -> Self:
        """Return a new config with specified overrides (for CLI options)."""
        return replace(
            self,
            config_path=self.config_path if config_path is None else config_path.strip(),
            weights_path=self.weights_path if weights_path is None else weights_path.strip(),
            reports_dir=self.reports_dir if reports_dir is None else reports_dir.strip(),
            batch_warning_rows=self.batch_warning_rows
            if batch_warning_rows is None
            else batch_warning_rows,
        )

    def with_file_overrides(self, file_config: AppConfigFile) -> Self:
        """Return a new config with config-file values overriding env/default values."""
        return replace(
            self,
            config_path=self.config_path
            if file_config.config_path is None
            else file_config.config_path,
            weights_path=self.weights_path
            if file_config.weights_path is None
            else file_config.weights_path,
            bulk_session_path=self.bulk_session_path
            if file_config.bulk_session_path is None
            else file_config.bulk_session_path,
            reports_dir=self.reports_dir
            if file_config.reports_dir is None
            else file_config.reports_dir,
            batch_warning_rows=self.batch_warning_rows
            if file_config.batch_warning_rows is None
            else file_config.batch_warning_rows,
            privileged_roles=self.privileged_roles
            if file_config.privileged_roles is None
            else file_config.privileged_roles,
        )


def _text_or_default(value: str, default: str) -> str:
    return value.strip() or default


def _parse_list(s: str) -> tuple[str, ...]:
    """Parse comma-separated string into tuple of stripped values."""
    items = [item.strip() for item in s.split(",") if item.strip()]
    return tuple(items)


def _parse_optional_positive_int(value: str, *, env_name: str) -> int | None:
    """Parse an optional positive integer from an environment variable."""
    text = value.strip()
    if not text:
        return None
    try:
        parsed = int(text)
    except ValueError as exc:
        raise PositiveIntegerEnvVarError(env_name) from exc
    if parsed < 1:
        raise PositiveIntegerEnvVarError(env_name)
    return parsed
