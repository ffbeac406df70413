"""Tests for AppConfig behaviour."""

import pytest

import job_scoring_model.config as config_module
from job_scoring_model.config import (
    DEFAULT_BATCH_WARNING_ROWS,
    DEFAULT_CONFIG_PATH,
    AppConfig,
    PositiveIntegerEnvVarError,
)
from job_scoring_model.config_file import AppConfigFile


def _patch_env(monkeypatch: pytest.MonkeyPatch, env: dict[str, str]) -> None:
    def fake_getenv(key: str, default: str = "") -> str:
        return env.get(key, default)

    def fake_load_dotenv(dotenv_path: str | None = None) -> bool:
        _ = dotenv_path
        return True

    monkeypatch.setattr(config_module.os, "getenv", fake_getenv)
    monkeypatch.setattr(config_module, "load_dotenv", fake_load_dotenv)


def test_from_env_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_env(monkeypatch, {})

    config = AppConfig.from_env()

    assert config == AppConfig()
    assert config.config_path == DEFAULT_CONFIG_PATH
    assert config.batch_warning_rows == DEFAULT_BATCH_WARNING_ROWS
    assert config.privileged_roles == ("account_manager", "sales_person", "ceo")


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_env(
        monkeypatch,
        {
            "SCORING_CONFIG_PATH": " custom/config.json ",
            "SCORING_WEIGHTS_PATH": "custom/weights.json",
            "BULK_SESSION_PATH": "custom/session.json",
            "REPORTS_DIR": "out",
            "BATCH_WARNING_ROWS": "250",
            "PRIVILEGED_ROLES": "ceo, cto,,",
        },
    )

    config = AppConfig.from_env()

    assert config.config_path == "custom/config.json"
    assert config.weights_path == "custom/weights.json"
    assert config.bulk_session_path == "custom/session.json"
    assert config.reports_dir == "out"
    assert config.batch_warning_rows == 250
    assert config.privileged_roles == ("ceo", "cto")


@pytest.mark.parametrize("value", ["0", "-3", "many"])
def test_from_env_rejects_invalid_batch_warning_rows(
    monkeypatch: pytest.MonkeyPatch, value: str
) -> None:
    _patch_env(monkeypatch, {"BATCH_WARNING_ROWS": value})

    with pytest.raises(PositiveIntegerEnvVarError, match="BATCH_WARNING_ROWS"):
        AppConfig.from_env()


def test_with_overrides_preserves_fields() -> None:
    base = AppConfig(
        config_path="a.json",
        weights_path="w.json",
        bulk_session_path="s.json",
        reports_dir="reports",
        batch_warning_rows=10,
        privileged_roles=("ceo",),
    )

    updated = base.with_overrides(reports_dir=" elsewhere ", batch_warning_rows=5)

    assert updated.reports_dir == "elsewhere"
    assert updated.batch_warning_rows == 5
    assert updated.config_path == "a.json"
    assert updated.weights_path == "w.json"
    assert updated.bulk_session_path == "s.json"
    assert updated.privileged_roles == ("ceo",)


def test_file_values_override_env_values() -> None:
    base = AppConfig(config_path="env.json", reports_dir="env-reports")

    updated = base.with_file_overrides(
        AppConfigFile(config_path="file.json", privileged_roles=("ceo",))
    )

    assert updated.config_path == "file.json"
    assert updated.privileged_roles == ("ceo",)
    assert updated.reports_dir == "env-reports"


def test_cli_overrides_win_over_file_values() -> None:
    updated = (
        AppConfig()
        .with_file_overrides(AppConfigFile(weights_path="file.json"))
        .with_overrides(weights_path="cli.json")
    )

    assert updated.weights_path == "cli.json"
