"""Composition root for wiring CLI dependencies."""

from __future__ import annotations

from .cli import CliDependencies, create_app
from .config import AppConfig
from .infrastructure import LocalFileSystem


def build_cli_dependencies(*, config: AppConfig) -> CliDependencies:
    """Build concrete dependencies for CLI commands.

    Args:
        config: Application settings (every command reads and writes local files).
    """
    _ = config
    return CliDependencies(fs=LocalFileSystem())


app = create_app(build_cli_dependencies)
