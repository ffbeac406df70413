"""CLI for the job scoring model.

Commands:
- show-config: Show criteria, current weights and rank tiers
- score: Score one job from factor scores
- set-weights / reset-weights: Tune or reset the stored weights
- add-criterion / remove-criterion / add-rank / remove-rank / reset-config: Edit the configuration
- export-config / import-config: Copy the configuration to or from a JSON file
- import-batch: Start a bulk-test session from a CSV of test jobs
- bulk-add / bulk-score / bulk-status / bulk-export: Work through the bulk-test session
- validate: Compare model ranks with expected ranks and write the report CSV
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, Protocol

import typer
from rich import print as rprint
from rich.table import Table

from . import __version__
from .application.batch_import import import_batch
from .application.bulk_session import (
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
from .application.scoring_config import ConfigurationStore
from .application.validation_export import export_bulk_test_data
from .application.validation_run import run_validation
from .application.weights import load_weights, save_weights
from .config import AppConfig
from .config_file import load_app_config_file
from .domain.session import ScoringSession
from .domain.validation_report import ReportFilter, SortKey
from .domain.weights import WeightSet, default_weights
from .exceptions import InvalidWeightSetError, ScoringModelError
from .observability import set_log_level
from .observability.logging import UnknownLogLevelError
from .protocols import FileSystem


class DependenciesBuilder(Protocol):
    """Protocol for constructing CLI dependencies."""

    def __call__(self, *, config: AppConfig) -> CliDependencies:
        """Build dependencies for CLI commands."""
        ...


@dataclass(frozen=True)
class CliDependencies:
    """Concrete dependencies required by the CLI."""

    fs: FileSystem


@dataclass(frozen=True)
class CliContext:
    """Runtime CLI context for a single command invocation."""

    config: AppConfig
    deps_builder: DependenciesBuilder

    def build_dependencies(self) -> CliDependencies:
        """Return dependencies using the configured builder."""
        return self.deps_builder(config=self.config)


class CliContextNotInitialisedError(typer.BadParameter):
    """Raised when CLI context is missing."""

    def __init__(self) -> None:
        super().__init__("CLI context is not initialised. Use the job-scoring entry point.")


class AssignmentFormatError(typer.BadParameter):
    """Raised when a KEY=VALUE option is malformed."""

    def __init__(self, option: str, value: str) -> None:
        super().__init__(f"{option} expects KEY=VALUE, got {value!r}.")


def _get_context(ctx: typer.Context) -> CliContext:
    if not isinstance(ctx.obj, CliContext):
        raise CliContextNotInitialisedError()
    return ctx.obj


@contextmanager
def _reporting_errors() -> Iterator[None]:
    try:
        yield
    except ScoringModelError as exc:
        rprint(f"[red]✗ {exc}[/red]")
        raise typer.Exit(code=1) from exc


def _parse_assignments(values: list[str] | None, *, option: str) -> dict[str, str]:
    parsed: dict[str, str] = {}
    for value in values or []:
        key, sep, raw = value.partition("=")
        if not sep or not key.strip() or not raw.strip():
            raise AssignmentFormatError(option, value)
        parsed[key.strip()] = raw.strip()
    return parsed


def _parse_scores(values: list[str] | None) -> dict[str, int]:
    scores: dict[str, int] = {}
    for key, raw in _parse_assignments(values, option="--score").items():
        try:
            scores[key] = int(raw)
        except ValueError as exc:
            raise typer.BadParameter(f"--score {key} must be an integer, got {raw!r}.") from exc
    return scores


def _parse_weights(values: list[str] | None) -> dict[str, float]:
    weights: dict[str, float] = {}
    for key, raw in _parse_assignments(values, option="--weight").items():
        try:
            weights[key] = float(raw)
        except ValueError as exc:
            raise typer.BadParameter(f"--weight {key} must be a number, got {raw!r}.") from exc
    return weights


def _configuration_store(state: CliContext, deps: CliDependencies) -> ConfigurationStore:
    return ConfigurationStore(path=Path(state.config.config_path), fs=deps.fs)


def _scoring_session(state: CliContext, deps: CliDependencies) -> ScoringSession:
    configuration = _configuration_store(state, deps).load()
    weights = load_weights(
        path=Path(state.config.weights_path), fs=deps.fs, configuration=configuration
    )
    return ScoringSession(configuration, weights, state.config.privileged_roles)


def _session_with_overrides(
    state: CliContext,
    deps: CliDependencies,
    overrides: dict[str, float],
    *,
    fraction: bool = False,
) -> ScoringSession:
    """Apply weight overrides to the stored weights, validating only the merged set."""
    configuration = _configuration_store(state, deps).load()
    stored = load_weights(
        path=Path(state.config.weights_path),
        fs=deps.fs,
        configuration=configuration,
        validate=False,
    )
    if fraction:
        candidate = WeightSet.from_mapping({**stored.weights, **overrides})
    else:
        candidate = WeightSet.from_percentages({**stored.to_percentages(), **overrides})
    return ScoringSession(configuration, candidate, state.config.privileged_roles)


def _require_bulk_session(state: CliContext, deps: CliDependencies) -> BulkTestSession:
    session = load_bulk_session(path=Path(state.config.bulk_session_path), fs=deps.fs)
    if session is None or not session.jobs:
        rprint("[red]✗ No bulk-test session. Run import-batch or bulk-add first.[/red]")
        raise typer.Exit(code=1)
    return session


def _warn_if_weights_stale(state: CliContext, deps: CliDependencies) -> None:
    configuration = _configuration_store(state, deps).load()
    try:
        load_weights(path=Path(state.config.weights_path), fs=deps.fs, configuration=configuration)
    except InvalidWeightSetError as exc:
        rprint(f"[yellow]⚠ Stored weights need attention: {exc} Run set-weights.[/yellow]")


def _version_callback(value: bool) -> None:
    if value:
        rprint(f"job-scoring {__version__}")
        raise typer.Exit()


def create_app(deps_builder: DependenciesBuilder) -> typer.Typer:
    """Create a Typer app wired with the provided dependencies builder."""
    app = typer.Typer(
        add_completion=False,
        help="Job order scoring model: weighted criteria → composite score → rank tier",
    )

    @app.callback()
    def main(
        ctx: typer.Context,
        config_file: Annotated[
            Path | None,
            typer.Option("--config", help="TOML config file overriding environment settings"),
        ] = None,
        log_level: Annotated[
            str | None,
            typer.Option("--log-level", help="Log level: debug, info, warning or error"),
        ] = None,
        version: Annotated[
            bool,
            typer.Option(
                "--version",
                callback=_version_callback,
                is_eager=True,
                help="Show the package version and exit",
            ),
        ] = False,
    ) -> None:
        """Initialise CLI context."""
        _ = version
        if log_level is not None:
            try:
                set_log_level(log_level)
            except UnknownLogLevelError as exc:
                raise typer.BadParameter(str(exc), param_hint="--log-level") from exc
        config = AppConfig.from_env()
        if config_file is not None:
            fs = deps_builder(config=config).fs
            with _reporting_errors():
                config = config.with_file_overrides(load_app_config_file(path=config_file, fs=fs))
        ctx.obj = CliContext(config=config, deps_builder=deps_builder)

    @app.command(name="show-config")
    def show_config(ctx: typer.Context) -> None:
        """Show criteria with their current weights, and the rank tiers."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        with _reporting_errors():
            session = _scoring_session(state, deps)
        configuration = session.configuration
        percentages = session.weights.to_percentages()

        criteria_table = Table(title=f"Criteria (revision {configuration.revision})")
        criteria_table.add_column("ID")
        criteria_table.add_column("Name")
        criteria_table.add_column("Weight", justify="right")
        criteria_table.add_column("Removable")
        for criterion in configuration.ordered_criteria:
            criteria_table.add_row(
                criterion.criterion_id,
                criterion.name,
                f"{percentages[criterion.criterion_id]:.1f}%",
                "yes" if criterion.removable else "no",
            )
        rprint(criteria_table)

        ranks_table = Table(title="Ranks")
        ranks_table.add_column("ID")
        ranks_table.add_column("Name")
        ranks_table.add_column("Min", justify="right")
        ranks_table.add_column("Max", justify="right")
        for rank in configuration.ordered_ranks:
            ranks_table.add_row(
                rank.rank_id, rank.name, f"{rank.min_score:.2f}", f"{rank.max_score:.2f}"
            )
        rprint(ranks_table)

    @app.command()
    def score(
        ctx: typer.Context,
        scores: Annotated[
            list[str] | None,
            typer.Option("--score", "-s", help="Factor score as CRITERION=1..5 (repeatable)"),
        ] = None,
    ) -> None:
        """Score one job with the stored weights and show the breakdown."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        parsed = _parse_scores(scores)
        with _reporting_errors():
            result = _scoring_session(state, deps).score(parsed)
        rprint(
            f"[green]✓ Final score:[/green] {result.score:.2f} / 5.0 → rank {result.rank.name}"
        )
        for row in result.breakdown:
            rprint(
                f"  {row.criterion_name}: {row.score} × {row.weight * 100:.1f}% "
                f"= {row.contribution:.2f}"
            )

    @app.command(name="set-weights")
    def set_weights(
        ctx: typer.Context,
        weights: Annotated[
            list[str] | None,
            typer.Option("--weight", "-w", help="Weight as CRITERION=VALUE (repeatable)"),
        ] = None,
        fraction: Annotated[
            bool,
            typer.Option(
                "--fraction/--percent",
                help="Read values as fractions summing to 1 instead of percentages summing to 100",
            ),
        ] = False,
    ) -> None:
        """Update weights; unspecified criteria keep their current weight."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        parsed = _parse_weights(weights)
        with _reporting_errors():
            updated = _session_with_overrides(state, deps, parsed, fraction=fraction)
            save_weights(
                updated.weights,
                path=Path(state.config.weights_path),
                fs=deps.fs,
                configuration=updated.configuration,
                scheme="fraction" if fraction else "percentage",
            )
        rprint(f"[green]✓ Weights saved:[/green] {state.config.weights_path}")

    @app.command(name="reset-weights")
    def reset_weights(ctx: typer.Context) -> None:
        """Reset weights to an equal split across the configured criteria."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        with _reporting_errors():
            configuration = _configuration_store(state, deps).load()
            save_weights(
                default_weights(configuration.criteria),
                path=Path(state.config.weights_path),
                fs=deps.fs,
                configuration=configuration,
            )
        rprint("[green]✓ Weights reset to an equal split[/green]")

    @app.command(name="add-criterion")
    def add_criterion(
        ctx: typer.Context,
        name: Annotated[str, typer.Argument(help="Display name of the new criterion")],
        description: Annotated[str, typer.Option("--description", "-d")] = "",
        default_weight: Annotated[
            float,
            typer.Option("--default-weight", help="Weight (fraction 0-1) used until tuned"),
        ] = 0.0,
    ) -> None:
        """Add a removable criterion."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        with _reporting_errors():
            criterion = _configuration_store(state, deps).add_criterion(
                name, description, default_weight=default_weight
            )
        rprint(f"[green]✓ Added criterion:[/green] {criterion.criterion_id}")
        _warn_if_weights_stale(state, deps)

    @app.command(name="remove-criterion")
    def remove_criterion(
        ctx: typer.Context,
        criterion_id: Annotated[str, typer.Argument(help="Criterion identity")],
    ) -> None:
        """Remove a custom criterion."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        with _reporting_errors():
            _configuration_store(state, deps).remove_criterion(criterion_id)
        rprint(f"[green]✓ Removed criterion:[/green] {criterion_id}")
        _warn_if_weights_stale(state, deps)

    @app.command(name="add-rank")
    def add_rank(
        ctx: typer.Context,
        name: Annotated[str, typer.Argument(help="Display name of the new rank")],
        min_score: Annotated[float, typer.Argument(help="Inclusive lower bound")],
        max_score: Annotated[float, typer.Argument(help="Inclusive upper bound")],
        color: Annotated[str, typer.Option("--color")] = "#667eea",
    ) -> None:
        """Add a rank tier, trimming the neighbouring tiers it overlaps."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        with _reporting_errors():
            rank = _configuration_store(state, deps).add_rank(name, min_score, max_score, color)
        rprint(
            f"[green]✓ Added rank:[/green] {rank.name} "
            f"[{rank.min_score:.2f}, {rank.max_score:.2f}]"
        )

    @app.command(name="remove-rank")
    def remove_rank(
        ctx: typer.Context,
        rank_id: Annotated[str, typer.Argument(help="Rank identity")],
    ) -> None:
        """Remove a rank tier; a neighbouring tier absorbs its range."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        with _reporting_errors():
            _configuration_store(state, deps).remove_rank(rank_id)
        rprint(f"[green]✓ Removed rank:[/green] {rank_id}")

    @app.command(name="reset-config")
    def reset_config(ctx: typer.Context) -> None:
        """Restore the default criteria and ranks."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        with _reporting_errors():
            configuration = _configuration_store(state, deps).reset()
        rprint(f"[green]✓ Configuration reset (revision {configuration.revision})[/green]")
        _warn_if_weights_stale(state, deps)

    @app.command(name="export-config")
    def export_config(
        ctx: typer.Context,
        output: Annotated[Path, typer.Argument(help="Destination JSON file")],
    ) -> None:
        """Export the scoring configuration to a JSON file."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        with _reporting_errors():
            path = _configuration_store(state, deps).export_to(output)
        rprint(f"[green]✓ Exported configuration:[/green] {path}")

    @app.command(name="import-config")
    def import_config(
        ctx: typer.Context,
        source: Annotated[Path, typer.Argument(help="JSON configuration file")],
    ) -> None:
        """Replace the scoring configuration with a validated JSON file."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        with _reporting_errors():
            configuration = _configuration_store(state, deps).import_from(source)
        rprint(f"[green]✓ Imported configuration (revision {configuration.revision})[/green]")
        _warn_if_weights_stale(state, deps)

    @app.command(name="import-batch")
    def import_batch_command(
        ctx: typer.Context,
        source: Annotated[Path, typer.Argument(help="CSV with job_title and company columns")],
    ) -> None:
        """Start a new bulk-test session from a CSV of test jobs."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        with _reporting_errors():
            configuration = _configuration_store(state, deps).load()
            result = import_batch(
                source,
                deps.fs,
                configuration,
                warning_rows=state.config.batch_warning_rows,
            )
            session = BulkTestSession.start(
                result.jobs,
                configuration=configuration,
                source_name=source.name,
                now=datetime.now(UTC),
            )
            save_bulk_session(session, path=Path(state.config.bulk_session_path), fs=deps.fs)
        for warning in result.warnings:
            rprint(f"[yellow]⚠ {warning}[/yellow]")
        rprint(f"[green]✓ Loaded {len(result.jobs)} jobs[/green] ({result.dropped_rows} dropped)")

    @app.command(name="bulk-add")
    def bulk_add(
        ctx: typer.Context,
        title: Annotated[str, typer.Argument(help="Job title")],
        organisation: Annotated[str, typer.Argument(help="Organisation name")],
    ) -> None:
        """Add one test job by hand to the bulk-test session."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        path = Path(state.config.bulk_session_path)
        with _reporting_errors():
            configuration = _configuration_store(state, deps).load()
            session, job = add_manual_job(
                load_bulk_session(path=path, fs=deps.fs),
                title,
                organisation,
                configuration=configuration,
                now=datetime.now(UTC),
            )
            save_bulk_session(session, path=path, fs=deps.fs)
        rprint(f"[green]✓ Added job:[/green] {job.job_id} {job.title} ({job.organisation})")

    @app.command(name="bulk-score")
    def bulk_score(
        ctx: typer.Context,
        job_id: Annotated[str, typer.Argument(help="Bulk-test job identity")],
        scores: Annotated[
            list[str] | None,
            typer.Option("--score", "-s", help="Factor score as CRITERION=1..5 (repeatable)"),
        ] = None,
        expected_rank: Annotated[
            str | None,
            typer.Option("--expected-rank", "-r", help="Expected rank identity or name"),
        ] = None,
    ) -> None:
        """Record scores and/or the expected rank for one test job."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        parsed = _parse_scores(scores)
        session = _require_bulk_session(state, deps)
        with _reporting_errors():
            configuration = _configuration_store(state, deps).load()
            if parsed:
                session = record_scores(session, job_id, parsed, configuration)
            if expected_rank is not None:
                session = record_expected_rank(session, job_id, expected_rank, configuration)
            save_bulk_session(session, path=Path(state.config.bulk_session_path), fs=deps.fs)
            following = next_incomplete_job(
                session,
                configuration.ordered_criteria,
                current_job_id=job_id,
                ranks=configuration.ranks,
            )
        rprint(f"[green]✓ Updated job:[/green] {job_id}")
        if following is not None:
            rprint(f"  Next incomplete: {following.job_id} {following.title}")

    @app.command(name="bulk-status")
    def bulk_status(ctx: typer.Context) -> None:
        """Show progress through the bulk-test session."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        session = _require_bulk_session(state, deps)
        with _reporting_errors():
            configuration = _configuration_store(state, deps).load()
        stats = completion_stats(
            session, configuration.ordered_criteria, ranks=configuration.ranks
        )
        rprint(
            f"[green]{stats.source_name}:[/green] {stats.complete}/{stats.total} complete "
            f"({stats.completion_percentage}%)"
        )
        for warning in check_configuration_drift(session, configuration):
            rprint(f"[yellow]⚠ {warning}[/yellow]")
        following = next_incomplete_job(
            session, configuration.ordered_criteria, ranks=configuration.ranks
        )
        if following is not None:
            rprint(f"  Next incomplete: {following.job_id} {following.title}")

    @app.command(name="bulk-export")
    def bulk_export(
        ctx: typer.Context,
        output: Annotated[
            Path | None,
            typer.Option("--output", "-o", help="Destination CSV (defaults to the reports dir)"),
        ] = None,
    ) -> None:
        """Export the raw bulk-test data as CSV."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        session = _require_bulk_session(state, deps)
        today = datetime.now(UTC).date()
        default_target = Path(state.config.reports_dir) / f"bulk-test-data-{today.isoformat()}.csv"
        target = output or default_target
        with _reporting_errors():
            configuration = _configuration_store(state, deps).load()
            path = export_bulk_test_data(session.jobs, configuration, target, deps.fs)
        rprint(f"[green]✓ Exported bulk-test data:[/green] {path}")

    @app.command()
    def validate(
        ctx: typer.Context,
        weights: Annotated[
            list[str] | None,
            typer.Option(
                "--weight",
                "-w",
                help="Candidate weight as CRITERION=PERCENT (repeatable, not saved)",
            ),
        ] = None,
        report_filter: Annotated[
            ReportFilter,
            typer.Option("--filter", help="Which analysed jobs to export"),
        ] = ReportFilter.ALL,
        sort_key: Annotated[
            SortKey | None,
            typer.Option("--sort", help="Sort exported rows by this column"),
        ] = None,
        descending: Annotated[bool, typer.Option("--descending")] = False,
    ) -> None:
        """Compare model ranks with expected ranks for the bulk-test session."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        candidate = _parse_weights(weights)
        bulk = _require_bulk_session(state, deps)
        with _reporting_errors():
            if candidate:
                session = _session_with_overrides(state, deps, candidate)
            else:
                session = _scoring_session(state, deps)
            for warning in check_configuration_drift(bulk, session.configuration):
                rprint(f"[yellow]⚠ {warning}[/yellow]")
            run = run_validation(
                jobs=bulk.jobs,
                session=session,
                reports_dir=Path(state.config.reports_dir),
                fs=deps.fs,
                today=datetime.now(UTC).date(),
                report_filter=report_filter,
                sort_key=sort_key,
                descending=descending,
            )
        summary = run.report.summary
        rprint(f"[green]✓ Match rate:[/green] {summary.match_percentage:.1f}%")
        rprint(
            f"  {summary.matched} matched, {summary.mismatched} mismatched, "
            f"{summary.incomplete} incomplete (of {summary.total})"
        )
        rprint(f"  Report: {run.output_path}")

    return app
