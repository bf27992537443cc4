"""Command line entry-point: ``hiveai run <team>`` and friends."""
from __future__ import annotations

import asyncio
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, NoReturn, Optional

import typer
from dotenv import load_dotenv

from hiveai.config import Config
from hiveai.core.errors import ConfigError, ConfigLoadError, DependencyError, SettingsError, TeamNotFoundError
from hiveai.core.logging_config import setup_logging
from hiveai.core.models import PipelineMetrics, StepStatus
from hiveai.parsers.error_formatter import format_config_error, format_dependency_error, format_load_error
from hiveai.runtime import build_orchestrator, team_path
from hiveai.scaffold import create_agent, create_team, current_team_name

app = typer.Typer(name="hiveai", help="Run teams of LLM agents declared in descriptor files.", no_args_is_help=True)
team_app = typer.Typer(help="Manage teams.", no_args_is_help=True)
agent_app = typer.Typer(help="Manage agents of the current team.", no_args_is_help=True)
app.add_typer(team_app, name="team")
app.add_typer(agent_app, name="agent")

_STATUS_COLORS = {
    StepStatus.SUCCESS: typer.colors.GREEN,
    StepStatus.FAILED: typer.colors.RED,
    StepStatus.SKIPPED: typer.colors.YELLOW,
}


@app.callback()
def main(
    ctx: typer.Context,
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (default from HIVEAI_LOG_LEVEL)."),
    offline: bool = typer.Option(False, "--offline", help="Use the mock backend for every provider."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON lines."),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also write logs to this file (default from HIVEAI_LOG_FILE)."),
) -> None:
    load_dotenv()
    try:
        config = Config.from_env().with_overrides(
            log_level=log_level, log_file=log_file, offline=True if offline else None
        )
    except SettingsError as exc:
        _fail(str(exc))
    setup_logging(config.log_level, log_file=config.log_file, json_format=json_logs)
    ctx.obj = config


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@contextmanager
def _fatal_errors() -> Iterator[None]:
    """Turn load and resolve errors into an explanation and exit code 1."""
    try:
        yield
    except TeamNotFoundError as exc:
        _fail(str(exc))
    except ConfigLoadError as exc:
        _fail(format_load_error(exc))
    except ConfigError as exc:
        _fail(format_config_error(exc))
    except DependencyError as exc:
        _fail(format_dependency_error(exc))


def _print_summary(metrics: PipelineMetrics) -> None:
    lines = metrics.summary().splitlines()
    typer.echo(lines[0])
    for step, line in zip(metrics.steps, lines[1:]):
        typer.secho(line, fg=_STATUS_COLORS[step.status])


@app.command()
def run(ctx: typer.Context, team: str = typer.Argument(..., help="Team directory name under the teams dir.")) -> None:
    """Run every agent of TEAM in dependency order."""
    config: Config = ctx.obj
    orchestrator = build_orchestrator(team_path(team, config), config)
    with _fatal_errors():
        metrics = asyncio.run(orchestrator.run_all())

    _print_summary(metrics)
    if not metrics.ok:
        raise typer.Exit(code=1)
    typer.secho("All agents completed successfully.", fg=typer.colors.GREEN)


@app.command()
def plan(ctx: typer.Context, team: str = typer.Argument(..., help="Team directory name under the teams dir.")) -> None:
    """Show the execution order of TEAM without running anything."""
    config: Config = ctx.obj
    orchestrator = build_orchestrator(team_path(team, config), config)
    with _fatal_errors():
        execution_plan = orchestrator.plan()

    for index, descriptor in enumerate(execution_plan, start=1):
        needs = f" (after {', '.join(descriptor.depends_on)})" if descriptor.depends_on else ""
        typer.echo(f"{index}. {descriptor.name} [{descriptor.llm.provider.value}]{needs}")


@team_app.command("add")
def team_add(ctx: typer.Context, name: str = typer.Argument(..., help="Name of the new team.")) -> None:
    """Create a team directory with an example agent."""
    config: Config = ctx.obj
    written = create_team(config.teams_dir, name)
    typer.secho(f"Team '{name}' created at {written.parent}", fg=typer.colors.GREEN)
    typer.echo(f"Example agent created: {written}")


@agent_app.command("add")
def agent_add(ctx: typer.Context, name: str = typer.Argument(..., help="Name of the new agent.")) -> None:
    """Create an agent descriptor in the team directory you are in."""
    config: Config = ctx.obj
    cwd = Path.cwd()
    team = current_team_name(cwd, Path(config.teams_dir).name)
    if team is None:
        _fail(f"Run this command from inside a team directory ({config.teams_dir}/<team>/)")
    written = create_agent(cwd, name)
    typer.secho(f"Agent '{name}' created in team '{team}'", fg=typer.colors.GREEN)
    typer.echo(f"File: {written}")


if __name__ == "__main__":
    app()
