"""Tests for the ``hiveai`` command line."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterator, Optional

import pytest
from typer.testing import CliRunner

from hiveai.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    yield
    logger = logging.getLogger("hiveai")
    for handler in logger.handlers:
        handler.close()
    logger.handlers = []


@pytest.fixture
def teams(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    root = tmp_path / "teams"
    root.mkdir()
    return root


def _env(teams: Path, **extra: Optional[str]) -> Dict[str, Optional[str]]:
    env: Dict[str, Optional[str]] = {
        "HIVEAI_TEAMS_DIR": str(teams),
        "HIVEAI_STATE_FILE": str(teams.parent / "cache.json"),
        "HIVEAI_OFFLINE": None,
        "OPENAI_API_KEY": None,
        "MISTRAL_API_KEY": None,
        "ANTHROPIC_API_KEY": None,
        "HIVEAI_LOG_FILE": None,
        "HIVEAI_LOG_LEVEL": None,
        "HIVEAI_MAX_RETRIES": None,
    }
    env.update(extra)
    return env


def _write(team: Path, name: str, body: str) -> None:
    team.mkdir(parents=True, exist_ok=True)
    (team / f"{name}.yml").write_text(body)


def test_team_add_then_offline_run(teams: Path) -> None:
    created = runner.invoke(app, ["team", "add", "demo"], env=_env(teams))
    assert created.exit_code == 0, created.output
    assert "Team 'demo' created" in created.output
    assert (teams / "demo" / "example-agent.yml").exists()

    result = runner.invoke(app, ["--offline", "run", "demo"], env=_env(teams))

    assert result.exit_code == 0, result.output
    assert "1 total, 1 succeeded, 0 failed, 0 skipped" in result.output
    assert "All agents completed successfully." in result.output
    assert (teams / "demo" / "output" / "example-agent.json").exists()
    assert (teams.parent / "cache.json").exists()


def test_plan_prints_execution_order(teams: Path) -> None:
    _write(teams / "news", "writer", "name: writer\ndepends_on: scout\ngoals: [g]\ntasks: [t]\nllm: claude\n")
    _write(teams / "news", "scout", "name: scout\ngoals: [g]\ntasks: [t]\nllm: openai\n")

    result = runner.invoke(app, ["plan", "news"], env=_env(teams))

    assert result.exit_code == 0, result.output
    assert "1. scout [openai]" in result.output
    assert "2. writer [claude] (after scout)" in result.output


def test_circular_dependency_exits_with_explanation(teams: Path) -> None:
    _write(teams / "loop", "a", "name: a\ndepends_on: b\ngoals: [g]\ntasks: [t]\nllm: openai\n")
    _write(teams / "loop", "b", "name: b\ndepends_on: a\ngoals: [g]\ntasks: [t]\nllm: openai\n")

    result = runner.invoke(app, ["--offline", "run", "loop"], env=_env(teams))

    assert result.exit_code == 1
    assert "Circular dependency detected" in result.output
    assert not (teams / "loop" / "output").exists()


def test_invalid_descriptor_lists_every_issue(teams: Path) -> None:
    _write(teams / "bad", "broken", "name: broken\ngoals: []\nllm: openai\n")

    result = runner.invoke(app, ["--offline", "run", "bad"], env=_env(teams))

    assert result.exit_code == 1
    assert "Error loading agent from broken.yml:" in result.output
    assert "goals" in result.output and "tasks" in result.output


def test_unknown_team_exits_nonzero(teams: Path) -> None:
    result = runner.invoke(app, ["--offline", "run", "ghost"], env=_env(teams))
    assert result.exit_code == 1


def test_failed_step_without_credentials_exits_nonzero(teams: Path) -> None:
    _write(teams / "solo", "scout", "name: scout\ngoals: [g]\ntasks: [t]\nllm: openai\n")

    result = runner.invoke(app, ["run", "solo"], env=_env(teams))

    assert result.exit_code == 1
    assert "1 total, 0 succeeded, 1 failed, 0 skipped" in result.output


def test_agent_add_inside_and_outside_a_team(teams: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    team = teams / "crew"
    team.mkdir()

    outside = runner.invoke(app, ["agent", "add", "scout"], env=_env(teams))
    assert outside.exit_code == 1

    monkeypatch.chdir(team)
    first = runner.invoke(app, ["agent", "add", "scout"], env=_env(teams))
    second = runner.invoke(app, ["agent", "add", "scout"], env=_env(teams))

    assert first.exit_code == 0, first.output
    assert "Agent 'scout' created in team 'crew'" in first.output
    assert second.exit_code == 0
    assert (team / "scout.yml").exists()
    assert (team / "scout-1.yml").exists()
    assert "name: scout" in (team / "scout.yml").read_text()


def test_log_file_receives_json_records_tagged_with_the_agent(teams: Path) -> None:
    _write(teams / "solo", "scout", "name: scout\ngoals: [g]\ntasks: [t]\nllm: openai\n")
    log_file = teams.parent / "run.log"

    result = runner.invoke(app, ["--offline", "--json-logs", "--log-file", str(log_file), "run", "solo"], env=_env(teams))

    assert result.exit_code == 0, result.output
    records = [json.loads(line) for line in log_file.read_text().splitlines()]
    assert any(record.get("agent") == "scout" and record["level"] == "INFO" for record in records)


def test_invalid_retry_setting_is_reported_without_traceback(teams: Path) -> None:
    result = runner.invoke(app, ["--offline", "plan", "any"], env=_env(teams, HIVEAI_MAX_RETRIES="lots"))

    assert result.exit_code == 1
    assert "HIVEAI_MAX_RETRIES must be a non-negative integer" in result.output
    assert result.exception is None or isinstance(result.exception, SystemExit)
