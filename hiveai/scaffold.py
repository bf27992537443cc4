"""Filesystem bootstrapping for teams and agent descriptor templates."""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

AGENT_TEMPLATE = """\
name: {name}
goals:
  - Describe what this agent must achieve
tasks:
  - Step 1
  - Step 2
llm: mistral
tools:
  - web-scraper
"""

EXAMPLE_AGENT = """\
name: example-agent
goals:
  - Example goal
tasks:
  - Example task
llm: mistral
tools:
  - web-scraper
"""


def safe_write_file(path: Union[str, Path], content: str) -> Path:
    """Write ``content`` without clobbering: ``agent.yml`` becomes ``agent-1.yml`` and so on."""
    path = Path(path)
    candidate = path
    counter = 1
    while candidate.exists():
        candidate = path.with_name(f"{path.stem}-{counter}{path.suffix}")
        counter += 1
    candidate.parent.mkdir(parents=True, exist_ok=True)
    candidate.write_text(content, encoding="utf-8")
    return candidate


def current_team_name(cwd: Union[str, Path], teams_dir: str = "teams") -> Optional[str]:
    """Return ``<team>`` when ``cwd`` is ``.../teams/<team>``."""
    parts = Path(cwd).parts
    if teams_dir not in parts:
        return None
    index = len(parts) - 1 - parts[::-1].index(teams_dir)
    return parts[index + 1] if index + 1 < len(parts) else None


def create_team(teams_root: Union[str, Path], name: str) -> Path:
    """Create ``teams_root/name`` with its output directory and an example agent."""
    team_dir = Path(teams_root) / name
    (team_dir / "output").mkdir(parents=True, exist_ok=True)
    return safe_write_file(team_dir / "example-agent.yml", EXAMPLE_AGENT)


def create_agent(team_dir: Union[str, Path], name: str) -> Path:
    return safe_write_file(Path(team_dir) / f"{name}.yml", AGENT_TEMPLATE.format(name=name))
