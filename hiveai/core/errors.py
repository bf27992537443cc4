"""Error taxonomy shared by the loader, resolver and executor."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence


class HiveError(Exception):
    """Base class for every error raised by hiveai."""


@dataclass(frozen=True)
class FieldIssue:
    """A single violated field inside a descriptor file."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


class ConfigError(HiveError):
    """A descriptor file could not be parsed or failed schema validation."""

    def __init__(self, source: Optional[str], issues: Sequence[FieldIssue]) -> None:
        self.source = source
        self.issues: List[FieldIssue] = list(issues)
        where = f"{source}: " if source else ""
        detail = "; ".join(str(issue) for issue in self.issues) or "invalid configuration"
        super().__init__(f"{where}{detail}")


class ParseError(ConfigError):
    """The descriptor text does not follow the supported indentation subset."""

    def __init__(self, message: str, line: int, source: Optional[str] = None) -> None:
        self.line = line
        super().__init__(source, [FieldIssue(path=f"line {line}", message=message)])


class ConfigLoadError(HiveError):
    """One or more descriptor files of a team failed to load."""

    def __init__(self, errors: Sequence[ConfigError]) -> None:
        self.errors: List[ConfigError] = list(errors)
        super().__init__(f"{len(self.errors)} agent file(s) failed to load")


class DependencyError(HiveError):
    """The dependency graph cannot be turned into an execution plan."""


class MissingDependencyError(DependencyError):
    def __init__(self, agent: str, dependency: str) -> None:
        self.agent = agent
        self.dependency = dependency
        super().__init__(f"Agent '{agent}' depends on unknown agent '{dependency}'")


class CircularDependencyError(DependencyError):
    def __init__(self, agent: str, cycle: Sequence[str]) -> None:
        self.agent = agent
        self.cycle: List[str] = list(cycle)
        super().__init__(
            f"Circular dependency detected at '{agent}': {' -> '.join(self.cycle)}"
        )


class StepExecutionError(HiveError):
    """A step failed for a reason other than the generation capability itself."""

    def __init__(self, agent: str, message: str) -> None:
        self.agent = agent
        super().__init__(f"{agent}: {message}")


class CorruptStateError(HiveError):
    """The shared state snapshot on disk could not be read back."""


class UnknownProviderError(HiveError, KeyError):
    """No generation backend is registered for the requested provider."""

    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(f"No generation backend registered for provider '{provider}'")

    def __str__(self) -> str:
        return self.args[0]


class TeamNotFoundError(HiveError):
    def __init__(self, team_dir: str) -> None:
        self.team_dir = team_dir
        super().__init__(f"Team directory not found: {team_dir}")


class SettingsError(HiveError):
    """An environment setting holds a value that cannot be used."""

    def __init__(self, name: str, value: str, expected: str) -> None:
        self.name = name
        self.value = value
        super().__init__(f"{name} must be {expected}, got {value!r}")
