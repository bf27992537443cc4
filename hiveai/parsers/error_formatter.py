"""Human readable explanations for fatal load and resolve errors."""
from __future__ import annotations

from pathlib import Path

from hiveai.core.errors import (
    CircularDependencyError,
    ConfigError,
    ConfigLoadError,
    DependencyError,
    MissingDependencyError,
)


def format_config_error(error: ConfigError) -> str:
    lines = []
    if error.source:
        lines.append(f"Error loading agent from {Path(error.source).name}:")
    lines.append("Agent configuration validation failed:")
    for issue in error.issues:
        lines.append(f"  • {issue.path}: {issue.message}" if issue.path else f"  • {issue.message}")
    lines.append("Please check your agent file and fix the errors above.")
    return "\n".join(lines)


def format_load_error(error: ConfigLoadError) -> str:
    return "\n\n".join(format_config_error(item) for item in error.errors)


def format_dependency_error(error: DependencyError) -> str:
    if isinstance(error, MissingDependencyError):
        return (
            f"Dependency not found: agent '{error.agent}' depends on '{error.dependency}', "
            "which is not defined in this team."
        )
    if isinstance(error, CircularDependencyError):
        return f"Circular dependency detected: {' -> '.join(error.cycle)}"
    return str(error)
