"""Load agent descriptor files from a team directory."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Union

from hiveai.core.errors import ConfigError, FieldIssue
from hiveai.core.models import AgentDescriptor
from hiveai.parsers.descriptor_text import parse_descriptor_text
from hiveai.parsers.template import render_tree

logger = logging.getLogger(__name__)

DESCRIPTOR_SUFFIXES = (".yml", ".yaml")


@dataclass
class LoadResult:
    """Descriptors that validated, in listing order, and the files that did not."""

    descriptors: List[AgentDescriptor] = field(default_factory=list)
    errors: List[ConfigError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class ConfigLoader:
    """Parse, render and validate descriptor files.

    ``variables`` feeds ``{{VAR}}`` substitution; it defaults to the process
    environment when omitted.
    """

    def __init__(self, variables: Optional[Mapping[str, str]] = None) -> None:
        self._variables = variables

    def load_text(self, text: str, source: Optional[str] = None) -> AgentDescriptor:
        tree = parse_descriptor_text(text, source)
        rendered = render_tree(tree, self._variables)
        return AgentDescriptor.from_tree(rendered, source)

    def load_file(self, path: Union[str, Path]) -> AgentDescriptor:
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(str(path), [FieldIssue(path="", message=f"cannot read file: {exc}")]) from exc
        return self.load_text(text, str(path))

    def load_dir(self, directory: Union[str, Path]) -> LoadResult:
        """Load every descriptor file of ``directory``; a bad file never stops the others."""
        result = LoadResult()
        seen = {}
        for path in descriptor_files(directory):
            try:
                descriptor = self.load_file(path)
            except ConfigError as exc:
                logger.error("Failed to load %s: %s", path.name, exc)
                result.errors.append(exc)
                continue
            if descriptor.name in seen:
                result.errors.append(
                    ConfigError(
                        str(path),
                        [FieldIssue(path="name", message=f"duplicate agent name, already defined in {seen[descriptor.name]}")],
                    )
                )
                continue
            seen[descriptor.name] = path.name
            result.descriptors.append(descriptor)
        logger.debug("Loaded %d agent(s) from %s", len(result.descriptors), directory)
        return result


def descriptor_files(directory: Union[str, Path]) -> List[Path]:
    directory = Path(directory)
    return sorted(
        path for path in directory.iterdir() if path.is_file() and path.suffix in DESCRIPTOR_SUFFIXES
    )
