"""Registry of tool capabilities agents can request by name."""
from __future__ import annotations

import abc
import logging
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


class Tool(abc.ABC):
    """A capability a generation backend may call while running an agent."""

    name: str = ""
    description: str = ""
    # JSON schema of the input object, forwarded to providers as function parameters.
    parameters: Dict[str, Any] = {"type": "object", "properties": {}}

    @abc.abstractmethod
    async def execute(self, payload: Dict[str, Any]) -> Any:
        """Run the tool with a decoded input object."""

    def definition(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


class ToolRegistry:
    """Registry maintaining tool implementations by name."""

    def __init__(self) -> None:
        self._tools: Dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def resolve(self, names: Iterable[str]) -> List[Tool]:
        """Return the tools known under ``names``, skipping unknown names."""
        tools = []
        for name in names:
            tool = self._tools.get(name)
            if tool is None:
                logger.debug("Ignoring unknown tool '%s'", name)
                continue
            tools.append(tool)
        return tools

    def names(self) -> List[str]:
        return sorted(self._tools)
