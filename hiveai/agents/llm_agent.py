"""Step runner that drives an agent through a generation backend."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List

from hiveai.agents.base import StepRunner
from hiveai.core.errors import StepExecutionError
from hiveai.services.generation import GenerationContext

if TYPE_CHECKING:
    from hiveai.core.models import AgentDescriptor
    from hiveai.core.shared_state import SharedStateStore
    from hiveai.services.llm_pool import LLMPool
    from hiveai.services.tool_registry import Tool, ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are an autonomous agent executing a defined mission."


def compose_system_prompt(descriptor: AgentDescriptor) -> str:
    if descriptor.prompts and descriptor.prompts.system:
        return descriptor.prompts.system
    lines = [DEFAULT_SYSTEM_PROMPT]
    if descriptor.description:
        lines.append(f"Role: {descriptor.description}")
    if descriptor.personality:
        lines.append(f"Personality: {descriptor.personality}")
    return "\n".join(lines)


def compose_prompt(descriptor: AgentDescriptor, tools: List[Tool], previous: Dict[str, Any]) -> str:
    """Build the user prompt from goals, tasks, tools and dependency results."""
    sections = [
        "Goals:\n" + "\n".join(f"- {goal}" for goal in descriptor.goals),
        "Tasks:\n" + "\n".join(f"{index}. {task}" for index, task in enumerate(descriptor.tasks, start=1)),
    ]
    if tools:
        sections.append("Available tools:\n" + "\n".join(f"- {tool.name}: {tool.description}" for tool in tools))
    if previous:
        results = "\n\n".join(
            f"### {name}\n{json.dumps(value, indent=2, default=str)}" for name, value in previous.items()
        )
        sections.append(f"Results from previous agents:\n{results}")
    if descriptor.prompts and descriptor.prompts.user:
        sections.append(f"Instructions:\n{descriptor.prompts.user}")
    sections.append("Return structured JSON output.")
    return "\n\n".join(sections)


class LLMAgentRunner(StepRunner):
    """Compose the request for one agent, generate, and persist the artifact."""

    def __init__(self, llm_pool: LLMPool, tools: ToolRegistry) -> None:
        self._llm_pool = llm_pool
        self._tools = tools

    async def run(self, descriptor: AgentDescriptor, store: SharedStateStore, output_dir: Path) -> Any:
        tools = self._tools.resolve(descriptor.tools)
        previous = {name: store.get(name) for name in descriptor.depends_on if name in store}

        backend = self._llm_pool.backend_for(descriptor.llm)
        context = GenerationContext(
            spec=descriptor.llm,
            system_prompt=compose_system_prompt(descriptor),
            tools=tools,
        )
        prompt = compose_prompt(descriptor, tools, previous)
        result = (await backend.generate(prompt, context)).to_dict()

        output_dir = Path(output_dir)
        artifact = output_dir / descriptor.artifact_name
        if not artifact.resolve().is_relative_to(output_dir.resolve()):
            raise StepExecutionError(descriptor.name, f"artifact {artifact} is outside {output_dir}")
        try:
            artifact.parent.mkdir(parents=True, exist_ok=True)
            artifact.write_text(json.dumps(result, indent=2, default=str), encoding="utf-8")
        except OSError as exc:
            raise StepExecutionError(descriptor.name, f"cannot write artifact {artifact}: {exc}") from exc
        logger.info("%s output -> %s", descriptor.name, artifact.name)
        return result
