"""Base step runner definition used by the pipeline executor."""
from __future__ import annotations

import abc
from pathlib import Path
from typing import Any

from hiveai.core.models import AgentDescriptor
from hiveai.core.shared_state import SharedStateStore


class StepRunner(abc.ABC):
    """Executes the work of a single agent.

    The pipeline awaits ``run`` once per agent; whatever it returns is stored
    in shared state under the agent's name. Exceptions propagate to the
    pipeline, which records the step as failed.
    """

    @abc.abstractmethod
    async def run(self, descriptor: AgentDescriptor, store: SharedStateStore, output_dir: Path) -> Any:
        """Run ``descriptor`` and return its result."""
