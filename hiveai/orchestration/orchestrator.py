"""Orchestrator running one team of agents from its descriptor directory."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

from hiveai.agents.base import StepRunner
from hiveai.core.errors import ConfigLoadError, TeamNotFoundError
from hiveai.core.models import AgentDescriptor, ExecutionPlan, PipelineMetrics
from hiveai.core.shared_state import SharedStateStore
from hiveai.orchestration.pipeline import PipelineExecutor
from hiveai.orchestration.resolver import DependencyResolver
from hiveai.parsers.loader import ConfigLoader

logger = logging.getLogger(__name__)


class Orchestrator:
    """Load a team's descriptors, order them by dependency and run them."""

    def __init__(
        self,
        team_dir: Union[str, Path],
        *,
        runner: StepRunner,
        store: SharedStateStore,
        loader: Optional[ConfigLoader] = None,
        resolver: Optional[DependencyResolver] = None,
        output_dir: Optional[Union[str, Path]] = None,
    ) -> None:
        self._team_dir = Path(team_dir)
        self._runner = runner
        self._store = store
        self._loader = loader or ConfigLoader()
        self._resolver = resolver or DependencyResolver()
        self._output_dir = Path(output_dir) if output_dir is not None else self._team_dir / "output"

    @property
    def team_dir(self) -> Path:
        return self._team_dir

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def load(self) -> List[AgentDescriptor]:
        """Load every descriptor; any invalid file makes the whole team unusable."""
        if not self._team_dir.is_dir():
            raise TeamNotFoundError(str(self._team_dir))
        result = self._loader.load_dir(self._team_dir)
        if not result.ok:
            raise ConfigLoadError(result.errors)
        return result.descriptors

    def plan(self) -> ExecutionPlan:
        return self._resolver.resolve(self.load())

    async def run_all(self) -> PipelineMetrics:
        """Resolve the plan and execute it; load and resolve errors propagate."""
        plan = self.plan()
        logger.info("Execution order for %s: %s", self._team_dir.name, " -> ".join(plan.names))
        self._output_dir.mkdir(parents=True, exist_ok=True)
        executor = PipelineExecutor(self._runner, self._store, self._output_dir)
        return await executor.run(plan)
