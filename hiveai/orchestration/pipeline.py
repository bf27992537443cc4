"""Sequential execution of a resolved plan with per-step failure policy."""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Union

from hiveai.agents.base import StepRunner
from hiveai.core.models import ExecutionPlan, PipelineMetrics, StepMetrics, StepStatus
from hiveai.core.shared_state import SharedStateStore

logger = logging.getLogger(__name__)


class PipelineExecutor:
    """Run every step of a plan in order, one at a time.

    Once a step fails with ``on_error: stop`` the pipeline is in a failed
    state and every later step that does not declare ``on_error: continue``
    is skipped. A failing ``continue`` step never changes that state.
    """

    def __init__(self, runner: StepRunner, store: SharedStateStore, output_dir: Union[str, Path]) -> None:
        self._runner = runner
        self._store = store
        self._output_dir = Path(output_dir)

    async def run(self, plan: ExecutionPlan) -> PipelineMetrics:
        metrics = PipelineMetrics(started_at=datetime.now(timezone.utc))
        failed = False

        for descriptor in plan:
            name = descriptor.name
            if failed and not descriptor.continues_on_error:
                logger.warning("Skipping agent %s: pipeline already failed", name, extra={"agent": name})
                metrics.record(StepMetrics(name=name, status=StepStatus.SKIPPED))
                continue

            logger.info("Running agent %s", name, extra={"agent": name})
            started = time.perf_counter()
            try:
                result = await self._runner.run(descriptor, self._store, self._output_dir)
                self._store.set(name, result)
            except Exception as exc:  # noqa: BLE001
                elapsed = time.perf_counter() - started
                message = str(exc) or type(exc).__name__
                logger.error("Agent %s failed after %.2fs: %s", name, elapsed, message, extra={"agent": name})
                logger.debug("Failure details for %s", name, exc_info=exc, extra={"agent": name})
                metrics.record(StepMetrics(name=name, status=StepStatus.FAILED, duration=elapsed, error=message))
                if not descriptor.continues_on_error:
                    failed = True
                continue

            elapsed = time.perf_counter() - started
            logger.info("Agent %s completed in %.2fs", name, elapsed, extra={"agent": name})
            metrics.record(StepMetrics(name=name, status=StepStatus.SUCCESS, duration=elapsed))

        metrics.finished_at = datetime.now(timezone.utc)
        logger.info(
            "Pipeline finished: %d succeeded, %d failed, %d skipped",
            metrics.succeeded,
            metrics.failed,
            metrics.skipped,
        )
        return metrics
