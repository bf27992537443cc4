"""Core data models shared across orchestrator components."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from hiveai.core.errors import ConfigError, FieldIssue


class Provider(str, Enum):
    """Generation backends an agent can be bound to."""

    OPENAI = "openai"
    MISTRAL = "mistral"
    CLAUDE = "claude"


class OnError(str, Enum):
    """What the pipeline does after this agent fails."""

    STOP = "stop"
    CONTINUE = "continue"


class StepStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class GenerationSpec(BaseModel):
    """Provider selector plus optional sampling settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    provider: Provider
    model: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, gt=0)
    top_p: Optional[float] = Field(default=None, ge=0, le=1)


class PromptOverrides(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    system: Optional[str] = None
    user: Optional[str] = None


class AgentDescriptor(BaseModel):
    """Validated, immutable configuration of one agent."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    goals: List[str] = Field(..., min_length=1)
    tasks: List[str] = Field(..., min_length=1)
    depends_on: List[str] = Field(default_factory=list)
    personality: Optional[str] = None
    llm: GenerationSpec
    prompts: Optional[PromptOverrides] = None
    tools: List[str] = Field(default_factory=list)
    output_result: Optional[str] = None
    on_error: OnError = OnError.STOP

    @field_validator("depends_on", mode="before")
    @classmethod
    def _single_dependency(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("llm", mode="before")
    @classmethod
    def _provider_shorthand(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"provider": value}
        return value

    @field_validator("tools", mode="before")
    @classmethod
    def _no_tools(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("tools")
    @classmethod
    def _unique_tools(cls, value: List[str]) -> List[str]:
        return list(dict.fromkeys(value))

    @field_validator("output_result")
    @classmethod
    def _plain_file_name(cls, value: Optional[str]) -> Optional[str]:
        # Artifacts always land directly inside the team's output directory.
        if value is not None and ("/" in value or "\\" in value or value in (".", "..")):
            raise ValueError("must be a file name without directory parts")
        return value

    @property
    def continues_on_error(self) -> bool:
        return self.on_error is OnError.CONTINUE

    @property
    def artifact_name(self) -> str:
        return self.output_result or f"{self.name}.json"

    @classmethod
    def from_tree(cls, tree: Any, source: Optional[str] = None) -> AgentDescriptor:
        """Validate a parsed tree, collecting every field violation into one ConfigError."""
        if not isinstance(tree, dict):
            raise ConfigError(source, [FieldIssue(path="", message="descriptor must be a mapping")])
        try:
            return cls.model_validate(tree)
        except ValidationError as exc:
            raise ConfigError(source, issues_from_validation(exc)) from None


def issues_from_validation(exc: ValidationError) -> List[FieldIssue]:
    return [
        FieldIssue(path=".".join(str(part) for part in error["loc"]), message=error["msg"])
        for error in exc.errors()
    ]


@dataclass(frozen=True)
class ExecutionPlan:
    """Descriptors ordered so that every agent follows its dependencies."""

    steps: Tuple[AgentDescriptor, ...] = ()

    def __iter__(self) -> Iterator[AgentDescriptor]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def names(self) -> List[str]:
        return [step.name for step in self.steps]


@dataclass(slots=True)
class StepMetrics:
    """Outcome of a single step of a pipeline run."""

    name: str
    status: StepStatus
    duration: float = 0.0
    error: Optional[str] = None


@dataclass(slots=True)
class PipelineMetrics:
    """Aggregate outcome of one pipeline run."""

    steps: List[StepMetrics] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def record(self, step: StepMetrics) -> None:
        self.steps.append(step)

    def _count(self, status: StepStatus) -> int:
        return sum(1 for step in self.steps if step.status is status)

    @property
    def total(self) -> int:
        return len(self.steps)

    @property
    def succeeded(self) -> int:
        return self._count(StepStatus.SUCCESS)

    @property
    def failed(self) -> int:
        return self._count(StepStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(StepStatus.SKIPPED)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    @property
    def duration(self) -> float:
        if self.started_at is None or self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def summary(self) -> str:
        """Human readable report: totals first, then one line per step."""
        lines = [
            f"Pipeline finished in {self.duration:.2f}s: {self.total} total, "
            f"{self.succeeded} succeeded, {self.failed} failed, {self.skipped} skipped"
        ]
        for step in self.steps:
            if step.status is StepStatus.SUCCESS:
                lines.append(f"  ✔ {step.name} ({step.duration:.2f}s)")
            elif step.status is StepStatus.FAILED:
                lines.append(f"  ✖ {step.name} ({step.duration:.2f}s): {step.error}")
            else:
                lines.append(f"  - {step.name} (skipped)")
        return "\n".join(lines)
