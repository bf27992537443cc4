"""Tests for the LLM step runner and the generation backends."""
from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import httpx
import pytest
from openai import APIConnectionError
from tenacity import wait_none

from hiveai.agents.llm_agent import DEFAULT_SYSTEM_PROMPT, LLMAgentRunner
from hiveai.core.errors import StepExecutionError, UnknownProviderError
from hiveai.core.models import AgentDescriptor, GenerationSpec
from hiveai.core.shared_state import SharedStateStore
from hiveai.services import generation
from hiveai.services.generation import (
    GenerationContext,
    GenerationResult,
    MockBackend,
    OpenAICompatibleBackend,
    ToolCall,
)
from hiveai.services.llm_pool import LLMPool
from hiveai.services.tool_registry import Tool, ToolRegistry


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class EchoTool(Tool):
    name = "echo"
    description = "Repeat the given text."

    async def execute(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return {"echo": payload.get("text")}


class RecordingBackend:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.prompts: List[str] = []
        self.contexts: List[GenerationContext] = []

    async def generate(self, prompt: str, context: GenerationContext) -> GenerationResult:
        self.prompts.append(prompt)
        self.contexts.append(context)
        if self.error is not None:
            raise self.error
        return GenerationResult(
            content='{"summary": "done"}',
            tool_calls=[ToolCall(name="echo", input={"text": "hi"}, result={"echo": "hi"})],
            model="fake",
        )


def _runner(backend: RecordingBackend) -> LLMAgentRunner:
    pool = LLMPool()
    pool.register_backend("openai", backend)
    tools = ToolRegistry()
    tools.register(EchoTool())
    return LLMAgentRunner(pool, tools)


def writer(**overrides: Any) -> AgentDescriptor:
    fields: Dict[str, Any] = {
        "name": "writer",
        "description": "Technical writer",
        "goals": ["Explain the findings"],
        "tasks": ["Outline", "Write"],
        "llm": "openai",
        "tools": ["echo", "nope"],
        "depends_on": ["researcher", "reviewer"],
    }
    fields.update(overrides)
    return AgentDescriptor(**fields)


@pytest.mark.anyio
async def test_run_composes_request_and_persists_artifact(tmp_path: Path) -> None:
    backend = RecordingBackend()
    store = SharedStateStore(tmp_path / "cache.json")
    store.set("researcher", {"content": "three sources"})
    output_dir = tmp_path / "output"

    result = await _runner(backend).run(writer(), store, output_dir)

    assert result == {
        "content": '{"summary": "done"}',
        "tool_calls": [{"name": "echo", "input": {"text": "hi"}, "result": {"echo": "hi"}}],
        "model": "fake",
    }
    assert json.loads((output_dir / "writer.json").read_text()) == result

    prompt = backend.prompts[0]
    context = backend.contexts[0]
    assert "- Explain the findings" in prompt
    assert "1. Outline" in prompt and "2. Write" in prompt
    assert "- echo: Repeat the given text." in prompt
    assert "### researcher" in prompt and "three sources" in prompt
    assert "### reviewer" not in prompt
    assert prompt.endswith("Return structured JSON output.")
    assert [tool.name for tool in context.tools] == ["echo"]
    assert context.system_prompt.startswith(DEFAULT_SYSTEM_PROMPT)
    assert "Technical writer" in context.system_prompt


@pytest.mark.anyio
async def test_prompt_overrides_and_output_name(tmp_path: Path) -> None:
    backend = RecordingBackend()
    descriptor = writer(
        prompts={"system": "You are terse.", "user": "Answer in French."},
        output_result="report.json",
        tools=[],
        depends_on=[],
    )

    await _runner(backend).run(descriptor, SharedStateStore(tmp_path / "cache.json"), tmp_path)

    assert backend.contexts[0].system_prompt == "You are terse."
    assert "Instructions:\nAnswer in French." in backend.prompts[0]
    assert "Available tools" not in backend.prompts[0]
    assert (tmp_path / "report.json").exists()


@pytest.mark.anyio
async def test_backend_errors_propagate_unchanged(tmp_path: Path) -> None:
    error = RuntimeError("quota exceeded")
    backend = RecordingBackend(error=error)

    with pytest.raises(RuntimeError) as info:
        await _runner(backend).run(writer(), SharedStateStore(tmp_path / "cache.json"), tmp_path)

    assert info.value is error
    assert not (tmp_path / "writer.json").exists()


@pytest.mark.anyio
async def test_unwritable_output_is_a_step_error(tmp_path: Path) -> None:
    blocked = tmp_path / "output"
    blocked.write_text("a file, not a directory")

    with pytest.raises(StepExecutionError):
        await _runner(RecordingBackend()).run(writer(), SharedStateStore(tmp_path / "cache.json"), blocked)


@pytest.mark.anyio
async def test_artifact_outside_output_dir_is_refused(tmp_path: Path) -> None:
    descriptor = writer().model_copy(update={"output_result": "../escape.json"})

    with pytest.raises(StepExecutionError):
        await _runner(RecordingBackend()).run(descriptor, SharedStateStore(tmp_path / "cache.json"), tmp_path / "output")

    assert not (tmp_path / "escape.json").exists()


@pytest.mark.anyio
async def test_unregistered_provider_fails(tmp_path: Path) -> None:
    runner = LLMAgentRunner(LLMPool(), ToolRegistry())

    with pytest.raises(UnknownProviderError):
        await runner.run(writer(llm="claude"), SharedStateStore(tmp_path / "cache.json"), tmp_path)


class FakeCompletions:
    def __init__(self, responses: List[Any]) -> None:
        self.responses = responses
        self.requests: List[Dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.requests.append(json.loads(json.dumps(kwargs)))
        return self.responses.pop(0)


def _response(content: Optional[str], tool_calls: Optional[List[Any]] = None) -> Any:
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)], model="gpt-test")


@pytest.mark.anyio
async def test_openai_backend_round_trips_tool_calls() -> None:
    call = SimpleNamespace(id="call_1", function=SimpleNamespace(name="echo", arguments='{"text": "hi"}'))
    completions = FakeCompletions([_response(None, [call]), _response("final answer")])
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    backend = OpenAICompatibleBackend(provider="openai", api_key="k", default_model="gpt-test", client=client)
    context = GenerationContext(
        spec=GenerationSpec(provider="openai", temperature=0.3),
        system_prompt="system",
        tools=[EchoTool()],
    )

    result = await backend.generate("do it", context)

    assert result.content == "final answer"
    assert result.tool_calls == [ToolCall(name="echo", input={"text": "hi"}, result={"echo": "hi"})]
    first, second = completions.requests
    assert first["model"] == "gpt-test"
    assert first["temperature"] == 0.3
    assert "max_tokens" not in first
    assert first["tools"][0]["function"]["name"] == "echo"
    assert [message["role"] for message in second["messages"]] == ["system", "user", "assistant", "tool"]
    assert json.loads(second["messages"][-1]["content"]) == {"echo": "hi"}


@pytest.mark.anyio
async def test_openai_backend_reports_unknown_tools_to_the_model() -> None:
    call = SimpleNamespace(id="call_1", function=SimpleNamespace(name="missing", arguments="{}"))
    completions = FakeCompletions([_response(None, [call]), _response("ok")])
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    backend = OpenAICompatibleBackend(provider="mistral", api_key="k", default_model="m", client=client)

    result = await backend.generate("x", GenerationContext(spec=GenerationSpec(provider="mistral")))

    assert result.tool_calls[0].result == {"error": "unknown tool 'missing'"}
    assert "tools" not in completions.requests[0]


@pytest.mark.anyio
async def test_mock_backend_answers_offline() -> None:
    result = await MockBackend("claude").generate("Summarize everything", GenerationContext(spec=GenerationSpec(provider="claude")))
    assert result.content.startswith("Mocked claude response for: Summarize everything")
    assert result.tool_calls == []


class FlakyCompletions:
    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    async def create(self, **kwargs: Any) -> Any:
        self.calls += 1
        if self.calls <= self.failures:
            raise APIConnectionError(request=httpx.Request("POST", "https://api.example.com/v1/chat/completions"))
        return _response("recovered")


@pytest.mark.anyio
@pytest.mark.parametrize("max_retries, failures, expected_calls", [(1, 1, 2), (2, 2, 3)])
async def test_openai_backend_retries_transient_errors(
    monkeypatch: pytest.MonkeyPatch, max_retries: int, failures: int, expected_calls: int
) -> None:
    monkeypatch.setattr(generation, "wait_exponential", lambda **_: wait_none())
    completions = FlakyCompletions(failures)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    backend = OpenAICompatibleBackend(
        provider="openai", api_key="k", default_model="m", max_retries=max_retries, client=client
    )

    result = await backend.generate("x", GenerationContext(spec=GenerationSpec(provider="openai")))

    assert result.content == "recovered"
    assert completions.calls == expected_calls


@pytest.mark.anyio
async def test_openai_backend_without_retries_fails_on_first_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(generation, "wait_exponential", lambda **_: wait_none())
    completions = FlakyCompletions(1)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    backend = OpenAICompatibleBackend(provider="openai", api_key="k", default_model="m", max_retries=0, client=client)

    with pytest.raises(APIConnectionError):
        await backend.generate("x", GenerationContext(spec=GenerationSpec(provider="openai")))

    assert completions.calls == 1
