"""Generation backends turning a composed prompt into an agent result."""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from openai import APIConnectionError, AsyncOpenAI, InternalServerError, RateLimitError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from hiveai.core.models import GenerationSpec
from hiveai.services.tool_registry import Tool

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (APIConnectionError, RateLimitError, InternalServerError)


@dataclass
class ToolCall:
    name: str
    input: Any
    result: Any


@dataclass
class GenerationContext:
    """Everything a backend needs besides the prompt itself."""

    spec: GenerationSpec
    system_prompt: str = ""
    tools: List[Tool] = field(default_factory=list)

    def tool(self, name: str) -> Optional[Tool]:
        return next((tool for tool in self.tools if tool.name == name), None)


@dataclass
class GenerationResult:
    content: str
    tool_calls: List[ToolCall] = field(default_factory=list)
    model: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class GenerationBackend(Protocol):
    async def generate(self, prompt: str, context: GenerationContext) -> GenerationResult:
        ...


class OpenAICompatibleBackend:
    """Chat-completions backend for any provider exposing the OpenAI wire API.

    Tools from the context are offered as functions. Requested tool calls are
    executed and their results sent back until the model answers without
    calling a tool or ``max_tool_rounds`` is reached.
    """

    def __init__(
        self,
        *,
        provider: str,
        api_key: str,
        default_model: str,
        base_url: Optional[str] = None,
        max_retries: int = 3,
        max_tool_rounds: int = 5,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.provider = provider
        self.default_model = default_model
        self.max_retries = max_retries
        self.max_tool_rounds = max_tool_rounds
        # Retries are handled by tenacity below, not by the SDK.
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)

    async def generate(self, prompt: str, context: GenerationContext) -> GenerationResult:
        messages: List[Dict[str, Any]] = []
        if context.system_prompt:
            messages.append({"role": "system", "content": context.system_prompt})
        messages.append({"role": "user", "content": prompt})

        tool_definitions = [tool.definition() for tool in context.tools]
        calls: List[ToolCall] = []

        for _ in range(self.max_tool_rounds):
            response = await self._complete(messages, context.spec, tool_definitions)
            message = response.choices[0].message
            if not message.tool_calls:
                return GenerationResult(content=message.content or "", tool_calls=calls, model=response.model)

            messages.append(
                {
                    "role": "assistant",
                    "content": message.content,
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {"name": call.function.name, "arguments": call.function.arguments},
                        }
                        for call in message.tool_calls
                    ],
                }
            )
            for call in message.tool_calls:
                record = await self._run_tool(context, call.function.name, call.function.arguments)
                calls.append(record)
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": call.id,
                        "content": json.dumps(record.result, default=str),
                    }
                )

        logger.warning("%s: tool round limit (%d) reached, requesting final answer", self.provider, self.max_tool_rounds)
        response = await self._complete(messages, context.spec, [])
        return GenerationResult(content=response.choices[0].message.content or "", tool_calls=calls, model=response.model)

    async def _run_tool(self, context: GenerationContext, name: str, arguments: str) -> ToolCall:
        try:
            payload = json.loads(arguments or "{}")
        except ValueError:
            return ToolCall(name=name, input=arguments, result={"error": "arguments are not valid JSON"})

        tool = context.tool(name)
        if tool is None:
            return ToolCall(name=name, input=payload, result={"error": f"unknown tool '{name}'"})

        try:
            result = await tool.execute(payload)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Tool %s failed: %s", name, exc)
            result = {"error": str(exc)}
        return ToolCall(name=name, input=payload, result=result)

    async def _complete(self, messages: List[Dict[str, Any]], spec: GenerationSpec, tools: List[Dict[str, Any]]):
        kwargs: Dict[str, Any] = {"model": spec.model or self.default_model, "messages": messages}
        if spec.temperature is not None:
            kwargs["temperature"] = spec.temperature
        if spec.max_tokens is not None:
            kwargs["max_tokens"] = spec.max_tokens
        if spec.top_p is not None:
            kwargs["top_p"] = spec.top_p
        if tools:
            kwargs["tools"] = tools

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            reraise=True,
        ):
            with attempt:
                response = await self._client.chat.completions.create(**kwargs)
        return response


class MockBackend:
    """Offline backend answering with a canned response, without calling tools."""

    def __init__(self, provider: str) -> None:
        self.provider = provider

    async def generate(self, prompt: str, context: GenerationContext) -> GenerationResult:
        return GenerationResult(
            content=f"Mocked {self.provider} response for: {prompt[:50]}...",
            model=f"mock-{self.provider}",
        )
