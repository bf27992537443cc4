"""Application runtime composition helpers."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

from hiveai.agents.llm_agent import LLMAgentRunner
from hiveai.config import Config
from hiveai.core.shared_state import SharedStateStore
from hiveai.orchestration.orchestrator import Orchestrator
from hiveai.services.llm_pool import LLMPool
from hiveai.services.tool_registry import ToolRegistry
from hiveai.tools.file_reader import FileReaderTool
from hiveai.tools.serializer import SerializerTool
from hiveai.tools.web_scraper import WebScraperTool


@lru_cache
def get_config() -> Config:
    return Config.from_env()


def build_tool_registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(FileReaderTool())
    registry.register(SerializerTool())
    registry.register(WebScraperTool())
    return registry


def build_llm_pool(config: Config) -> LLMPool:
    pool = LLMPool()
    if config.offline:
        pool.register_mock()
        return pool
    for provider, provider_config in config.providers.items():
        pool.register(provider, provider_config)
    return pool


@lru_cache
def get_tool_registry() -> ToolRegistry:
    return build_tool_registry()


def team_path(team: str, config: Optional[Config] = None) -> Path:
    config = config or get_config()
    return Path(config.teams_dir) / team


def build_orchestrator(team_dir: Union[str, Path], config: Optional[Config] = None) -> Orchestrator:
    """Wire an orchestrator for ``team_dir`` from configuration."""
    config = config or get_config()
    return Orchestrator(
        team_dir,
        runner=LLMAgentRunner(build_llm_pool(config), get_tool_registry()),
        store=SharedStateStore(config.state_file),
    )
