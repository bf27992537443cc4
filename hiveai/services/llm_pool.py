"""Shared generation backends, one per provider, built lazily."""
from __future__ import annotations

import logging
from typing import Dict

from hiveai.config import ProviderConfig
from hiveai.core.errors import UnknownProviderError
from hiveai.core.models import GenerationSpec, Provider
from hiveai.services.generation import GenerationBackend, MockBackend, OpenAICompatibleBackend

logger = logging.getLogger(__name__)


class LLMPool:
    """Manages provider configurations and the backends built from them."""

    def __init__(self) -> None:
        self._configs: Dict[str, ProviderConfig] = {}
        self._backends: Dict[str, GenerationBackend] = {}

    def register(self, provider: str, config: ProviderConfig) -> None:
        """Register a provider configuration; the client is created on first use."""
        self._configs[provider] = config
        self._backends.pop(provider, None)

    def register_backend(self, provider: str, backend: GenerationBackend) -> None:
        """Bind a ready-made backend to ``provider``."""
        self._backends[provider] = backend

    def register_mock(self) -> None:
        for provider in Provider:
            self.register_backend(provider.value, MockBackend(provider.value))

    def backend_for(self, spec: GenerationSpec) -> GenerationBackend:
        provider = spec.provider.value
        backend = self._backends.get(provider)
        if backend is not None:
            return backend

        config = self._configs.get(provider)
        if config is None:
            raise UnknownProviderError(provider)

        logger.debug("Initializing %s backend (model %s)", provider, config.default_model)
        backend = OpenAICompatibleBackend(
            provider=provider,
            api_key=config.api_key,
            default_model=config.default_model,
            base_url=config.base_url,
            max_retries=config.max_retries,
        )
        self._backends[provider] = backend
        return backend
