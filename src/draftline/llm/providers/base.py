"""
Base LLM Provider

Shared timing and client handling for concrete completion providers.
Subclasses only translate a CompletionRequest into their SDK's call.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any

from draftline.llm.gateway import Completion, CompletionRequest


class BaseLLMProvider(ABC):
    """Base class for LLM providers."""

    name: str = "base"
    default_model: str = ""
    # Environment variable consulted when config carries no key
    api_key_env: str = ""

    def __init__(self, api_key: str, model: str | None = None):
        """
        Initialize provider.

        Args:
            api_key: API key for the provider
            model: Model identifier (defaults to the provider's)
        """
        self.api_key = api_key
        self.model = model or self.default_model
        self._client: Any = None

    @property
    def client(self) -> Any:
        """SDK client, created on first use so the SDK stays optional."""
        if self._client is None:
            self._client = self._create_client()
        return self._client

    async def complete(self, request: CompletionRequest) -> Completion:
        """Run one request; SDK errors propagate to the gateway."""
        started = time.perf_counter()
        completion = await self._complete(request)
        return replace(completion, latency_ms=(time.perf_counter() - started) * 1000)

    @abstractmethod
    def _create_client(self) -> Any:
        """Import the SDK and build an async client."""

    @abstractmethod
    async def _complete(self, request: CompletionRequest) -> Completion:
        """Call the SDK."""
