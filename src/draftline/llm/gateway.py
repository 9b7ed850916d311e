"""
LLM Gateway

Provider-agnostic text-completion capability. Callers send one system
instruction plus one user payload and get text back. Timeouts and provider
fallback live here, not in the callers, and the gateway never raises: a
failed call comes back as a Completion with ``error`` set.

Each provider is asked once by default. Retrying is host policy: set
``max_retries`` (``llm.max_retries`` in config) to opt in to backoff retries.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CompletionRequest:
    """One instruction, one payload."""
    system_prompt: str
    user_payload: str
    max_tokens: int = 350
    temperature: float = 0.2


@dataclass
class Completion:
    """Text returned by a provider, or the reason there is none."""
    text: str
    provider: str
    model: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: float = 0
    attempts: int = 1
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, provider: str, error: str, attempts: int = 1) -> "Completion":
        return cls(text="", provider=provider, attempts=attempts, error=error)


class CompletionProvider(Protocol):
    """Anything that can answer a CompletionRequest."""

    name: str

    async def complete(self, request: CompletionRequest) -> Completion:
        ...


class EmptyCompletionError(Exception):
    """Provider answered with no text."""


class LLMGateway:
    """
    Gateway for single-shot completions.

    Each provider in the chain gets ``max_retries + 1`` attempts, one unless
    the host opts in, with exponential backoff between them. The first
    non-empty answer wins.
    """

    def __init__(
        self,
        primary_provider: CompletionProvider,
        fallback_provider: CompletionProvider | None = None,
        max_retries: int = 0,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
    ):
        """
        Initialize the gateway.

        Args:
            primary_provider: Provider asked first
            fallback_provider: Provider asked once the primary is exhausted
            max_retries: Extra attempts per provider
            retry_delay: Delay before the first retry, doubled each time
            timeout: Per-attempt timeout in seconds
        """
        self.primary = primary_provider
        self.fallback = fallback_provider
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

    @property
    def chain(self) -> list[CompletionProvider]:
        return [p for p in (self.primary, self.fallback) if p is not None]

    @property
    def providers(self) -> list[str]:
        return [p.name for p in self.chain]

    async def complete(
        self,
        system_prompt: str,
        user_payload: str,
        max_tokens: int = 350,
        temperature: float = 0.2,
    ) -> Completion:
        """Ask the chain for a completion; never raises."""
        request = CompletionRequest(
            system_prompt=system_prompt,
            user_payload=user_payload,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        logger.debug(
            "llm_request",
            payload_chars=len(user_payload),
            max_tokens=max_tokens,
            providers=self.providers,
        )

        completion = None
        for provider in self.chain:
            if completion is not None:
                logger.warning(
                    "llm_falling_back",
                    failed=completion.provider,
                    next=provider.name,
                    error=completion.error,
                )
            completion = await self._try_provider(provider, request)
            if completion.ok:
                logger.info(
                    "llm_response",
                    provider=completion.provider,
                    model=completion.model,
                    tokens=completion.input_tokens + completion.output_tokens,
                    attempts=completion.attempts,
                    latency_ms=round(completion.latency_ms, 1),
                )
                return completion

        logger.error("llm_all_providers_failed", error=completion.error)
        return completion

    async def _try_provider(
        self, provider: CompletionProvider, request: CompletionRequest
    ) -> Completion:
        """Try a provider with retries."""
        attempts = self.max_retries + 1
        last_error = "no attempt made"

        for attempt in range(1, attempts + 1):
            try:
                completion = await asyncio.wait_for(
                    provider.complete(request), timeout=self.timeout
                )
                if completion.error:
                    raise RuntimeError(completion.error)
                if not completion.text.strip():
                    raise EmptyCompletionError("empty completion")
                return replace(completion, attempts=attempt)

            except asyncio.TimeoutError:
                last_error = f"Request timed out after {self.timeout}s"
            except Exception as e:
                last_error = str(e) or type(e).__name__

            logger.warning(
                "llm_attempt_failed",
                provider=provider.name,
                attempt=attempt,
                error=last_error,
            )
            if attempt < attempts:
                await asyncio.sleep(self.retry_delay * (2 ** (attempt - 1)))

        return Completion.failed(provider.name, last_error, attempts=attempts)
