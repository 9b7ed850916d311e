"""
LLM Providers

Concrete completion providers and the factory that wires them into a
gateway from configuration.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import structlog

from draftline.llm.gateway import LLMGateway
from draftline.llm.providers.base import BaseLLMProvider
from draftline.llm.providers.claude import ClaudeProvider
from draftline.llm.providers.openai import OpenAIProvider

if TYPE_CHECKING:
    from draftline.config import LLMConfig

logger = structlog.get_logger(__name__)


# Accepted names, including vendor aliases
PROVIDERS: dict[str, type[BaseLLMProvider]] = {
    "claude": ClaudeProvider,
    "anthropic": ClaudeProvider,
    "openai": OpenAIProvider,
    "gpt": OpenAIProvider,
}


def provider_class(name: str) -> type[BaseLLMProvider]:
    """Resolve a provider name; ValueError lists the accepted names."""
    cls = PROVIDERS.get(name.strip().lower())
    if cls is None:
        raise ValueError(f"Unknown provider: {name!r}. Available: {sorted(PROVIDERS)}")
    return cls


def get_provider(name: str, api_key: str, model: str | None = None) -> BaseLLMProvider:
    """
    Build a provider by name.

    Args:
        name: Any key of PROVIDERS, case-insensitive
        api_key: Credential for the vendor SDK
        model: Model override (defaults to the provider's)
    """
    return provider_class(name)(api_key=api_key, model=model)


def _provider_from_config(name: str, config: LLMConfig) -> BaseLLMProvider | None:
    cls = provider_class(name)
    configured = {
        ClaudeProvider: (config.anthropic_api_key, config.claude_model),
        OpenAIProvider: (config.openai_api_key, config.openai_model),
    }
    key, model = configured.get(cls, (None, None))
    key = key or os.environ.get(cls.api_key_env)
    if not key:
        logger.warning("llm_provider_unconfigured", provider=name, env=cls.api_key_env)
        return None
    return cls(api_key=key, model=model)


def build_gateway(config: LLMConfig) -> LLMGateway | None:
    """
    Build a gateway from configuration.

    Returns None when the primary provider has no API key; callers then run
    without the text-completion capability and use their defaults. A
    fallback without a key is dropped.
    """
    primary = _provider_from_config(config.primary_provider, config)
    if primary is None:
        return None

    fallback = None
    if config.fallback_provider:
        fallback = _provider_from_config(config.fallback_provider, config)

    return LLMGateway(
        primary_provider=primary,
        fallback_provider=fallback,
        max_retries=config.max_retries,
        retry_delay=config.retry_delay,
        timeout=config.timeout,
    )


__all__ = [
    "PROVIDERS",
    "BaseLLMProvider",
    "ClaudeProvider",
    "OpenAIProvider",
    "build_gateway",
    "get_provider",
    "provider_class",
]
