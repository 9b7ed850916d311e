"""
LLM Gateway Module

Provider-agnostic text-completion capability and lenient JSON extraction.
"""

from draftline.llm.gateway import (
    Completion,
    CompletionProvider,
    CompletionRequest,
    LLMGateway,
)
from draftline.llm.providers import (
    ClaudeProvider,
    OpenAIProvider,
    build_gateway,
    get_provider,
)
from draftline.llm.structured import clean_json_text, extract_json

__all__ = [
    "LLMGateway",
    "Completion",
    "CompletionProvider",
    "CompletionRequest",
    "get_provider",
    "build_gateway",
    "ClaudeProvider",
    "OpenAIProvider",
    "clean_json_text",
    "extract_json",
]
