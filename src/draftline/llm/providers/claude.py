"""
Claude (Anthropic) LLM Provider

Messages API with the instruction passed as the separate system field.
"""

from __future__ import annotations

from typing import Any

from draftline.llm.gateway import Completion, CompletionRequest
from draftline.llm.providers.base import BaseLLMProvider


class ClaudeProvider(BaseLLMProvider):
    """Anthropic Claude provider."""

    name = "claude"
    default_model = "claude-sonnet-4-20250514"
    api_key_env = "ANTHROPIC_API_KEY"

    def _create_client(self) -> Any:
        import anthropic
        return anthropic.AsyncAnthropic(api_key=self.api_key)

    async def _complete(self, request: CompletionRequest) -> Completion:
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=request.max_tokens,
            temperature=request.temperature,
            system=request.system_prompt,
            messages=[{"role": "user", "content": request.user_payload}],
        )

        # A JSON answer can arrive split across several text blocks
        text = "".join(
            block.text for block in response.content or [] if getattr(block, "type", None) == "text"
        )
        return Completion(
            text=text.strip(),
            provider=self.name,
            model=response.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
