"""
OpenAI LLM Provider

Chat Completions with the instruction as the system message.
"""

from __future__ import annotations

from typing import Any

from draftline.llm.gateway import Completion, CompletionRequest
from draftline.llm.providers.base import BaseLLMProvider


class OpenAIProvider(BaseLLMProvider):
    """OpenAI GPT provider."""

    name = "openai"
    default_model = "gpt-4o-mini"
    api_key_env = "OPENAI_API_KEY"

    def _create_client(self) -> Any:
        import openai
        return openai.AsyncOpenAI(api_key=self.api_key)

    async def _complete(self, request: CompletionRequest) -> Completion:
        response = await self.client.chat.completions.create(
            model=self.model,
            max_tokens=request.max_tokens,
            temperature=request.temperature,
            messages=[
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.user_payload},
            ],
        )

        usage = response.usage
        return Completion(
            text=(response.choices[0].message.content or "").strip(),
            provider=self.name,
            model=response.model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        )
