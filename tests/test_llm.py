"""
Tests for the LLM gateway, providers and JSON extraction.
"""

import asyncio
from types import SimpleNamespace

import pytest

from conftest import FakeProvider
from draftline.config import LLMConfig
from draftline.llm import (
    ClaudeProvider,
    Completion,
    CompletionRequest,
    LLMGateway,
    OpenAIProvider,
    build_gateway,
    clean_json_text,
    extract_json,
    get_provider,
)


class SlowProvider(FakeProvider):
    """Provider that never answers within the gateway timeout."""

    async def complete(self, request):
        await asyncio.sleep(1.0)
        return Completion(text="late", provider=self.name)


class FlakyProvider(FakeProvider):
    """Fails a fixed number of times, then answers."""

    def __init__(self, failures: int, **kwargs):
        super().__init__(**kwargs)
        self.failures = failures

    async def complete(self, request):
        self.calls.append(request)
        if len(self.calls) <= self.failures:
            raise ConnectionError("temporary failure")
        return Completion(text="ok", provider=self.name, model="fake-1")


class AsyncRecorder:
    """Stands in for an SDK create() coroutine."""

    def __init__(self, response):
        self.response = response
        self.kwargs = None

    async def __call__(self, **kwargs):
        self.kwargs = kwargs
        return self.response


class TestLLMGateway:
    """Tests for retries, timeouts and fallback."""

    @pytest.mark.asyncio
    async def test_complete_builds_request(self):
        provider = FakeProvider(replies=["hello"])
        gateway = LLMGateway(primary_provider=provider, retry_delay=0)

        completion = await gateway.complete("be brief", "hi", max_tokens=50, temperature=0.0)

        assert completion.ok
        assert completion.text == "hello"
        assert completion.attempts == 1
        assert provider.calls == [
            CompletionRequest(system_prompt="be brief", user_payload="hi", max_tokens=50, temperature=0.0)
        ]

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        provider = FlakyProvider(failures=2)
        gateway = LLMGateway(primary_provider=provider, max_retries=2, retry_delay=0)

        completion = await gateway.complete("sys", "payload")

        assert completion.text == "ok"
        assert completion.attempts == 3
        assert len(provider.calls) == 3

    @pytest.mark.asyncio
    async def test_single_attempt_unless_host_opts_in(self):
        provider = FlakyProvider(failures=1)
        gateway = LLMGateway(primary_provider=provider, retry_delay=0)

        completion = await gateway.complete("sys", "payload")

        assert not completion.ok
        assert completion.attempts == 1
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_error_completions_are_retried(self):
        provider = FakeProvider(error="overloaded")
        gateway = LLMGateway(primary_provider=provider, max_retries=1, retry_delay=0)

        completion = await gateway.complete("sys", "payload")

        assert completion.error == "overloaded"
        assert completion.attempts == 2
        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_empty_text_is_a_failure(self):
        provider = FakeProvider(replies=["   ", "{}"])
        gateway = LLMGateway(primary_provider=provider, max_retries=1, retry_delay=0)

        completion = await gateway.complete("sys", "payload")

        assert completion.text == "{}"
        assert completion.attempts == 2

    @pytest.mark.asyncio
    async def test_falls_back_on_primary_failure(self):
        primary = FakeProvider(name="primary", raises=RuntimeError("down"))
        fallback = FakeProvider(name="backup", replies=["from backup"])
        gateway = LLMGateway(primary, fallback, max_retries=0, retry_delay=0)

        completion = await gateway.complete("sys", "payload")

        assert completion.provider == "backup"
        assert completion.text == "from backup"
        assert gateway.providers == ["primary", "backup"]

    @pytest.mark.asyncio
    async def test_timeout_becomes_error(self):
        gateway = LLMGateway(SlowProvider(), max_retries=0, retry_delay=0, timeout=0.01)

        completion = await gateway.complete("sys", "payload")

        assert not completion.ok
        assert "timed out" in completion.error

    @pytest.mark.asyncio
    async def test_all_failed_never_raises(self):
        primary = FakeProvider(name="a", raises=RuntimeError("a down"))
        fallback = FakeProvider(name="b", raises=RuntimeError("b down"))
        gateway = LLMGateway(primary, fallback, max_retries=0, retry_delay=0)

        completion = await gateway.complete("sys", "payload")

        assert completion.provider == "b"
        assert completion.error == "b down"
        assert completion.text == ""


class TestProviders:
    """Tests for provider lookup, configuration and SDK translation."""

    def test_get_provider(self):
        provider = get_provider("Claude", api_key="k", model="claude-test")
        assert isinstance(provider, ClaudeProvider)
        assert provider.model == "claude-test"

        gpt = get_provider("gpt", api_key="k")
        assert isinstance(gpt, OpenAIProvider)
        assert gpt.model == OpenAIProvider.default_model

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            get_provider("parrot", api_key="k")

    def test_build_gateway_without_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert build_gateway(LLMConfig()) is None

    def test_build_gateway_with_fallback(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        config = LLMConfig(
            primary_provider="openai",
            fallback_provider="claude",
            openai_api_key="sk-test",
            anthropic_api_key="ant-test",
            max_retries=1,
        )
        gateway = build_gateway(config)
        assert gateway is not None
        assert gateway.providers == ["openai", "claude"]
        assert gateway.max_retries == 1

    def test_build_gateway_key_from_env(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "ant-env")
        gateway = build_gateway(LLMConfig(primary_provider="claude"))
        assert gateway is not None
        assert gateway.primary.api_key == "ant-env"

    def test_default_config_is_single_shot(self):
        gateway = build_gateway(LLMConfig(openai_api_key="sk-test"))
        assert gateway is not None
        assert gateway.max_retries == 0

    @pytest.mark.asyncio
    async def test_openai_request_shape(self):
        create = AsyncRecorder(SimpleNamespace(
            model="gpt-4o-mini-2024",
            choices=[SimpleNamespace(message=SimpleNamespace(content=' {"a": 1} '))],
            usage=SimpleNamespace(prompt_tokens=12, completion_tokens=5),
        ))
        provider = OpenAIProvider(api_key="k")
        provider._client = SimpleNamespace(
            chat=SimpleNamespace(completions=SimpleNamespace(create=create))
        )

        completion = await provider.complete(CompletionRequest("sys", "payload", 40, 0.1))

        assert create.kwargs["messages"] == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "payload"},
        ]
        assert (create.kwargs["max_tokens"], create.kwargs["temperature"]) == (40, 0.1)
        assert completion.text == '{"a": 1}'
        assert (completion.input_tokens, completion.output_tokens) == (12, 5)
        assert completion.provider == "openai"
        assert completion.latency_ms >= 0

    @pytest.mark.asyncio
    async def test_claude_joins_text_blocks(self):
        create = AsyncRecorder(SimpleNamespace(
            model="claude-test",
            content=[
                SimpleNamespace(type="text", text='{"goal": '),
                SimpleNamespace(type="tool_use", text="ignored"),
                SimpleNamespace(type="text", text='"Run"}'),
            ],
            usage=SimpleNamespace(input_tokens=20, output_tokens=8),
        ))
        provider = ClaudeProvider(api_key="k")
        provider._client = SimpleNamespace(messages=SimpleNamespace(create=create))

        completion = await provider.complete(CompletionRequest("sys", "payload"))

        assert create.kwargs["system"] == "sys"
        assert create.kwargs["messages"] == [{"role": "user", "content": "payload"}]
        assert completion.text == '{"goal": "Run"}'
        assert completion.model == "claude-test"


class TestStructured:
    """Tests for lenient JSON extraction."""

    def test_clean_fence(self):
        assert clean_json_text('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert clean_json_text("  plain  ") == "plain"

    @pytest.mark.parametrize("text,expected", [
        ('{"a": 1}', {"a": 1}),
        ("```\n[1, 2]\n```", [1, 2]),
        ('Here you go: {"a": {"b": 2}} hope that helps', {"a": {"b": 2}}),
        ('noise [{"title": "x"}] trailing {', [{"title": "x"}]),
    ])
    def test_extract(self, text, expected):
        assert extract_json(text) == expected

    @pytest.mark.parametrize("text", [None, "", "no json", "42", '"just a string"', "{broken"])
    def test_extract_none(self, text):
        assert extract_json(text) is None
