"""
Shared fixtures for Draftline tests.
"""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from draftline.llm.gateway import Completion, CompletionRequest, LLMGateway

NEW_YORK = ZoneInfo("America/New_York")


class FakeProvider:
    """Provider that replays canned replies instead of calling a model."""

    def __init__(self, replies=None, name="fake", error=None, raises=None):
        self.name = name
        self.replies = list(replies or [])
        self.error = error
        self.raises = raises
        self.calls: list[CompletionRequest] = []

    async def complete(self, request: CompletionRequest) -> Completion:
        self.calls.append(request)
        if self.raises is not None:
            raise self.raises
        if self.error is not None:
            return Completion.failed(self.name, self.error)
        text = self.replies.pop(0) if self.replies else ""
        return Completion(text=text, provider=self.name, model="fake-1")


def make_gateway(*replies: str, **kwargs) -> tuple[LLMGateway, FakeProvider]:
    """A gateway over a FakeProvider, with no retry delay."""
    provider = FakeProvider(replies=replies, **kwargs)
    gateway = LLMGateway(primary_provider=provider, max_retries=0, retry_delay=0)
    return gateway, provider


@pytest.fixture
def now() -> datetime:
    """Tuesday 2025-09-09 09:00 in New York."""
    return datetime(2025, 9, 9, 9, 0, tzinfo=NEW_YORK)
