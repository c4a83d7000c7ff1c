from __future__ import annotations

import os
from types import SimpleNamespace
from typing import Any

import pytest

# Deterministic, offline-friendly tests
os.environ.setdefault("LANGFUSE_ENABLED", "0")
os.environ.pop("FUNCTION_KEY", None)

from shared.settings import OpenAIApiSettings, PromptSettings  # noqa: E402


class FakeChatClient:
    """Stands in for the OpenAI client; records every completions call."""

    def __init__(self, reply: Any = "Hi there!", error: Exception | None = None):
        self.calls: list[dict] = []
        self.closed = False
        self._reply = reply
        self._error = error
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def __enter__(self) -> FakeChatClient:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.closed = True

    def _create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self._error is not None:
            raise self._error
        message = SimpleNamespace(role="assistant", content=self._reply)
        return SimpleNamespace(choices=[SimpleNamespace(index=0, message=message)])


@pytest.fixture
def openai_settings() -> OpenAIApiSettings:
    return OpenAIApiSettings(
        version="2023-05-15",
        deployment_id="chat-deployment",
        instance="social-assistant",
        endpoint="https://{0}.openai.azure.com/",
        auth_key="test-key",
    )


@pytest.fixture
def prompt_settings() -> PromptSettings:
    return PromptSettings(
        system="You write short social media posts.",
        users=["Post about coffee", "Post about rain", "Post about Mondays"],
        assistants=["Coffee first!", "Rainy days, cosy vibes.", "Mondays, again."],
    )


@pytest.fixture
def fake_client() -> FakeChatClient:
    return FakeChatClient()


@pytest.fixture
def fake_client_cls():
    return FakeChatClient
