"""Shared fixtures: a scripted generative client and fast settings."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, List, Optional

import pytest

from content_wizard.config import ProgressSettings, Settings
from content_wizard.gateway import GenerationGateway
from content_wizard.llm.base import GenerationOptions, GenerationResult, GenerativeClient

OWNER = "Kong Chun Yin"

SCRIPT_PAYLOAD = {
    "title": "Chips and Tariffs",
    "subtitleOrDescription": "How trade policy reshapes supply chains",
    "tags": ["trade", "semiconductors"],
    "sections": [
        {"title": "Introduction", "content": "Tariffs are back on the agenda."},
        {"title": "Analysis", "content": "Supply chains adapt slowly."},
    ],
}


@dataclass
class Call:
    model: str
    prompt: str
    options: GenerationOptions


class FakeClient(GenerativeClient):
    """Replays queued responses in order and records every request.

    A queued item may be a GenerationResult, a plain string (used as the
    text), an exception instance (raised), or a zero-arg coroutine function
    whose result is used in its place.
    """

    def __init__(self, *responses: Any) -> None:
        self.responses: List[Any] = list(responses)
        self.calls: List[Call] = []

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    async def generate(
        self,
        model: str,
        prompt: str,
        options: Optional[GenerationOptions] = None,
    ) -> GenerationResult:
        self.calls.append(Call(model, prompt, options or GenerationOptions()))
        if not self.responses:
            raise AssertionError(f"Unexpected generate() call for {model}")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            response = await response()
        if isinstance(response, str):
            return GenerationResult(text=response)
        return response


def script_json(**overrides: Any) -> str:
    return json.dumps({**SCRIPT_PAYLOAD, **overrides})


@pytest.fixture
def api_key(monkeypatch: pytest.MonkeyPatch, tmp_path) -> str:
    """A key in the environment and an isolated credential home."""
    monkeypatch.setenv("CONTENT_WIZARD_HOME", str(tmp_path / "home"))
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    return "test-key"


@pytest.fixture
def no_api_key(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("CONTENT_WIZARD_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)


@pytest.fixture
def settings() -> Settings:
    """Bundled defaults with a fast progress cadence."""
    return Settings(progress=ProgressSettings(interval_seconds=0.01, start=10, step=3, ceiling=90))


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def gateway(fake_client: FakeClient, settings: Settings) -> GenerationGateway:
    return GenerationGateway(client_factory=lambda key: fake_client, settings=settings)
