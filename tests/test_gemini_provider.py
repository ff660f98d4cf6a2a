"""Tests for the Gemini provider: request config and response/error mapping."""

import asyncio
import base64
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from google.genai import errors as genai_errors
from google.genai import types

from content_wizard.errors import CredentialInvalidatedError, GatewayError
from content_wizard.llm import gemini_provider
from content_wizard.llm.base import GenerationOptions
from content_wizard.llm.gemini_provider import GeminiProvider, build_config


class TestBuildConfig:
    def test_safety_settings_always_present(self) -> None:
        config = build_config(GenerationOptions())
        assert len(config.safety_settings) == 4
        assert {s.threshold for s in config.safety_settings} == {types.HarmBlockThreshold.BLOCK_ONLY_HIGH}
        assert config.response_mime_type is None
        assert config.tools is None

    def test_json_with_schema_and_search(self) -> None:
        schema = {"type": "ARRAY", "items": {"type": "STRING"}}
        config = build_config(
            GenerationOptions(json_output=True, schema=schema, use_search=True, system_instruction="Be brief.")
        )
        assert config.response_mime_type == "application/json"
        assert config.response_schema is not None
        assert config.tools[0].google_search is not None

    def test_thinking_budget(self) -> None:
        config = build_config(GenerationOptions(thinking_budget=1024))
        assert config.thinking_config.thinking_budget == 1024

    def test_speech(self) -> None:
        config = build_config(GenerationOptions(response_modalities=["AUDIO"], voice="Kore"))
        assert config.response_modalities == ["AUDIO"]
        assert config.speech_config.voice_config.prebuilt_voice_config.voice_name == "Kore"

    def test_image(self) -> None:
        config = build_config(
            GenerationOptions(response_modalities=["TEXT", "IMAGE"], aspect_ratio="16:9", image_size="1K")
        )
        assert config.image_config.aspect_ratio == "16:9"
        assert config.image_config.image_size == "1K"


def _response(text=None, inline=None, urls=()):
    parts = []
    if inline is not None:
        parts.append(SimpleNamespace(inline_data=SimpleNamespace(mime_type=inline[0], data=inline[1])))
    chunks = [SimpleNamespace(web=SimpleNamespace(uri=url)) for url in urls]
    candidate = SimpleNamespace(
        content=SimpleNamespace(parts=parts),
        grounding_metadata=SimpleNamespace(grounding_chunks=chunks) if chunks else None,
    )
    return SimpleNamespace(text=text, candidates=[candidate])


@pytest.fixture
def sdk(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Patch genai.Client and return the mocked generate_content."""
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock()
    monkeypatch.setattr(gemini_provider.genai, "Client", MagicMock(return_value=client))
    return client.aio.models.generate_content


class TestGeminiProvider:
    def test_text_and_grounding(self, sdk: MagicMock) -> None:
        sdk.return_value = _response(text='[{"title": "A"}]', urls=["https://a", "https://b"])

        result = asyncio.run(GeminiProvider("key").generate("gemini-3-flash-preview", "hi"))

        assert result.text == '[{"title": "A"}]'
        assert result.source_urls == ["https://a", "https://b"]
        kwargs = sdk.await_args.kwargs
        assert kwargs["model"] == "gemini-3-flash-preview"
        assert kwargs["contents"] == "hi"
        assert isinstance(kwargs["config"], types.GenerateContentConfig)

    def test_inline_payload_decoded(self, sdk: MagicMock) -> None:
        pcm = b"\x01\x02\x03\x04"
        sdk.return_value = _response(inline=("audio/pcm", base64.b64encode(pcm).decode()))

        result = asyncio.run(GeminiProvider("key").generate("tts", "Hello"))

        assert result.text == ""
        assert result.first_payload("audio/").data == pcm

    def test_entity_not_found_invalidates_credential(self, sdk: MagicMock) -> None:
        sdk.side_effect = genai_errors.APIError(
            404, {"error": {"code": 404, "message": "Requested entity was not found.", "status": "NOT_FOUND"}}
        )
        with pytest.raises(CredentialInvalidatedError):
            asyncio.run(GeminiProvider("key").generate("m", "p"))

    def test_other_api_errors(self, sdk: MagicMock) -> None:
        sdk.side_effect = genai_errors.APIError(
            429, {"error": {"code": 429, "message": "Resource exhausted", "status": "RESOURCE_EXHAUSTED"}}
        )
        with pytest.raises(GatewayError, match="429") as excinfo:
            asyncio.run(GeminiProvider("key").generate("m", "p"))
        assert not isinstance(excinfo.value, CredentialInvalidatedError)

    def test_unknown_model_is_not_a_rejected_key(self, sdk: MagicMock) -> None:
        sdk.side_effect = genai_errors.APIError(
            404,
            {
                "error": {
                    "code": 404,
                    "message": "models/gemini-typo is not found for API version v1beta",
                    "status": "NOT_FOUND",
                }
            },
        )
        with pytest.raises(GatewayError, match="gemini-typo") as excinfo:
            asyncio.run(GeminiProvider("key").generate("gemini-typo", "p"))
        assert not isinstance(excinfo.value, CredentialInvalidatedError)
