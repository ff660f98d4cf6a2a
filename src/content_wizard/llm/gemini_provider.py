"""Google Gemini provider built on the google-genai SDK."""

from __future__ import annotations

import logging
from typing import List, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from content_wizard.encoding import decode_inline_payload
from content_wizard.errors import CredentialInvalidatedError, GatewayError
from content_wizard.llm.base import (
    GenerationOptions,
    GenerationResult,
    GenerativeClient,
    InlinePayload,
)

logger = logging.getLogger(__name__)

ENTITY_NOT_FOUND = "Requested entity was not found"

# Block only high-confidence violations, uniformly across categories.
SAFETY_SETTINGS = [
    types.SafetySetting(category=category, threshold=types.HarmBlockThreshold.BLOCK_ONLY_HIGH)
    for category in (
        types.HarmCategory.HARM_CATEGORY_HARASSMENT,
        types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
        types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
        types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
    )
]


def build_config(options: GenerationOptions) -> types.GenerateContentConfig:
    """Translate provider-neutral options into a GenerateContentConfig."""
    kwargs: dict = {"safety_settings": SAFETY_SETTINGS}
    if options.system_instruction:
        kwargs["system_instruction"] = options.system_instruction
    if options.json_output or options.schema is not None:
        kwargs["response_mime_type"] = "application/json"
    if options.schema is not None:
        kwargs["response_schema"] = options.schema
    if options.use_search:
        kwargs["tools"] = [types.Tool(google_search=types.GoogleSearch())]
    if options.thinking_budget is not None:
        kwargs["thinking_config"] = types.ThinkingConfig(thinking_budget=options.thinking_budget)
    if options.response_modalities:
        kwargs["response_modalities"] = options.response_modalities
    if options.voice:
        kwargs["speech_config"] = types.SpeechConfig(
            voice_config=types.VoiceConfig(
                prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=options.voice),
            ),
        )
    if options.aspect_ratio or options.image_size:
        kwargs["image_config"] = types.ImageConfig(
            aspect_ratio=options.aspect_ratio,
            image_size=options.image_size,
        )
    return types.GenerateContentConfig(**kwargs)


def _response_text(response) -> str:
    # response.text concatenates text parts only; it is None for pure media replies
    try:
        return response.text or ""
    except ValueError:
        return ""


def _inline_payloads(response) -> List[InlinePayload]:
    payloads: List[InlinePayload] = []
    if not response.candidates:
        return payloads
    content = response.candidates[0].content
    for part in (content.parts if content and content.parts else []):
        if part.inline_data is not None and part.inline_data.data:
            payloads.append(
                InlinePayload(
                    mime_type=part.inline_data.mime_type or "application/octet-stream",
                    data=decode_inline_payload(part.inline_data.data),
                )
            )
    return payloads


def _grounding_urls(response) -> List[str]:
    if not response.candidates:
        return []
    metadata = response.candidates[0].grounding_metadata
    if metadata is None or not metadata.grounding_chunks:
        return []
    return [chunk.web.uri for chunk in metadata.grounding_chunks if chunk.web and chunk.web.uri]


class GeminiProvider(GenerativeClient):
    """Generative client backed by the Gemini API."""

    def __init__(self, api_key: str) -> None:
        self._client = genai.Client(api_key=api_key)

    async def generate(
        self,
        model: str,
        prompt: str,
        options: Optional[GenerationOptions] = None,
    ) -> GenerationResult:
        options = options or GenerationOptions()
        logger.debug("Calling %s (json=%s, search=%s)", model, options.json_output, options.use_search)
        try:
            response = await self._client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=build_config(options),
            )
        except genai_errors.APIError as exc:
            detail = exc.message or str(exc)
            # other 404s (e.g. an unknown model id) are ordinary upstream failures
            if ENTITY_NOT_FOUND in detail:
                raise CredentialInvalidatedError(detail) from exc
            raise GatewayError(f"Gemini API error ({exc.code}): {detail}") from exc

        return GenerationResult(
            text=_response_text(response),
            payloads=_inline_payloads(response),
            source_urls=_grounding_urls(response),
        )
