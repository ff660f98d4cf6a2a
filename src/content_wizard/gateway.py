"""Generation gateway: the single facade over the generative collaborator.

Every operation resolves the API key first (environment, then the local
credential file) so a missing key fails fast with MissingCredentialError.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from content_wizard.config import Settings, load_settings
from content_wizard.credentials import resolve_api_key
from content_wizard.encoding import extract_json, strip_code_fences
from content_wizard.errors import MalformedResponseError, MissingPayloadError
from content_wizard.export import attribution_line, copyright_notice
from content_wizard.graph import run_narration_pipeline, run_script_pipeline
from content_wizard.llm.base import GenerationOptions, GenerativeClient
from content_wizard.llm.gemini_provider import GeminiProvider
from content_wizard.models import (
    AssetKind,
    GenerationConfig,
    MediaAsset,
    Script,
    Slide,
    TextSection,
    Topic,
    VideoSection,
    new_id,
    section_model_for,
)
from content_wizard.resources import render_prompt

logger = logging.getLogger(__name__)

MAX_SOURCE_URLS = 3
THINKING_BUDGET = 1024
LONG_FORM_WORDS = 1000

# Wrapper keys tried, in order, when discovery does not return a bare list.
TOPIC_LIST_KEYS = ("topics", "items")

TOPIC_LIST_SCHEMA: Dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "title": {"type": "STRING"},
            "summary": {"type": "STRING"},
            "relevanceScore": {"type": "NUMBER", "description": "Score 1-100 based on interest"},
        },
    },
}

SLIDE_LIST_SCHEMA: Dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "title": {"type": "STRING"},
            "bulletPoints": {"type": "ARRAY", "items": {"type": "STRING"}},
            "speakerNotes": {"type": "STRING"},
        },
    },
}

AssetResult = Union[MediaAsset, List[Slide], str]


def topic_items(data: Any) -> List[Dict[str, Any]]:
    """Pick the topic list out of a discovery payload.

    Accepted shapes, in order: a bare list, then an object wrapping the list
    under one of TOPIC_LIST_KEYS. Anything else yields no topics. Items that
    are not objects with a non-empty string title are dropped.
    """
    items: Optional[List[Any]] = None
    if isinstance(data, list):
        items = data
    elif isinstance(data, dict):
        for key in TOPIC_LIST_KEYS:
            if isinstance(data.get(key), list):
                items = data[key]
                break
    if items is None:
        logger.warning("Unexpected JSON structure for topics: %.200r", data)
        return []
    return [
        item
        for item in items
        if isinstance(item, dict) and isinstance(item.get("title"), str) and item["title"].strip()
    ]


def _relevance(value: Any) -> float:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 50.0
    return min(max(score, 1.0), 100.0)


class GenerationGateway:
    """Discover topics, generate scripts and derive assets via the collaborator."""

    def __init__(
        self,
        client_factory: Callable[[str], GenerativeClient] = GeminiProvider,
        settings: Optional[Settings] = None,
    ) -> None:
        self._client_factory = client_factory
        self.settings = settings or load_settings()
        self._client: Optional[GenerativeClient] = None
        self._client_key: Optional[str] = None

    def client(self) -> GenerativeClient:
        """Return a client for the current key, rebuilding it when the key changes."""
        api_key = resolve_api_key()
        if self._client is None or api_key != self._client_key:
            self._client = self._client_factory(api_key)
            self._client_key = api_key
        return self._client

    @property
    def owner(self) -> str:
        return self.settings.owner

    # ── Discovery ────────────────────────────────────────────────────────────

    async def discover_topics(self, category: Optional[str] = None) -> List[Topic]:
        category = category or self.settings.discovery.default_category
        client = self.client()
        logger.info("Discovering topics for %s", category)

        options = GenerationOptions(json_output=True, schema=TOPIC_LIST_SCHEMA, use_search=True)
        result = await client.generate(
            self.settings.models.fast,
            render_prompt("discover_topics", category=category),
            options,
        )
        if not result.text.strip():
            return []

        items = topic_items(extract_json(result.text))
        urls = result.source_urls[:MAX_SOURCE_URLS]
        return [
            Topic(
                id=new_id("topic"),
                title=item["title"].strip(),
                summary=str(item.get("summary") or ""),
                relevance_score=_relevance(item.get("relevanceScore")),
                category=category,
                source_urls=list(urls),
            )
            for item in items
        ]

    # ── Script ───────────────────────────────────────────────────────────────

    def attribution_section(self, config: GenerationConfig) -> TextSection:
        section_cls = section_model_for(config.format)
        fields: Dict[str, Any] = {
            "title": "Copyright",
            "content": attribution_line(self.owner),
            "attribution": True,
        }
        if section_cls is VideoSection:
            fields["visual_prompt"] = "Copyright screen with logo and author name"
            fields["timestamp"] = "End"
        return section_cls(**fields)

    async def generate_script(self, topic: Topic, config: GenerationConfig) -> Script:
        client = self.client()
        logger.info("Generating %s about %r (%s words)", config.format, topic.title, config.word_count)

        video_fields = render_prompt("script_video_fields") if config.is_video else ""
        prompt = render_prompt(
            "script",
            author_role=config.author_role,
            format=config.format,
            title=topic.title,
            summary=topic.summary,
            category=topic.category or "General News",
            language=config.language,
            style=config.style,
            word_count=str(config.word_count),
            video_fields=video_fields,
        )
        thinking_budget = None
        if config.model == "pro" and config.word_count > LONG_FORM_WORDS:
            thinking_budget = THINKING_BUDGET

        script = await run_script_pipeline(
            client,
            model=self.settings.models.for_tier(config.model),
            prompt=prompt,
            system_instruction=render_prompt("script_system", format=config.format),
            config=config,
            thinking_budget=thinking_budget,
        )
        script.config = config
        script.sections.append(self.attribution_section(config))
        return script

    # ── Assets ───────────────────────────────────────────────────────────────

    async def generate_asset(self, kind: AssetKind, script: Script) -> AssetResult:
        handlers = {
            "image": self.generate_cover_image,
            "audio": self.generate_narration,
            "slides": self.generate_slide_deck,
            "document": self.generate_document,
        }
        if kind not in handlers:
            raise ValueError(f"Unknown asset kind '{kind}'. Choose from: {', '.join(handlers)}")
        return await handlers[kind](script)

    async def generate_cover_image(self, script: Script) -> MediaAsset:
        client = self.client()
        context = script.body_text(limit=1) or "Topic"
        options = GenerationOptions(
            response_modalities=["TEXT", "IMAGE"],
            aspect_ratio=self.settings.image.aspect_ratio,
            image_size=self.settings.image.size,
        )
        result = await client.generate(
            self.settings.models.image,
            render_prompt("cover_image", title=script.title, context=context),
            options,
        )
        payload = result.first_payload("image/") or next(iter(result.payloads), None)
        if payload is None:
            raise MissingPayloadError("No image generated")
        mime_type = payload.mime_type if payload.mime_type.startswith("image/") else "image/png"
        return MediaAsset(mime_type=mime_type, data=payload.data)

    async def generate_narration(self, script: Script) -> MediaAsset:
        client = self.client()
        spoken, wav = await run_narration_pipeline(
            client,
            intro_prompt=render_prompt(
                "narration_intro",
                title=script.title,
                sample=script.body_text(limit=2, sep=" "),
            ),
            text_model=self.settings.models.fast,
            speech_model=self.settings.models.speech,
            voice=self.settings.speech.voice,
            sample_rate=self.settings.speech.sample_rate,
        )
        logger.debug("Narrated intro: %s", spoken)
        return MediaAsset(mime_type="audio/wav", data=wav)

    def attribution_slide(self) -> Slide:
        return Slide(
            title="Copyright",
            bullet_points=[copyright_notice(self.owner), "All Rights Reserved."],
            speaker_notes="Closing attribution.",
        )

    async def generate_slide_deck(self, script: Script) -> List[Slide]:
        client = self.client()
        data, _ = await client.generate_json(
            self.settings.models.fast,
            render_prompt("slide_deck", title=script.title, content=script.body_text()),
            GenerationOptions(json_output=True, schema=SLIDE_LIST_SCHEMA),
        )
        if isinstance(data, dict) and isinstance(data.get("slides"), list):
            data = data["slides"]
        if not isinstance(data, list):
            raise MalformedResponseError("Slide deck response is not a JSON array")
        try:
            slides = [Slide.model_validate(item) for item in data]
        except ValidationError as exc:
            raise MalformedResponseError(f"Slide deck response has an invalid shape: {exc}") from exc
        slides.append(self.attribution_slide())
        return slides

    async def generate_document(self, script: Script) -> str:
        client = self.client()
        content = "\n".join(
            f"<h2>{s.title}</h2><p>{s.content}</p>" for s in script.sections if not s.attribution
        )
        result = await client.generate(
            self.settings.models.fast,
            render_prompt("document", owner=self.owner, title=script.title, content=content),
        )
        return strip_code_fences(result.text).strip()
