"""Pydantic v2 data models for content-wizard."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import IntEnum
from typing import Annotated, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field

from content_wizard.encoding import data_uri

ScriptFormat = Literal["Article", "Video Script", "Formal Report", "Newsletter"]
ModelTier = Literal["fast", "pro"]
AssetKind = Literal["image", "audio", "slides", "document"]

SCRIPT_FORMATS = ("Article", "Video Script", "Formal Report", "Newsletter")
MODEL_TIERS = ("fast", "pro")
ASSET_KINDS = ("image", "audio", "slides", "document")

CUSTOM_CATEGORY = "Custom"


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _WireModel(BaseModel):
    """Accepts both snake_case names and the collaborator's camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)


# ── Topic ────────────────────────────────────────────────────────────────────

class Topic(_WireModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    title: str
    summary: str = ""
    source_urls: List[str] = Field(default_factory=list, alias="sourceUrls", max_length=3)
    relevance_score: float = Field(default=50, alias="relevanceScore")
    category: Optional[str] = None

    @classmethod
    def custom(cls, title: str) -> "Topic":
        """A topic typed in by the user rather than discovered."""
        return cls(
            id=new_id("custom"),
            title=title.strip(),
            summary="Custom topic entered by user.",
            source_urls=[],
            relevance_score=100,
            category=CUSTOM_CATEGORY,
        )


# ── Generation config ────────────────────────────────────────────────────────

class GenerationConfig(_WireModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    word_count: int = Field(default=800, gt=0, alias="wordCount")
    style: str = "Analytical & Professional"
    model: ModelTier = "fast"
    author_role: str = Field(default="Industry Expert", alias="authorRole")
    format: ScriptFormat = "Article"
    language: str = "English"

    @property
    def is_video(self) -> bool:
        return self.format == "Video Script"


# ── Script ───────────────────────────────────────────────────────────────────

class TextSection(_WireModel):
    kind: Literal["text"] = "text"
    title: str = ""
    content: str = ""
    attribution: bool = False


class VideoSection(TextSection):
    """Section of a video script: adds visual direction and a timestamp label."""

    kind: Literal["video"] = "video"  # type: ignore[assignment]
    visual_prompt: Optional[str] = Field(default=None, alias="visualPrompt")
    timestamp: Optional[str] = Field(default=None, alias="timestampStr")


Section = Annotated[Union[TextSection, VideoSection], Field(discriminator="kind")]


def section_model_for(fmt: str) -> Type[TextSection]:
    return VideoSection if fmt == "Video Script" else TextSection


class Script(_WireModel):
    title: str
    subtitle: str = Field(default="", alias="subtitleOrDescription")
    tags: List[str] = Field(default_factory=list)
    sections: List[Section] = Field(default_factory=list)
    config: GenerationConfig

    def body_text(self, limit: Optional[int] = None, sep: str = "\n") -> str:
        sections = [s for s in self.sections if not s.attribution]
        if limit is not None:
            sections = sections[:limit]
        return sep.join(s.content for s in sections)


# ── Assets ───────────────────────────────────────────────────────────────────

class Slide(_WireModel):
    title: str = ""
    bullet_points: List[str] = Field(default_factory=list, alias="bulletPoints")
    speaker_notes: str = Field(default="", alias="speakerNotes")


class MediaAsset(BaseModel):
    """Binary asset (cover image or narrated audio) held in memory."""

    mime_type: str
    data: bytes

    def data_uri(self) -> str:
        return data_uri(self.mime_type, self.data)


class AssetBundle(BaseModel):
    cover_image: Optional[MediaAsset] = None
    audio: Optional[MediaAsset] = None
    slides: Optional[List[Slide]] = None
    document: Optional[str] = None


# field of AssetBundle populated by each asset kind
ASSET_FIELDS = {
    "image": "cover_image",
    "audio": "audio",
    "slides": "slides",
    "document": "document",
}


# ── History ──────────────────────────────────────────────────────────────────

class HistoryEntry(BaseModel):
    id: str
    updated_at: datetime = Field(default_factory=utcnow)
    topic: Topic
    config: GenerationConfig
    script: Script
    assets: AssetBundle = Field(default_factory=AssetBundle)


# ── Wizard ───────────────────────────────────────────────────────────────────

class WizardStep(IntEnum):
    API_KEY = 0
    DISCOVERY = 1
    CONFIGURATION = 2
    SCRIPTING = 3
    ASSETS = 4

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()


class WizardState(BaseModel):
    step: WizardStep = WizardStep.API_KEY
    furthest_step: WizardStep = WizardStep.API_KEY
    topic: Optional[Topic] = None
    config: Optional[GenerationConfig] = None
    script: Optional[Script] = None
    assets: AssetBundle = Field(default_factory=AssetBundle)
    processing: bool = False
    status: str = ""
    progress: int = Field(default=0, ge=0, le=100)

    @property
    def has_error(self) -> bool:
        return self.status.startswith("Error")
