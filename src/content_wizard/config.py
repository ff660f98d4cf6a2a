"""Settings loaded from the bundled defaults profile plus env overrides."""

from __future__ import annotations

import os
from typing import Dict, List

from pydantic import BaseModel, Field

from content_wizard.models import GenerationConfig
from content_wizard.resources import read_yaml

DEFAULTS_PROFILE = "profiles/defaults.yaml"

# env var → key in Settings.models
MODEL_ENV_OVERRIDES = {
    "CONTENT_WIZARD_FAST_MODEL": "fast",
    "CONTENT_WIZARD_PRO_MODEL": "pro",
    "CONTENT_WIZARD_IMAGE_MODEL": "image",
    "CONTENT_WIZARD_SPEECH_MODEL": "speech",
}


class ModelIds(BaseModel):
    fast: str = "gemini-3-flash-preview"
    pro: str = "gemini-3-pro-preview"
    image: str = "gemini-3-pro-image-preview"
    speech: str = "gemini-2.5-flash-preview-tts"

    def for_tier(self, tier: str) -> str:
        return self.pro if tier == "pro" else self.fast


class SpeechSettings(BaseModel):
    voice: str = "Kore"
    sample_rate: int = 24000


class ImageSettings(BaseModel):
    aspect_ratio: str = "16:9"
    size: str = "1K"


class DiscoverySettings(BaseModel):
    default_category: str = "General"
    categories: List[str] = Field(default_factory=lambda: ["General"])


class ProgressSettings(BaseModel):
    interval_seconds: float = 0.5
    start: int = 10
    step: int = 3
    ceiling: int = Field(default=90, lt=100)


class Settings(BaseModel):
    models: ModelIds = Field(default_factory=ModelIds)
    speech: SpeechSettings = Field(default_factory=SpeechSettings)
    image: ImageSettings = Field(default_factory=ImageSettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    attribution: Dict[str, str] = Field(default_factory=lambda: {"owner": "Kong Chun Yin"})
    progress: ProgressSettings = Field(default_factory=ProgressSettings)

    @property
    def owner(self) -> str:
        return self.attribution.get("owner", "")


def load_settings(profile: str = DEFAULTS_PROFILE) -> Settings:
    """Read the defaults profile and apply model-id env overrides."""
    raw = read_yaml(profile) or {}
    models = dict(raw.get("models") or {})
    for env_var, key in MODEL_ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            models[key] = value
    raw["models"] = models
    return Settings.model_validate(raw)
