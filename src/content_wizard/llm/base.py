"""Base generative-client interface with a JSON-output helper."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from content_wizard.encoding import extract_json
from content_wizard.errors import MalformedResponseError


@dataclass
class GenerationOptions:
    """Provider-neutral request options.

    ``json_output`` asks for a JSON mime type; ``schema`` additionally
    constrains it. ``thinking_budget`` is only honoured by thinking models.
    """

    json_output: bool = False
    schema: Optional[Dict[str, Any]] = None
    system_instruction: Optional[str] = None
    use_search: bool = False
    voice: Optional[str] = None
    response_modalities: Optional[List[str]] = None
    aspect_ratio: Optional[str] = None
    image_size: Optional[str] = None
    thinking_budget: Optional[int] = None


@dataclass
class InlinePayload:
    mime_type: str
    data: bytes


@dataclass
class GenerationResult:
    text: str = ""
    payloads: List[InlinePayload] = field(default_factory=list)
    source_urls: List[str] = field(default_factory=list)

    def first_payload(self, prefix: str) -> Optional[InlinePayload]:
        """First inline payload whose mime type starts with *prefix* ("image/", "audio/")."""
        for payload in self.payloads:
            if payload.mime_type.startswith(prefix):
                return payload
        return None


class GenerativeClient(ABC):
    """Abstract base class for the generative collaborator."""

    @abstractmethod
    async def generate(
        self,
        model: str,
        prompt: str,
        options: Optional[GenerationOptions] = None,
    ) -> GenerationResult:
        """Send one request and return text, inline payloads and grounding URLs."""
        ...

    async def generate_json(
        self,
        model: str,
        prompt: str,
        options: Optional[GenerationOptions] = None,
    ) -> tuple[Any, GenerationResult]:
        """Generate, then parse the text through the tolerant JSON extractor.

        Returns the parsed value together with the raw result so callers can
        still read grounding metadata.
        """
        options = options or GenerationOptions(json_output=True)
        result = await self.generate(model, prompt, options)
        if not result.text.strip():
            raise MalformedResponseError("Empty response")
        return extract_json(result.text), result
