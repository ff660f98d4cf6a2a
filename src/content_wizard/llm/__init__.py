"""Generative collaborator abstraction."""

from content_wizard.llm.base import (
    GenerationOptions,
    GenerationResult,
    GenerativeClient,
    InlinePayload,
)

__all__ = ["GenerationOptions", "GenerationResult", "GenerativeClient", "InlinePayload"]
