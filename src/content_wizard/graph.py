"""LangGraph pipelines for content-wizard.

Pipelines:
  - script:     Schema-constrained script generation with one loose-JSON fallback.
  - narration:  Spoken intro text, then speech synthesis packaged as WAV.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from langgraph.graph import END, StateGraph
from pydantic import BaseModel, ValidationError

from content_wizard.encoding import pcm_to_wav
from content_wizard.errors import MalformedResponseError, MissingPayloadError
from content_wizard.llm.base import GenerationOptions, GenerativeClient
from content_wizard.models import GenerationConfig, Script, section_model_for

logger = logging.getLogger(__name__)

DEFAULT_SPOKEN_TEXT = "Welcome to this presentation."


# ── Shared helpers ───────────────────────────────────────────────────────────

def _result_value(result: Any, key: str) -> Any:
    if isinstance(result, dict):
        return result.get(key)
    return getattr(result, key, None)


def script_schema(is_video: bool) -> Dict[str, Any]:
    """Response schema for a script; video scripts add visual/timestamp fields."""
    section_properties: Dict[str, Any] = {
        "title": {"type": "STRING"},
        "content": {"type": "STRING"},
    }
    if is_video:
        section_properties["visualPrompt"] = {"type": "STRING"}
        section_properties["timestampStr"] = {"type": "STRING"}
    return {
        "type": "OBJECT",
        "properties": {
            "title": {"type": "STRING"},
            "subtitleOrDescription": {"type": "STRING"},
            "tags": {"type": "ARRAY", "items": {"type": "STRING"}},
            "sections": {
                "type": "ARRAY",
                "items": {"type": "OBJECT", "properties": section_properties},
            },
        },
    }


def script_from_payload(data: Any, config: GenerationConfig) -> Script:
    """Validate a parsed script payload and build a Script with *config* attached.

    A generic ``content`` list stands in for a missing ``sections`` list.
    """
    if not isinstance(data, dict):
        raise MalformedResponseError("Script response is not a JSON object")
    sections = data.get("sections")
    if sections is None:
        sections = data.get("content")
    if not isinstance(sections, list):
        raise MalformedResponseError("Script response has no sections list")

    section_cls = section_model_for(config.format)
    try:
        return Script(
            title=data.get("title") or "",
            subtitle=data.get("subtitleOrDescription") or data.get("subtitle") or "",
            tags=[str(tag) for tag in data.get("tags") or []],
            sections=[
                section_cls.model_validate(
                    {k: v for k, v in item.items() if k not in ("kind", "attribution")}
                )
                for item in sections
                if isinstance(item, dict)
            ],
            config=config,
        )
    except (ValidationError, TypeError, AttributeError) as exc:
        raise MalformedResponseError(f"Script response has an invalid shape: {exc}") from exc


# ══════════════════════════════════════════════════════════════════════════════
# PIPELINE 1: Script generation
# ══════════════════════════════════════════════════════════════════════════════

class ScriptState(BaseModel):
    model: str
    prompt: str
    system_instruction: str
    response_schema: Dict[str, Any]
    config: Dict[str, Any]
    thinking_budget: Optional[int] = None
    script: Optional[Dict[str, Any]] = None
    strict_error: Optional[str] = None
    attempts: List[str] = []


def _make_attempt_node(client: GenerativeClient, strict: bool):
    """Return a node that requests a script, schema-constrained when *strict*.

    The strict node records a parse failure in ``strict_error`` so the graph
    can route to the loose node; the loose node lets it propagate.
    """
    mode = "strict" if strict else "loose"

    async def attempt(state: ScriptState) -> dict:
        config = GenerationConfig.model_validate(state.config)
        options = GenerationOptions(
            json_output=True,
            schema=state.response_schema if strict else None,
            system_instruction=state.system_instruction,
            thinking_budget=state.thinking_budget,
        )
        attempts = state.attempts + [mode]
        try:
            data, _ = await client.generate_json(state.model, state.prompt, options)
            script = script_from_payload(data, config)
        except MalformedResponseError as exc:
            if not strict:
                raise
            logger.warning("Strict script generation failed, retrying in loose mode: %s", exc)
            return {"strict_error": str(exc), "attempts": attempts}
        return {"script": script.model_dump(), "attempts": attempts}

    return attempt


def _route_after_strict(state: ScriptState) -> str:
    return END if state.script is not None else "loose"


def build_script_graph(client: GenerativeClient):
    """Build and compile the strict → (loose) script graph."""
    graph = StateGraph(ScriptState)
    graph.add_node("strict", _make_attempt_node(client, strict=True))
    graph.add_node("loose", _make_attempt_node(client, strict=False))
    graph.set_entry_point("strict")
    graph.add_conditional_edges("strict", _route_after_strict, {"loose": "loose", END: END})
    graph.add_edge("loose", END)
    return graph.compile()


async def run_script_pipeline(
    client: GenerativeClient,
    *,
    model: str,
    prompt: str,
    system_instruction: str,
    config: GenerationConfig,
    thinking_budget: Optional[int] = None,
) -> Script:
    """Run the script pipeline and return the parsed Script (no attribution yet).

    Raises:
        MalformedResponseError: both the strict and the loose attempt failed to parse.
        GatewayError: any upstream failure, never retried.
    """
    compiled = build_script_graph(client)
    initial = ScriptState(
        model=model,
        prompt=prompt,
        system_instruction=system_instruction,
        response_schema=script_schema(config.is_video),
        config=config.model_dump(),
        thinking_budget=thinking_budget,
    )
    result = await compiled.ainvoke(initial)

    data = _result_value(result, "script")
    if not data:
        raise MalformedResponseError("Script pipeline produced no output.")
    logger.debug("Script pipeline attempts: %s", _result_value(result, "attempts"))
    return Script.model_validate(data)


# ══════════════════════════════════════════════════════════════════════════════
# PIPELINE 2: Narrated intro
# ══════════════════════════════════════════════════════════════════════════════

class NarrationState(BaseModel):
    intro_prompt: str
    text_model: str
    speech_model: str
    voice: str
    sample_rate: int
    spoken_text: Optional[str] = None
    wav: Optional[bytes] = None


def _make_intro_node(client: GenerativeClient):
    async def intro(state: NarrationState) -> dict:
        result = await client.generate(state.text_model, state.intro_prompt)
        spoken = result.text.strip()
        if not spoken:
            logger.info("Intro overview came back empty; using the default greeting")
            spoken = DEFAULT_SPOKEN_TEXT
        return {"spoken_text": spoken}

    return intro


def _make_speech_node(client: GenerativeClient):
    async def speech(state: NarrationState) -> dict:
        options = GenerationOptions(response_modalities=["AUDIO"], voice=state.voice)
        result = await client.generate(state.speech_model, state.spoken_text or DEFAULT_SPOKEN_TEXT, options)
        payload = result.first_payload("audio/") or next(iter(result.payloads), None)
        if payload is None or not payload.data:
            raise MissingPayloadError("No audio generated")
        return {"wav": pcm_to_wav(payload.data, state.sample_rate)}

    return speech


def build_narration_graph(client: GenerativeClient):
    graph = StateGraph(NarrationState)
    graph.add_node("intro", _make_intro_node(client))
    graph.add_node("speech", _make_speech_node(client))
    graph.set_entry_point("intro")
    graph.add_edge("intro", "speech")
    graph.add_edge("speech", END)
    return graph.compile()


async def run_narration_pipeline(
    client: GenerativeClient,
    *,
    intro_prompt: str,
    text_model: str,
    speech_model: str,
    voice: str,
    sample_rate: int,
) -> tuple[str, bytes]:
    """Return (spoken_text, wav_bytes)."""
    compiled = build_narration_graph(client)
    result = await compiled.ainvoke(
        NarrationState(
            intro_prompt=intro_prompt,
            text_model=text_model,
            speech_model=speech_model,
            voice=voice,
            sample_rate=sample_rate,
        )
    )
    wav = _result_value(result, "wav")
    if not wav:
        raise MissingPayloadError("No audio generated")
    return _result_value(result, "spoken_text") or DEFAULT_SPOKEN_TEXT, wav
