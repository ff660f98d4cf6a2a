"""Pure encoding helpers: tolerant JSON extraction and PCM → WAV packaging."""

from __future__ import annotations

import base64
import json
import re
import struct
from typing import Any

from content_wizard.errors import MalformedResponseError

_FENCE_RE = re.compile(r"```[\w-]*[ \t]*\n?")

WAV_HEADER_SIZE = 44
DEFAULT_SAMPLE_RATE = 24000


def strip_code_fences(text: str) -> str:
    """Remove every markdown code-fence marker, keeping the enclosed text."""
    return _FENCE_RE.sub("", text)


def json_span(text: str) -> str:
    """Return the substring from the first opening bracket to the last closing one.

    Whichever of ``{`` / ``[`` opens first starts the span and whichever of
    ``}`` / ``]`` closes last ends it.
    """
    cleaned = strip_code_fences(text or "")
    starts = [i for i in (cleaned.find("{"), cleaned.find("[")) if i != -1]
    end = max(cleaned.rfind("}"), cleaned.rfind("]"))
    if not starts or end == -1:
        raise MalformedResponseError("No JSON object or array found in response")
    start = min(starts)
    if end <= start:
        raise MalformedResponseError("No JSON object or array found in response")
    return cleaned[start : end + 1]


def extract_json(text: str) -> Any:
    """Parse JSON out of noisy model output.

    Raises:
        MalformedResponseError: no bracket pair, or the span is not valid JSON.
    """
    span = json_span(text)
    try:
        return json.loads(span)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(f"Invalid JSON in response: {exc}") from exc


# ── Audio ────────────────────────────────────────────────────────────────────

def pcm_to_wav(pcm: bytes, sample_rate: int = DEFAULT_SAMPLE_RATE) -> bytes:
    """Wrap raw mono 16-bit little-endian PCM in a RIFF/WAVE container."""
    channels = 1
    bits_per_sample = 16
    block_align = channels * bits_per_sample // 8
    byte_rate = sample_rate * block_align
    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + len(pcm),
        b"WAVE",
        b"fmt ",
        16,
        1,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        b"data",
        len(pcm),
    )
    return header + bytes(pcm)


def wav_pcm_payload(wav: bytes) -> bytes:
    """Return the PCM region of a container built by :func:`pcm_to_wav`."""
    if len(wav) < WAV_HEADER_SIZE or wav[:4] != b"RIFF" or wav[36:40] != b"data":
        raise ValueError("Not a canonical 44-byte-header WAV container")
    (size,) = struct.unpack_from("<I", wav, 40)
    return wav[WAV_HEADER_SIZE : WAV_HEADER_SIZE + size]


def decode_inline_payload(data: bytes | str) -> bytes:
    """Inline payloads arrive as bytes or as base64 text; normalise to bytes."""
    if isinstance(data, str):
        return base64.b64decode(data)
    return bytes(data)


def data_uri(mime_type: str, data: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
