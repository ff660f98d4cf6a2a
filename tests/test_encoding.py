"""Tests for tolerant JSON extraction and WAV packaging."""

import base64
import struct

import pytest

from content_wizard.encoding import (
    WAV_HEADER_SIZE,
    data_uri,
    decode_inline_payload,
    extract_json,
    json_span,
    pcm_to_wav,
    strip_code_fences,
    wav_pcm_payload,
)
from content_wizard.errors import MalformedResponseError


class TestExtractJson:
    def test_strips_fences(self) -> None:
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}\n'

    def test_fenced_object(self) -> None:
        assert extract_json('```json\n{"title": "X", "n": 2}\n```') == {"title": "X", "n": 2}

    def test_array_wrapped_in_prose(self) -> None:
        text = 'Here are the topics: [{"title": "A"}, {"title": "B"}] Hope this helps!'
        assert extract_json(text) == [{"title": "A"}, {"title": "B"}]

    def test_first_opening_bracket_wins(self) -> None:
        assert extract_json('noise {"items": [1, 2]} trailing') == {"items": [1, 2]}

    def test_no_brackets(self) -> None:
        with pytest.raises(MalformedResponseError):
            extract_json("I could not find anything.")

    def test_close_before_open(self) -> None:
        with pytest.raises(MalformedResponseError):
            json_span("] nothing here [")

    def test_invalid_json_span(self) -> None:
        with pytest.raises(MalformedResponseError, match="Invalid JSON"):
            extract_json("{title: unquoted}")


class TestWav:
    def test_header_fields(self) -> None:
        pcm = b"\x01\x00\x02\x00" * 10
        wav = pcm_to_wav(pcm)
        assert len(wav) == WAV_HEADER_SIZE + len(pcm)
        fields = struct.unpack("<4sI4s4sIHHIIHH4sI", wav[:WAV_HEADER_SIZE])
        assert fields == (
            b"RIFF", 36 + len(pcm), b"WAVE", b"fmt ", 16, 1, 1,
            24000, 48000, 2, 16, b"data", len(pcm),
        )
        assert wav[WAV_HEADER_SIZE:] == pcm

    def test_empty_pcm(self) -> None:
        wav = pcm_to_wav(b"")
        assert len(wav) == WAV_HEADER_SIZE
        assert wav_pcm_payload(wav) == b""

    def test_custom_sample_rate(self) -> None:
        wav = pcm_to_wav(b"\x00\x00", sample_rate=16000)
        assert struct.unpack_from("<II", wav, 24) == (16000, 32000)

    def test_payload_recovers_pcm(self) -> None:
        pcm = bytes(range(200))
        assert wav_pcm_payload(pcm_to_wav(pcm)) == pcm

    def test_payload_rejects_other_containers(self) -> None:
        with pytest.raises(ValueError):
            wav_pcm_payload(b"ID3" + b"\x00" * 60)


def test_decode_inline_payload() -> None:
    raw = b"\x89PNG\r\n"
    assert decode_inline_payload(base64.b64encode(raw).decode()) == raw
    assert decode_inline_payload(raw) == raw


def test_data_uri() -> None:
    assert data_uri("image/png", b"abc") == "data:image/png;base64,YWJj"
