"""Tests for bundled and privately overridden resources."""

from pathlib import Path

import pytest

from content_wizard.resources import (
    BUNDLED_DIR,
    PRIVATE_DIR_ENV,
    locate,
    read_yaml,
    render_prompt,
    safe_format,
)


class TestLocate:
    def test_bundled_without_override(self, monkeypatch) -> None:
        monkeypatch.delenv(PRIVATE_DIR_ENV, raising=False)
        assert locate("profiles/defaults.yaml") == BUNDLED_DIR / "profiles" / "defaults.yaml"
        assert "models" in read_yaml("profiles/defaults.yaml")

    def test_private_copy_wins(self, monkeypatch, tmp_path: Path) -> None:
        prompt = tmp_path / "prompts" / "cover_image.txt"
        prompt.parent.mkdir()
        prompt.write_text("Poster for {title}\n", encoding="utf-8")
        monkeypatch.setenv(PRIVATE_DIR_ENV, str(tmp_path))

        assert locate("prompts/cover_image.txt") == prompt
        assert render_prompt("cover_image", title="Tides") == "Poster for Tides"

    def test_missing_private_file_falls_back(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setenv(PRIVATE_DIR_ENV, str(tmp_path))
        assert locate("prompts/document.txt") == BUNDLED_DIR / "prompts" / "document.txt"

    def test_nonexistent_private_dir_is_ignored(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setenv(PRIVATE_DIR_ENV, str(tmp_path / "nowhere"))
        assert locate("prompts/document.txt").parent.parent == BUNDLED_DIR

    def test_unknown_resource(self, monkeypatch) -> None:
        monkeypatch.delenv(PRIVATE_DIR_ENV, raising=False)
        with pytest.raises(FileNotFoundError, match="prompts/missing.txt"):
            locate("prompts/missing.txt")


def test_safe_format_leaves_other_braces() -> None:
    template = 'Return {"title": "..."} about {topic} and {unknown}'
    assert safe_format(template, topic="tides") == 'Return {"title": "..."} about tides and {unknown}'
