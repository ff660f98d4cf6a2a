"""Tests for download formats and export folders."""

from pathlib import Path

from content_wizard.encoding import pcm_to_wav
from content_wizard.export import (
    attribution_line,
    export_script_text,
    export_slides_markdown,
    export_word_document,
)
from content_wizard.models import (
    AssetBundle,
    GenerationConfig,
    MediaAsset,
    Script,
    Slide,
    TextSection,
    VideoSection,
)
from content_wizard.storage import AUDIO_FILENAME, export_filename, save_exports, slugify

OWNER = "Kong Chun Yin"


def _script() -> Script:
    return Script(
        title="Chips & Tariffs",
        subtitle="Supply chains",
        sections=[
            TextSection(title="Intro", content="Hello."),
            TextSection(title="Copyright", content=attribution_line(OWNER, 2025), attribution=True),
        ],
        config=GenerationConfig(),
    )


def test_attribution_line() -> None:
    assert attribution_line(OWNER, 2025) == "© 2025 Kong Chun Yin. All Rights Reserved."


def test_export_script_text() -> None:
    text = export_script_text(_script(), owner=OWNER, year=2025)
    assert text == (
        "Chips & Tariffs\n\nSupply chains\n\n"
        + "=" * 40 + "\n\n"
        "--- Intro ---\n\nHello.\n\n"
        "--- Copyright ---\n\n© 2025 Kong Chun Yin. All Rights Reserved.\n\n"
        "\n\n" + "=" * 40 + "\n© 2025 Kong Chun Yin. All Rights Reserved."
    )


def test_export_script_text_includes_visuals() -> None:
    script = Script(
        title="Clip",
        sections=[VideoSection(title="Open", content="Hi", visual_prompt="Skyline at dawn")],
        config=GenerationConfig(format="Video Script"),
    )
    assert "--- Open ---\n\n[Visual: Skyline at dawn]\nHi\n\n" in export_script_text(script, owner=OWNER)


def test_export_slides_markdown() -> None:
    slides = [Slide(title="Why", bullet_points=["a", "b"], speaker_notes="Say it")]
    md = export_slides_markdown("Deck", slides, owner=OWNER, year=2025)
    assert md.startswith("# Slide Deck: Deck\n\n## Slide 1: Why\n- a\n- b\n\n*Speaker Notes: Say it*\n\n---\n\n")
    assert md.endswith("© 2025 Kong Chun Yin. All Rights Reserved.")


def test_export_word_document() -> None:
    doc = export_word_document("A <b> title", "<h2>Intro</h2>", owner=OWNER, year=2025).decode("utf-8")
    assert doc.startswith("\ufeff<html")
    assert "<title>A &lt;b&gt; title</title>" in doc
    assert "<h2>Intro</h2>" in doc
    assert doc.endswith("</body></html>")
    assert "© 2025 Kong Chun Yin. All Rights Reserved." in doc


def test_export_word_document_inlines_cover() -> None:
    cover = MediaAsset(mime_type="image/png", data=b"abc")
    doc = export_word_document("T", "<p>Body</p>", owner=OWNER, cover=cover).decode("utf-8")
    assert '<img src="data:image/png;base64,YWJj"' in doc
    assert doc.index("<img") < doc.index("<p>Body</p>")

    assert "<img" not in export_word_document("T", "<p>Body</p>", owner=OWNER).decode("utf-8")


def test_export_filename() -> None:
    assert slugify("Chips & Tariffs!") == "chips-tariffs"
    assert export_filename("script", "Chips & Tariffs", ".txt") == "script-chips-tari.txt"
    assert export_filename("cover", "???", ".png") == "cover-untitled.png"


def test_save_exports(tmp_path: Path) -> None:
    assets = AssetBundle(
        cover_image=MediaAsset(mime_type="image/png", data=b"\x89PNG"),
        audio=MediaAsset(mime_type="audio/wav", data=pcm_to_wav(b"\x00\x00")),
        slides=[Slide(title="One")],
        document="<p>Body</p>",
    )
    exported = save_exports(tmp_path, _script(), assets, owner=OWNER, year=2025)

    assert set(exported.files) == {"script", "image", "audio", "slides", "document"}
    assert exported.export_dir.parent == tmp_path
    assert exported.files["audio"].name == AUDIO_FILENAME
    assert exported.files["image"].read_bytes() == b"\x89PNG"
    assert exported.files["document"].read_bytes().startswith("\ufeff".encode("utf-8"))
    assert b"data:image/png;base64,iVBORw==" in exported.files["document"].read_bytes()


def test_save_exports_only_populated_assets(tmp_path: Path) -> None:
    exported = save_exports(tmp_path, _script(), AssetBundle(), owner=OWNER)
    assert list(exported.files) == ["script"]
