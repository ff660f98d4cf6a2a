"""Filesystem helpers for credentials and exported assets."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from content_wizard.export import (
    export_script_text,
    export_slides_markdown,
    export_word_document,
)
from content_wizard.models import AssetBundle, Script


def slugify(text: str, max_len: int = 60) -> str:
    """Create a filesystem-safe slug from a unicode string.

    - Lowercases
    - Keeps alphanumeric and unicode letters
    - Replaces whitespace / separators with '-'
    - Collapses consecutive dashes
    - Trims to *max_len* characters
    """
    text = text.lower()
    text = re.sub(r"[\s_/\\:;.,!?]+", "-", text)
    text = re.sub(r"[^\w-]", "", text, flags=re.UNICODE)
    text = re.sub(r"-{2,}", "-", text)
    text = text.strip("-")
    return text[:max_len].strip("-")


AUDIO_FILENAME = "intro-overview.wav"


def export_filename(prefix: str, title: str, suffix: str) -> str:
    """Download name such as ``script-<first ten slug chars>.txt``."""
    slug = slugify(title, max_len=10) or "untitled"
    return f"{prefix}-{slug}{suffix}"


def write_text(path: Path, content: str) -> None:
    """Write text content to a file, creating parent dirs if needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def write_bytes(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


def read_text(path: Path) -> Optional[str]:
    """Return the stripped file content, or None when missing or empty."""
    if not path.is_file():
        return None
    return path.read_text(encoding="utf-8").strip() or None


def create_export_dir(base_dir: str | Path, title: str) -> Path:
    """Create a timestamped export folder for one script."""
    base = Path(base_dir)
    base.mkdir(parents=True, exist_ok=True)

    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slugify(title)
    export_dir = base / (f"{ts}_{slug}" if slug else ts)
    export_dir.mkdir(parents=True, exist_ok=False)
    return export_dir


@dataclass
class ExportedFiles:
    """Paths written by :func:`save_exports`, keyed by artifact name."""

    export_dir: Path
    files: Dict[str, Path]


def save_exports(
    base_dir: str | Path,
    script: Script,
    assets: AssetBundle,
    owner: str,
    year: Optional[int] = None,
) -> ExportedFiles:
    """Write the script export plus every populated asset to a new folder."""
    export_dir = create_export_dir(base_dir, script.title)
    files: Dict[str, Path] = {}

    path = export_dir / export_filename("script", script.title, ".txt")
    write_text(path, export_script_text(script, owner=owner, year=year))
    files["script"] = path

    if assets.cover_image is not None:
        path = export_dir / export_filename("cover", script.title, ".png")
        write_bytes(path, assets.cover_image.data)
        files["image"] = path

    if assets.audio is not None:
        path = export_dir / AUDIO_FILENAME
        write_bytes(path, assets.audio.data)
        files["audio"] = path

    if assets.slides is not None:
        path = export_dir / export_filename("presentation", script.title, ".md")
        write_text(path, export_slides_markdown(script.title, assets.slides, owner=owner, year=year))
        files["slides"] = path

    if assets.document is not None:
        path = export_dir / export_filename("document", script.title, ".doc")
        document = export_word_document(
            script.title, assets.document, owner=owner, year=year, cover=assets.cover_image
        )
        write_bytes(path, document)
        files["document"] = path

    return ExportedFiles(export_dir=export_dir, files=files)
