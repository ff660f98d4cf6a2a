"""Prompt templates and profiles shipped with the package.

Every resource is addressed by a path relative to the package, such as
``prompts/script.txt`` or ``profiles/defaults.yaml``. Pointing
``CONTENT_WIZARD_PRIVATE_DIR`` at a directory with the same layout overrides
individual files; anything missing there falls back to the bundled copy.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Iterator

import yaml

logger = logging.getLogger(__name__)

PRIVATE_DIR_ENV = "CONTENT_WIZARD_PRIVATE_DIR"
BUNDLED_DIR = Path(__file__).resolve().parent


def private_dir() -> Path | None:
    raw = os.environ.get(PRIVATE_DIR_ENV, "").strip()
    if not raw:
        return None
    path = Path(raw).expanduser()
    return path if path.is_dir() else None


def _search_roots() -> Iterator[Path]:
    override = private_dir()
    if override is not None:
        yield override
    yield BUNDLED_DIR


def locate(rel_path: str) -> Path:
    """Return the first existing copy of ``rel_path``, private overrides first."""
    for root in _search_roots():
        candidate = root / rel_path
        if candidate.is_file():
            if root is not BUNDLED_DIR:
                logger.debug("Using private override %s", candidate)
            return candidate
    raise FileNotFoundError(f"No resource named {rel_path!r}")


def read_text(rel_path: str) -> str:
    return locate(rel_path).read_text(encoding="utf-8")


def read_yaml(rel_path: str) -> Any:
    return yaml.safe_load(read_text(rel_path))


def safe_format(template: str, **values: str) -> str:
    """Fill ``{name}`` placeholders for the given names only.

    Prompt templates carry literal JSON braces, so ``str.format`` is not usable.
    """
    for name, value in values.items():
        template = template.replace(f"{{{name}}}", value)
    return template


def render_prompt(name: str, **values: str) -> str:
    return safe_format(read_text(f"prompts/{name}.txt"), **values).strip()
