"""Download formats: plain-text script, Markdown slide outline, Word-compatible .doc."""

from __future__ import annotations

import html
from datetime import date
from typing import List, Optional

from content_wizard.models import MediaAsset, Script, Slide, VideoSection

RULE = "=" * 40

WORD_HEADER = (
    "<html xmlns:o='urn:schemas-microsoft-com:office:office' "
    "xmlns:w='urn:schemas-microsoft-com:office:word' "
    "xmlns='http://www.w3.org/TR/REC-html40'>"
    "<head><meta charset='utf-8'><title>{title}</title></head><body>"
)
WORD_FOOTER_STYLE = (
    "text-align:center; margin-top: 50px; font-size: 0.8em; color: #666; "
    "border-top: 1px solid #ccc; padding-top: 20px;"
)


def copyright_notice(owner: str, year: Optional[int] = None) -> str:
    return f"© {year or date.today().year} {owner}"


def attribution_line(owner: str, year: Optional[int] = None) -> str:
    return f"{copyright_notice(owner, year)}. All Rights Reserved."


def export_script_text(script: Script, owner: str, year: Optional[int] = None) -> str:
    parts = [f"{script.title}\n\n{script.subtitle}\n\n", f"{RULE}\n\n"]
    for section in script.sections:
        parts.append(f"--- {section.title} ---\n\n")
        if isinstance(section, VideoSection) and section.visual_prompt:
            parts.append(f"[Visual: {section.visual_prompt}]\n")
        parts.append(f"{section.content}\n\n")
    parts.append(f"\n\n{RULE}\n{attribution_line(owner, year)}")
    return "".join(parts)


def export_slides_markdown(
    title: str,
    slides: List[Slide],
    owner: str,
    year: Optional[int] = None,
) -> str:
    parts = [f"# Slide Deck: {title}\n\n"]
    for i, slide in enumerate(slides, 1):
        parts.append(f"## Slide {i}: {slide.title}\n")
        parts.extend(f"- {bullet}\n" for bullet in slide.bullet_points)
        parts.append(f"\n*Speaker Notes: {slide.speaker_notes}*\n\n---\n\n")
    parts.append(f"\n\n{attribution_line(owner, year)}")
    return "".join(parts)


def export_word_document(
    title: str,
    fragment: str,
    owner: str,
    year: Optional[int] = None,
    cover: Optional[MediaAsset] = None,
) -> bytes:
    """Wrap an HTML body fragment in an Office HTML shell, BOM-prefixed.

    Word opens the result when saved with a ``.doc`` extension. A cover image,
    when given, is inlined as a data URI above the body.
    """
    header = WORD_HEADER.replace("{title}", html.escape(title))
    if cover is not None:
        header += f'<p><img src="{cover.data_uri()}" alt="Cover" style="max-width:100%"/></p>'
    footer = (
        f'<div style="{WORD_FOOTER_STYLE}">{html.escape(attribution_line(owner, year))}</div>'
        "</body></html>"
    )
    return ("\ufeff" + header + fragment + footer).encode("utf-8")
