"""
Text Normalizer
===============
Rebuilds an ordered text stream from positioned page fragments.

There is no real line structure in extracted page text, only coordinates,
so a line break is inserted whenever the vertical position jumps.
"""

from __future__ import annotations

from typing import Iterable

from .models import TextFragment

LINE_BREAK_THRESHOLD = 5.0
PAGE_SEPARATOR = "\n\n"


def fragments_to_text(
    fragments: Iterable[TextFragment],
    threshold: float = LINE_BREAK_THRESHOLD,
) -> str:
    """
    Concatenate fragments, inserting a newline whenever the vertical
    coordinate moves by more than ``threshold`` from the previous fragment.
    """
    parts: list[str] = []
    last_y = None

    for fragment in fragments:
        if last_y is not None and abs(last_y - fragment.y) > threshold:
            parts.append("\n")
        parts.append(fragment.text)
        last_y = fragment.y

    return "".join(parts)


def join_pages(page_texts: Iterable[str]) -> str:
    """Whole-document text: every page followed by a blank line."""
    return "".join(text + PAGE_SEPARATOR for text in page_texts)


def pages_to_texts(
    pages: Iterable[Iterable[TextFragment]],
    threshold: float = LINE_BREAK_THRESHOLD,
) -> list[str]:
    return [fragments_to_text(page, threshold) for page in pages]
