"""Build a SelectionContext from a document and a highlighted span."""

from __future__ import annotations

from sciref.errors import ValidationError
from sciref.models import PRECEDING_CONTEXT_CHARS, SelectionContext


def selection_context(full_text: str, start: int, end: int) -> SelectionContext:
    """Capture the span ``full_text[start:end]`` and the text just before it."""
    if not 0 <= start < end <= len(full_text):
        raise ValidationError("Selection must be inside the document.")

    highlighted = full_text[start:end].strip()
    if not highlighted:
        raise ValidationError(
            "Please highlight specific text in the paragraph to find relevant references for it."
        )

    return SelectionContext(
        full_text=full_text,
        highlighted_text=highlighted,
        preceding_context=full_text[:start][-PRECEDING_CONTEXT_CHARS:],
    )


def find_span(full_text: str, phrase: str, *, occurrence: int = 1) -> tuple[int, int]:
    """Locate the *occurrence*-th match of *phrase* in *full_text*."""
    phrase = phrase.strip()
    if not phrase:
        raise ValidationError("Highlighted text must not be empty.")

    pos = -1
    for _ in range(max(occurrence, 1)):
        pos = full_text.find(phrase, pos + 1)
        if pos == -1:
            raise ValidationError(f"Highlighted text not found in document: {phrase[:80]!r}")
    return pos, pos + len(phrase)


def select_phrase(full_text: str, phrase: str, *, occurrence: int = 1) -> SelectionContext:
    start, end = find_span(full_text, phrase, occurrence=occurrence)
    return selection_context(full_text, start, end)
