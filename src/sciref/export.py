"""Export a manuscript with citation markers and a numbered bibliography."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from sciref.models import Reference, SearchSession, SessionStatus


@dataclass(frozen=True)
class Highlight:
    """A highlighted span of the manuscript and the session that searched it."""
    start: int
    end: int
    session_id: str


def citation_key(ref: Reference) -> str:
    return f"{ref.title.strip().lower()}-{ref.year}"


def format_entry(number: int, ref: Reference) -> str:
    return f"[{number}] {ref.title}. {ref.publication}. {ref.year}. Available at: {ref.url}"


class Bibliography:
    """References numbered in first-cited order, deduplicated by title and year."""

    def __init__(self):
        self._numbers: dict[str, int] = {}
        self.entries: list[Reference] = []

    def __len__(self) -> int:
        return len(self.entries)

    def cite(self, ref: Reference) -> int:
        key = citation_key(ref)
        if key not in self._numbers:
            self.entries.append(ref)
            self._numbers[key] = len(self.entries)
        return self._numbers[key]

    def lines(self) -> list[str]:
        return [format_entry(i, ref) for i, ref in enumerate(self.entries, 1)]


def _citable(session: Optional[SearchSession]) -> list[Reference]:
    if session is None or session.status is not SessionStatus.SUCCESS:
        return []
    return session.visible


def build_bibliography(sessions: Iterable[SearchSession]) -> Bibliography:
    bib = Bibliography()
    for session in sessions:
        for ref in _citable(session):
            bib.cite(ref)
    return bib


def export_manuscript(
    full_text: str,
    highlights: list[Highlight],
    lookup: Callable[[str], Optional[SearchSession]],
) -> str:
    """Insert `` [n, m]`` after each cited highlight and append the references.

    Overlapping highlights after the first are ignored.
    """
    bib = Bibliography()
    parts: list[str] = []
    cursor = 0

    for h in sorted(highlights, key=lambda h: h.start):
        if h.start < cursor:
            continue
        parts.append(full_text[cursor:h.end])
        cursor = h.end

        numbers = [bib.cite(ref) for ref in _citable(lookup(h.session_id))]
        if numbers:
            parts.append(f" [{', '.join(str(n) for n in numbers)}]")

    parts.append(full_text[cursor:])
    body = "".join(parts).strip()
    return f"{body}\n\nReferences:\n" + "\n".join(bib.lines())
