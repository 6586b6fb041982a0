"""Data models for references, search preferences and sessions."""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional

MAX_REFERENCES = 5
PRECEDING_CONTEXT_CHARS = 300

PUBLISHER_OPTIONS = [
    "Nature Portfolio", "Science (AAAS)", "Elsevier", "Springer Nature",
    "Wiley", "ACS", "IEEE", "RSC", "APS", "Taylor & Francis",
]

SOURCE_TYPE_OPTIONS = [
    "Research Article", "Review Article", "Patent",
    "Conference Proceedings", "Book Chapter",
]


class SortPriority(Enum):
    NEWEST = "Newest First"
    MOST_CITED = "Highly Cited"
    HIGH_IMPACT = "High Impact Journal"


class DisapprovalReason(Enum):
    NOT_NEW = "not new"
    NOT_RELEVANT = "not relevant"
    LOW_IMPACT = "not highly cited"
    UNWANTED_SOURCE = "unwanted source"


class ModelId(Enum):
    BEST = "gemini-3-pro-preview"
    BALANCED = "gemini-2.5-flash"
    FAST = "gemini-flash-lite-latest"


class SessionStatus(Enum):
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


def normalize_title(title: Any) -> str:
    """Lower-case a title and drop everything that is not a letter or digit."""
    return "".join(ch for ch in str(title or "").lower() if ch.isalnum())


def _coerce_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _coerce_count(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.replace(",", "").strip()
        if not value.isdigit():
            return None
    try:
        count = int(value)
    except (TypeError, ValueError):
        return None
    return count if count >= 0 else None


def _coerce_authors(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value.strip()]
    if isinstance(value, (list, tuple)):
        return [_coerce_str(a) for a in value if _coerce_str(a)]
    return [_coerce_str(value)]


@dataclass(frozen=True)
class Reference:
    """A single candidate citation returned by the provider."""

    title: str
    authors: list[str] = field(default_factory=list)
    year: str = ""
    publication: str = ""
    url: str = ""
    summary: str = ""
    relevance: str = ""
    citation_count: Optional[int] = None

    @classmethod
    def from_dict(cls, raw: dict) -> Reference:
        """Build a Reference from a loosely-typed provider record."""
        return cls(
            title=_coerce_str(raw.get("title")),
            authors=_coerce_authors(raw.get("authors")),
            year=_coerce_str(raw.get("year")),
            publication=_coerce_str(raw.get("publication")),
            url=_coerce_str(raw.get("url")),
            summary=_coerce_str(raw.get("summary")),
            relevance=_coerce_str(raw.get("relevance")),
            citation_count=_coerce_count(raw.get("citationCount", raw.get("citation_count"))),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": self.title,
            "authors": list(self.authors),
            "year": self.year,
            "publication": self.publication,
            "url": self.url,
            "summary": self.summary,
            "relevance": self.relevance,
        }
        if self.citation_count is not None:
            data["citationCount"] = self.citation_count
        return data


@dataclass
class SearchPreferences:
    """User controls for the next search.

    ``exclude_titles`` only travels on refill requests; sessions store a
    ``snapshot()`` with it cleared.
    """

    num_references: int = 1
    priority: SortPriority = SortPriority.MOST_CITED
    publisher_filter: list[str] = field(default_factory=list)
    source_types: list[str] = field(default_factory=list)
    year_start: str = "2018"
    model: str = ModelId.BALANCED.value
    exclude_titles: list[str] = field(default_factory=list)

    def __post_init__(self):
        try:
            num = int(self.num_references)
        except (TypeError, ValueError):
            num = 1
        self.num_references = max(1, min(num, MAX_REFERENCES))

    def snapshot(self) -> SearchPreferences:
        return replace(
            self,
            publisher_filter=list(self.publisher_filter),
            source_types=list(self.source_types),
            exclude_titles=[],
        )

    def with_exclusions(self, titles: list[str]) -> SearchPreferences:
        prefs = self.snapshot()
        prefs.exclude_titles = list(titles)
        return prefs


@dataclass(frozen=True)
class SelectionContext:
    """The highlighted span and the text around it, captured once per search."""

    full_text: str
    highlighted_text: str
    preceding_context: str = ""


@dataclass
class SearchSession:
    """One highlighted-text search and its evolving result state."""

    id: str
    context: SelectionContext
    query_prefs: SearchPreferences
    status: SessionStatus = SessionStatus.LOADING
    visible: list[Reference] = field(default_factory=list)
    pool: list[Reference] = field(default_factory=list)
    error_message: Optional[str] = None
    is_refilling: bool = False
    generation: int = 0

    def copy(self) -> SearchSession:
        return replace(
            self,
            visible=list(self.visible),
            pool=list(self.pool),
            query_prefs=self.query_prefs.snapshot(),
        )


@dataclass(frozen=True)
class DisapprovalRecord:
    reference: Reference
    reason: DisapprovalReason
    timestamp: float = field(default_factory=time.time)


class DisapprovalLog:
    """Append-only history of rejected references, shared across sessions."""

    def __init__(self):
        self._records: list[DisapprovalRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    def append(self, reference: Reference, reason: DisapprovalReason) -> DisapprovalRecord:
        record = DisapprovalRecord(reference=reference, reason=reason)
        self._records.append(record)
        return record

    @property
    def records(self) -> tuple[DisapprovalRecord, ...]:
        return tuple(self._records)

    def unwanted_sources(self) -> list[str]:
        """Publications rejected as unwanted sources, first-seen order."""
        seen: dict[str, None] = {}
        for r in self._records:
            if r.reason is DisapprovalReason.UNWANTED_SOURCE and r.reference.publication:
                seen.setdefault(r.reference.publication, None)
        return list(seen)

    def rejected_titles(self) -> list[str]:
        seen: dict[str, None] = {}
        for r in self._records:
            if r.reference.title:
                seen.setdefault(r.reference.title, None)
        return list(seen)
