"""Order fetched candidates by the requested priority."""

from __future__ import annotations

import re

from sciref.models import Reference, SortPriority, normalize_title

_DIGITS_RE = re.compile(r"\d+")


def year_value(year: str) -> int:
    """First run of digits in a year string, 0 when there is none."""
    m = _DIGITS_RE.search(str(year or ""))
    return int(m.group()) if m else 0


def citation_value(ref: Reference) -> int:
    return ref.citation_count or 0


def rank(candidates: list[Reference], priority: SortPriority) -> list[Reference]:
    """Return a new list ordered by *priority*; ties keep input order.

    HIGH_IMPACT has no impact-factor data to sort on, so the provider's
    order (already requested by impact) is kept.
    """
    if priority is SortPriority.NEWEST:
        return sorted(candidates, key=lambda r: year_value(r.year), reverse=True)
    if priority is SortPriority.MOST_CITED:
        return sorted(candidates, key=citation_value, reverse=True)
    return list(candidates)


def dedupe(candidates: list[Reference]) -> list[Reference]:
    """Drop repeated titles, keeping the first occurrence."""
    seen: set[str] = set()
    unique = []
    for ref in candidates:
        key = normalize_title(ref.title)
        if key and key in seen:
            continue
        seen.add(key)
        unique.append(ref)
    return unique
