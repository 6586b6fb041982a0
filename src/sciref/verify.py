"""Reconcile verified references with the enriched originals.

The verification pass only echoes back title, authors, year and url, so its
output is matched to the original candidates by fuzzy title and merged: the
verifier may correct url/title/year, everything else comes from the original.
Verification is best-effort; any failure falls back to the unverified list.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Awaitable, Callable, Optional

from sciref.models import Reference, normalize_title
from sciref.parsing import parse_candidates

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[list[Reference]], Awaitable[str]]


def titles_match(a: str, b: str) -> bool:
    """Bidirectional containment on normalized titles."""
    if not a or not b:
        return False
    return a in b or b in a


def _find_original(confirmed_title: str, original: list[Reference]) -> Optional[Reference]:
    for ref in original:
        if titles_match(normalize_title(ref.title), confirmed_title):
            return ref
    return None


def merge_verified(original: list[Reference], confirmed: list[dict]) -> list[Reference]:
    """Keep only originals the verifier confirmed, in the verifier's order."""
    merged: list[Reference] = []
    for item in confirmed:
        norm = normalize_title(item.get("title"))
        match = _find_original(norm, original)
        if match is None:
            logger.debug("Dropping unverifiable reference: %s", item.get("title"))
            continue

        title = str(item.get("title") or "").strip()
        url = str(item.get("url") or "").strip()
        year = str(item.get("year") or "").strip()

        # A casing/punctuation variant is not a correction.
        if not title or norm == normalize_title(match.title):
            title = match.title

        merged.append(replace(
            match,
            title=title,
            url=url or match.url,
            year=year or match.year,
        ))
    return merged


async def verify_references(
    candidates: list[Reference],
    confirm: ConfirmFn,
) -> list[Reference]:
    """Run the verification pass, returning *candidates* unchanged on any failure."""
    if not candidates:
        return []

    try:
        raw = await confirm(candidates)
        confirmed = parse_candidates(raw)
        return merge_verified(candidates, confirmed)
    except Exception as e:
        logger.warning("Verification step failed, keeping unverified references: %s", e)
        return candidates
