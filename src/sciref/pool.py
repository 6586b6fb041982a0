"""Visible/pool bookkeeping for a single search session.

A session shows at most ``num_references`` references; the rest of the ranked
fetch waits in the pool.  Disapproving a visible reference pulls a replacement
from the pool, and an empty pool asks the session manager for a refill.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from sciref.models import (
    DisapprovalLog,
    DisapprovalReason,
    Reference,
    SearchSession,
    normalize_title,
)
from sciref.ranking import citation_value, dedupe

logger = logging.getLogger(__name__)

_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


def split(candidates: list[Reference], k: int) -> tuple[list[Reference], list[Reference]]:
    return list(candidates[:k]), list(candidates[k:])


def raw_year_value(year: str) -> float:
    """Integer prefix of the raw year; unparsable years sort below everything."""
    m = _LEADING_INT_RE.match(str(year or ""))
    return int(m.group(1)) if m else float("-inf")


def _normalize_source(publication: str) -> str:
    return (publication or "").strip().lower()


def purge_source(pool: list[Reference], publication: str) -> list[Reference]:
    unwanted = _normalize_source(publication)
    return [r for r in pool if _normalize_source(r.publication) != unwanted]


def reorder_for_reason(pool: list[Reference], reason: DisapprovalReason) -> list[Reference]:
    if reason is DisapprovalReason.NOT_NEW:
        return sorted(pool, key=lambda r: raw_year_value(r.year), reverse=True)
    if reason is DisapprovalReason.LOW_IMPACT:
        return sorted(pool, key=citation_value, reverse=True)
    return list(pool)


def disapprove(
    session: SearchSession,
    index: int,
    reason: DisapprovalReason,
    log: DisapprovalLog,
) -> Optional[Reference]:
    """Remove ``visible[index]`` and promote a replacement from the pool.

    Returns the removed reference, or ``None`` when *index* is out of range.
    """
    if not 0 <= index < len(session.visible):
        return None

    removed = session.visible.pop(index)
    log.append(removed, reason)

    pool = session.pool
    if reason is DisapprovalReason.UNWANTED_SOURCE:
        before = len(pool)
        pool = purge_source(pool, removed.publication)
        logger.debug("Purged %d pool entries from %r", before - len(pool), removed.publication)

    if pool:
        pool = reorder_for_reason(pool, reason)
        session.visible.insert(index, pool.pop(0))

    session.pool = pool
    return removed


def needs_refill(session: SearchSession) -> bool:
    return not session.pool and not session.is_refilling


def refill_exclusions(session: SearchSession) -> list[str]:
    return [r.title for r in session.visible + session.pool]


def apply_refill(session: SearchSession, results: list[Reference]) -> None:
    """Top up the visible list from refill results, parking the rest in the pool."""
    present = {normalize_title(r.title) for r in session.visible + session.pool}
    fresh = [r for r in dedupe(results) if normalize_title(r.title) not in present]

    k = session.query_prefs.num_references
    if len(session.visible) < k and fresh:
        needed = k - len(session.visible)
        session.visible.extend(fresh[:needed])
        session.pool.extend(fresh[needed:])
    else:
        session.pool.extend(fresh)
