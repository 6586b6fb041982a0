"""Search session lifecycle and routing of asynchronous fetch results.

Every highlighted span gets its own session.  Fetches run as asyncio tasks on
the caller's event loop and write back into the session table only if the
session still exists and the fetch belongs to its current generation:

- ``clear`` deletes a session, so a late completion finds nothing to update;
- ``retry`` bumps the generation, so only the most recently issued fetch is
  applied, whatever order the completions arrive in.

Disapprovals never suspend, so visible/pool stay consistent between events.
At most one refill per session is outstanding at a time.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from typing import Coroutine, Optional

from sciref import pool
from sciref.errors import ValidationError
from sciref.models import (
    DisapprovalLog,
    DisapprovalReason,
    Reference,
    SearchPreferences,
    SearchSession,
    SelectionContext,
    SessionStatus,
)
from sciref.provider import ReferenceProvider
from sciref.ranking import dedupe, rank

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "An unexpected error occurred."


class SessionManager:
    """Owns every search session of a document.

    Methods that issue fetches must be called from inside a running event
    loop; ``drain()`` waits for everything outstanding.
    """

    def __init__(
        self,
        provider: ReferenceProvider,
        *,
        history: Optional[DisapprovalLog] = None,
    ):
        self.provider = provider
        self.history = history if history is not None else DisapprovalLog()
        self._sessions: dict[str, SearchSession] = {}
        self._active_id: Optional[str] = None
        self._tasks: set[asyncio.Task] = set()
        self._seq = itertools.count(1)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def active_id(self) -> Optional[str]:
        return self._active_id

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: Optional[str] = None) -> Optional[SearchSession]:
        """Return a copy of a session (the active one by default)."""
        session = self._sessions.get(session_id or self._active_id or "")
        return session.copy() if session else None

    def sessions(self) -> list[SearchSession]:
        return [s.copy() for s in self._sessions.values()]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(self, context: SelectionContext, prefs: SearchPreferences) -> str:
        """Start a search for *context* and make it the active session."""
        if not context.highlighted_text.strip():
            raise ValidationError(
                "Please highlight specific text in the paragraph to find relevant references for it."
            )

        session_id = f"search-{int(time.time() * 1000)}-{next(self._seq)}"
        session = SearchSession(id=session_id, context=context, query_prefs=prefs.snapshot())
        # The fetch task cannot run before this method returns.
        self._issue_fetch(session)

        self._sessions[session_id] = session
        self._active_id = session_id
        logger.info("Created session %s for %r", session_id, context.highlighted_text[:60])
        return session_id

    def retry(
        self,
        session_id: Optional[str] = None,
        prefs: Optional[SearchPreferences] = None,
    ) -> bool:
        """Re-issue the fetch, optionally with new preferences.

        Any fetch or refill still in flight for the session becomes stale.
        """
        session = self._sessions.get(session_id or self._active_id or "")
        if session is None:
            return False

        session.generation += 1
        session.status = SessionStatus.LOADING
        session.error_message = None
        session.is_refilling = False
        if prefs is not None:
            session.query_prefs = prefs.snapshot()
        session.visible = []
        session.pool = []
        logger.info("Retrying session %s (generation %d)", session.id, session.generation)

        self._issue_fetch(session)
        return True

    def clear(self, session_id: Optional[str] = None) -> bool:
        """Delete a session; results still in flight for it are dropped."""
        session_id = session_id or self._active_id
        if session_id is None or self._sessions.pop(session_id, None) is None:
            return False
        if self._active_id == session_id:
            self._active_id = None
        logger.info("Cleared session %s", session_id)
        return True

    def select(self, session_id: str) -> bool:
        if session_id not in self._sessions:
            return False
        self._active_id = session_id
        return True

    def disapprove(
        self,
        index: int,
        reason: DisapprovalReason,
        session_id: Optional[str] = None,
    ) -> Optional[Reference]:
        """Reject ``visible[index]`` of a session and replace it from the pool.

        Returns the removed reference, or ``None`` when there was nothing to do.
        """
        session = self._sessions.get(session_id or self._active_id or "")
        if session is None or session.status is not SessionStatus.SUCCESS:
            return None

        removed = pool.disapprove(session, index, reason, self.history)
        if removed is None:
            return None
        logger.info("Disapproved %r (%s) in %s", removed.title, reason.value, session.id)

        if pool.needs_refill(session):
            session.is_refilling = True
            prefs = session.query_prefs.with_exclusions(pool.refill_exclusions(session))
            self._spawn(self._run_refill(session.id, session.generation, session.context, prefs))
        return removed

    async def drain(self) -> None:
        """Wait until no fetch or refill is outstanding."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Completions
    # ------------------------------------------------------------------

    def _issue_fetch(self, session: SearchSession) -> None:
        prefs = session.query_prefs.snapshot()
        self._spawn(self._run_fetch(session.id, session.generation, session.context, prefs))

    def _spawn(self, coro: Coroutine) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            raise
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _current(self, session_id: str, generation: int) -> Optional[SearchSession]:
        session = self._sessions.get(session_id)
        if session is None:
            logger.debug("Discarding result for deleted session %s", session_id)
            return None
        if session.generation != generation:
            logger.debug("Discarding stale result for %s (generation %d)", session_id, generation)
            return None
        return session

    async def _run_fetch(
        self,
        session_id: str,
        generation: int,
        context: SelectionContext,
        prefs: SearchPreferences,
    ) -> None:
        try:
            results = await self.provider.search(context, prefs, self.history)
        except Exception as e:
            session = self._current(session_id, generation)
            if session is None:
                return
            logger.warning("Search %s failed: %s", session_id, e)
            session.status = SessionStatus.ERROR
            session.error_message = str(e) or DEFAULT_ERROR_MESSAGE
            return

        session = self._current(session_id, generation)
        if session is None:
            return

        ranked = rank(dedupe(results), prefs.priority)
        session.visible, session.pool = pool.split(ranked, prefs.num_references)
        session.status = SessionStatus.SUCCESS
        session.error_message = None
        logger.info(
            "Search %s finished: %d visible, %d pooled",
            session_id, len(session.visible), len(session.pool),
        )

    async def _run_refill(
        self,
        session_id: str,
        generation: int,
        context: SelectionContext,
        prefs: SearchPreferences,
    ) -> None:
        results: list[Reference] = []
        try:
            results = await self.provider.search(context, prefs, self.history)
        except Exception as e:
            logger.warning("Failed to refill references for %s: %s", session_id, e)

        session = self._current(session_id, generation)
        if session is None:
            return
        session.is_refilling = False
        if results:
            pool.apply_refill(session, results)
            logger.info(
                "Refilled %s: %d visible, %d pooled",
                session_id, len(session.visible), len(session.pool),
            )
