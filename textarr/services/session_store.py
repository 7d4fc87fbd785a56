"""
In-memory conversation session store.

Sessions are keyed by platform user id and expire after a period of
inactivity. Expiry is lazy: reading an expired session discards it and
hands back a fresh one. A background sweep also drops idle sessions so
the map does not grow without bound; correctness never depends on it.

Every mutating operation is a single synchronous assignment, so no other
coroutine can observe a half-applied change. Callers that await external
services between reading and writing a session must hold turn_lock(user)
for the whole turn.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, Optional

import structlog

from textarr.domain.models.media import MediaSearchResult
from textarr.domain.models.session import (
    AwaitingAnimeConfirmation,
    AwaitingConfirmation,
    AwaitingSeasonSelection,
    AwaitingSelection,
    Candidates,
    ChatMessage,
    ConversationState,
    Idle,
    Phase,
    ResultSource,
    Session,
)

log = structlog.get_logger(__name__)

Clock = Callable[[], datetime]

DEFAULT_TIMEOUT = timedelta(minutes=5)
DEFAULT_SWEEP_INTERVAL = 60.0


def utc_clock() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """Keyed, TTL-expiring session map with atomic transitions."""

    def __init__(
        self,
        timeout: timedelta = DEFAULT_TIMEOUT,
        clock: Clock = utc_clock,
    ):
        self.timeout = timeout
        self.clock = clock
        self._sessions: Dict[str, Session] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._sweeper: Optional[asyncio.Task] = None

    # ==========================================================================
    # Reads
    # ==========================================================================

    def get(self, user_id: str) -> Session:
        """Return the user's session, creating it if missing or expired."""
        now = self.clock()
        session = self._sessions.get(user_id)

        if session is not None and self._is_expired(session, now):
            log.info("session_expired", user_id=user_id, state=session.state.value)
            session = None

        if session is None:
            session = Session(user_id=user_id, last_activity=now)
            self._sessions[user_id] = session
            log.debug("session_created", user_id=user_id)
        else:
            session.last_activity = now

        return session

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    # ==========================================================================
    # Transitions
    # ==========================================================================

    def transition(self, user_id: str, phase: Phase) -> Session:
        """Replace state and payload in one step."""
        session = self.get(user_id)
        previous = session.state
        session.phase = phase
        log.debug(
            "session_transition",
            user_id=user_id,
            from_state=previous.value,
            to_state=phase.state.value,
        )
        return session

    def set_pending_results(
        self,
        user_id: str,
        results: Iterable[MediaSearchResult],
        source: ResultSource = ResultSource.SEARCH,
        query: str = "",
    ) -> Session:
        """Offer a numbered list of candidates (enters awaiting_selection)."""
        candidates = Candidates(results=tuple(results), source=source, query=query)
        return self.transition(user_id, AwaitingSelection(candidates=candidates))

    def set_selected_media(
        self,
        user_id: str,
        media: MediaSearchResult,
        state: ConversationState = ConversationState.AWAITING_CONFIRMATION,
    ) -> Session:
        """Put one item under consideration, keeping the list it came from."""
        candidates = self.get(user_id).candidates

        if state == ConversationState.AWAITING_CONFIRMATION:
            phase: Phase = AwaitingConfirmation(media=media, candidates=candidates)
        elif state == ConversationState.AWAITING_ANIME_CONFIRMATION:
            phase = AwaitingAnimeConfirmation(media=media, candidates=candidates)
        elif state == ConversationState.AWAITING_SEASON_SELECTION:
            phase = AwaitingSeasonSelection(media=media, candidates=candidates)
        else:
            raise ValueError(f"{state.value} does not carry selected media")

        return self.transition(user_id, phase)

    def select_monitor_type(self, user_id: str, monitor_type: str) -> Session:
        """Move a season selection to confirmation with the chosen monitor type."""
        session = self.get(user_id)
        if not isinstance(session.phase, AwaitingSeasonSelection):
            raise ValueError(
                f"Cannot choose seasons in state {session.state.value}"
            )
        return self.transition(
            user_id,
            AwaitingConfirmation(
                media=session.phase.media,
                candidates=session.phase.candidates,
                monitor_type=monitor_type,
            ),
        )

    def reset(self, user_id: str) -> Session:
        """Return to idle. Message history is kept."""
        return self.transition(user_id, Idle())

    def append_message(self, user_id: str, role: str, content: str) -> None:
        session = self.get(user_id)
        session.recent_messages.append(
            ChatMessage(role=role, content=content, timestamp=self.clock())
        )

    def delete(self, user_id: str) -> None:
        self._sessions.pop(user_id, None)
        self._locks.pop(user_id, None)

    # ==========================================================================
    # Concurrency
    # ==========================================================================

    def turn_lock(self, user_id: str) -> asyncio.Lock:
        """Per-user lock serializing whole turns for that user."""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    # ==========================================================================
    # Expiry
    # ==========================================================================

    def _is_expired(self, session: Session, now: datetime) -> bool:
        return now - session.last_activity > self.timeout

    def sweep_expired(self) -> int:
        """Drop every idle-past-timeout session. Returns how many were removed."""
        now = self.clock()
        expired = [
            user_id
            for user_id, session in self._sessions.items()
            if self._is_expired(session, now)
        ]
        for user_id in expired:
            del self._sessions[user_id]
            lock = self._locks.get(user_id)
            if lock is not None and not lock.locked():
                del self._locks[user_id]

        if expired:
            log.info("sessions_swept", removed=len(expired), remaining=len(self._sessions))
        return len(expired)

    def start_sweeper(self, interval: float = DEFAULT_SWEEP_INTERVAL) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.create_task(self._sweep_loop(interval))
        log.info("session_sweeper_started", interval_seconds=interval)

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
        log.info("session_sweeper_stopped")

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.sweep_expired()
