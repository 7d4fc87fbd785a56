"""Conversation session models.

A Session holds the per-user conversation state between turns. Its state
and the payload that goes with it are one value: the `phase`, a tagged
union with one frozen variant per ConversationState. Replacing the phase
is the only way to change state, so a (state, payload) pair can never be
observed half-written.

Phase variants:
    - Idle: nothing in flight
    - AwaitingSelection: numbered candidates shown to the user
    - AwaitingConfirmation: one item (plus optional season monitor type)
    - AwaitingAnimeConfirmation: one item whose classification is uncertain
    - AwaitingSeasonSelection: one multi-season series

Selected-media phases keep the Candidates they came from, so "back" and
"change_selection" can return to the list. Those candidates are not
pending results; `pending_results` is only non-empty in AwaitingSelection.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Deque, Optional, Tuple, Union

from textarr.domain.models.media import MediaSearchResult

HISTORY_LIMIT = 10


class ConversationState(str, Enum):
    """Conversation state of a session."""

    IDLE = "idle"
    AWAITING_SELECTION = "awaiting_selection"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    AWAITING_ANIME_CONFIRMATION = "awaiting_anime_confirmation"
    AWAITING_SEASON_SELECTION = "awaiting_season_selection"


class ResultSource(str, Enum):
    """Where a candidate list came from."""

    SEARCH = "search"
    RECOMMENDATION = "recommendation"


@dataclass(frozen=True)
class Candidates:
    """An ordered result list plus the query that produced it."""

    results: Tuple[MediaSearchResult, ...]
    source: ResultSource = ResultSource.SEARCH
    query: str = ""

    def __len__(self) -> int:
        return len(self.results)


@dataclass(frozen=True)
class Idle:
    state = ConversationState.IDLE


@dataclass(frozen=True)
class AwaitingSelection:
    candidates: Candidates
    state = ConversationState.AWAITING_SELECTION

    def __post_init__(self):
        if not self.candidates.results:
            raise ValueError("AwaitingSelection requires at least one candidate")


@dataclass(frozen=True)
class AwaitingConfirmation:
    media: MediaSearchResult
    candidates: Optional[Candidates] = None
    monitor_type: Optional[str] = None
    state = ConversationState.AWAITING_CONFIRMATION


@dataclass(frozen=True)
class AwaitingAnimeConfirmation:
    media: MediaSearchResult
    candidates: Optional[Candidates] = None
    state = ConversationState.AWAITING_ANIME_CONFIRMATION


@dataclass(frozen=True)
class AwaitingSeasonSelection:
    media: MediaSearchResult
    candidates: Optional[Candidates] = None
    state = ConversationState.AWAITING_SEASON_SELECTION


Phase = Union[
    Idle,
    AwaitingSelection,
    AwaitingConfirmation,
    AwaitingAnimeConfirmation,
    AwaitingSeasonSelection,
]

SelectedMediaPhase = Union[
    AwaitingConfirmation, AwaitingAnimeConfirmation, AwaitingSeasonSelection
]


@dataclass(frozen=True)
class ChatMessage:
    role: str  # "user" or "assistant"
    content: str
    timestamp: datetime


@dataclass
class Session:
    """Conversation session for one platform identity ("platform:rawId")."""

    user_id: str
    last_activity: datetime
    phase: Phase = field(default_factory=Idle)
    recent_messages: Deque[ChatMessage] = field(
        default_factory=lambda: deque(maxlen=HISTORY_LIMIT)
    )

    @property
    def state(self) -> ConversationState:
        return self.phase.state

    @property
    def pending_results(self) -> Tuple[MediaSearchResult, ...]:
        if isinstance(self.phase, AwaitingSelection):
            return self.phase.candidates.results
        return ()

    @property
    def selected_media(self) -> Optional[MediaSearchResult]:
        return getattr(self.phase, "media", None)

    @property
    def candidates(self) -> Optional[Candidates]:
        """Current or retained candidate list, if any."""
        return getattr(self.phase, "candidates", None)

    @property
    def result_source(self) -> Optional[ResultSource]:
        candidates = self.candidates
        return candidates.source if candidates else None

    @property
    def monitor_type(self) -> Optional[str]:
        return getattr(self.phase, "monitor_type", None)
