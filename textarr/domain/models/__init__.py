"""Domain models package."""

from .media import (
    AnimeStatus,
    EpisodeStats,
    LibraryStatus,
    MediaSearchResult,
    MediaType,
    QueueItem,
)
from .session import (
    AwaitingAnimeConfirmation,
    AwaitingConfirmation,
    AwaitingSeasonSelection,
    AwaitingSelection,
    Candidates,
    ConversationState,
    Idle,
    ResultSource,
    Session,
)
from .intent import IntentAction, ParsedIntent, RecommendationParams, SessionContext
from .message import MessageResponse
from .user import MediaRequest, QuotaCheck, RequestStatus, User

__all__ = [
    "AnimeStatus",
    "EpisodeStats",
    "LibraryStatus",
    "MediaSearchResult",
    "MediaType",
    "QueueItem",
    "AwaitingAnimeConfirmation",
    "AwaitingConfirmation",
    "AwaitingSeasonSelection",
    "AwaitingSelection",
    "Candidates",
    "ConversationState",
    "Idle",
    "ResultSource",
    "Session",
    "IntentAction",
    "ParsedIntent",
    "RecommendationParams",
    "SessionContext",
    "MessageResponse",
    "MediaRequest",
    "QuotaCheck",
    "RequestStatus",
    "User",
]
