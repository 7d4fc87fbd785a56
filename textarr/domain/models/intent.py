"""Structured intent models produced by the intent extractor."""

from enum import Enum
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, Field

from textarr.domain.models.media import MediaSearchResult
from textarr.domain.models.session import ConversationState


class IntentAction(str, Enum):
    """Action the user wants, interpreted against the session state."""

    ADD = "add"
    SEARCH = "search"
    STATUS = "status"
    HELP = "help"
    CONFIRM = "confirm"
    CANCEL = "cancel"
    SELECT = "select"
    ANIME_CONFIRM = "anime_confirm"
    REGULAR_CONFIRM = "regular_confirm"
    SEASON_SELECT = "season_select"
    BACK = "back"
    SHOW_CONTEXT = "show_context"
    RESTART = "restart"
    CHANGE_SELECTION = "change_selection"
    DECLINE = "decline"
    CONTINUE = "continue"
    RECOMMEND = "recommend"
    ADMIN_HELP = "admin_help"
    ADMIN_LIST = "admin_list"
    ADMIN_ADD = "admin_add"
    ADMIN_REMOVE = "admin_remove"
    ADMIN_PROMOTE = "admin_promote"
    ADMIN_DEMOTE = "admin_demote"
    ADMIN_QUOTA = "admin_quota"
    UNKNOWN = "unknown"


RecommendationType = Literal[
    "trending",
    "popular",
    "top_rated",
    "new_releases",
    "upcoming",
    "airing_today",
    "genre",
    "similar",
    "keyword",
    "by_year",
    "by_provider",
    "by_network",
]

PreferredMediaType = Literal["movie", "tv_show", "any"]


class RecommendationParams(BaseModel):
    """Filters for a recommendation query."""

    type: RecommendationType = "popular"
    media_type: PreferredMediaType = "any"
    genre: Optional[str] = None
    similar_to: Optional[str] = None
    time_window: Literal["day", "week"] = "week"
    keyword: Optional[str] = None
    year: Optional[int] = None
    decade: Optional[str] = None
    min_rating: Optional[float] = Field(default=None, ge=0, le=10)
    provider: Optional[str] = None
    network: Optional[str] = None


class AdminCommand(BaseModel):
    """Arguments of an `admin ...` command."""

    target_platform: Optional[str] = None
    target_id: Optional[str] = None
    user_name: Optional[str] = None
    media_type: Optional[Literal["movie", "tv_show"]] = None
    quota_amount: Optional[int] = Field(default=None, ge=-1000, le=1000)


class ParsedIntent(BaseModel):
    """Structured result of interpreting one inbound message."""

    action: IntentAction
    title: Optional[str] = None
    year: Optional[int] = None
    selection_number: Optional[int] = None
    is_anime_request: bool = False
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    media_type: PreferredMediaType = "any"
    recommendation_params: Optional[RecommendationParams] = None
    admin_command: Optional[AdminCommand] = None
    raw_message: str = ""


class SessionContext(BaseModel):
    """The slice of session state the extractor sees."""

    state: ConversationState = ConversationState.IDLE
    pending_results: Tuple[MediaSearchResult, ...] = ()
    selected_media: Optional[MediaSearchResult] = None
