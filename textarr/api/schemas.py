"""
API request/response schemas.

Pydantic models for API validation and serialization.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from textarr.domain.models.user import split_platform_user_id


# ============ MESSAGE SCHEMAS ============


class MessageRequest(BaseModel):
    """One inbound chat message from a platform adapter."""

    user_id: str = Field(..., description="Platform identity, e.g. 'telegram:12345'")
    text: str = Field(..., min_length=1, max_length=2000, description="Message text")

    @field_validator("user_id")
    @classmethod
    def _valid_platform_identity(cls, value: str) -> str:
        split_platform_user_id(value)
        return value


class MessageReply(BaseModel):
    """Reply to send back. Empty text means send nothing."""

    text: str = ""
    media_urls: List[str] = Field(default_factory=list)


# ============ SESSION SCHEMAS ============


class CandidateSchema(BaseModel):
    """One numbered candidate."""

    id: int
    title: str
    year: Optional[int] = None
    media_type: str
    in_library: bool


class ChatMessageSchema(BaseModel):
    role: str
    content: str
    timestamp: datetime


class SessionSnapshotResponse(BaseModel):
    """Debug view of a user's conversation session."""

    user_id: str
    state: str
    last_activity: datetime
    result_source: Optional[str] = None
    candidates: List[CandidateSchema] = Field(default_factory=list)
    selected_media: Optional[CandidateSchema] = None
    monitor_type: Optional[str] = None
    recent_messages: List[ChatMessageSchema] = Field(default_factory=list)


# ============ WEBHOOK SCHEMAS ============


class WebhookSeries(BaseModel):
    """The series block of a Sonarr webhook. Unused fields are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    title: str = ""
    tvdb_id: Optional[int] = Field(default=None, alias="tvdbId")


class WebhookMovie(BaseModel):
    """The movie block of a Radarr webhook."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    title: str = ""
    year: Optional[int] = None
    tmdb_id: Optional[int] = Field(default=None, alias="tmdbId")


class SonarrWebhookEvent(BaseModel):
    """Sonarr "Connect > Webhook" payload (Grab, Download, Test, ...)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    event_type: str = Field(..., alias="eventType")
    series: Optional[WebhookSeries] = None


class RadarrWebhookEvent(BaseModel):
    """Radarr "Connect > Webhook" payload."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    event_type: str = Field(..., alias="eventType")
    movie: Optional[WebhookMovie] = None


class WebhookResponse(BaseModel):
    status: str = "ok"
    message: Optional[str] = None
    request_id: Optional[str] = None
    notified: bool = False


# ============ LEDGER SCHEMAS ============


class MediaRequestSchema(BaseModel):
    """A committed request still waiting on its download."""

    id: str
    media_type: str
    title: str
    year: Optional[int] = None
    tmdb_id: int
    requested_by: str
    requested_at: datetime
    status: str


class PendingRequestsResponse(BaseModel):
    requests: List[MediaRequestSchema] = Field(default_factory=list)
    count: int = 0
