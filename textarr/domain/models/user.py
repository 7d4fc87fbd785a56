"""User, quota and request-ledger models."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field

Platform = Literal["sms", "telegram", "discord", "slack"]
PLATFORMS = ("sms", "telegram", "discord", "slack")

RequestKind = Literal["movie", "tv_show"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def platform_user_id(platform: str, raw_id: str) -> str:
    """Build the session key for a platform identity, e.g. 'sms:+15551234567'."""
    return f"{platform}:{raw_id}"


def split_platform_user_id(user_id: str) -> tuple[str, str]:
    """Inverse of platform_user_id. Raises ValueError on malformed ids."""
    platform, sep, raw_id = user_id.partition(":")
    if not sep or platform not in PLATFORMS or not raw_id:
        raise ValueError(f"Invalid platform user id: {user_id!r}")
    return platform, raw_id


class RequestCount(BaseModel):
    """Per-period request counters used for quota enforcement."""

    movies: int = Field(default=0, ge=0)
    tv_shows: int = Field(default=0, ge=0)
    last_reset: datetime = Field(default_factory=utcnow)


class User(BaseModel):
    """An authorized user and the platform identities linked to them."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    is_admin: bool = False
    identities: Dict[Platform, str] = Field(default_factory=dict)
    request_count: RequestCount = Field(default_factory=RequestCount)
    notifications_enabled: bool = True
    created_by: Optional[str] = None

    def has_identity(self, user_id: str) -> bool:
        return any(
            platform_user_id(platform, raw_id) == user_id
            for platform, raw_id in self.identities.items()
        )


@dataclass(frozen=True)
class QuotaCheck:
    """Outcome of a pre-commit quota check."""

    allowed: bool
    current: int = 0
    limit: int = 0
    message: Optional[str] = None


class RequestStatus(str, Enum):
    """Lifecycle of a recorded media request."""

    PENDING = "pending"
    DOWNLOADING = "downloading"
    COMPLETED = "completed"
    FAILED = "failed"


class MediaRequest(BaseModel):
    """A committed request, kept for later completion notification."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    media_type: RequestKind
    title: str
    year: Optional[int] = None
    tmdb_id: int
    tvdb_id: Optional[int] = None
    radarr_id: Optional[int] = None
    sonarr_id: Optional[int] = None
    requested_by: str
    requested_at: datetime = Field(default_factory=utcnow)
    status: RequestStatus = RequestStatus.PENDING
