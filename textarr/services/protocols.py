"""
Service protocol definitions (interfaces).

Structural interfaces for the external collaborators the conversation
flow depends on. The concrete httpx clients satisfy them, and tests
substitute AsyncMock objects with the same shape.
"""

from typing import Any, Dict, List, Optional, Protocol

from textarr.domain.models.intent import ParsedIntent, SessionContext
from textarr.domain.models.media import (
    AnimeStatus,
    MediaSearchResult,
    MediaType,
    QueueItem,
)
from textarr.domain.models.user import MediaRequest, RequestKind


class ICatalog(Protocol):
    """Metadata catalog (TMDB)."""

    async def search_multi(self, query: str, page: int = 1) -> List[MediaSearchResult]:
        ...

    async def get_tvdb_id(self, tmdb_id: int) -> Optional[int]:
        """Alternate episode-database id, or None when unresolvable."""
        ...

    async def get_season_count(self, tmdb_id: int) -> Optional[int]:
        ...

    async def detect_anime(self, tmdb_id: int, media_type: MediaType) -> AnimeStatus:
        """anime, regular or uncertain. May raise on lookup failure."""
        ...


class IMovieLibrary(Protocol):
    """Movie library (Radarr)."""

    async def get_movie_by_tmdb_id(self, tmdb_id: int) -> Optional[Dict[str, Any]]:
        ...

    async def add_movie(
        self,
        media: MediaSearchResult,
        quality_profile_id: Optional[int] = None,
        root_folder: Optional[str] = None,
        tags: Optional[List[int]] = None,
    ) -> Dict[str, Any]:
        ...

    async def search(self, term: str) -> List[MediaSearchResult]:
        ...

    async def get_queue(self) -> List[QueueItem]:
        ...


class ISeriesLibrary(Protocol):
    """TV library (Sonarr)."""

    async def get_series_by_tvdb_id(self, tvdb_id: int) -> Optional[Dict[str, Any]]:
        ...

    async def add_series(
        self,
        tvdb_id: int,
        monitor: str = "all",
        quality_profile_id: Optional[int] = None,
        root_folder: Optional[str] = None,
        tags: Optional[List[int]] = None,
    ) -> Dict[str, Any]:
        ...

    async def search(self, term: str) -> List[MediaSearchResult]:
        ...

    async def get_queue(self) -> List[QueueItem]:
        ...


class IMessageSender(Protocol):
    """Outbound message transport for one platform."""

    async def send(self, identity: str, text: str) -> None:
        ...


class IRequestLedger(Protocol):
    """Records committed requests for later completion notification."""

    async def record(
        self,
        media_type: RequestKind,
        title: str,
        year: Optional[int],
        tmdb_id: int,
        requested_by: str,
        tvdb_id: Optional[int] = None,
        radarr_id: Optional[int] = None,
        sonarr_id: Optional[int] = None,
    ) -> MediaRequest:
        ...


class IIntentExtractor(Protocol):
    """Turns free text into a structured intent. Never raises."""

    async def extract(self, text: str, context: SessionContext) -> ParsedIntent:
        ...
