"""Media search result models.

A MediaSearchResult is an immutable snapshot of one catalog (or library)
search hit. Enrichment and classification never mutate a result; they
produce an updated copy via model_copy(update=...).
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class MediaType(str, Enum):
    """Kind of media a result refers to."""

    MOVIE = "movie"
    TV_SHOW = "tv_show"
    UNKNOWN = "unknown"


class LibraryStatus(str, Enum):
    """Where a result stands in the self-hosted library."""

    AVAILABLE = "available"
    MONITORED = "monitored"
    PARTIAL = "partial"
    NOT_IN_LIBRARY = "not_in_library"


class AnimeStatus(str, Enum):
    """Anime/regular classification of a result."""

    ANIME = "anime"
    REGULAR = "regular"
    UNCERTAIN = "uncertain"
    UNKNOWN = "unknown"


class EpisodeStats(BaseModel):
    """Downloaded-episode counts for a series already in the library."""

    model_config = ConfigDict(frozen=True)

    episode_file_count: int = Field(ge=0)
    episode_count: int = Field(ge=0)
    percent_complete: float = Field(ge=0.0, le=100.0)


class MediaSearchResult(BaseModel):
    """One search hit, with library and classification status attached.

    `id` is the TMDB id for catalog results. Results from the direct
    Radarr/Sonarr fallback search carry the library's own external id
    (TMDB for movies, TVDB for series); see raw_data["tvdbId"].
    """

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    year: Optional[int] = None
    overview: Optional[str] = None
    poster_url: Optional[str] = None
    media_type: MediaType = MediaType.UNKNOWN
    in_library: bool = False
    library_status: LibraryStatus = LibraryStatus.NOT_IN_LIBRARY
    episode_stats: Optional[EpisodeStats] = None
    anime_status: AnimeStatus = AnimeStatus.UNKNOWN
    season_count: Optional[int] = None
    runtime: Optional[int] = None
    rating: Optional[float] = None
    raw_data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def display_title(self) -> str:
        """Title with year suffix, e.g. 'Dune (2021)'."""
        return f"{self.title} ({self.year})" if self.year else self.title


class QueueItem(BaseModel):
    """One entry of a Radarr or Sonarr download queue."""

    title: str
    status: str = ""
    progress: int = Field(default=0, ge=0, le=100)
    time_left: Optional[str] = None
