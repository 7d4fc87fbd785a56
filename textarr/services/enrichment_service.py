"""
Library-status enrichment for search results.

Each result is checked against the library concurrently:

- Movies: Radarr record by TMDB id. A file on disk means available,
  a record without one means monitored.
- TV: TMDB -> TVDB id, then Sonarr record by TVDB id, classified by
  episode counts (none expected: monitored; all downloaded: available;
  some downloaded: partial with episode stats; otherwise monitored).

A failed lookup only affects its own item, which is reported as
not_in_library. Output order always matches input order.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence

import structlog

from textarr.domain.models.media import (
    EpisodeStats,
    LibraryStatus,
    MediaSearchResult,
    MediaType,
)
from textarr.services.protocols import ICatalog, IMovieLibrary, ISeriesLibrary

log = structlog.get_logger(__name__)


def classify_series(statistics: Optional[Dict[str, Any]]) -> tuple[LibraryStatus, Optional[EpisodeStats]]:
    """Library status and episode stats from a Sonarr statistics block."""
    statistics = statistics or {}
    file_count = statistics.get("episodeFileCount") or 0
    episode_count = statistics.get("episodeCount") or 0

    if episode_count == 0:
        return LibraryStatus.MONITORED, None

    percent = statistics.get("percentOfEpisodes")
    if percent is None:
        percent = file_count / episode_count * 100
    stats = EpisodeStats(
        episode_file_count=file_count,
        episode_count=episode_count,
        percent_complete=max(0.0, min(100.0, float(percent))),
    )

    if file_count == episode_count:
        return LibraryStatus.AVAILABLE, stats
    if 0 < file_count < episode_count:
        return LibraryStatus.PARTIAL, stats
    return LibraryStatus.MONITORED, stats


class EnrichmentService:
    """Attaches live library status to catalog results."""

    def __init__(
        self,
        catalog: ICatalog,
        movies: IMovieLibrary,
        series: ISeriesLibrary,
    ):
        self.catalog = catalog
        self.movies = movies
        self.series = series

    async def enrich(self, results: Sequence[MediaSearchResult]) -> List[MediaSearchResult]:
        if not results:
            return []
        enriched = await asyncio.gather(*(self._enrich_one(r) for r in results))
        log.debug(
            "enrichment_complete",
            result_count=len(enriched),
            in_library=sum(1 for r in enriched if r.in_library),
        )
        return list(enriched)

    async def _enrich_one(self, result: MediaSearchResult) -> MediaSearchResult:
        try:
            if result.media_type == MediaType.MOVIE:
                enriched = await self._enrich_movie(result)
            elif result.media_type == MediaType.TV_SHOW:
                enriched = await self._enrich_series(result)
            else:
                enriched = None
        except Exception as e:
            log.warning(
                "library_status_lookup_failed",
                tmdb_id=result.id,
                title=result.title,
                media_type=result.media_type.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            enriched = None

        if enriched is not None:
            return enriched
        return result.model_copy(
            update={
                "in_library": False,
                "library_status": LibraryStatus.NOT_IN_LIBRARY,
                "episode_stats": None,
            }
        )

    async def _enrich_movie(self, result: MediaSearchResult) -> Optional[MediaSearchResult]:
        movie = await self.movies.get_movie_by_tmdb_id(result.id)
        if not movie:
            return None
        status = LibraryStatus.AVAILABLE if movie.get("hasFile") else LibraryStatus.MONITORED
        return result.model_copy(
            update={
                "in_library": True,
                "library_status": status,
                "raw_data": {**result.raw_data, "status": movie.get("status")},
            }
        )

    async def _enrich_series(self, result: MediaSearchResult) -> Optional[MediaSearchResult]:
        tvdb_id = await self.catalog.get_tvdb_id(result.id)
        if not tvdb_id:
            return None
        series = await self.series.get_series_by_tvdb_id(tvdb_id)
        if not series:
            return None

        status, stats = classify_series(series.get("statistics"))
        update: Dict[str, Any] = {
            "in_library": True,
            "library_status": status,
            "episode_stats": stats,
            "raw_data": {**result.raw_data, "status": series.get("status"), "tvdbId": tvdb_id},
        }
        season_count = (series.get("statistics") or {}).get("seasonCount")
        if season_count and not result.season_count:
            update["season_count"] = season_count
        return result.model_copy(update=update)
