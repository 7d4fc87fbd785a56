"""Radarr (movie library) client."""

import asyncio
from typing import Any, Dict, List, Optional

import structlog

from textarr.clients.base import LibraryClient
from textarr.core.exceptions import LibraryServiceError
from textarr.domain.models.media import LibraryStatus, MediaSearchResult, MediaType

log = structlog.get_logger(__name__)

# Fields copied from the lookup response into the add payload
REQUIRED_FIELDS = ("tmdbId", "title", "titleSlug", "images", "year")


class RadarrClient(LibraryClient):
    """Radarr v3 API client."""

    service_name = "radarr"

    async def get_movie_by_tmdb_id(self, tmdb_id: int) -> Optional[Dict[str, Any]]:
        """Library record for a TMDB id, or None when Radarr does not have it."""
        movies = await self.request("GET", "movie", params={"tmdbId": tmdb_id})
        return movies[0] if movies else None

    async def lookup_by_tmdb_id(self, tmdb_id: int) -> Optional[Dict[str, Any]]:
        return await self.request(
            "GET", "movie/lookup/tmdb", params={"tmdbId": tmdb_id}
        )

    async def get_all_movies(self) -> List[Dict[str, Any]]:
        return await self.request("GET", "movie") or []

    async def search(self, term: str) -> List[MediaSearchResult]:
        log.info("radarr_search", term=term)
        results, existing = await asyncio.gather(
            self.request("GET", "movie/lookup", params={"term": term}),
            self.get_all_movies(),
        )
        existing_ids = {movie.get("tmdbId") for movie in existing}
        return [
            self._to_search_result(movie, movie.get("tmdbId") in existing_ids)
            for movie in results or []
        ]

    async def add_movie(
        self,
        media: MediaSearchResult,
        quality_profile_id: Optional[int] = None,
        root_folder: Optional[str] = None,
        tags: Optional[List[int]] = None,
        search_for_movie: bool = True,
    ) -> Dict[str, Any]:
        """
        Add a movie by TMDB id.

        The movie is re-fetched from Radarr's lookup endpoint first so the
        payload carries the fields Radarr expects.

        Raises:
            LibraryItemExistsError: Radarr already has the movie
            LibraryServiceError: Lookup or add failed
        """
        fresh = await self.lookup_by_tmdb_id(media.id)
        if not fresh:
            raise LibraryServiceError(
                self.service_name, f"Could not find movie with TMDB ID: {media.id}"
            )

        payload = self.add_options(quality_profile_id, root_folder, tags)
        payload["minimumAvailability"] = "announced"
        payload["addOptions"] = {"searchForMovie": search_for_movie}
        for key in REQUIRED_FIELDS:
            if key in fresh:
                payload[key] = fresh[key]

        log.info("radarr_add_movie", title=fresh.get("title"), tmdb_id=media.id)
        return await self.request("POST", "movie", body=payload)

    def _to_search_result(self, movie: Dict[str, Any], in_library: bool) -> MediaSearchResult:
        ratings = movie.get("ratings") or {}
        rating = (ratings.get("tmdb") or ratings.get("imdb") or {}).get("value")
        return MediaSearchResult(
            id=movie.get("tmdbId") or 0,
            title=movie.get("title", ""),
            year=movie.get("year") or None,
            overview=movie.get("overview"),
            poster_url=movie.get("remotePoster"),
            media_type=MediaType.MOVIE,
            in_library=in_library,
            library_status=(
                (LibraryStatus.AVAILABLE if movie.get("hasFile") else LibraryStatus.MONITORED)
                if in_library
                else LibraryStatus.NOT_IN_LIBRARY
            ),
            runtime=movie.get("runtime") or None,
            rating=rating or None,
            raw_data=movie,
        )
