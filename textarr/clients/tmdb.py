"""
TMDB catalog client.

Provides search, external-id resolution, anime detection and the list
endpoints used for recommendations. Authenticates with a Bearer token and
falls back to the legacy api_key query parameter when the token is
rejected. Calls time out after a bounded interval and are not retried.
"""

import time
from typing import Any, Dict, List, Literal, Optional

import httpx
import structlog

from textarr.core.exceptions import CatalogError
from textarr.domain.models.media import AnimeStatus, MediaSearchResult, MediaType

log = structlog.get_logger(__name__)

BASE_URL = "https://api.themoviedb.org/3"
POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"
ANIMATION_GENRE_ID = 16

CatalogKind = Literal["movie", "tv"]

MOVIE_GENRES: Dict[str, int] = {
    "action": 28,
    "adventure": 12,
    "animation": 16,
    "comedy": 35,
    "crime": 80,
    "documentary": 99,
    "drama": 18,
    "family": 10751,
    "fantasy": 14,
    "history": 36,
    "horror": 27,
    "music": 10402,
    "mystery": 9648,
    "romance": 10749,
    "science_fiction": 878,
    "thriller": 53,
    "war": 10752,
    "western": 37,
}

# TV merges several movie genres into combined ones
TV_GENRES: Dict[str, int] = {
    "action": 10759,
    "adventure": 10759,
    "animation": 16,
    "comedy": 35,
    "crime": 80,
    "documentary": 99,
    "drama": 18,
    "family": 10751,
    "fantasy": 10765,
    "mystery": 9648,
    "science_fiction": 10765,
    "war": 10768,
    "western": 37,
}


def catalog_kind(media_type: MediaType) -> CatalogKind:
    return "movie" if media_type == MediaType.MOVIE else "tv"


class TMDBClient:
    """TMDB v3 API client."""

    def __init__(self, api_key: str, language: str = "en", timeout: float = 10.0):
        if not api_key:
            raise ValueError("TMDB_API_KEY not configured. Set it in .env.")
        self.api_key = api_key
        self.language = language
        self.timeout = timeout
        self.base_url = BASE_URL

    async def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET an endpoint and return decoded JSON.

        Raises:
            CatalogError: Timeout, transport failure or error status
        """
        query: Dict[str, Any] = {"language": self.language, **(params or {})}
        url = f"{self.base_url}{endpoint}"
        start = time.perf_counter()

        log.debug("tmdb_request_start", endpoint=endpoint)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    url,
                    params=query,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "accept": "application/json",
                    },
                )
                if response.status_code == 401:
                    log.debug("tmdb_bearer_rejected", endpoint=endpoint)
                    response = await client.get(
                        url, params={**query, "api_key": self.api_key}
                    )
                response.raise_for_status()
        except httpx.TimeoutException as e:
            log.error("tmdb_request_timeout", endpoint=endpoint, timeout_seconds=self.timeout)
            raise CatalogError("TMDB request timed out") from e
        except httpx.HTTPStatusError as e:
            log.error(
                "tmdb_request_failed",
                endpoint=endpoint,
                status_code=e.response.status_code,
            )
            raise CatalogError(
                f"TMDB request failed: {e.response.status_code} {e.response.reason_phrase}"
            ) from e
        except httpx.HTTPError as e:
            log.error("tmdb_request_error", endpoint=endpoint, error=str(e))
            raise CatalogError(f"TMDB request failed: {e}") from e

        log.debug(
            "tmdb_request_complete",
            endpoint=endpoint,
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return response.json()

    # ==========================================================================
    # Search and metadata
    # ==========================================================================

    async def search_multi(self, query: str, page: int = 1) -> List[MediaSearchResult]:
        """Movies and TV shows matching a title. People are dropped."""
        data = await self._get(
            "/search/multi",
            {"query": query, "page": page, "include_adult": "false"},
        )
        results = [
            self._to_search_result(item, item["media_type"])
            for item in data.get("results", [])
            if item.get("media_type") in ("movie", "tv")
        ]
        log.info(
            "tmdb_search_complete",
            query=query,
            total_results=data.get("total_results", 0),
            returned=len(results),
        )
        return results

    async def get_tv_external_ids(self, tmdb_id: int) -> Dict[str, Any]:
        return await self._get(f"/tv/{tmdb_id}/external_ids")

    async def get_tvdb_id(self, tmdb_id: int) -> Optional[int]:
        """TVDB id for a TMDB series, or None when it has none or the call fails."""
        try:
            external_ids = await self.get_tv_external_ids(tmdb_id)
        except CatalogError as e:
            log.warning("tvdb_id_lookup_failed", tmdb_id=tmdb_id, error=e.message)
            return None
        return external_ids.get("tvdb_id") or None

    async def get_movie_details(self, tmdb_id: int) -> Dict[str, Any]:
        return await self._get(f"/movie/{tmdb_id}")

    async def get_tv_details(self, tmdb_id: int) -> Dict[str, Any]:
        return await self._get(f"/tv/{tmdb_id}")

    async def get_season_count(self, tmdb_id: int) -> Optional[int]:
        details = await self.get_tv_details(tmdb_id)
        return details.get("number_of_seasons") or None

    async def detect_anime(self, tmdb_id: int, media_type: MediaType) -> AnimeStatus:
        """
        Classify a title from its TMDB metadata.

        - No Animation genre: regular
        - Animation and Japanese origin or production country: anime
        - Animation otherwise: uncertain (e.g. western animation)

        Raises:
            CatalogError: Details could not be fetched
        """
        if media_type == MediaType.MOVIE:
            details = await self.get_movie_details(tmdb_id)
        else:
            details = await self.get_tv_details(tmdb_id)

        genre_ids = {genre.get("id") for genre in details.get("genres", [])}
        if ANIMATION_GENRE_ID not in genre_ids:
            return AnimeStatus.REGULAR

        is_japanese = "JP" in (details.get("origin_country") or []) or any(
            country.get("iso_3166_1") == "JP"
            for country in details.get("production_countries") or []
        )
        return AnimeStatus.ANIME if is_japanese else AnimeStatus.UNCERTAIN

    # ==========================================================================
    # Recommendation lists
    # ==========================================================================

    async def get_trending(
        self, media_type: Literal["all", "movie", "tv"] = "all", time_window: str = "week"
    ) -> List[MediaSearchResult]:
        data = await self._get(f"/trending/{media_type}/{time_window}")
        return [
            self._to_search_result(item, item.get("media_type", media_type))
            for item in data.get("results", [])
            if item.get("media_type", media_type) in ("movie", "tv")
        ]

    async def get_popular(self, kind: CatalogKind) -> List[MediaSearchResult]:
        return await self._list(f"/{kind}/popular", kind)

    async def get_top_rated(self, kind: CatalogKind) -> List[MediaSearchResult]:
        return await self._list(f"/{kind}/top_rated", kind)

    async def get_now_playing(self) -> List[MediaSearchResult]:
        return await self._list("/movie/now_playing", "movie")

    async def get_on_the_air(self) -> List[MediaSearchResult]:
        return await self._list("/tv/on_the_air", "tv")

    async def get_upcoming(self) -> List[MediaSearchResult]:
        return await self._list("/movie/upcoming", "movie")

    async def get_airing_today(self) -> List[MediaSearchResult]:
        return await self._list("/tv/airing_today", "tv")

    async def get_recommendations(
        self, tmdb_id: int, kind: CatalogKind
    ) -> List[MediaSearchResult]:
        return await self._list(f"/{kind}/{tmdb_id}/recommendations", kind)

    async def get_similar_to(self, title: str) -> List[MediaSearchResult]:
        """Recommendations based on the best search match for a title."""
        matches = await self.search_multi(title)
        if not matches:
            return []
        source = matches[0]
        return await self.get_recommendations(source.id, catalog_kind(source.media_type))

    async def search_keywords(self, query: str) -> List[Dict[str, Any]]:
        data = await self._get("/search/keyword", {"query": query})
        return data.get("results", [])

    async def discover(
        self,
        kind: CatalogKind,
        genre_id: Optional[int] = None,
        keyword_ids: Optional[List[int]] = None,
        min_vote_count: Optional[int] = None,
        min_vote_average: Optional[float] = None,
        release_date_gte: Optional[str] = None,
        release_date_lte: Optional[str] = None,
    ) -> List[MediaSearchResult]:
        date_field = "primary_release_date" if kind == "movie" else "first_air_date"
        params: Dict[str, Any] = {"sort_by": "popularity.desc", "include_adult": "false"}
        if genre_id:
            params["with_genres"] = genre_id
        if keyword_ids:
            params["with_keywords"] = "|".join(str(k) for k in keyword_ids)
        if min_vote_count is not None:
            params["vote_count.gte"] = min_vote_count
        if min_vote_average is not None:
            params["vote_average.gte"] = min_vote_average
        if release_date_gte:
            params[f"{date_field}.gte"] = release_date_gte
        if release_date_lte:
            params[f"{date_field}.lte"] = release_date_lte
        return await self._list(f"/discover/{kind}", kind, params)

    def get_genre_id(self, genre: str, kind: CatalogKind) -> Optional[int]:
        key = genre.strip().lower().replace("-", "_").replace(" ", "_")
        if key in ("sci_fi", "scifi"):
            key = "science_fiction"
        genres = MOVIE_GENRES if kind == "movie" else TV_GENRES
        return genres.get(key)

    # ==========================================================================
    # Helpers
    # ==========================================================================

    async def _list(
        self, endpoint: str, kind: CatalogKind, params: Optional[Dict[str, Any]] = None
    ) -> List[MediaSearchResult]:
        data = await self._get(endpoint, params)
        return [self._to_search_result(item, kind) for item in data.get("results", [])]

    def _to_search_result(self, item: Dict[str, Any], kind: str) -> MediaSearchResult:
        is_movie = kind == "movie"
        poster_path = item.get("poster_path")
        date = item.get("release_date") if is_movie else item.get("first_air_date")
        return MediaSearchResult(
            id=item["id"],
            title=(item.get("title") if is_movie else item.get("name")) or "",
            year=_extract_year(date),
            overview=item.get("overview") or None,
            poster_url=f"{POSTER_BASE_URL}{poster_path}" if poster_path else None,
            media_type=MediaType.MOVIE if is_movie else MediaType.TV_SHOW,
            rating=item.get("vote_average") or None,
            raw_data=item,
        )


def _extract_year(date: Optional[str]) -> Optional[int]:
    if not date or len(date) < 4 or not date[:4].isdigit():
        return None
    return int(date[:4])
