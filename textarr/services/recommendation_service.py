"""
Catalog recommendation queries.

Maps RecommendationParams onto TMDB list/discover endpoints and returns
the raw (unenriched) results with a display label. For "any" media type
the movie and TV lists are fetched concurrently and interleaved.

Catalog failures propagate as CatalogError; the conversation layer turns
them into the generic failure reply.
"""

import asyncio
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import structlog

from textarr.clients.tmdb import CatalogKind, TMDBClient
from textarr.domain.models.intent import PreferredMediaType, RecommendationParams
from textarr.domain.models.media import MediaSearchResult

log = structlog.get_logger(__name__)

DEFAULT_GENRE = "drama"

# Minimum vote counts keep discover results to titles people have heard of
MIN_VOTES = {"movie": 50, "tv": 20}
MIN_KEYWORD_VOTES = {"movie": 20, "tv": 10}


@dataclass
class Recommendations:
    results: List[MediaSearchResult] = field(default_factory=list)
    label: str = ""


def interleave(
    first: Sequence[MediaSearchResult], second: Sequence[MediaSearchResult]
) -> List[MediaSearchResult]:
    """[a1, b1, a2, b2, ...], then the remainder of the longer list."""
    merged: List[MediaSearchResult] = []
    for i in range(max(len(first), len(second))):
        if i < len(first):
            merged.append(first[i])
        if i < len(second):
            merged.append(second[i])
    return merged


def media_type_label(media_type: PreferredMediaType) -> str:
    if media_type == "movie":
        return "Movies"
    if media_type == "tv_show":
        return "Shows"
    return "Content"


def capitalize_words(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in text.replace("_", " ").split(" "))


def date_range(params: RecommendationParams) -> Dict[str, str]:
    """Release-date bounds from a specific year or a decade like '80s' / '2010s'."""
    if params.year:
        return {
            "release_date_gte": f"{params.year}-01-01",
            "release_date_lte": f"{params.year}-12-31",
        }
    if params.decade:
        match = re.search(r"(\d{2,4})s?", params.decade)
        if match:
            digits = match.group(1)
            if len(digits) == 4:
                start = int(digits)
            else:
                number = int(digits[-2:])
                start = 2000 + number if number < 30 else 1900 + number
            return {
                "release_date_gte": f"{start}-01-01",
                "release_date_lte": f"{start + 9}-12-31",
            }
    return {}


def _kind(media_type: PreferredMediaType) -> CatalogKind:
    return "movie" if media_type == "movie" else "tv"


class RecommendationService:
    """Runs one recommendation query against the catalog."""

    def __init__(self, catalog: TMDBClient):
        self.catalog = catalog

    async def recommend(self, params: RecommendationParams) -> Recommendations:
        log.info(
            "recommendation_query",
            type=params.type,
            media_type=params.media_type,
            genre=params.genre,
        )

        handlers = {
            "trending": self._trending,
            "popular": self._popular,
            "top_rated": self._top_rated,
            "new_releases": self._new_releases,
            "upcoming": self._upcoming,
            "airing_today": self._airing_today,
            "genre": self._genre,
            "similar": self._similar,
            "keyword": self._keyword,
            "by_year": self._by_year,
            "by_provider": self._by_provider,
            "by_network": self._by_network,
        }
        handler = handlers.get(params.type, self._popular)
        recommendations = await handler(params)

        log.info(
            "recommendation_results",
            type=params.type,
            label=recommendations.label,
            count=len(recommendations.results),
        )
        return recommendations

    # ==========================================================================
    # List endpoints
    # ==========================================================================

    async def _trending(self, params: RecommendationParams) -> Recommendations:
        scope = "all" if params.media_type == "any" else _kind(params.media_type)
        results = await self.catalog.get_trending(scope, params.time_window)
        return Recommendations(results, f"Trending {media_type_label(params.media_type)}")

    async def _popular(self, params: RecommendationParams) -> Recommendations:
        if params.media_type == "any":
            movies, shows = await asyncio.gather(
                self.catalog.get_popular("movie"), self.catalog.get_popular("tv")
            )
            return Recommendations(interleave(movies, shows), "Popular Content")
        results = await self.catalog.get_popular(_kind(params.media_type))
        return Recommendations(results, f"Popular {media_type_label(params.media_type)}")

    async def _top_rated(self, params: RecommendationParams) -> Recommendations:
        if params.media_type == "any":
            movies, shows = await asyncio.gather(
                self.catalog.get_top_rated("movie"), self.catalog.get_top_rated("tv")
            )
            return Recommendations(interleave(movies, shows), "Top Rated")
        results = await self.catalog.get_top_rated(_kind(params.media_type))
        return Recommendations(results, f"Top Rated {media_type_label(params.media_type)}")

    async def _new_releases(self, params: RecommendationParams) -> Recommendations:
        if params.media_type == "movie":
            return Recommendations(await self.catalog.get_now_playing(), "New Movies")
        if params.media_type == "tv_show":
            return Recommendations(await self.catalog.get_on_the_air(), "New TV Shows")
        movies, shows = await asyncio.gather(
            self.catalog.get_now_playing(), self.catalog.get_on_the_air()
        )
        return Recommendations(interleave(movies, shows), "New Releases")

    async def _upcoming(self, params: RecommendationParams) -> Recommendations:
        return Recommendations(await self.catalog.get_upcoming(), "Upcoming Movies")

    async def _airing_today(self, params: RecommendationParams) -> Recommendations:
        return Recommendations(await self.catalog.get_airing_today(), "Airing Today")

    async def _similar(self, params: RecommendationParams) -> Recommendations:
        label = f'Similar to "{params.similar_to}"'
        if not params.similar_to:
            return Recommendations([], label)
        return Recommendations(await self.catalog.get_similar_to(params.similar_to), label)

    # ==========================================================================
    # Discover-based queries
    # ==========================================================================

    async def _genre(self, params: RecommendationParams) -> Recommendations:
        genre = params.genre or DEFAULT_GENRE
        parts = [p for p in (params.decade, str(params.year) if params.year else None) if p]
        parts += [capitalize_words(genre), media_type_label(params.media_type)]
        label = " ".join(parts)
        dates = date_range(params)

        if params.media_type == "any":
            movie_genre = self.catalog.get_genre_id(genre, "movie")
            tv_genre = self.catalog.get_genre_id(genre, "tv")
            movies, shows = await asyncio.gather(
                self._discover_genre("movie", movie_genre, params.min_rating, dates),
                self._discover_genre("tv", tv_genre, params.min_rating, dates),
            )
            return Recommendations(interleave(movies, shows), label)

        kind = _kind(params.media_type)
        genre_id = self.catalog.get_genre_id(genre, kind)
        if genre_id is None:
            log.info("recommendation_genre_unknown", genre=genre, kind=kind)
            return await self._popular(params)

        results = await self._discover_genre(kind, genre_id, params.min_rating, dates)
        return Recommendations(results, label)

    async def _discover_genre(
        self,
        kind: CatalogKind,
        genre_id: Optional[int],
        min_rating: Optional[float],
        dates: Dict[str, str],
    ) -> List[MediaSearchResult]:
        if genre_id is None:
            return []
        return await self.catalog.discover(
            kind,
            genre_id=genre_id,
            min_vote_count=MIN_VOTES[kind],
            min_vote_average=min_rating,
            **dates,
        )

    async def _keyword(self, params: RecommendationParams) -> Recommendations:
        if not params.keyword:
            return await self._popular(params)

        keywords = await self.catalog.search_keywords(params.keyword)
        if not keywords:
            log.warning("recommendation_keyword_not_found", keyword=params.keyword)
            return await self._popular(params)

        keyword_ids = [k["id"] for k in keywords[:3]]
        keyword_label = capitalize_words(params.keyword)

        if params.media_type == "any":
            movies, shows = await asyncio.gather(
                self.catalog.discover(
                    "movie", keyword_ids=keyword_ids, min_vote_count=MIN_KEYWORD_VOTES["movie"]
                ),
                self.catalog.discover(
                    "tv", keyword_ids=keyword_ids, min_vote_count=MIN_KEYWORD_VOTES["tv"]
                ),
            )
            return Recommendations(interleave(movies, shows), f"{keyword_label} Content")

        kind = _kind(params.media_type)
        results = await self.catalog.discover(
            kind, keyword_ids=keyword_ids, min_vote_count=MIN_KEYWORD_VOTES[kind]
        )
        return Recommendations(
            results, f"{keyword_label} {media_type_label(params.media_type)}"
        )

    async def _by_year(self, params: RecommendationParams) -> Recommendations:
        dates = date_range(params)
        year_label = str(params.year) if params.year else (params.decade or "Recent")

        if params.media_type == "any":
            movies, shows = await asyncio.gather(
                self.catalog.discover("movie", min_vote_count=MIN_VOTES["movie"], **dates),
                self.catalog.discover("tv", min_vote_count=MIN_VOTES["tv"], **dates),
            )
            return Recommendations(interleave(movies, shows), f"{year_label} Content")

        kind = _kind(params.media_type)
        results = await self.catalog.discover(kind, min_vote_count=MIN_VOTES[kind], **dates)
        return Recommendations(
            results, f"{year_label} {media_type_label(params.media_type)}"
        )

    # TODO: streaming-provider and network queries need TMDB watch-region and
    # network id lookups; both return nothing until those exist.
    async def _by_provider(self, params: RecommendationParams) -> Recommendations:
        label = f"On {params.provider}" if params.provider else "Streaming Recommendations"
        return Recommendations([], label)

    async def _by_network(self, params: RecommendationParams) -> Recommendations:
        label = f"{params.network} Shows" if params.network else "Network Recommendations"
        return Recommendations([], label)
