"""
Search, selection, confirmation and commit handlers.

Every handler takes the requesting user id and returns a MessageResponse.
Session changes go through the SessionStore transition operations, so each
handler ends in exactly one well-defined state.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

import structlog

from textarr.core.config import LibraryConfig
from textarr.core.exceptions import CatalogError, LibraryItemExistsError, SessionError
from textarr.core.messages import EMOJI, SEASON_MONITOR_TYPES
from textarr.domain.models.intent import ParsedIntent, RecommendationParams
from textarr.domain.models.media import (
    AnimeStatus,
    MediaSearchResult,
    MediaType,
)
from textarr.domain.models.message import MessageResponse
from textarr.domain.models.session import (
    AwaitingAnimeConfirmation,
    AwaitingConfirmation,
    Candidates,
    ConversationState,
    ResultSource,
)
from textarr.services.conversation.deps import ConversationDeps
from textarr.services.conversation.formatting import ReplyFormatter, request_kind

log = structlog.get_logger(__name__)

DEFAULT_MONITOR_TYPE = "all"


def library_options(config: LibraryConfig, is_anime: bool) -> Dict[str, Any]:
    """Anime routing for an add; empty means the client's defaults."""
    if is_anime and config.anime_root_folder:
        return {
            "quality_profile_id": config.anime_quality_profile_id or config.quality_profile_id,
            "root_folder": config.anime_root_folder,
            "tags": config.anime_tag_ids,
        }
    return {}


def filter_by_year(
    results: List[MediaSearchResult], year: Optional[int]
) -> List[MediaSearchResult]:
    """Keep only matches for the year, unless that would leave nothing."""
    if not year:
        return results
    matching = [r for r in results if r.year == year]
    return matching or results


class MediaFlow:
    """Handlers for the media request conversation."""

    def __init__(self, deps: ConversationDeps, formatter: ReplyFormatter):
        self.deps = deps
        self.sessions = deps.sessions
        self.formatter = formatter
        self.messages = deps.config.messages

    # ==========================================================================
    # Search
    # ==========================================================================

    async def search(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        """Handle add/search from any state."""
        if not intent.title:
            return MessageResponse(text=self.messages.add_prompt)

        title = intent.title
        results, from_catalog = await self._find(title)
        results = filter_by_year(results, intent.year)
        results = results[: self.deps.config.session.max_search_results]
        if from_catalog:
            results = await self.deps.enrichment.enrich(results)

        if not results:
            log.info("search_no_results", title=title, year=intent.year)
            return MessageResponse(text=self.formatter.no_results(title))

        if len(results) == 1:
            media = results[0]
            if media.in_library:
                log.info(
                    "single_result_in_library",
                    title=media.title,
                    library_status=media.library_status.value,
                )
                self.sessions.reset(user_id)
                return MessageResponse(text=self.formatter.already_in_library(media))
            self.sessions.reset(user_id)
            return await self.present(user_id, media, intent.is_anime_request)

        log.info("search_awaiting_selection", title=title, result_count=len(results))
        self.sessions.set_pending_results(user_id, results, ResultSource.SEARCH, title)
        return MessageResponse(text=self.formatter.selection_prompt(results, title))

    async def _find(self, title: str) -> Tuple[List[MediaSearchResult], bool]:
        """Catalog search, or a direct library search when the catalog fails.

        Returns the results and whether they came from the catalog. Library
        results already carry their library status and use the library's own
        ids, so they must not be enriched again.
        """
        try:
            results = await self.deps.catalog.search_multi(title)
            log.info("catalog_search_complete", title=title, result_count=len(results))
            return results, True
        except Exception as e:
            log.warning(
                "catalog_search_failed_using_library_search",
                title=title,
                error=str(e),
                error_type=type(e).__name__,
            )
        movies, shows = await asyncio.gather(
            self.deps.movies.search(title), self.deps.series.search(title)
        )
        return [*movies, *shows], False

    # ==========================================================================
    # Selection
    # ==========================================================================

    async def select(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        """Pick an item from the pending results."""
        candidates = self.sessions.get(user_id).candidates
        return await self._choose(user_id, candidates, intent.selection_number)

    async def change_selection(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        """Pick a different item from the list the current item came from."""
        candidates = self.sessions.get(user_id).candidates
        if not candidates or not candidates.results:
            return MessageResponse(text=self.messages.no_previous_results)
        return await self._choose(user_id, candidates, intent.selection_number)

    async def _choose(
        self, user_id: str, candidates: Optional[Candidates], number: Optional[int]
    ) -> MessageResponse:
        count = len(candidates) if candidates else 0
        if not candidates or number is None or not 1 <= number <= count:
            return MessageResponse(text=self.formatter.select_range(count))

        media = candidates.results[number - 1]
        if media.in_library:
            self.sessions.reset(user_id)
            return MessageResponse(text=self.formatter.already_in_library(media))

        return await self.present(user_id, media)

    async def present(
        self, user_id: str, media: MediaSearchResult, is_anime_request: bool = False
    ) -> MessageResponse:
        """Classify one item and move it into the matching selected-media state."""
        media = await self.deps.classification.classify(media, is_anime_request)
        media = await self._with_season_count(media)

        if media.anime_status == AnimeStatus.UNCERTAIN:
            state = ConversationState.AWAITING_ANIME_CONFIRMATION
        elif media.media_type == MediaType.TV_SHOW and (media.season_count or 0) > 1:
            state = ConversationState.AWAITING_SEASON_SELECTION
        else:
            state = ConversationState.AWAITING_CONFIRMATION

        self.sessions.set_selected_media(user_id, media, state)
        log.info(
            "media_selected",
            title=media.title,
            media_type=media.media_type.value,
            anime_status=media.anime_status.value,
            season_count=media.season_count,
            state=state.value,
        )
        return self.formatter.selected_media_prompt(media, state)

    async def _with_season_count(self, media: MediaSearchResult) -> MediaSearchResult:
        # Library-search results already carry the count and a TVDB id, not a TMDB id
        if (
            media.media_type != MediaType.TV_SHOW
            or media.season_count is not None
            or "tvdbId" in media.raw_data
        ):
            return media
        try:
            season_count = await self.deps.catalog.get_season_count(media.id)
        except Exception as e:
            log.warning("season_count_lookup_failed", tmdb_id=media.id, error=str(e))
            return media
        return media.model_copy(update={"season_count": season_count})

    async def season_select(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        """Choose which seasons to monitor (1-4)."""
        number = intent.selection_number
        if number not in SEASON_MONITOR_TYPES:
            return MessageResponse(text=self.formatter.select_range(len(SEASON_MONITOR_TYPES)))
        return self._apply_season_choice(user_id, number)

    async def confirm_all_seasons(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        """YES during season selection means all seasons."""
        return self._apply_season_choice(user_id, 1)

    def _apply_season_choice(self, user_id: str, number: int) -> MessageResponse:
        monitor_type = SEASON_MONITOR_TYPES[number]
        session = self.sessions.select_monitor_type(user_id, monitor_type)
        return MessageResponse(
            text=self.formatter.season_confirm(session.selected_media, monitor_type)
        )

    async def back(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        """Return to the candidate list, or start over when there is none."""
        candidates = self.sessions.get(user_id).candidates
        if not candidates or not candidates.results:
            self.sessions.reset(user_id)
            return MessageResponse(text=self.messages.back_to_start)

        self.sessions.set_pending_results(
            user_id, candidates.results, candidates.source, candidates.query
        )
        if candidates.source == ResultSource.RECOMMENDATION:
            text = self.formatter.recommendation_prompt(candidates.results, candidates.query)
        else:
            text = self.formatter.selection_prompt(
                candidates.results, candidates.query or "previous search"
            )
        return MessageResponse(text=text)

    # ==========================================================================
    # Confirmation and commit
    # ==========================================================================

    async def confirm(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        phase = self.sessions.get(user_id).phase
        if not isinstance(phase, AwaitingConfirmation):
            raise SessionError(f"Nothing to confirm in state {phase.state.value}")
        return await self.commit(user_id, phase.media, phase.monitor_type)

    async def anime_confirm(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        return await self._resolve_anime(user_id, AnimeStatus.ANIME)

    async def regular_confirm(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        return await self._resolve_anime(user_id, AnimeStatus.REGULAR)

    async def _resolve_anime(self, user_id: str, status: AnimeStatus) -> MessageResponse:
        phase = self.sessions.get(user_id).phase
        if not isinstance(phase, AwaitingAnimeConfirmation):
            raise SessionError(f"No anime choice pending in state {phase.state.value}")
        media = phase.media.model_copy(update={"anime_status": status})
        log.info("anime_status_chosen", title=media.title, anime_status=status.value)
        return await self.commit(user_id, media)

    async def commit(
        self,
        user_id: str,
        media: MediaSearchResult,
        monitor_type: Optional[str] = None,
    ) -> MessageResponse:
        """
        Quota check, library add, then bookkeeping. Always ends idle.

        Bookkeeping after a successful add (counter increment, ledger,
        admin notifications) never turns the reply into a failure.
        """
        kind = request_kind(media)
        quota = self.deps.quotas.check(user_id, kind)
        if not quota.allowed:
            self.sessions.reset(user_id)
            return self.formatter.quota_exceeded(quota.message)

        is_anime = media.anime_status == AnimeStatus.ANIME
        tvdb_id: Optional[int] = None
        library_id: Optional[int] = None

        try:
            if media.media_type == MediaType.MOVIE:
                added = await self.deps.movies.add_movie(
                    media, **library_options(self.deps.config.radarr, is_anime)
                )
            else:
                tvdb_id = media.raw_data.get("tvdbId") or await self.deps.catalog.get_tvdb_id(
                    media.id
                )
                if not tvdb_id:
                    log.warning("tvdb_id_not_found", tmdb_id=media.id, title=media.title)
                    self.sessions.reset(user_id)
                    return self.formatter.tvdb_not_found(media)
                added = await self.deps.series.add_series(
                    tvdb_id,
                    monitor=monitor_type or DEFAULT_MONITOR_TYPE,
                    **library_options(self.deps.config.sonarr, is_anime),
                )
            library_id = (added or {}).get("id")
        except LibraryItemExistsError as e:
            log.info("media_already_exists", title=media.title, service=e.service)
            self.sessions.reset(user_id)
            return MessageResponse(text=self.formatter.already_in_library(media))
        except Exception as e:
            log.error(
                "media_add_failed",
                title=media.title,
                media_id=media.id,
                media_type=media.media_type.value,
                anime=is_anime,
                monitor_type=monitor_type,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            self.sessions.reset(user_id)
            return self.formatter.failed_to_add(media)

        log.info(
            "media_added",
            user_id=user_id,
            title=media.title,
            media_type=media.media_type.value,
            anime=is_anime,
            library_id=library_id,
        )

        self.deps.quotas.increment(user_id, kind)
        await self._record(user_id, media, kind, tvdb_id, library_id)
        await self.deps.notifications.notify_admins(user_id, media)

        self.sessions.reset(user_id)
        return self.formatter.added(media)

    async def _record(
        self,
        user_id: str,
        media: MediaSearchResult,
        kind: str,
        tvdb_id: Optional[int],
        library_id: Optional[int],
    ) -> None:
        if self.deps.ledger is None:
            return
        try:
            await self.deps.ledger.record(
                media_type=kind,
                title=media.title,
                year=media.year,
                tmdb_id=media.raw_data.get("tmdbId") or media.id,
                requested_by=user_id,
                tvdb_id=tvdb_id,
                radarr_id=library_id if kind == "movie" else None,
                sonarr_id=library_id if kind != "movie" else None,
            )
        except Exception as e:
            log.warning(
                "request_ledger_failed",
                title=media.title,
                error=str(e),
                error_type=type(e).__name__,
            )

    # ==========================================================================
    # Recommendations and status
    # ==========================================================================

    async def recommend(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        params = intent.recommendation_params or RecommendationParams()
        if params.type == "similar" and not params.similar_to:
            return self.formatter.warning(
                'What title would you like similar recommendations for?\n\n'
                'Try: "Something like Breaking Bad"'
            )

        try:
            recommendations = await self.deps.recommendations.recommend(params)
        except CatalogError as e:
            log.error("recommendations_failed", type=params.type, error=str(e))
            return self.formatter.error()

        results = recommendations.results[: self.deps.config.session.max_search_results]
        results = await self.deps.enrichment.enrich(results)
        if not results:
            return MessageResponse(text=f"{EMOJI['search']} {self.messages.no_recommendations}")

        self.sessions.set_pending_results(
            user_id, results, ResultSource.RECOMMENDATION, recommendations.label
        )
        return MessageResponse(
            text=self.formatter.recommendation_prompt(results, recommendations.label)
        )

    async def status(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        series_queue, movie_queue = await asyncio.gather(
            self.deps.series.get_queue(), self.deps.movies.get_queue()
        )
        return MessageResponse(text=self.formatter.queue_summary([*series_queue, *movie_queue]))
