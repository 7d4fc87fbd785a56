"""Sonarr (TV library) client."""

import asyncio
from typing import Any, Dict, List, Optional

import structlog

from textarr.clients.base import LibraryClient
from textarr.core.exceptions import LibraryServiceError
from textarr.domain.models.media import LibraryStatus, MediaSearchResult, MediaType

log = structlog.get_logger(__name__)

REQUIRED_FIELDS = ("tvdbId", "title", "titleSlug", "images", "seasons")

MONITOR_TYPES = ("all", "firstSeason", "lastSeason", "future")


class SonarrClient(LibraryClient):
    """Sonarr v3 API client."""

    service_name = "sonarr"

    async def get_series_by_tvdb_id(self, tvdb_id: int) -> Optional[Dict[str, Any]]:
        """Library record for a TVDB id, or None when Sonarr does not have it."""
        series = await self.request("GET", "series", params={"tvdbId": tvdb_id})
        return series[0] if series else None

    async def lookup_by_tvdb_id(self, tvdb_id: int) -> Optional[Dict[str, Any]]:
        results = await self.request(
            "GET", "series/lookup", params={"term": f"tvdb:{tvdb_id}"}
        )
        return results[0] if results else None

    async def get_all_series(self) -> List[Dict[str, Any]]:
        return await self.request("GET", "series") or []

    async def search(self, term: str) -> List[MediaSearchResult]:
        log.info("sonarr_search", term=term)
        results, existing = await asyncio.gather(
            self.request("GET", "series/lookup", params={"term": term}),
            self.get_all_series(),
        )
        existing_ids = {series.get("tvdbId") for series in existing}
        return [
            self._to_search_result(series, series.get("tvdbId") in existing_ids)
            for series in results or []
        ]

    async def add_series(
        self,
        tvdb_id: int,
        monitor: str = "all",
        quality_profile_id: Optional[int] = None,
        root_folder: Optional[str] = None,
        tags: Optional[List[int]] = None,
        search_for_missing: bool = True,
    ) -> Dict[str, Any]:
        """
        Add a series by TVDB id, monitoring the seasons selected by `monitor`.

        Raises:
            LibraryItemExistsError: Sonarr already has the series
            LibraryServiceError: Lookup or add failed
        """
        if monitor not in MONITOR_TYPES:
            raise ValueError(f"Unknown monitor type: {monitor}")

        fresh = await self.lookup_by_tvdb_id(tvdb_id)
        if not fresh:
            raise LibraryServiceError(
                self.service_name, f"Could not find series with TVDB ID: {tvdb_id}"
            )

        payload = self.add_options(quality_profile_id, root_folder, tags)
        payload["seasonFolder"] = True
        payload["addOptions"] = {
            "monitor": monitor,
            "searchForMissingEpisodes": search_for_missing,
            "searchForCutoffUnmetEpisodes": False,
        }
        for key in REQUIRED_FIELDS:
            if key in fresh:
                payload[key] = fresh[key]

        log.info(
            "sonarr_add_series", title=fresh.get("title"), tvdb_id=tvdb_id, monitor=monitor
        )
        return await self.request("POST", "series", body=payload)

    def _to_search_result(self, series: Dict[str, Any], in_library: bool) -> MediaSearchResult:
        statistics = series.get("statistics") or {}
        season_count = statistics.get("seasonCount") or len(series.get("seasons") or []) or None
        return MediaSearchResult(
            id=series.get("tvdbId") or 0,
            title=series.get("title", ""),
            year=series.get("year") or None,
            overview=series.get("overview"),
            poster_url=series.get("remotePoster"),
            media_type=MediaType.TV_SHOW,
            in_library=in_library,
            library_status=(
                LibraryStatus.MONITORED if in_library else LibraryStatus.NOT_IN_LIBRARY
            ),
            season_count=season_count,
            rating=(series.get("ratings") or {}).get("value") or None,
            raw_data=series,
        )
