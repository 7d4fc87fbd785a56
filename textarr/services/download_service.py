"""
Download completion tracking.

Sonarr and Radarr call back when a download finishes. The matching active
request in the ledger is marked completed and its requester is notified.
Downloads of media nobody requested through Textarr are ignored.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

import structlog

from textarr.domain.models.user import MediaRequest, RequestStatus, utcnow
from textarr.persistence.repositories.media_request_repo import MediaRequestRepository
from textarr.services.notification_service import NotificationService

log = structlog.get_logger(__name__)


@dataclass
class CompletionOutcome:
    """What a download event did."""

    request: Optional[MediaRequest] = None
    notified: bool = False

    @property
    def matched(self) -> bool:
        return self.request is not None


class DownloadCompletionService:
    """Closes ledger entries when their download lands."""

    def __init__(self, ledger: MediaRequestRepository, notifications: NotificationService):
        self.ledger = ledger
        self.notifications = notifications

    async def series_downloaded(self, sonarr_id: int) -> CompletionOutcome:
        request = await self.ledger.find_by_arr_id("sonarr", sonarr_id)
        if request is None:
            log.debug("download_without_request", service="sonarr", arr_id=sonarr_id)
            return CompletionOutcome()
        return await self._complete(request)

    async def movie_downloaded(
        self, radarr_id: int, tmdb_id: Optional[int] = None
    ) -> CompletionOutcome:
        """Match on the Radarr id, then on the catalog id for movies added elsewhere."""
        request = await self.ledger.find_by_arr_id("radarr", radarr_id)
        if request is None and tmdb_id:
            request = await self.ledger.find_by_tmdb_id(tmdb_id, "movie")
        if request is None:
            log.debug(
                "download_without_request", service="radarr", arr_id=radarr_id, tmdb_id=tmdb_id
            )
            return CompletionOutcome()
        return await self._complete(request)

    async def _complete(self, request: MediaRequest) -> CompletionOutcome:
        await self.ledger.update_status(request.id, RequestStatus.COMPLETED)
        completed = request.model_copy(update={"status": RequestStatus.COMPLETED})
        notified = await self.notifications.notify_download_complete(completed)

        log.info(
            "media_request_completed",
            request_id=request.id,
            title=request.title,
            requested_by=request.requested_by,
            notified=notified,
        )
        return CompletionOutcome(request=completed, notified=notified)

    async def pending(self) -> List[MediaRequest]:
        return await self.ledger.find_pending()

    async def purge_completed(
        self, retention: timedelta, now: Optional[datetime] = None
    ) -> int:
        """Delete completed requests older than the retention window."""
        cutoff = (now or utcnow()) - retention
        deleted = await self.ledger.delete_completed_before(cutoff)
        log.info("ledger_purged", deleted=deleted, cutoff=cutoff.isoformat())
        return deleted
