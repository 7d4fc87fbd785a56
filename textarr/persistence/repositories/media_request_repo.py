"""Media request repository for ledger operations."""

from datetime import datetime
from typing import List, Literal, Optional

import aiosqlite
import structlog

from textarr.domain.models.user import MediaRequest, RequestKind, RequestStatus

log = structlog.get_logger(__name__)

ACTIVE_STATUSES = (RequestStatus.PENDING.value, RequestStatus.DOWNLOADING.value)


class MediaRequestRepository:
    """Repository for committed media requests."""

    def __init__(self, db_path: str):
        self.db_path = db_path

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
        """Insert a pending request and return it."""
        request = MediaRequest(
            media_type=media_type,
            title=title,
            year=year,
            tmdb_id=tmdb_id,
            tvdb_id=tvdb_id,
            radarr_id=radarr_id,
            sonarr_id=sonarr_id,
            requested_by=requested_by,
        )
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """INSERT INTO media_requests (
                    id, media_type, title, year, tmdb_id, tvdb_id,
                    radarr_id, sonarr_id, requested_by, requested_at, status
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    request.id,
                    request.media_type,
                    request.title,
                    request.year,
                    request.tmdb_id,
                    request.tvdb_id,
                    request.radarr_id,
                    request.sonarr_id,
                    request.requested_by,
                    request.requested_at.isoformat(),
                    request.status.value,
                ),
            )
            await db.commit()

        log.info(
            "media_request_recorded",
            request_id=request.id,
            media_type=media_type,
            title=title,
            requested_by=requested_by,
        )
        return request

    async def get(self, request_id: str) -> Optional[MediaRequest]:
        """Get a request by ID."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM media_requests WHERE id = ?", (request_id,)
            )
            row = await cursor.fetchone()
            if not row:
                return None
            return self._row_to_request(row)

    async def find_pending(self) -> List[MediaRequest]:
        """Requests still waiting on a download (pending or downloading)."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM media_requests WHERE status IN (?, ?) "
                "ORDER BY requested_at",
                ACTIVE_STATUSES,
            )
            rows = await cursor.fetchall()
            return [self._row_to_request(row) for row in rows]

    async def find_by_arr_id(
        self, service: Literal["radarr", "sonarr"], arr_id: int
    ) -> Optional[MediaRequest]:
        """Active request for a Radarr movie id or Sonarr series id."""
        if service not in ("radarr", "sonarr"):
            raise ValueError(f"Unknown library service: {service}")
        column = f"{service}_id"
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT * FROM media_requests WHERE {column} = ? AND status IN (?, ?) "
                "ORDER BY requested_at DESC LIMIT 1",
                (arr_id, *ACTIVE_STATUSES),
            )
            row = await cursor.fetchone()
            return self._row_to_request(row) if row else None

    async def find_by_tmdb_id(
        self, tmdb_id: int, media_type: Optional[RequestKind] = None
    ) -> Optional[MediaRequest]:
        """Active request for a catalog id, optionally narrowed by kind."""
        query = "SELECT * FROM media_requests WHERE tmdb_id = ? AND status IN (?, ?)"
        params: tuple = (tmdb_id, *ACTIVE_STATUSES)
        if media_type is not None:
            query += " AND media_type = ?"
            params = params + (media_type,)
        query += " ORDER BY requested_at DESC LIMIT 1"

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            row = await cursor.fetchone()
            return self._row_to_request(row) if row else None

    async def update_status(self, request_id: str, status: RequestStatus) -> bool:
        """Set a request's status. Returns False if the request does not exist."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "UPDATE media_requests SET status = ? WHERE id = ?",
                (RequestStatus(status).value, request_id),
            )
            await db.commit()
            updated = cursor.rowcount > 0

        if updated:
            log.info("media_request_status_updated", request_id=request_id, status=status)
        else:
            log.warning("media_request_not_found", request_id=request_id)
        return updated

    async def delete_completed_before(self, cutoff: datetime) -> int:
        """Purge completed requests older than cutoff. Returns rows deleted."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "DELETE FROM media_requests WHERE status = ? AND requested_at < ?",
                (RequestStatus.COMPLETED.value, cutoff.isoformat()),
            )
            await db.commit()
            return cursor.rowcount

    def _row_to_request(self, row: aiosqlite.Row) -> MediaRequest:
        return MediaRequest(
            id=row["id"],
            media_type=row["media_type"],
            title=row["title"],
            year=row["year"],
            tmdb_id=row["tmdb_id"],
            tvdb_id=row["tvdb_id"],
            radarr_id=row["radarr_id"],
            sonarr_id=row["sonarr_id"],
            requested_by=row["requested_by"],
            requested_at=datetime.fromisoformat(row["requested_at"]),
            status=RequestStatus(row["status"]),
        )
