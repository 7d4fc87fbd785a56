"""Request ledger routes."""

from fastapi import APIRouter

from textarr.api.dependencies import DownloadServiceDep
from textarr.api.schemas import MediaRequestSchema, PendingRequestsResponse

router = APIRouter(prefix="/requests", tags=["requests"])


@router.get("/pending", response_model=PendingRequestsResponse)
async def list_pending(service: DownloadServiceDep):
    """Requests added to a library whose download has not been reported yet."""
    pending = await service.pending()
    return PendingRequestsResponse(
        requests=[
            MediaRequestSchema(
                id=r.id,
                media_type=r.media_type,
                title=r.title,
                year=r.year,
                tmdb_id=r.tmdb_id,
                requested_by=r.requested_by,
                requested_at=r.requested_at,
                status=r.status.value,
            )
            for r in pending
        ],
        count=len(pending),
    )
