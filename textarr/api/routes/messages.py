"""
Message API routes.

Platform adapters post each inbound chat message here and relay the reply.
"""

from fastapi import APIRouter, HTTPException, status
import structlog

from textarr.api.dependencies import MessageServiceDep, SessionStoreDep
from textarr.api.schemas import (
    CandidateSchema,
    ChatMessageSchema,
    MessageReply,
    MessageRequest,
    SessionSnapshotResponse,
)
from textarr.domain.models.media import MediaSearchResult

log = structlog.get_logger(__name__)

router = APIRouter(tags=["messages"])


def _candidate(media: MediaSearchResult) -> CandidateSchema:
    return CandidateSchema(
        id=media.id,
        title=media.title,
        year=media.year,
        media_type=media.media_type.value,
        in_library=media.in_library,
    )


@router.post("/messages", response_model=MessageReply)
async def handle_message(request: MessageRequest, service: MessageServiceDep):
    """
    Process one inbound message.

    The reply text is empty when nothing should be sent back
    (e.g. an unregistered SMS sender).
    """
    response = await service.handle(request.user_id, request.text)
    return MessageReply(text=response.text, media_urls=response.media_urls)


@router.get("/sessions/{user_id}", response_model=SessionSnapshotResponse)
async def get_session(user_id: str, sessions: SessionStoreDep):
    """Current conversation state for a platform identity (debugging aid)."""
    if user_id not in sessions:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No active session for {user_id}",
        )

    session = sessions.get(user_id)
    candidates = session.candidates
    source = session.result_source

    return SessionSnapshotResponse(
        user_id=session.user_id,
        state=session.state.value,
        last_activity=session.last_activity,
        result_source=source.value if source else None,
        candidates=[_candidate(m) for m in candidates.results] if candidates else [],
        selected_media=_candidate(session.selected_media) if session.selected_media else None,
        monitor_type=session.monitor_type,
        recent_messages=[
            ChatMessageSchema(role=m.role, content=m.content, timestamp=m.timestamp)
            for m in session.recent_messages
        ],
    )
