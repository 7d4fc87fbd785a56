"""
Download webhooks.

Point Sonarr and Radarr "Connect > Webhook" at /webhooks/sonarr and
/webhooks/radarr with the "On Import" (Download) event enabled. When
WEBHOOK_SECRET is set, the secret must arrive in X-Webhook-Secret or as a
Bearer token.
"""

import secrets
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header
import structlog

from textarr.api.dependencies import DownloadServiceDep
from textarr.api.schemas import RadarrWebhookEvent, SonarrWebhookEvent, WebhookResponse
from textarr.core.config import settings
from textarr.core.exceptions import WebhookAuthError
from textarr.services.download_service import CompletionOutcome

log = structlog.get_logger(__name__)

TEST_EVENT = "Test"
DOWNLOAD_EVENT = "Download"


async def verify_webhook_secret(
    x_webhook_secret: Annotated[Optional[str], Header()] = None,
    authorization: Annotated[Optional[str], Header()] = None,
) -> None:
    expected = settings.webhook_secret
    if not expected:
        return

    provided = x_webhook_secret or (authorization or "").removeprefix("Bearer ").strip()
    if not secrets.compare_digest(provided.encode(), expected.encode()):
        log.warning("webhook_secret_rejected")
        raise WebhookAuthError("Invalid webhook secret")


router = APIRouter(
    prefix="/webhooks",
    tags=["webhooks"],
    dependencies=[Depends(verify_webhook_secret)],
)


def _response(outcome: CompletionOutcome) -> WebhookResponse:
    if not outcome.matched:
        return WebhookResponse(message="No pending request")
    return WebhookResponse(request_id=outcome.request.id, notified=outcome.notified)


@router.post("/sonarr", response_model=WebhookResponse)
async def sonarr_webhook(event: SonarrWebhookEvent, service: DownloadServiceDep):
    log.info("sonarr_webhook_received", event_type=event.event_type)

    if event.event_type == TEST_EVENT:
        return WebhookResponse(message="Webhook test successful")
    if event.event_type != DOWNLOAD_EVENT or event.series is None:
        return WebhookResponse()

    outcome = await service.series_downloaded(event.series.id)
    return _response(outcome)


@router.post("/radarr", response_model=WebhookResponse)
async def radarr_webhook(event: RadarrWebhookEvent, service: DownloadServiceDep):
    log.info("radarr_webhook_received", event_type=event.event_type)

    if event.event_type == TEST_EVENT:
        return WebhookResponse(message="Webhook test successful")
    if event.event_type != DOWNLOAD_EVENT or event.movie is None:
        return WebhookResponse()

    outcome = await service.movie_downloaded(event.movie.id, event.movie.tmdb_id)
    return _response(outcome)
