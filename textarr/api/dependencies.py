"""Dependency injection for API routes.

Long-lived collaborators (session store, HTTP clients, services, the
conversation router) are built once per process through lru_cache.
Sessions live in the SessionStore, so every request must see the same one.
"""

from datetime import timedelta
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from textarr.clients.radarr import RadarrClient
from textarr.clients.sonarr import SonarrClient
from textarr.clients.tmdb import TMDBClient
from textarr.core.config import app_config, settings
from textarr.core.exceptions import ConfigurationError
from textarr.persistence.repositories.media_request_repo import MediaRequestRepository
from textarr.services.classification_service import ClassificationService
from textarr.services.conversation import ConversationDeps, ConversationRouter
from textarr.services.download_service import DownloadCompletionService
from textarr.services.enrichment_service import EnrichmentService
from textarr.services.intent_service import IntentService
from textarr.services.message_service import MessageService
from textarr.services.notification_service import NotificationService
from textarr.services.quota_service import QuotaService
from textarr.services.recommendation_service import RecommendationService
from textarr.services.session_store import SessionStore
from textarr.services.user_service import UserService


def get_media_request_repository() -> MediaRequestRepository:
    """FastAPI dependency injection for MediaRequestRepository.

    Each request gets a new repository pointed at the configured database.
    """
    return MediaRequestRepository(str(settings.database_path))


@lru_cache(maxsize=1)
def get_session_store() -> SessionStore:
    """Process-wide session store."""
    return SessionStore(timeout=timedelta(seconds=settings.session_timeout_seconds))


@lru_cache(maxsize=1)
def get_user_service() -> UserService:
    return UserService(app_config.users)


@lru_cache(maxsize=1)
def get_notification_service() -> NotificationService:
    """Shared by the conversation router and the download webhooks."""
    return NotificationService(
        app_config.notifications, app_config.messages, get_user_service()
    )


@lru_cache(maxsize=1)
def get_tmdb_client() -> TMDBClient:
    if not settings.tmdb_api_key:
        raise ConfigurationError("TMDB_API_KEY not configured. Set it in .env.")
    return TMDBClient(
        api_key=settings.tmdb_api_key,
        language=settings.tmdb_language,
        timeout=settings.http_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_radarr_client() -> RadarrClient:
    if not settings.radarr_api_key:
        raise ConfigurationError("RADARR_API_KEY not configured. Set it in .env.")
    return RadarrClient(
        base_url=settings.radarr_url,
        api_key=settings.radarr_api_key,
        quality_profile_id=app_config.radarr.quality_profile_id,
        root_folder=app_config.radarr.root_folder,
        timeout=settings.http_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_sonarr_client() -> SonarrClient:
    if not settings.sonarr_api_key:
        raise ConfigurationError("SONARR_API_KEY not configured. Set it in .env.")
    return SonarrClient(
        base_url=settings.sonarr_url,
        api_key=settings.sonarr_api_key,
        quality_profile_id=app_config.sonarr.quality_profile_id,
        root_folder=app_config.sonarr.root_folder,
        timeout=settings.http_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_conversation_router() -> ConversationRouter:
    """Router wired to the shared clients and services.

    Shared across all requests so quota counters and user edits persist
    for the life of the process.
    """
    catalog = get_tmdb_client()
    movies = get_radarr_client()
    series = get_sonarr_client()
    users = get_user_service()

    deps = ConversationDeps(
        config=app_config,
        sessions=get_session_store(),
        catalog=catalog,
        movies=movies,
        series=series,
        enrichment=EnrichmentService(catalog, movies, series),
        classification=ClassificationService(catalog),
        recommendations=RecommendationService(catalog),
        users=users,
        quotas=QuotaService(app_config.quotas, users),
        notifications=get_notification_service(),
        ledger=get_media_request_repository(),
    )
    return ConversationRouter(deps)


@lru_cache(maxsize=1)
def get_message_service() -> MessageService:
    """Cached message service; one per process."""
    return MessageService(
        sessions=get_session_store(),
        users=get_user_service(),
        intents=IntentService(),
        router=get_conversation_router(),
        session_config=app_config.session,
    )


# Type aliases for dependency injection
MediaRequestRepoDep = Annotated[MediaRequestRepository, Depends(get_media_request_repository)]
SessionStoreDep = Annotated[SessionStore, Depends(get_session_store)]
MessageServiceDep = Annotated[MessageService, Depends(get_message_service)]
NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]


def get_download_service(
    ledger: MediaRequestRepoDep, notifications: NotificationServiceDep
) -> DownloadCompletionService:
    return DownloadCompletionService(ledger, notifications)


DownloadServiceDep = Annotated[DownloadCompletionService, Depends(get_download_service)]
