"""
Shared test fixtures.

Builders for media results and users, a controllable clock, a temporary
request ledger and a fully mocked conversation stack.
"""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from textarr.clients.radarr import RadarrClient
from textarr.clients.sonarr import SonarrClient
from textarr.clients.tmdb import TMDBClient
from textarr.core.config import AppConfig, QuotaConfig
from textarr.domain.models.media import AnimeStatus, MediaSearchResult, MediaType
from textarr.domain.models.user import User
from textarr.persistence.database import init_database
from textarr.persistence.repositories.media_request_repo import MediaRequestRepository
from textarr.services.classification_service import ClassificationService
from textarr.services.conversation import ConversationDeps, ConversationRouter
from textarr.services.enrichment_service import EnrichmentService
from textarr.services.notification_service import NotificationService
from textarr.services.quota_service import QuotaService
from textarr.services.recommendation_service import RecommendationService
from textarr.services.session_store import SessionStore
from textarr.services.user_service import UserService


class FakeClock:
    """Deterministic clock; call it for now, advance it explicitly."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 3, 6, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_media(
    id: int = 1,
    title: str = "Dune",
    year: Optional[int] = 2021,
    media_type: MediaType = MediaType.MOVIE,
    **kwargs,
) -> MediaSearchResult:
    return MediaSearchResult(id=id, title=title, year=year, media_type=media_type, **kwargs)


def make_show(id: int = 100, title: str = "Breaking Bad", year: int = 2008, **kwargs):
    return make_media(id=id, title=title, year=year, media_type=MediaType.TV_SHOW, **kwargs)


def make_users() -> List[User]:
    return [
        User(
            id="admin-1",
            name="Alex",
            is_admin=True,
            identities={"sms": "+15550000001", "telegram": "999"},
        ),
        User(id="user-1", name="Sam", identities={"telegram": "12345"}),
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def media_factory():
    return make_media


@pytest.fixture
def show_factory():
    return make_show


@pytest.fixture
async def test_db():
    """Create and initialize a temporary request ledger."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        await init_database(db_path)
        yield db_path


@pytest.fixture
async def ledger(test_db):
    return MediaRequestRepository(str(test_db))


# =============================================================================
# Conversation stack with mocked external services
# =============================================================================


@pytest.fixture
def catalog():
    """TMDB client mock: nothing found, nothing anime, no extra seasons."""
    mock = MagicMock(spec=TMDBClient)
    mock.search_multi.return_value = []
    mock.get_tvdb_id.return_value = 81189
    mock.get_season_count.return_value = 1
    mock.detect_anime.return_value = AnimeStatus.REGULAR
    return mock


@pytest.fixture
def movies():
    mock = MagicMock(spec=RadarrClient)
    mock.get_movie_by_tmdb_id.return_value = None
    mock.add_movie.return_value = {"id": 501}
    mock.search.return_value = []
    mock.get_queue.return_value = []
    return mock


@pytest.fixture
def series():
    mock = MagicMock(spec=SonarrClient)
    mock.get_series_by_tvdb_id.return_value = None
    mock.add_series.return_value = {"id": 701}
    mock.search.return_value = []
    mock.get_queue.return_value = []
    return mock


@pytest.fixture
def app_config():
    return AppConfig(users=make_users())


@pytest.fixture
def users(app_config):
    return UserService(app_config.users)


@pytest.fixture
def sessions(clock):
    return SessionStore(clock=clock)


@pytest.fixture
def notifications():
    mock = MagicMock(spec=NotificationService)
    mock.notify_admins = AsyncMock()
    return mock


@pytest.fixture
def recorder():
    """Request ledger mock."""
    mock = MagicMock(spec=MediaRequestRepository)
    mock.record = AsyncMock()
    return mock


@pytest.fixture
def deps(app_config, sessions, catalog, movies, series, users, notifications, recorder, clock):
    return ConversationDeps(
        config=app_config,
        sessions=sessions,
        catalog=catalog,
        movies=movies,
        series=series,
        enrichment=EnrichmentService(catalog, movies, series),
        classification=ClassificationService(catalog),
        recommendations=RecommendationService(catalog),
        users=users,
        quotas=QuotaService(QuotaConfig(), users, clock=clock),
        notifications=notifications,
        ledger=recorder,
    )


@pytest.fixture
def router(deps):
    return ConversationRouter(deps)
