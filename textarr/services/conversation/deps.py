"""Collaborators shared by the conversation handlers."""

from dataclasses import dataclass
from typing import Optional

from textarr.core.config import AppConfig
from textarr.services.classification_service import ClassificationService
from textarr.services.enrichment_service import EnrichmentService
from textarr.services.notification_service import NotificationService
from textarr.services.protocols import (
    ICatalog,
    IMovieLibrary,
    IRequestLedger,
    ISeriesLibrary,
)
from textarr.services.quota_service import QuotaService
from textarr.services.recommendation_service import RecommendationService
from textarr.services.session_store import SessionStore
from textarr.services.user_service import UserService


@dataclass
class ConversationDeps:
    config: AppConfig
    sessions: SessionStore
    catalog: ICatalog
    movies: IMovieLibrary
    series: ISeriesLibrary
    enrichment: EnrichmentService
    classification: ClassificationService
    recommendations: RecommendationService
    users: UserService
    quotas: QuotaService
    notifications: NotificationService
    ledger: Optional[IRequestLedger] = None
