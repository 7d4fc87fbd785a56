# noqa
from textarr.services.message_service import MessageService
from textarr.services.intent_service import IntentService
from textarr.services.session_store import SessionStore
from textarr.services.user_service import UserService
from textarr.services.quota_service import QuotaService
from textarr.services.notification_service import NotificationService
from textarr.services.recommendation_service import RecommendationService

__all__ = [
    "MessageService",
    "IntentService",
    "SessionStore",
    "UserService",
    "QuotaService",
    "NotificationService",
    "RecommendationService",
]
