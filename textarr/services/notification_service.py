"""
Outbound notifications.

After a successful commit every admin is told about the request on every
configured platform where they have a linked identity (except the
requester's own identity). Sends run concurrently; a failed send is
logged and collected without affecting the others, and notify_admins
itself never raises.

When a library reports a finished download, the requester is told on the
platform they made the request from.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import structlog

from textarr.core.config import MessagesConfig, NotificationConfig
from textarr.core.messages import EMOJI, format_message, media_emoji
from textarr.domain.models.media import MediaSearchResult
from textarr.domain.models.user import (
    MediaRequest,
    platform_user_id,
    split_platform_user_id,
)
from textarr.services.protocols import IMessageSender
from textarr.services.user_service import UserService

log = structlog.get_logger(__name__)


class LoggingMessageSender:
    """Sender used when no platform transport is wired in; only logs."""

    def __init__(self, platform: str):
        self.platform = platform

    async def send(self, identity: str, text: str) -> None:
        log.info(
            "notification_not_delivered",
            platform=self.platform,
            identity=identity,
            length=len(text),
        )


@dataclass
class NotificationReport:
    """Outcome of one fan-out."""

    sent: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)  # (identity, error)

    @property
    def ok(self) -> bool:
        return not self.failed


class NotificationService:
    """Best-effort notifications to admins."""

    def __init__(
        self,
        config: NotificationConfig,
        messages: MessagesConfig,
        users: UserService,
        senders: Optional[Dict[str, IMessageSender]] = None,
    ):
        self.config = config
        self.messages = messages
        self.users = users
        self.senders: Dict[str, IMessageSender] = senders or {}

    def sender_for(self, platform: str) -> IMessageSender:
        return self.senders.get(platform) or LoggingMessageSender(platform)

    async def notify_admins(
        self, requester_id: str, media: MediaSearchResult
    ) -> NotificationReport:
        report = NotificationReport()
        if not self.config.enabled:
            return report

        requester = self.users.get_user(requester_id)
        title = f"{media_emoji(media.media_type.value)} {media.display_title}"
        text = f"{EMOJI['mail']} " + format_message(
            self.messages.admin_notification,
            user_name=requester.name if requester else "Unknown",
            title=title,
        )

        targets: List[Tuple[str, str]] = []
        for admin in self.users.get_admins():
            if not admin.notifications_enabled:
                continue
            for platform in self.config.platforms:
                identity = admin.identities.get(platform)
                if not identity:
                    continue
                if platform_user_id(platform, identity) == requester_id:
                    continue
                targets.append((platform, identity))

        if not targets:
            return report

        outcomes = await asyncio.gather(
            *(self.sender_for(platform).send(identity, text) for platform, identity in targets),
            return_exceptions=True,
        )

        for (platform, identity), outcome in zip(targets, outcomes):
            key = platform_user_id(platform, identity)
            if isinstance(outcome, BaseException):
                log.error(
                    "admin_notification_failed",
                    platform=platform,
                    admin=identity,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                report.failed.append((key, str(outcome)))
            else:
                report.sent.append(key)

        log.info(
            "admin_notifications_sent",
            title=media.title,
            sent=len(report.sent),
            failed=len(report.failed),
        )
        return report

    async def notify_download_complete(self, request: MediaRequest) -> bool:
        """Tell the requester their media is ready. Returns False when nothing was sent."""
        if not (self.config.enabled and self.config.download_complete):
            log.debug("download_notification_disabled", request_id=request.id)
            return False

        user = self.users.get_user(request.requested_by)
        if user is None:
            log.warning(
                "download_notification_user_not_found", requested_by=request.requested_by
            )
            return False
        if not user.notifications_enabled:
            log.debug("download_notification_opted_out", user=user.id)
            return False

        platform, identity = split_platform_user_id(request.requested_by)
        title = f"{request.title} ({request.year})" if request.year else request.title
        text = format_message(
            self.messages.download_complete,
            emoji=media_emoji(request.media_type),
            title=title,
        )

        try:
            await self.sender_for(platform).send(identity, text)
        except Exception as e:
            log.error(
                "download_notification_failed",
                request_id=request.id,
                platform=platform,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        log.info(
            "download_notification_sent",
            request_id=request.id,
            user=user.id,
            title=request.title,
            platform=platform,
        )
        return True
