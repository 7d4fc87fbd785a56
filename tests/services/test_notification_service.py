"""Tests for admin notification fan-out and download-complete messages."""

from unittest.mock import AsyncMock

import pytest

from textarr.core.config import MessagesConfig, NotificationConfig
from textarr.domain.models.user import MediaRequest, User
from textarr.services.notification_service import LoggingMessageSender, NotificationService
from textarr.services.user_service import UserService


@pytest.fixture
def registry():
    return UserService(
        [
            User(
                id="admin-1",
                name="Alex",
                is_admin=True,
                identities={"sms": "+15550000001", "telegram": "999"},
            ),
            User(
                id="admin-2",
                name="Robin",
                is_admin=True,
                identities={"sms": "+15550000002"},
            ),
            User(
                id="admin-3",
                name="Quiet",
                is_admin=True,
                identities={"sms": "+15550000003"},
                notifications_enabled=False,
            ),
            User(id="user-1", name="Sam", identities={"telegram": "12345"}),
        ]
    )


@pytest.fixture
def senders():
    return {"sms": AsyncMock(), "telegram": AsyncMock()}


def make_service(registry, senders, **config):
    return NotificationService(
        NotificationConfig(**config), MessagesConfig(), registry, senders=senders
    )


class TestNotifyAdmins:
    """Tests for NotificationService.notify_admins()."""

    @pytest.mark.asyncio
    async def test_sends_to_every_admin_on_configured_platforms(
        self, registry, senders, media_factory
    ):
        service = make_service(registry, senders, platforms=["sms", "telegram"])

        report = await service.notify_admins("telegram:12345", media_factory())

        assert report.ok
        assert sorted(report.sent) == [
            "sms:+15550000001",
            "sms:+15550000002",
            "telegram:999",
        ]
        text = senders["sms"].send.await_args_list[0].args[1]
        assert "Sam added:" in text
        assert "Dune (2021)" in text

    @pytest.mark.asyncio
    async def test_skips_requesters_own_identity(self, registry, senders, media_factory):
        service = make_service(registry, senders, platforms=["sms"])

        report = await service.notify_admins("sms:+15550000001", media_factory())

        assert report.sent == ["sms:+15550000002"]

    @pytest.mark.asyncio
    async def test_disabled_sends_nothing(self, registry, senders, media_factory):
        service = make_service(registry, senders, enabled=False)

        report = await service.notify_admins("telegram:12345", media_factory())

        assert report.sent == []
        senders["sms"].send.assert_not_called()

    @pytest.mark.asyncio
    async def test_one_failed_send_does_not_stop_others(
        self, registry, senders, media_factory
    ):
        async def send(identity, text):
            if identity == "+15550000001":
                raise ConnectionError("gateway down")

        senders["sms"].send.side_effect = send
        service = make_service(registry, senders, platforms=["sms"])

        report = await service.notify_admins("telegram:12345", media_factory())

        assert not report.ok
        assert report.sent == ["sms:+15550000002"]
        assert report.failed == [("sms:+15550000001", "gateway down")]

    @pytest.mark.asyncio
    async def test_platform_without_sender_only_logs(self, registry, media_factory):
        service = make_service(registry, {}, platforms=["sms"])

        assert isinstance(service.sender_for("sms"), LoggingMessageSender)
        report = await service.notify_admins("telegram:12345", media_factory())

        assert len(report.sent) == 2


def make_request(requested_by="telegram:12345", **kwargs):
    fields = dict(media_type="movie", title="Dune", year=2021, tmdb_id=438631)
    fields.update(kwargs)
    return MediaRequest(requested_by=requested_by, **fields)


class TestNotifyDownloadComplete:
    """Tests for NotificationService.notify_download_complete()."""

    @pytest.mark.asyncio
    async def test_requester_told_on_their_platform(self, registry, senders):
        service = make_service(registry, senders)

        sent = await service.notify_download_complete(make_request())

        assert sent is True
        senders["telegram"].send.assert_awaited_once_with(
            "12345", "🎬 Dune (2021) is ready to watch!"
        )
        senders["sms"].send.assert_not_called()

    @pytest.mark.asyncio
    async def test_show_without_year(self, registry, senders):
        service = make_service(registry, senders)

        await service.notify_download_complete(
            make_request(media_type="tv_show", title="Breaking Bad", year=None)
        )

        senders["telegram"].send.assert_awaited_once_with(
            "12345", "📺 Breaking Bad is ready to watch!"
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "requested_by,config",
        [
            ("telegram:12345", {"enabled": False}),
            ("telegram:12345", {"download_complete": False}),
            ("sms:+15550000003", {}),
            ("telegram:4242", {}),
        ],
    )
    async def test_nothing_sent(self, registry, senders, requested_by, config):
        service = make_service(registry, senders, **config)

        sent = await service.notify_download_complete(make_request(requested_by))

        assert sent is False
        senders["sms"].send.assert_not_called()
        senders["telegram"].send.assert_not_called()

    @pytest.mark.asyncio
    async def test_send_failure_returns_false(self, registry, senders):
        senders["telegram"].send.side_effect = ConnectionError("bot offline")
        service = make_service(registry, senders)

        assert await service.notify_download_complete(make_request()) is False
