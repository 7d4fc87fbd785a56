"""
Request quota enforcement.

Counters live on each user's RequestCount and reset lazily: every check
or increment first rolls the counters over when the configured period
(daily, weekly by ISO week, monthly) has changed since last_reset.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable

import structlog

from textarr.core.config import QuotaConfig
from textarr.domain.models.user import QuotaCheck, RequestKind, User
from textarr.services.user_service import UserService

log = structlog.get_logger(__name__)

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
PERIOD_NOUNS = {"daily": "day", "weekly": "week", "monthly": "month"}
MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def period_changed(period: str, last_reset: datetime, now: datetime) -> bool:
    if period == "daily":
        return last_reset.date() != now.date()
    if period == "weekly":
        return last_reset.isocalendar()[:2] != now.isocalendar()[:2]
    return (last_reset.year, last_reset.month) != (now.year, now.month)


def next_reset(period: str, now: datetime) -> datetime:
    """Start of the next quota period."""
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "daily":
        return midnight + timedelta(days=1)
    if period == "weekly":
        return midnight + timedelta(days=7 - now.weekday())
    if now.month == 12:
        return midnight.replace(year=now.year + 1, month=1, day=1)
    return midnight.replace(month=now.month + 1, day=1)


def describe_reset(reset: datetime, now: datetime) -> str:
    """'today', 'tomorrow', 'on Monday' or 'on Mar 1'."""
    days = (reset.date() - now.date()).days
    if days <= 0:
        return "today"
    if days == 1:
        return "tomorrow"
    if days < 7:
        return f"on {WEEKDAYS[reset.weekday()]}"
    return f"on {MONTHS[reset.month - 1]} {reset.day}"


class QuotaService:
    """Pre-commit quota check and post-commit counter increment."""

    def __init__(
        self,
        config: QuotaConfig,
        users: UserService,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.config = config
        self.users = users
        self.clock = clock

    def check(self, user_id: str, kind: RequestKind) -> QuotaCheck:
        if not self.config.enabled:
            return QuotaCheck(allowed=True)

        user = self.users.get_user(user_id)
        if user is None:
            return QuotaCheck(allowed=False, message="User not found")

        if user.is_admin and self.config.admin_exempt:
            return QuotaCheck(allowed=True)

        now = self.clock()
        self._maybe_reset(user, now)

        limit = self.config.movie_limit if kind == "movie" else self.config.tv_show_limit
        current = self._current(user, kind)

        if limit == 0:
            return QuotaCheck(allowed=True, current=current, limit=0)

        if current < limit:
            return QuotaCheck(allowed=True, current=current, limit=limit)

        type_label = "movie" if kind == "movie" else "TV show"
        period_noun = PERIOD_NOUNS[self.config.period]
        reset_label = describe_reset(next_reset(self.config.period, now), now)
        message = (
            f"You've used {current}/{limit} {type_label} requests this {period_noun}. "
            f"Resets {reset_label}."
        )
        log.info(
            "quota_denied",
            user=user.name,
            kind=kind,
            current=current,
            limit=limit,
            period=self.config.period,
        )
        return QuotaCheck(allowed=False, current=current, limit=limit, message=message)

    def increment(self, user_id: str, kind: RequestKind) -> None:
        user = self.users.get_user(user_id)
        if user is None:
            log.warning("quota_increment_unknown_user", user_id=user_id)
            return

        self._maybe_reset(user, self.clock())
        if kind == "movie":
            user.request_count.movies += 1
        else:
            user.request_count.tv_shows += 1
        log.debug(
            "request_count_incremented",
            user=user.name,
            movies=user.request_count.movies,
            tv_shows=user.request_count.tv_shows,
        )

    def _maybe_reset(self, user: User, now: datetime) -> None:
        counts = user.request_count
        last_reset = counts.last_reset
        if last_reset.tzinfo is None and now.tzinfo is not None:
            last_reset = last_reset.replace(tzinfo=now.tzinfo)
        if period_changed(self.config.period, last_reset, now):
            log.info("quota_period_reset", user=user.name, period=self.config.period)
            counts.movies = 0
            counts.tv_shows = 0
            counts.last_reset = now

    @staticmethod
    def _current(user: User, kind: RequestKind) -> int:
        return user.request_count.movies if kind == "movie" else user.request_count.tv_shows
