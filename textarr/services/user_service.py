"""
Authorized-user registry.

Users come from the application config and are held in memory; admin
commands mutate this registry for the lifetime of the process. A user is
looked up by any linked platform identity ("platform:rawId").
"""

from typing import Dict, List, Optional

import structlog

from textarr.core.exceptions import DuplicateUserError, UserNotFoundError
from textarr.domain.models.user import (
    Platform,
    RequestKind,
    User,
    platform_user_id,
)

log = structlog.get_logger(__name__)


class UserService:
    """In-memory user registry with admin operations."""

    def __init__(self, users: Optional[List[User]] = None):
        self._users: Dict[str, User] = {}
        for user in users or []:
            self._users[user.id] = user.model_copy(deep=True)

    # ==========================================================================
    # Lookups
    # ==========================================================================

    def get_user(self, user_id: str) -> Optional[User]:
        """User owning a platform identity, e.g. 'telegram:12345'."""
        for user in self._users.values():
            if user.has_identity(user_id):
                return user
        return None

    def get_user_by_id(self, id: str) -> Optional[User]:
        return self._users.get(id)

    def is_authorized(self, user_id: str) -> bool:
        return self.get_user(user_id) is not None

    def is_admin(self, user_id: str) -> bool:
        user = self.get_user(user_id)
        return bool(user and user.is_admin)

    def get_admins(self) -> List[User]:
        return [user for user in self._users.values() if user.is_admin]

    def get_all_users(self) -> List[User]:
        return list(self._users.values())

    # ==========================================================================
    # Admin operations
    # ==========================================================================

    def add_user(
        self,
        name: str,
        identities: Dict[Platform, str],
        created_by: Optional[str] = None,
        is_admin: bool = False,
    ) -> User:
        for platform, raw_id in identities.items():
            if self.get_user(platform_user_id(platform, raw_id)):
                raise DuplicateUserError(
                    f"User with {platform}:{raw_id} already exists"
                )

        user = User(
            name=name, identities=identities, created_by=created_by, is_admin=is_admin
        )
        self._users[user.id] = user
        log.info("user_added", user=user.name, identities=list(identities), created_by=created_by)
        return user

    def remove_user(self, id: str) -> User:
        user = self._users.pop(id, None)
        if user is None:
            raise UserNotFoundError(f"User {id} not found")
        log.info("user_removed", user=user.name)
        return user

    def set_admin(self, id: str, is_admin: bool) -> User:
        user = self._require(id)
        user.is_admin = is_admin
        log.info("user_admin_changed", user=user.name, is_admin=is_admin)
        return user

    def add_quota(self, id: str, kind: RequestKind, amount: int) -> User:
        """Grant extra requests by lowering the period counter (floored at 0)."""
        user = self._require(id)
        counts = user.request_count
        if kind == "movie":
            counts.movies = max(0, counts.movies - amount)
        else:
            counts.tv_shows = max(0, counts.tv_shows - amount)
        log.info("user_quota_added", user=user.name, kind=kind, amount=amount)
        return user

    def _require(self, id: str) -> User:
        user = self._users.get(id)
        if user is None:
            raise UserNotFoundError(f"User {id} not found")
        return user
