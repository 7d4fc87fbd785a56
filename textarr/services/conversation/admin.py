"""Admin command handlers (user management and quota grants)."""

from typing import Optional

import structlog

from textarr.core.exceptions import DuplicateUserError
from textarr.core.messages import EMOJI
from textarr.domain.models.intent import AdminCommand, ParsedIntent
from textarr.domain.models.message import MessageResponse
from textarr.domain.models.user import User, platform_user_id
from textarr.services.conversation.formatting import ReplyFormatter
from textarr.services.user_service import UserService

log = structlog.get_logger(__name__)

IDENTITY_LABELS = (("sms", "SMS"), ("telegram", "TG"), ("discord", "DC"), ("slack", "SL"))

USAGE = {
    "add": (
        "Usage: admin add <platform:id> Name\nExamples:\n"
        "• admin add 5551234567 John\n• admin add telegram:123456789 Jane"
    ),
    "remove": (
        "Usage: admin remove <platform:id>\nExamples:\n"
        "• admin remove 5551234567\n• admin remove telegram:123456789"
    ),
    "promote": (
        "Usage: admin promote <platform:id>\nExamples:\n"
        "• admin promote 5551234567\n• admin promote telegram:123456789"
    ),
    "demote": (
        "Usage: admin demote <platform:id>\nExamples:\n"
        "• admin demote 5551234567\n• admin demote telegram:123456789"
    ),
    "quota": (
        "Usage: admin quota <platform:id> movies +5\nExamples:\n"
        "• admin quota 5551234567 movies +5\n• admin quota telegram:123456789 tv +3"
    ),
}


def _target(command: Optional[AdminCommand]) -> Optional[str]:
    if not command or not command.target_platform or not command.target_id:
        return None
    return platform_user_id(command.target_platform, command.target_id)


class AdminCommands:
    """Every command requires the sender to be an admin. None changes the session."""

    def __init__(self, users: UserService, formatter: ReplyFormatter):
        self.users = users
        self.formatter = formatter
        self.messages = formatter.messages

    def _denied(self, user_id: str) -> Optional[MessageResponse]:
        if self.users.is_admin(user_id):
            return None
        log.warning("admin_command_denied", user_id=user_id)
        return self.formatter.warning(self.messages.admin_only)

    def _resolve(
        self, intent: ParsedIntent, usage: str
    ) -> tuple[Optional[str], Optional[User], Optional[MessageResponse]]:
        """(target id, target user, error reply)."""
        target = _target(intent.admin_command)
        if target is None:
            return None, None, self.formatter.warning(USAGE[usage])
        user = self.users.get_user(target)
        if user is None:
            return target, None, self.formatter.warning(f"User {target} not found.")
        return target, user, None

    async def help(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        return self._denied(user_id) or MessageResponse(
            text=f"{EMOJI['crown']} {self.messages.admin_help_text}"
        )

    async def list_users(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        denied = self._denied(user_id)
        if denied:
            return denied

        users = self.users.get_all_users()
        if not users:
            return MessageResponse(text=self.messages.no_users)

        lines = ["Users:\n"]
        for user in users:
            badge = f" {EMOJI['crown']}" if user.is_admin else ""
            counts = user.request_count
            requests = f"({counts.movies}{EMOJI['movie']} {counts.tv_shows}{EMOJI['tv_show']})"
            identities = " ".join(
                f"{label}:{user.identities[platform]}"
                for platform, label in IDENTITY_LABELS
                if user.identities.get(platform)
            )
            lines.append(f"• {user.name}{badge}\n  {identities or user.id} {requests}")
        return MessageResponse(text="\n".join(lines))

    async def add(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        denied = self._denied(user_id)
        if denied:
            return denied

        command = intent.admin_command
        target = _target(command)
        if target is None or not command.user_name:
            return self.formatter.warning(USAGE["add"])

        try:
            self.users.add_user(
                command.user_name,
                {command.target_platform: command.target_id},
                created_by=user_id,
            )
        except DuplicateUserError:
            return self.formatter.warning(f"User with {target} already exists.")

        return MessageResponse(
            text=f"{EMOJI['check_green']} Added {command.user_name} ({target}) to authorized users."
        )

    async def remove(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        denied = self._denied(user_id)
        if denied:
            return denied

        target, user, error = self._resolve(intent, "remove")
        if error:
            return error
        if user.has_identity(user_id):
            return self.formatter.warning("You can't remove yourself.")

        self.users.remove_user(user.id)
        return MessageResponse(
            text=f"{EMOJI['check_green']} Removed {user.name} from authorized users."
        )

    async def promote(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        denied = self._denied(user_id)
        if denied:
            return denied

        target, user, error = self._resolve(intent, "promote")
        if error:
            return error
        if user.is_admin:
            return MessageResponse(text=f"{user.name} is already an admin.")

        self.users.set_admin(user.id, True)
        return MessageResponse(text=f"{EMOJI['check_green']} {user.name} is now an admin.")

    async def demote(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        denied = self._denied(user_id)
        if denied:
            return denied

        target, user, error = self._resolve(intent, "demote")
        if error:
            return error
        if user.has_identity(user_id):
            return self.formatter.warning("You can't demote yourself.")
        if not user.is_admin:
            return MessageResponse(text=f"{user.name} is not an admin.")

        self.users.set_admin(user.id, False)
        return MessageResponse(
            text=f"{EMOJI['check_green']} {user.name} is no longer an admin."
        )

    async def quota(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        denied = self._denied(user_id)
        if denied:
            return denied

        command = intent.admin_command
        if not command or command.media_type is None or command.quota_amount is None:
            return self.formatter.warning(USAGE["quota"])

        target, user, error = self._resolve(intent, "quota")
        if error:
            return error

        self.users.add_quota(user.id, command.media_type, command.quota_amount)
        type_label = "movie" if command.media_type == "movie" else "TV show"
        return MessageResponse(
            text=(
                f"{EMOJI['check_green']} Added {command.quota_amount} {type_label} "
                f"requests to {user.name}'s quota."
            )
        )
