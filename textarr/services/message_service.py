"""
Message orchestration service.

Main entry point for one inbound chat message. A turn runs:

1. Authorization (unregistered users get the configured reply or silence)
2. The user's turn lock is taken; everything below runs under it
3. The inbound text is appended to the session history
4. Intent extraction with the current session as context
5. Dispatch through the conversation router
6. The reply is appended to the history and returned

Turns for the same user never interleave; turns for different users run
concurrently.
"""

from typing import Optional

import structlog

from textarr.core.config import SessionConfig
from textarr.core.logging import bind_user_context, unbind_user_context
from textarr.core.messages import format_message
from textarr.domain.models.intent import SessionContext
from textarr.domain.models.message import MessageResponse
from textarr.domain.models.user import split_platform_user_id
from textarr.services.conversation import ConversationRouter
from textarr.services.protocols import IIntentExtractor
from textarr.services.session_store import SessionStore
from textarr.services.user_service import UserService

log = structlog.get_logger(__name__)


class MessageService:
    """Handles one message end to end."""

    def __init__(
        self,
        sessions: SessionStore,
        users: UserService,
        intents: IIntentExtractor,
        router: ConversationRouter,
        session_config: Optional[SessionConfig] = None,
    ):
        self.sessions = sessions
        self.users = users
        self.intents = intents
        self.router = router
        self.session_config = session_config or SessionConfig()

    async def handle(self, user_id: str, text: str) -> MessageResponse:
        """
        Process one message from a platform identity.

        Args:
            user_id: Platform identity, e.g. "telegram:12345"
            text: Raw message text

        Returns:
            MessageResponse (empty text means send nothing)

        Raises:
            ValueError: If user_id is not a valid platform identity
        """
        platform, raw_id = split_platform_user_id(user_id)

        if not self.users.is_authorized(user_id):
            return self._unregistered(user_id, platform, raw_id)

        bind_user_context(user_id)
        try:
            async with self.sessions.turn_lock(user_id):
                return await self._turn(user_id, text)
        finally:
            unbind_user_context()

    async def _turn(self, user_id: str, text: str) -> MessageResponse:
        session = self.sessions.get(user_id)
        log.info("message_received", state=session.state.value, length=len(text))
        self.sessions.append_message(user_id, "user", text)

        context = SessionContext(
            state=session.state,
            pending_results=session.pending_results,
            selected_media=session.selected_media,
        )
        intent = await self.intents.extract(text, context)
        log.info(
            "intent_routed",
            action=intent.action.value,
            title=intent.title,
            state=session.state.value,
            confidence=intent.confidence,
        )

        response = await self.router.dispatch(user_id, intent)
        self.sessions.append_message(user_id, "assistant", response.text)

        log.info(
            "message_handled",
            action=intent.action.value,
            new_state=self.sessions.get(user_id).state.value,
        )
        return response

    def _unregistered(self, user_id: str, platform: str, raw_id: str) -> MessageResponse:
        log.info("unregistered_user", user_id=user_id, platform=platform)

        # SMS stays silent regardless of configuration
        if platform == "sms":
            return MessageResponse()

        if not self.session_config.respond_to_unregistered.get(platform, False):
            return MessageResponse()

        return MessageResponse(
            text=format_message(
                self.session_config.unregistered_message,
                platform=platform.capitalize(),
                id=raw_id,
            )
        )
