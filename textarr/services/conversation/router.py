"""
Conversation router.

Dispatches a ParsedIntent against the user's session state through an
explicit transition table. Each entry maps (state, action) to a handler
and the set of states that handler may leave the session in; an entry
keyed on ANY applies in every state without a more specific entry.

Resolution order for (state, action):
    1. (state, action) entry
    2. (ANY, action) entry
    3. mismatch reply for the action ("nothing to confirm", ...)

After a handler returns, the resulting state is checked against the
entry. A state outside the declared set is logged as illegal_transition,
the session is reset and the generic failure is returned. Any exception
escaping a handler is logged and becomes the generic failure, leaving the
session as the handler left it.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, FrozenSet, Optional, Tuple

import structlog

from textarr.core.exceptions import IllegalTransitionError
from textarr.core.messages import EMOJI
from textarr.domain.models.intent import IntentAction, ParsedIntent
from textarr.domain.models.message import MessageResponse
from textarr.domain.models.session import ConversationState
from textarr.services.conversation.admin import AdminCommands
from textarr.services.conversation.deps import ConversationDeps
from textarr.services.conversation.formatting import ReplyFormatter
from textarr.services.conversation.media_flow import MediaFlow

log = structlog.get_logger(__name__)

Handler = Callable[[str, ParsedIntent], Awaitable[MessageResponse]]

ANY: Optional[ConversationState] = None

S = ConversationState
ALL_STATES: FrozenSet[ConversationState] = frozenset(ConversationState)
SELECTED_MEDIA_STATES = frozenset(
    {S.AWAITING_CONFIRMATION, S.AWAITING_ANIME_CONFIRMATION, S.AWAITING_SEASON_SELECTION}
)


@dataclass(frozen=True)
class Route:
    """A handler and the states it may leave the session in (None: unchanged)."""

    handler: Handler
    results: Optional[FrozenSet[ConversationState]] = None


class ConversationRouter:
    """Routes one intent for one user and enforces the transition table."""

    def __init__(self, deps: ConversationDeps):
        self.deps = deps
        self.sessions = deps.sessions
        self.formatter = ReplyFormatter(deps.config.messages)
        self.media = MediaFlow(deps, self.formatter)
        self.admin = AdminCommands(deps.users, self.formatter)

        messages = deps.config.messages
        self.mismatch_replies: Dict[IntentAction, str] = {
            IntentAction.CONFIRM: messages.nothing_to_confirm,
            IntentAction.ANIME_CONFIRM: messages.nothing_to_confirm,
            IntentAction.REGULAR_CONFIRM: messages.nothing_to_confirm,
            IntentAction.SELECT: messages.nothing_to_select,
            IntentAction.SEASON_SELECT: messages.nothing_to_select,
            IntentAction.CHANGE_SELECTION: messages.no_previous_results,
        }
        self.table = self._build_table()
        self._check_exhaustive()

    def _build_table(self) -> Dict[Tuple[Optional[ConversationState], IntentAction], Route]:
        A = IntentAction
        media = self.media
        admin = self.admin
        return {
            # Available in every state
            (ANY, A.HELP): Route(self._help),
            (ANY, A.STATUS): Route(media.status),
            (ANY, A.CANCEL): Route(self._cancel, frozenset({S.IDLE})),
            (ANY, A.RESTART): Route(self._restart, frozenset({S.IDLE})),
            (ANY, A.SHOW_CONTEXT): Route(self._show_context),
            (ANY, A.BACK): Route(media.back, frozenset({S.IDLE, S.AWAITING_SELECTION})),
            (ANY, A.DECLINE): Route(self._decline),
            (ANY, A.CONTINUE): Route(self._continue),
            (ANY, A.ADD): Route(media.search, ALL_STATES),
            (ANY, A.SEARCH): Route(media.search, ALL_STATES),
            (ANY, A.RECOMMEND): Route(media.recommend, ALL_STATES),
            (ANY, A.UNKNOWN): Route(self._unknown),
            (ANY, A.ADMIN_HELP): Route(admin.help),
            (ANY, A.ADMIN_LIST): Route(admin.list_users),
            (ANY, A.ADMIN_ADD): Route(admin.add),
            (ANY, A.ADMIN_REMOVE): Route(admin.remove),
            (ANY, A.ADMIN_PROMOTE): Route(admin.promote),
            (ANY, A.ADMIN_DEMOTE): Route(admin.demote),
            (ANY, A.ADMIN_QUOTA): Route(admin.quota),
            # Choosing from a list
            (S.AWAITING_SELECTION, A.SELECT): Route(
                media.select, SELECTED_MEDIA_STATES | {S.IDLE, S.AWAITING_SELECTION}
            ),
            (S.AWAITING_SELECTION, A.CHANGE_SELECTION): Route(
                media.select, SELECTED_MEDIA_STATES | {S.IDLE, S.AWAITING_SELECTION}
            ),
            # Season choice
            (S.AWAITING_SEASON_SELECTION, A.SELECT): Route(
                media.season_select,
                frozenset({S.AWAITING_SEASON_SELECTION, S.AWAITING_CONFIRMATION}),
            ),
            (S.AWAITING_SEASON_SELECTION, A.SEASON_SELECT): Route(
                media.season_select,
                frozenset({S.AWAITING_SEASON_SELECTION, S.AWAITING_CONFIRMATION}),
            ),
            (S.AWAITING_SEASON_SELECTION, A.CONFIRM): Route(
                media.confirm_all_seasons, frozenset({S.AWAITING_CONFIRMATION})
            ),
            # Commit
            (S.AWAITING_CONFIRMATION, A.CONFIRM): Route(media.confirm, frozenset({S.IDLE})),
            (S.AWAITING_ANIME_CONFIRMATION, A.ANIME_CONFIRM): Route(
                media.anime_confirm, frozenset({S.IDLE})
            ),
            (S.AWAITING_ANIME_CONFIRMATION, A.REGULAR_CONFIRM): Route(
                media.regular_confirm, frozenset({S.IDLE})
            ),
            # Picking a different item from the retained list
            **{
                (state, A.CHANGE_SELECTION): Route(
                    media.change_selection, SELECTED_MEDIA_STATES | {S.IDLE}
                )
                for state in SELECTED_MEDIA_STATES
            },
        }

    def _check_exhaustive(self) -> None:
        """Every action must be routable in every state."""
        for state in ConversationState:
            for action in IntentAction:
                if self.resolve(state, action) is None and action not in self.mismatch_replies:
                    raise ValueError(
                        f"No route for action {action.value} in state {state.value}"
                    )

    def resolve(self, state: ConversationState, action: IntentAction) -> Optional[Route]:
        return self.table.get((state, action)) or self.table.get((ANY, action))

    async def dispatch(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        """Run the handler for the user's current state and this intent."""
        before = self.sessions.get(user_id).state
        route = self.resolve(before, intent.action)

        if route is None:
            log.info(
                "intent_not_applicable", state=before.value, action=intent.action.value
            )
            return MessageResponse(text=self.mismatch_replies[intent.action])

        try:
            response = await route.handler(user_id, intent)
        except Exception as e:
            log.error(
                "conversation_handler_failed",
                user_id=user_id,
                state=before.value,
                action=intent.action.value,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return self.formatter.error()

        after = self.sessions.get(user_id).state
        try:
            self._check_transition(before, intent.action, after, route)
        except IllegalTransitionError as e:
            log.error(
                "illegal_transition",
                user_id=user_id,
                from_state=e.from_state,
                action=e.action,
                to_state=e.to_state,
            )
            self.sessions.reset(user_id)
            return self.formatter.error()

        return response

    @staticmethod
    def _check_transition(
        before: ConversationState,
        action: IntentAction,
        after: ConversationState,
        route: Route,
    ) -> None:
        allowed = route.results if route.results is not None else frozenset({before})
        if after not in allowed:
            raise IllegalTransitionError(before.value, action.value, after.value)

    # ==========================================================================
    # Simple replies
    # ==========================================================================

    async def _help(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        return MessageResponse(text=self.formatter.help(self.deps.users.is_admin(user_id)))

    async def _cancel(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        self.sessions.reset(user_id)
        return MessageResponse(text=f"{EMOJI['cancel']} {self.deps.config.messages.cancelled}")

    async def _restart(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        self.sessions.reset(user_id)
        return MessageResponse(text=self.deps.config.messages.restart)

    async def _show_context(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        return MessageResponse(
            text=self.formatter.context_summary(self.sessions.get(user_id))
        )

    async def _decline(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        return MessageResponse(text=self.deps.config.messages.goodbye)

    async def _continue(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        return MessageResponse(text=self.deps.config.messages.add_prompt)

    async def _unknown(self, user_id: str, intent: ParsedIntent) -> MessageResponse:
        return MessageResponse(text=self.deps.config.messages.unknown_command)
