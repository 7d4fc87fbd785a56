"""Conversation state machine: transition table, media flow and admin commands."""

from .deps import ConversationDeps
from .formatting import ReplyFormatter
from .router import ConversationRouter, Route

__all__ = [
    "ConversationDeps",
    "ConversationRouter",
    "ReplyFormatter",
    "Route",
]
