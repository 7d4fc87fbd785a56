"""Message template formatting and the emoji vocabulary used in replies."""

import re
from typing import Any, Dict

from textarr.core.config import MessagesConfig

EMOJI: Dict[str, str] = {
    "movie": "🎬",
    "tv_show": "📺",
    "check": "✓",
    "check_green": "✅",
    "warning": "⚠️",
    "cancel": "❌",
    "search": "🔍",
    "download": "📥",
    "empty": "📭",
    "pin": "📍",
    "mail": "📬",
    "star": "⭐",
    "wait": "⏳",
    "crown": "👑",
    "phone": "📱",
}

MONITOR_LABELS: Dict[str, str] = {
    "all": "all seasons",
    "firstSeason": "first season only",
    "lastSeason": "latest season only",
    "future": "future seasons only",
}

# Season prompt option number -> Sonarr monitor type
SEASON_MONITOR_TYPES: Dict[int, str] = {
    1: "all",
    2: "firstSeason",
    3: "lastSeason",
    4: "future",
}

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def format_message(template: str, **values: Any) -> str:
    """
    Replace {name} placeholders with the given values.

    Placeholders without a value (or with a None value) are left untouched,
    so a partially filled template is still readable.

        format_message('Found {count} results for "{query}":', count=2, query="Dune")
        # 'Found 2 results for "Dune":'
    """

    def _replace(match: re.Match) -> str:
        value = values.get(match.group(1))
        if value is None:
            return match.group(0)
        return str(value)

    return _PLACEHOLDER.sub(_replace, template)


def media_emoji(media_type: str) -> str:
    return EMOJI["movie"] if media_type == "movie" else EMOJI["tv_show"]


def media_type_label(media_type: str) -> str:
    return "Movie" if media_type == "movie" else "TV Show"


def state_label(state: str, messages: MessagesConfig) -> str:
    """User-facing description of a session state."""
    labels = {
        "idle": messages.label_idle,
        "awaiting_selection": messages.label_awaiting_selection,
        "awaiting_confirmation": messages.label_awaiting_confirmation,
        "awaiting_anime_confirmation": messages.label_awaiting_anime_confirmation,
        "awaiting_season_selection": messages.label_awaiting_season_selection,
    }
    return labels.get(state, state)
