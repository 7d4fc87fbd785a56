"""Reply text for the conversation flow."""

from typing import List, Optional, Sequence

from textarr.core.config import MessagesConfig
from textarr.core.messages import (
    EMOJI,
    MONITOR_LABELS,
    format_message,
    media_emoji,
    media_type_label,
    state_label,
)
from textarr.domain.models.media import (
    AnimeStatus,
    LibraryStatus,
    MediaSearchResult,
    MediaType,
    QueueItem,
)
from textarr.domain.models.message import MessageResponse
from textarr.domain.models.session import ConversationState, Session

OVERVIEW_PREVIEW_CHARS = 100
QUEUE_PREVIEW_ITEMS = 5
WAITING_RELEASE_STATUSES = ("announced", "incinemas", "tba")


def _poster(media: MediaSearchResult) -> List[str]:
    return [media.poster_url] if media.poster_url else []


def _rating(media: MediaSearchResult, spaced: bool = False) -> str:
    if not media.rating:
        return ""
    sep = " " if spaced else ""
    return f" {EMOJI['star']}{sep}{media.rating:.1f}"


def _year(media: MediaSearchResult) -> str:
    return f" ({media.year})" if media.year else ""


class ReplyFormatter:
    """Builds user-facing replies from the configured message templates."""

    def __init__(self, messages: MessagesConfig):
        self.messages = messages

    def error(self) -> MessageResponse:
        return MessageResponse(text=f"{EMOJI['warning']} {self.messages.generic_error}")

    def warning(self, text: str) -> MessageResponse:
        return MessageResponse(text=f"{EMOJI['warning']} {text}")

    # ==========================================================================
    # Result lists
    # ==========================================================================

    def status_indicator(self, media: MediaSearchResult) -> str:
        if not media.in_library:
            return ""
        if media.library_status == LibraryStatus.PARTIAL:
            pct = media.episode_stats.percent_complete if media.episode_stats else 0
            return f" ({round(pct)}%)"
        if media.library_status == LibraryStatus.MONITORED:
            return f" {EMOJI['wait']}"
        return f" {EMOJI['check']}"

    def _numbered(self, results: Sequence[MediaSearchResult]) -> List[str]:
        return [
            f"{i}. {media_emoji(r.media_type.value)} {r.title}{_year(r)}{_rating(r)}"
            f"{self.status_indicator(r)}"
            for i, r in enumerate(results, 1)
        ]

    def selection_prompt(self, results: Sequence[MediaSearchResult], query: str) -> str:
        header = format_message(
            self.messages.search_results, count=len(results), query=query
        )
        lines = [f"{EMOJI['search']} {header}\n", *self._numbered(results)]
        lines.append(f"\n{self.messages.select_prompt}")
        return "\n".join(lines)

    def recommendation_prompt(self, results: Sequence[MediaSearchResult], label: str) -> str:
        lines = [f"{EMOJI['star']} {label}:\n", *self._numbered(results)]
        lines.append(f"\n{self.messages.select_prompt}")
        return "\n".join(lines)

    def no_results(self, query: str) -> str:
        return f"{EMOJI['search']} " + format_message(self.messages.no_results, query=query)

    def select_range(self, maximum: int) -> str:
        return format_message(self.messages.select_range, max=maximum)

    # ==========================================================================
    # Prompts for a single item
    # ==========================================================================

    def media_header(self, media: MediaSearchResult, details: bool = True) -> str:
        text = (
            f"{media_emoji(media.media_type.value)} Found: {media.title}{_year(media)}"
            f" - {media_type_label(media.media_type.value)}{_rating(media, spaced=True)}"
        )
        if not details:
            return text
        if media.season_count:
            text += f" | {media.season_count} seasons"
        if media.runtime:
            text += f" | {media.runtime} min"
        if media.anime_status == AnimeStatus.ANIME:
            text += " | Anime"
        if media.overview:
            preview = media.overview[:OVERVIEW_PREVIEW_CHARS]
            if len(media.overview) > OVERVIEW_PREVIEW_CHARS:
                preview += "..."
            text += f"\n\n{preview}"
        return text

    def selected_media_prompt(
        self, media: MediaSearchResult, state: ConversationState
    ) -> MessageResponse:
        """Prompt matching the state a selected item was moved into."""
        if state == ConversationState.AWAITING_ANIME_CONFIRMATION:
            text = f"{self.media_header(media, details=False)}\n\n{self.messages.anime_or_regular_prompt}"
        elif state == ConversationState.AWAITING_SEASON_SELECTION:
            text = f"{self.media_header(media)}\n\n{self.messages.season_select_prompt}"
        elif media.anime_status == AnimeStatus.ANIME:
            text = f"{self.media_header(media)}\n\n{self.messages.confirm_anime_prompt}"
        else:
            text = f"{self.media_header(media)}\n\n{self.messages.confirm_prompt}"
        return MessageResponse(text=text, media_urls=_poster(media))

    def season_confirm(self, media: MediaSearchResult, monitor_type: str) -> str:
        prompt = format_message(
            self.messages.season_confirm_prompt,
            monitor_type=MONITOR_LABELS.get(monitor_type, monitor_type),
        )
        return f"{EMOJI['tv_show']} {media.title}\n{prompt}"

    # ==========================================================================
    # Outcomes
    # ==========================================================================

    def already_in_library(self, media: MediaSearchResult) -> str:
        title = f"{media_emoji(media.media_type.value)} {media.title}{_year(media)}"
        m = self.messages

        if media.library_status == LibraryStatus.AVAILABLE:
            return f"{format_message(m.already_available, title=title)} {EMOJI['check']}"

        if media.library_status == LibraryStatus.PARTIAL:
            stats = media.episode_stats
            return format_message(
                m.already_partial,
                title=title,
                episode_file_count=stats.episode_file_count if stats else "?",
                episode_count=stats.episode_count if stats else "?",
                percent_complete=round(stats.percent_complete) if stats else "?",
            )

        if media.library_status == LibraryStatus.MONITORED:
            raw_status = str(media.raw_data.get("status") or "").lower()
            if raw_status in WAITING_RELEASE_STATUSES:
                return format_message(m.already_waiting_release, title=title)
            if raw_status == "continuing":
                return format_message(m.already_waiting_episodes, title=title)
            return format_message(m.already_monitored, title=title)

        return f"{format_message(m.already_in_library, title=title)} {EMOJI['check']}"

    def added(self, media: MediaSearchResult) -> MessageResponse:
        library = " (anime)" if media.anime_status == AnimeStatus.ANIME else ""
        title = f"{media_emoji(media.media_type.value)} {media.title}{library}"
        return MessageResponse(
            text=f"{EMOJI['check_green']} " + format_message(self.messages.media_added, title=title)
        )

    def quota_exceeded(self, quota_message: Optional[str]) -> MessageResponse:
        return self.warning(
            format_message(self.messages.quota_exceeded, quota_message=quota_message or "")
        )

    def tvdb_not_found(self, media: MediaSearchResult) -> MessageResponse:
        return self.warning(format_message(self.messages.tvdb_not_found, title=media.title))

    def failed_to_add(self, media: MediaSearchResult) -> MessageResponse:
        return self.warning(format_message(self.messages.failed_to_add, title=media.title))

    # ==========================================================================
    # Informational
    # ==========================================================================

    def queue_summary(self, items: Sequence[QueueItem]) -> str:
        if not items:
            return f"{EMOJI['empty']} {self.messages.nothing_downloading}"

        lines = [f"{EMOJI['download']} {self.messages.currently_downloading}\n"]
        for item in items[:QUEUE_PREVIEW_ITEMS]:
            time_left = f" ({item.time_left})" if item.time_left else ""
            lines.append(f"• {item.title} - {item.progress}%{time_left}")
        if len(items) > QUEUE_PREVIEW_ITEMS:
            lines.append(f"\n...and {len(items) - QUEUE_PREVIEW_ITEMS} more")
        return "\n".join(lines)

    def help(self, is_admin: bool) -> str:
        text = f"{EMOJI['phone']} {self.messages.help_text}"
        if is_admin:
            text += f"\n\n{EMOJI['crown']} {self.messages.admin_help_text}"
        return text

    def context_summary(self, session: Session) -> str:
        text = f"{EMOJI['pin']} {state_label(session.state.value, self.messages)}"
        if session.selected_media:
            text += f"\n\nSelected: {session.selected_media.display_title}"
        if session.pending_results:
            text += f"\n\nSearch results: {len(session.pending_results)} items"
        text += '\n\nSay "restart" to start over.'
        return text


def request_kind(media: MediaSearchResult) -> str:
    return "movie" if media.media_type == MediaType.MOVIE else "tv_show"
