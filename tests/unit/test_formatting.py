"""Tests for reply formatting and message templates."""

import pytest

from textarr.core.config import MessagesConfig
from textarr.core.messages import format_message, state_label
from textarr.domain.models.media import (
    AnimeStatus,
    EpisodeStats,
    LibraryStatus,
    QueueItem,
)
from textarr.domain.models.session import ConversationState
from textarr.services.conversation.formatting import ReplyFormatter


@pytest.fixture
def formatter():
    return ReplyFormatter(MessagesConfig())


class TestFormatMessage:
    """Tests for placeholder substitution."""

    def test_replaces_placeholders(self):
        assert format_message('Found {count} results for "{query}":', count=2, query="Dune") == (
            'Found 2 results for "Dune":'
        )

    def test_missing_values_left_untouched(self):
        assert format_message("{title} by {user}", title="Dune") == "Dune by {user}"
        assert format_message("{title}", title=None) == "{title}"

    def test_state_labels(self):
        messages = MessagesConfig()

        assert state_label("idle", messages) == "Ready for a new request"
        assert state_label("something_else", messages) == "something_else"


class TestResultLists:
    """Tests for numbered result lists."""

    def test_status_indicators(self, formatter, media_factory, show_factory):
        assert formatter.status_indicator(media_factory()) == ""
        assert (
            formatter.status_indicator(
                media_factory(in_library=True, library_status=LibraryStatus.AVAILABLE)
            )
            == " ✓"
        )
        assert (
            formatter.status_indicator(
                media_factory(in_library=True, library_status=LibraryStatus.MONITORED)
            )
            == " ⏳"
        )
        partial = show_factory(
            in_library=True,
            library_status=LibraryStatus.PARTIAL,
            episode_stats=EpisodeStats(
                episode_file_count=2, episode_count=3, percent_complete=66.7
            ),
        )
        assert formatter.status_indicator(partial) == " (67%)"

    def test_selection_prompt(self, formatter, media_factory, show_factory):
        text = formatter.selection_prompt(
            [media_factory(rating=7.8), show_factory(title="Dune: Prophecy", year=2024)],
            "Dune",
        )

        assert text.startswith('🔍 Found 2 results for "Dune":')
        assert "1. 🎬 Dune (2021) ⭐7.8" in text
        assert "2. 📺 Dune: Prophecy (2024)" in text
        assert text.endswith("Reply with a number, or search for something else.")


class TestPrompts:
    """Tests for single-item prompts."""

    def test_confirmation_prompt_has_poster(self, formatter, media_factory):
        media = media_factory(poster_url="https://image.tmdb.org/t/p/w500/d.jpg", runtime=155)

        reply = formatter.selected_media_prompt(media, ConversationState.AWAITING_CONFIRMATION)

        assert reply.text.startswith("🎬 Found: Dune (2021) - Movie | 155 min")
        assert reply.text.endswith("YES to add, NO to cancel, or pick a different number.")
        assert reply.media_urls == ["https://image.tmdb.org/t/p/w500/d.jpg"]

    def test_anime_question(self, formatter, show_factory):
        media = show_factory(title="Avatar", anime_status=AnimeStatus.UNCERTAIN)

        reply = formatter.selected_media_prompt(
            media, ConversationState.AWAITING_ANIME_CONFIRMATION
        )

        assert "Reply ANIME or REGULAR" in reply.text
        assert reply.media_urls == []

    def test_long_overview_truncated(self, formatter, media_factory):
        header = formatter.media_header(media_factory(overview="x" * 150))

        assert header.endswith("x" * 100 + "...")

    def test_season_confirm(self, formatter, show_factory):
        text = formatter.season_confirm(show_factory(), "firstSeason")

        assert "Monitoring: first season only" in text


class TestOutcomes:
    """Tests for outcome replies."""

    def test_already_available(self, formatter, media_factory):
        media = media_factory(in_library=True, library_status=LibraryStatus.AVAILABLE)

        assert formatter.already_in_library(media) == "🎬 Dune (2021) is available to watch! ✓"

    def test_already_partial(self, formatter, show_factory):
        media = show_factory(
            in_library=True,
            library_status=LibraryStatus.PARTIAL,
            episode_stats=EpisodeStats(
                episode_file_count=31, episode_count=62, percent_complete=50.0
            ),
        )

        text = formatter.already_in_library(media)

        assert "31/62 episodes downloaded (50%)" in text

    @pytest.mark.parametrize(
        "status,expected",
        [
            ("announced", "waiting for release"),
            ("continuing", "waiting for episodes"),
            ("ended", "waiting to download"),
        ],
    )
    def test_already_monitored_variants(self, formatter, media_factory, status, expected):
        media = media_factory(
            in_library=True,
            library_status=LibraryStatus.MONITORED,
            raw_data={"status": status},
        )

        assert expected in formatter.already_in_library(media)

    def test_added_anime(self, formatter, show_factory):
        reply = formatter.added(show_factory(title="Frieren", anime_status=AnimeStatus.ANIME))

        assert reply.text.startswith("✅ 📺 Frieren (anime) added!")


class TestQueueSummary:
    """Tests for the status reply."""

    def test_empty_queue(self, formatter):
        assert formatter.queue_summary([]) == "📭 Nothing is currently downloading."

    def test_truncates_after_five(self, formatter):
        items = [QueueItem(title=f"Item {i}", progress=i * 10) for i in range(7)]

        text = formatter.queue_summary(items)

        assert "• Item 0 - 0%" in text
        assert "• Item 4 - 40%" in text
        assert "Item 5" not in text
        assert text.endswith("...and 2 more")

    def test_time_left_shown(self, formatter):
        text = formatter.queue_summary([QueueItem(title="Dune", progress=75, time_left="00:10:00")])

        assert "• Dune - 75% (00:10:00)" in text

    def test_admin_help_appended(self, formatter):
        assert "Admin Commands" not in formatter.help(is_admin=False)
        assert "Admin Commands" in formatter.help(is_admin=True)
