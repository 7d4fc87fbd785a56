"""Tests for the conversation router and media request flow."""

import pytest

from textarr.core.config import LibraryConfig, QuotaConfig
from textarr.core.exceptions import CatalogError, LibraryItemExistsError, LibraryServiceError
from textarr.domain.models.intent import IntentAction, ParsedIntent, RecommendationParams
from textarr.domain.models.media import AnimeStatus, LibraryStatus, QueueItem
from textarr.domain.models.session import ConversationState, ResultSource
from textarr.domain.models.user import RequestCount
from textarr.services.conversation.router import ANY, Route
from textarr.services.quota_service import QuotaService

USER = "telegram:12345"
S = ConversationState
A = IntentAction


def intent(action, **kwargs):
    return ParsedIntent(action=action, **kwargs)


def state_of(router):
    return router.sessions.get(USER).state


def enter(router, state, results):
    """Put the test user's session into state with results as the retained list."""
    router.sessions.set_pending_results(USER, results, query="Dune")
    if state != S.AWAITING_SELECTION:
        router.sessions.set_selected_media(USER, results[0], state)


@pytest.fixture
def two_dunes(catalog, media_factory):
    results = [
        media_factory(id=438631, title="Dune", year=2021),
        media_factory(id=841, title="Dune", year=1984),
    ]
    catalog.search_multi.return_value = results
    return results


class TestTransitionTable:
    """Tests for table resolution and mismatch replies."""

    def test_table_is_exhaustive(self, router):
        router._check_exhaustive()

    def test_missing_route_detected(self, router):
        del router.table[(ANY, A.HELP)]

        with pytest.raises(ValueError, match="help"):
            router._check_exhaustive()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "action,expected",
        [
            (A.CONFIRM, "Nothing to confirm"),
            (A.ANIME_CONFIRM, "Nothing to confirm"),
            (A.SELECT, "Nothing to select from"),
            (A.SEASON_SELECT, "Nothing to select from"),
            (A.CHANGE_SELECTION, "No previous results"),
        ],
    )
    async def test_mismatch_in_idle(self, router, action, expected):
        reply = await router.dispatch(USER, intent(action, selection_number=1))

        assert reply.text.startswith(expected)
        assert state_of(router) == S.IDLE

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "state",
        [
            S.AWAITING_SELECTION,
            S.AWAITING_CONFIRMATION,
            S.AWAITING_ANIME_CONFIRMATION,
            S.AWAITING_SEASON_SELECTION,
        ],
    )
    async def test_unrouted_intent_keeps_state(self, router, two_dunes, state):
        """Every action the table leaves unrouted in a state gets its mismatch reply."""
        enter(router, state, two_dunes)
        before = router.sessions.get(USER)
        selected = before.selected_media
        candidates = before.candidates
        unrouted = [
            action
            for action in router.mismatch_replies
            if router.resolve(state, action) is None
        ]
        assert unrouted

        for action in unrouted:
            reply = await router.dispatch(USER, intent(action, selection_number=1))

            assert reply.text == router.mismatch_replies[action]
            session = router.sessions.get(USER)
            assert session.state == state
            assert session.selected_media == selected
            assert session.candidates == candidates

    @pytest.mark.asyncio
    async def test_help_keeps_state(self, router, media_factory):
        router.sessions.set_selected_media(USER, media_factory())

        reply = await router.dispatch(USER, intent(A.HELP))

        assert "Textarr Help" in reply.text
        assert "Admin Commands" not in reply.text
        assert state_of(router) == S.AWAITING_CONFIRMATION

    @pytest.mark.asyncio
    async def test_cancel_resets(self, router, media_factory):
        router.sessions.set_selected_media(USER, media_factory())

        reply = await router.dispatch(USER, intent(A.CANCEL))

        assert reply.text == "❌ Cancelled. Send a new request anytime!"
        assert state_of(router) == S.IDLE

    @pytest.mark.asyncio
    async def test_show_context(self, router, two_dunes):
        await router.dispatch(USER, intent(A.ADD, title="Dune"))

        reply = await router.dispatch(USER, intent(A.SHOW_CONTEXT))

        assert "Waiting for you to pick from search results" in reply.text
        assert "Search results: 2 items" in reply.text

    @pytest.mark.asyncio
    async def test_illegal_transition_resets(self, router, media_factory):
        async def misbehaving(user_id, parsed):
            router.sessions.set_selected_media(user_id, media_factory())
            return await router._help(user_id, parsed)

        router.table[(ANY, A.HELP)] = Route(misbehaving)

        reply = await router.dispatch(USER, intent(A.HELP))

        assert reply.text == "⚠️ Something went wrong. Please try again."
        assert state_of(router) == S.IDLE

    @pytest.mark.asyncio
    async def test_handler_exception_becomes_error(self, router, movies, two_dunes):
        await router.dispatch(USER, intent(A.ADD, title="Dune"))
        movies.get_queue.side_effect = RuntimeError("radarr down")

        reply = await router.dispatch(USER, intent(A.STATUS))

        assert reply.text == "⚠️ Something went wrong. Please try again."
        assert state_of(router) == S.AWAITING_SELECTION


class TestSearch:
    """Tests for add/search handling."""

    @pytest.mark.asyncio
    async def test_missing_title_prompts(self, router, catalog):
        reply = await router.dispatch(USER, intent(A.ADD))

        assert reply.text.startswith("What would you like to add?")
        catalog.search_multi.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_results(self, router):
        reply = await router.dispatch(USER, intent(A.ADD, title="Qwxz"))

        assert 'No results found for "Qwxz"' in reply.text
        assert state_of(router) == S.IDLE

    @pytest.mark.asyncio
    async def test_multiple_results_offer_selection(self, router, two_dunes):
        reply = await router.dispatch(USER, intent(A.ADD, title="Dune"))

        assert 'Found 2 results for "Dune"' in reply.text
        session = router.sessions.get(USER)
        assert session.state == S.AWAITING_SELECTION
        assert [r.year for r in session.pending_results] == [2021, 1984]
        assert session.result_source == ResultSource.SEARCH

    @pytest.mark.asyncio
    async def test_year_narrows_to_single_result(self, router, two_dunes):
        reply = await router.dispatch(USER, intent(A.ADD, title="Dune", year=1984))

        session = router.sessions.get(USER)
        assert session.state == S.AWAITING_CONFIRMATION
        assert session.selected_media.id == 841
        assert "Found: Dune (1984)" in reply.text

    @pytest.mark.asyncio
    async def test_results_truncated(self, router, catalog, media_factory, app_config):
        catalog.search_multi.return_value = [media_factory(id=i) for i in range(1, 9)]

        await router.dispatch(USER, intent(A.SEARCH, title="Dune"))

        assert len(router.sessions.get(USER).pending_results) == app_config.session.max_search_results

    @pytest.mark.asyncio
    async def test_single_result_in_library(self, router, catalog, movies, media_factory):
        catalog.search_multi.return_value = [media_factory()]
        movies.get_movie_by_tmdb_id.return_value = {"id": 9, "hasFile": True}

        reply = await router.dispatch(USER, intent(A.ADD, title="Dune"))

        assert reply.text == "🎬 Dune (2021) is available to watch! ✓"
        assert state_of(router) == S.IDLE

    @pytest.mark.asyncio
    async def test_new_search_replaces_selection(self, router, two_dunes, catalog, show_factory):
        await router.dispatch(USER, intent(A.ADD, title="Dune"))
        catalog.search_multi.return_value = [show_factory()]

        await router.dispatch(USER, intent(A.ADD, title="Breaking Bad"))

        session = router.sessions.get(USER)
        assert session.state == S.AWAITING_CONFIRMATION
        assert session.selected_media.title == "Breaking Bad"
        assert session.candidates is None

    @pytest.mark.asyncio
    async def test_catalog_failure_uses_library_search(self, router, catalog, movies, media_factory):
        catalog.search_multi.side_effect = CatalogError("TMDB request timed out")
        movies.search.return_value = [media_factory()]

        await router.dispatch(USER, intent(A.ADD, title="Dune"))

        movies.search.assert_awaited_once_with("Dune")
        assert state_of(router) == S.AWAITING_CONFIRMATION

    @pytest.mark.asyncio
    async def test_library_search_results_keep_their_status(
        self, router, catalog, series, show_factory
    ):
        catalog.search_multi.side_effect = CatalogError("TMDB request timed out")
        catalog.get_tvdb_id.side_effect = CatalogError("TMDB request timed out")
        series.search.return_value = [
            show_factory(
                id=81189,
                in_library=True,
                library_status=LibraryStatus.MONITORED,
                raw_data={"tvdbId": 81189},
            )
        ]

        reply = await router.dispatch(USER, intent(A.ADD, title="Breaking Bad"))

        assert reply.text == "📺 Breaking Bad (2008) is in your library, waiting to download."
        assert state_of(router) == S.IDLE
        catalog.get_tvdb_id.assert_not_called()
        series.get_series_by_tvdb_id.assert_not_called()

    @pytest.mark.asyncio
    async def test_library_search_show_added_by_tvdb_id(
        self, router, catalog, series, recorder, show_factory
    ):
        catalog.search_multi.side_effect = CatalogError("TMDB request timed out")
        series.search.return_value = [
            show_factory(
                id=81189,
                season_count=1,
                raw_data={"tvdbId": 81189, "tmdbId": 1396, "seriesType": "standard"},
            )
        ]

        await router.dispatch(USER, intent(A.ADD, title="Breaking Bad"))
        reply = await router.dispatch(USER, intent(A.CONFIRM))

        assert reply.text.startswith("✅ 📺 Breaking Bad added!")
        series.add_series.assert_awaited_once_with(81189, monitor="all")
        catalog.detect_anime.assert_not_called()
        catalog.get_tvdb_id.assert_not_called()
        recorded = recorder.record.await_args.kwargs
        assert (recorded["tmdb_id"], recorded["tvdb_id"], recorded["sonarr_id"]) == (1396, 81189, 701)


class TestSelection:
    """Tests for choosing from a list."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "state,action",
        [
            (S.AWAITING_SELECTION, A.SELECT),
            (S.AWAITING_SELECTION, A.CHANGE_SELECTION),
            (S.AWAITING_CONFIRMATION, A.CHANGE_SELECTION),
            (S.AWAITING_SEASON_SELECTION, A.CHANGE_SELECTION),
        ],
    )
    @pytest.mark.parametrize("number", [0, -1, 3, None])
    async def test_out_of_range(self, router, two_dunes, state, action, number):
        enter(router, state, two_dunes)
        selected = router.sessions.get(USER).selected_media

        reply = await router.dispatch(USER, intent(action, selection_number=number))

        assert reply.text == "Please select a number between 1 and 2."
        session = router.sessions.get(USER)
        assert session.state == state
        assert session.selected_media == selected
        assert len(session.candidates) == 2

    @pytest.mark.asyncio
    async def test_back_returns_to_list(self, router, two_dunes):
        await router.dispatch(USER, intent(A.ADD, title="Dune"))
        await router.dispatch(USER, intent(A.SELECT, selection_number=1))

        reply = await router.dispatch(USER, intent(A.BACK))

        assert 'Found 2 results for "Dune"' in reply.text
        assert state_of(router) == S.AWAITING_SELECTION

    @pytest.mark.asyncio
    async def test_back_without_list(self, router):
        reply = await router.dispatch(USER, intent(A.BACK))

        assert reply.text.startswith("Back to the start!")
        assert state_of(router) == S.IDLE

    @pytest.mark.asyncio
    async def test_change_selection_during_confirmation(self, router, two_dunes):
        await router.dispatch(USER, intent(A.ADD, title="Dune"))
        await router.dispatch(USER, intent(A.SELECT, selection_number=1))

        await router.dispatch(USER, intent(A.CHANGE_SELECTION, selection_number=2))

        session = router.sessions.get(USER)
        assert session.state == S.AWAITING_CONFIRMATION
        assert session.selected_media.year == 1984


class TestCommit:
    """Tests for confirmation and the library add."""

    @pytest.mark.asyncio
    async def test_movie_flow(self, router, two_dunes, movies, recorder, notifications):
        await router.dispatch(USER, intent(A.ADD, title="Dune"))
        await router.dispatch(USER, intent(A.SELECT, selection_number=1))

        reply = await router.dispatch(USER, intent(A.CONFIRM))

        assert reply.text.startswith("✅ 🎬 Dune added!")
        assert state_of(router) == S.IDLE
        added = movies.add_movie.await_args.args[0]
        assert added.id == 438631
        assert added.anime_status == AnimeStatus.REGULAR
        recorder.record.assert_awaited_once_with(
            media_type="movie",
            title="Dune",
            year=2021,
            tmdb_id=438631,
            requested_by=USER,
            tvdb_id=None,
            radarr_id=501,
            sonarr_id=None,
        )
        notifications.notify_admins.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_multi_season_show(self, router, catalog, series, show_factory):
        catalog.search_multi.return_value = [show_factory()]
        catalog.get_season_count.return_value = 5

        reply = await router.dispatch(USER, intent(A.ADD, title="Breaking Bad"))
        assert "Which seasons?" in reply.text
        assert state_of(router) == S.AWAITING_SEASON_SELECTION

        reply = await router.dispatch(USER, intent(A.SEASON_SELECT, selection_number=7))
        assert reply.text == "Please select a number between 1 and 4."

        reply = await router.dispatch(USER, intent(A.SEASON_SELECT, selection_number=3))
        assert "Monitoring: latest season only" in reply.text
        assert router.sessions.get(USER).monitor_type == "lastSeason"

        await router.dispatch(USER, intent(A.CONFIRM))

        series.add_series.assert_awaited_once_with(81189, monitor="lastSeason")
        assert state_of(router) == S.IDLE

    @pytest.mark.asyncio
    async def test_yes_during_season_selection_means_all(self, router, catalog, show_factory):
        catalog.search_multi.return_value = [show_factory()]
        catalog.get_season_count.return_value = 5
        await router.dispatch(USER, intent(A.ADD, title="Breaking Bad"))

        await router.dispatch(USER, intent(A.CONFIRM))

        assert state_of(router) == S.AWAITING_CONFIRMATION
        assert router.sessions.get(USER).monitor_type == "all"

    @pytest.mark.asyncio
    async def test_uncertain_anime_routes_to_anime_library(
        self, router, app_config, catalog, series, show_factory
    ):
        app_config.sonarr = LibraryConfig(
            root_folder="/tv", anime_root_folder="/anime", anime_tag_ids=[3]
        )
        catalog.search_multi.return_value = [show_factory(title="Avatar", year=2005)]
        catalog.detect_anime.return_value = AnimeStatus.UNCERTAIN

        reply = await router.dispatch(USER, intent(A.ADD, title="Avatar"))
        assert "Reply ANIME or REGULAR" in reply.text
        assert state_of(router) == S.AWAITING_ANIME_CONFIRMATION

        reply = await router.dispatch(USER, intent(A.ANIME_CONFIRM))

        assert "(anime) added!" in reply.text
        series.add_series.assert_awaited_once_with(
            81189, monitor="all", quality_profile_id=1, root_folder="/anime", tags=[3]
        )

    @pytest.mark.asyncio
    async def test_regular_choice_uses_default_library(self, router, catalog, series, show_factory):
        catalog.search_multi.return_value = [show_factory(title="Avatar", year=2005)]
        catalog.detect_anime.return_value = AnimeStatus.UNCERTAIN
        await router.dispatch(USER, intent(A.ADD, title="Avatar"))

        await router.dispatch(USER, intent(A.REGULAR_CONFIRM))

        series.add_series.assert_awaited_once_with(81189, monitor="all")

    @pytest.mark.asyncio
    async def test_quota_denied(self, router, deps, users, clock, movies, media_factory, catalog):
        deps.quotas = QuotaService(
            QuotaConfig(enabled=True, movie_limit=1), users, clock=clock
        )
        users.get_user(USER).request_count = RequestCount(movies=1, last_reset=clock.now)
        catalog.search_multi.return_value = [media_factory()]
        await router.dispatch(USER, intent(A.ADD, title="Dune"))

        reply = await router.dispatch(USER, intent(A.CONFIRM))

        assert reply.text == (
            "⚠️ Request limit reached\n\n"
            "You've used 1/1 movie requests this week. Resets on Monday."
        )
        movies.add_movie.assert_not_called()
        assert state_of(router) == S.IDLE

    @pytest.mark.asyncio
    async def test_quota_incremented_after_add(self, router, deps, users, clock, catalog, media_factory):
        deps.quotas = QuotaService(QuotaConfig(enabled=True), users, clock=clock)
        catalog.search_multi.return_value = [media_factory()]
        await router.dispatch(USER, intent(A.ADD, title="Dune"))

        await router.dispatch(USER, intent(A.CONFIRM))

        assert users.get_user(USER).request_count.movies == 1

    @pytest.mark.asyncio
    async def test_already_exists(self, router, catalog, movies, notifications, media_factory):
        catalog.search_multi.return_value = [media_factory()]
        movies.add_movie.side_effect = LibraryItemExistsError(
            "radarr", "This movie has already been added", status_code=400
        )
        await router.dispatch(USER, intent(A.ADD, title="Dune"))

        reply = await router.dispatch(USER, intent(A.CONFIRM))

        assert reply.text == "🎬 Dune (2021) is already in your library! ✓"
        notifications.notify_admins.assert_not_called()
        assert state_of(router) == S.IDLE

    @pytest.mark.asyncio
    async def test_add_failure(self, router, catalog, movies, recorder, media_factory):
        catalog.search_multi.return_value = [media_factory()]
        movies.add_movie.side_effect = LibraryServiceError("radarr", "Request timed out", 408)
        await router.dispatch(USER, intent(A.ADD, title="Dune"))

        reply = await router.dispatch(USER, intent(A.CONFIRM))

        assert reply.text == "⚠️ Failed to add Dune. Please try again."
        recorder.record.assert_not_called()
        assert state_of(router) == S.IDLE

    @pytest.mark.asyncio
    async def test_missing_tvdb_id(self, router, catalog, series, show_factory):
        catalog.search_multi.return_value = [show_factory()]
        catalog.get_tvdb_id.return_value = None
        await router.dispatch(USER, intent(A.ADD, title="Breaking Bad"))

        reply = await router.dispatch(USER, intent(A.CONFIRM))

        assert 'Could not find "Breaking Bad" in TVDB' in reply.text
        series.add_series.assert_not_called()

    @pytest.mark.asyncio
    async def test_ledger_failure_does_not_fail_reply(self, router, catalog, recorder, media_factory):
        catalog.search_multi.return_value = [media_factory()]
        recorder.record.side_effect = RuntimeError("disk full")
        await router.dispatch(USER, intent(A.ADD, title="Dune"))

        reply = await router.dispatch(USER, intent(A.CONFIRM))

        assert "added!" in reply.text


class TestRecommendAndStatus:
    """Tests for recommendations and queue status."""

    @pytest.mark.asyncio
    async def test_recommendation_list(self, router, catalog, media_factory, show_factory):
        catalog.get_trending.return_value = [media_factory(), show_factory()]

        reply = await router.dispatch(
            USER, intent(A.RECOMMEND, recommendation_params=RecommendationParams(type="trending"))
        )

        assert reply.text.startswith("⭐ Trending Content:")
        session = router.sessions.get(USER)
        assert session.state == S.AWAITING_SELECTION
        assert session.result_source == ResultSource.RECOMMENDATION

    @pytest.mark.asyncio
    async def test_similar_needs_title(self, router, catalog):
        reply = await router.dispatch(
            USER, intent(A.RECOMMEND, recommendation_params=RecommendationParams(type="similar"))
        )

        assert "similar recommendations" in reply.text
        catalog.get_similar_to.assert_not_called()

    @pytest.mark.asyncio
    async def test_recommendation_catalog_error(self, router, catalog):
        catalog.get_popular.side_effect = CatalogError("TMDB request timed out")

        reply = await router.dispatch(USER, intent(A.RECOMMEND))

        assert reply.text == "⚠️ Something went wrong. Please try again."

    @pytest.mark.asyncio
    async def test_status_combines_queues(self, router, movies, series):
        series.get_queue.return_value = [QueueItem(title="Severance S02E01", progress=10)]
        movies.get_queue.return_value = [QueueItem(title="Dune", progress=75)]

        reply = await router.dispatch(USER, intent(A.STATUS))

        assert reply.text.index("Severance") < reply.text.index("Dune")
