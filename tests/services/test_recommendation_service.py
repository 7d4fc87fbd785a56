"""Tests for catalog recommendation queries."""

import pytest

from textarr.core.exceptions import CatalogError
from textarr.domain.models.intent import RecommendationParams
from textarr.services.recommendation_service import (
    RecommendationService,
    date_range,
    interleave,
)


@pytest.fixture
def service(catalog):
    return RecommendationService(catalog)


class TestHelpers:
    """Tests for module-level helpers."""

    def test_interleave_uneven(self, media_factory):
        a = [media_factory(id=i, title=f"a{i}") for i in range(3)]
        b = [media_factory(id=10, title="b0")]

        assert [r.title for r in interleave(a, b)] == ["a0", "b0", "a1", "a2"]

    def test_date_range_year(self):
        assert date_range(RecommendationParams(year=1999)) == {
            "release_date_gte": "1999-01-01",
            "release_date_lte": "1999-12-31",
        }

    @pytest.mark.parametrize(
        "decade,start",
        [("80s", 1980), ("2010s", 2010), ("00s", 2000), ("'90s", 1990)],
    )
    def test_date_range_decade(self, decade, start):
        dates = date_range(RecommendationParams(decade=decade))

        assert dates["release_date_gte"] == f"{start}-01-01"
        assert dates["release_date_lte"] == f"{start + 9}-12-31"

    def test_date_range_empty(self):
        assert date_range(RecommendationParams()) == {}


class TestRecommend:
    """Tests for RecommendationService.recommend()."""

    @pytest.mark.asyncio
    async def test_popular_any_interleaves(self, service, catalog, media_factory, show_factory):
        movie = media_factory()
        show = show_factory()

        async def popular(kind):
            return [movie] if kind == "movie" else [show]

        catalog.get_popular.side_effect = popular

        recs = await service.recommend(RecommendationParams(type="popular"))

        assert recs.results == [movie, show]
        assert recs.label == "Popular Content"

    @pytest.mark.asyncio
    async def test_trending_scope(self, service, catalog):
        catalog.get_trending.return_value = []

        recs = await service.recommend(
            RecommendationParams(type="trending", media_type="tv_show", time_window="day")
        )

        catalog.get_trending.assert_awaited_once_with("tv", "day")
        assert recs.label == "Trending Shows"

    @pytest.mark.asyncio
    async def test_genre_with_decade(self, service, catalog, media_factory):
        catalog.get_genre_id.return_value = 27
        catalog.discover.return_value = [media_factory(title="The Thing", year=1982)]

        recs = await service.recommend(
            RecommendationParams(type="genre", genre="horror", decade="80s", media_type="movie")
        )

        assert recs.label == "80s Horror Movies"
        assert [r.title for r in recs.results] == ["The Thing"]
        catalog.discover.assert_awaited_once_with(
            "movie",
            genre_id=27,
            min_vote_count=50,
            min_vote_average=None,
            release_date_gte="1980-01-01",
            release_date_lte="1989-12-31",
        )

    @pytest.mark.asyncio
    async def test_unknown_genre_falls_back_to_popular(self, service, catalog):
        catalog.get_genre_id.return_value = None
        catalog.get_popular.return_value = []

        recs = await service.recommend(
            RecommendationParams(type="genre", genre="cozy", media_type="tv_show")
        )

        catalog.get_popular.assert_awaited_once_with("tv")
        catalog.discover.assert_not_called()
        assert recs.label == "Popular Shows"

    @pytest.mark.asyncio
    async def test_keyword(self, service, catalog):
        catalog.search_keywords.return_value = [{"id": 4379}, {"id": 1}, {"id": 2}, {"id": 3}]
        catalog.discover.return_value = []

        recs = await service.recommend(
            RecommendationParams(type="keyword", keyword="time travel", media_type="movie")
        )

        catalog.discover.assert_awaited_once_with(
            "movie", keyword_ids=[4379, 1, 2], min_vote_count=20
        )
        assert recs.label == "Time Travel Movies"

    @pytest.mark.asyncio
    async def test_similar_without_title_is_empty(self, service, catalog):
        recs = await service.recommend(RecommendationParams(type="similar"))

        assert recs.results == []
        catalog.get_similar_to.assert_not_called()

    @pytest.mark.asyncio
    async def test_provider_queries_are_empty(self, service):
        recs = await service.recommend(
            RecommendationParams(type="by_provider", provider="Netflix")
        )

        assert recs.results == []
        assert recs.label == "On Netflix"

    @pytest.mark.asyncio
    async def test_catalog_error_propagates(self, service, catalog):
        catalog.get_upcoming.side_effect = CatalogError("TMDB request timed out")

        with pytest.raises(CatalogError):
            await service.recommend(RecommendationParams(type="upcoming"))
