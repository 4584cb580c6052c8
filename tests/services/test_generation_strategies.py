"""
Tests for the candidate generation strategies and the strategy factory.
"""

from unittest.mock import AsyncMock, patch

import pytest

from tunesmith.models.config_models import EngineConfig
from tunesmith.models.recommendation_models import RecommendationMode
from tunesmith.models.track_models import ListeningProfile
from tunesmith.services.components.generation_strategies import (
    ArtistStrategy,
    GenreStrategy,
    KeywordStrategy,
    StrategyFactory,
)


def seed_with_artists(track_factory, track_id, *names):
    return track_factory(track_id, artists=[(f"id-{name}", name) for name in names])


class TestArtistStrategy:

    @pytest.mark.asyncio
    async def test_one_search_per_distinct_artist(self, fake_catalog, engine_config, track_factory):
        seeds = [
            seed_with_artists(track_factory, "s1", "Radiohead"),
            seed_with_artists(track_factory, "s2", "Radiohead", "Portishead"),
        ]
        fake_catalog.responses = {
            "artist:Radiohead": [track_factory("r1"), track_factory("r2")],
            "artist:Portishead": [track_factory("p1")],
        }

        result = await ArtistStrategy(fake_catalog, engine_config).execute(seeds, budget=20)

        assert fake_catalog.calls == [("artist:Radiohead", 10), ("artist:Portishead", 10)]
        assert [track.id for track in result.tracks] == ["r1", "r2", "p1"]
        assert not result.failed

    @pytest.mark.asyncio
    async def test_artist_fan_out_is_capped(self, fake_catalog, engine_config, track_factory):
        seeds = [seed_with_artists(track_factory, f"s{i}", f"Artist {i}") for i in range(8)]

        await ArtistStrategy(fake_catalog, engine_config).execute(seeds, budget=100)

        assert len(fake_catalog.calls) == 5

    @pytest.mark.asyncio
    async def test_stops_once_budget_is_met(self, fake_catalog, engine_config, track_factory):
        seeds = [seed_with_artists(track_factory, "s1", "First", "Second")]
        fake_catalog.responses = {
            "artist:First": [track_factory(f"f{i}") for i in range(10)],
        }

        result = await ArtistStrategy(fake_catalog, engine_config).execute(seeds, budget=4)

        assert fake_catalog.queries == ["artist:First"]
        assert len(result.tracks) == 4

    @pytest.mark.asyncio
    async def test_failed_search_is_recorded_and_skipped(self, fake_catalog, engine_config, track_factory):
        seeds = [seed_with_artists(track_factory, "s1", "Broken", "Working")]
        fake_catalog.failing = {"artist:Broken"}
        fake_catalog.responses = {"artist:Working": [track_factory("w1")]}

        result = await ArtistStrategy(fake_catalog, engine_config).execute(seeds, budget=10)

        assert [track.id for track in result.tracks] == ["w1"]
        assert result.failed
        assert len(result.errors) == 1

    @pytest.mark.asyncio
    async def test_zero_budget_issues_no_queries(self, fake_catalog, engine_config, track_factory):
        seeds = [seed_with_artists(track_factory, "s1", "Anyone")]

        result = await ArtistStrategy(fake_catalog, engine_config).execute(seeds, budget=0)

        assert result.tracks == []
        assert fake_catalog.calls == []

    @pytest.mark.asyncio
    async def test_unexpected_error_keeps_partial_results(self, engine_config, track_factory):
        catalog = AsyncMock()
        catalog.search_tracks.side_effect = [
            [track_factory("a1"), track_factory("a2"), track_factory("a3")],
            ValueError("malformed payload"),
            [track_factory("c1")],
        ]
        seeds = [seed_with_artists(track_factory, "s1", "Alpha", "Bravo", "Charlie")]

        result = await ArtistStrategy(catalog, engine_config).execute(seeds, budget=30)

        assert [track.id for track in result.tracks] == ["a1", "a2", "a3", "c1"]
        assert result.errors == ["artist:Bravo: ValueError: malformed payload"]
        assert catalog.search_tracks.await_count == 3

    @pytest.mark.asyncio
    async def test_pauses_between_searches(self, fake_catalog, track_factory):
        config = EngineConfig(inter_request_delay=0.25)
        seeds = [seed_with_artists(track_factory, "s1", "One", "Two", "Three")]

        with patch(
            "tunesmith.services.components.generation_strategies.base_strategy.asyncio.sleep",
            new_callable=AsyncMock
        ) as mock_sleep:
            await ArtistStrategy(fake_catalog, config).execute(seeds, budget=30)

        assert mock_sleep.await_count == 2
        mock_sleep.assert_awaited_with(0.25)


class TestGenreStrategy:

    @staticmethod
    def profile_with_genres(*genres):
        return ListeningProfile(
            user_id="user-1",
            top_genres=[(genre, 10 - index) for index, genre in enumerate(genres)]
        )

    @pytest.mark.asyncio
    async def test_searches_top_three_genres(self, fake_catalog, engine_config):
        profile = self.profile_with_genres("indie rock", "shoegaze", "trip hop", "jazz")

        await GenreStrategy(fake_catalog, engine_config).execute([], budget=50, profile=profile)

        assert fake_catalog.calls == [
            ("genre:indie rock", 8),
            ("genre:shoegaze", 8),
            ("genre:trip hop", 8),
        ]

    @pytest.mark.asyncio
    async def test_falls_back_to_first_word(self, fake_catalog, engine_config, track_factory):
        profile = self.profile_with_genres("indie rock")
        fake_catalog.failing = {"genre:indie rock"}
        fake_catalog.responses = {"indie": [track_factory("i1"), track_factory("i2")]}

        result = await GenreStrategy(fake_catalog, engine_config).execute([], budget=10, profile=profile)

        assert fake_catalog.calls == [("genre:indie rock", 8), ("indie", 5)]
        assert [track.id for track in result.tracks] == ["i1", "i2"]
        assert result.failed

    @pytest.mark.asyncio
    async def test_blank_genres_are_skipped(self, fake_catalog, engine_config, track_factory):
        profile = self.profile_with_genres("   ", "rock")
        fake_catalog.failing = {"genre:rock"}
        fake_catalog.responses = {"rock": [track_factory("k1")]}

        result = await GenreStrategy(fake_catalog, engine_config).execute([], budget=10, profile=profile)

        assert fake_catalog.calls == [("genre:rock", 8), ("rock", 5)]
        assert [track.id for track in result.tracks] == ["k1"]

    @pytest.mark.asyncio
    async def test_without_profile_returns_nothing(self, fake_catalog, engine_config):
        result = await GenreStrategy(fake_catalog, engine_config).execute([], budget=10)

        assert result.tracks == []
        assert fake_catalog.calls == []


class TestKeywordStrategy:

    def test_extract_keywords(self, engine_config, track_factory):
        seeds = [
            seed_with_artists(track_factory, "s1", "The Black Keys"),
            seed_with_artists(track_factory, "s2", "Black Sabbath", "DJ Shadow"),
        ]

        keywords = KeywordStrategy(None, engine_config).extract_keywords(seeds)

        assert keywords == ["the", "black", "keys", "sabbath", "shadow"]

    def test_keywords_are_capped(self, engine_config, track_factory):
        seeds = [seed_with_artists(track_factory, "s1", "alpha bravo charlie delta echo foxtrot")]

        keywords = KeywordStrategy(None, engine_config).extract_keywords(seeds)

        assert keywords == ["alpha", "bravo", "charlie", "delta", "echo"]

    @pytest.mark.asyncio
    async def test_searches_each_keyword(self, fake_catalog, engine_config, track_factory):
        seeds = [seed_with_artists(track_factory, "s1", "Massive Attack")]
        fake_catalog.responses = {"massive": [track_factory("m1")], "attack": [track_factory("a1")]}

        result = await KeywordStrategy(fake_catalog, engine_config).execute(seeds, budget=10)

        assert fake_catalog.calls == [("massive", 6), ("attack", 6)]
        assert [track.id for track in result.tracks] == ["m1", "a1"]


class TestStrategyFactory:

    def test_independent_budgets(self, fake_catalog, engine_config):
        factory = StrategyFactory(fake_catalog, engine_config)

        budgets = factory.allocate_budgets(RecommendationMode.INDEPENDENT, 60)

        assert budgets == {"artist": 30, "genre": 0, "keyword": 30}

    def test_user_based_budgets(self, fake_catalog, engine_config):
        factory = StrategyFactory(fake_catalog, engine_config)

        budgets = factory.allocate_budgets("user-based", 60)

        assert budgets == {"artist": 24, "genre": 18, "keyword": 18}

    def test_budgets_floor(self, fake_catalog, engine_config):
        factory = StrategyFactory(fake_catalog, engine_config)

        budgets = factory.allocate_budgets(RecommendationMode.USER_BASED, 10)

        assert budgets == {"artist": 4, "genre": 3, "keyword": 3}

    def test_zero_budget_strategies_are_skipped(self, fake_catalog, engine_config):
        factory = StrategyFactory(fake_catalog, engine_config)

        selected = factory.get_strategies_for_mode(RecommendationMode.INDEPENDENT, 60)

        assert [strategy.name for strategy, _budget in selected] == ["artist", "keyword"]
