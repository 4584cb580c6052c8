"""
Tests for TrackScorer.

Randomness is controlled through an injected random source.
"""

import random

import pytest

from tunesmith.models.config_models import ScoringConfig
from tunesmith.models.track_models import ArtistRef, Track
from tunesmith.services.components.track_scorer import TrackScorer


class ZeroRandom:
    """Random source whose discovery term is always zero."""

    def random(self):
        return 0.0


@pytest.fixture
def scorer():
    return TrackScorer(ScoringConfig(), rng=ZeroRandom(), current_year=2026)


class TestScore:

    def test_artist_overlap_scenario(self, track_factory):
        input_track = track_factory("in", artists=[("a", "A")], popularity=80)
        candidate = track_factory("c", artists=[("a", "A")], popularity=50, release_date="2001-05-01")

        scorer = TrackScorer(ScoringConfig(), rng=random.Random(7), current_year=2026)
        base = scorer.base_score(candidate, scorer.input_artist_names([input_track]))
        total = scorer.score(candidate, [input_track])

        assert base == pytest.approx(0.8)
        assert 0.8 <= total < 1.0

    def test_artist_match_is_case_insensitive(self, scorer, track_factory):
        input_track = track_factory("in", artists=[("x", "The Band")])
        candidate = track_factory("c", artists=[("y", "the band")], popularity=0, release_date="1990")

        assert scorer.score(candidate, [input_track]) == pytest.approx(0.3)

    def test_recency_bonus_within_window(self, scorer, track_factory):
        recent = track_factory("r", artists=[("z", "Other")], popularity=0, release_date="2023-01-01")
        old = track_factory("o", artists=[("z", "Other")], popularity=0, release_date="2022")

        assert scorer.score(recent, []) == pytest.approx(0.1)
        assert scorer.score(old, []) == pytest.approx(0.0)

    def test_missing_release_date_gets_no_recency_bonus(self, scorer, track_factory):
        candidate = track_factory("c", popularity=40, release_date=None)

        assert scorer.score(candidate, []) == pytest.approx(0.4)

    def test_genre_match_bonus_is_configurable(self, track_factory):
        scorer = TrackScorer(
            ScoringConfig(genre_match_bonus=0.2),
            rng=ZeroRandom(),
            current_year=2026
        )
        candidate = Track(
            id="c",
            name="Song",
            artists=(ArtistRef(id="a", name="A", genres=("Indie Rock",)),),
            popularity=0,
            release_date="1999"
        )

        assert scorer.score(candidate, [], profile_genres={"indie rock"}) == pytest.approx(0.2)
        assert scorer.score(candidate, [], profile_genres={"jazz"}) == pytest.approx(0.0)

    def test_discovery_term_bounded_by_amplitude(self, track_factory):
        scorer = TrackScorer(ScoringConfig(discovery_amplitude=0.2), rng=random.Random(1), current_year=2026)
        candidate = track_factory("c", popularity=0, release_date="1990")

        for _ in range(50):
            assert 0.0 <= scorer.score(candidate, []) < 0.2


class TestRank:

    def test_sorted_descending_and_truncated(self, scorer, track_factory):
        candidates = [track_factory(f"c{pop}", popularity=pop, release_date="1990") for pop in [20, 80, 50]]

        ranked = scorer.rank(candidates, [], limit=2)

        assert [item.track.id for item in ranked] == ["c80", "c50"]
        assert ranked[0].score == pytest.approx(0.8)

    def test_ties_keep_pool_order(self, scorer, track_factory):
        candidates = [track_factory(name, popularity=30, release_date="1990") for name in ["x", "y", "z"]]

        ranked = scorer.rank(candidates, [], limit=3)

        assert [item.track.id for item in ranked] == ["x", "y", "z"]

    def test_seeded_random_source_is_deterministic(self, track_factory):
        candidates = [track_factory(f"c{i}", popularity=50, release_date="1990") for i in range(20)]

        first = TrackScorer(rng=random.Random(42), current_year=2026).rank(candidates, [], limit=20)
        second = TrackScorer(rng=random.Random(42), current_year=2026).rank(candidates, [], limit=20)

        assert [item.track.id for item in first] == [item.track.id for item in second]
        assert [item.score for item in first] == [item.score for item in second]

    def test_does_not_mutate_tracks(self, scorer, track_factory):
        candidate = track_factory("c", popularity=50)

        ranked = scorer.rank([candidate], [], limit=1)

        assert ranked[0].track is candidate
        assert candidate.popularity == 50
