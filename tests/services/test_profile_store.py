"""
Tests for ProfileStore.
"""

import pytest

from tunesmith.models.track_models import (
    ArtistRef,
    ListeningAnalysis,
    ListeningProfile,
    PlayHistoryItem,
    UserProfile,
)
from tunesmith.services.profile_store import ProfileStore


@pytest.fixture
def store(tmp_path):
    profile_store = ProfileStore(str(tmp_path / "profiles"))
    yield profile_store
    profile_store.close()


@pytest.fixture
def profile(track_factory):
    return ListeningProfile(
        user_id="user-1",
        profile=UserProfile(id="user-1", display_name="Sam", country="NL"),
        top_tracks={
            "short_term": [track_factory("t1")],
            "medium_term": [track_factory("t2"), track_factory("t3")],
            "long_term": [],
        },
        top_artists={
            "short_term": [],
            "medium_term": [ArtistRef(id=f"a{i}", name=f"Artist {i}", genres=("pop",)) for i in range(7)],
            "long_term": [],
        },
        recently_played=[
            PlayHistoryItem(track=track_factory(f"r{i}", artists=[("x", "Recent Artist")]), played_at="2026-01-01T00:00:00Z")
            for i in range(4)
        ],
        top_genres=[("pop", 7)]
    )


class TestProfileStore:

    def test_missing_profile_returns_none(self, store):
        assert store.get_listening_profile("nobody") is None
        assert store.get_data_summary("nobody") is None

    def test_profile_survives_storage(self, store, profile):
        store.save_profile(profile)

        loaded = store.get_listening_profile("user-1")

        assert loaded.user_id == "user-1"
        assert loaded.profile.display_name == "Sam"
        assert [track.id for track in loaded.top_tracks["medium_term"]] == ["t2", "t3"]
        assert loaded.top_artists["medium_term"][0].genres == ("pop",)
        assert loaded.known_track_ids() == {"t1", "t2", "t3", "r0", "r1", "r2", "r3"}
        assert loaded.last_updated == profile.last_updated

    def test_data_summary(self, store, profile):
        store.save_profile(profile)
        store.save_analysis(
            "user-1",
            ListeningAnalysis(favorite_genres={"pop": 7}, top_genres=[("pop", 7)], artist_diversity=1.0)
        )

        summary = store.get_data_summary("user-1")

        assert summary["profile"]["name"] == "Sam"
        assert summary["profile"]["country"] == "NL"
        assert summary["stats"] == {
            "top_tracks_count": 3,
            "top_artists_count": 7,
            "recently_played_count": 4,
            "saved_tracks_count": 0,
        }
        assert summary["top_genres"] == [["pop", 7]]
        assert summary["top_artists"] == [f"Artist {i}" for i in range(5)]
        assert summary["recent_tracks"] == [
            {"name": f"Track r{i}", "artist": "Recent Artist"} for i in range(3)
        ]

    def test_tracks_and_analysis(self, store):
        store.save_tracks("user-1", {"Recently Played": [{"name": "Song"}]})
        store.save_analysis("user-1", ListeningAnalysis(top_genres=[("jazz", 2)], artist_diversity=0.5))

        tracks = store.load_tracks("user-1")
        analysis = store.load_analysis("user-1")

        assert tracks["Recently Played"] == [{"name": "Song"}]
        assert "last_updated" in tracks
        assert analysis.top_genres == [("jazz", 2)]
        assert analysis.artist_diversity == 0.5

    def test_delete_user(self, store, profile):
        store.save_profile(profile)

        assert store.delete_user("user-1") is True
        assert store.get_listening_profile("user-1") is None
        assert store.delete_user("user-1") is False

    def test_stats(self, store, profile):
        store.save_profile(profile)

        stats = store.get_stats()

        assert set(stats) == {"user_data", "analysis", "tracks"}
        assert stats["user_data"]["entries"] == 1
        assert stats["analysis"]["entries"] == 0
