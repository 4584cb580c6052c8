"""
Data Collector Service

Pulls a user's listening history from the catalog, derives genre
preferences and stores the result in the profile store.
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List

import structlog

from ..exceptions import CatalogUnavailable
from ..models.track_models import (
    TIME_RANGES,
    ListeningAnalysis,
    ListeningProfile,
    Track
)
from .profile_store import ProfileStore

logger = structlog.get_logger(__name__)

COLLECTION_LIMIT = 50
TOP_GENRES_COUNT = 10


class DataCollectorService:
    """
    Collects and analyzes a user's listening data.

    The catalog client passed to each call must carry the user's access token.
    """

    def __init__(self, profile_store: ProfileStore):
        self.profile_store = profile_store
        self.logger = logger.bind(service="DataCollectorService")

    async def collect_user_data(self, client: Any, force_refresh: bool = False) -> ListeningProfile:
        """
        Collect the current user's listening data.

        Args:
            client: Catalog client authenticated as the user
            force_refresh: Fetch from the catalog even if a profile is stored

        Returns:
            The stored or freshly collected listening profile

        Raises:
            CatalogUnavailable: If a required catalog call fails
        """
        user = await client.get_me()

        if not force_refresh:
            existing = self.profile_store.get_listening_profile(user.id)
            if existing is not None:
                self.logger.info("Using stored listening profile", user_id=user.id)
                return existing

        self.logger.info("Starting data collection", user_id=user.id, force_refresh=force_refresh)

        profile = ListeningProfile(user_id=user.id, profile=user)

        for time_range in TIME_RANGES:
            profile.top_tracks[time_range] = await client.get_top_tracks(time_range, COLLECTION_LIMIT)

        for time_range in TIME_RANGES:
            profile.top_artists[time_range] = await client.get_top_artists(time_range, COLLECTION_LIMIT)

        profile.recently_played = await client.get_recently_played(COLLECTION_LIMIT)

        try:
            profile.saved_tracks = await client.get_saved_tracks(COLLECTION_LIMIT)
        except CatalogUnavailable as e:
            self.logger.warning("Could not fetch saved tracks", user_id=user.id, error=str(e))
            profile.saved_tracks = []

        analysis = self.analyze_listening_patterns(profile)
        profile.top_genres = list(analysis.top_genres)
        profile.last_updated = datetime.now(timezone.utc)

        self.profile_store.save_profile(profile)
        self.profile_store.save_analysis(user.id, analysis)
        self.profile_store.save_tracks(user.id, self.format_track_sections(profile))

        self.logger.info(
            "Data collection complete",
            user_id=user.id,
            **self.collection_statistics(profile)
        )
        return profile

    def analyze_listening_patterns(self, profile: ListeningProfile) -> ListeningAnalysis:
        """
        Derive genre preferences from the profile's top artists.

        Args:
            profile: Collected listening profile

        Returns:
            Genre frequencies, the top 10 genres and artist diversity
        """
        artists = [artist for window in profile.top_artists.values() for artist in window]

        favorite_genres: Counter = Counter()
        for artist in artists:
            favorite_genres.update(artist.genres)

        # Counter.most_common keeps first-seen order for equal counts
        top_genres = favorite_genres.most_common(TOP_GENRES_COUNT)

        unique_artists = {artist.id or artist.name for artist in artists}
        diversity = len(unique_artists) / len(artists) if artists else 0.0

        return ListeningAnalysis(
            favorite_genres=dict(favorite_genres),
            top_genres=top_genres,
            artist_diversity=round(diversity, 4)
        )

    @staticmethod
    def collection_statistics(profile: ListeningProfile) -> Dict[str, int]:
        return {
            "top_tracks": sum(len(tracks) for tracks in profile.top_tracks.values()),
            "top_artists": sum(len(artists) for artists in profile.top_artists.values()),
            "recently_played": len(profile.recently_played),
            "saved_tracks": len(profile.saved_tracks)
        }

    @staticmethod
    def format_track_sections(profile: ListeningProfile) -> Dict[str, List[Dict[str, Any]]]:
        """Formatted track listings per section, as shown on the user's overview."""

        def listing(track: Track, **extra) -> Dict[str, Any]:
            entry = {
                "name": track.name,
                "artist": ", ".join(track.artist_names) or "Unknown",
                "album": track.album or "Unknown",
                "duration": round(track.duration_ms / 1000 / 60, 2),
                "popularity": track.popularity,
                "external_url": track.external_url
            }
            entry.update(extra)
            return entry

        return {
            "Top Tracks - Short Term": [listing(t) for t in profile.top_tracks.get("short_term", [])],
            "Top Tracks - Medium Term": [listing(t) for t in profile.top_tracks.get("medium_term", [])],
            "Recently Played": [
                listing(item.track, played_at=item.played_at) for item in profile.recently_played
            ],
            "Saved Tracks": [
                listing(item.track, added_at=item.added_at) for item in profile.saved_tracks
            ]
        }
