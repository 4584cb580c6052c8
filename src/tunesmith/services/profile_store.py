"""
Profile Store

File-based persistence of collected listening profiles, their analysis
and the per-section track listings shown to users.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
from diskcache import Cache

from ..models.track_models import ListeningAnalysis, ListeningProfile

logger = structlog.get_logger(__name__)


class ProfileStore:
    """
    diskcache-backed store keyed by user id.

    Handles:
    - Collected listening profiles
    - Listening analysis (genre frequencies, artist diversity)
    - Formatted track listings per section
    """

    NAMESPACES = ("user_data", "analysis", "tracks")

    def __init__(self, store_dir: str = "data/profiles"):
        """
        Initialize profile store.

        Args:
            store_dir: Directory for profile storage
        """
        self.store_dir = Path(store_dir)
        self.store_dir.mkdir(parents=True, exist_ok=True)

        self.caches = {
            namespace: Cache(str(self.store_dir / namespace))
            for namespace in self.NAMESPACES
        }

        logger.info(
            "Profile store initialized",
            store_dir=str(self.store_dir),
            namespaces=list(self.caches.keys())
        )

    def save_profile(self, profile: ListeningProfile) -> None:
        """Store a collected profile, replacing any previous one."""
        self.caches["user_data"].set(profile.user_id, profile.to_dict())
        logger.info("Listening profile saved", user_id=profile.user_id)

    def get_listening_profile(self, user_id: str) -> Optional[ListeningProfile]:
        """
        Load a user's listening profile.

        Returns:
            The stored profile, or None when the user's data was never collected
        """
        data = self.caches["user_data"].get(user_id)
        if data is None:
            logger.debug("No listening profile stored", user_id=user_id)
            return None
        return ListeningProfile.from_dict(data)

    def save_analysis(self, user_id: str, analysis: ListeningAnalysis) -> None:
        payload = analysis.to_dict()
        payload["last_updated"] = datetime.now(timezone.utc).isoformat()
        self.caches["analysis"].set(user_id, payload)
        logger.debug("Listening analysis saved", user_id=user_id, genres=len(analysis.top_genres))

    def load_analysis(self, user_id: str) -> Optional[ListeningAnalysis]:
        data = self.caches["analysis"].get(user_id)
        if data is None:
            return None
        return ListeningAnalysis.from_dict(data)

    def save_tracks(self, user_id: str, tracks_by_section: Dict[str, List[Dict[str, Any]]]) -> None:
        """Store formatted track listings keyed by section title."""
        payload = dict(tracks_by_section)
        payload["last_updated"] = datetime.now(timezone.utc).isoformat()
        self.caches["tracks"].set(user_id, payload)
        logger.debug("Track listings saved", user_id=user_id, sections=len(tracks_by_section))

    def load_tracks(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self.caches["tracks"].get(user_id)

    def get_data_summary(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Summarize a user's collected data.

        Args:
            user_id: User identifier

        Returns:
            Profile details, per-source counts, top genres, top medium-term
            artists and the most recent plays; None when nothing was collected
        """
        if not user_id:
            return None

        profile = self.get_listening_profile(user_id)
        if profile is None:
            return None

        analysis = self.load_analysis(user_id)
        top_genres = analysis.top_genres if analysis else profile.top_genres

        return {
            "profile": {
                "name": profile.profile.display_name if profile.profile else "Unknown",
                "country": (profile.profile.country if profile.profile else None) or "Unknown",
                "last_updated": profile.last_updated.isoformat()
            },
            "stats": {
                "top_tracks_count": sum(len(tracks) for tracks in profile.top_tracks.values()),
                "top_artists_count": sum(len(artists) for artists in profile.top_artists.values()),
                "recently_played_count": len(profile.recently_played),
                "saved_tracks_count": len(profile.saved_tracks)
            },
            "top_genres": [[genre, count] for genre, count in top_genres[:5]],
            "top_artists": [artist.name for artist in profile.top_artists.get("medium_term", [])[:5]],
            "recent_tracks": [
                {"name": item.track.name, "artist": ", ".join(item.track.artist_names)}
                for item in profile.recently_played[:3]
            ]
        }

    def delete_user(self, user_id: str) -> bool:
        """
        Remove everything stored for a user.

        Returns:
            True if anything was deleted
        """
        deleted = False
        for cache in self.caches.values():
            deleted = cache.delete(user_id) or deleted

        logger.info("User data deleted", user_id=user_id, deleted=deleted)
        return deleted

    def get_stats(self) -> Dict[str, Dict[str, Any]]:
        """Entry counts and disk usage per namespace."""
        return {
            namespace: {"entries": len(cache), "volume_bytes": cache.volume()}
            for namespace, cache in self.caches.items()
        }

    def close(self) -> None:
        """Close all namespaces."""
        for cache in self.caches.values():
            cache.close()
        logger.debug("Profile store closed")
