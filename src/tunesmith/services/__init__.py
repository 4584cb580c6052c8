"""
Services Module

Business logic of the Tunesmith service: profile storage, data collection,
playlist management and the recommendation engine.
"""

from .profile_store import ProfileStore
from .data_collector import DataCollectorService
from .playlist_service import PlaylistService, extract_playlist_id
from .recommendation_engine import RecommendationEngine

__all__ = [
    "ProfileStore",
    "DataCollectorService",
    "PlaylistService",
    "extract_playlist_id",
    "RecommendationEngine",
]
