"""
Models Module

Data models for the Tunesmith service: lean catalog records,
caller-facing result shapes and configuration.
"""

from .track_models import (
    TIME_RANGES,
    ArtistRef,
    Track,
    ScoredTrack,
    UserProfile,
    PlayHistoryItem,
    SavedTrackItem,
    ListeningProfile,
    ListeningAnalysis
)
from .recommendation_models import (
    RecommendationMode,
    FormattedTrack,
    RecommendationMetadata,
    RecommendationResult
)
from .config_models import (
    ScoringConfig,
    StrategyWeights,
    EngineConfig,
    SystemConfig
)

__all__ = [
    # Catalog records
    "TIME_RANGES",
    "ArtistRef",
    "Track",
    "ScoredTrack",
    "UserProfile",
    "PlayHistoryItem",
    "SavedTrackItem",
    "ListeningProfile",
    "ListeningAnalysis",

    # Results
    "RecommendationMode",
    "FormattedTrack",
    "RecommendationMetadata",
    "RecommendationResult",

    # Configuration
    "ScoringConfig",
    "StrategyWeights",
    "EngineConfig",
    "SystemConfig",
]
