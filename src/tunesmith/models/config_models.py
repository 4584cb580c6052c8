"""
Configuration Models for Tunesmith

Pydantic models for engine tuning and system wiring.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field


class ScoringConfig(BaseModel):
    """Weights of the additive relevance score."""

    artist_overlap_bonus: float = Field(default=0.3, description="Bonus when a candidate shares an artist with the input tracks")
    recency_bonus: float = Field(default=0.1, description="Bonus for releases inside the recency window")
    recency_window_years: int = Field(default=3, ge=0, description="Years counted as recent, relative to the current year")
    genre_match_bonus: float = Field(default=0.0, description="Bonus when a candidate artist's genres overlap the profile's top genres")
    discovery_amplitude: float = Field(default=0.2, ge=0, description="Upper bound of the uniform random discovery term")


class StrategyWeights(BaseModel):
    """Fraction of the candidate pool budget given to each discovery strategy."""

    artist: float = Field(default=0.4, ge=0, le=1)
    genre: float = Field(default=0.3, ge=0, le=1)
    keyword: float = Field(default=0.3, ge=0, le=1)


class EngineConfig(BaseModel):
    """Recommendation engine configuration"""

    # Seeds and pool sizing
    max_seeds: int = Field(default=5, ge=1, description="Catalog ceiling on seed tracks")
    candidate_multiplier: int = Field(default=3, ge=1, description="Candidate pool target as a multiple of the limit")
    default_limit: int = Field(default=20, ge=1)
    max_limit: int = Field(default=100, ge=1)

    # Upstream pacing
    inter_request_delay: float = Field(default=0.1, ge=0, description="Seconds to wait between catalog calls inside one strategy")
    request_timeout: float = Field(default=30.0, gt=0, description="Overall timeout for one recommendation request in seconds")

    # Filtering
    exclude_known_tracks: bool = Field(default=True, description="User-based mode also drops every track already in the profile")

    # Strategy fan-out
    max_artists: int = Field(default=5, ge=1)
    artist_search_limit: int = Field(default=10, ge=1)
    max_genres: int = Field(default=3, ge=1)
    genre_search_limit: int = Field(default=8, ge=1)
    genre_fallback_limit: int = Field(default=5, ge=1)
    max_keywords: int = Field(default=5, ge=1)
    keyword_search_limit: int = Field(default=6, ge=1)
    min_keyword_length: int = Field(default=3, ge=1)

    # Profile sampling when no input tracks are given
    profile_short_term_sample: int = Field(default=10, ge=0)
    profile_medium_term_sample: int = Field(default=15, ge=0)
    profile_recent_sample: int = Field(default=10, ge=0)

    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    user_based_weights: StrategyWeights = Field(
        default_factory=lambda: StrategyWeights(artist=0.4, genre=0.3, keyword=0.3)
    )
    independent_weights: StrategyWeights = Field(
        default_factory=lambda: StrategyWeights(artist=0.5, genre=0.0, keyword=0.5)
    )


class SystemConfig(BaseModel):
    """Overall system configuration"""

    # API configurations
    spotify_client_id: Optional[str] = Field(default=None, description="Spotify client ID")
    spotify_client_secret: Optional[str] = Field(default=None, description="Spotify client secret")

    # Rate limiting
    spotify_rate_limit: float = Field(default=10.0, description="Spotify requests per second")
    http_timeout: int = Field(default=10, description="Per-request HTTP timeout in seconds")

    # Storage
    profile_store_dir: str = Field(default="data/profiles", description="Profile store directory path")

    # Logging
    log_level: str = Field(default="INFO")
    log_dir: str = Field(default="logs")

    engine: EngineConfig = Field(default_factory=EngineConfig)

    @classmethod
    def from_env(cls) -> "SystemConfig":
        """Build configuration from environment variables."""
        engine = EngineConfig(
            request_timeout=float(os.getenv("ENGINE_REQUEST_TIMEOUT", "30")),
            inter_request_delay=float(os.getenv("ENGINE_INTER_REQUEST_DELAY", "0.1"))
        )
        return cls(
            spotify_client_id=os.getenv("SPOTIFY_CLIENT_ID"),
            spotify_client_secret=os.getenv("SPOTIFY_CLIENT_SECRET"),
            spotify_rate_limit=float(os.getenv("SPOTIFY_RATE_LIMIT", "10")),
            profile_store_dir=os.getenv("PROFILE_STORE_DIR", "data/profiles"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_dir=os.getenv("LOG_DIR", "logs"),
            engine=engine
        )
