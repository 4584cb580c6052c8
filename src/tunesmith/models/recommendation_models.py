from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .track_models import ScoredTrack


class RecommendationMode(str, Enum):
    """Operating modes of the recommendation engine."""
    INDEPENDENT = "independent"
    USER_BASED = "user-based"


class FormattedTrack(BaseModel):
    """
    A recommended track in the shape returned to callers.
    """
    id: str = Field(..., description="Catalog identifier of the track.")
    name: str = Field(..., description="The title of the track.")
    artist: str = Field(
        ...,
        description="Artist names joined with ', ' ('Unknown' if none)."
    )
    album: str = Field("Unknown", description="The album the track belongs to.")
    duration: float = Field(
        0.0,
        description="Track length in minutes, rounded to two decimals."
    )
    popularity: int = Field(0, ge=0, le=100, description="Catalog popularity (0-100).")
    external_url: Optional[str] = Field(
        None,
        description="A URL to the track's page on the catalog."
    )
    preview_url: Optional[str] = Field(
        None,
        description="A URL to an audio preview of the track."
    )
    custom_score: float = Field(..., description="Relevance score assigned by the ranker.")

    class Config:
        str_strip_whitespace = True

    @classmethod
    def from_scored(cls, scored: ScoredTrack) -> "FormattedTrack":
        track = scored.track
        return cls(
            id=track.id,
            name=track.name,
            artist=", ".join(track.artist_names) or "Unknown",
            album=track.album or "Unknown",
            duration=round(track.duration_ms / 1000 / 60, 2),
            popularity=track.popularity or 0,
            external_url=track.external_url,
            preview_url=track.preview_url,
            custom_score=scored.score
        )


class RecommendationMetadata(BaseModel):
    """Generation metadata attached to every recommendation result."""
    input_songs_count: int = Field(..., description="Number of tracks the caller supplied or the profile provided")
    seed_tracks_used: int = Field(..., description="Number of seed tracks that drove discovery")
    total_candidates: int = Field(..., description="Raw candidates returned by all strategies, before filtering")
    final_count: int = Field(..., description="Number of recommendations returned")
    mode: str = Field(..., description="'independent' or 'user-based'")
    strategy_counts: Dict[str, int] = Field(
        default_factory=dict,
        description="Candidates contributed by each strategy that ran"
    )
    failed_strategies: List[str] = Field(
        default_factory=list,
        description="Strategies that recorded at least one catalog failure"
    )


class RecommendationResult(BaseModel):
    """
    Complete response model for a recommendation request.
    """
    recommendations: List[FormattedTrack] = Field(
        default_factory=list,
        description="Ranked recommendations, best first"
    )
    metadata: RecommendationMetadata
