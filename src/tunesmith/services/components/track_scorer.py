"""
Track Scorer

Relevance scoring and ranking of candidate tracks.

The score is additive:
- popularity / 100
- a bonus when the candidate shares an artist with the input tracks
- a bonus for releases inside the recency window
- an optional bonus when a candidate artist's genres meet the profile's top genres
- a uniform random discovery term, so repeated requests do not return identical lists
"""

import random
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Set

import structlog

from ...models.config_models import ScoringConfig
from ...models.track_models import ScoredTrack, Track

logger = structlog.get_logger(__name__)

# Year assumed for candidates without a usable release date.
UNKNOWN_RELEASE_YEAR = 1970


class TrackScorer:
    """
    Scores candidates against the input tracks and ranks them.

    The random source and the current year are injectable so that tests can
    make ranking fully deterministic.
    """

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        rng: Optional[random.Random] = None,
        current_year: Optional[int] = None
    ):
        self.config = config or ScoringConfig()
        self.rng = rng or random.Random()
        self._current_year = current_year
        self.logger = logger.bind(component="TrackScorer")

    @property
    def current_year(self) -> int:
        return self._current_year or datetime.now().year

    @staticmethod
    def input_artist_names(input_tracks: Iterable[Track]) -> Set[str]:
        """Lower-cased artist names across all input tracks."""
        return {
            artist.name.lower()
            for track in input_tracks
            for artist in track.artists
            if artist.name
        }

    def base_score(
        self,
        candidate: Track,
        input_artists: Set[str],
        profile_genres: Optional[Set[str]] = None
    ) -> float:
        """Deterministic part of the score."""
        score = (candidate.popularity or 0) / 100

        candidate_artists = {artist.name.lower() for artist in candidate.artists if artist.name}
        if candidate_artists & input_artists:
            score += self.config.artist_overlap_bonus

        release_year = candidate.release_year or UNKNOWN_RELEASE_YEAR
        if self.current_year - release_year <= self.config.recency_window_years:
            score += self.config.recency_bonus

        if profile_genres and self.config.genre_match_bonus:
            candidate_genres = {genre.lower() for artist in candidate.artists for genre in artist.genres}
            if candidate_genres & profile_genres:
                score += self.config.genre_match_bonus

        return score

    def score(
        self,
        candidate: Track,
        input_tracks: Sequence[Track],
        profile_genres: Optional[Set[str]] = None
    ) -> float:
        """
        Score a single candidate.

        Args:
            candidate: Track to score
            input_tracks: Tracks the recommendation is based on
            profile_genres: Lower-cased top genres of the listening profile, if any

        Returns:
            Relevance score (higher is better)
        """
        base = self.base_score(candidate, self.input_artist_names(input_tracks), profile_genres)
        return base + self._discovery_term()

    def rank(
        self,
        candidates: Sequence[Track],
        input_tracks: Sequence[Track],
        limit: int,
        profile_genres: Optional[Set[str]] = None
    ) -> List[ScoredTrack]:
        """
        Score every candidate, sort by descending score and keep the top ``limit``.

        Equal scores keep the candidates' pool order.
        """
        input_artists = self.input_artist_names(input_tracks)

        scored = [
            ScoredTrack(
                track=candidate,
                score=self.base_score(candidate, input_artists, profile_genres) + self._discovery_term()
            )
            for candidate in candidates
        ]
        scored.sort(key=lambda item: item.score, reverse=True)

        self.logger.debug(
            "Candidates ranked",
            candidates=len(candidates),
            limit=limit,
            top_score=scored[0].score if scored else None
        )
        return scored[:max(limit, 0)]

    def _discovery_term(self) -> float:
        return self.rng.random() * self.config.discovery_amplitude
