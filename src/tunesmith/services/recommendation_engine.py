"""
Recommendation Engine Service for Tunesmith

Orchestrates candidate generation and ranking for the two operating modes:

- independent: only the caller's tracks drive discovery (artist and keyword strategies)
- user-based: the caller's tracks, or a sample of the stored listening
  profile, drive all three strategies

Flow: seed selection -> concurrent strategies -> aggregation -> scoring -> formatting.
"""

import asyncio
import random
import time
from typing import Any, List, Optional, Sequence, Set

import structlog

from ..exceptions import CatalogUnavailable, InvalidInput, NoDataAvailable
from ..models.config_models import EngineConfig
from ..models.recommendation_models import (
    FormattedTrack,
    RecommendationMetadata,
    RecommendationMode,
    RecommendationResult
)
from ..models.track_models import ListeningProfile, Track
from .components.candidate_aggregator import aggregate
from .components.generation_strategies import StrategyFactory, StrategyResult
from .components.seed_selector import select_seeds
from .components.track_scorer import TrackScorer
from .profile_store import ProfileStore

logger = structlog.get_logger(__name__)


class RecommendationEngine:
    """
    Facade over the recommendation components.

    Collaborators are injected: the catalog used by the strategies and the
    profile store read in user-based mode. The engine keeps no state between
    calls.
    """

    def __init__(
        self,
        catalog: Any,
        profile_store: Optional[ProfileStore] = None,
        config: Optional[EngineConfig] = None,
        rng: Optional[random.Random] = None,
        current_year: Optional[int] = None
    ):
        """
        Initialize the recommendation engine.

        Args:
            catalog: Catalog service exposing ``async search_tracks(query, limit)``
            profile_store: Store holding collected listening profiles
            config: Engine configuration
            rng: Random source for the discovery term of the score
            current_year: Fixed year for the recency bonus (defaults to today)
        """
        self.catalog = catalog
        self.profile_store = profile_store
        self.config = config or EngineConfig()
        self.strategy_factory = StrategyFactory(catalog, self.config)
        self.scorer = TrackScorer(self.config.scoring, rng=rng, current_year=current_year)
        self.logger = logger.bind(service="RecommendationEngine")

    async def recommend_independent(
        self,
        input_tracks: Sequence[Track],
        limit: Optional[int] = None
    ) -> RecommendationResult:
        """
        Recommend tracks based only on the caller's tracks.

        Args:
            input_tracks: Tracks the recommendations should resemble
            limit: Maximum number of recommendations

        Returns:
            Ranked recommendations with generation metadata

        Raises:
            InvalidInput: If no input track (or no usable seed) is given
            CatalogUnavailable: If generation exceeds the request timeout
        """
        if not input_tracks:
            raise InvalidInput("Please select at least one input track")

        limit = self._resolve_limit(limit)
        input_tracks = list(input_tracks)
        excluded = {track.id for track in input_tracks if track.id}

        return await self._run(
            RecommendationMode.INDEPENDENT,
            input_tracks,
            limit,
            excluded
        )

    async def recommend_user_based(
        self,
        user_id: str,
        input_tracks: Optional[Sequence[Track]] = None,
        limit: Optional[int] = None
    ) -> RecommendationResult:
        """
        Recommend tracks informed by the user's stored listening profile.

        With no input tracks, a sample of the profile's short-term and
        medium-term top tracks and recent plays is used instead.

        Raises:
            NoDataAvailable: If no input is given and no profile has been collected
            InvalidInput: If no usable seed track remains
            CatalogUnavailable: If generation exceeds the request timeout
        """
        limit = self._resolve_limit(limit)
        profile = self.profile_store.get_listening_profile(user_id) if self.profile_store else None

        input_tracks = list(input_tracks or [])
        if not input_tracks:
            if profile is None:
                raise NoDataAvailable("No listening data collected for this user; run data collection first")
            input_tracks = self.sample_profile_tracks(profile)
            if not input_tracks:
                raise NoDataAvailable("The stored listening profile has no tracks to start from")

        excluded = {track.id for track in input_tracks if track.id}
        if profile is not None and self.config.exclude_known_tracks:
            excluded |= profile.known_track_ids()

        return await self._run(
            RecommendationMode.USER_BASED,
            input_tracks,
            limit,
            excluded,
            profile=profile
        )

    def sample_profile_tracks(self, profile: ListeningProfile) -> List[Track]:
        """
        Mix a bounded sample of the profile's tracks, deduplicated by id.

        Order: short-term top tracks, medium-term top tracks, recent plays.
        """
        mixed = (
            profile.top_tracks.get("short_term", [])[:self.config.profile_short_term_sample]
            + profile.top_tracks.get("medium_term", [])[:self.config.profile_medium_term_sample]
            + [item.track for item in profile.recently_played[:self.config.profile_recent_sample]]
        )

        unique: List[Track] = []
        seen = set()
        for track in mixed:
            if track.id in seen:
                continue
            seen.add(track.id)
            unique.append(track)
        return unique

    async def _run(
        self,
        mode: RecommendationMode,
        input_tracks: List[Track],
        limit: int,
        excluded: Set[str],
        profile: Optional[ListeningProfile] = None
    ) -> RecommendationResult:
        start_time = time.time()

        seeds = select_seeds(input_tracks, self.config.max_seeds)
        if not seeds:
            raise InvalidInput("None of the input tracks has a catalog identifier")

        pool_size = limit * self.config.candidate_multiplier

        try:
            results = await asyncio.wait_for(
                self._run_strategies(mode, seeds, pool_size, profile),
                timeout=self.config.request_timeout
            )
        except asyncio.TimeoutError as e:
            self.logger.error(
                "Recommendation generation timed out",
                mode=mode.value,
                timeout=self.config.request_timeout
            )
            raise CatalogUnavailable(
                f"Recommendation generation exceeded {self.config.request_timeout}s"
            ) from e

        total_candidates = sum(len(result.tracks) for result in results)
        candidates = aggregate([result.tracks for result in results], excluded)

        profile_genres = None
        if profile is not None:
            profile_genres = {genre.lower() for genre, _count in profile.top_genres}

        ranked = self.scorer.rank(candidates, input_tracks, limit, profile_genres=profile_genres)

        metadata = RecommendationMetadata(
            input_songs_count=len(input_tracks),
            seed_tracks_used=len(seeds),
            total_candidates=total_candidates,
            final_count=len(ranked),
            mode=mode.value,
            strategy_counts={result.name: len(result.tracks) for result in results},
            failed_strategies=[result.name for result in results if result.failed]
        )

        self.logger.info(
            "Recommendations generated",
            mode=mode.value,
            seeds=len(seeds),
            total_candidates=total_candidates,
            unique_candidates=len(candidates),
            final_count=len(ranked),
            failed_strategies=metadata.failed_strategies,
            duration_seconds=round(time.time() - start_time, 3)
        )

        return RecommendationResult(
            recommendations=[FormattedTrack.from_scored(item) for item in ranked],
            metadata=metadata
        )

    async def _run_strategies(
        self,
        mode: RecommendationMode,
        seeds: List[Track],
        pool_size: int,
        profile: Optional[ListeningProfile]
    ) -> List[StrategyResult]:
        """Run the mode's strategies concurrently; results keep execution order."""
        strategies = self.strategy_factory.get_strategies_for_mode(mode, pool_size)
        return list(await asyncio.gather(*(
            strategy.execute(seeds, budget, profile=profile)
            for strategy, budget in strategies
        )))

    def _resolve_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.config.default_limit
        if limit < 1:
            raise InvalidInput("limit must be a positive integer")
        return min(limit, self.config.max_limit)
