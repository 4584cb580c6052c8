"""
Genre-focused Generation Strategy

Searches the catalog for the listening profile's favourite genres.
Only meaningful in user-based mode.
"""

from typing import Optional, Sequence

from ....models.track_models import ListeningProfile, Track
from .base_strategy import BaseGenerationStrategy, StrategyResult


class GenreStrategy(BaseGenerationStrategy):
    """
    Strategy for generating tracks from the profile's top genres.

    A ``genre:<name>`` search per genre; when the scoped search fails the
    genre's first word is tried as a broad keyword instead.
    """

    name = "genre"

    async def generate(
        self,
        seeds: Sequence[Track],
        budget: int,
        profile: Optional[ListeningProfile] = None
    ) -> StrategyResult:
        result = StrategyResult(name=self.name)

        if profile is None or not profile.top_genres:
            self.logger.debug("No listening profile genres available")
            return result

        genres = [genre.strip() for genre, _count in profile.top_genres if genre.strip()][:self.config.max_genres]

        for index, genre in enumerate(genres):
            if len(result.tracks) >= budget:
                break
            if index:
                await self._pause()

            found = await self._search(f"genre:{genre}", self.config.genre_search_limit, result)
            if not found:
                broad_query = genre.split()[0]
                self.logger.debug("Falling back to broad genre keyword", genre=genre, query=broad_query)
                await self._search(broad_query, self.config.genre_fallback_limit, result)

        return result
