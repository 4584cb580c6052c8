"""
Artist-focused Generation Strategy

Finds other tracks by the artists of the seed tracks.
"""

from typing import List, Optional, Sequence

from ....models.track_models import ArtistRef, ListeningProfile, Track
from .base_strategy import BaseGenerationStrategy, StrategyResult


class ArtistStrategy(BaseGenerationStrategy):
    """
    Strategy for generating tracks by the seed tracks' artists.

    One ``artist:<name>`` search per distinct seed artist, capped to bound fan-out.
    """

    name = "artist"

    async def generate(
        self,
        seeds: Sequence[Track],
        budget: int,
        profile: Optional[ListeningProfile] = None
    ) -> StrategyResult:
        result = StrategyResult(name=self.name)
        artists = self._seed_artists(seeds)

        if not artists:
            self.logger.debug("No seed artists found")
            return result

        for index, artist in enumerate(artists):
            if len(result.tracks) >= budget:
                break
            if index:
                await self._pause()
            await self._search(f"artist:{artist.name}", self.config.artist_search_limit, result)

        return result

    def _seed_artists(self, seeds: Sequence[Track]) -> List[ArtistRef]:
        """Distinct artists across the seeds in first-seen order, capped at max_artists."""
        artists: List[ArtistRef] = []
        seen = set()
        for track in seeds:
            for artist in track.artists:
                key = artist.id or artist.name.lower()
                if not artist.name or key in seen:
                    continue
                seen.add(key)
                artists.append(artist)
        return artists[:self.config.max_artists]
