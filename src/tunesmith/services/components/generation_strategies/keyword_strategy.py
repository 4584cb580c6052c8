"""
Keyword Generation Strategy

Free-text searches on words taken from the seed artists' names.
"""

from typing import List, Optional, Sequence

from ....models.track_models import ListeningProfile, Track
from .base_strategy import BaseGenerationStrategy, StrategyResult


class KeywordStrategy(BaseGenerationStrategy):
    """Strategy for generating tracks through keyword similarity."""

    name = "keyword"

    async def generate(
        self,
        seeds: Sequence[Track],
        budget: int,
        profile: Optional[ListeningProfile] = None
    ) -> StrategyResult:
        result = StrategyResult(name=self.name)

        for index, keyword in enumerate(self.extract_keywords(seeds)):
            if len(result.tracks) >= budget:
                break
            if index:
                await self._pause()
            await self._search(keyword, self.config.keyword_search_limit, result)

        return result

    def extract_keywords(self, seeds: Sequence[Track]) -> List[str]:
        """
        Lower-cased words of the seed artists' names, deduplicated in first-seen order.

        Words shorter than ``min_keyword_length`` are skipped; at most
        ``max_keywords`` are returned.
        """
        keywords: List[str] = []
        for track in seeds:
            for artist in track.artists:
                for word in artist.name.lower().split():
                    if len(word) >= self.config.min_keyword_length and word not in keywords:
                        keywords.append(word)
        return keywords[:self.config.max_keywords]
