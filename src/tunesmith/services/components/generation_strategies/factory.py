"""
Strategy Factory for Candidate Generation

Maps recommendation modes to weighted strategy sets and splits the
candidate pool budget between them.
"""

import math
from typing import Any, Dict, List, Optional, Tuple, Union

import structlog

from ....models.config_models import EngineConfig, StrategyWeights
from ....models.recommendation_models import RecommendationMode
from .artist_strategy import ArtistStrategy
from .base_strategy import BaseGenerationStrategy
from .genre_strategy import GenreStrategy
from .keyword_strategy import KeywordStrategy

# Absorbs float error so that e.g. 10 * 0.3 floors to 3, not 2.
_FLOOR_EPSILON = 1e-9


class StrategyFactory:
    """
    Factory for creating and managing generation strategies.

    Strategy instances hold no per-request state, so one set is shared by
    every request served through the same catalog.
    """

    def __init__(self, catalog: Any, config: Optional[EngineConfig] = None):
        """
        Initialize the strategy factory.

        Args:
            catalog: Catalog service handed to every strategy
            config: Engine configuration
        """
        self.config = config or EngineConfig()
        self.logger = structlog.get_logger(__name__)

        # Execution order: artist, genre, keyword
        self._strategies: Dict[str, BaseGenerationStrategy] = {
            'artist': ArtistStrategy(catalog, self.config),
            'genre': GenreStrategy(catalog, self.config),
            'keyword': KeywordStrategy(catalog, self.config),
        }

    def weights_for_mode(self, mode: Union[RecommendationMode, str]) -> StrategyWeights:
        mode = RecommendationMode(mode)
        if mode is RecommendationMode.INDEPENDENT:
            return self.config.independent_weights
        return self.config.user_based_weights

    def allocate_budgets(self, mode: Union[RecommendationMode, str], pool_size: int) -> Dict[str, int]:
        """
        Split the candidate pool between strategies.

        Each budget is ``floor(pool_size * weight)``.

        Args:
            mode: Recommendation mode
            pool_size: Total candidate pool target (limit x candidate_multiplier)

        Returns:
            Strategy name to budget, in execution order
        """
        weights = self.weights_for_mode(mode)
        return {
            name: int(math.floor(pool_size * getattr(weights, name) + _FLOOR_EPSILON))
            for name in self._strategies
        }

    def get_strategies_for_mode(
        self,
        mode: Union[RecommendationMode, str],
        pool_size: int
    ) -> List[Tuple[BaseGenerationStrategy, int]]:
        """
        Get the strategies to run for a mode together with their budgets.

        Strategies whose budget is zero are skipped.
        """
        budgets = self.allocate_budgets(mode, pool_size)
        selected = [
            (self._strategies[name], budget)
            for name, budget in budgets.items()
            if budget > 0
        ]

        self.logger.debug(
            "Selected strategies for mode",
            mode=RecommendationMode(mode).value,
            budgets=budgets
        )
        return selected
