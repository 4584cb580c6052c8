"""
Base Strategy Class for Candidate Generation

Defines the common interface and shared functionality for all discovery strategies.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

import structlog

from ....exceptions import CatalogUnavailable
from ....models.config_models import EngineConfig
from ....models.track_models import ListeningProfile, Track


@dataclass
class StrategyResult:
    """
    Output of one strategy run.

    ``errors`` records every catalog failure the strategy absorbed, so an
    empty result after failures can be told apart from a successful empty search.
    """
    name: str
    tracks: List[Track] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return bool(self.errors)


class BaseGenerationStrategy(ABC):
    """
    Abstract base class for all candidate generation strategies.

    Each strategy turns the seed tracks into catalog search queries.
    Strategies never raise past ``execute``: a failed search is logged and
    recorded, and the strategy moves on with whatever it already gathered.
    """

    name = "base"

    def __init__(self, catalog: Any, config: Optional[EngineConfig] = None):
        """
        Initialize the generation strategy.

        Args:
            catalog: Catalog service exposing ``async search_tracks(query, limit)``
            config: Engine configuration (fan-out limits, inter-request delay)
        """
        self.catalog = catalog
        self.config = config or EngineConfig()
        self.logger = structlog.get_logger(__name__).bind(strategy=self.name)

    async def execute(
        self,
        seeds: Sequence[Track],
        budget: int,
        profile: Optional[ListeningProfile] = None
    ) -> StrategyResult:
        """
        Run the strategy, containing every failure at this boundary.

        Args:
            seeds: Seed tracks for this request
            budget: Maximum number of candidates to return
            profile: Listening profile (user-based mode only)

        Returns:
            StrategyResult with at most ``budget`` tracks
        """
        if budget <= 0:
            return StrategyResult(name=self.name)

        try:
            result = await self.generate(seeds, budget, profile=profile)
        except Exception as e:
            self.logger.warning(
                "Strategy failed",
                error=str(e),
                error_type=type(e).__name__
            )
            return StrategyResult(name=self.name, errors=[f"{type(e).__name__}: {e}"])

        result.tracks = result.tracks[:budget]
        self.logger.info(
            "Strategy completed",
            candidates=len(result.tracks),
            budget=budget,
            errors=len(result.errors)
        )
        return result

    @abstractmethod
    async def generate(
        self,
        seeds: Sequence[Track],
        budget: int,
        profile: Optional[ListeningProfile] = None
    ) -> StrategyResult:
        """
        Generate candidate tracks using this strategy.

        Args:
            seeds: Seed tracks for this request
            budget: Maximum number of candidates wanted
            profile: Listening profile (user-based mode only)

        Returns:
            StrategyResult; may hold more than ``budget`` tracks, ``execute`` truncates
        """

    async def _search(self, query: str, limit: int, result: StrategyResult) -> bool:
        """
        Issue one catalog search and append its tracks to ``result``.

        Returns:
            True if the search succeeded, False if it failed and was recorded
        """
        try:
            tracks = await self.catalog.search_tracks(query, limit)
        except CatalogUnavailable as e:
            self.logger.warning("Catalog search failed", query=query, error=str(e))
            result.errors.append(f"{query}: {e}")
            return False
        except Exception as e:
            self.logger.warning(
                "Unexpected search error",
                query=query,
                error=str(e),
                error_type=type(e).__name__
            )
            result.errors.append(f"{query}: {type(e).__name__}: {e}")
            return False

        result.tracks.extend(tracks)
        return True

    async def _pause(self) -> None:
        """Wait between catalog calls to stay under the upstream rate limit."""
        if self.config.inter_request_delay > 0:
            await asyncio.sleep(self.config.inter_request_delay)
