"""
Recommendation engine components: seed selection, discovery strategies,
candidate aggregation and scoring.
"""

from .seed_selector import select_seeds
from .candidate_aggregator import aggregate
from .track_scorer import TrackScorer
from .generation_strategies import StrategyFactory, StrategyResult

__all__ = [
    'select_seeds',
    'aggregate',
    'TrackScorer',
    'StrategyFactory',
    'StrategyResult'
]
