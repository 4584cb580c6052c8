"""
Generation Strategies Package

Discovery strategies that turn seed tracks into catalog searches,
implemented with the Strategy Pattern.
"""

from .base_strategy import BaseGenerationStrategy, StrategyResult
from .factory import StrategyFactory

from .artist_strategy import ArtistStrategy
from .genre_strategy import GenreStrategy
from .keyword_strategy import KeywordStrategy

__all__ = [
    # Base and factory
    'BaseGenerationStrategy',
    'StrategyResult',
    'StrategyFactory',

    # Strategies
    'ArtistStrategy',
    'GenreStrategy',
    'KeywordStrategy'
]
