"""
Tunesmith - Playlist Recommendation Service

Collects a listener's history from the music catalog and recommends new
tracks through multi-strategy catalog discovery and ranking.
"""

__version__ = "0.1.0"
__author__ = "Tunesmith Team"
