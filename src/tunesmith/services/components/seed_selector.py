"""
Seed Selector

Picks the bounded set of seed tracks that drives catalog discovery.
"""

from typing import List, Sequence

from ...models.track_models import Track

DEFAULT_MAX_SEEDS = 5


def select_seeds(input_tracks: Sequence[Track], max_seeds: int = DEFAULT_MAX_SEEDS) -> List[Track]:
    """
    Select up to ``max_seeds`` seed tracks, most popular first.

    Tracks without an identifier are discarded. Ties keep their input order.

    Args:
        input_tracks: Caller-supplied or profile-derived tracks
        max_seeds: Seed ceiling (the catalog accepts at most 5)

    Returns:
        Ordered list of seed tracks
    """
    usable = [track for track in input_tracks if track is not None and track.id]
    usable = sorted(usable, key=lambda track: track.popularity or 0, reverse=True)
    return usable[:max(max_seeds, 0)]
