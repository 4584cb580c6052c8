"""
Candidate Aggregator

Merges strategy outputs into one deduplicated candidate pool.
"""

from typing import AbstractSet, Iterable, List

import structlog

from ...models.track_models import Track

logger = structlog.get_logger(__name__)


def aggregate(strategy_outputs: Iterable[Iterable[Track]], excluded: AbstractSet[str]) -> List[Track]:
    """
    Concatenate strategy outputs and drop unusable, excluded and duplicate tracks.

    The first occurrence of an identifier wins, so strategy order decides
    which copy of a duplicate survives.

    Args:
        strategy_outputs: One track list per strategy, in execution order
        excluded: Identifiers that must not appear in the pool (input tracks)

    Returns:
        Candidate pool with unique identifiers, none of them in ``excluded``
    """
    pool: List[Track] = []
    seen = set()
    raw_count = 0

    for output in strategy_outputs:
        for track in output:
            raw_count += 1
            if track is None or not track.id:
                continue
            if track.id in excluded or track.id in seen:
                continue
            seen.add(track.id)
            pool.append(track)

    logger.debug(
        "Candidates aggregated",
        raw_candidates=raw_count,
        unique_candidates=len(pool),
        excluded_ids=len(excluded)
    )
    return pool
