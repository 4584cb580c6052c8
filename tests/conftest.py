"""
Shared fixtures: a track factory and an in-memory catalog.
"""

from typing import Dict, Iterable, List, Optional, Tuple

import pytest

from tunesmith.exceptions import CatalogUnavailable
from tunesmith.models.config_models import EngineConfig
from tunesmith.models.track_models import ArtistRef, Track


def make_track(
    track_id: Optional[str],
    name: Optional[str] = None,
    artists: Iterable[Tuple[Optional[str], str]] = (("artist-a", "Artist A"),),
    popularity: int = 50,
    release_date: Optional[str] = None,
    duration_ms: int = 180000
) -> Track:
    return Track(
        id=track_id,
        name=name or f"Track {track_id}",
        artists=tuple(ArtistRef(id=artist_id, name=artist_name) for artist_id, artist_name in artists),
        album="Album",
        duration_ms=duration_ms,
        popularity=popularity,
        uri=f"spotify:track:{track_id}" if track_id else None,
        release_date=release_date
    )


class FakeCatalog:
    """In-memory catalog keyed by exact query string."""

    def __init__(
        self,
        responses: Optional[Dict[str, List[Track]]] = None,
        failing: Iterable[str] = ()
    ):
        self.responses = responses or {}
        self.failing = set(failing)
        self.calls: List[Tuple[str, int]] = []

    async def search_tracks(self, query: str, limit: int = 20) -> List[Track]:
        self.calls.append((query, limit))
        if query in self.failing:
            raise CatalogUnavailable("search failed", status=400, query=query)
        return list(self.responses.get(query, []))[:limit]

    @property
    def queries(self) -> List[str]:
        return [query for query, _limit in self.calls]


@pytest.fixture
def track_factory():
    """Factory for lean catalog tracks."""
    return make_track


@pytest.fixture
def fake_catalog():
    """Empty in-memory catalog; tests fill ``responses`` and ``failing``."""
    return FakeCatalog()


@pytest.fixture
def engine_config():
    """Engine configuration without inter-request delays."""
    return EngineConfig(inter_request_delay=0)
