"""
Playlist Service

Creates and updates catalog playlists from recommended tracks.
"""

import asyncio
import re
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import structlog

from ..exceptions import CatalogUnavailable, InvalidInput

logger = structlog.get_logger(__name__)

MAX_RESOLVED_TRACKS = 50
PLAYLIST_BATCH_SIZE = 100

_PLAYLIST_ID_PATTERN = re.compile(r"(?:playlist/|playlist=)([a-zA-Z0-9]+)")


def extract_playlist_id(url: str) -> Optional[str]:
    """Extract the playlist id from a playlist URL or URI-like string."""
    match = _PLAYLIST_ID_PATTERN.search(url or "")
    return match.group(1) if match else None


class PlaylistService:
    """
    Playlist management on behalf of the authenticated user.

    Requested tracks are given as ``{"name": ..., "artist": ...}`` items
    (the shape recommendations are returned in) and resolved to catalog URIs
    by search.
    """

    def __init__(self, client: Any, inter_request_delay: float = 0.1):
        """
        Args:
            client: Catalog client authenticated as the user
            inter_request_delay: Seconds to wait between track searches
        """
        self.client = client
        self.inter_request_delay = inter_request_delay
        self.logger = logger.bind(service="PlaylistService")

    async def resolve_track_uris(self, tracks: Sequence[Dict[str, Any]]) -> List[str]:
        """
        Resolve requested tracks to catalog URIs.

        Only the first 50 tracks are searched. Tracks that cannot be found
        or whose search fails are skipped.
        """
        uris: List[str] = []

        for index, track in enumerate(tracks[:MAX_RESOLVED_TRACKS]):
            if index and self.inter_request_delay > 0:
                await asyncio.sleep(self.inter_request_delay)

            name = track.get("name") or ""
            artist = track.get("artist") or ""
            query = f'track:"{name}" artist:"{artist}"'

            try:
                results = await self.client.search_tracks(query, 1)
            except CatalogUnavailable as e:
                self.logger.warning("Track search failed", track=name, artist=artist, error=str(e))
                continue

            if results and results[0].uri:
                uris.append(results[0].uri)

        self.logger.info(
            "Track URIs resolved",
            requested=len(tracks),
            resolved=len(uris)
        )
        return uris

    async def create_playlist(
        self,
        name: str,
        tracks: Sequence[Dict[str, Any]],
        description: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Create a private playlist for the current user and fill it.

        Raises:
            InvalidInput: If the name or the track list is missing
        """
        if not name or not tracks:
            raise InvalidInput("Playlist name and tracks are required")

        user = await self.client.get_me()
        if description is None:
            description = f"Custom recommendations generated by Tunesmith • Created {date.today().isoformat()}"

        playlist = await self.client.create_playlist(user.id, name, description, False)
        playlist_id = playlist["id"]

        uris = await self.resolve_track_uris(tracks)
        if uris:
            await self.client.add_tracks_to_playlist(playlist_id, uris)

        return {
            "id": playlist_id,
            "name": playlist.get("name", name),
            "external_url": (playlist.get("external_urls") or {}).get("spotify"),
            "tracks_added": len(uris),
            "total_requested": len(tracks)
        }

    async def update_playlist(
        self,
        tracks: Sequence[Dict[str, Any]],
        playlist_id: Optional[str] = None,
        playlist_url: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Replace the contents of an existing playlist.

        Args:
            tracks: Requested tracks
            playlist_id: Playlist id (takes precedence over the URL)
            playlist_url: Playlist URL containing ``playlist/<id>`` or ``playlist=<id>``

        Raises:
            InvalidInput: If no target or no tracks are given, or the URL cannot be parsed
            CatalogUnavailable: If the playlist is not accessible
        """
        if (not playlist_id and not playlist_url) or not tracks:
            raise InvalidInput("Playlist ID/URL and tracks are required")

        if not playlist_id:
            playlist_id = extract_playlist_id(playlist_url)
            if not playlist_id:
                raise InvalidInput("Invalid Spotify playlist URL format")

        playlist = await self.client.get_playlist(playlist_id)
        self.logger.info("Updating playlist", playlist_id=playlist_id, name=playlist.get("name"))

        uris = await self.resolve_track_uris(tracks)

        await self.client.replace_playlist_tracks(playlist_id, uris[:PLAYLIST_BATCH_SIZE])
        for start in range(PLAYLIST_BATCH_SIZE, len(uris), PLAYLIST_BATCH_SIZE):
            await self.client.add_tracks_to_playlist(playlist_id, uris[start:start + PLAYLIST_BATCH_SIZE])

        return {
            "playlist_id": playlist_id,
            "playlist_name": playlist.get("name"),
            "external_url": (playlist.get("external_urls") or {}).get("spotify"),
            "tracks_added": len(uris),
            "total_requested": len(tracks)
        }
