"""
Spotify Web API Client

Catalog search, listening history and playlist management for Tunesmith.
"""

import base64
import time
from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from ..exceptions import CatalogUnavailable
from ..models.track_models import (
    TIME_RANGES,
    ArtistRef,
    PlayHistoryItem,
    SavedTrackItem,
    Track,
    UserProfile
)
from .base_client import BaseAPIClient
from .rate_limiter import UnifiedRateLimiter

logger = structlog.get_logger(__name__)

MAX_SEARCH_LIMIT = 50
MAX_TRACKS_PER_REQUEST = 100


class SpotifyClient(BaseAPIClient):
    """
    Spotify Web API client with unified authentication and rate limiting.

    A user access token issued by the identity provider is used as-is.
    Without one, the client falls back to an app token obtained through the
    client credentials flow, which is enough for catalog search.
    """

    BASE_URL = "https://api.spotify.com/v1"
    AUTH_URL = "https://accounts.spotify.com/api/token"

    def __init__(
        self,
        access_token: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        rate_limiter: Optional[UnifiedRateLimiter] = None,
        timeout: int = 10
    ):
        """
        Initialize Spotify client.

        Args:
            access_token: User bearer token (skips client credentials auth)
            client_id: Spotify client ID
            client_secret: Spotify client secret
            rate_limiter: Rate limiter instance (optional, will create default if not provided)
            timeout: Per-request timeout in seconds
        """
        if rate_limiter is None:
            rate_limiter = UnifiedRateLimiter.for_spotify()

        super().__init__(
            base_url=self.BASE_URL,
            rate_limiter=rate_limiter,
            timeout=timeout,
            service_name="Spotify"
        )

        if not access_token and not (client_id and client_secret):
            raise ValueError("SpotifyClient needs an access token or client credentials")

        self.client_id = client_id
        self.client_secret = client_secret
        self.access_token: Optional[str] = access_token
        self.user_token = access_token is not None
        self.token_expires_at: float = float("inf") if self.user_token else 0.0

        self.logger = self.logger.bind(component="SpotifyClient", user_token=self.user_token)
        self.logger.info("Spotify client initialized")

    def _extract_api_error(self, data: Dict[str, Any]) -> Optional[str]:
        """
        Extract Spotify API error information from response data.

        Args:
            data: Parsed response data

        Returns:
            Error message if found, None otherwise
        """
        if "error" in data:
            error_info = data["error"]
            if isinstance(error_info, dict):
                return error_info.get("message", f"Error {error_info.get('status', 'unknown')}")
            return str(error_info)
        return None

    async def __aenter__(self):
        """Async context manager entry with authentication."""
        await super().__aenter__()
        if not self.user_token:
            await self._authenticate()
        return self

    async def _authenticate(self) -> None:
        """Authenticate with Spotify API using client credentials flow."""
        if not self.session:
            raise RuntimeError("Client not initialized. Use async context manager.")

        auth_str = f"{self.client_id}:{self.client_secret}"
        auth_b64 = base64.b64encode(auth_str.encode()).decode()

        headers = {
            "Authorization": f"Basic {auth_b64}",
            "Content-Type": "application/x-www-form-urlencoded"
        }

        try:
            async with self.session.post(
                self.AUTH_URL,
                headers=headers,
                data={"grant_type": "client_credentials"}
            ) as response:
                token_data = await response.json(content_type=None)

                if response.status != 200:
                    self.logger.error(
                        "Spotify authentication failed",
                        status=response.status,
                        error=token_data
                    )
                    raise CatalogUnavailable(
                        f"Spotify auth failed: {token_data}",
                        status=response.status
                    )

                self.access_token = token_data["access_token"]
                expires_in = token_data.get("expires_in", 3600)
                self.token_expires_at = time.time() + expires_in - 60

                self.logger.info(
                    "Spotify authentication successful",
                    expires_in=expires_in
                )

        except aiohttp.ClientError as e:
            self.logger.error("Spotify authentication error", error=str(e))
            raise CatalogUnavailable(f"Spotify auth request failed: {e}") from e

    async def _ensure_valid_token(self) -> None:
        """Ensure we have a valid access token."""
        if self.user_token:
            return
        if not self.access_token or time.time() >= self.token_expires_at:
            await self._authenticate()

    async def _make_spotify_request(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        method: str = "GET",
        json_body: Optional[Dict[str, Any]] = None,
        retries: int = 3
    ) -> Dict[str, Any]:
        """
        Make authenticated request to Spotify API.

        Args:
            endpoint: API endpoint (without base URL)
            params: Query parameters
            method: HTTP method
            json_body: JSON body for write requests
            retries: Number of retry attempts

        Returns:
            API response data
        """
        await self._ensure_valid_token()

        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json"
        }

        return await self._make_request(
            endpoint=endpoint,
            params=params,
            method=method,
            headers=headers,
            json_body=json_body,
            retries=retries
        )

    async def search_tracks(self, query: str, limit: int = 20) -> List[Track]:
        """
        Search for tracks with a free-text or field-scoped query.

        Args:
            query: Search query (supports artist:, genre:, track: filters)
            limit: Number of results, clamped to 1..50

        Returns:
            Matching tracks in catalog order

        Raises:
            CatalogUnavailable: If the search request fails
        """
        limit = max(1, min(int(limit), MAX_SEARCH_LIMIT))

        try:
            data = await self._make_spotify_request(
                "search",
                {"q": query, "type": "track", "limit": limit}
            )
        except CatalogUnavailable as e:
            e.query = query
            raise

        items = (data.get("tracks") or {}).get("items") or []
        tracks = [Track.from_spotify(item) for item in items if item]

        self.logger.debug(
            "Spotify search completed",
            query=query,
            results_count=len(tracks)
        )
        return tracks

    async def get_me(self) -> UserProfile:
        """Get the profile of the user owning the access token."""
        data = await self._make_spotify_request("me")
        return UserProfile.from_spotify(data)

    async def get_top_tracks(self, time_range: str = "medium_term", limit: int = 50) -> List[Track]:
        """
        Get the current user's top tracks for one time window.

        Args:
            time_range: short_term, medium_term or long_term
            limit: Number of tracks (max 50)
        """
        self._check_time_range(time_range)
        data = await self._make_spotify_request(
            "me/top/tracks",
            {"time_range": time_range, "limit": min(limit, MAX_SEARCH_LIMIT)}
        )
        return [Track.from_spotify(item) for item in data.get("items") or []]

    async def get_top_artists(self, time_range: str = "medium_term", limit: int = 50) -> List[ArtistRef]:
        """
        Get the current user's top artists for one time window.

        Args:
            time_range: short_term, medium_term or long_term
            limit: Number of artists (max 50)
        """
        self._check_time_range(time_range)
        data = await self._make_spotify_request(
            "me/top/artists",
            {"time_range": time_range, "limit": min(limit, MAX_SEARCH_LIMIT)}
        )
        return [ArtistRef.from_spotify(item) for item in data.get("items") or []]

    async def get_recently_played(self, limit: int = 50) -> List[PlayHistoryItem]:
        """Get the current user's recently played tracks."""
        data = await self._make_spotify_request(
            "me/player/recently-played",
            {"limit": min(limit, MAX_SEARCH_LIMIT)}
        )
        return [PlayHistoryItem.from_spotify(item) for item in data.get("items") or []]

    async def get_saved_tracks(self, limit: int = 50, offset: int = 0) -> List[SavedTrackItem]:
        """Get tracks saved in the current user's library."""
        data = await self._make_spotify_request(
            "me/tracks",
            {"limit": min(limit, MAX_SEARCH_LIMIT), "offset": offset}
        )
        return [SavedTrackItem.from_spotify(item) for item in data.get("items") or []]

    async def get_my_playlists(self, limit: int = 50) -> List[Dict[str, Any]]:
        """Get the current user's playlists as raw catalog payloads."""
        data = await self._make_spotify_request(
            "me/playlists",
            {"limit": min(limit, MAX_SEARCH_LIMIT)}
        )
        return [item for item in data.get("items") or [] if item]

    async def get_playlist(self, playlist_id: str) -> Dict[str, Any]:
        """Get a playlist by id. Raises CatalogUnavailable (404/403) when inaccessible."""
        return await self._make_spotify_request(
            f"playlists/{playlist_id}",
            {"fields": "id,name,external_urls,owner(id),tracks(total)"}
        )

    async def create_playlist(
        self,
        user_id: str,
        name: str,
        description: str = "",
        public: bool = False
    ) -> Dict[str, Any]:
        """Create a playlist owned by the given user."""
        playlist = await self._make_spotify_request(
            f"users/{user_id}/playlists",
            method="POST",
            json_body={"name": name, "description": description, "public": public}
        )
        self.logger.info("Playlist created", playlist_id=playlist.get("id"), name=name)
        return playlist

    async def add_tracks_to_playlist(self, playlist_id: str, uris: List[str]) -> Dict[str, Any]:
        """Append up to 100 track URIs to a playlist."""
        return await self._make_spotify_request(
            f"playlists/{playlist_id}/tracks",
            method="POST",
            json_body={"uris": uris[:MAX_TRACKS_PER_REQUEST]}
        )

    async def replace_playlist_tracks(self, playlist_id: str, uris: List[str]) -> Dict[str, Any]:
        """Replace a playlist's contents with up to 100 track URIs. An empty list clears it."""
        return await self._make_spotify_request(
            f"playlists/{playlist_id}/tracks",
            method="PUT",
            json_body={"uris": uris[:MAX_TRACKS_PER_REQUEST]}
        )

    @staticmethod
    def _check_time_range(time_range: str) -> None:
        if time_range not in TIME_RANGES:
            raise ValueError(f"Unknown time range: {time_range}")
