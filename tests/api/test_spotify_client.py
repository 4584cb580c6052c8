"""
Tests for SpotifyClient payload handling.

``_make_request`` is patched so no HTTP traffic happens.
"""

from unittest.mock import AsyncMock, patch

import pytest

from tunesmith.api.spotify_client import SpotifyClient
from tunesmith.exceptions import CatalogUnavailable

TRACK_PAYLOAD = {
    "id": "4uLU6hMCjMI75M1A2tKUQC",
    "name": "Teardrop",
    "artists": [{"id": "6FXMGgJwohJLUSr5nVlf9X", "name": "Massive Attack"}],
    "album": {
        "name": "Mezzanine",
        "release_date": "1998-04-20",
        "images": [
            {"url": "small.jpg", "height": 64, "width": 64},
            {"url": "large.jpg", "height": 640, "width": 640},
        ],
    },
    "duration_ms": 330773,
    "popularity": 72,
    "preview_url": None,
    "external_urls": {"spotify": "https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC"},
    "uri": "spotify:track:4uLU6hMCjMI75M1A2tKUQC",
}


@pytest.fixture
def client():
    return SpotifyClient(access_token="user-token")


class TestConstruction:

    def test_requires_token_or_credentials(self):
        with pytest.raises(ValueError):
            SpotifyClient()

    def test_user_token_skips_client_credentials(self, client):
        assert client.user_token is True
        assert client.access_token == "user-token"


class TestSearchTracks:

    @pytest.mark.asyncio
    async def test_parses_tracks(self, client):
        with patch.object(client, "_make_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = {"tracks": {"items": [TRACK_PAYLOAD, None]}}

            tracks = await client.search_tracks("artist:Massive Attack", limit=10)

        assert len(tracks) == 1
        track = tracks[0]
        assert track.name == "Teardrop"
        assert track.artist_names == ["Massive Attack"]
        assert track.album == "Mezzanine"
        assert track.album_image == "large.jpg"
        assert track.release_year == 1998
        kwargs = mock_request.call_args.kwargs
        assert kwargs["endpoint"] == "search"
        assert kwargs["params"] == {"q": "artist:Massive Attack", "type": "track", "limit": 10}
        assert kwargs["headers"]["Authorization"] == "Bearer user-token"

    @pytest.mark.asyncio
    async def test_limit_is_clamped(self, client):
        with patch.object(client, "_make_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = {}

            await client.search_tracks("jazz", limit=500)
            assert mock_request.call_args.kwargs["params"]["limit"] == 50

            await client.search_tracks("jazz", limit=0)
            assert mock_request.call_args.kwargs["params"]["limit"] == 1

    @pytest.mark.asyncio
    async def test_failure_carries_query(self, client):
        with patch.object(client, "_make_request", new_callable=AsyncMock) as mock_request:
            mock_request.side_effect = CatalogUnavailable("bad request", status=400)

            with pytest.raises(CatalogUnavailable) as exc_info:
                await client.search_tracks("genre:nonexistent")

        assert exc_info.value.query == "genre:nonexistent"
        assert exc_info.value.status == 400


class TestUserEndpoints:

    @pytest.mark.asyncio
    async def test_get_me(self, client):
        with patch.object(client, "_make_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = {"id": "user-1", "display_name": "Sam", "country": "NL", "images": []}

            user = await client.get_me()

        assert user.id == "user-1"
        assert user.display_name == "Sam"

    @pytest.mark.asyncio
    async def test_top_artists_keep_genres(self, client):
        with patch.object(client, "_make_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = {"items": [{"id": "a1", "name": "Portishead", "genres": ["trip hop"]}]}

            artists = await client.get_top_artists("short_term", 50)

        assert artists[0].genres == ("trip hop",)
        assert mock_request.call_args.kwargs["params"] == {"time_range": "short_term", "limit": 50}

    @pytest.mark.asyncio
    async def test_unknown_time_range(self, client):
        with pytest.raises(ValueError):
            await client.get_top_tracks("forever")

    @pytest.mark.asyncio
    async def test_recently_played(self, client):
        with patch.object(client, "_make_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = {"items": [{"track": TRACK_PAYLOAD, "played_at": "2026-01-01T00:00:00Z"}]}

            history = await client.get_recently_played()

        assert history[0].track.id == TRACK_PAYLOAD["id"]
        assert history[0].played_at == "2026-01-01T00:00:00Z"


class TestPlaylistEndpoints:

    @pytest.mark.asyncio
    async def test_create_playlist_posts_body(self, client):
        with patch.object(client, "_make_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = {"id": "pl1", "name": "Mix"}

            playlist = await client.create_playlist("user-1", "Mix", "desc", False)

        assert playlist["id"] == "pl1"
        kwargs = mock_request.call_args.kwargs
        assert kwargs["endpoint"] == "users/user-1/playlists"
        assert kwargs["method"] == "POST"
        assert kwargs["json_body"] == {"name": "Mix", "description": "desc", "public": False}

    @pytest.mark.asyncio
    async def test_replace_caps_at_one_hundred(self, client):
        uris = [f"spotify:track:{i}" for i in range(150)]
        with patch.object(client, "_make_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = {}

            await client.replace_playlist_tracks("pl1", uris)

        kwargs = mock_request.call_args.kwargs
        assert kwargs["method"] == "PUT"
        assert len(kwargs["json_body"]["uris"]) == 100
