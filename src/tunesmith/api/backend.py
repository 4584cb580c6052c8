"""
FastAPI Backend for Tunesmith

REST endpoints for recommendations, listening data collection, track search
and playlist management. The access token of the identity provider is read
from the ``Authorization: Bearer`` header; login itself happens elsewhere.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..exceptions import (
    CatalogUnavailable,
    InvalidInput,
    NoDataAvailable,
    NotAuthenticated,
    TunesmithError
)
from ..models.config_models import SystemConfig
from ..models.recommendation_models import RecommendationResult
from ..models.track_models import Track, UserProfile
from ..services.data_collector import DataCollectorService
from ..services.playlist_service import PlaylistService
from ..services.profile_store import ProfileStore
from ..services.recommendation_engine import RecommendationEngine
from ..utils.logging_config import get_logger, setup_logging
from .client_factory import APIClientFactory
from .logging_middleware import LoggingMiddleware
from .spotify_client import MAX_SEARCH_LIMIT, SpotifyClient

logger = get_logger(__name__)

ERROR_STATUS = {
    InvalidInput: 400,
    NotAuthenticated: 401,
    NoDataAvailable: 404,
    CatalogUnavailable: 503,
}


# Request/Response Models
class RecommendationRequest(BaseModel):
    """Request model for recommendations."""
    input_tracks: List[Dict[str, Any]] = Field(
        default_factory=list,
        alias="inputTracks",
        description="Catalog track payloads the recommendations should resemble"
    )
    limit: Optional[int] = Field(None, description="Maximum number of recommendations")

    class Config:
        populate_by_name = True


class PlaylistTrack(BaseModel):
    name: str
    artist: str = ""


class CreatePlaylistRequest(BaseModel):
    """Request model for playlist creation."""
    name: Optional[str] = None
    tracks: List[PlaylistTrack] = Field(default_factory=list)
    description: Optional[str] = None


class UpdatePlaylistRequest(BaseModel):
    """Request model for replacing a playlist's tracks."""
    playlist_id: Optional[str] = Field(None, alias="playlistId")
    playlist_url: Optional[str] = Field(None, alias="playlistUrl")
    tracks: List[PlaylistTrack] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: float
    version: str
    components: Dict[str, str]
    rate_limiters: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    storage: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


# Dependencies
def get_config(request: Request) -> SystemConfig:
    return request.app.state.config


def get_profile_store(request: Request) -> ProfileStore:
    return request.app.state.profile_store


def get_client_factory(request: Request) -> APIClientFactory:
    return request.app.state.client_factory


def get_access_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Bearer token from the Authorization header, if any."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_access_token(token: Optional[str] = Depends(get_access_token)) -> str:
    if not token:
        raise NotAuthenticated("Authentication required")
    return token


async def get_user_client(
    token: str = Depends(require_access_token),
    factory: APIClientFactory = Depends(get_client_factory)
) -> AsyncIterator[SpotifyClient]:
    """Catalog client acting as the authenticated user."""
    client = await factory.create_spotify_client(access_token=token)
    async with client:
        yield client


async def get_catalog_client(
    token: Optional[str] = Depends(get_access_token),
    factory: APIClientFactory = Depends(get_client_factory)
) -> AsyncIterator[SpotifyClient]:
    """Catalog client for search; uses app credentials when no user token is sent."""
    try:
        client = await factory.create_spotify_client(access_token=token)
    except ValueError as e:
        # Neither a user token nor app credentials are available
        raise NotAuthenticated("Authentication required") from e
    async with client:
        yield client


async def get_current_user(client: SpotifyClient = Depends(get_user_client)) -> UserProfile:
    return await client.get_me()


def create_app(config: Optional[SystemConfig] = None) -> FastAPI:
    """
    Build the Tunesmith FastAPI application.

    Args:
        config: System configuration (read from the environment when omitted)

    Returns:
        Configured FastAPI application
    """
    config = config or SystemConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager for startup and shutdown."""
        logging_setup = setup_logging(log_dir=config.log_dir, log_level=config.log_level)
        app_logger = get_logger(__name__)

        app_logger.info("Initializing Tunesmith service", profile_store_dir=config.profile_store_dir)
        app.state.client_factory = APIClientFactory(config)
        app.state.profile_store = ProfileStore(config.profile_store_dir)

        yield

        app_logger.info("Shutting down Tunesmith service")
        app.state.profile_store.close()
        logging_setup.close()

    app = FastAPI(
        title="Tunesmith API",
        description="Playlist recommendations from multi-strategy catalog discovery",
        version=__version__,
        lifespan=lifespan
    )
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"])

    _register_error_handlers(app)
    _register_routes(app)
    return app


def _register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(TunesmithError)
    async def tunesmith_error_handler(request: Request, exc: TunesmithError):
        status_code = next(
            (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
            500
        )
        logger.warning(
            "Request failed",
            path=request.url.path,
            error_type=type(exc).__name__,
            error=str(exc),
            status_code=status_code
        )
        return JSONResponse(
            status_code=status_code,
            content={"error": type(exc).__name__, "message": str(exc)}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """General exception handler for unexpected errors."""
        logger.error("Unexpected error", path=request.url.path, error=str(exc), error_type=type(exc).__name__)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "message": str(exc)}
        )


def _register_routes(app: FastAPI) -> None:

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """Health check endpoint."""
        state = request.app.state
        factory = getattr(state, "client_factory", None)
        store = getattr(state, "profile_store", None)
        return HealthResponse(
            status="healthy",
            timestamp=time.time(),
            version=__version__,
            components={
                "profile_store": "active" if store else "inactive",
                "client_factory": "active" if factory else "inactive",
                "spotify_credentials": (
                    "configured" if state.config.spotify_client_id and state.config.spotify_client_secret
                    else "missing"
                )
            },
            rate_limiters=factory.get_rate_limiter_stats() if factory else {},
            storage=store.get_stats() if store else {}
        )

    @app.post("/recommendations", response_model=RecommendationResult)
    async def get_recommendations(
        body: RecommendationRequest,
        client: SpotifyClient = Depends(get_catalog_client),
        config: SystemConfig = Depends(get_config)
    ):
        """Recommendations based only on the given tracks (independent mode)."""
        engine = RecommendationEngine(client, config=config.engine)
        return await engine.recommend_independent(_parse_tracks(body.input_tracks), body.limit)

    @app.post("/recommendations/user-based", response_model=RecommendationResult)
    async def get_user_based_recommendations(
        body: RecommendationRequest,
        client: SpotifyClient = Depends(get_user_client),
        user: UserProfile = Depends(get_current_user),
        store: ProfileStore = Depends(get_profile_store),
        config: SystemConfig = Depends(get_config)
    ):
        """Recommendations informed by the user's collected listening profile."""
        engine = RecommendationEngine(client, profile_store=store, config=config.engine)
        return await engine.recommend_user_based(user.id, _parse_tracks(body.input_tracks), body.limit)

    @app.get("/collect-data")
    async def collect_data(
        refresh: bool = Query(False, description="Fetch again even if data is stored"),
        client: SpotifyClient = Depends(get_user_client),
        store: ProfileStore = Depends(get_profile_store)
    ):
        """Collect (or load) the user's listening data."""
        collector = DataCollectorService(store)
        profile = await collector.collect_user_data(client, force_refresh=refresh)
        return {
            "success": True,
            "profile": profile.profile.to_dict() if profile.profile else None,
            "statistics": collector.collection_statistics(profile),
            "last_updated": profile.last_updated.isoformat()
        }

    @app.get("/user-summary")
    async def get_user_summary(
        user: UserProfile = Depends(get_current_user),
        store: ProfileStore = Depends(get_profile_store)
    ):
        summary = store.get_data_summary(user.id)
        if summary is None:
            raise NoDataAvailable("No user data found")
        return summary

    @app.get("/user-tracks")
    async def get_user_tracks(
        user: UserProfile = Depends(get_current_user),
        store: ProfileStore = Depends(get_profile_store)
    ):
        profile = store.get_listening_profile(user.id)
        if profile is None:
            raise NoDataAvailable("No user data found")
        return {
            "topTracksShort": [t.to_dict() for t in profile.top_tracks.get("short_term", [])],
            "topTracksMedium": [t.to_dict() for t in profile.top_tracks.get("medium_term", [])],
            "recentlyPlayed": [item.track.to_dict() for item in profile.recently_played],
            "savedTracks": [item.track.to_dict() for item in profile.saved_tracks]
        }

    @app.get("/search-tracks")
    async def search_tracks(
        q: Optional[str] = Query(None, description="Search query"),
        limit: int = Query(20, description="Number of results (max 50)"),
        client: SpotifyClient = Depends(get_catalog_client)
    ):
        """Search the catalog for tracks."""
        if not q or not q.strip():
            raise InvalidInput("Search query is required")
        if limit > MAX_SEARCH_LIMIT:
            raise InvalidInput(f"Search limit cannot exceed {MAX_SEARCH_LIMIT}")
        if limit < 1:
            raise InvalidInput("Search limit must be positive")

        tracks = await client.search_tracks(q.strip(), limit)
        return {
            "query": q,
            "limit": limit,
            "total": len(tracks),
            "tracks": [track.to_dict() for track in tracks]
        }

    @app.get("/user-playlists")
    async def get_user_playlists(
        client: SpotifyClient = Depends(get_user_client),
        user: UserProfile = Depends(get_current_user)
    ):
        """Playlists owned by the current user."""
        playlists = await client.get_my_playlists(50)
        owned = [
            {
                "id": playlist.get("id"),
                "name": playlist.get("name"),
                "description": playlist.get("description"),
                "tracks_total": (playlist.get("tracks") or {}).get("total", 0),
                "owner": (playlist.get("owner") or {}).get("display_name"),
                "external_url": (playlist.get("external_urls") or {}).get("spotify"),
                "image": ((playlist.get("images") or [{}])[0] or {}).get("url")
            }
            for playlist in playlists
            if (playlist.get("owner") or {}).get("id") == user.id
        ]
        return {"playlists": owned, "total": len(owned)}

    @app.post("/create-playlist")
    async def create_playlist(
        body: CreatePlaylistRequest,
        client: SpotifyClient = Depends(get_user_client),
        config: SystemConfig = Depends(get_config)
    ):
        service = PlaylistService(client, inter_request_delay=config.engine.inter_request_delay)
        return await service.create_playlist(
            body.name,
            [track.model_dump() for track in body.tracks],
            description=body.description
        )

    @app.post("/update-playlist")
    async def update_playlist(
        body: UpdatePlaylistRequest,
        client: SpotifyClient = Depends(get_user_client),
        config: SystemConfig = Depends(get_config)
    ):
        service = PlaylistService(client, inter_request_delay=config.engine.inter_request_delay)
        return await service.update_playlist(
            [track.model_dump() for track in body.tracks],
            playlist_id=body.playlist_id,
            playlist_url=body.playlist_url
        )


def _parse_tracks(payloads: List[Dict[str, Any]]) -> List[Track]:
    return [Track.from_spotify(payload) for payload in payloads if payload]
