"""
API Client Factory

Builds catalog clients from the system configuration. All clients built
by one factory draw on one rate limiter per call rate, so concurrent
requests are paced together against the upstream quota.
"""

import os
from typing import Any, Dict, Optional

import structlog

from ..models.config_models import SystemConfig
from .rate_limiter import UnifiedRateLimiter
from .spotify_client import SpotifyClient

logger = structlog.get_logger(__name__)


class APIClientFactory:
    """Process-wide source of configured catalog clients."""

    def __init__(self, system_config: Optional[SystemConfig] = None):
        self.system_config = system_config or SystemConfig()
        self._rate_limiters: Dict[str, UnifiedRateLimiter] = {}
        self.logger = logger.bind(service="APIClientFactory")

    async def create_spotify_client(
        self,
        access_token: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        rate_limit: Optional[float] = None
    ) -> SpotifyClient:
        """
        Create a Spotify client that is not yet entered.

        Credentials fall back to the system configuration, then to the
        ``SPOTIFY_CLIENT_ID`` / ``SPOTIFY_CLIENT_SECRET`` environment variables.

        Args:
            access_token: User bearer token; app credentials are used when absent
            client_id: Spotify client ID override
            client_secret: Spotify client secret override
            rate_limit: Calls per second override

        Raises:
            ValueError: If neither a token nor a full set of app credentials is available
        """
        client_id = client_id or self.system_config.spotify_client_id or os.getenv('SPOTIFY_CLIENT_ID')
        client_secret = (
            client_secret or self.system_config.spotify_client_secret or os.getenv('SPOTIFY_CLIENT_SECRET')
        )
        rate_limit = rate_limit or self.system_config.spotify_rate_limit

        if not access_token and not (client_id and client_secret):
            raise ValueError("Spotify access token or client ID and secret are required")

        client = SpotifyClient(
            access_token=access_token,
            client_id=client_id,
            client_secret=client_secret,
            rate_limiter=self._shared_limiter(rate_limit),
            timeout=self.system_config.http_timeout
        )
        self.logger.debug("Spotify client created", rate_limit=rate_limit, user_token=access_token is not None)
        return client

    def _shared_limiter(self, calls_per_second: float) -> UnifiedRateLimiter:
        key = f"spotify_{calls_per_second}"
        if key not in self._rate_limiters:
            self._rate_limiters[key] = UnifiedRateLimiter.for_spotify(calls_per_second)
        return self._rate_limiters[key]

    def get_rate_limiter_stats(self) -> Dict[str, Dict[str, Any]]:
        """Usage of every limiter created so far, keyed by upstream and rate."""
        return {key: limiter.get_current_usage() for key, limiter in self._rate_limiters.items()}
