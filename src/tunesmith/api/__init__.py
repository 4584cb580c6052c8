"""
API Module

Catalog API clients with consistent HTTP handling, rate limiting,
and error handling. The FastAPI application lives in ``tunesmith.api.backend``.
"""

from .base_client import BaseAPIClient
from .rate_limiter import UnifiedRateLimiter
from .spotify_client import SpotifyClient
from .client_factory import APIClientFactory

__all__ = [
    # Base infrastructure
    "BaseAPIClient",
    "UnifiedRateLimiter",

    # Spotify client
    "SpotifyClient",

    # Client factory
    "APIClientFactory",
]
