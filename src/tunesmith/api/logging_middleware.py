"""
FastAPI Logging Middleware for Tunesmith

One start event and one completion (or error) event per request, tied
together by a request id that is also returned as ``X-Request-ID``.
"""

import time
import uuid
from typing import Callable, Dict, List, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..utils.logging_config import get_logger, set_request_context

DEFAULT_EXCLUDED_PATHS = ["/health", "/docs", "/openapi.json"]


class LoggingMiddleware(BaseHTTPMiddleware):
    """Request/response logging with per-request context."""

    def __init__(self, app, exclude_paths: Optional[List[str]] = None):
        """
        Args:
            app: FastAPI application
            exclude_paths: Paths that are passed through without logging
        """
        super().__init__(app)
        self.logger = get_logger("tunesmith.api.middleware")
        self.exclude_paths = set(exclude_paths or DEFAULT_EXCLUDED_PATHS)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        request_id = uuid.uuid4().hex
        set_request_context(request_id=request_id, user_id=request.headers.get("X-User-ID") or "anonymous")
        fields = self._request_fields(request, request_id)

        started = time.perf_counter()
        self.logger.info("api_request_start", client_ip=self._client_ip(request), **fields)

        try:
            response = await call_next(request)
        except Exception as e:
            self.logger.error(
                "api_request_error",
                error_type=type(e).__name__,
                error_message=str(e),
                duration_seconds=round(time.perf_counter() - started, 4),
                **fields
            )
            raise

        log = self.logger.warning if response.status_code >= 500 else self.logger.info
        log(
            "api_request_complete",
            status_code=response.status_code,
            duration_seconds=round(time.perf_counter() - started, 4),
            **fields
        )

        response.headers["X-Request-ID"] = request_id
        return response

    @staticmethod
    def _request_fields(request: Request, request_id: str) -> Dict[str, str]:
        return {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path
        }

    @staticmethod
    def _client_ip(request: Request) -> str:
        """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        return request.headers.get("X-Real-IP") or (request.client.host if request.client else "unknown")
