"""Shared utilities."""

from .logging_config import setup_logging, get_logger, set_request_context

__all__ = ["setup_logging", "get_logger", "set_request_context"]
