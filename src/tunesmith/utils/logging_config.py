"""
Tunesmith Logging Configuration

structlog on top of the stdlib logging module. Every record goes to a
rotating ``tunesmith.log``, errors are duplicated to ``errors.log`` and a
coloured console renderer is added for development. Request-scoped fields
(request id, user id) travel through ``structlog.contextvars``.
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars

SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="ISO"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
]

# Chatty HTTP libraries are held at WARNING whatever the configured level.
QUIET_LOGGERS = ("aiohttp", "aiohttp.access", "httpx", "urllib3", "uvicorn.access")


class TunesmithLogger:
    """
    Owns the process-wide logging handlers.

    Building one replaces whatever handlers the root logger had; ``close``
    detaches and closes them again.
    """

    def __init__(
        self,
        log_dir: str = "logs",
        log_level: str = "INFO",
        enable_console: bool = True,
        max_file_size: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5
    ):
        """
        Args:
            log_dir: Directory for the log files (created if missing)
            log_level: Level name for the root logger
            enable_console: Also log to stdout
            max_file_size: Rotation threshold per file in bytes
            backup_count: Rotated files to keep
        """
        self.log_dir = Path(log_dir)
        self.log_level = getattr(logging, log_level.upper(), logging.INFO)
        self.enable_console = enable_console
        self.max_file_size = max_file_size
        self.backup_count = backup_count

        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.handlers = self._build_handlers()
        self._install()

    def _build_handlers(self) -> List[logging.Handler]:
        handlers: List[logging.Handler] = [
            self._file_handler("tunesmith.log", self.log_level),
            self._file_handler("errors.log", logging.ERROR),
        ]
        if self.enable_console:
            console = logging.StreamHandler(sys.stdout)
            console.setLevel(self.log_level)
            console.setFormatter(self._formatter(colors=True))
            handlers.append(console)
        return handlers

    def _file_handler(self, filename: str, level: int) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / filename,
            maxBytes=self.max_file_size,
            backupCount=self.backup_count,
            encoding="utf-8"
        )
        handler.setLevel(level)
        handler.setFormatter(self._formatter(colors=False))
        return handler

    @staticmethod
    def _formatter(colors: bool) -> logging.Formatter:
        return structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=colors)
        )

    def _install(self) -> None:
        structlog.configure(
            processors=SHARED_PROCESSORS + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        root = logging.getLogger()
        root.handlers.clear()
        for handler in self.handlers:
            root.addHandler(handler)
        root.setLevel(self.log_level)

        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    def close(self) -> None:
        root = logging.getLogger()
        for handler in self.handlers:
            root.removeHandler(handler)
            handler.close()
        self.handlers = []

    def get_logger(self, name: str) -> structlog.stdlib.BoundLogger:
        return structlog.get_logger(name)

    def set_request_context(self, request_id: str, user_id: Optional[str] = None) -> None:
        """Replace the request-scoped logging context."""
        clear_contextvars()
        bind_contextvars(
            request_id=request_id,
            user_id=user_id,
            timestamp=datetime.now(timezone.utc).isoformat()
        )


_logger_instance: Optional[TunesmithLogger] = None


def setup_logging(
    log_dir: str = "logs",
    log_level: str = "INFO",
    enable_console: bool = True,
    **kwargs
) -> TunesmithLogger:
    """
    Configure process-wide logging, replacing any earlier setup.

    Args:
        log_dir: Directory to store log files
        log_level: Root log level
        enable_console: Whether to log to stdout
        **kwargs: Rotation settings passed to TunesmithLogger

    Returns:
        The active TunesmithLogger
    """
    global _logger_instance

    if _logger_instance is not None:
        _logger_instance.close()

    _logger_instance = TunesmithLogger(
        log_dir=log_dir,
        log_level=log_level,
        enable_console=enable_console,
        **kwargs
    )
    return _logger_instance


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for a component.

    Usable before setup_logging(); structlog's defaults apply until then.
    """
    if _logger_instance is None:
        return structlog.get_logger(name)
    return _logger_instance.get_logger(name)


def set_request_context(request_id: str, user_id: Optional[str] = None) -> None:
    """Bind request-scoped fields for every log line of the current request."""
    if _logger_instance:
        _logger_instance.set_request_context(request_id, user_id)
    else:
        clear_contextvars()
        bind_contextvars(request_id=request_id, user_id=user_id)
