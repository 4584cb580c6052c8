"""
Tunesmith error taxonomy.

The engine and its collaborators signal failures with these types; the
route layer translates them into HTTP responses.
"""

from typing import Optional


class TunesmithError(Exception):
    """Base class for all Tunesmith errors."""


class InvalidInput(TunesmithError):
    """The caller supplied input the operation cannot work with."""


class NoDataAvailable(TunesmithError):
    """No listening profile has been collected for the user."""


class NotAuthenticated(TunesmithError):
    """No usable access token accompanied the request."""


class CatalogUnavailable(TunesmithError):
    """A call to the remote catalog failed or timed out."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        query: Optional[str] = None
    ):
        super().__init__(message)
        self.status = status
        self.query = query
