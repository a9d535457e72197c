"""
Failures raised by the management client and the startup configuration.

Every client call raises one of these; the refresh orchestrator catches them
at the call site and turns them into the single message shown in the error
popup.
"""

from typing import Optional


class ManagementError(Exception):
    """Base class for everything the management client raises."""


class ServerConnectionError(ManagementError):
    """Transport or handshake failure; aborts the rest of a refresh cycle."""


class RequestError(ManagementError):
    """A specific request failed after the connection was established."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(RequestError):
    """The requested resource does not exist (any more)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=404)


class ConfigurationError(ValueError):
    """Startup option that cannot be used as given."""
