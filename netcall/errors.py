# =============================================================================
# Netcall -- Error Types
# =============================================================================

from __future__ import annotations

from .constants import MSG_EMPTY_BODY, MSG_INVALID_URL, MSG_PARSE_FAILED


class NetcallError(Exception):
    """Base exception for all netcall errors.

    ``str(error)`` is the message handed to failure continuations.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class InvalidUrlError(NetcallError):
    """The endpoint URL is not an absolute URL with a supported scheme."""

    def __init__(self, url: str = "") -> None:
        super().__init__(MSG_INVALID_URL)
        self.url = url


class TransportError(NetcallError):
    """Connection, timeout, or I/O failure from the underlying client."""


class EmptyBodyError(NetcallError):
    """The transport succeeded but the response carried no payload."""

    def __init__(self) -> None:
        super().__init__(MSG_EMPTY_BODY)


class DecodeError(NetcallError):
    """The payload could not be mapped onto the requested type."""

    def __init__(self, detail: str, cause: BaseException | None = None) -> None:
        super().__init__(f"{MSG_PARSE_FAILED}: {detail}", cause)
        self.detail = detail


class SocketError(NetcallError):
    """WebSocket failure at any lifecycle stage."""
