# =============================================================================
# Netcall -- Type Definitions
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .constants import (
    CONNECT_TIMEOUT,
    MAX_MESSAGE_SIZE,
    READ_TIMEOUT,
    WRITE_TIMEOUT,
    WS_ABORT_TIMEOUT,
    WS_CLOSE_TIMEOUT,
    WS_OPEN_TIMEOUT,
    WS_PING_INTERVAL,
)


class HttpMethod(str, Enum):
    """HTTP methods supported by the request builder."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class SessionState(str, Enum):
    """WebSocket session lifecycle state.

    Flow: CONNECTING -> OPEN -> CLOSING -> CLOSED. CLOSED is terminal and
    is also reached directly from any state on failure.
    """

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class Endpoint:
    """A validated absolute URL plus query parameters in caller order.

    Attributes:
        url: The URL as given by the caller (may already carry a query).
        params: ``(name, value)`` pairs. Duplicate names are kept.
    """

    url: str
    params: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True, slots=True)
class ResponseEnvelope:
    """Raw response from the transport, valid for one callback invocation.

    Attributes:
        status_code: HTTP status code.
        headers: Response headers as ``(name, value)`` pairs.
        content: Raw payload, or ``None`` when the response had no body.
    """

    status_code: int
    headers: tuple[tuple[str, str], ...] = ()
    content: bytes | None = None

    @property
    def has_body(self) -> bool:
        return bool(self.content)


@dataclass(frozen=True, slots=True)
class Outcome:
    """Settled result of a dispatched call.

    Exactly one of ``value`` (when ``ok``) or ``error`` is meaningful.
    """

    ok: bool
    value: Any = None
    error: Exception | None = None

    @property
    def message(self) -> str | None:
        return None if self.ok else str(self.error)


@dataclass
class TransportConfig:
    """Process-wide transport settings for one helper instance.

    Attributes:
        connect_timeout: Seconds to establish an HTTP connection.
        read_timeout: Seconds to wait for response data.
        write_timeout: Seconds to wait while sending request data.
        ws_open_timeout: Seconds allowed for the WebSocket handshake.
        ws_close_timeout: Seconds allowed for the closing handshake.
        ws_abort_timeout: Seconds allowed for the closing handshake of
            sessions aborted by a transport shutdown.
        ws_ping_interval: Keepalive ping interval, ``None`` to disable.
        ws_max_size: Maximum inbound WebSocket message size in bytes.
        default_headers: Headers added to every HTTP request and handshake.
    """

    connect_timeout: float = CONNECT_TIMEOUT
    read_timeout: float = READ_TIMEOUT
    write_timeout: float = WRITE_TIMEOUT
    ws_open_timeout: float = WS_OPEN_TIMEOUT
    ws_close_timeout: float = WS_CLOSE_TIMEOUT
    ws_abort_timeout: float = WS_ABORT_TIMEOUT
    ws_ping_interval: float | None = WS_PING_INTERVAL
    ws_max_size: int = MAX_MESSAGE_SIZE
    default_headers: dict[str, str] = field(default_factory=dict)
