"""Netcall: asynchronous HTTP and WebSocket calls with typed JSON decoding.

Callback usage::

    from dataclasses import dataclass
    from netcall import HttpHelper

    @dataclass
    class Item:
        id: int
        name: str

    with HttpHelper() as http:
        call = http.get(
            "https://api.example.com/items",
            Item,
            on_success=lambda item: print(item.name),
            on_failure=lambda message: print("failed:", message),
            params={"id": "42"},
        )
        call.wait(timeout=15.0)

WebSocket usage::

    from netcall import HttpHelper, WebSocketListener

    http = HttpHelper()
    session = http.websocket(
        "wss://echo.example.com/ws",
        WebSocketListener(
            on_open=lambda s: s.send("hello"),
            on_message=print,
            on_closed=lambda code, reason: print("closed", code, reason),
        ),
    )
    session.close()
"""

from ._version import __version__
from .body import Body, FileBody, FormField, JsonBody, MultipartBody
from .codec import JsonCodec
from .compression import GzipBody
from .dispatcher import Call, Dispatcher
from .errors import (
    DecodeError,
    EmptyBodyError,
    InvalidUrlError,
    NetcallError,
    SocketError,
    TransportError,
)
from .helper import HttpHelper
from .request import Request, build_request
from .transport import Transport
from .types import (
    Endpoint,
    HttpMethod,
    Outcome,
    ResponseEnvelope,
    SessionState,
    TransportConfig,
)
from .websocket import WebSocketListener, WebSocketSession

__all__ = [
    "__version__",
    "HttpHelper",
    "Transport",
    "TransportConfig",
    "Dispatcher",
    "Call",
    "Outcome",
    "JsonCodec",
    "Request",
    "build_request",
    "Endpoint",
    "HttpMethod",
    "ResponseEnvelope",
    "Body",
    "JsonBody",
    "FileBody",
    "FormField",
    "MultipartBody",
    "GzipBody",
    "WebSocketListener",
    "WebSocketSession",
    "SessionState",
    "NetcallError",
    "InvalidUrlError",
    "TransportError",
    "EmptyBodyError",
    "DecodeError",
    "SocketError",
]
