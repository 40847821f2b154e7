# =============================================================================
# Netcall -- WebSocket Session Manager
# =============================================================================
#
# CONNECTING -> OPEN -> CLOSING -> CLOSED, driven by the transport worker.
# Listener callbacks run on the worker thread, one at a time, in frame order.
# =============================================================================

from __future__ import annotations

import asyncio
import concurrent.futures
import threading

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from websockets.exceptions import ConnectionClosed

from ._logging import logger
from .constants import (
    DEFAULT_CLOSE_REASON,
    MSG_TRANSPORT_CLOSED,
    WS_CLOSE_GOING_AWAY,
    WS_CLOSE_NORMAL,
)
from .errors import SocketError, TransportError
from .types import SessionState

if TYPE_CHECKING:
    from .transport import Transport


@dataclass
class WebSocketListener:
    """Callbacks for one session.  Every field is optional.

    Attributes:
        on_open: ``(session)`` once the handshake completes.
        on_message: ``(text)`` for each text frame while open.
        on_binary: ``(data)`` for each binary frame while open.
        on_closing: ``(code, reason)`` when the peer's close frame arrives.
        on_closed: ``(code, reason)`` once the closing handshake finishes.
        on_failure: ``(message)`` on any transport error; terminal.
    """

    on_open: Callable[[WebSocketSession], Any] | None = None
    on_message: Callable[[str], Any] | None = None
    on_binary: Callable[[bytes], Any] | None = None
    on_closing: Callable[[int, str], Any] | None = None
    on_closed: Callable[[int, str], Any] | None = None
    on_failure: Callable[[str], Any] | None = None


class WebSocketSession:
    """A duplex connection routed to a :class:`WebSocketListener`.

    Create through :meth:`HttpHelper.websocket`; the session starts
    connecting as soon as :meth:`start` is called.

    When the peer sends a close frame, ``on_closing`` fires and the session
    echoes a close with the same code and reason, then ``on_closed`` fires.
    """

    def __init__(
        self,
        url: str,
        transport: Transport,
        listener: WebSocketListener,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._url = url
        self._transport = transport
        self._listener = listener
        self._headers = headers

        self._lock = threading.Lock()
        self._state = SessionState.CONNECTING
        self._ws: Any | None = None
        self._close_requested: tuple[int, str] | None = None
        self._close_code: int | None = None
        self._close_reason: str | None = None
        self._finished = threading.Event()

    # -- Properties -----------------------------------------------------------

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is SessionState.OPEN

    @property
    def close_code(self) -> int | None:
        return self._close_code

    @property
    def close_reason(self) -> str | None:
        return self._close_reason

    # -- Public API -----------------------------------------------------------

    def start(self) -> WebSocketSession:
        future = self._transport.submit(self._run())
        future.add_done_callback(self._on_run_done)
        return self

    def reject(self, error: Exception) -> WebSocketSession:
        """Fail the session from the worker without connecting."""
        self._transport.call_soon(self._fail, str(error))
        return self

    def send(self, data: str | bytes) -> bool:
        """Queue a text or binary frame.  False if the session is not open."""
        with self._lock:
            if self._state is not SessionState.OPEN or self._ws is None:
                return False
            ws = self._ws
        try:
            self._transport.submit(self._send(ws, data))
        except TransportError:
            return False
        return True

    def close(self, code: int = WS_CLOSE_NORMAL, reason: str = DEFAULT_CLOSE_REASON) -> bool:
        """Start a closing handshake.

        Callable from any thread while CONNECTING or OPEN.  A close requested
        while connecting is sent right after the handshake, and ``on_open``
        is not fired.  Returns False if a close is already under way.
        """
        with self._lock:
            if self._close_requested is not None or self._state not in (
                SessionState.CONNECTING,
                SessionState.OPEN,
            ):
                return False
            self._close_requested = (code, reason)
            ws = self._ws
            if self._state is SessionState.OPEN:
                self._state = SessionState.CLOSING
        logger.debug("Close requested for %s: code=%d reason=%s", self._url, code, reason)
        if ws is not None:
            self._transport.submit(self._close_ws(ws, code, reason))
        return True

    def wait_closed(self, timeout: float | None = None) -> bool:
        """Block until the session reaches CLOSED.  False on timeout."""
        return self._finished.wait(timeout)

    # -- Internal: lifecycle --------------------------------------------------

    async def _run(self) -> None:
        try:
            ws = await self._transport.connect_websocket(self._url, self._headers)
        except asyncio.CancelledError:
            self._fail(MSG_TRANSPORT_CLOSED)
            raise
        except Exception as exc:
            self._fail(f"Failed to connect: {exc}")
            return

        with self._lock:
            self._ws = ws
            pending_close = self._close_requested
            self._state = SessionState.OPEN if pending_close is None else SessionState.CLOSING
        logger.debug("WebSocket connected: %s", self._url)

        if pending_close is None:
            self._emit("on_open", self)
        else:
            await self._close_ws(ws, *pending_close)

        await self._read_loop(ws)

    async def _read_loop(self, ws: Any) -> None:
        """Read frames until the connection closes."""
        while True:
            try:
                message = await ws.recv()
            except ConnectionClosed as exc:
                await self._handle_closed(ws, exc)
                return
            except asyncio.CancelledError:
                self._fail(MSG_TRANSPORT_CLOSED)
                await self._abort_ws(ws, MSG_TRANSPORT_CLOSED)
                raise
            except Exception as exc:
                self._fail(f"Receive failed: {exc}")
                await self._abort_ws(ws, "Receive failed")
                return

            # Drain silently once a close has started
            if self._state is not SessionState.OPEN:
                continue
            if isinstance(message, str):
                self._emit("on_message", message)
            else:
                self._emit("on_binary", bytes(message))

    async def _handle_closed(self, ws: Any, exc: ConnectionClosed) -> None:
        rcvd = exc.rcvd
        if rcvd is None:
            sent = exc.sent
            if self._close_requested is not None and sent is not None:
                # Our close went out but the peer never answered
                self._finish(sent.code, sent.reason)
            else:
                self._fail(f"Connection closed abnormally: {exc}")
            return

        code, reason = rcvd.code, rcvd.reason
        with self._lock:
            self._state = SessionState.CLOSING
        self._emit("on_closing", code, reason)
        await self._close_ws(ws, code, reason)
        self._finish(code, reason)

    async def _close_ws(self, ws: Any, code: int, reason: str) -> None:
        try:
            await ws.close(code, reason)
        except Exception as exc:
            logger.debug("Close handshake failed for %s: %s", self._url, exc)

    async def _abort_ws(self, ws: Any, reason: str) -> None:
        """Send a going-away close without waiting long for the peer."""
        timeout = self._transport.config.ws_abort_timeout
        try:
            await asyncio.wait_for(ws.close(WS_CLOSE_GOING_AWAY, reason), timeout)
        except Exception as exc:
            logger.debug("Abort close for %s did not complete: %s", self._url, exc)

    def _on_run_done(self, future: concurrent.futures.Future[None]) -> None:
        # Cancelled before the first step, so _run never saw the cancellation
        if future.cancelled():
            self._fail(MSG_TRANSPORT_CLOSED)

    async def _send(self, ws: Any, data: str | bytes) -> None:
        try:
            await ws.send(data)
        except ConnectionClosed:
            logger.debug("Send failed: connection closed")
        except Exception as exc:
            logger.debug("Send failed: %s", exc)

    # -- Internal: terminal transitions ---------------------------------------

    def _finish(self, code: int, reason: str) -> None:
        if not self._mark_closed(code, reason):
            return
        logger.debug("WebSocket closed: code=%d reason=%s", code, reason)
        self._emit("on_closed", code, reason)
        self._finished.set()

    def _fail(self, message: str) -> None:
        if not self._mark_closed(None, None):
            return
        error = SocketError(message)
        logger.warning("WebSocket failure on %s: %s", self._url, error)
        self._emit("on_failure", str(error))
        self._finished.set()

    def _mark_closed(self, code: int | None, reason: str | None) -> bool:
        with self._lock:
            if self._state is SessionState.CLOSED:
                return False
            self._state = SessionState.CLOSED
            self._close_code = code
            self._close_reason = reason
            self._ws = None
        return True

    def _emit(self, name: str, *args: Any) -> None:
        callback = getattr(self._listener, name)
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as exc:
            logger.error("Listener %s error for %s: %s", name, self._url, exc)

    def __repr__(self) -> str:
        return f"<WebSocketSession {self._url} {self._state.value}>"
