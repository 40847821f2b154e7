# =============================================================================
# Netcall -- Transport
# =============================================================================
#
# Owns the worker: a daemon thread running an asyncio event loop, started on
# first use.  All HTTP and WebSocket I/O happens there, through one shared
# httpx.AsyncClient and the websockets connect function.
# =============================================================================

from __future__ import annotations

import asyncio
import concurrent.futures
import threading

from typing import Any, Awaitable, Callable, Coroutine, TypeVar

import httpx
import websockets.asyncio.client

from ._logging import logger
from .body import JsonBody
from .constants import MSG_UNKNOWN_ERROR, SHUTDOWN_TIMEOUT
from .errors import TransportError
from .request import Request
from .types import ResponseEnvelope, TransportConfig

T = TypeVar("T")

WebSocketConnect = Callable[..., Awaitable[Any]]


class Transport:
    """HTTP/WebSocket transport running on a background event loop.

    Args:
        config: Timeouts, WebSocket limits, and default headers.
        http_transport: Custom httpx transport, e.g. ``httpx.MockTransport``.
        ws_connect: Replacement for ``websockets.asyncio.client.connect``.

    All public methods are thread-safe.  Coroutine methods (``send``,
    ``connect_websocket``) must run on the worker, via :meth:`submit`.
    """

    def __init__(
        self,
        config: TransportConfig | None = None,
        *,
        http_transport: httpx.AsyncBaseTransport | None = None,
        ws_connect: WebSocketConnect | None = None,
    ) -> None:
        self._config = config or TransportConfig()
        self._http_transport = http_transport
        self._ws_connect = ws_connect or websockets.asyncio.client.connect

        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._client: httpx.AsyncClient | None = None
        self._closed = False

    # -- Properties -----------------------------------------------------------

    @property
    def config(self) -> TransportConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def is_closed(self) -> bool:
        return self._closed

    def in_worker(self) -> bool:
        """True when called from the worker thread."""
        return self._thread is not None and threading.current_thread() is self._thread

    # -- Scheduling -----------------------------------------------------------

    def submit(self, coro: Coroutine[Any, Any, T]) -> concurrent.futures.Future[T]:
        """Schedule *coro* on the worker and return immediately.

        Raises:
            TransportError: If the transport has been closed.
        """
        try:
            loop = self._ensure_started()
        except TransportError:
            coro.close()
            raise
        return asyncio.run_coroutine_threadsafe(coro, loop)

    def call_soon(self, fn: Callable[..., Any], *args: Any) -> None:
        """Run ``fn(*args)`` on the worker on its next iteration."""
        loop = self._ensure_started()
        loop.call_soon_threadsafe(fn, *args)

    def _ensure_started(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._closed:
                raise TransportError("Transport is closed")
            if self._loop is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(
                    target=self._run_loop,
                    args=(loop,),
                    daemon=True,
                    name="netcall-transport",
                )
                self._loop = loop
                self._thread = thread
                thread.start()
                logger.debug("Transport worker started")
            return self._loop

    def _run_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Background thread: run the event loop until stopped."""
        asyncio.set_event_loop(loop)
        try:
            loop.run_forever()
        except Exception as exc:
            logger.error("Transport loop error: %s", exc)
        finally:
            try:
                loop.run_until_complete(loop.shutdown_asyncgens())
            finally:
                loop.close()
                logger.debug("Transport worker stopped")

    # -- HTTP -----------------------------------------------------------------

    def _http_client(self) -> httpx.AsyncClient:
        if self._client is None:
            cfg = self._config
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    cfg.read_timeout,
                    connect=cfg.connect_timeout,
                    read=cfg.read_timeout,
                    write=cfg.write_timeout,
                ),
                headers=cfg.default_headers,
                transport=self._http_transport,
            )
        return self._client

    async def send(self, request: Request) -> ResponseEnvelope:
        """Execute *request* and read the whole response.

        Raises:
            TransportError: On connection, timeout, protocol, or body
                streaming failures.
        """
        client = self._http_client()
        body = request.body
        if body is None:
            content = None
        elif isinstance(body, JsonBody):
            content = body.content
        else:
            content = body.aiter_chunks()

        http_request = client.build_request(
            request.method.value,
            request.url,
            headers=request.all_headers(),
            content=content,
        )
        try:
            response = await client.send(http_request)
        except Exception as exc:
            # httpx errors, plus anything raised while streaming the body
            raise TransportError(str(exc) or MSG_UNKNOWN_ERROR, exc) from exc

        logger.debug(
            "%s %s -> %d (%d bytes)",
            request.method.value,
            request.url,
            response.status_code,
            len(response.content),
        )
        return ResponseEnvelope(
            status_code=response.status_code,
            headers=tuple(response.headers.multi_items()),
            content=response.content or None,
        )

    # -- WebSocket ------------------------------------------------------------

    async def connect_websocket(
        self, url: str, headers: dict[str, str] | None = None
    ) -> Any:
        """Open a WebSocket connection and complete the handshake."""
        cfg = self._config
        merged = {**cfg.default_headers, **(headers or {})}
        return await self._ws_connect(
            url,
            additional_headers=merged or None,
            open_timeout=cfg.ws_open_timeout,
            close_timeout=cfg.ws_close_timeout,
            ping_interval=cfg.ws_ping_interval,
            max_size=cfg.ws_max_size,
        )

    # -- Shutdown -------------------------------------------------------------

    def close(self, timeout: float | None = None) -> None:
        """Abort in-flight work, close the HTTP client, stop the worker.

        *timeout* defaults to enough time for aborted sessions to finish
        their going-away close.
        """
        if timeout is None:
            timeout = max(SHUTDOWN_TIMEOUT, self._config.ws_abort_timeout + 1.0)
        with self._lock:
            if self._closed:
                return
            self._closed = True
            loop, thread = self._loop, self._thread

        if loop is None or thread is None:
            return

        if threading.current_thread() is thread:
            task = loop.create_task(self._shutdown())
            task.add_done_callback(lambda _: loop.stop())
            return

        future = asyncio.run_coroutine_threadsafe(self._shutdown(), loop)
        try:
            future.result(timeout=timeout)
        except Exception as exc:
            logger.warning("Transport shutdown incomplete: %s", exc)
        if not loop.is_closed():
            loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout=timeout)

    async def _shutdown(self) -> None:
        current = asyncio.current_task()
        pending = [t for t in asyncio.all_tasks() if t is not current]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    def __enter__(self) -> Transport:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
