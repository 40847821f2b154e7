# =============================================================================
# Netcall -- Helper Facade
# =============================================================================
#
# Composition root: one transport and one codec per helper, shared by every
# call made through it.
# =============================================================================

from __future__ import annotations

from typing import Any, Mapping, Sequence, TypeVar

from ._logging import logger
from .body import Body, FileBody, FileSource, FormField, JsonBody, MultipartBody
from .codec import JsonCodec
from .compression import GzipBody
from .dispatcher import Call, Dispatcher, FailureCallback, SuccessCallback
from .errors import InvalidUrlError
from .request import WS_SCHEMES, QueryParams, build_request, build_url
from .transport import Transport
from .types import HttpMethod, TransportConfig
from .websocket import WebSocketListener, WebSocketSession

T = TypeVar("T")


class HttpHelper:
    """Callback-style HTTP and WebSocket helper.

    Every HTTP method returns immediately with a :class:`Call`; exactly one
    of ``on_success(value)`` or ``on_failure(message)`` runs later on the
    transport's worker thread.

    Args:
        config: Transport settings (timeouts, default headers).
        transport: Pre-built transport; *config* is ignored when given.
        codec: Pre-built JSON codec.

    Example::

        with HttpHelper() as http:
            http.get(
                "https://api.example.com/items",
                Item,
                on_success=print,
                on_failure=print,
                params={"id": "42"},
            )
    """

    def __init__(
        self,
        config: TransportConfig | None = None,
        *,
        transport: Transport | None = None,
        codec: JsonCodec | None = None,
    ) -> None:
        self._transport = transport or Transport(config)
        self._codec = codec or JsonCodec()
        self._dispatcher = Dispatcher(self._transport, self._codec)

    # -- Properties -----------------------------------------------------------

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def codec(self) -> JsonCodec:
        return self._codec

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    # -- HTTP -----------------------------------------------------------------

    def get(
        self,
        url: str,
        response_type: type[T] | Any,
        on_success: SuccessCallback[T],
        on_failure: FailureCallback,
        *,
        params: QueryParams = None,
    ) -> Call[T]:
        """Asynchronous GET."""
        return self.request(
            HttpMethod.GET, url, response_type, on_success, on_failure, params=params
        )

    def post(
        self,
        url: str,
        payload: Any,
        response_type: type[T] | Any,
        on_success: SuccessCallback[T],
        on_failure: FailureCallback,
        *,
        params: QueryParams = None,
    ) -> Call[T]:
        """Asynchronous POST with *payload* serialized as JSON."""
        return self.request(
            HttpMethod.POST,
            url,
            response_type,
            on_success,
            on_failure,
            params=params,
            body=JsonBody(self._codec.serialize(payload)),
        )

    def put(
        self,
        url: str,
        payload: Any,
        response_type: type[T] | Any,
        on_success: SuccessCallback[T],
        on_failure: FailureCallback,
        *,
        params: QueryParams = None,
    ) -> Call[T]:
        """Asynchronous PUT with *payload* serialized as JSON."""
        return self.request(
            HttpMethod.PUT,
            url,
            response_type,
            on_success,
            on_failure,
            params=params,
            body=JsonBody(self._codec.serialize(payload)),
        )

    def delete(
        self,
        url: str,
        response_type: type[T] | Any,
        on_success: SuccessCallback[T],
        on_failure: FailureCallback,
        *,
        params: QueryParams = None,
    ) -> Call[T]:
        """Asynchronous DELETE."""
        return self.request(
            HttpMethod.DELETE, url, response_type, on_success, on_failure, params=params
        )

    def upload(
        self,
        url: str,
        file: FileSource | Body,
        response_type: type[T] | Any,
        on_success: SuccessCallback[T],
        on_failure: FailureCallback,
        *,
        method: HttpMethod | str = HttpMethod.POST,
        field_name: str | None = None,
        filename: str | None = None,
        fields: Mapping[str, str] | Sequence[tuple[str, str]] | None = None,
        compress: bool = True,
        params: QueryParams = None,
    ) -> Call[T]:
        """Upload a file body, optionally gzip-compressed while streaming.

        Args:
            file: Path, bytes, binary file object, or a ready :class:`Body`.
            field_name: When set, send a multipart form with the file under
                this name, after any plain *fields*.
            filename: File name for the multipart part.
            fields: Extra plain form fields (multipart only).
            compress: Gzip the file bytes.  In a multipart form only the
                file part is compressed.
        """
        file_body = file if isinstance(file, Body) else FileBody(file)
        if filename is None and isinstance(file_body, FileBody):
            filename = file_body.filename
        if compress:
            file_body = GzipBody(file_body)

        if field_name is None:
            if fields:
                raise ValueError("form fields require a field_name for the file part")
            body: Body = file_body
        else:
            items = fields.items() if isinstance(fields, Mapping) else (fields or ())
            parts = [FormField(name, value) for name, value in items]
            parts.append(FormField(field_name, file_body, filename=filename))
            body = MultipartBody(parts)

        return self.request(
            method, url, response_type, on_success, on_failure, params=params, body=body
        )

    def request(
        self,
        method: HttpMethod | str,
        url: str,
        response_type: type[T] | Any,
        on_success: SuccessCallback[T],
        on_failure: FailureCallback,
        *,
        params: QueryParams = None,
        body: Body | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Call[T]:
        """Build and dispatch a request.

        An invalid URL never reaches the network; *on_failure* receives
        ``"Invalid URL"`` from the worker thread instead.
        """
        self._codec.adapter(response_type)
        try:
            request = build_request(method, url, params=params, body=body, headers=headers)
        except InvalidUrlError as exc:
            logger.debug("Rejected URL %r", url)
            return self._dispatcher.submit_failure(exc, on_failure)
        return self._dispatcher.submit(request, response_type, on_success, on_failure)

    # -- WebSocket ------------------------------------------------------------

    def websocket(
        self,
        url: str,
        listener: WebSocketListener,
        *,
        params: QueryParams = None,
        headers: dict[str, str] | None = None,
    ) -> WebSocketSession:
        """Open a WebSocket session.  ``http(s)`` URLs map to ``ws(s)``.

        An invalid URL is reported through ``listener.on_failure``.
        """
        try:
            _, final_url = build_url(url, params, schemes=WS_SCHEMES)
        except InvalidUrlError as exc:
            logger.debug("Rejected WebSocket URL %r", url)
            session = WebSocketSession(url, self._transport, listener, headers)
            return session.reject(exc)
        if final_url.startswith("http"):
            final_url = "ws" + final_url[4:]
        session = WebSocketSession(final_url, self._transport, listener, headers)
        return session.start()

    # -- Lifecycle ------------------------------------------------------------

    def close(self) -> None:
        """Shut the transport down, aborting in-flight calls and sessions."""
        self._transport.close()

    def __enter__(self) -> HttpHelper:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
