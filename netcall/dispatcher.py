# =============================================================================
# Netcall -- Async Dispatcher
# =============================================================================
#
# request -> transport -> (empty body check) -> decode -> continuation
#
# Every submitted request settles its Call exactly once, on the transport
# worker, with either on_success(value) or on_failure(message).
# =============================================================================

from __future__ import annotations

import asyncio
import concurrent.futures
import functools
import threading

from typing import Any, Callable, Generic, TypeVar

from ._logging import logger
from .codec import JsonCodec
from .constants import MSG_CALL_ABORTED, MSG_UNKNOWN_ERROR
from .errors import EmptyBodyError, NetcallError, TransportError
from .request import Request
from .transport import Transport
from .types import Outcome

T = TypeVar("T")

SuccessCallback = Callable[[T], Any]
FailureCallback = Callable[[str], Any]


class Call(Generic[T]):
    """Completion handle for one dispatched request.

    The first call to :meth:`succeed` or :meth:`fail` wins and runs the
    matching continuation; later ones are ignored.  There is no cancel.
    """

    def __init__(
        self,
        request: Request | None,
        on_success: SuccessCallback[T] | None,
        on_failure: FailureCallback | None,
    ) -> None:
        self.request = request
        self._on_success = on_success
        self._on_failure = on_failure
        self._lock = threading.Lock()
        self._settled = threading.Event()
        self._outcome: Outcome | None = None

    @property
    def outcome(self) -> Outcome | None:
        return self._outcome

    def done(self) -> bool:
        return self._settled.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the continuation has run.  Returns False on timeout."""
        return self._settled.wait(timeout)

    def succeed(self, value: T) -> bool:
        return self._settle(Outcome(ok=True, value=value))

    def fail(self, error: Exception) -> bool:
        return self._settle(Outcome(ok=False, error=error))

    def _settle(self, outcome: Outcome) -> bool:
        with self._lock:
            if self._outcome is not None:
                logger.debug("Call already settled, ignoring %s", outcome)
                return False
            self._outcome = outcome

        try:
            if outcome.ok:
                if self._on_success is not None:
                    self._on_success(outcome.value)
            elif self._on_failure is not None:
                self._on_failure(str(outcome.error))
        except Exception as exc:
            logger.error("Continuation error for %s: %s", self._describe(), exc)
        finally:
            self._settled.set()
        return True

    def _describe(self) -> str:
        if self.request is None:
            return "<unbuilt request>"
        return f"{self.request.method.value} {self.request.url}"

    def __repr__(self) -> str:
        state = "pending" if self._outcome is None else ("ok" if self._outcome.ok else "failed")
        return f"<Call {self._describe()} {state}>"


class Dispatcher:
    """Runs requests on a :class:`Transport` and decodes their responses.

    Args:
        transport: Shared transport (worker thread + HTTP client).
        codec: Shared JSON codec.
    """

    def __init__(self, transport: Transport, codec: JsonCodec) -> None:
        self._transport = transport
        self._codec = codec

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def codec(self) -> JsonCodec:
        return self._codec

    async def execute(self, request: Request, response_type: type[T] | Any) -> T:
        """Send *request* and decode the body as *response_type*.

        Must run on the transport worker.

        Raises:
            TransportError: The transport call failed.
            EmptyBodyError: The response had no payload.
            DecodeError: The payload did not match *response_type*.
        """
        envelope = await self._transport.send(request)
        if not envelope.has_body:
            raise EmptyBodyError()
        return self._codec.decode(envelope.content, response_type)

    def submit(
        self,
        request: Request,
        response_type: type[T] | Any,
        on_success: SuccessCallback[T],
        on_failure: FailureCallback,
    ) -> Call[T]:
        """Dispatch *request* without blocking.

        Exactly one of *on_success* / *on_failure* runs later on the
        transport worker, never inside this call.

        Raises:
            TypeError: If *response_type* is missing or unusable.
            TransportError: If the transport has already been closed.
        """
        self._codec.adapter(response_type)
        call: Call[T] = Call(request, on_success, on_failure)
        logger.debug("Dispatching %s %s", request.method.value, request.url)
        future = self._transport.submit(self._run(call, response_type))
        # A task cancelled before its first step never enters _run
        future.add_done_callback(functools.partial(_abort_if_cancelled, call))
        return call

    def submit_failure(
        self,
        error: NetcallError,
        on_failure: FailureCallback,
        request: Request | None = None,
    ) -> Call[Any]:
        """Deliver a build-time *error* through the worker, without I/O."""
        call: Call[Any] = Call(request, None, on_failure)
        self._transport.call_soon(call.fail, error)
        return call

    async def _run(self, call: Call[T], response_type: type[T] | Any) -> None:
        assert call.request is not None
        try:
            value = await self.execute(call.request, response_type)
        except NetcallError as exc:
            logger.warning("%s %s failed: %s", call.request.method.value, call.request.url, exc)
            call.fail(exc)
            return
        except asyncio.CancelledError:
            call.fail(TransportError(MSG_CALL_ABORTED))
            raise
        except Exception as exc:
            logger.exception("Unexpected error dispatching %s", call.request.url)
            call.fail(NetcallError(str(exc) or MSG_UNKNOWN_ERROR, exc))
            return
        call.succeed(value)


def _abort_if_cancelled(call: Call[Any], future: concurrent.futures.Future[None]) -> None:
    if future.cancelled():
        call.fail(TransportError(MSG_CALL_ABORTED))
