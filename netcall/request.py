# =============================================================================
# Netcall -- Request Builder
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Union

import httpx

from .body import Body
from .errors import InvalidUrlError
from .types import Endpoint, HttpMethod

QueryParams = Union[Mapping[str, str], Iterable[tuple[str, str]], None]

HTTP_SCHEMES = frozenset({"http", "https"})
WS_SCHEMES = frozenset({"ws", "wss", "http", "https"})


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable, ready-to-dispatch HTTP request.

    Attributes:
        method: HTTP method.
        endpoint: The validated URL and the query pairs that were applied.
        url: Final URL with every query pair appended.
        body: Optional payload.
        headers: Extra headers; body headers are added at dispatch.
    """

    method: HttpMethod
    endpoint: Endpoint
    url: str
    body: Body | None = None
    headers: tuple[tuple[str, str], ...] = field(default=())

    def all_headers(self) -> dict[str, str]:
        headers = dict(self.headers)
        if self.body is not None:
            headers.update(self.body.headers())
        return headers


def normalize_params(params: QueryParams) -> tuple[tuple[str, str], ...]:
    """Flatten a mapping or pair sequence into ordered ``(name, value)`` pairs.

    Raises:
        TypeError: If a name or value is not a string.
    """
    if params is None:
        return ()
    items = params.items() if isinstance(params, Mapping) else params
    pairs: list[tuple[str, str]] = []
    for name, value in items:
        if not isinstance(name, str) or not isinstance(value, str):
            raise TypeError(
                f"Query parameters must be strings, got {name!r}={value!r}"
            )
        pairs.append((name, value))
    return tuple(pairs)


def parse_url(url: str, schemes: frozenset[str] = HTTP_SCHEMES) -> httpx.URL:
    """Parse *url* as an absolute URL with one of *schemes*.

    Raises:
        InvalidUrlError: On anything else.
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidUrlError(str(url))
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise InvalidUrlError(url) from exc
    if parsed.scheme not in schemes or not parsed.host:
        raise InvalidUrlError(url)
    return parsed


def build_url(
    url: str,
    params: QueryParams = None,
    *,
    schemes: frozenset[str] = HTTP_SCHEMES,
) -> tuple[Endpoint, str]:
    """Validate *url* and append *params* in order.

    Pairs are added to any query already present; repeated names produce
    repeated parameters.
    """
    pairs = normalize_params(params)
    parsed = parse_url(url, schemes)
    for name, value in pairs:
        parsed = parsed.copy_add_param(name, value)
    return Endpoint(url=url, params=pairs), str(parsed)


def build_request(
    method: HttpMethod | str,
    url: str,
    params: QueryParams = None,
    body: Body | None = None,
    headers: Mapping[str, str] | None = None,
) -> Request:
    """Build an immutable :class:`Request`.  Performs no network I/O.

    Args:
        method: One of GET, POST, PUT, DELETE.
        url: Absolute ``http``/``https`` URL.
        params: Query parameters, appended in iteration order.
        body: Optional payload.
        headers: Extra request headers.

    Raises:
        InvalidUrlError: If *url* is not a valid absolute URL.
        TypeError: If a query parameter is not a string.
        ValueError: If *method* is not supported.
    """
    method = HttpMethod(method.upper() if isinstance(method, str) else method)
    endpoint, final_url = build_url(url, params)
    return Request(
        method=method,
        endpoint=endpoint,
        url=final_url,
        body=body,
        headers=tuple((headers or {}).items()),
    )
