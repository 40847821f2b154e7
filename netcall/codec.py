# =============================================================================
# Netcall -- JSON Codec
# =============================================================================
#
# serialize(value) -> bytes       orjson, dataclasses and pydantic models
# decode(bytes, type) -> value    orjson + pydantic TypeAdapter
# =============================================================================

from __future__ import annotations

from typing import Any, TypeVar

import orjson
from pydantic import BaseModel, PydanticUserError, TypeAdapter, ValidationError

from ._logging import logger
from .errors import DecodeError

T = TypeVar("T")


def _orjson_default(obj: Any) -> Any:
    """orjson default handler for types not natively supported."""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")


class JsonCodec:
    """Shared JSON encoder/decoder.

    Type adapters are built once per descriptor and reused; concurrent
    calls at worst build the same adapter twice.
    """

    def __init__(self) -> None:
        self._adapters: dict[Any, TypeAdapter[Any]] = {}

    def serialize(self, value: Any) -> bytes:
        """Encode *value* as UTF-8 JSON.

        Raises:
            TypeError: If *value* contains something JSON cannot represent.
        """
        try:
            return orjson.dumps(value, default=_orjson_default)
        except orjson.JSONEncodeError as exc:
            raise TypeError(f"Cannot serialize payload: {exc}") from exc

    def adapter(self, descriptor: Any) -> TypeAdapter[Any]:
        """Return the (cached) adapter for *descriptor*.

        Raises:
            TypeError: If *descriptor* is missing or not a usable type.
        """
        if descriptor is None:
            raise TypeError("A response type is required to decode a payload")
        try:
            return self._adapters[descriptor]
        except KeyError:
            pass
        except TypeError:
            # Unhashable descriptor, build without caching
            return self._build_adapter(descriptor)
        adapter = self._build_adapter(descriptor)
        self._adapters[descriptor] = adapter
        return adapter

    @staticmethod
    def _build_adapter(descriptor: Any) -> TypeAdapter[Any]:
        try:
            return TypeAdapter(descriptor)
        except PydanticUserError as exc:
            raise TypeError(f"Unsupported response type {descriptor!r}: {exc}") from exc

    def decode(self, raw: bytes | str, descriptor: type[T] | Any) -> T:
        """Decode JSON text into the type named by *descriptor*.

        Raises:
            DecodeError: Malformed JSON or a shape mismatch.
            TypeError: If *descriptor* is missing or unusable.
        """
        adapter = self.adapter(descriptor)
        try:
            parsed = orjson.loads(raw)
        except orjson.JSONDecodeError as exc:
            logger.debug("Malformed JSON payload: %s", exc)
            raise DecodeError(f"malformed JSON ({exc})", exc) from exc
        try:
            return adapter.validate_python(parsed)
        except ValidationError as exc:
            logger.debug("Payload does not match %r: %s", descriptor, exc)
            raise DecodeError(_summarize(exc), exc) from exc


def _summarize(exc: ValidationError) -> str:
    """One-line description of the first validation error."""
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
    summary = f"{location}: {first.get('msg', 'invalid value')}"
    if len(errors) > 1:
        summary += f" (+{len(errors) - 1} more)"
    return summary
