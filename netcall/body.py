# =============================================================================
# Netcall -- Request Bodies
# =============================================================================
#
# A body advertises its content type and produces its bytes as a stream of
# chunks.  Nothing here reads a whole file into memory.
# =============================================================================

from __future__ import annotations

import asyncio
import os

from dataclasses import dataclass
from typing import IO, AsyncIterator, Iterator, Sequence, Union
from uuid import uuid4

from .constants import (
    CHUNK_SIZE,
    CONTENT_TYPE_JSON,
    CONTENT_TYPE_MULTIPART,
    CONTENT_TYPE_OCTET_STREAM,
)

FileSource = Union[str, "os.PathLike[str]", bytes, IO[bytes]]


class Body:
    """Base class for outgoing request payloads."""

    content_type: str = CONTENT_TYPE_OCTET_STREAM
    content_encoding: str | None = None

    def iter_chunks(self) -> Iterator[bytes]:
        raise NotImplementedError

    async def aiter_chunks(self) -> AsyncIterator[bytes]:
        """Stream the chunks, producing each one in a worker thread.

        File reads and compression stay off the event loop, so other calls
        and WebSocket keepalives keep running during a large upload.
        """
        chunks = self.iter_chunks()
        while True:
            chunk = await asyncio.to_thread(next, chunks, None)
            if chunk is None:
                return
            yield chunk

    def write_to(self, sink: IO[bytes]) -> None:
        """Write every chunk of the body into *sink*."""
        for chunk in self.iter_chunks():
            sink.write(chunk)

    def headers(self) -> dict[str, str]:
        headers = {"Content-Type": self.content_type}
        if self.content_encoding:
            headers["Content-Encoding"] = self.content_encoding
        return headers


class JsonBody(Body):
    """A payload already serialized to UTF-8 JSON."""

    content_type = CONTENT_TYPE_JSON

    def __init__(self, content: bytes) -> None:
        self.content = content

    def iter_chunks(self) -> Iterator[bytes]:
        if self.content:
            yield self.content

    def __repr__(self) -> str:
        return f"JsonBody({len(self.content)} bytes)"


class FileBody(Body):
    """Raw file content, read lazily in ``chunk_size`` pieces.

    Args:
        source: A filesystem path, in-memory bytes, or a binary file object.
            Paths are reopened on every iteration; file objects are consumed.
        content_type: Advertised media type.
        chunk_size: Read size per chunk.
    """

    def __init__(
        self,
        source: FileSource,
        *,
        content_type: str = CONTENT_TYPE_OCTET_STREAM,
        chunk_size: int = CHUNK_SIZE,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.source = source
        self.content_type = content_type
        self.chunk_size = chunk_size

    @property
    def filename(self) -> str | None:
        if isinstance(self.source, (str, os.PathLike)):
            return os.path.basename(os.fspath(self.source))
        name = getattr(self.source, "name", None)
        if isinstance(name, str):
            return os.path.basename(name)
        return None

    def iter_chunks(self) -> Iterator[bytes]:
        if isinstance(self.source, (bytes, bytearray)):
            view = memoryview(self.source)
            for start in range(0, len(view), self.chunk_size):
                yield bytes(view[start : start + self.chunk_size])
            return
        if isinstance(self.source, (str, os.PathLike)):
            with open(self.source, "rb") as fh:
                yield from _read_chunks(fh, self.chunk_size)
            return
        yield from _read_chunks(self.source, self.chunk_size)

    def __repr__(self) -> str:
        return f"FileBody({self.filename or type(self.source).__name__!s})"


@dataclass(frozen=True)
class FormField:
    """One named part of a multipart form.

    A string value is sent as a plain form field; a :class:`Body` value is
    streamed as a file part with its own content type.
    """

    name: str
    value: str | Body
    filename: str | None = None


class MultipartBody(Body):
    """``multipart/form-data`` body streaming each part in order."""

    def __init__(self, fields: Sequence[FormField], boundary: str | None = None) -> None:
        self.fields = tuple(fields)
        self.boundary = boundary or uuid4().hex
        self.content_type = f"{CONTENT_TYPE_MULTIPART}; boundary={self.boundary}"

    def iter_chunks(self) -> Iterator[bytes]:
        delimiter = f"--{self.boundary}\r\n".encode("ascii")
        for form_field in self.fields:
            yield delimiter
            yield self._part_headers(form_field)
            if isinstance(form_field.value, Body):
                yield from form_field.value.iter_chunks()
            else:
                yield form_field.value.encode("utf-8")
            yield b"\r\n"
        yield f"--{self.boundary}--\r\n".encode("ascii")

    @staticmethod
    def _part_headers(form_field: FormField) -> bytes:
        disposition = f'form-data; name="{_quote(form_field.name)}"'
        lines = []
        value = form_field.value
        if isinstance(value, Body):
            filename = form_field.filename
            if filename is None and isinstance(value, FileBody):
                filename = value.filename
            if filename:
                disposition += f'; filename="{_quote(filename)}"'
            lines.append(f"Content-Disposition: {disposition}")
            for name, header_value in value.headers().items():
                lines.append(f"{name}: {header_value}")
        else:
            lines.append(f"Content-Disposition: {disposition}")
        return ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8")

    def __repr__(self) -> str:
        names = ", ".join(f.name for f in self.fields)
        return f"MultipartBody([{names}])"


def _read_chunks(fh: IO[bytes], chunk_size: int) -> Iterator[bytes]:
    while True:
        chunk = fh.read(chunk_size)
        if not chunk:
            return
        yield chunk


def _quote(value: str) -> str:
    return value.replace('"', "%22").replace("\r", "%0D").replace("\n", "%0A")
