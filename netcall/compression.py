# =============================================================================
# Netcall -- Gzip Streaming Wrapper
# =============================================================================

from __future__ import annotations

import zlib

from typing import Iterator

from .body import Body
from .constants import CONTENT_ENCODING_GZIP, GZIP_LEVEL, GZIP_WBITS


class GzipBody(Body):
    """Gzip-compress another body while it is being written.

    The wrapped body keeps its ``content_type``; only the bytes change and
    ``Content-Encoding: gzip`` is advertised.  Each iteration owns a fresh
    compressor, which is the only buffering stage, and is always finalized
    before the stream ends so the receiver gets a complete gzip member.

    Args:
        body: The body to compress.
        level: Zlib compression level 1--9 (default 6).
    """

    content_encoding = CONTENT_ENCODING_GZIP

    def __init__(self, body: Body, level: int = GZIP_LEVEL) -> None:
        if isinstance(body, GzipBody):
            raise ValueError("body is already gzip-encoded")
        self.body = body
        self.level = level

    @property
    def content_type(self) -> str:  # type: ignore[override]
        return self.body.content_type

    def iter_chunks(self) -> Iterator[bytes]:
        compressor = zlib.compressobj(self.level, zlib.DEFLATED, GZIP_WBITS)
        for chunk in self.body.iter_chunks():
            compressed = compressor.compress(chunk)
            if compressed:
                yield compressed
        yield compressor.flush(zlib.Z_FINISH)

    def __repr__(self) -> str:
        return f"GzipBody({self.body!r})"
