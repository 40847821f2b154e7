"""Tests for request bodies and the gzip streaming wrapper."""

import gzip
import io
import os
import threading
import zlib

import pytest

from netcall.body import Body, FileBody, FormField, JsonBody, MultipartBody
from netcall.compression import GzipBody


class ExplodingBody(Body):
    """Yields one chunk, then fails mid-stream."""

    def iter_chunks(self):
        yield b"partial"
        raise OSError("disk read failed")


class ThreadRecordingBody(Body):
    """Records which thread produced each chunk."""

    def __init__(self):
        self.threads = []

    def iter_chunks(self):
        for part in (b"first", b"second"):
            self.threads.append(threading.current_thread())
            yield part


class TestFileBody:
    def test_bytes_are_chunked(self):
        body = FileBody(b"abcdefghij", chunk_size=4)
        assert list(body.iter_chunks()) == [b"abcd", b"efgh", b"ij"]

    def test_path_is_reiterable(self, tmp_path):
        path = tmp_path / "report.bin"
        path.write_bytes(b"\x00\x01" * 1000)
        body = FileBody(path, chunk_size=512)
        assert b"".join(body.iter_chunks()) == b"\x00\x01" * 1000
        assert b"".join(body.iter_chunks()) == b"\x00\x01" * 1000
        assert body.filename == "report.bin"

    def test_file_object(self):
        body = FileBody(io.BytesIO(b"stream me"), chunk_size=3)
        assert b"".join(body.iter_chunks()) == b"stream me"

    def test_default_content_type(self):
        assert FileBody(b"x").content_type == "application/octet-stream"
        assert FileBody(b"x").headers() == {"Content-Type": "application/octet-stream"}

    def test_invalid_chunk_size(self):
        with pytest.raises(ValueError):
            FileBody(b"x", chunk_size=0)

    def test_write_to_sink(self):
        sink = io.BytesIO()
        FileBody(b"hello world", chunk_size=2).write_to(sink)
        assert sink.getvalue() == b"hello world"


class TestAsyncChunks:
    @pytest.mark.asyncio
    async def test_chunks_produced_off_the_event_loop(self):
        body = ThreadRecordingBody()
        chunks = [chunk async for chunk in body.aiter_chunks()]
        assert chunks == [b"first", b"second"]
        assert threading.current_thread() not in body.threads

    @pytest.mark.asyncio
    async def test_gzip_stream_matches_sync_stream(self):
        payload = os.urandom(200_000)
        body = GzipBody(FileBody(payload, chunk_size=8192))
        chunks = [chunk async for chunk in body.aiter_chunks()]
        assert gzip.decompress(b"".join(chunks)) == payload

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        with pytest.raises(OSError, match="disk read failed"):
            async for _ in GzipBody(ExplodingBody()).aiter_chunks():
                pass


class TestGzipBody:
    @pytest.mark.parametrize(
        "payload",
        [b"", b"x", b"Hello, netcall!" * 1000, bytes(range(256)) * 300],
    )
    def test_roundtrip(self, payload):
        wrapped = GzipBody(FileBody(payload, chunk_size=1024))
        assert gzip.decompress(b"".join(wrapped.iter_chunks())) == payload

    def test_content_type_preserved(self):
        inner = FileBody(b"{}", content_type="text/csv")
        wrapped = GzipBody(inner)
        assert wrapped.content_type == "text/csv"
        assert wrapped.headers() == {
            "Content-Type": "text/csv",
            "Content-Encoding": "gzip",
        }

    def test_json_body_content_type(self):
        assert GzipBody(JsonBody(b"{}")).content_type == "application/json; charset=utf-8"

    def test_streams_incrementally(self):
        # Incompressible input forces output before the inner stream ends
        payload = os.urandom(512 * 1024)
        produced = []

        class Tracking(Body):
            def iter_chunks(self):
                for start in range(0, len(payload), 4096):
                    produced.append(start)
                    yield payload[start : start + 4096]

        chunks = GzipBody(Tracking(), level=1).iter_chunks()
        first = next(chunks)
        assert first
        assert len(produced) < len(payload) // 4096
        rest = b"".join(chunks)
        assert gzip.decompress(first + rest) == payload

    def test_output_is_complete_gzip_member(self):
        sink = io.BytesIO()
        GzipBody(FileBody(b"complete")).write_to(sink)
        decompressor = zlib.decompressobj(31)
        assert decompressor.decompress(sink.getvalue()) == b"complete"
        assert decompressor.eof

    def test_inner_failure_propagates(self):
        sink = io.BytesIO()
        with pytest.raises(OSError, match="disk read failed"):
            GzipBody(ExplodingBody()).write_to(sink)

    def test_independent_compressors(self):
        wrapped = GzipBody(FileBody(b"same input" * 50))
        first = wrapped.iter_chunks()
        second = wrapped.iter_chunks()
        assert b"".join(first) == b"".join(second)

    def test_double_wrap_rejected(self):
        with pytest.raises(ValueError):
            GzipBody(GzipBody(FileBody(b"x")))


class TestMultipartBody:
    def test_layout(self):
        body = MultipartBody(
            [
                FormField("title", "Quarterly"),
                FormField("file", FileBody(b"a,b\n1,2\n", content_type="text/csv"), filename="q.csv"),
            ],
            boundary="BOUNDARY",
        )
        assert body.content_type == "multipart/form-data; boundary=BOUNDARY"
        assert b"".join(body.iter_chunks()) == (
            b"--BOUNDARY\r\n"
            b'Content-Disposition: form-data; name="title"\r\n\r\n'
            b"Quarterly\r\n"
            b"--BOUNDARY\r\n"
            b'Content-Disposition: form-data; name="file"; filename="q.csv"\r\n'
            b"Content-Type: text/csv\r\n\r\n"
            b"a,b\n1,2\n\r\n"
            b"--BOUNDARY--\r\n"
        )

    def test_gzip_part_headers(self):
        part = GzipBody(FileBody(b"data"))
        body = MultipartBody([FormField("upload", part, filename="d.bin")], boundary="B")
        raw = b"".join(body.iter_chunks())
        assert b"Content-Encoding: gzip\r\n" in raw
        start = raw.index(b"\r\n\r\n") + 4
        end = raw.rindex(b"\r\n--B--")
        assert gzip.decompress(raw[start:end]) == b"data"

    def test_quotes_escaped(self):
        body = MultipartBody([FormField('we"ird', "v")], boundary="B")
        assert b'name="we%22ird"' in b"".join(body.iter_chunks())
