"""Tests for request dispatch and continuation delivery (mocked transport)."""

import asyncio
import gzip
import json
import threading
from dataclasses import dataclass

import httpx
import pytest

from netcall.body import Body, FileBody
from netcall.codec import JsonCodec
from netcall.dispatcher import Call, Dispatcher
from netcall.errors import DecodeError, EmptyBodyError, TransportError
from netcall.request import build_request
from netcall.transport import Transport

WAIT = 5.0


@dataclass
class Item:
    id: int
    name: str


def json_response(data, status_code=200):
    return httpx.Response(status_code, content=json.dumps(data).encode())


class TestScenarios:
    def test_get_decodes_record(self, make_helper, recorder):
        seen = []

        def handler(request):
            seen.append(request)
            return json_response({"id": 42, "name": "foo"})

        http = make_helper(handler)
        call = http.get(
            "https://api.example.com/items",
            Item,
            recorder.on_success,
            recorder.on_failure,
            params={"id": "42"},
        )
        assert call.wait(WAIT)
        assert recorder.successes == [Item(id=42, name="foo")]
        assert recorder.failures == []
        assert seen[0].method == "GET"
        assert str(seen[0].url) == "https://api.example.com/items?id=42"

    def test_invalid_url_never_reaches_transport(self, make_helper, recorder):
        hits = []
        http = make_helper(lambda request: hits.append(request) or json_response({}))
        call = http.get("not a url", Item, recorder.on_success, recorder.on_failure)
        assert call.wait(WAIT)
        assert recorder.failures == ["Invalid URL"]
        assert recorder.successes == []
        assert hits == []

    def test_post_with_null_body(self, make_helper, recorder):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(204)

        http = make_helper(handler)
        call = http.post(
            "https://api.example.com/items",
            Item(id=1, name="new"),
            Item,
            recorder.on_success,
            recorder.on_failure,
        )
        assert call.wait(WAIT)
        assert recorder.failures == ["Response body is null"]
        assert seen[0].headers["content-type"] == "application/json; charset=utf-8"
        assert json.loads(seen[0].content) == {"id": 1, "name": "new"}


class TestMethods:
    @pytest.mark.parametrize("method", ["put", "delete"])
    def test_method_used(self, make_helper, recorder, method):
        seen = []

        def handler(request):
            seen.append(request.method)
            return json_response({"id": 3, "name": "x"})

        http = make_helper(handler)
        if method == "put":
            call = http.put(
                "https://api.example.com/items/3",
                {"name": "x"},
                Item,
                recorder.on_success,
                recorder.on_failure,
            )
        else:
            call = http.delete(
                "https://api.example.com/items/3", Item, recorder.on_success, recorder.on_failure
            )
        assert call.wait(WAIT)
        assert seen == [method.upper()]
        assert recorder.successes == [Item(3, "x")]

    def test_list_response(self, make_helper, recorder):
        http = make_helper(lambda request: json_response([{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]))
        call = http.get("https://api.example.com/items", list[Item], recorder.on_success, recorder.on_failure)
        assert call.wait(WAIT)
        assert recorder.successes == [[Item(1, "a"), Item(2, "b")]]

    def test_status_code_not_interpreted(self, make_helper, recorder):
        http = make_helper(lambda request: json_response({"id": 0, "name": "missing"}, 404))
        call = http.get("https://api.example.com/items/0", Item, recorder.on_success, recorder.on_failure)
        assert call.wait(WAIT)
        assert recorder.successes == [Item(0, "missing")]


class TestFailures:
    def test_transport_error_message(self, make_helper, recorder):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        http = make_helper(handler)
        call = http.get("https://api.example.com/items", Item, recorder.on_success, recorder.on_failure)
        assert call.wait(WAIT)
        assert recorder.failures == ["connection refused"]
        assert isinstance(call.outcome.error, TransportError)

    def test_transport_error_without_text(self, make_helper, recorder):
        def handler(request):
            raise httpx.ReadTimeout("")

        http = make_helper(handler)
        call = http.get("https://api.example.com/items", Item, recorder.on_success, recorder.on_failure)
        assert call.wait(WAIT)
        assert recorder.failures == ["Unknown Error"]

    def test_decode_failure(self, make_helper, recorder):
        http = make_helper(lambda request: httpx.Response(200, content=b"<html>oops</html>"))
        call = http.get("https://api.example.com/items", Item, recorder.on_success, recorder.on_failure)
        assert call.wait(WAIT)
        assert recorder.failures[0].startswith("Failed to parse response:")
        assert isinstance(call.outcome.error, DecodeError)

    def test_shape_mismatch(self, make_helper, recorder):
        http = make_helper(lambda request: json_response({"id": "x"}))
        call = http.get("https://api.example.com/items", Item, recorder.on_success, recorder.on_failure)
        assert call.wait(WAIT)
        assert recorder.failures[0].startswith("Failed to parse response:")

    def test_missing_response_type_is_caller_error(self, make_helper, recorder):
        http = make_helper(lambda request: json_response({}))
        with pytest.raises(TypeError):
            http.get("https://api.example.com/items", None, recorder.on_success, recorder.on_failure)

    def test_submit_after_close(self, make_helper, recorder):
        http = make_helper(lambda request: json_response({}))
        http.close()
        with pytest.raises(TransportError):
            http.get("https://api.example.com/items", Item, recorder.on_success, recorder.on_failure)

    def test_close_aborts_in_flight_call(self, make_helper, recorder):
        started = threading.Event()

        async def handler(request):
            started.set()
            await asyncio.sleep(60)

        http = make_helper(handler)
        call = http.get("https://api.example.com/slow", Item, recorder.on_success, recorder.on_failure)
        assert started.wait(WAIT)
        http.close()
        assert call.wait(WAIT)
        assert recorder.failures == ["Call aborted: transport closed"]

    def test_close_from_continuation_aborts_queued_call(self, make_helper, recorder):
        http = make_helper(lambda request: json_response({"id": 1, "name": "a"}))
        follow_ups = []

        def on_success(value):
            follow_ups.append(
                http.get("https://api.example.com/next", Item, recorder.on_success, recorder.on_failure)
            )
            http.close()

        first = http.get("https://api.example.com/items", Item, on_success, recorder.on_failure)
        assert first.wait(WAIT)
        assert len(follow_ups) == 1
        assert follow_ups[0].wait(WAIT)
        assert recorder.total == 1
        assert recorder.failures == ["Call aborted: transport closed"]
        assert recorder.threads == ["netcall-transport"]


class TestUpload:
    def test_gzip_upload(self, make_helper, recorder):
        payload = b"line of log data\n" * 5000
        seen = []

        def handler(request):
            seen.append(request)
            return json_response({"id": 9, "name": "stored"})

        http = make_helper(handler)
        call = http.upload(
            "https://api.example.com/upload", payload, Item, recorder.on_success, recorder.on_failure
        )
        assert call.wait(WAIT)
        assert recorder.successes == [Item(9, "stored")]
        request = seen[0]
        assert request.method == "POST"
        assert request.headers["content-type"] == "application/octet-stream"
        assert request.headers["content-encoding"] == "gzip"
        assert gzip.decompress(request.content) == payload

    def test_uncompressed_multipart_upload(self, make_helper, recorder, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_bytes(b"hello upload")
        seen = []

        def handler(request):
            seen.append(request)
            return json_response({"id": 1, "name": "notes.txt"})

        http = make_helper(handler)
        call = http.upload(
            "https://api.example.com/upload",
            path,
            Item,
            recorder.on_success,
            recorder.on_failure,
            method="PUT",
            field_name="file",
            fields={"owner": "ops"},
            compress=False,
        )
        assert call.wait(WAIT)
        request = seen[0]
        assert request.method == "PUT"
        assert request.headers["content-type"].startswith("multipart/form-data; boundary=")
        assert b'name="owner"\r\n\r\nops\r\n' in request.content
        assert b'name="file"; filename="notes.txt"' in request.content
        assert b"hello upload" in request.content

    def test_body_failure_is_reported(self, make_helper, recorder):
        class Broken(Body):
            def iter_chunks(self):
                yield b"start"
                raise OSError("disk read failed")

        http = make_helper(lambda request: json_response({"id": 1, "name": "x"}))
        call = http.upload(
            "https://api.example.com/upload", Broken(), Item, recorder.on_success, recorder.on_failure
        )
        assert call.wait(WAIT)
        assert recorder.successes == []
        assert "disk read failed" in recorder.failures[0]

    def test_upload_parse_failure(self, make_helper, recorder):
        http = make_helper(lambda request: httpx.Response(200, content=b"stored!"))
        call = http.upload(
            "https://api.example.com/upload", FileBody(b"data"), Item, recorder.on_success, recorder.on_failure
        )
        assert call.wait(WAIT)
        assert recorder.failures[0].startswith("Failed to parse response:")

    def test_fields_without_field_name(self, make_helper, recorder):
        http = make_helper(lambda request: json_response({}))
        with pytest.raises(ValueError):
            http.upload(
                "https://api.example.com/upload",
                b"x",
                Item,
                recorder.on_success,
                recorder.on_failure,
                fields={"a": "b"},
            )


class TestContinuations:
    def test_exactly_once_over_many_trials(self, make_helper, recorder):
        counter = iter(range(1000))

        def handler(request):
            n = next(counter)
            if n % 3 == 0:
                raise httpx.ConnectError("refused")
            if n % 3 == 1:
                return httpx.Response(200)
            return json_response({"id": n, "name": "ok"})

        http = make_helper(handler)
        calls = [
            http.get("https://api.example.com/items", Item, recorder.on_success, recorder.on_failure)
            for _ in range(60)
        ]
        for call in calls:
            assert call.wait(WAIT)
        assert recorder.total == 60
        assert len(recorder.successes) == 20
        assert len(recorder.failures) == 40

    def test_continuation_runs_on_worker_after_submit_returns(self, make_helper, recorder):
        release = threading.Event()

        def handler(request):
            release.wait(WAIT)
            return json_response({"id": 1, "name": "late"})

        http = make_helper(handler)
        call = http.get("https://api.example.com/items", Item, recorder.on_success, recorder.on_failure)
        assert recorder.total == 0
        assert not call.done()
        release.set()
        assert call.wait(WAIT)
        assert recorder.threads == ["netcall-transport"]
        assert threading.current_thread().name != "netcall-transport"

    def test_failing_success_callback_does_not_trigger_failure(self, make_helper, recorder):
        def on_success(value):
            raise RuntimeError("callback bug")

        http = make_helper(lambda request: json_response({"id": 1, "name": "a"}))
        call = http.get("https://api.example.com/items", Item, on_success, recorder.on_failure)
        assert call.wait(WAIT)
        assert recorder.failures == []
        assert call.outcome.ok is True


class TestCall:
    def test_settles_once(self, recorder):
        call = Call(None, recorder.on_success, recorder.on_failure)
        assert call.succeed(1) is True
        assert call.fail(EmptyBodyError()) is False
        assert call.succeed(2) is False
        assert recorder.successes == [1]
        assert recorder.failures == []
        assert call.done()

    def test_wait_times_out(self, recorder):
        call = Call(None, recorder.on_success, recorder.on_failure)
        assert call.wait(0.01) is False
        assert call.outcome is None


class TestExecute:
    @pytest.mark.asyncio
    async def test_execute_raises_instead_of_calling_back(self):
        transport = Transport(http_transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        dispatcher = Dispatcher(transport, JsonCodec())
        request = build_request("GET", "https://api.example.com/items")
        try:
            with pytest.raises(EmptyBodyError):
                await dispatcher.execute(request, Item)
        finally:
            await transport._client.aclose()

    @pytest.mark.asyncio
    async def test_execute_returns_value(self):
        transport = Transport(
            http_transport=httpx.MockTransport(lambda request: json_response({"id": 5, "name": "e"}))
        )
        dispatcher = Dispatcher(transport, JsonCodec())
        request = build_request("GET", "https://api.example.com/items")
        try:
            assert await dispatcher.execute(request, Item) == Item(5, "e")
        finally:
            await transport._client.aclose()
