"""
Tests for AiohttpTransport against a local aiohttp test server.
"""

import asyncio
import contextlib
import gzip
import json

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from resting.api.builder import build_request
from resting.api.transport import AiohttpTransport, Transport
from resting.download.coordinator import DownloadCoordinator
from resting.download.events import DownloadFailed, DownloadFinished, DownloadProgress
from resting.exceptions import DownloadCancelledError
from resting.models.config import ClientConfiguration
from resting.models.request import HTTPEncoding, HTTPMethod, RequestConfiguration
from resting.storage.file_system import LocalFileSystem

COMPRESSED_BODY = b"x" * 200000


async def echo(request: web.Request) -> web.Response:
    return web.json_response(
        {
            "method": request.method,
            "query": dict(request.query),
            "content_type": request.headers.getall("Content-Type", []),
            "user_agent": request.headers.get("User-Agent"),
            "api_key": request.headers.get("X-Api-Key"),
            "body": (await request.read()).decode("utf-8"),
        }
    )


async def report(request: web.Request) -> web.Response:
    return web.Response(
        body=b"Text",
        headers={"Content-Disposition": 'attachment; filename="report.txt"'},
    )


async def missing(request: web.Request) -> web.Response:
    return web.Response(status=404, text="nothing here")


async def compressed(request: web.Request) -> web.Response:
    return web.Response(
        body=gzip.compress(COMPRESSED_BODY), headers={"Content-Encoding": "gzip"}
    )


def make_app(release: asyncio.Event) -> web.Application:
    async def slow(request: web.Request) -> web.StreamResponse:
        response = web.StreamResponse()
        await response.prepare(request)
        await response.write(b"first chunk")
        await release.wait()
        return response

    app = web.Application()
    app.router.add_route("*", "/echo", echo)
    app.router.add_get("/files/archive.bin", report)
    app.router.add_get("/missing", missing)
    app.router.add_get("/compressed.txt", compressed)
    app.router.add_get("/slow", slow)
    return app


@contextlib.asynccontextmanager
async def running_server():
    release = asyncio.Event()
    server = TestServer(make_app(release))
    await server.start_server()
    try:
        yield server
    finally:
        release.set()
        await server.close()


def request_for(server: TestServer, path: str, **kwargs):
    return build_request(RequestConfiguration(str(server.make_url(path)), **kwargs))


class EventCollector:
    def __init__(self):
        self.events = []

    async def __call__(self, event):
        self.events.append(event)


class TestExecute:
    @pytest.mark.asyncio
    async def test_get_with_query(self):
        transport = AiohttpTransport(ClientConfiguration(user_agent="tester/1.0"))
        async with running_server() as server:
            envelope = await transport.execute(
                request_for(server, "/echo", body={"q": "blue widgets"})
            )
            await transport.close()

        data = json.loads(envelope.body)
        assert envelope.status == 200
        assert envelope.headers["Content-Type"].startswith("application/json")
        assert data["method"] == "GET"
        assert data["query"] == {"q": "blue widgets"}
        assert data["user_agent"] == "tester/1.0"

    @pytest.mark.asyncio
    async def test_post_json_with_default_headers(self):
        transport = AiohttpTransport(
            ClientConfiguration(default_headers={"X-Api-Key": "secret"})
        )
        async with running_server() as server:
            envelope = await transport.execute(
                request_for(
                    server,
                    "/echo",
                    method=HTTPMethod.POST,
                    body={"name": "widget"},
                    encoding=HTTPEncoding.JSON,
                )
            )
            await transport.close()

        data = json.loads(envelope.body)
        assert data["method"] == "POST"
        assert data["content_type"] == ["application/json"]
        assert json.loads(data["body"]) == {"name": "widget"}
        assert data["api_key"] == "secret"

    @pytest.mark.asyncio
    async def test_error_status_is_returned_not_raised(self):
        transport = AiohttpTransport()
        async with running_server() as server:
            envelope = await transport.execute(request_for(server, "/missing"))
            await transport.close()

        assert envelope.status == 404
        assert envelope.body == b"nothing here"

    @pytest.mark.asyncio
    async def test_stream_yields_single_envelope(self):
        transport = AiohttpTransport()
        async with running_server() as server:
            envelopes = [
                envelope
                async for envelope in transport.execute_stream(
                    request_for(server, "/missing")
                )
            ]
            await transport.close()

        assert [e.status for e in envelopes] == [404]

    def test_satisfies_protocol(self):
        assert isinstance(AiohttpTransport(), Transport)


class TestDownload:
    @pytest.mark.asyncio
    async def test_writes_temp_file_and_reports_progress(self, tmp_path):
        transport = AiohttpTransport(temp_directory=tmp_path)
        sink = EventCollector()
        async with running_server() as server:
            handle = transport.begin_download(
                request_for(server, "/files/archive.bin"), sink
            )
            await handle
            await transport.close()

        *progress, finished = sink.events
        assert progress
        assert all(isinstance(event, DownloadProgress) for event in progress)
        assert progress[-1].bytes_written == 4
        assert progress[-1].fraction == 1.0
        assert isinstance(finished, DownloadFinished)
        assert finished.status == 200
        assert finished.suggested_filename == "report.txt"
        assert finished.location.parent == tmp_path
        assert finished.location.read_bytes() == b"Text"

    @pytest.mark.asyncio
    async def test_error_status_still_finishes(self, tmp_path):
        transport = AiohttpTransport(temp_directory=tmp_path)
        sink = EventCollector()
        async with running_server() as server:
            await transport.begin_download(request_for(server, "/missing"), sink)
            await transport.close()

        finished = sink.events[-1]
        assert isinstance(finished, DownloadFinished)
        assert finished.status == 404
        assert finished.suggested_filename == "missing"

    @pytest.mark.asyncio
    async def test_cancel_discards_temp_file(self, tmp_path):
        transport = AiohttpTransport(temp_directory=tmp_path)
        events = []
        handles = []

        async def sink(event):
            events.append(event)
            if isinstance(event, DownloadProgress):
                transport.cancel(handles[0])

        async with running_server() as server:
            handles.append(transport.begin_download(request_for(server, "/slow"), sink))
            with pytest.raises(asyncio.CancelledError):
                await handles[0]
            await transport.close()

        assert isinstance(events[0], DownloadProgress)
        assert events[0].fraction is None
        assert isinstance(events[-1], DownloadFailed)
        assert isinstance(events[-1].error, DownloadCancelledError)
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_connection_error_reported(self, tmp_path):
        transport = AiohttpTransport(temp_directory=tmp_path)
        sink = EventCollector()
        request = build_request(RequestConfiguration("http://127.0.0.1:1/unreachable"))

        await transport.begin_download(request, sink)
        await transport.close()

        assert len(sink.events) == 1
        assert isinstance(sink.events[0], DownloadFailed)
        assert isinstance(sink.events[0].error, OSError)

    @pytest.mark.asyncio
    async def test_encoded_body_reports_unknown_size(self, tmp_path):
        transport = AiohttpTransport(temp_directory=tmp_path)
        sink = EventCollector()
        async with running_server() as server:
            await transport.begin_download(request_for(server, "/compressed.txt"), sink)
            await transport.close()

        *progress, finished = sink.events
        assert progress
        assert all(event.total_expected is None for event in progress)
        assert all(event.fraction is None for event in progress)
        assert progress[-1].bytes_written == len(COMPRESSED_BODY)
        assert finished.location.read_bytes() == COMPRESSED_BODY


class TestCoordinatedDownload:
    @pytest.mark.asyncio
    async def test_compressed_download_never_exceeds_full_progress(self, tmp_path):
        temp_dir = tmp_path / "tmp"
        temp_dir.mkdir()
        transport = AiohttpTransport(temp_directory=temp_dir)
        coordinator = DownloadCoordinator(transport, LocalFileSystem(tmp_path / "kept"))
        fractions = []
        done = asyncio.get_running_loop().create_future()

        async with running_server() as server:
            coordinator.start(
                RequestConfiguration(str(server.make_url("/compressed.txt"))),
                lambda path, error: done.set_result((path, error)),
                fractions.append,
            )
            path, error = await asyncio.wait_for(done, timeout=10)
            await transport.close()

        assert error is None
        assert path.read_bytes() == COMPRESSED_BODY
        assert all(fraction <= 1.0 for fraction in fractions)

    @pytest.mark.asyncio
    async def test_cancel_from_another_thread(self, tmp_path):
        temp_dir = tmp_path / "tmp"
        temp_dir.mkdir()
        transport = AiohttpTransport(temp_directory=temp_dir)
        coordinator = DownloadCoordinator(transport, LocalFileSystem(tmp_path / "kept"))
        completions = []
        done = asyncio.get_running_loop().create_future()

        def on_complete(path, error):
            completions.append((path, error))
            if not done.done():
                done.set_result(None)

        async def wait_for_temp_file():
            while not any(temp_dir.iterdir()):
                await asyncio.sleep(0.01)

        async with running_server() as server:
            coordinator.start(
                RequestConfiguration(str(server.make_url("/slow"))), on_complete
            )
            await asyncio.wait_for(wait_for_temp_file(), timeout=10)
            await asyncio.to_thread(coordinator.cancel)
            await asyncio.wait_for(done, timeout=10)
            await asyncio.sleep(0.05)
            await transport.close()

        assert len(completions) == 1
        path, error = completions[0]
        assert path is None
        assert isinstance(error, DownloadCancelledError)
        assert list(temp_dir.iterdir()) == []
        assert not coordinator.is_active
