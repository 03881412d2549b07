"""
The HTTP transport seam: a protocol describing what the client needs from an
HTTP engine, and the aiohttp-backed implementation used by default.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import aiofiles.tempfile
import aiohttp
from aiohttp import hdrs
from multidict import CIMultiDict
from pathvalidate import sanitize_filename

from resting.download.events import (
    DownloadEventSink,
    DownloadFailed,
    DownloadFinished,
    DownloadProgress,
)
from resting.exceptions import DownloadCancelledError
from resting.models.config import ClientConfiguration
from resting.models.request import BuiltRequest, ResponseEnvelope
from resting.storage.file_system import discard_file

log = logging.getLogger(__name__)


@runtime_checkable
class Transport(Protocol):
    """What ``RestClient`` requires from the underlying HTTP engine."""

    async def execute(self, request: BuiltRequest) -> ResponseEnvelope: ...

    def execute_stream(self, request: BuiltRequest) -> AsyncIterator[ResponseEnvelope]: ...

    def begin_download(self, request: BuiltRequest, sink: DownloadEventSink) -> Any: ...

    def cancel(self, handle: Any) -> None: ...

    async def close(self) -> None: ...


class AiohttpTransport:
    """
    Executes built requests on a lazily created aiohttp session.

    Downloads run as tasks on the calling event loop and stream the body into
    a temporary file, reporting progress through the event sink.
    """

    CHUNK_SIZE = 131072  # 128 KB

    def __init__(
        self,
        config: ClientConfiguration | None = None,
        temp_directory: Path | None = None,
    ):
        self.config = config or ClientConfiguration()
        self.temp_directory = temp_directory
        self._session: aiohttp.ClientSession | None = None

    def _initialize_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(limit=self.config.max_connections)
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={
                    "User-Agent": self.config.user_agent,
                    **self.config.default_headers,
                },
                timeout=aiohttp.ClientTimeout(
                    total=self.config.total_timeout,
                    connect=self.config.connect_timeout,
                    sock_read=self.config.read_timeout,
                ),
            )
            log.debug(f"Created session with limit={self.config.max_connections}")
        return self._session

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            log.debug("Transport session closed.")

    def _open(self, request: BuiltRequest):
        session = self._initialize_session()
        return session.request(
            request.method.value,
            request.url,
            headers=request.headers,
            data=request.body,
        )

    async def execute(self, request: BuiltRequest) -> ResponseEnvelope:
        start_time = time.monotonic()
        async with self._open(request) as r:
            body = await r.read()
            duration_ms = (time.monotonic() - start_time) * 1000
            log.debug(
                f"{request.method.value} {request.url} -> {r.status} "
                f"({len(body)} bytes, {duration_ms:.0f} ms)"
            )
            return ResponseEnvelope(
                body=body, status=r.status, headers=CIMultiDict(r.headers)
            )

    async def execute_stream(
        self, request: BuiltRequest
    ) -> AsyncIterator[ResponseEnvelope]:
        yield await self.execute(request)

    def begin_download(
        self, request: BuiltRequest, sink: DownloadEventSink
    ) -> asyncio.Task:
        """Starts a download task on the running loop and returns it as the handle."""
        loop = asyncio.get_running_loop()
        return loop.create_task(
            self._run_download(request, sink), name=f"download {request.url}"
        )

    def cancel(self, handle: asyncio.Task) -> None:
        """
        Requests cancellation of a download task; safe from any thread.

        The request queues behind the task's first step, so the download
        coroutine is always inside its error handling when it is cancelled.
        """
        if not handle.done():
            handle.get_loop().call_soon_threadsafe(handle.cancel)

    async def _run_download(
        self, request: BuiltRequest, sink: DownloadEventSink
    ) -> None:
        temp_path: Path | None = None
        try:
            async with self._open(request) as response:
                # Content-Length counts encoded bytes; iter_chunked yields decoded ones.
                total = (
                    None
                    if hdrs.CONTENT_ENCODING in response.headers
                    else response.content_length
                )
                async with aiofiles.tempfile.NamedTemporaryFile(
                    "wb",
                    prefix="resting-",
                    suffix=".download",
                    dir=self.temp_directory,
                    delete=False,
                ) as f:
                    temp_path = Path(f.name)
                    bytes_written = 0
                    async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                        await f.write(chunk)
                        bytes_written += len(chunk)
                        await sink(DownloadProgress(bytes_written, total))

                finished = DownloadFinished(
                    location=temp_path,
                    status=response.status,
                    headers=CIMultiDict(response.headers),
                    suggested_filename=_suggest_filename(response, request, temp_path),
                )
                log.debug(
                    f"Downloaded {bytes_written} bytes from {request.url} "
                    f"to '{temp_path}'"
                )
        except asyncio.CancelledError:
            await discard_file(temp_path)
            log.debug(f"Download of {request.url} cancelled.")
            await sink(DownloadFailed(DownloadCancelledError()))
            raise
        except Exception as e:
            await discard_file(temp_path)
            log.debug(f"Download of {request.url} failed: {e}")
            await sink(DownloadFailed(e))
            return

        await sink(finished)


def _suggest_filename(
    response: aiohttp.ClientResponse, request: BuiltRequest, temp_path: Path
) -> str:
    """Content-Disposition filename, else the last URL path segment, else the temp name."""
    disposition = response.content_disposition
    candidates = (
        disposition.filename if disposition else None,
        request.url.name,
        temp_path.name,
    )
    for candidate in candidates:
        safe_name = sanitize_filename(candidate or "")
        if safe_name and safe_name not in (".", ".."):
            return safe_name
    return temp_path.name

