"""
Shared fixtures: an in-memory transport and file system standing in for
aiohttp and the local disk.
"""

import asyncio
from pathlib import Path

import pytest

from resting.api.client import RestClient
from resting.download.events import DownloadFailed, DownloadFinished, DownloadProgress
from resting.exceptions import DownloadCancelledError
from resting.models.request import ResponseEnvelope


class FakeTransport:
    """
    Answers ``execute`` with a preset envelope and runs downloads as tasks that
    write ``download_chunks`` to a temp file, reporting the same events the
    aiohttp transport does.
    """

    def __init__(self, tmp_path: Path):
        self.tmp_path = tmp_path
        self.envelope = ResponseEnvelope(body=b"{}", status=200, headers={})
        self.error: Exception | None = None
        self.requests = []

        self.download_chunks = [b"T", b"e", b"xt"]
        self.total_expected: int | None = 4
        self.download_status: int | None = 200
        self.suggested_filename: str | None = "file.txt"
        self.download_error: Exception | None = None
        self.block = False
        self.release = asyncio.Event()
        self.tasks: list[asyncio.Task] = []
        self.cancelled = []
        self.temp_files: list[Path] = []
        self.closed = False

    async def execute(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.envelope

    async def execute_stream(self, request):
        yield await self.execute(request)

    def begin_download(self, request, sink):
        self.requests.append(request)
        task = asyncio.get_running_loop().create_task(self._run(sink))
        self.tasks.append(task)
        return task

    async def _run(self, sink):
        path = self.tmp_path / f"resting-{len(self.tasks)}.download"
        try:
            if self.block:
                await self.release.wait()
            if self.download_error is not None:
                raise self.download_error
            path.write_bytes(b"")
            self.temp_files.append(path)
            written = 0
            for chunk in self.download_chunks:
                with path.open("ab") as f:
                    f.write(chunk)
                written += len(chunk)
                await sink(DownloadProgress(written, self.total_expected))
                await asyncio.sleep(0)
        except asyncio.CancelledError:
            await sink(DownloadFailed(DownloadCancelledError()))
            raise
        except Exception as e:
            await sink(DownloadFailed(e))
            return
        await sink(
            DownloadFinished(
                location=path,
                status=self.download_status,
                headers={},
                suggested_filename=self.suggested_filename,
            )
        )

    def cancel(self, handle):
        self.cancelled.append(handle)
        if not handle.done():
            handle.get_loop().call_soon_threadsafe(handle.cancel)

    async def close(self):
        self.closed = True

    async def wait_downloads(self):
        if self.tasks:
            await asyncio.wait(self.tasks)


class FakeFileSystem:
    """Keeps files in a directory under ``tmp_path``; ``move_error`` makes moves fail."""

    def __init__(self, tmp_path: Path):
        self.directory = tmp_path / "kept"
        self.move_error: Exception | None = None
        self.moves = []

    def resolve_durable_directory(self) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        return self.directory

    async def move_file(self, src: Path, dst: Path) -> None:
        self.moves.append((src, dst))
        if self.move_error is not None:
            raise self.move_error
        src.replace(dst)


class CompletionRecorder:
    """Records ``on_complete``/``on_progress`` calls."""

    def __init__(self):
        self.completions = []
        self.fractions = []

    def on_complete(self, path, error):
        self.completions.append((path, error))

    def on_progress(self, fraction):
        self.fractions.append(fraction)


@pytest.fixture
def transport(tmp_path):
    return FakeTransport(tmp_path)


@pytest.fixture
def file_system(tmp_path):
    return FakeFileSystem(tmp_path)


@pytest.fixture
def recorder():
    return CompletionRecorder()


@pytest.fixture
def client(transport, file_system):
    return RestClient(transport=transport, file_system=file_system)
