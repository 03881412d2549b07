"""
REST client: builds requests from configuration, runs them on a transport,
validates the HTTP status and decodes JSON.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from pathlib import Path
from typing import TypeVar

from resting.download.coordinator import (
    CompletionCallback,
    DownloadCoordinator,
    DownloadToken,
    ProgressCallback,
)
from resting.models.config import ClientConfiguration
from resting.models.request import RequestConfiguration
from resting.storage.file_system import FileSystem, LocalFileSystem

from .builder import build_request
from .transport import AiohttpTransport, Transport
from .validator import decode_json, validate_response

log = logging.getLogger(__name__)

T = TypeVar("T")


class RestClient:
    """
    Async client for JSON-over-HTTP APIs.

    Features:
    - Awaitable fetch, with optional JSON decoding into any pydantic-compatible type
    - Lazy single-value streams that report build and transport errors alike
    - Callback-driven file download with progress and cancellation
    - Awaitable file download on top of the same machinery

    Example:
        async with RestClient() as client:
            item = await client.fetch_decoded(
                RequestConfiguration("https://api.example.com/items/1"), Item
            )
    """

    def __init__(
        self,
        config: ClientConfiguration | None = None,
        transport: Transport | None = None,
        file_system: FileSystem | None = None,
    ):
        """
        Initializes the client.

        Args:
            config: Session, download and decoding settings.
            transport: HTTP engine; defaults to an aiohttp transport built from ``config``.
            file_system: Where finished downloads are kept; defaults to
                ``config.download_directory`` or the platform data directory.
        """
        self.config = config or ClientConfiguration()
        self._transport = transport or AiohttpTransport(self.config)
        self._file_system = file_system or LocalFileSystem(
            self.config.download_directory
        )
        self._coordinator = DownloadCoordinator(
            self._transport,
            self._file_system,
            dispatcher=self.config.callback_dispatcher,
        )

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def coordinator(self) -> DownloadCoordinator:
        return self._coordinator

    async def close(self) -> None:
        """Closes the underlying transport."""
        await self._transport.close()

    async def __aenter__(self) -> "RestClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # Async/await
    async def fetch(self, config: RequestConfiguration) -> bytes:
        """
        Fetches the raw body for ``config``.

        Raises:
            UrlMalformedError, WrongParameterTypeError: If the request cannot be built.
            StatusCodeError: If the status code is outside the 2xx range.
            UnknownError: If the response is not HTTP-shaped.
            aiohttp.ClientError: Transport failures, unchanged.
        """
        request = build_request(config)
        envelope = await self._transport.execute(request)
        return validate_response(envelope)

    async def fetch_decoded(self, config: RequestConfiguration, shape: type[T]) -> T:
        """Fetches ``config`` and decodes the JSON body into ``shape``."""
        data = await self.fetch(config)
        return decode_json(data, shape, strict=self.config.strict_decoding)

    # Streams
    def stream(self, config: RequestConfiguration) -> AsyncIterator[bytes]:
        """
        Returns a lazy stream that yields the validated body once, or raises.

        Nothing is sent until the stream is iterated, and errors from building
        the request surface on iteration exactly like transport errors.
        """
        return self._stream(config)

    async def _stream(self, config: RequestConfiguration) -> AsyncIterator[bytes]:
        request = build_request(config)
        async for envelope in self._transport.execute_stream(request):
            yield validate_response(envelope)

    def stream_decoded(
        self, config: RequestConfiguration, shape: type[T]
    ) -> AsyncIterator[T]:
        """``stream`` with every emitted body decoded into ``shape``."""
        return self._stream_decoded(config, shape)

    async def _stream_decoded(
        self, config: RequestConfiguration, shape: type[T]
    ) -> AsyncIterator[T]:
        async for data in self._stream(config):
            yield decode_json(data, shape, strict=self.config.strict_decoding)

    # Downloads
    def download(
        self,
        config: RequestConfiguration,
        on_complete: CompletionCallback,
        on_progress: ProgressCallback | None = None,
    ) -> DownloadToken | None:
        """
        Starts a download and returns immediately.

        ``on_progress`` receives the completed fraction (0.0 to 1.0) when the
        server reports a size. ``on_complete`` receives ``(path, None)`` on
        success or ``(None, error)`` on failure or cancellation. Must be called
        from a running event loop. Returns a token for ``cancel``, or None when
        the download was refused.
        """
        return self._coordinator.start(config, on_complete, on_progress)

    def cancel(self, token: DownloadToken | None = None) -> None:
        """Cancels the active download, or only the one ``token`` identifies."""
        self._coordinator.cancel(token)

    async def fetch_file(
        self,
        config: RequestConfiguration,
        on_progress: ProgressCallback | None = None,
    ) -> Path:
        """
        Downloads ``config`` and returns the final file location.

        Cancelling the awaiting task cancels the download.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Path] = loop.create_future()

        def settle(path: Path | None, error: BaseException | None) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(path)

        def on_complete(path: Path | None, error: BaseException | None) -> None:
            loop.call_soon_threadsafe(settle, path, error)

        token = self.download(config, on_complete, on_progress)
        try:
            return await future
        except asyncio.CancelledError:
            log.debug(f"Awaited download of '{config.url_string}' cancelled.")
            if token is not None:
                self.cancel(token)
            raise
