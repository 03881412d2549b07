"""
Tracks the lifecycle of a single in-flight download: callbacks, progress,
cancellation, and moving the finished file to a durable location.
"""

import asyncio
import functools
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from resting.api.builder import build_request
from resting.api.validator import validate_response
from resting.exceptions import DownloadCancelledError, DownloadInProgressError
from resting.models.request import RequestConfiguration, ResponseEnvelope
from resting.storage.file_system import FileSystem, discard_file

from .events import DownloadEvent, DownloadFailed, DownloadFinished, DownloadProgress

if TYPE_CHECKING:
    from resting.api.transport import Transport

log = logging.getLogger(__name__)

CompletionCallback = Callable[[Path | None, BaseException | None], None]
ProgressCallback = Callable[[float], None]


class DownloadState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


@dataclass
class _DownloadSession:
    on_complete: CompletionCallback
    on_progress: ProgressCallback | None
    handle: Any = None
    cancel_requested: bool = False


DownloadToken = _DownloadSession


class DownloadCoordinator:
    """
    Owns at most one active download.

    Session state is shared between the caller (``start``/``cancel``) and the
    transport delivering events, so every read and write goes through one lock.
    Callbacks always run outside the lock, in transport order, either directly
    or through ``dispatcher`` (for example ``loop.call_soon_threadsafe``).
    """

    def __init__(
        self,
        transport: "Transport",
        file_system: FileSystem,
        dispatcher: Callable[..., Any] | None = None,
    ):
        self._transport = transport
        self._file_system = file_system
        self._dispatcher = dispatcher
        self._lock = threading.Lock()
        self._session: _DownloadSession | None = None

    @property
    def state(self) -> DownloadState:
        with self._lock:
            return DownloadState.IDLE if self._session is None else DownloadState.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.state is DownloadState.ACTIVE

    def start(
        self,
        config: RequestConfiguration,
        on_complete: CompletionCallback,
        on_progress: ProgressCallback | None = None,
    ) -> DownloadToken | None:
        """
        Starts downloading ``config`` and returns immediately.

        Build failures and attempts to start while another download is active
        are reported through ``on_complete(None, error)`` right away; the active
        download, if any, is left untouched.

        Returns:
            A token identifying the started download, for ``cancel(token)``,
            or None when the download was refused.
        """
        try:
            request = build_request(config)
        except Exception as e:
            log.debug(f"Download request for '{config.url_string}' not built: {e}")
            self._deliver(on_complete, None, e)
            return None

        session = _DownloadSession(on_complete=on_complete, on_progress=on_progress)
        with self._lock:
            busy = self._session is not None
            if not busy:
                self._session = session
        if busy:
            self._deliver(on_complete, None, DownloadInProgressError())
            return None

        try:
            handle = self._transport.begin_download(
                request, functools.partial(self._handle_event, session)
            )
        except BaseException:
            self._take(session)
            raise

        with self._lock:
            if self._session is not session:
                return session
            session.handle = handle
            cancel_now = session.cancel_requested
        log.debug(f"Download of {request.url} started.")
        if cancel_now:
            self._transport.cancel(handle)
        return session

    def cancel(self, token: DownloadToken | None = None) -> None:
        """
        Asks the transport to cancel the active download; no effect when idle.

        With ``token``, only the download ``start`` returned it for is
        cancelled; a finished or refused download is left alone.

        The outcome arrives later through ``on_complete(None, DownloadCancelledError())``.
        """
        with self._lock:
            session = self._session
            if session is None or (token is not None and session is not token):
                return
            session.cancel_requested = True
            handle = session.handle
        if handle is not None:
            log.debug("Cancelling active download.")
            self._transport.cancel(handle)

    def _take(self, session: _DownloadSession) -> bool:
        """Clears ``session`` if it is still the active one."""
        with self._lock:
            if self._session is not session:
                return False
            self._session = None
            return True

    def _deliver(self, callback: Callable[..., Any], *args: Any) -> None:
        if self._dispatcher is not None:
            self._dispatcher(callback, *args)
        else:
            callback(*args)

    async def _handle_event(self, session: _DownloadSession, event: DownloadEvent) -> None:
        if isinstance(event, DownloadProgress):
            with self._lock:
                current = self._session is session
            fraction = event.fraction
            if current and fraction is not None and session.on_progress is not None:
                self._deliver(session.on_progress, fraction)
            return

        if not self._take(session):
            if isinstance(event, DownloadFailed):
                log.warning(f"Ignoring failure of a finished download: {event.error}")
            return

        if isinstance(event, DownloadFailed):
            self._deliver(session.on_complete, None, event.error)
            return

        try:
            location = await self._keep(event)
        except asyncio.CancelledError:
            self._deliver(session.on_complete, None, DownloadCancelledError())
            raise
        except Exception as e:
            log.debug(f"Could not keep downloaded file '{event.location}': {e}")
            self._deliver(session.on_complete, None, e)
            return
        self._deliver(session.on_complete, location, None)

    async def _keep(self, event: DownloadFinished) -> Path:
        """Validates the response status and moves the temp file into place."""
        try:
            validate_response(
                ResponseEnvelope(body=None, status=event.status, headers=event.headers)
            )
            directory = self._file_system.resolve_durable_directory()
            destination = directory / (event.suggested_filename or event.location.name)
            await self._file_system.move_file(event.location, destination)
        except BaseException:
            await discard_file(event.location)
            raise
        log.debug(f"Download saved to '{destination}'")
        return destination
