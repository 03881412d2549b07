"""
Events a transport reports while it runs a download.
"""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class DownloadProgress:
    """Bytes written so far; ``total_expected`` is None when the size is unknown."""

    bytes_written: int
    total_expected: int | None

    @property
    def fraction(self) -> float | None:
        if not self.total_expected or self.total_expected <= 0:
            return None
        return self.bytes_written / self.total_expected


@dataclass(frozen=True)
class DownloadFinished:
    """The body is fully written to a temporary file owned by the receiver."""

    location: Path
    status: int | None = 200
    headers: Mapping[str, str] = field(default_factory=dict)
    suggested_filename: str | None = None


@dataclass(frozen=True)
class DownloadFailed:
    """The download ended with an error, cancellation included."""

    error: BaseException


DownloadEvent = DownloadProgress | DownloadFinished | DownloadFailed

DownloadEventSink = Callable[[DownloadEvent], Awaitable[None]]
