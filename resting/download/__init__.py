"""
Download Layer.

This package tracks in-flight downloads and the events transports report for them.
"""

from .coordinator import DownloadCoordinator, DownloadState, DownloadToken
from .events import DownloadEvent, DownloadFailed, DownloadFinished, DownloadProgress

__all__ = [
    "DownloadCoordinator",
    "DownloadEvent",
    "DownloadFailed",
    "DownloadFinished",
    "DownloadProgress",
    "DownloadState",
    "DownloadToken",
]
