"""
Local file system access used to keep finished downloads.
"""

import asyncio
import logging
import os
import shutil
from pathlib import Path
from typing import Protocol, runtime_checkable

import aiofiles.os

log = logging.getLogger(__name__)


def get_data_dir() -> Path:
    """Platform location for files the library keeps on the user's behalf."""
    if os.name == "nt":
        base_dir = Path(os.getenv("LOCALAPPDATA", "~\\AppData\\Local"))
    else:
        base_dir = Path(os.getenv("XDG_DATA_HOME", "~/.local/share"))
    return base_dir.expanduser() / "resting" / "downloads"


@runtime_checkable
class FileSystem(Protocol):
    """What the download coordinator requires from the file system."""

    def resolve_durable_directory(self) -> Path: ...

    async def move_file(self, src: Path, dst: Path) -> None: ...


class LocalFileSystem:
    """Keeps downloads in a configured directory, or the platform data directory."""

    def __init__(self, base_directory: Path | None = None):
        self.base_directory = base_directory

    def resolve_durable_directory(self) -> Path:
        """
        Returns the directory downloads are moved into, creating it if needed.

        Raises:
            OSError: If the directory cannot be created.
        """
        directory = (self.base_directory or get_data_dir()).expanduser()
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    async def move_file(self, src: Path, dst: Path) -> None:
        """Moves ``src`` to ``dst``, replacing an existing file. Errors propagate."""
        await asyncio.to_thread(shutil.move, str(src), str(dst))
        log.debug(f"Moved '{src}' to '{dst}'")


async def discard_file(path: Path | None) -> None:
    """Removes a leftover temporary file, logging instead of raising on failure."""
    if path is None:
        return
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        log.warning(f"Could not remove temporary file '{path}': {e}")
