"""
Storage Layer.

This package handles the configuration file and the local file system where
finished downloads are kept.
"""

from .config_manager import ConfigManager
from .file_system import FileSystem, LocalFileSystem

__all__ = ["ConfigManager", "FileSystem", "LocalFileSystem"]
