"""Installer for a curated terminal development environment."""

__version__ = "0.1.0"

# Export protocol interfaces for type hints and dependency injection
from terminal_ide.protocols import (
    CommandRunner,
    Downloader,
    FileSystem,
    VersionOracle,
)

__all__ = [
    "__version__",
    "CommandRunner",
    "Downloader",
    "FileSystem",
    "VersionOracle",
]
