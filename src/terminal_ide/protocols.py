"""Protocol definitions for core abstractions.

This module defines abstract interfaces (Protocols) for the services that
touch the outside world: the filesystem, external commands, downloads and
the version oracle. Designing to interfaces enables:
- Loose coupling between components
- Easy substitution of test doubles
- Clear contracts for implementations

All concrete implementations satisfy these protocols structurally (duck typing).
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from terminal_ide.types import CommandResult


@runtime_checkable
class Downloader(Protocol):
    """Protocol for fetching a URL to a local file."""

    def download(self, url: str, dest: Path) -> Path:
        """Download a URL to a file.

        Args:
            url: URL to fetch.
            dest: Destination file path.

        Returns:
            The destination path.

        Raises:
            FetchError: On any failure. No retry is attempted.
        """
        ...


@runtime_checkable
class VersionOracle(Protocol):
    """Protocol for looking up the latest release of an upstream project."""

    def latest_version(self, repo: str) -> str:
        """Get the latest version of a project.

        Args:
            repo: Project in owner/repo form.

        Returns:
            Version string without a leading "v".

        Raises:
            VersionLookupFailure: If the version cannot be determined.
        """
        ...


@runtime_checkable
class CommandRunner(Protocol):
    """Protocol for running external programs.

    Abstracts subprocess access so package managers, cargo and install
    scripts can be exercised in tests without touching the host.
    """

    def which(self, name: str) -> str | None:
        """Locate a program on PATH.

        Args:
            name: Program name.

        Returns:
            Absolute path, or None if not found.
        """
        ...

    def run(
        self,
        args: list[str],
        env: dict[str, str] | None = None,
        timeout: float | None = None,
        input: str | None = None,
    ) -> CommandResult:
        """Run a program and capture its output.

        Args:
            args: Program and arguments.
            env: Extra environment variables.
            timeout: Optional timeout in seconds.
            input: Text fed to standard input.

        Returns:
            CommandResult with exit code and captured output. A program that
            cannot be started yields a non-zero result rather than raising.
        """
        ...


@runtime_checkable
class FileSystem(Protocol):
    """Protocol for filesystem operations.

    Abstracts filesystem access to enable testing without real I/O.
    """

    def read_text(self, path: Path) -> str:
        """Read text content from a file."""
        ...

    def write_text(self, path: Path, content: str) -> None:
        """Write text content to a file."""
        ...

    def exists(self, path: Path) -> bool:
        """Check if a path exists (symlinks count, even dangling ones)."""
        ...

    def is_dir(self, path: Path) -> bool:
        """Check if a path is a directory."""
        ...

    def is_symlink(self, path: Path) -> bool:
        """Check if a path is a symbolic link."""
        ...

    def mkdir(self, path: Path, parents: bool = False, exist_ok: bool = False) -> None:
        """Create a directory."""
        ...

    def unlink(self, path: Path) -> None:
        """Remove a file or symlink."""
        ...

    def rmtree(self, path: Path) -> None:
        """Remove a directory tree."""
        ...

    def copy(self, src: Path, dst: Path) -> None:
        """Copy a single file."""
        ...

    def copytree(self, src: Path, dst: Path) -> None:
        """Copy a directory tree, merging into an existing destination."""
        ...

    def symlink(self, target: Path, link: Path) -> None:
        """Create or replace a symbolic link."""
        ...
