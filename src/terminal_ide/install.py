"""Fetch, extract, locate and place tool binaries."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from terminal_ide.archive import classify, extract, locate_binary
from terminal_ide.fetch import Downloader
from terminal_ide.protocols import Downloader as DownloaderProtocol

logger = logging.getLogger(__name__)

_EXEC_BITS = 0o755


def _url_basename(url: str) -> str:
    """Last path segment of a URL, without query or fragment."""
    name = url.split("?", 1)[0].split("#", 1)[0].rstrip("/").rsplit("/", 1)[-1]
    return name or "download"


class BinaryInstaller:
    """Installs single executables into the install directory.

    Every call works inside its own scratch directory, which is removed
    whatever the outcome. A binary appears at its final path only once it
    has been located and made executable.
    """

    def __init__(
        self,
        install_dir: Path,
        downloader: DownloaderProtocol,
        scratch_root: Path | None = None,
    ) -> None:
        """Initialize the installer.

        Args:
            install_dir: Directory that receives final binaries.
            downloader: Download implementation.
            scratch_root: Parent for scratch directories. Defaults to the
                system temp dir.

        Note:
            Prefer the `create()` factory in production code.
        """
        self.install_dir = install_dir
        self.downloader = downloader
        self.scratch_root = scratch_root

    @classmethod
    def create(
        cls,
        install_dir: Path,
        downloader: DownloaderProtocol | None = None,
        scratch_root: Path | None = None,
    ) -> BinaryInstaller:
        """Factory method for production instantiation."""
        return cls(
            install_dir=install_dir,
            downloader=downloader or Downloader.create(),
            scratch_root=scratch_root,
        )

    def _scratch_dir(self, label: str) -> Path:
        if self.scratch_root is not None:
            self.scratch_root.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix=f"{label}-install-", dir=self.scratch_root))

    def install_archive(
        self,
        url: str,
        binary_name: str,
        allow_any_executable: bool = True,
        keep: dict[str, Path] | None = None,
    ) -> Path:
        """Download an archive and install the binary found inside.

        Args:
            url: Archive URL. The suffix selects the extractor.
            binary_name: Logical name; also the installed file name.
            allow_any_executable: Allow the last-resort locate pass.
            keep: Optional mapping of archive-relative glob patterns to
                destination directories. Matching directories are copied
                out before cleanup (e.g. helix's runtime tree).

        Returns:
            Path of the installed binary.

        Raises:
            FetchError: Download failed.
            UnsupportedFormatError: Unknown archive suffix.
            BinaryNotFoundError: No executable found.
        """
        kind = classify(url)
        scratch = self._scratch_dir(binary_name)
        try:
            archive_path = self.downloader.download(url, scratch / _url_basename(url))
            tree = extract(archive_path, scratch / "extracted", kind)
            located, how = locate_binary(tree, binary_name, allow_any_executable)
            logger.debug("Located %s via %s pass", located, how)
            if keep:
                self._copy_extras(tree, keep)
            return self._place(located, binary_name)
        finally:
            shutil.rmtree(scratch, ignore_errors=True)

    def install_binary(self, url: str, binary_name: str) -> Path:
        """Download a bare executable and install it.

        Args:
            url: URL of the executable.
            binary_name: Installed file name.

        Returns:
            Path of the installed binary.

        Raises:
            FetchError: Download failed.
        """
        scratch = self._scratch_dir(binary_name)
        try:
            downloaded = self.downloader.download(url, scratch / _url_basename(url))
            return self._place(downloaded, binary_name)
        finally:
            shutil.rmtree(scratch, ignore_errors=True)

    def _place(self, source: Path, binary_name: str) -> Path:
        """Move a file into the install directory and make it executable.

        The file is staged under a hidden sibling name and renamed into
        place, so a failure never leaves a half-installed binary.
        """
        self.install_dir.mkdir(parents=True, exist_ok=True)
        final = self.install_dir / binary_name
        staged = self.install_dir / f".{binary_name}.partial"
        try:
            shutil.move(str(source), staged)
            staged.chmod(_EXEC_BITS)
            os.replace(staged, final)
        except OSError:
            staged.unlink(missing_ok=True)
            raise
        logger.info("Binary installed: %s", final)
        return final

    def _copy_extras(self, tree: Path, keep: dict[str, Path]) -> None:
        """Copy auxiliary directories out of an extracted tree."""
        for pattern, target in keep.items():
            for match in sorted(tree.glob(pattern)):
                if not match.is_dir():
                    continue
                target.mkdir(parents=True, exist_ok=True)
                shutil.copytree(match, target, dirs_exist_ok=True)
                logger.info("Copied %s to %s", match.name, target)
