"""Release archive handling: classify, extract and locate binaries.

Release archives are not laid out uniformly. Some nest the binary in a
version-named directory, some ship a single bare binary, some carry helper
executables next to the real one. `locate_binary` copes with that using
three ordered passes:

1. exact file name match, executable
2. file name containing the desired name, executable
3. the first executable anywhere (heuristic for single-binary archives)

Pass 3 can pick the wrong file when an archive holds several unrelated
executables. It is logged as a heuristic choice whenever it is used.
"""

from __future__ import annotations

import logging
import stat
import tarfile
import zipfile
from pathlib import Path

logger = logging.getLogger(__name__)

# Suffix -> archive kind. Longest suffixes are matched first.
ARCHIVE_SUFFIXES = {
    ".tar.gz": "tar.gz",
    ".tgz": "tar.gz",
    ".tar.xz": "tar.xz",
    ".txz": "tar.xz",
    ".tar.bz2": "tar.bz2",
    ".tbz2": "tar.bz2",
    ".tbz": "tar.bz2",
    ".tar": "tar",
    ".zip": "zip",
}

_TAR_MODES = {
    "tar.gz": "r:gz",
    "tar.xz": "r:xz",
    "tar.bz2": "r:bz2",
    "tar": "r:",
}

# Locate passes, in the order they are tried
PASS_EXACT = "exact"
PASS_SUBSTRING = "substring"
PASS_ANY = "any-executable"


class ArchiveError(Exception):
    """Base class for archive handling errors."""

    pass


class UnsupportedFormatError(ArchiveError):
    """Archive suffix is not one we know how to extract."""

    pass


class BinaryNotFoundError(ArchiveError):
    """No suitable executable in the extracted tree."""

    pass


def classify(url_or_name: str) -> str:
    """Determine the archive kind from a URL or file name suffix.

    Content is never sniffed: an unknown suffix is an error.

    Args:
        url_or_name: Download URL or file name.

    Returns:
        One of "tar.gz", "tar.xz", "tar.bz2", "tar" or "zip".

    Raises:
        UnsupportedFormatError: If the suffix is not recognized.
    """
    name = url_or_name.split("?", 1)[0].split("#", 1)[0].lower()
    for suffix in sorted(ARCHIVE_SUFFIXES, key=len, reverse=True):
        if name.endswith(suffix):
            return ARCHIVE_SUFFIXES[suffix]
    raise UnsupportedFormatError(f"Unsupported archive format: {url_or_name}")


def extract(archive_path: Path, dest: Path, kind: str | None = None) -> Path:
    """Extract an archive into a directory.

    Args:
        archive_path: Archive file.
        dest: Target directory, created if missing.
        kind: Archive kind. Classified from the file name if omitted.

    Returns:
        The destination directory.

    Raises:
        UnsupportedFormatError: If the kind is unknown.
        ArchiveError: If the archive is corrupt.
    """
    kind = kind or classify(archive_path.name)
    dest.mkdir(parents=True, exist_ok=True)
    logger.debug("Extracting %s (%s) into %s", archive_path, kind, dest)

    try:
        if kind == "zip":
            _extract_zip(archive_path, dest)
        elif kind in _TAR_MODES:
            with tarfile.open(archive_path, mode=_TAR_MODES[kind]) as tar:
                tar.extractall(path=dest, filter="data")
        else:
            raise UnsupportedFormatError(f"Unsupported archive format: {kind}")
    except (tarfile.TarError, zipfile.BadZipFile, EOFError, OSError) as e:
        raise ArchiveError(f"Failed to extract {archive_path.name}: {e}") from e

    return dest


def _extract_zip(archive_path: Path, dest: Path) -> None:
    """Extract a zip file, restoring the Unix permission bits it stores.

    Symlink entries are skipped: zipfile would write them as regular files
    holding the link target.
    """
    with zipfile.ZipFile(archive_path) as zf:
        for info in zf.infolist():
            unix_mode = info.external_attr >> 16
            if stat.S_ISLNK(unix_mode):
                logger.debug("Skipping symlink entry %s", info.filename)
                continue
            extracted = Path(zf.extract(info, path=dest))
            mode = unix_mode & 0o777
            if mode and not info.is_dir():
                extracted.chmod(mode)


def is_executable(path: Path) -> bool:
    """Check for a regular file with any execute bit set."""
    try:
        st = path.lstat()
    except OSError:
        return False
    return stat.S_ISREG(st.st_mode) and bool(st.st_mode & 0o111)


def _candidate_files(root: Path) -> list[Path]:
    """Regular files under root in lexicographic order of relative path."""
    files = [p for p in root.rglob("*") if p.is_file() and not p.is_symlink()]
    return sorted(files, key=lambda p: p.relative_to(root).as_posix())


def locate_binary(
    root: Path,
    name: str,
    allow_any_executable: bool = True,
) -> tuple[Path, str]:
    """Find the executable for ``name`` in an extracted tree.

    Args:
        root: Extraction directory.
        name: Desired binary name.
        allow_any_executable: Enable the last-resort third pass.

    Returns:
        Tuple of (path, pass name).

    Raises:
        BinaryNotFoundError: If every enabled pass came up empty.
    """
    files = _candidate_files(root)
    executables = [p for p in files if is_executable(p)]

    for path in executables:
        if path.name == name:
            return path, PASS_EXACT

    for path in executables:
        if name in path.name:
            logger.debug("Using %s for %s (name contains match)", path.name, name)
            return path, PASS_SUBSTRING

    if allow_any_executable and executables:
        path = executables[0]
        logger.warning(
            "No executable named like '%s' in archive; guessing %s (first executable found)",
            name,
            path.relative_to(root).as_posix(),
        )
        return path, PASS_ANY

    sample = ", ".join(p.relative_to(root).as_posix() for p in files[:10]) or "empty archive"
    raise BinaryNotFoundError(f"Could not find executable '{name}' in archive ({sample})")
