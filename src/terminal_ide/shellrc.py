"""Shell startup file edits: PATH exports and tool init lines.

Lines are matched by substring markers, so a line is only added when no
existing line carries its marker, and removal drops every line that does.
Files that do not exist are never created.
"""

from __future__ import annotations

import logging
from pathlib import Path

from terminal_ide.filesystem import RealFileSystem
from terminal_ide.protocols import FileSystem

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".bak"
STARSHIP_MARKER = "starship init"

# rc file name -> init line for the shell that reads it
STARSHIP_INIT_LINES = {
    ".bashrc": 'eval "$(starship init bash)"',
    ".zshrc": 'eval "$(starship init zsh)"',
}


def path_export_line(install_dir: Path) -> str:
    """Export line that puts the install directory first on PATH."""
    return f'export PATH="{install_dir}:$PATH"'


class ShellRcEditor:
    """Adds and removes marker-identified lines in shell rc files."""

    def __init__(self, filesystem: FileSystem) -> None:
        self.fs = filesystem

    @classmethod
    def create(cls, filesystem: FileSystem | None = None) -> ShellRcEditor:
        return cls(filesystem or RealFileSystem())

    def has_marker(self, rc: Path, marker: str) -> bool:
        """Check whether any line of an rc file contains a marker."""
        if not self.fs.exists(rc):
            return False
        return any(marker in line for line in self.fs.read_text(rc).splitlines())

    def add_line(self, rc: Path, line: str, marker: str | None = None) -> bool:
        """Append a line unless a line containing its marker already exists.

        Args:
            rc: Shell startup file.
            line: Line to append (without trailing newline).
            marker: Substring identifying the line. Defaults to the line.

        Returns:
            True if the file was changed. Missing files are skipped.
        """
        if not self.fs.exists(rc):
            logger.debug("Skipping missing rc file %s", rc)
            return False

        marker = marker or line
        content = self.fs.read_text(rc)
        if any(marker in existing for existing in content.splitlines()):
            return False

        if content and not content.endswith("\n"):
            # Keep the missing final newline so removal can restore the file
            self.fs.write_text(rc, f"{content}\n{line}")
        else:
            self.fs.write_text(rc, f"{content}{line}\n")
        logger.info("Added '%s' to %s", line, rc)
        return True

    def ensure_path_export(self, rc_files: list[Path], install_dir: Path) -> list[Path]:
        """Add the install directory PATH export to each existing rc file.

        Returns:
            The rc files that were changed.
        """
        line = path_export_line(install_dir)
        return [rc for rc in rc_files if self.add_line(rc, line, marker=str(install_dir))]

    def add_starship_init(self, rc_files: list[Path]) -> list[Path]:
        """Add starship init lines to bash and zsh rc files.

        Returns:
            The rc files that were changed.
        """
        changed = []
        for rc in rc_files:
            line = STARSHIP_INIT_LINES.get(rc.name)
            if line and self.add_line(rc, line, marker=STARSHIP_MARKER):
                changed.append(rc)
        return changed

    def remove_lines(
        self, rc: Path, markers: list[str], backup_suffix: str = BACKUP_SUFFIX
    ) -> bool:
        """Remove every line containing any of the markers.

        The pre-edit content is written to ``<rc><backup_suffix>`` first.
        Files without a matching line are left alone and get no backup.

        Returns:
            True if the file was changed.
        """
        if not self.fs.exists(rc) or not markers:
            return False

        original = self.fs.read_text(rc)
        lines = original.splitlines(keepends=True)
        kept = [line for line in lines if not any(m in line for m in markers)]
        if len(kept) == len(lines):
            return False

        content = "".join(kept)
        last_removed = any(m in lines[-1] for m in markers)
        if last_removed and not original.endswith("\n"):
            content = content.removesuffix("\n")

        self.fs.write_text(rc.with_name(rc.name + backup_suffix), original)
        self.fs.write_text(rc, content)
        logger.info("Removed %d line(s) from %s", len(lines) - len(kept), rc)
        return True
