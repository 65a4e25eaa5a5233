"""Deployment, backup and removal of tool configuration files.

Bundled configuration lives in the package's ``data/configs/`` tree, laid out
exactly as it should appear under the user's config directory. Each tool's
``config_paths`` name the entries it owns.
"""

from __future__ import annotations

import logging
from pathlib import Path

from terminal_ide.catalog import ToolSpec
from terminal_ide.filesystem import RealFileSystem
from terminal_ide.protocols import FileSystem

logger = logging.getLogger(__name__)

BUNDLED_CONFIGS = Path(__file__).parent / "data" / "configs"


class ConfigDeployer:
    """Copies bundled configs into place and manages existing ones."""

    def __init__(
        self,
        config_dir: Path,
        filesystem: FileSystem,
        source_dir: Path = BUNDLED_CONFIGS,
    ) -> None:
        """Initialize the deployer.

        Args:
            config_dir: User config directory (usually ~/.config).
            filesystem: Filesystem abstraction.
            source_dir: Tree of bundled configuration files.
        """
        self.config_dir = config_dir
        self.fs = filesystem
        self.source_dir = source_dir

    @classmethod
    def create(cls, config_dir: Path, filesystem: FileSystem | None = None) -> ConfigDeployer:
        return cls(config_dir=config_dir, filesystem=filesystem or RealFileSystem())

    def existing_paths(self, tool: ToolSpec) -> list[Path]:
        """Config paths owned by a tool that currently exist."""
        return [
            self.config_dir / rel
            for rel in tool.config_paths
            if self.fs.exists(self.config_dir / rel)
        ]

    def _copy(self, src: Path, dst: Path) -> None:
        self.fs.mkdir(dst.parent, parents=True, exist_ok=True)
        if self.fs.is_dir(src):
            self.fs.copytree(src, dst)
        else:
            self.fs.copy(src, dst)

    def deploy(self, tools: list[ToolSpec]) -> list[Path]:
        """Copy bundled configuration for the given tools.

        Existing files with the same name are overwritten; other files in a
        tool's config directory (e.g. helix runtime files) are kept.

        Returns:
            Deployed paths.
        """
        deployed = []
        for tool in tools:
            for rel in tool.config_paths:
                src = self.source_dir / rel
                if not self.fs.exists(src):
                    logger.debug("No bundled config %s for %s", rel, tool.name)
                    continue
                dst = self.config_dir / rel
                self._copy(src, dst)
                logger.info("Deployed %s configuration to %s", tool.name, dst)
                deployed.append(dst)
        return deployed

    def backup(self, tools: list[ToolSpec], backup_dir: Path) -> list[Path]:
        """Copy the existing config paths of tools into a backup directory.

        Returns:
            Paths created inside the backup directory.
        """
        saved = []
        for tool in tools:
            for path in self.existing_paths(tool):
                dst = backup_dir / path.relative_to(self.config_dir)
                self._copy(path, dst)
                logger.info("Backed up %s configuration", tool.name)
                saved.append(dst)
        return saved

