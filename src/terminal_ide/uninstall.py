"""Removal of installed tools, their configuration and shell rc lines."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from terminal_ide.catalog import ToolSpec
from terminal_ide.commands import RealCommandRunner
from terminal_ide.configs import ConfigDeployer
from terminal_ide.filesystem import RealFileSystem
from terminal_ide.package_managers import BREW, PackageManagerBackend, PackageManagerError
from terminal_ide.platforms import ResolvedTarget
from terminal_ide.protocols import CommandRunner, FileSystem
from terminal_ide.settings import Settings
from terminal_ide.shellrc import ShellRcEditor

logger = logging.getLogger(__name__)

BACKUP_DIR_FORMAT = ".terminal_ide_backup_%Y%m%d_%H%M%S"

# Pseudo tool name selecting the rustup toolchain for removal
RUST_TOOLCHAIN = "rust"


@dataclass
class UninstallOptions:
    """Switches for one uninstall run.

    Attributes:
        keep_config: Leave configuration files in place.
        backup: Back up configuration and rc files before removing them.
        remove_homebrew: Also uninstall Homebrew packages (macOS only).
        remove_rust: Also uninstall rustup, ~/.cargo and ~/.rustup.
        dry_run: Report what would be removed without changing anything.
    """

    keep_config: bool = False
    backup: bool = True
    remove_homebrew: bool = False
    remove_rust: bool = False
    dry_run: bool = False


@dataclass
class UninstallReport:
    """What an uninstall run removed, or would remove in a dry run.

    Attributes:
        removed: Paths and packages removed.
        planned: Actions a dry run would have taken.
        backup_dir: Backup location, if a backup was written.
        remaining: Binaries still reachable on PATH after removal.
        errors: Removal steps that failed.
    """

    removed: list[str] = field(default_factory=list)
    planned: list[str] = field(default_factory=list)
    backup_dir: Path | None = None
    remaining: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _binary_names(tool: ToolSpec) -> list[str]:
    """Every file name a tool may have left behind, without duplicates."""
    names = list(tool.binaries) + list(tool.aliases)
    for spec in tool.strategies:
        names.extend(spec.links)
        names.extend(spec.links.values())
    return list(dict.fromkeys(names))


class Uninstaller:
    """Removes tools and their traces.

    Follows Separate Use from Creation: constructor requires all dependencies.
    Use factory method `create()` for production instantiation with defaults.
    """

    def __init__(
        self,
        settings: Settings,
        target: ResolvedTarget,
        runner: CommandRunner,
        filesystem: FileSystem,
        packages: PackageManagerBackend,
        configs: ConfigDeployer,
        rc_editor: ShellRcEditor,
    ) -> None:
        self.settings = settings
        self.target = target
        self.runner = runner
        self.fs = filesystem
        self.packages = packages
        self.configs = configs
        self.rc_editor = rc_editor

    @classmethod
    def create(
        cls,
        settings: Settings,
        target: ResolvedTarget,
        runner: CommandRunner | None = None,
        filesystem: FileSystem | None = None,
    ) -> Uninstaller:
        """Factory method for production instantiation."""
        runner = runner or RealCommandRunner()
        filesystem = filesystem or RealFileSystem()
        return cls(
            settings=settings,
            target=target,
            runner=runner,
            filesystem=filesystem,
            packages=PackageManagerBackend(runner),
            configs=ConfigDeployer(settings.config_dir, filesystem),
            rc_editor=ShellRcEditor(filesystem),
        )

    def backup_dir_for(self, now: datetime) -> Path:
        """Timestamped backup directory under the home directory."""
        return self.settings.home / now.strftime(BACKUP_DIR_FORMAT)

    def run(
        self,
        tools: list[ToolSpec],
        options: UninstallOptions,
        now: datetime | None = None,
    ) -> UninstallReport:
        """Uninstall tools.

        Args:
            tools: Tools to remove.
            options: Run switches.
            now: Timestamp for the backup directory name. Defaults to now.

        Returns:
            UninstallReport describing what happened.
        """
        report = UninstallReport()

        if options.backup and not options.dry_run:
            self.backup(tools, self.backup_dir_for(now or datetime.now()), report)

        if tools:
            self.remove_cargo_binaries(tools, options, report)
            if options.remove_homebrew:
                self.remove_homebrew_packages(tools, options, report)
            self.remove_local_binaries(tools, options, report)

            if options.keep_config:
                logger.info("Keeping configurations")
            else:
                self.remove_configurations(tools, options, report)

            self.cleanup_rc_files(tools, options, report)

        if options.remove_rust:
            self.remove_rust_toolchain(options, report)

        if not options.dry_run:
            report.remaining = self.find_remaining(tools)
            if report.remaining:
                logger.warning(
                    "Some tools are still accessible (possibly system-installed): %s",
                    ", ".join(report.remaining),
                )
        return report

    def _remove(self, path: Path, options: UninstallOptions, report: UninstallReport) -> None:
        if not self.fs.exists(path):
            return
        if options.dry_run:
            logger.info("Would remove: %s", path)
            report.planned.append(str(path))
            return
        try:
            if self.fs.is_dir(path):
                self.fs.rmtree(path)
            else:
                self.fs.unlink(path)
        except OSError as e:
            logger.warning("Could not remove %s: %s", path, e)
            report.errors.append(f"{path}: {e}")
            return
        logger.info("Removed %s", path)
        report.removed.append(str(path))

    def backup(self, tools: list[ToolSpec], backup_dir: Path, report: UninstallReport) -> None:
        """Copy tool configs and rc files into the backup directory."""
        saved = self.configs.backup(tools, backup_dir)
        for rc in self.settings.rc_files:
            if self.fs.exists(rc):
                self.fs.mkdir(backup_dir, parents=True, exist_ok=True)
                self.fs.copy(rc, backup_dir / rc.name)
                saved.append(backup_dir / rc.name)
        if saved:
            report.backup_dir = backup_dir
            logger.info("Configurations backed up to %s", backup_dir)

    def remove_cargo_binaries(
        self, tools: list[ToolSpec], options: UninstallOptions, report: UninstallReport
    ) -> None:
        """Remove cargo-built binaries and their links in the install directory."""
        if not self.fs.is_dir(self.settings.cargo_bin):
            return
        for tool in tools:
            for name in _binary_names(tool):
                self._remove(self.settings.cargo_bin / name, options, report)
                link = self.settings.install_dir / name
                if self.fs.is_symlink(link):
                    self._remove(link, options, report)

    def remove_homebrew_packages(
        self, tools: list[ToolSpec], options: UninstallOptions, report: UninstallReport
    ) -> None:
        """Uninstall Homebrew packages of tools (macOS only)."""
        if self.target.os != "macos" or not self.runner.which(BREW.executable):
            return

        for tool in tools:
            for spec in tool.strategies:
                if spec.kind != "package" or not spec.applies_to_os("macos"):
                    continue
                if spec.managers is not None and BREW.name not in spec.managers:
                    continue
                package = spec.package_name(BREW.name)
                if options.dry_run:
                    logger.info("Would run: brew uninstall %s", package)
                    report.planned.append(f"brew uninstall {package}")
                    continue
                if not self.packages.is_installed(BREW, package):
                    continue
                try:
                    self.packages.uninstall(BREW, package)
                except PackageManagerError as e:
                    logger.warning("Could not uninstall %s: %s", package, e)
                    report.errors.append(f"brew uninstall {package}: {e}")
                    continue
                logger.info("Removed %s via Homebrew", package)
                report.removed.append(f"brew:{package}")

    def remove_local_binaries(
        self, tools: list[ToolSpec], options: UninstallOptions, report: UninstallReport
    ) -> None:
        """Remove binaries and aliases from the install directory."""
        for tool in tools:
            for name in _binary_names(tool):
                self._remove(self.settings.install_dir / name, options, report)

    def remove_configurations(
        self, tools: list[ToolSpec], options: UninstallOptions, report: UninstallReport
    ) -> None:
        """Remove configuration paths owned by tools."""
        for tool in tools:
            for path in self.configs.existing_paths(tool):
                self._remove(path, options, report)

    def cleanup_rc_files(
        self, tools: list[ToolSpec], options: UninstallOptions, report: UninstallReport
    ) -> None:
        """Drop install-dir PATH lines and tool init lines from rc files."""
        markers = [str(self.settings.install_dir)]
        for tool in tools:
            markers.extend(tool.rc_markers)

        for rc in self.settings.rc_files:
            if options.dry_run:
                if any(self.rc_editor.has_marker(rc, m) for m in markers):
                    logger.info("Would clean: %s", rc)
                    report.planned.append(f"clean {rc}")
                continue
            if self.rc_editor.remove_lines(rc, markers):
                report.removed.append(f"rc:{rc}")

    def remove_rust_toolchain(self, options: UninstallOptions, report: UninstallReport) -> None:
        """Run rustup's own uninstaller, then remove the cargo and rustup homes."""
        rustup = self.runner.which("rustup")
        if rustup is None and self.fs.exists(self.settings.cargo_bin / "rustup"):
            rustup = str(self.settings.cargo_bin / "rustup")

        if rustup is None:
            logger.info("rustup not found")
        elif options.dry_run:
            logger.info("Would run: rustup self uninstall -y")
            report.planned.append("rustup self uninstall -y")
        else:
            result = self.runner.run([rustup, "self", "uninstall", "-y"])
            if result.ok:
                logger.info("Rust toolchain uninstalled")
                report.removed.append("rustup")
            else:
                logger.warning("rustup self uninstall failed: %s", result.describe_failure())

        for path in (self.settings.cargo_home, self.settings.rustup_home):
            self._remove(path, options, report)

    def find_remaining(self, tools: list[ToolSpec]) -> list[str]:
        """Binaries of the given tools that are still on PATH."""
        return [b for tool in tools for b in tool.binaries if self.runner.which(b)]
