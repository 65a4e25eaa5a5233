"""Application context for dependency injection.

This module separates object creation from object use, enabling testability
and reducing coupling in CLI commands.

Dependencies are typed using Protocols (abstract interfaces) rather than
concrete implementations, so tests can inject fakes without inheritance.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from terminal_ide.catalog import ToolCatalog
from terminal_ide.configs import ConfigDeployer
from terminal_ide.platforms import ResolvedTarget, resolve_target
from terminal_ide.protocols import CommandRunner, FileSystem, VersionOracle
from terminal_ide.resolver import Resolver
from terminal_ide.settings import Settings
from terminal_ide.shellrc import ShellRcEditor
from terminal_ide.uninstall import Uninstaller
from terminal_ide.verify import Verifier


def _default_filesystem() -> FileSystem:
    """Create the default filesystem implementation."""
    from terminal_ide.filesystem import RealFileSystem
    return RealFileSystem()


@dataclass
class AppContext:
    """Container for application dependencies.

    Provides a single injection point for all services used by CLI commands.
    Services that depend on the host target are built per command through
    the ``make_*`` methods, after the target has been resolved.
    """

    settings: Settings
    catalog: ToolCatalog
    runner: CommandRunner
    oracle: VersionOracle
    filesystem: FileSystem = field(default_factory=_default_filesystem)
    detect_target: Callable[[], ResolvedTarget] = resolve_target
    path_env: str = ""

    def make_resolver(self, target: ResolvedTarget, force: bool = False) -> Resolver:
        return Resolver.create(
            catalog=self.catalog,
            settings=self.settings,
            target=target,
            runner=self.runner,
            oracle=self.oracle,
            filesystem=self.filesystem,
            force=force,
        )

    def make_uninstaller(self, target: ResolvedTarget) -> Uninstaller:
        return Uninstaller.create(
            settings=self.settings,
            target=target,
            runner=self.runner,
            filesystem=self.filesystem,
        )

    def make_verifier(self) -> Verifier:
        return Verifier.create(
            settings=self.settings,
            runner=self.runner,
            filesystem=self.filesystem,
            path_env=self.path_env,
        )

    def make_configs(self) -> ConfigDeployer:
        return ConfigDeployer.create(self.settings.config_dir, self.filesystem)

    def make_rc_editor(self) -> ShellRcEditor:
        return ShellRcEditor.create(self.filesystem)


def create_context(
    home: Path | None = None,
    catalog_path: Path | None = None,
) -> AppContext:
    """Factory for application dependencies.

    Creates all services with proper wiring. Use this in production code.
    For tests, construct AppContext directly with test doubles.

    Args:
        home: Override home directory (for testing).
        catalog_path: Alternative tool catalog file.

    Returns:
        Configured AppContext with all dependencies.

    Raises:
        CatalogError: If the tool catalog is invalid.
    """
    import os

    from terminal_ide.catalog import load_catalog
    from terminal_ide.commands import RealCommandRunner
    from terminal_ide.filesystem import RealFileSystem
    from terminal_ide.releases import GitHubReleases

    settings = Settings.create(home) if home else Settings.create_default()
    return AppContext(
        settings=settings,
        catalog=load_catalog(catalog_path),
        runner=RealCommandRunner(),
        oracle=GitHubReleases.create(token=settings.github_token, timeout=settings.api_timeout),
        filesystem=RealFileSystem(),
        path_env=os.environ.get("PATH", ""),
    )
