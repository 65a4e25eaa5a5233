"""Per-tool fallback escalation.

The resolver walks a tool's strategy chain in order and stops at the first
strategy that succeeds. A failing strategy never stops the run: its reason is
recorded and the next strategy is tried. A failing tool never stops its
siblings.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from terminal_ide.catalog import ToolCatalog, ToolSpec
from terminal_ide.commands import RealCommandRunner
from terminal_ide.fetch import Downloader
from terminal_ide.filesystem import RealFileSystem
from terminal_ide.install import BinaryInstaller
from terminal_ide.package_managers import BREW, PackageManagerBackend
from terminal_ide.platforms import ResolvedTarget
from terminal_ide.protocols import CommandRunner, FileSystem, VersionOracle
from terminal_ide.releases import GitHubReleases
from terminal_ide.settings import Settings
from terminal_ide.shellrc import ShellRcEditor
from terminal_ide.strategies import StrategyEnvironment, build_strategy, install_homebrew
from terminal_ide.types import InstallResult, RunSummary, StrategyAttempt

logger = logging.getLogger(__name__)


class Resolver:
    """Installs tools by trying their strategies in order.

    Follows Separate Use from Creation: constructor requires all dependencies.
    Use factory method `create()` for production instantiation with defaults.
    """

    def __init__(
        self,
        catalog: ToolCatalog,
        env: StrategyEnvironment,
        force: bool = False,
    ) -> None:
        """Initialize the resolver.

        Args:
            catalog: Tool catalog.
            env: Services and host facts passed to every strategy.
            force: Reinstall tools that are already present.
        """
        self.catalog = catalog
        self.env = env
        self.force = force

    @classmethod
    def create(
        cls,
        catalog: ToolCatalog,
        settings: Settings,
        target: ResolvedTarget,
        runner: CommandRunner | None = None,
        oracle: VersionOracle | None = None,
        filesystem: FileSystem | None = None,
        force: bool = False,
    ) -> Resolver:
        """Factory method for production instantiation.

        Args:
            catalog: Tool catalog.
            settings: Run settings.
            target: Resolved host target.
            runner: Optional command runner (created if not provided).
            oracle: Optional version oracle (created if not provided).
            filesystem: Optional filesystem abstraction (created if not provided).
            force: Reinstall tools that are already present.

        Returns:
            Configured Resolver instance.
        """
        runner = runner or RealCommandRunner()
        downloader = Downloader.create(timeout=settings.download_timeout)
        env = StrategyEnvironment(
            target=target,
            install_dir=settings.install_dir,
            config_dir=settings.config_dir,
            cargo_bin=settings.cargo_bin,
            binaries=BinaryInstaller.create(settings.install_dir, downloader),
            oracle=oracle
            or GitHubReleases.create(token=settings.github_token, timeout=settings.api_timeout),
            packages=PackageManagerBackend(runner),
            runner=runner,
            downloader=downloader,
            filesystem=filesystem or RealFileSystem(),
        )
        return cls(catalog=catalog, env=env, force=force)

    def find_existing(self, tool: ToolSpec) -> str | None:
        """Locate an existing installation of a tool.

        Returns:
            Path of the first binary found on PATH or in the install
            directory, or None.
        """
        for binary in tool.binaries:
            found = self.env.runner.which(binary)
            if found:
                return found
            local = self.env.install_dir / binary
            if self.env.filesystem.exists(local):
                return str(local)
        return None

    def confirm_installed(self, tool: ToolSpec, paths: list[Path]) -> str | None:
        """Check that a strategy left a usable binary behind.

        Package managers and install scripts can exit 0 without producing
        anything, so a strategy's own success is not enough.

        Returns:
            Path of the binary, or None if none is reachable.
        """
        for path in paths:
            if self.env.filesystem.exists(path):
                return str(path)
        found = self.find_existing(tool)
        if found:
            return found
        for binary in tool.binaries:
            built = self.env.cargo_bin / binary
            if self.env.filesystem.exists(built):
                return str(built)
        return None

    def install_tool(self, tool: ToolSpec) -> InstallResult:
        """Install one tool.

        Args:
            tool: Tool to install.

        Returns:
            InstallResult. On failure, ``attempts`` holds every strategy
            tried with its own reason.
        """
        if not self.force:
            existing = self.find_existing(tool)
            if existing:
                logger.info("%s already installed at %s", tool.name, existing)
                return InstallResult(success=True, tool=tool.name, skipped=True)

        attempts: list[StrategyAttempt] = []
        for spec in tool.strategies:
            strategy = build_strategy(spec)
            try:
                paths = strategy.install(tool, self.env)
            except Exception as e:
                logger.warning("%s: %s strategy failed: %s", tool.name, strategy.label, e)
                logger.debug("Strategy failure details", exc_info=True)
                attempts.append(
                    StrategyAttempt(strategy=strategy.label, success=False, error=str(e) or repr(e))
                )
                continue

            if self.confirm_installed(tool, paths) is None:
                error = f"reported success but no {tool.primary_binary} binary was found"
                logger.warning("%s: %s strategy %s", tool.name, strategy.label, error)
                attempts.append(
                    StrategyAttempt(strategy=strategy.label, success=False, error=error)
                )
                continue

            attempts.append(StrategyAttempt(strategy=strategy.label, success=True))
            logger.info("%s installed via %s", tool.name, strategy.label)
            return InstallResult(
                success=True,
                tool=tool.name,
                installed_paths=list(paths),
                attempts=attempts,
            )

        reasons = "; ".join(f"{a.strategy}: {a.error}" for a in attempts)
        return InstallResult(
            success=False,
            tool=tool.name,
            error=f"all strategies failed ({reasons})",
            attempts=attempts,
        )

    def install_all(
        self,
        names: list[str],
        on_start: Callable[[ToolSpec], None] | None = None,
    ) -> RunSummary:
        """Install tools sequentially in the given order.

        Args:
            names: Tool names.
            on_start: Called with each tool before it is installed.

        Raises:
            CatalogError: If any name is unknown. Raised before any work.
        """
        tools = self.catalog.select(names)
        summary = RunSummary()
        for tool in tools:
            if on_start is not None:
                on_start(tool)
            try:
                result = self.install_tool(tool)
            except Exception as e:
                logger.exception("Installation failed for %s", tool.name)
                result = InstallResult(success=False, tool=tool.name, error=str(e) or repr(e))
            summary.add(result)
        return summary

    def needs_homebrew(self, tools: list[ToolSpec]) -> bool:
        """Check whether Homebrew should be installed before these tools.

        True on macOS when brew is missing and some tool's chain has a
        package strategy that may use it.
        """
        if self.env.target.os != "macos" or self.env.runner.which(BREW.executable):
            return False
        return any(
            spec.kind == "package"
            and spec.applies_to_os("macos")
            and (spec.managers is None or BREW.name in spec.managers)
            for tool in tools
            for spec in tool.strategies
        )

    def bootstrap_homebrew(
        self,
        tools: list[ToolSpec],
        zprofile: Path,
        locations: tuple[Path, ...] | None = None,
    ) -> Path | None:
        """Install Homebrew when the selected tools can use it.

        The ``brew shellenv`` line is added to ``zprofile``, which is
        created if missing.

        Args:
            tools: Tools about to be installed.
            zprofile: Login shell profile that gets the shellenv line.
            locations: Candidate brew paths after installation.

        Returns:
            Path of the new brew executable, or None if nothing was done.

        Raises:
            StrategyError: If the Homebrew installer fails.
            FetchError: If the installer cannot be downloaded.
        """
        if not self.needs_homebrew(tools):
            return None

        brew = install_homebrew(self.env, locations)
        fs = self.env.filesystem
        if not fs.exists(zprofile):
            fs.write_text(zprofile, "")
        ShellRcEditor(fs).add_line(zprofile, f'eval "$({brew} shellenv)"', marker="brew shellenv")
        logger.info("Homebrew installed at %s", brew)
        return brew

    def plan(self, names: list[str]) -> list[tuple[ToolSpec, list[str]]]:
        """Describe what an install run would do, without side effects.

        Raises:
            CatalogError: If any name is unknown.
        """
        target = self.env.target
        return [
            (tool, [build_strategy(spec).describe(tool, target) for spec in tool.strategies])
            for tool in self.catalog.select(names)
        ]
