"""Installation strategies.

Each strategy kind from the catalog has one class here. A strategy either
installs the tool or raises; the resolver records the outcome and moves on
to the next strategy in the tool's chain.

Pattern: Strategy - one class per way of obtaining a tool, selected by the
catalog's ``kind`` field, so new kinds can be added without touching the
resolver.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from terminal_ide.catalog import StrategySpec, ToolSpec
from terminal_ide.install import BinaryInstaller
from terminal_ide.package_managers import PackageManagerBackend, PackageManagerError
from terminal_ide.platforms import ResolvedTarget
from terminal_ide.protocols import CommandRunner, Downloader, FileSystem, VersionOracle
from terminal_ide.releases import VersionLookupFailure

logger = logging.getLogger(__name__)

RUSTUP_URL = "https://sh.rustup.rs"
HOMEBREW_INSTALL_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"

# Where the Homebrew installer puts brew (Apple silicon, Intel)
HOMEBREW_LOCATIONS = (Path("/opt/homebrew/bin/brew"), Path("/usr/local/bin/brew"))


class StrategyError(Exception):
    """Strategy does not apply to this host or its external step failed."""

    pass


@dataclass
class StrategyEnvironment:
    """Services and host facts shared by all strategies during a run."""

    target: ResolvedTarget
    install_dir: Path
    config_dir: Path
    cargo_bin: Path
    binaries: BinaryInstaller
    oracle: VersionOracle
    packages: PackageManagerBackend
    runner: CommandRunner
    downloader: Downloader
    filesystem: FileSystem


class BaseStrategy(ABC):
    """Base class for strategies.

    Subclasses implement `install()`. The OS restriction check is shared.
    """

    kind: str

    def __init__(self, spec: StrategySpec) -> None:
        self.spec = spec

    @property
    def label(self) -> str:
        """Name used in logs and failure reports."""
        return self.kind

    def check_applicable(self, env: StrategyEnvironment) -> None:
        """Raise StrategyError if the strategy is restricted to other OSes."""
        if not self.spec.applies_to_os(env.target.os):
            allowed = ", ".join(self.spec.os or [])
            raise StrategyError(f"only used on {allowed}")

    @abstractmethod
    def install(self, tool: ToolSpec, env: StrategyEnvironment) -> list[Path]:
        """Install a tool.

        Args:
            tool: Tool being installed.
            env: Run environment.

        Returns:
            Paths placed in the install directory (may be empty when the
            tool lands elsewhere, e.g. via a package manager).

        Raises:
            StrategyError: Strategy does not apply or failed.
            FetchError: Download failed.
            ArchiveError: Archive could not be handled.
        """
        ...

    @abstractmethod
    def describe(self, tool: ToolSpec, target: ResolvedTarget) -> str:
        """One-line plan description for dry runs. No side effects."""
        ...


class PackageStrategy(BaseStrategy):
    """Install through the system package manager."""

    kind = "package"

    @property
    def label(self) -> str:
        if self.spec.managers:
            return f"package ({', '.join(self.spec.managers)})"
        return "package"

    def install(self, tool: ToolSpec, env: StrategyEnvironment) -> list[Path]:
        self.check_applicable(env)
        manager = env.packages.detect(env.target.os, self.spec.managers)
        if manager is None:
            wanted = ", ".join(self.spec.managers) if self.spec.managers else "any"
            raise StrategyError(f"no supported package manager found ({wanted})")

        package = self.spec.package_name(manager.name)
        logger.info("Installing %s with %s", package, manager.name)
        try:
            env.packages.install(manager, package)
        except PackageManagerError as e:
            raise StrategyError(f"{manager.name} install {package} failed: {e}") from e
        return []

    def describe(self, tool: ToolSpec, target: ResolvedTarget) -> str:
        return f"{self.label}: install {self.spec.package}"


class _DownloadStrategy(BaseStrategy):
    """Shared fetch-and-place logic for release and latest strategies."""

    def _template(self, target: ResolvedTarget) -> str:
        template = self.spec.url_template(target.key)
        if template is None:
            raise StrategyError(f"no prebuilt binary for {target.key}")
        return template

    def _binary_name(self, tool: ToolSpec) -> str:
        return self.spec.binary or tool.primary_binary

    def _fetch(self, url: str, tool: ToolSpec, env: StrategyEnvironment) -> list[Path]:
        name = self._binary_name(tool)
        if self.spec.archive == "binary":
            return [env.binaries.install_binary(url, name)]
        keep = {pattern: env.config_dir / dest for pattern, dest in self.spec.keep.items()}
        return [
            env.binaries.install_archive(
                url,
                name,
                keep=keep or None,
                allow_any_executable=self.spec.allow_any_executable,
            )
        ]


class ReleaseStrategy(_DownloadStrategy):
    """Versioned prebuilt release asset."""

    kind = "release"

    def _version(self, tool: ToolSpec, env: StrategyEnvironment) -> str:
        try:
            return env.oracle.latest_version(tool.repo or "")
        except VersionLookupFailure as e:
            if self.spec.fallback_version:
                logger.warning(
                    "%s; using known version %s", e, self.spec.fallback_version
                )
                return self.spec.fallback_version
            raise StrategyError(str(e)) from e

    def install(self, tool: ToolSpec, env: StrategyEnvironment) -> list[Path]:
        self.check_applicable(env)
        template = self._template(env.target)
        version = self._version(tool, env)
        url = template.format(version=version)
        logger.info("Installing %s %s from %s", tool.name, version, url)
        return self._fetch(url, tool, env)

    def describe(self, tool: ToolSpec, target: ResolvedTarget) -> str:
        template = self.spec.url_template(target.key)
        if template is None:
            return f"{self.label}: no prebuilt for {target.key}"
        return f"{self.label}: {template}"


class LatestStrategy(_DownloadStrategy):
    """Prebuilt asset via the releases/latest alias URL."""

    kind = "latest"

    def install(self, tool: ToolSpec, env: StrategyEnvironment) -> list[Path]:
        self.check_applicable(env)
        url = self._template(env.target)
        logger.info("Installing %s from %s", tool.name, url)
        return self._fetch(url, tool, env)

    def describe(self, tool: ToolSpec, target: ResolvedTarget) -> str:
        template = self.spec.url_template(target.key)
        return f"{self.label}: {template or f'no prebuilt for {target.key}'}"


def _run_script(
    url: str,
    args: list[str],
    env: StrategyEnvironment,
    shell: str = "sh",
    script_env: dict[str, str] | None = None,
) -> None:
    """Download a shell script and run it."""
    scratch = Path(tempfile.mkdtemp(prefix="terminal-ide-script-"))
    try:
        script = env.downloader.download(url, scratch / "install.sh")
        result = env.runner.run([shell, str(script), *args], env=script_env)
        if not result.ok:
            raise StrategyError(result.describe_failure())
    finally:
        shutil.rmtree(scratch, ignore_errors=True)


def install_homebrew(
    env: StrategyEnvironment, locations: tuple[Path, ...] | None = None
) -> Path:
    """Run the Homebrew installer unattended.

    Args:
        env: Strategy environment.
        locations: Candidate brew paths. Defaults to HOMEBREW_LOCATIONS.

    Returns:
        Path of the installed brew executable.

    Raises:
        StrategyError: If the installer fails or leaves no brew behind.
        FetchError: If the installer cannot be downloaded.
    """
    logger.info("Installing Homebrew")
    _run_script(
        HOMEBREW_INSTALL_URL, [], env, shell="/bin/bash", script_env={"NONINTERACTIVE": "1"}
    )
    for brew in locations or HOMEBREW_LOCATIONS:
        if env.filesystem.exists(brew):
            return brew
    raise StrategyError("Homebrew installation did not produce brew")


class CargoStrategy(BaseStrategy):
    """Build from source with cargo, installing Rust first if needed."""

    kind = "cargo"

    def _cargo(self, env: StrategyEnvironment) -> str:
        found = env.runner.which("cargo")
        if found:
            return found
        local = env.cargo_bin / "cargo"
        if env.filesystem.exists(local):
            return str(local)

        logger.info("Installing Rust toolchain")
        _run_script(RUSTUP_URL, ["-y", "--no-modify-path"], env)
        if not env.filesystem.exists(local):
            raise StrategyError("Rust installation did not produce cargo")
        return str(local)

    def install(self, tool: ToolSpec, env: StrategyEnvironment) -> list[Path]:
        self.check_applicable(env)
        cargo = self._cargo(env)

        args = [cargo, "install"]
        if self.spec.locked:
            args.append("--locked")
        args.extend(self.spec.crates)
        args.extend(self.spec.extra_args)

        logger.info("Building %s from source", ", ".join(self.spec.crates))
        result = env.runner.run(args)
        if not result.ok:
            raise StrategyError(result.describe_failure())

        linked = []
        for source_name, link_name in self.spec.links.items():
            source = env.cargo_bin / source_name
            if not env.filesystem.exists(source):
                logger.warning("cargo did not produce %s", source)
                continue
            env.filesystem.mkdir(env.install_dir, parents=True, exist_ok=True)
            link = env.install_dir / link_name
            env.filesystem.symlink(source, link)
            linked.append(link)
        return linked

    def describe(self, tool: ToolSpec, target: ResolvedTarget) -> str:
        locked = " --locked" if self.spec.locked else ""
        return f"{self.label}: cargo install{locked} {' '.join(self.spec.crates)}"


class ScriptStrategy(BaseStrategy):
    """Vendor install script."""

    kind = "script"

    def install(self, tool: ToolSpec, env: StrategyEnvironment) -> list[Path]:
        self.check_applicable(env)
        args = [a.format(install_dir=env.install_dir) for a in self.spec.args]
        logger.info("Running %s install script", tool.name)
        _run_script(self.spec.url or "", args, env)

        installed = env.install_dir / tool.primary_binary
        return [installed] if env.filesystem.exists(installed) else []

    def describe(self, tool: ToolSpec, target: ResolvedTarget) -> str:
        return f"{self.label}: sh <({self.spec.url})"


STRATEGY_TYPES: dict[str, type[BaseStrategy]] = {
    "package": PackageStrategy,
    "release": ReleaseStrategy,
    "latest": LatestStrategy,
    "cargo": CargoStrategy,
    "script": ScriptStrategy,
}


def build_strategy(spec: StrategySpec) -> BaseStrategy:
    """Create the strategy object for a catalog entry.

    Raises:
        ValueError: If the kind has no implementation.
    """
    strategy_type = STRATEGY_TYPES.get(spec.kind)
    if strategy_type is None:
        raise ValueError(f"Unknown strategy kind: {spec.kind}")
    return strategy_type(spec)
