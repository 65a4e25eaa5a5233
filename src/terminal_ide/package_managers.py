"""System package manager backend (Homebrew, apt-get, dnf, pacman)."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from terminal_ide.protocols import CommandRunner

logger = logging.getLogger(__name__)


class PackageManagerError(Exception):
    """Package manager missing or command failed."""

    pass


@dataclass(frozen=True)
class PackageManager:
    """Command templates for one package manager.

    Attributes:
        name: Manager name as used in the catalog ("brew", "apt-get", ...).
        oses: Operating systems the manager is considered on.
        install: Install command; the package name is appended.
        uninstall: Uninstall command; the package name is appended.
        query: Command that succeeds if a package is installed.
        refresh: Optional index refresh run before installing.
        sudo_fallback: Retry with sudo when the plain command fails.
    """

    name: str
    oses: tuple[str, ...]
    install: tuple[str, ...]
    uninstall: tuple[str, ...]
    query: tuple[str, ...]
    refresh: tuple[str, ...] | None = None
    sudo_fallback: bool = False

    @property
    def executable(self) -> str:
        return self.install[0]


BREW = PackageManager(
    name="brew",
    oses=("macos", "linux"),
    install=("brew", "install"),
    uninstall=("brew", "uninstall"),
    query=("brew", "list"),
)
APT = PackageManager(
    name="apt-get",
    oses=("linux",),
    install=("apt-get", "install", "-y"),
    uninstall=("apt-get", "remove", "-y"),
    query=("dpkg", "-s"),
    refresh=("apt-get", "update"),
    sudo_fallback=True,
)
DNF = PackageManager(
    name="dnf",
    oses=("linux",),
    install=("dnf", "install", "-y"),
    uninstall=("dnf", "remove", "-y"),
    query=("rpm", "-q"),
    sudo_fallback=True,
)
PACMAN = PackageManager(
    name="pacman",
    oses=("linux",),
    install=("pacman", "-S", "--noconfirm"),
    uninstall=("pacman", "-R", "--noconfirm"),
    query=("pacman", "-Q"),
    sudo_fallback=True,
)

# Detection order per OS
PACKAGE_MANAGERS: tuple[PackageManager, ...] = (BREW, APT, DNF, PACMAN)


class PackageManagerBackend:
    """Runs package manager commands through a CommandRunner."""

    def __init__(
        self,
        runner: CommandRunner,
        managers: tuple[PackageManager, ...] = PACKAGE_MANAGERS,
    ) -> None:
        """Initialize the backend.

        Args:
            runner: Command runner used for detection and execution.
            managers: Candidate managers in detection order.
        """
        self.runner = runner
        self.managers = managers

    def detect(self, os_name: str, allowed: list[str] | None = None) -> PackageManager | None:
        """Find the first available package manager for an OS.

        Args:
            os_name: Target OS.
            allowed: Optional whitelist of manager names.

        Returns:
            The manager, or None if none is installed.
        """
        for manager in self.managers:
            if os_name not in manager.oses:
                continue
            if allowed is not None and manager.name not in allowed:
                continue
            if self.runner.which(manager.executable):
                return manager
        return None

    def install(self, manager: PackageManager, package: str) -> None:
        """Install a package.

        Raises:
            PackageManagerError: If installation fails, including the sudo retry.
        """
        if manager.refresh:
            self.runner.run(list(manager.refresh))

        result = self.runner.run([*manager.install, package])
        if result.ok:
            return

        if manager.sudo_fallback and self.runner.which("sudo"):
            logger.info("Retrying %s install of %s with sudo", manager.name, package)
            if manager.refresh:
                self.runner.run(["sudo", *manager.refresh])
            result = self.runner.run(["sudo", *manager.install, package])
            if result.ok:
                return

        raise PackageManagerError(result.describe_failure())

    def uninstall(self, manager: PackageManager, package: str) -> None:
        """Remove a package.

        Raises:
            PackageManagerError: If removal fails.
        """
        result = self.runner.run([*manager.uninstall, package])
        if not result.ok:
            raise PackageManagerError(result.describe_failure())

    def is_installed(self, manager: PackageManager, package: str) -> bool:
        """Check whether a package is installed."""
        return self.runner.run([*manager.query, package]).ok
