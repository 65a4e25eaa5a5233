"""Host platform detection.

Maps the running host onto the small closed set of targets that prebuilt
releases exist for. Anything outside that set is fatal for the whole run.
"""

from __future__ import annotations

import platform
from dataclasses import dataclass

__all__ = [
    "SUPPORTED_ARCHES",
    "SUPPORTED_OSES",
    "UNSUPPORTED",
    "ResolvedTarget",
    "UnsupportedPlatformError",
    "all_targets",
    "detect_arch",
    "detect_os",
    "resolve_target",
]

UNSUPPORTED = "unsupported"

SUPPORTED_OSES = ("linux", "macos")
SUPPORTED_ARCHES = ("x86_64", "aarch64")

_ARCH_ALIASES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "arm64": "aarch64",
    "aarch64": "aarch64",
}


class UnsupportedPlatformError(Exception):
    """Host operating system or architecture is not supported."""

    pass


@dataclass(frozen=True)
class ResolvedTarget:
    """The (os, arch) pair a run installs for.

    Attributes:
        os: Either "macos" or "linux".
        arch: Either "x86_64" or "aarch64".
    """

    os: str
    arch: str

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.os not in SUPPORTED_OSES:
            raise UnsupportedPlatformError(f"Unsupported operating system: {self.os}")
        if self.arch not in SUPPORTED_ARCHES:
            raise UnsupportedPlatformError(f"Unsupported architecture: {self.arch}")

    @property
    def key(self) -> str:
        """Catalog lookup key, e.g. ``linux-x86_64``."""
        return f"{self.os}-{self.arch}"

    def __str__(self) -> str:
        return f"{self.os} ({self.arch})"


def all_targets() -> list[ResolvedTarget]:
    """Return every supported target."""
    return [ResolvedTarget(os=o, arch=a) for o in SUPPORTED_OSES for a in SUPPORTED_ARCHES]


def detect_os(system: str | None = None) -> str:
    """Classify an operating system name.

    Args:
        system: Value as reported by ``uname -s``. Defaults to the host.

    Returns:
        "macos", "linux" or "unsupported".
    """
    system = platform.system() if system is None else system
    if system.startswith("Darwin"):
        return "macos"
    if system.startswith("Linux"):
        return "linux"
    return UNSUPPORTED


def detect_arch(machine: str | None = None) -> str:
    """Classify a machine architecture name.

    Args:
        machine: Value as reported by ``uname -m``. Defaults to the host.

    Returns:
        "x86_64", "aarch64" or "unsupported".
    """
    machine = platform.machine() if machine is None else machine
    return _ARCH_ALIASES.get(machine.lower(), UNSUPPORTED)


def resolve_target(system: str | None = None, machine: str | None = None) -> ResolvedTarget:
    """Resolve the host into a supported target.

    Args:
        system: Override for ``uname -s``.
        machine: Override for ``uname -m``.

    Returns:
        The resolved target.

    Raises:
        UnsupportedPlatformError: If either axis is outside the supported set.
    """
    os_name = detect_os(system)
    if os_name == UNSUPPORTED:
        raise UnsupportedPlatformError(
            f"Unsupported operating system: {system or platform.system()}"
        )
    arch = detect_arch(machine)
    if arch == UNSUPPORTED:
        raise UnsupportedPlatformError(
            f"Unsupported architecture: {machine or platform.machine()}"
        )
    return ResolvedTarget(os=os_name, arch=arch)
