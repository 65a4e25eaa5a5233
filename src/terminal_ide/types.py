"""Shared data types for terminal-ide."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

__all__ = ["CommandResult", "InstallResult", "RunSummary", "StrategyAttempt"]


@dataclass(frozen=True)
class CommandResult:
    """Outcome of an external command.

    Attributes:
        args: Program and arguments that were run.
        returncode: Exit status. 127 when the program could not be started.
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        """True if the command exited with status 0."""
        return self.returncode == 0

    def describe_failure(self) -> str:
        """Short human-readable failure reason."""
        detail = (self.stderr or self.stdout).strip().splitlines()
        tail = f": {detail[-1]}" if detail else ""
        return f"'{' '.join(self.args)}' exited with status {self.returncode}{tail}"


@dataclass(frozen=True)
class StrategyAttempt:
    """One strategy tried while installing a tool.

    Attributes:
        strategy: Strategy label, e.g. "release" or "package (brew)".
        success: True if this strategy installed the tool.
        error: Failure reason (None on success).
    """

    strategy: str
    success: bool
    error: str | None = None

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.success and self.error is not None:
            raise ValueError("success=True but error is set")
        if not self.success and not self.error:
            raise ValueError("success=False requires error message")


@dataclass
class InstallResult:
    """Result of installing one tool.

    Attributes:
        success: True if the tool is available after the run.
        tool: Tool name from the catalog.
        installed_paths: Binaries placed by this run (empty when skipped or
            installed by a package manager).
        error: Error message (None on success).
        attempts: Strategies tried, in order.
        skipped: True if the tool was already present and not reinstalled.
    """

    success: bool
    tool: str
    installed_paths: list[Path] = field(default_factory=list)
    error: str | None = None
    attempts: list[StrategyAttempt] = field(default_factory=list)
    skipped: bool = False

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.success and self.error is not None:
            raise ValueError("success=True but error is set")
        if not self.success and self.error is None:
            raise ValueError("success=False requires error message")
        if not self.tool:
            raise ValueError("tool cannot be empty")

    @property
    def strategy(self) -> str | None:
        """Label of the strategy that succeeded, if any."""
        for attempt in self.attempts:
            if attempt.success:
                return attempt.strategy
        return None


@dataclass
class RunSummary:
    """Aggregate of per-tool results for one run, in installation order."""

    results: list[InstallResult] = field(default_factory=list)

    def add(self, result: InstallResult) -> None:
        """Record a tool result."""
        self.results.append(result)

    @property
    def failed(self) -> list[str]:
        """Names of tools that failed."""
        return [r.tool for r in self.results if not r.success]

    @property
    def ok(self) -> bool:
        """True if every tool succeeded."""
        return not self.failed
