"""Post-install verification.

Checks that tools are reachable, configured and runnable, and that shell
integration is in place. Every check lands in a VerificationReport as a
pass, a failure or a warning; detail-only observations are recorded as info
and do not count towards the totals.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from terminal_ide.catalog import ToolSpec
from terminal_ide.commands import RealCommandRunner
from terminal_ide.filesystem import RealFileSystem
from terminal_ide.protocols import CommandRunner, FileSystem
from terminal_ide.settings import Settings
from terminal_ide.shellrc import STARSHIP_INIT_LINES, STARSHIP_MARKER

logger = logging.getLogger(__name__)

CheckStatus = Literal["pass", "fail", "warn", "info"]

CHECK_TIMEOUT = 30.0


@dataclass(frozen=True)
class CheckResult:
    """One verification check.

    Attributes:
        category: Check group ("installation", "configuration", ...).
        subject: Tool or feature being checked.
        status: Outcome.
        message: Human-readable outcome.
    """

    category: str
    subject: str
    status: CheckStatus
    message: str


@dataclass
class VerificationReport:
    """Aggregate of all checks from one verification run."""

    checks: list[CheckResult] = field(default_factory=list)

    def record(self, category: str, subject: str, status: CheckStatus, message: str) -> None:
        """Add a check result."""
        self.checks.append(CheckResult(category, subject, status, message))
        logger.debug("[%s] %s", status.upper(), message)

    def _count(self, status: CheckStatus) -> int:
        return sum(1 for c in self.checks if c.status == status)

    @property
    def passed(self) -> int:
        return self._count("pass")

    @property
    def failed(self) -> int:
        return self._count("fail")

    @property
    def warnings(self) -> int:
        return self._count("warn")

    @property
    def total(self) -> int:
        """Number of counted checks (info entries excluded)."""
        return self.passed + self.failed + self.warnings

    @property
    def success_rate(self) -> int:
        """Percentage of counted checks that passed, rounded down."""
        if self.total == 0:
            return 0
        return self.passed * 100 // self.total

    @property
    def ok(self) -> bool:
        """True if no check failed. Warnings do not fail verification."""
        return self.failed == 0


class Verifier:
    """Runs verification checks against the current environment.

    Follows Separate Use from Creation: constructor requires all dependencies.
    Use factory method `create()` for production instantiation with defaults.
    """

    def __init__(
        self,
        settings: Settings,
        runner: CommandRunner,
        filesystem: FileSystem,
        path_env: str = "",
    ) -> None:
        """Initialize the verifier.

        Args:
            settings: Run settings (install, config and rc locations).
            runner: Command runner used to locate and run tools.
            filesystem: Filesystem abstraction.
            path_env: Value of $PATH to check the install directory against.
        """
        self.settings = settings
        self.runner = runner
        self.fs = filesystem
        self.path_env = path_env

    @classmethod
    def create(
        cls,
        settings: Settings,
        runner: CommandRunner | None = None,
        filesystem: FileSystem | None = None,
        path_env: str | None = None,
    ) -> Verifier:
        """Factory method for production instantiation.

        Args:
            settings: Run settings.
            runner: Optional command runner (created if not provided).
            filesystem: Optional filesystem abstraction (created if not provided).
            path_env: PATH to check against. Defaults to the current $PATH.

        Returns:
            Configured Verifier instance.
        """
        return cls(
            settings=settings,
            runner=runner or RealCommandRunner(),
            filesystem=filesystem or RealFileSystem(),
            path_env=os.environ.get("PATH", "") if path_env is None else path_env,
        )

    def run(
        self,
        tools: list[ToolSpec],
        check_config: bool = True,
        check_functionality: bool = True,
        quick: bool = False,
    ) -> VerificationReport:
        """Verify a set of tools.

        Args:
            tools: Tools to verify, in report order.
            check_config: Check configuration files.
            check_functionality: Run each tool and run integration checks.
            quick: Installation checks only (implies no config or
                functionality checks).

        Returns:
            VerificationReport with every check.
        """
        if quick:
            check_config = False
            check_functionality = False

        report = VerificationReport()
        self.check_path(report)

        for tool in tools:
            binary = self.check_installation(tool, report)
            if check_config:
                self.check_configuration(tool, report)
            if check_functionality and binary is not None:
                self.check_functionality(tool, binary, report)

        self.check_shell_integration(report)
        if check_functionality:
            self.check_integrations(report)
        return report

    def find_binary(self, tool: ToolSpec) -> tuple[str | None, bool]:
        """Locate a tool's binary.

        Returns:
            (path, on_path). Path is None if no binary was found; on_path is
            False when the binary only exists in the install directory.
        """
        for binary in tool.binaries:
            found = self.runner.which(binary)
            if found:
                return found, True
        for binary in tool.binaries:
            local = self.settings.install_dir / binary
            if self.fs.exists(local):
                return str(local), False
        return None, False

    def _version(self, binary: str) -> str:
        result = self.runner.run([binary, "--version"], timeout=CHECK_TIMEOUT)
        lines = result.stdout.strip().splitlines()
        if result.ok and lines:
            return lines[0]
        return "unknown"

    def check_path(self, report: VerificationReport) -> None:
        """Check that the install directory is on PATH and in rc files."""
        install_dir = str(self.settings.install_dir)
        if install_dir in self.path_env.split(os.pathsep):
            report.record("path", "PATH", "pass", f"{install_dir} is in PATH")
        else:
            report.record(
                "path",
                "PATH",
                "warn",
                f"{install_dir} not found in PATH (may need to restart shell)",
            )

        configured = [
            rc
            for rc in self.settings.rc_files
            if self.fs.exists(rc) and install_dir in self.fs.read_text(rc)
        ]
        if configured:
            names = ", ".join(rc.name for rc in configured)
            report.record("path", "rc files", "info", f"PATH configured in {names}")
        else:
            report.record("path", "rc files", "warn", "PATH configuration not found in shell files")

    def check_installation(self, tool: ToolSpec, report: VerificationReport) -> str | None:
        """Check that a tool's binary can be found.

        Returns:
            Path of the binary, or None if missing.
        """
        binary, on_path = self.find_binary(tool)
        if binary is None:
            report.record("installation", tool.name, "fail", f"{tool.name} not found in PATH")
            return None

        name = Path(binary).name
        if on_path:
            report.record(
                "installation", tool.name, "pass", f"{tool.name} ({name}) installed at {binary}"
            )
        else:
            report.record(
                "installation",
                tool.name,
                "warn",
                f"{tool.name} ({name}) installed at {binary} but not on PATH",
            )
        report.record("installation", tool.name, "info", f"Version: {self._version(binary)}")
        return binary

    def check_configuration(self, tool: ToolSpec, report: VerificationReport) -> None:
        """Check a tool's main configuration file."""
        if tool.config_file is None:
            return
        config_file = self.settings.config_dir / tool.config_file

        if self.fs.exists(config_file):
            report.record("configuration", tool.name, "pass", f"{tool.name} configuration found")
            report.record("configuration", tool.name, "info", f"Config: {config_file}")
        elif tool.config_required:
            report.record(
                "configuration", tool.name, "fail", f"{tool.name} configuration not found"
            )
        else:
            report.record(
                "configuration",
                tool.name,
                "warn",
                f"{tool.name} configuration not found (will use defaults)",
            )

    def check_functionality(self, tool: ToolSpec, binary: str, report: VerificationReport) -> None:
        """Run a tool to check it works.

        Tools with check arguments must pass them. Other tools are tried with --help
        and then --version; failing both is only a warning.
        """
        if tool.check_args is not None:
            result = self.runner.run(
                [binary, *tool.check_args], input=tool.check_input, timeout=CHECK_TIMEOUT
            )
            if result.ok:
                report.record(
                    "functionality", tool.name, "pass", f"{tool.name} basic functionality works"
                )
            else:
                report.record(
                    "functionality",
                    tool.name,
                    "fail",
                    f"{tool.name} functionality test failed: {result.describe_failure()}",
                )
            return

        for flag in ("--help", "--version"):
            if self.runner.run([binary, flag], timeout=CHECK_TIMEOUT).ok:
                report.record(
                    "functionality", tool.name, "pass", f"{tool.name} basic functionality works"
                )
                return
        report.record(
            "functionality", tool.name, "warn", f"{tool.name} functionality test inconclusive"
        )

    def check_shell_integration(self, report: VerificationReport) -> None:
        """Check starship init lines and the fish configuration."""
        if self.runner.which("starship"):
            rc_files = [rc for rc in self.settings.rc_files if rc.name in STARSHIP_INIT_LINES]
            configured = [
                rc
                for rc in rc_files
                if self.fs.exists(rc) and STARSHIP_MARKER in self.fs.read_text(rc)
            ]
            if configured:
                report.record(
                    "shell", "starship", "pass", "Starship shell integration configured"
                )
            else:
                report.record("shell", "starship", "warn", "Starship shell integration not found")

        fish_config = self.settings.config_dir / "fish" / "config.fish"
        if self.runner.which("fish") and self.fs.exists(fish_config):
            report.record("shell", "fish", "pass", "Fish shell configuration found")

    def check_integrations(self, report: VerificationReport) -> None:
        """Check that tools meant to work together are set up together."""
        which = self.runner.which

        if which("hx") and which("lsp-ai"):
            languages = self.settings.config_dir / "helix" / "languages.toml"
            if self.fs.exists(languages) and "lsp-ai" in self.fs.read_text(languages):
                report.record(
                    "integration", "helix+lsp-ai", "pass", "Helix + LSP-AI integration configured"
                )
            else:
                report.record(
                    "integration",
                    "helix+lsp-ai",
                    "warn",
                    "Helix + LSP-AI integration not configured",
                )

        if which("eza") and which("bat") and which("rg"):
            report.record(
                "integration",
                "modern commands",
                "pass",
                "Modern command suite available (eza, bat, ripgrep)",
            )

        if which("gitui") and which("delta"):
            report.record(
                "integration", "git tools", "pass", "Git workflow tools available (gitui, delta)"
            )
