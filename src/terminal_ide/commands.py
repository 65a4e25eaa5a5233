"""External command execution for testability.

RealCommandRunner wraps subprocess and shutil.which and satisfies the
CommandRunner protocol structurally.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess

from terminal_ide.types import CommandResult

logger = logging.getLogger(__name__)

# Exit status reported when a program cannot be started
NOT_FOUND_STATUS = 127


class RealCommandRunner:
    """Production command runner."""

    def __init__(self, path: str | None = None) -> None:
        """Initialize the runner.

        Args:
            path: Search path override for `which`. Defaults to $PATH.
        """
        self.path = path

    def which(self, name: str) -> str | None:
        """Locate a program on PATH."""
        return shutil.which(name, path=self.path)

    def run(
        self,
        args: list[str],
        env: dict[str, str] | None = None,
        timeout: float | None = None,
        input: str | None = None,
    ) -> CommandResult:
        """Run a program and capture its output."""
        logger.debug("Running: %s", " ".join(args))
        full_env = {**os.environ, **env} if env else None
        try:
            completed = subprocess.run(
                args,
                input=input,
                stdin=subprocess.DEVNULL if input is None else None,
                capture_output=True,
                text=True,
                env=full_env,
                timeout=timeout,
                check=False,
            )
        except FileNotFoundError as e:
            return CommandResult(tuple(args), NOT_FOUND_STATUS, stderr=str(e))
        except subprocess.TimeoutExpired as e:
            return CommandResult(tuple(args), 124, stderr=f"timed out after {e.timeout}s")

        if completed.returncode != 0:
            logger.debug("Command failed (%d): %s", completed.returncode, completed.stderr.strip())
        return CommandResult(
            tuple(args), completed.returncode, completed.stdout or "", completed.stderr or ""
        )
