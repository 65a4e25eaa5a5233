"""Tests for commands module."""

from __future__ import annotations

import sys
from pathlib import Path

from terminal_ide.commands import NOT_FOUND_STATUS, RealCommandRunner
from terminal_ide.protocols import CommandRunner


class TestRealCommandRunner:
    """Tests for RealCommandRunner."""

    def test_satisfies_protocol(self) -> None:
        """Test RealCommandRunner satisfies the CommandRunner protocol."""
        assert isinstance(RealCommandRunner(), CommandRunner)

    def test_run_captures_output(self) -> None:
        """Test stdout and exit status are captured."""
        result = RealCommandRunner().run([sys.executable, "-c", "print('hello')"])

        assert result.ok
        assert result.stdout.strip() == "hello"
        assert result.args[-1] == "print('hello')"

    def test_run_nonzero(self) -> None:
        """Test a failing program reports its status and stderr."""
        result = RealCommandRunner().run(
            [sys.executable, "-c", "import sys; sys.stderr.write('bad'); sys.exit(3)"]
        )

        assert result.returncode == 3
        assert result.stderr == "bad"

    def test_missing_program(self) -> None:
        """Test a missing program yields a result instead of raising."""
        result = RealCommandRunner().run(["definitely-not-a-real-program-xyz"])

        assert result.returncode == NOT_FOUND_STATUS
        assert not result.ok

    def test_input_is_fed(self) -> None:
        """Test text input reaches the program."""
        result = RealCommandRunner().run(
            [sys.executable, "-c", "import sys; print(sys.stdin.read().upper())"], input="ok"
        )

        assert result.stdout.strip() == "OK"

    def test_env_is_merged(self) -> None:
        """Test extra environment variables are passed."""
        result = RealCommandRunner().run(
            [sys.executable, "-c", "import os; print(os.environ['TERMINAL_IDE_TEST'])"],
            env={"TERMINAL_IDE_TEST": "yes"},
        )

        assert result.stdout.strip() == "yes"

    def test_timeout(self) -> None:
        """Test a timed-out program yields a failed result."""
        result = RealCommandRunner().run(
            [sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2
        )

        assert result.returncode == 124
        assert "timed out" in result.stderr

    def test_which_uses_path_override(self, tmp_path: Path) -> None:
        """Test which searches the configured path."""
        program = tmp_path / "mytool"
        program.write_text("#!/bin/sh\n")
        program.chmod(0o755)

        runner = RealCommandRunner(path=str(tmp_path))

        assert runner.which("mytool") == str(program)
        assert runner.which("python-not-here") is None
