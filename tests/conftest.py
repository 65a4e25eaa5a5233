"""Shared test fixtures."""

from __future__ import annotations

import io
import tarfile
import zipfile
from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from terminal_ide.catalog import ToolCatalog, load_catalog
from terminal_ide.platforms import ResolvedTarget
from terminal_ide.settings import Settings
from terminal_ide.types import CommandResult

# Outcome of a fake command: exit status, or a callable producing the result
Outcome = int | Callable[[list[str]], CommandResult]


class FakeRunner:
    """CommandRunner test double.

    Programs listed in ``programs`` are found by `which`. Commands are matched
    by argument prefix against ``results``; unmatched commands succeed.
    """

    def __init__(
        self,
        programs: dict[str, str] | None = None,
        results: dict[tuple[str, ...], Outcome] | None = None,
    ) -> None:
        self.programs = dict(programs or {})
        self.results = dict(results or {})
        self.calls: list[list[str]] = []
        self.inputs: list[str | None] = []

    def installs(self, prefix: tuple[str, ...], program: str, path: str) -> FakeRunner:
        """Make commands matching ``prefix`` put ``program`` on PATH."""

        def _run(args: list[str]) -> CommandResult:
            self.programs[program] = path
            return CommandResult(tuple(args), 0)

        self.results[prefix] = _run
        return self

    def which(self, name: str) -> str | None:
        return self.programs.get(name)

    def run(
        self,
        args: list[str],
        env: dict[str, str] | None = None,
        timeout: float | None = None,
        input: str | None = None,
    ) -> CommandResult:
        self.calls.append(list(args))
        self.inputs.append(input)
        for prefix, outcome in self.results.items():
            if tuple(args[: len(prefix)]) == prefix:
                if callable(outcome):
                    return outcome(list(args))
                stderr = "" if outcome == 0 else "command failed"
                return CommandResult(tuple(args), outcome, stderr=stderr)
        return CommandResult(tuple(args), 0)


@pytest.fixture
def temp_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Override home directory for testing."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home)
    return home


@pytest.fixture
def settings(temp_home: Path) -> Settings:
    """Settings rooted at a temporary home directory."""
    return Settings.create(temp_home)


@pytest.fixture
def fake_runner() -> FakeRunner:
    """Command runner that finds nothing and succeeds at everything."""
    return FakeRunner()


@pytest.fixture
def linux_target() -> ResolvedTarget:
    return ResolvedTarget("linux", "x86_64")


@pytest.fixture
def macos_target() -> ResolvedTarget:
    return ResolvedTarget("macos", "aarch64")


@pytest.fixture
def catalog() -> ToolCatalog:
    """The bundled tool catalog."""
    return load_catalog()


@pytest.fixture
def mock_oracle() -> MagicMock:
    """Version oracle returning a fixed version."""
    oracle = MagicMock()
    oracle.latest_version.return_value = "1.2.3"
    return oracle


# ============================================================================
# Mock FileSystem Fixture
# ============================================================================


@pytest.fixture
def mock_filesystem() -> MagicMock:
    """Create a mock FileSystem for testing.

    The mock tracks all filesystem operations without touching real files.
    """
    fs = MagicMock()
    fs.exists.return_value = False
    fs.is_dir.return_value = False
    fs.read_text.return_value = ""
    return fs


# ============================================================================
# Archive Fixtures
# ============================================================================

# Archive member spec: relative name -> (content, unix mode)
Members = dict[str, tuple[bytes, int]]


def _write_tar(path: Path, members: Members, mode: str) -> Path:
    with tarfile.open(path, mode) as tar:
        for name, (content, file_mode) in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = file_mode
            tar.addfile(info, io.BytesIO(content))
    return path


def _write_zip(path: Path, members: Members) -> Path:
    with zipfile.ZipFile(path, "w") as zf:
        for name, (content, file_mode) in members.items():
            info = zipfile.ZipInfo(name)
            info.external_attr = (0o100000 | file_mode) << 16
            zf.writestr(info, content)
    return path


@pytest.fixture
def make_archive(tmp_path: Path) -> Callable[[str, Members], Path]:
    """Build an archive of a given file name from member specs."""
    source = tmp_path / "archives"
    source.mkdir()

    def _make(name: str, members: Members) -> Path:
        path = source / name
        if name.endswith(".zip"):
            return _write_zip(path, members)
        if name.endswith((".tar.gz", ".tgz")):
            return _write_tar(path, members, "w:gz")
        if name.endswith((".tar.xz", ".txz")):
            return _write_tar(path, members, "w:xz")
        if name.endswith((".tar.bz2", ".tbz", ".tbz2")):
            return _write_tar(path, members, "w:bz2")
        return _write_tar(path, members, "w")

    return _make
