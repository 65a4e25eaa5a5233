"""Tests for uninstall module."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from terminal_ide.catalog import ToolCatalog
from terminal_ide.platforms import ResolvedTarget
from terminal_ide.settings import Settings
from terminal_ide.uninstall import Uninstaller, UninstallOptions
from tests.conftest import FakeRunner

NOW = datetime(2024, 7, 1, 12, 30, 45)


def _snapshot(root: Path) -> dict[str, bytes | None]:
    """Relative path -> content (None for directories and links)."""
    tree: dict[str, bytes | None] = {}
    for path in sorted(root.rglob("*")):
        rel = str(path.relative_to(root))
        if path.is_symlink() or path.is_dir():
            tree[rel] = None
        else:
            tree[rel] = path.read_bytes()
    return tree


@pytest.fixture
def installed(settings: Settings) -> Settings:
    """Home with helix and starship installed and configured."""
    home = settings.home
    settings.install_dir.mkdir(parents=True)
    (settings.install_dir / "hx").write_text("hx")
    (settings.install_dir / "starship").write_text("starship")
    (settings.install_dir / "unrelated").write_text("keep")
    (settings.config_dir / "helix").mkdir(parents=True)
    (settings.config_dir / "helix" / "config.toml").write_text("theme = 'onedark'\n")
    (settings.config_dir / "starship.toml").write_text("format = '$all'\n")
    (home / ".bashrc").write_text(
        "alias ll='ls -l'\n"
        f'export PATH="{settings.install_dir}:$PATH"\n'
        'eval "$(starship init bash)"\n'
    )
    (home / ".zshrc").write_text("setopt autocd\n")
    return settings


def _uninstaller(
    settings: Settings, runner: FakeRunner | None = None, os_name: str = "linux"
) -> Uninstaller:
    target = ResolvedTarget(os_name, "x86_64")
    return Uninstaller.create(settings, target, runner=runner or FakeRunner())


class TestDryRun:
    """Tests for dry runs."""

    def test_no_mutation(self, installed: Settings, catalog: ToolCatalog) -> None:
        """Test a dry run plans removals without touching anything."""
        # Arrange
        before = _snapshot(installed.home)
        uninstaller = _uninstaller(installed)

        # Act
        report = uninstaller.run(
            catalog.select(["helix", "starship"]), UninstallOptions(dry_run=True), now=NOW
        )

        # Assert
        assert _snapshot(installed.home) == before
        assert report.removed == []
        assert report.backup_dir is None
        assert str(installed.install_dir / "hx") in report.planned
        assert str(installed.config_dir / "helix") in report.planned
        assert f"clean {installed.home / '.bashrc'}" in report.planned
        assert f"clean {installed.home / '.zshrc'}" not in report.planned

    def test_plans_homebrew_removal(self, installed: Settings, catalog: ToolCatalog) -> None:
        """Test brew packages are planned but not removed."""
        runner = FakeRunner({"brew": "/opt/homebrew/bin/brew"})
        uninstaller = _uninstaller(installed, runner, os_name="macos")

        report = uninstaller.run(
            catalog.select(["helix"]), UninstallOptions(dry_run=True, remove_homebrew=True)
        )

        assert "brew uninstall helix" in report.planned
        assert runner.calls == []


class TestUninstall:
    """Tests for real removal."""

    def test_removes_binaries_configs_and_rc_lines(
        self, installed: Settings, catalog: ToolCatalog
    ) -> None:
        """Test a full uninstall removes everything the tools own."""
        # Arrange
        uninstaller = _uninstaller(installed)

        # Act
        report = uninstaller.run(
            catalog.select(["helix", "starship"]), UninstallOptions(), now=NOW
        )

        # Assert
        assert report.ok
        assert not (installed.install_dir / "hx").exists()
        assert not (installed.install_dir / "starship").exists()
        assert (installed.install_dir / "unrelated").exists()
        assert not (installed.config_dir / "helix").exists()
        assert not (installed.config_dir / "starship.toml").exists()
        assert (installed.home / ".bashrc").read_text() == "alias ll='ls -l'\n"
        assert (installed.home / ".bashrc.bak").exists()
        assert (installed.home / ".zshrc").read_text() == "setopt autocd\n"
        assert not (installed.home / ".zshrc.bak").exists()

    def test_backup_written_first(self, installed: Settings, catalog: ToolCatalog) -> None:
        """Test configs and rc files are backed up to a timestamped directory."""
        report = _uninstaller(installed).run(
            catalog.select(["helix"]), UninstallOptions(), now=NOW
        )

        backup_dir = installed.home / ".terminal_ide_backup_20240701_123045"
        assert report.backup_dir == backup_dir
        assert (backup_dir / "helix" / "config.toml").read_text() == "theme = 'onedark'\n"
        assert "starship init" in (backup_dir / ".bashrc").read_text()

    def test_no_backup(self, installed: Settings, catalog: ToolCatalog) -> None:
        """Test --no-backup skips the backup directory."""
        report = _uninstaller(installed).run(
            catalog.select(["helix"]), UninstallOptions(backup=False), now=NOW
        )

        assert report.backup_dir is None
        assert not list(installed.home.glob(".terminal_ide_backup_*"))

    def test_keep_config(self, installed: Settings, catalog: ToolCatalog) -> None:
        """Test --keep-config leaves configs but still backs up rc files."""
        # Act
        report = _uninstaller(installed).run(
            catalog.select(["helix"]), UninstallOptions(keep_config=True), now=NOW
        )

        # Assert
        assert (installed.config_dir / "helix" / "config.toml").exists()
        assert not (installed.install_dir / "hx").exists()
        backup_dir = installed.home / ".terminal_ide_backup_20240701_123045"
        assert report.backup_dir == backup_dir
        assert f"{installed.install_dir}:$PATH" in (backup_dir / ".bashrc").read_text()
        assert str(installed.install_dir) not in (installed.home / ".bashrc").read_text()

    def test_cargo_binaries_and_links(self, installed: Settings, catalog: ToolCatalog) -> None:
        """Test cargo-built binaries and their symlinks are removed."""
        installed.cargo_bin.mkdir(parents=True)
        (installed.cargo_bin / "hx").write_text("cargo hx")
        (installed.install_dir / "hx").unlink()
        (installed.install_dir / "hx").symlink_to(installed.cargo_bin / "hx")

        report = _uninstaller(installed).run(catalog.select(["helix"]), UninstallOptions())

        assert not (installed.cargo_bin / "hx").exists()
        assert not (installed.install_dir / "hx").is_symlink()
        assert str(installed.cargo_bin / "hx") in report.removed

    def test_aliases_removed(self, settings: Settings, catalog: ToolCatalog) -> None:
        """Test alias file names left by a tool are removed."""
        settings.install_dir.mkdir(parents=True)
        (settings.install_dir / "ripgrep").write_text("")

        _uninstaller(settings).run(catalog.select(["ripgrep"]), UninstallOptions())

        assert not (settings.install_dir / "ripgrep").exists()

    def test_remaining_reported(self, installed: Settings, catalog: ToolCatalog) -> None:
        """Test binaries still on PATH after removal are listed."""
        runner = FakeRunner({"hx": "/usr/bin/hx"})

        report = _uninstaller(installed, runner).run(catalog.select(["helix"]), UninstallOptions())

        assert report.remaining == ["hx"]


class TestHomebrew:
    """Tests for Homebrew package removal."""

    def test_removes_installed_packages(self, settings: Settings, catalog: ToolCatalog) -> None:
        """Test installed brew packages are uninstalled on macOS."""
        runner = FakeRunner({"brew": "/opt/homebrew/bin/brew"}, {("brew", "list", "zellij"): 1})
        uninstaller = _uninstaller(settings, runner, os_name="macos")

        report = uninstaller.run(
            catalog.select(["helix", "zellij"]), UninstallOptions(remove_homebrew=True)
        )

        assert ["brew", "uninstall", "helix"] in runner.calls
        assert ["brew", "uninstall", "zellij"] not in runner.calls
        assert "brew:helix" in report.removed

    def test_linux_skips_homebrew(self, settings: Settings, catalog: ToolCatalog) -> None:
        """Test Homebrew removal only happens on macOS."""
        runner = FakeRunner({"brew": "/home/linuxbrew/.linuxbrew/bin/brew"})

        _uninstaller(settings, runner).run(
            catalog.select(["helix"]), UninstallOptions(remove_homebrew=True)
        )

        assert runner.calls == []

    def test_failure_recorded(self, settings: Settings, catalog: ToolCatalog) -> None:
        """Test a failed brew uninstall is reported and the run continues."""
        runner = FakeRunner({"brew": "/opt/homebrew/bin/brew"}, {("brew", "uninstall"): 1})
        uninstaller = _uninstaller(settings, runner, os_name="macos")

        report = uninstaller.run(
            catalog.select(["helix", "zellij"]), UninstallOptions(remove_homebrew=True)
        )

        assert not report.ok
        assert len(report.errors) == 2
        assert ["brew", "uninstall", "zellij"] in runner.calls


class TestRustToolchain:
    """Tests for removing the rustup toolchain."""

    @pytest.fixture
    def rust_home(self, installed: Settings) -> Settings:
        installed.cargo_bin.mkdir(parents=True)
        (installed.cargo_bin / "rustup").write_text("")
        (installed.cargo_bin / "cargo").write_text("")
        (installed.rustup_home / "toolchains").mkdir(parents=True)
        return installed

    def test_removes_toolchain(self, rust_home: Settings) -> None:
        """Test rustup's uninstaller runs and both homes are removed."""
        # Arrange
        runner = FakeRunner()
        rustup = str(rust_home.cargo_bin / "rustup")

        # Act
        report = _uninstaller(rust_home, runner).run(
            [], UninstallOptions(remove_rust=True), now=NOW
        )

        # Assert
        assert report.ok
        assert runner.calls == [[rustup, "self", "uninstall", "-y"]]
        assert not rust_home.cargo_home.exists()
        assert not rust_home.rustup_home.exists()
        assert "rustup" in report.removed

    def test_rust_only_leaves_tools_and_rc_files(self, rust_home: Settings) -> None:
        """Test selecting only the toolchain keeps other tools and PATH lines."""
        bashrc = (rust_home.home / ".bashrc").read_text()

        _uninstaller(rust_home).run([], UninstallOptions(remove_rust=True), now=NOW)

        assert (rust_home.install_dir / "hx").exists()
        assert (rust_home.home / ".bashrc").read_text() == bashrc
        assert not (rust_home.home / ".bashrc.bak").exists()

    def test_dry_run(self, rust_home: Settings) -> None:
        """Test a dry run only plans the toolchain removal."""
        runner = FakeRunner({"rustup": "/usr/local/bin/rustup"})

        report = _uninstaller(rust_home, runner).run(
            [], UninstallOptions(remove_rust=True, dry_run=True)
        )

        assert runner.calls == []
        assert rust_home.cargo_home.exists()
        assert "rustup self uninstall -y" in report.planned
        assert str(rust_home.rustup_home) in report.planned

    def test_rustup_failure_still_removes_homes(self, rust_home: Settings) -> None:
        """Test a failing rustup uninstaller does not stop directory removal."""
        runner = FakeRunner(
            {"rustup": "/usr/local/bin/rustup"}, {("/usr/local/bin/rustup",): 1}
        )

        report = _uninstaller(rust_home, runner).run([], UninstallOptions(remove_rust=True))

        assert "rustup" not in report.removed
        assert not rust_home.cargo_home.exists()
        assert not rust_home.rustup_home.exists()

    def test_not_requested(self, rust_home: Settings, catalog: ToolCatalog) -> None:
        """Test the toolchain stays unless explicitly requested."""
        runner = FakeRunner()

        _uninstaller(rust_home, runner).run(catalog.select(["helix"]), UninstallOptions())

        assert runner.calls == []
        assert (rust_home.cargo_bin / "cargo").exists()
        assert rust_home.rustup_home.exists()
