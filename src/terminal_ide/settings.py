"""Run configuration: directories, timeouts and defaults."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

# Tools installed when --tools is not given, in installation order
DEFAULT_TOOLS = [
    "helix",
    "zellij",
    "lsp-ai",
    "gitui",
    "ruff",
    "btop",
    "yazi",
    "fish",
    "ripgrep",
    "bat",
    "hyperfine",
    "delta",
    "fd",
    "eza",
    "dust",
    "starship",
    "aider",
]

RC_FILE_NAMES = [".bashrc", ".zshrc", ".zprofile"]

ENV_INSTALL_DIR = "TERMINAL_IDE_INSTALL_DIR"
ENV_CONFIG_DIR = "TERMINAL_IDE_CONFIG_DIR"
ENV_GITHUB_TOKEN = "GITHUB_TOKEN"


class Settings(BaseModel):
    """Paths and knobs shared by install, uninstall and verify."""

    model_config = ConfigDict(frozen=True)

    home: Path
    install_dir: Path
    config_dir: Path
    cargo_home: Path
    download_timeout: float = 60.0
    api_timeout: float = 10.0
    github_token: str | None = None
    default_tools: list[str] = Field(default_factory=lambda: list(DEFAULT_TOOLS))

    @property
    def cargo_bin(self) -> Path:
        """Directory where cargo installs binaries."""
        return self.cargo_home / "bin"

    @property
    def rc_files(self) -> list[Path]:
        """Shell startup files that may carry PATH or init lines."""
        return [self.home / name for name in RC_FILE_NAMES]

    @property
    def zprofile(self) -> Path:
        """Login profile that carries Homebrew's shellenv line."""
        return self.home / ".zprofile"

    @property
    def rustup_home(self) -> Path:
        """Directory holding rustup toolchains."""
        return self.home / ".rustup"

    @classmethod
    def create(cls, home: Path, **overrides: object) -> Settings:
        """Create settings rooted at a home directory.

        Args:
            home: Home directory all default paths derive from.
            **overrides: Field values that replace the defaults.

        Returns:
            Configured Settings instance.
        """
        values: dict[str, object] = {
            "home": home,
            "install_dir": home / ".local" / "bin",
            "config_dir": home / ".config",
            "cargo_home": home / ".cargo",
        }
        values.update(overrides)
        return cls.model_validate(values)

    @classmethod
    def create_default(cls) -> Settings:
        """Create settings for the current user.

        Environment overrides: TERMINAL_IDE_INSTALL_DIR,
        TERMINAL_IDE_CONFIG_DIR, CARGO_HOME and GITHUB_TOKEN.
        """
        overrides: dict[str, object] = {}
        if os.environ.get(ENV_INSTALL_DIR):
            overrides["install_dir"] = Path(os.environ[ENV_INSTALL_DIR]).expanduser()
        if os.environ.get(ENV_CONFIG_DIR):
            overrides["config_dir"] = Path(os.environ[ENV_CONFIG_DIR]).expanduser()
        if os.environ.get("CARGO_HOME"):
            overrides["cargo_home"] = Path(os.environ["CARGO_HOME"]).expanduser()
        if os.environ.get(ENV_GITHUB_TOKEN):
            overrides["github_token"] = os.environ[ENV_GITHUB_TOKEN]
        return cls.create(Path.home(), **overrides)
