"""Tool catalog: what can be installed and how.

Every tool is described as data. A tool lists its binaries and an ordered
chain of strategies; the resolver walks that chain until one succeeds. The
bundled catalog lives in ``data/tools.yaml``.
"""

from __future__ import annotations

from importlib import resources
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from terminal_ide.platforms import SUPPORTED_OSES, all_targets

StrategyKind = Literal["package", "release", "latest", "cargo", "script"]

TARGET_KEYS = frozenset(t.key for t in all_targets())


class CatalogError(Exception):
    """Invalid catalog file or unknown tool name."""

    pass


class StrategySpec(BaseModel):
    """One way of obtaining a tool.

    Which fields matter depends on ``kind``:

    - package: ``package``, ``packages`` (per-manager names), ``managers``
    - release / latest: ``urls``, ``fallback_version`` (release only),
      ``archive``, ``binary``, ``keep``, ``allow_any_executable``
    - cargo: ``crates``, ``locked``, ``extra_args``, ``links``
    - script: ``url``, ``args``
    """

    kind: StrategyKind
    os: list[str] | None = None

    package: str | None = None
    packages: dict[str, str] = Field(default_factory=dict)
    managers: list[str] | None = None

    urls: dict[str, str | None] = Field(default_factory=dict)
    fallback_version: str | None = None
    archive: Literal["auto", "binary"] = "auto"
    binary: str | None = None
    keep: dict[str, str] = Field(default_factory=dict)
    allow_any_executable: bool = True

    crates: list[str] = Field(default_factory=list)
    locked: bool = False
    extra_args: list[str] = Field(default_factory=list)
    links: dict[str, str] = Field(default_factory=dict)

    url: str | None = None
    args: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_kind_fields(self) -> StrategySpec:
        if self.os is not None:
            unknown = set(self.os) - set(SUPPORTED_OSES)
            if unknown:
                raise ValueError(f"unknown os restriction: {sorted(unknown)}")

        if self.kind == "package" and not self.package:
            raise ValueError("package strategy requires 'package'")

        if self.kind in ("release", "latest"):
            self._check_urls()

        if self.kind == "cargo" and not self.crates:
            raise ValueError("cargo strategy requires at least one crate")

        if self.kind == "script" and not self.url:
            raise ValueError("script strategy requires 'url'")

        return self

    def _check_urls(self) -> None:
        """Every target maps to a template or an explicit null."""
        missing = TARGET_KEYS - set(self.urls)
        if missing:
            raise ValueError(
                f"{self.kind} strategy has no url entry for {sorted(missing)}; "
                "use null for targets without a prebuilt"
            )
        extra = set(self.urls) - TARGET_KEYS
        if extra:
            raise ValueError(f"unknown target keys: {sorted(extra)}")
        for key, template in self.urls.items():
            if template is None:
                continue
            if not template.strip():
                raise ValueError(f"empty url for {key}")
            has_version = "{version}" in template
            if self.kind == "release" and not has_version:
                raise ValueError(f"release url for {key} lacks a {{version}} placeholder")
            if self.kind == "latest" and has_version:
                raise ValueError(f"latest url for {key} must not use {{version}}")

    def applies_to_os(self, os_name: str) -> bool:
        """Check the optional OS restriction."""
        return self.os is None or os_name in self.os

    def url_template(self, target_key: str) -> str | None:
        """URL template for a target, or None when there is no prebuilt."""
        return self.urls.get(target_key)

    def package_name(self, manager: str) -> str:
        """Package name for a given package manager."""
        return self.packages.get(manager, self.package or "")


class ToolSpec(BaseModel):
    """A named tool and the ordered strategies for installing it."""

    name: str
    description: str = ""
    binaries: list[str] = Field(min_length=1)
    repo: str | None = None
    strategies: list[StrategySpec] = Field(min_length=1)
    aliases: list[str] = Field(default_factory=list)
    config_paths: list[str] = Field(default_factory=list)
    config_file: str | None = None
    config_required: bool = False
    rc_markers: list[str] = Field(default_factory=list)
    # Strict functionality check; None means a lenient --help/--version check
    check_args: list[str] | None = None
    check_input: str | None = None

    @property
    def primary_binary(self) -> str:
        """Binary name used for placement and verification."""
        return self.binaries[0]

    @model_validator(mode="after")
    def _check_repo(self) -> ToolSpec:
        if any(s.kind == "release" for s in self.strategies) and not self.repo:
            raise ValueError(f"tool '{self.name}' has a release strategy but no repo")
        return self


class ToolCatalog(BaseModel):
    """All installable tools, keyed by name."""

    version: str = "1.0"
    tools: list[ToolSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_unique(self) -> ToolCatalog:
        seen: set[str] = set()
        for tool in self.tools:
            if tool.name in seen:
                raise ValueError(f"duplicate tool '{tool.name}'")
            seen.add(tool.name)
        return self

    def names(self) -> list[str]:
        """Tool names in catalog order."""
        return [t.name for t in self.tools]

    def get(self, name: str) -> ToolSpec:
        """Look up a tool.

        Raises:
            CatalogError: If the tool is unknown.
        """
        for tool in self.tools:
            if tool.name == name:
                return tool
        raise CatalogError(f"Unknown tool '{name}'. Known tools: {', '.join(self.names())}")

    def select(self, names: list[str]) -> list[ToolSpec]:
        """Resolve names to specs, keeping order and dropping duplicates.

        Raises:
            CatalogError: If any name is unknown.
        """
        unknown = [n for n in names if n not in self.names()]
        if unknown:
            raise CatalogError(
                f"Unknown tool(s): {', '.join(unknown)}. Known tools: {', '.join(self.names())}"
            )
        ordered = list(dict.fromkeys(names))
        return [self.get(n) for n in ordered]


def parse_tool_list(value: str | None, default: list[str]) -> list[str]:
    """Parse a comma-separated tool list, falling back to the defaults."""
    if not value:
        return list(default)
    return [t.strip() for t in value.split(",") if t.strip()]


def load_catalog(path: Path | None = None) -> ToolCatalog:
    """Load and validate a tool catalog.

    Args:
        path: YAML file. Defaults to the bundled catalog.

    Returns:
        Parsed ToolCatalog.

    Raises:
        CatalogError: If the file is missing or invalid.
    """
    try:
        if path is None:
            text = (resources.files("terminal_ide") / "data" / "tools.yaml").read_text()
        else:
            text = path.read_text()
        data = yaml.safe_load(text) or {}
        return ToolCatalog.model_validate(data)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        raise CatalogError(f"Invalid tool catalog: {e}") from e
