"""CLI commands using Typer."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Annotated

if TYPE_CHECKING:
    from terminal_ide.catalog import ToolSpec
    from terminal_ide.context import AppContext
    from terminal_ide.platforms import ResolvedTarget
    from terminal_ide.resolver import Resolver

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn

from terminal_ide import __version__
from terminal_ide.catalog import CatalogError, parse_tool_list
from terminal_ide.console import TerminalUI
from terminal_ide.context import create_context
from terminal_ide.fetch import FetchError
from terminal_ide.platforms import UnsupportedPlatformError
from terminal_ide.strategies import StrategyError
from terminal_ide.uninstall import RUST_TOOLCHAIN, UninstallOptions

app = typer.Typer(
    name="terminal-ide",
    help="Install, verify and remove a terminal development environment",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)

console = Console()
ui = TerminalUI(console)

STARSHIP = "starship"


def configure_logging(verbose: bool = False) -> None:
    """Route log records through rich. WARNING by default, DEBUG if verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"terminal-ide v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """Install, verify and remove a terminal development environment."""
    pass


def _select_tools(ctx: AppContext, names: list[str]) -> list[ToolSpec]:
    """Resolve tool names against the catalog.

    Raises:
        typer.Exit: If any tool name is unknown.
    """
    try:
        return ctx.catalog.select(names)
    except CatalogError as e:
        ui.show_error(str(e))
        raise typer.Exit(1) from e


def _resolve_target(ctx: AppContext) -> ResolvedTarget:
    """Resolve the host target.

    Raises:
        typer.Exit: If the OS or architecture is unsupported.
    """
    try:
        target = ctx.detect_target()
    except UnsupportedPlatformError as e:
        ui.show_error(str(e))
        raise typer.Exit(1) from e
    ui.show_info(f"Detected OS: {target}")
    return target


# ============================================================================
# Install
# ============================================================================


def _bootstrap_homebrew(ctx: AppContext, resolver: Resolver, tools: list[ToolSpec]) -> None:
    """Install Homebrew on macOS when it is missing and a tool can use it.

    A failed bootstrap only warns: brew strategies then fail and their
    chains fall through to the next strategy.
    """
    if not resolver.needs_homebrew(tools):
        return
    ui.show_info("Installing Homebrew...")
    try:
        brew = resolver.bootstrap_homebrew(tools, ctx.settings.zprofile)
    except (StrategyError, FetchError) as e:
        ui.show_warning(f"Homebrew installation failed: {e}")
        return
    if brew is not None:
        # Same effect as eval "$(brew shellenv)" for the rest of this run
        os.environ["PATH"] = f"{brew.parent}{os.pathsep}{os.environ.get('PATH', '')}"
        ui.show_success(f"Homebrew installed at {brew}")


def _setup_configurations(ctx: AppContext, tools: list[ToolSpec]) -> None:
    """Deploy bundled configs and shell init lines for installed tools."""
    deployed = ctx.make_configs().deploy(tools)
    if deployed:
        ui.show_success(f"Configurations set up ({len(deployed)} path(s))")

    if any(t.name == STARSHIP for t in tools):
        changed = ctx.make_rc_editor().add_starship_init(ctx.settings.rc_files)
        for rc in changed:
            ui.show_info(f"Added starship init to {rc.name}")


@app.command()
def install(
    tools: Annotated[
        str | None, typer.Option("--tools", "-t", help="Comma-separated list of tools")
    ] = None,
    skip_config: Annotated[
        bool, typer.Option("--skip-config", help="Skip configuration setup")
    ] = False,
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Reinstall tools that are already present")
    ] = False,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Show what would be installed")
    ] = False,
    _context=None,
) -> None:
    """Install tools and their configuration."""
    configure_logging()
    ctx = _context or create_context()
    ui.show_banner("Terminal IDE Installer", "Installing terminal development tools")
    selected = _select_tools(ctx, parse_tool_list(tools, ctx.settings.default_tools))
    target = _resolve_target(ctx)
    names = [t.name for t in selected]
    ui.show_info(f"Installing tools: {', '.join(names)}")

    resolver = ctx.make_resolver(target, force=force)

    if dry_run:
        if resolver.needs_homebrew(selected):
            ui.show_dry_run("install Homebrew")
        ui.show_plan(resolver.plan(names))
        if not skip_config:
            for tool in selected:
                for rel in tool.config_paths:
                    ui.show_dry_run(f"deploy {ctx.settings.config_dir / rel}")
        return

    ctx.filesystem.mkdir(ctx.settings.install_dir, parents=True, exist_ok=True)
    _bootstrap_homebrew(ctx, resolver, selected)
    for rc in ctx.make_rc_editor().ensure_path_export(
        ctx.settings.rc_files, ctx.settings.install_dir
    ):
        ui.show_info(f"Added {ctx.settings.install_dir} to PATH in {rc.name}")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Installing...", total=None)
        summary = resolver.install_all(
            names,
            on_start=lambda tool: progress.update(task, description=f"Installing {tool.name}..."),
        )

    for result in summary.results:
        if result.skipped:
            ui.show_info(f"{result.tool} already installed")
        elif result.success:
            ui.show_success(f"{result.tool} installed via {result.strategy}")
        else:
            ui.show_error(f"{result.tool}: {result.error}")

    if not skip_config:
        installed = {r.tool for r in summary.results if r.success}
        _setup_configurations(ctx, [t for t in selected if t.name in installed])
    else:
        ui.show_info("Skipping configuration setup")

    ui.show_install_summary(summary)
    if not summary.ok:
        ui.show_error(f"Some tools failed to install: {', '.join(summary.failed)}")
        raise typer.Exit(1)
    ui.show_success("All tools installed successfully!")


# ============================================================================
# Uninstall
# ============================================================================


@app.command()
def uninstall(
    tools: Annotated[
        str | None, typer.Option("--tools", "-t", help="Comma-separated list of tools")
    ] = None,
    keep_config: Annotated[
        bool, typer.Option("--keep-config", help="Keep configuration files")
    ] = False,
    no_backup: Annotated[
        bool, typer.Option("--no-backup", help="Don't back up configurations")
    ] = False,
    remove_homebrew: Annotated[
        bool, typer.Option("--remove-homebrew", help="Also remove Homebrew packages (macOS)")
    ] = False,
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Don't ask for confirmation")
    ] = False,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Show what would be removed")
    ] = False,
    _context=None,
) -> None:
    """Remove tools, configuration and shell rc lines."""
    configure_logging()
    ctx = _context or create_context()
    ui.show_banner("Terminal IDE Uninstaller", "Removing terminal development tools")
    names = parse_tool_list(tools, ctx.settings.default_tools)
    remove_rust = RUST_TOOLCHAIN in names
    selected = _select_tools(ctx, [n for n in names if n != RUST_TOOLCHAIN])
    target = _resolve_target(ctx)

    if dry_run:
        ui.show_info("DRY RUN MODE - nothing will be removed")
    if selected:
        ui.show_info(f"Tools to remove: {', '.join(t.name for t in selected)}")
    if remove_rust:
        ui.show_info("Rust toolchain will be removed (rustup, ~/.cargo, ~/.rustup)")

    if not force and not dry_run:
        if selected:
            if not keep_config:
                ui.show_info("Configuration files will be removed")
            if not ui.confirm("Do you want to continue?"):
                ui.show_info("Uninstall cancelled")
                return
        if remove_rust and not ui.confirm("Remove the Rust toolchain?"):
            ui.show_info("Keeping Rust toolchain")
            remove_rust = False
        if not selected and not remove_rust:
            return

    options = UninstallOptions(
        keep_config=keep_config,
        backup=not no_backup,
        remove_homebrew=remove_homebrew,
        remove_rust=remove_rust,
        dry_run=dry_run,
    )
    report = ctx.make_uninstaller(target).run(selected, options)
    ui.show_uninstall_report(report)

    if not report.ok:
        raise typer.Exit(1)
    if not dry_run:
        ui.show_success("Uninstall completed")
        if not remove_homebrew and report.remaining:
            ui.show_info("Run with --remove-homebrew to remove Homebrew-installed tools")


# ============================================================================
# Verify
# ============================================================================


@app.command()
def verify(
    tools: Annotated[
        str | None, typer.Option("--tools", "-t", help="Comma-separated list of tools")
    ] = None,
    skip_config: Annotated[
        bool, typer.Option("--skip-config", help="Skip configuration checks")
    ] = False,
    skip_functionality: Annotated[
        bool, typer.Option("--skip-functionality", help="Skip functionality checks")
    ] = False,
    quick: Annotated[
        bool, typer.Option("--quick", help="Installation checks only")
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", help="Show detailed information")
    ] = False,
    _context=None,
) -> None:
    """Check that tools are installed, configured and working."""
    configure_logging(verbose)
    ctx = _context or create_context()
    ui.show_banner("Terminal IDE Verification", "Checking terminal development tools")
    selected = _select_tools(ctx, parse_tool_list(tools, ctx.settings.default_tools))
    _resolve_target(ctx)
    ui.show_info("Running quick checks" if quick else "Running comprehensive checks")

    report = ctx.make_verifier().run(
        selected,
        check_config=not skip_config,
        check_functionality=not skip_functionality,
        quick=quick,
    )
    ui.show_verification(report, verbose=verbose)

    if not report.ok:
        ui.show_error(f"Installation has {report.failed} failure(s)")
        raise typer.Exit(1)
    if report.warnings:
        ui.show_success(f"Installation verified with {report.warnings} warning(s)")
    else:
        ui.show_success("All checks passed")


if __name__ == "__main__":
    app()
