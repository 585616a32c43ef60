"""CLI entry points for the QZ Tray installer.

Commands:
    qz-installer                - Same as "qz-installer install stable"
    qz-installer help           - Display installer usage
    qz-installer install [stable|beta|unstable|<version>|help]
                                - Download, install, configure and restart QZ Tray
    qz-installer detect         - Locate an existing installation
    qz-installer status         - Show installation and process status
    qz-installer start          - Start QZ Tray
    qz-installer stop           - Stop QZ Tray
    qz-installer certgen        - Regenerate the certificate and override file
    qz-installer config         - Get/set individual config values
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.table import Table

import qz_installer
from qz_installer.config import ConfigManager, InstallerConfig
from qz_installer.errors import InstallerError
from qz_installer.logging_config import configure_logging
from qz_installer.models import OrchestrationContext
from qz_installer.orchestrator import Orchestrator

console = Console()
app = typer.Typer(
    name="qz-installer",
    help="Install, configure, and manage the QZ Tray print service.",
)
config_app = typer.Typer(help="Get or set configuration values.")
app.add_typer(config_app, name="config")

logger = logging.getLogger(__name__)

_USAGE = """\
[bold]Usage:[/bold] qz-installer install \\[stable|beta|unstable|<version>|help]

  [green]stable[/green]     Install the latest stable release (default)
  [green]beta[/green]       Install the latest release, including betas
  [green]unstable[/green]   Same as beta
  [blue]<version>[/blue]  Install an exact version, e.g. 2.2.4 or v2.2.4
  [magenta]help[/magenta]       Display this help and exit
"""


def _setup(verbose: bool) -> InstallerConfig:
    """Load configuration and configure logging from it."""
    config = ConfigManager().load()
    configure_logging(config.installer.log_level, verbose=verbose)
    return config


def _orchestrator(config: InstallerConfig) -> Orchestrator:
    try:
        return Orchestrator(config)
    except InstallerError as exc:
        console.print(f"[red]{exc.message}[/red]")
        raise typer.Exit(exc.exit_code) from None


def _print_warnings(ctx: OrchestrationContext) -> None:
    for warning in ctx.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")


# ------------------------------------------------------------------
# qz-installer install
# ------------------------------------------------------------------


@app.command()
def install(
    selector: str = typer.Argument(
        "stable", help="stable, beta, unstable, an explicit version, or help"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Download, install, configure and restart QZ Tray."""
    if selector.strip().lower() == "help":
        console.print(_USAGE)
        raise typer.Exit(0)

    config = _setup(verbose)
    orchestrator = _orchestrator(config)

    console.print(f"\n[bold cyan]Installing QZ Tray ({selector})...[/bold cyan]")
    try:
        ctx = orchestrator.run_install(selector)
    except InstallerError as exc:
        console.print(f"[red]{exc.message}[/red]")
        raise typer.Exit(exc.exit_code) from None

    if ctx.asset is not None:
        console.print(f"  Installed: [blue]{ctx.asset.tag}[/blue] ({ctx.asset.name})")
    if ctx.installation is not None:
        console.print(f"  Location:  {ctx.installation.install_dir}")
    if ctx.primary_ipv4:
        console.print(f"  Hosts:     localhost;{ctx.primary_ipv4}")
    _print_warnings(ctx)
    console.print(f"\n[bold green]Done. QZ Tray is {ctx.state}.[/bold green]")


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Install, configure, and manage the QZ Tray print service."""
    if ctx.invoked_subcommand is None:
        install(selector="stable", verbose=False)


@app.command("help", hidden=True)
def show_help() -> None:
    """Display installer usage."""
    console.print(_USAGE)


# ------------------------------------------------------------------
# qz-installer detect / status
# ------------------------------------------------------------------


@app.command()
def detect(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Locate an existing QZ Tray installation."""
    config = _setup(verbose)
    ctx = _orchestrator(config).run_detect()

    if ctx.installation is None:
        console.print("[yellow]QZ Tray installation not found.[/yellow]")
        console.print("Run [bold]qz-installer install[/bold] to install it.")
        return

    record = ctx.installation
    console.print(f"[green]QZ Tray found[/green] via {record.source}")
    console.print(f"  Install directory: {record.install_dir}")
    console.print(f"  Console:           {record.console_exe or '[dim]not found[/dim]'}")


@app.command()
def status() -> None:
    """Show installation and process status."""
    config = _setup(False)
    orchestrator = _orchestrator(config)
    ctx = orchestrator.run_detect()

    table = Table(title="QZ Tray Status", border_style="cyan")
    table.add_column("Component", style="bold")
    table.add_column("Status")
    table.add_column("Details", style="dim")

    table.add_row("Installer", qz_installer.__version__, "")
    table.add_row("Platform", str(ctx.platform), str(ctx.architecture))

    if ctx.installation is not None:
        table.add_row(
            "Installation", "[green]Found[/green]", f"{ctx.installation.install_dir}"
        )
    else:
        table.add_row("Installation", "[red]Not found[/red]", "")

    running = ctx.state == "running"
    table.add_row("Process", "[green]Running[/green]" if running else "[red]Stopped[/red]", "")

    endpoint = f"https://localhost:{config.certificate.secure_port}"
    table.add_row("Endpoint", endpoint if running else "[dim]-[/dim]", "")

    console.print(table)


# ------------------------------------------------------------------
# qz-installer start / stop / certgen
# ------------------------------------------------------------------


@app.command()
def start(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Start QZ Tray."""
    config = _setup(verbose)
    ctx = _orchestrator(config).run_start()
    if ctx.was_running:
        console.print("[yellow]QZ Tray is already running.[/yellow]")
    elif ctx.state == "running":
        console.print("[green]QZ Tray started.[/green]")
    else:
        _print_warnings(ctx)


@app.command()
def stop(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Stop QZ Tray."""
    config = _setup(verbose)
    ctx = _orchestrator(config).run_stop()
    if ctx.was_running:
        console.print("[green]QZ Tray stopped.[/green]")
    else:
        console.print("[dim]QZ Tray is not running.[/dim]")


@app.command()
def certgen(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Regenerate the certificate and deploy the override file."""
    config = _setup(verbose)
    ctx = _orchestrator(config).run_certgen()
    if ctx.warnings:
        _print_warnings(ctx)
        return
    console.print("[green]Certificate configured.[/green]")


# ------------------------------------------------------------------
# qz-installer config get / set
# ------------------------------------------------------------------


@config_app.command("get")
def config_get(
    key: str = typer.Argument(help="Config key in dot notation (e.g., 'release.per_page')"),
) -> None:
    """Print a config value."""
    try:
        value = ConfigManager().get_value(key)
    except KeyError:
        console.print(f"[red]Key not found: {key}[/red]")
        raise typer.Exit(1) from None
    console.print(str(value))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key in dot notation (e.g., 'lifecycle.stop_max_wait')"),
    value: str = typer.Argument(help="Value to set"),
) -> None:
    """Update a single config value."""
    try:
        stored = ConfigManager().set_value(key, value)
    except KeyError:
        console.print(f"[red]Unknown key: {key} (expected 'section.field')[/red]")
        raise typer.Exit(1) from None
    except ValueError:
        console.print(f"[red]Invalid value for {key}: {value}[/red]")
        raise typer.Exit(1) from None
    console.print(f"[green]{key} = {stored}[/green]")
