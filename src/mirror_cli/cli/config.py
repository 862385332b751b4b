"""Settings and declarative configuration commands.

This module provides the `config` command group:
- show / set / init: local connection settings
- validate / apply: YAML peer and mirror documents
- export-peer / export-mirror: write starter documents
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from mirror_cli.cli.common import console, fail, get_context, run_remote
from mirror_cli.documents import Document
from mirror_cli.errors import MirrorCliError
from mirror_cli.loader import load_documents
from mirror_cli.reconcile import (
    APPLY_TIMEOUT_SECONDS,
    BatchReport,
    Outcome,
    apply_documents,
    validate_documents,
)
from mirror_cli.settings import (
    SETTINGS_FILENAME,
    Settings,
    find_settings_file,
    save_settings,
    user_settings_dir,
)
from mirror_cli.templates import (
    DEFAULT_ENVIRONMENT,
    default_mirror_path,
    default_peer_path,
    mirror_template,
    peer_template,
    write_document,
)

config_app = typer.Typer(help="Manage CLI settings and configuration files")

_OUTCOME_MARKS = {
    Outcome.VALID: "[green]✓ Valid[/green]",
    Outcome.INVALID: "[red]✗ Invalid[/red]",
    Outcome.PLANNED: "[cyan][DRY-RUN] Would apply[/cyan]",
    Outcome.APPLIED: "[green]✓ Applied[/green]",
    Outcome.FAILED: "[red]✗ Failed[/red]",
    Outcome.SKIPPED: "[yellow]- Not attempted[/yellow]",
}


def _load(path: Path) -> list[Document]:
    try:
        return load_documents(path)
    except MirrorCliError as e:
        fail(e)


def _print_report(report: BatchReport) -> None:
    for result in report.results:
        doc = result.document
        origin = f" [dim]({doc.origin})[/dim]" if doc.origin else ""
        console.print(f"{doc.label}{origin}")
        line = f"  {_OUTCOME_MARKS[result.outcome]}"
        if result.error is not None:
            line += f": {escape(str(result.error))}"
        elif result.detail:
            line += f" [dim]{result.detail}[/dim]"
        console.print(line)


# -----------------------------------------------------------------------------
# Settings
# -----------------------------------------------------------------------------


@config_app.command("show")
def show_config(ctx: typer.Context) -> None:
    """Show the effective connection settings."""
    settings = get_context(ctx).settings()
    source = get_context(ctx).config_file or find_settings_file()

    table = Table(title="Current Configuration", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Host", settings.peerdb_host)
    table.add_row("Port", str(settings.peerdb_port))
    table.add_row("TLS", str(settings.tls).lower())
    table.add_row("Username", settings.username or "-")
    table.add_row("Password", "\\[set]" if settings.password else "\\[not set]")
    table.add_row("Address", settings.address)
    table.add_row("File", str(source) if source else "(defaults)")
    console.print(table)


@config_app.command("set")
def set_config(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="PeerDB server host"),
    port: Optional[int] = typer.Option(None, "--port", help="PeerDB server port"),
    tls: Optional[bool] = typer.Option(None, "--tls/--no-tls", help="Use TLS connection"),
    username: Optional[str] = typer.Option(None, "--username", help="Username"),
    password: Optional[str] = typer.Option(None, "--password", help="Password"),
) -> None:
    """Set settings values and save them to ~/.mirror_cli/config.yaml."""
    settings = get_context(ctx).settings()
    changes = {
        "peerdb_host": host,
        "peerdb_port": port,
        "tls": tls,
        "username": username,
        "password": password,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        fail("nothing to set: pass at least one of --host, --port, --tls, --username, --password")

    updated = Settings(**{**settings.model_dump(), **changes})
    for key, value in changes.items():
        shown = "\\[hidden]" if key == "password" else value
        console.print(f"Set {key} to: {shown}")

    try:
        path = save_settings(updated)
    except MirrorCliError as e:
        fail(e)
    console.print(f"[green]✓ Configuration saved to {path}[/green]")


@config_app.command("init")
def init_config(
    force: bool = typer.Option(False, "--force", help="Overwrite existing settings file"),
) -> None:
    """Create a settings file with default values."""
    target = user_settings_dir() / SETTINGS_FILENAME
    if target.exists() and not force:
        console.print(
            f"Configuration file already exists at {target}. Use --force to overwrite."
        )
        return

    settings = Settings.model_construct()
    try:
        path = save_settings(settings)
    except MirrorCliError as e:
        fail(e)

    console.print("[green]✓ Configuration initialized with default values[/green]")
    console.print(f"  Config saved to: {path}")
    console.print(f"  Default host: {settings.peerdb_host}")
    console.print(f"  Default port: {settings.peerdb_port}")
    console.print(
        "\nModify these settings with 'mirror-cli config set' or by editing the file directly."
    )


# -----------------------------------------------------------------------------
# Declarative documents
# -----------------------------------------------------------------------------


@config_app.command("validate")
def validate_config(
    file: Path = typer.Option(..., "--file", "-f", help="Configuration file or directory"),
) -> None:
    """Validate peer and mirror documents without applying them."""
    documents = _load(file)
    if not documents:
        console.print("No configuration files found")
        return

    report = validate_documents(documents)
    _print_report(report)

    if not report.succeeded:
        console.print(f"\n[red]✗ {len(report.failures)} of {len(documents)} configurations are invalid[/red]")
        raise typer.Exit(1)
    console.print(f"\n[green]✓ All {len(documents)} configurations are valid[/green]")


@config_app.command("apply")
def apply_config(
    ctx: typer.Context,
    file: Path = typer.Option(..., "--file", "-f", help="Configuration file or directory"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be applied"),
    force: bool = typer.Option(False, "--force", help="Update peers that already exist"),
) -> None:
    """Apply peer and mirror documents in file order, stopping at the first failure."""
    documents = _load(file)
    if not documents:
        console.print("No configuration files found")
        return

    if dry_run:
        report = asyncio.run(apply_documents(documents, None, dry_run=True))
        _print_report(report)
        console.print(f"\n[cyan][DRY-RUN] {len(documents)} configurations would be applied[/cyan]")
        return

    report = run_remote(
        get_context(ctx),
        lambda client: apply_documents(
            documents, client, force=force, batch_timeout=APPLY_TIMEOUT_SECONDS
        ),
        timeout=APPLY_TIMEOUT_SECONDS,
    )
    _print_report(report)

    applied = report.count(Outcome.APPLIED)
    if not report.succeeded:
        skipped = report.count(Outcome.SKIPPED)
        console.print(
            f"\n[red]✗ Apply stopped: {applied} applied, 1 failed, {skipped} not attempted[/red]"
        )
        raise typer.Exit(1)
    console.print(f"\n[green]✓ Successfully applied {applied} configurations[/green]")


@config_app.command("export-peer")
def export_peer(
    peer_name: str = typer.Argument(..., help="Peer name"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file path"),
    environment: str = typer.Option(DEFAULT_ENVIRONMENT, "--environment", help="Environment for metadata"),
) -> None:
    """Write a starter peer document."""
    path = output or default_peer_path(peer_name, environment)
    console.print(f"Exporting peer '{peer_name}' to {path}...")
    try:
        write_document(peer_template(peer_name, environment), path)
    except MirrorCliError as e:
        fail(e)
    console.print(f"[green]✓ Peer configuration exported to {path}[/green]")
    console.print("Note: update the configuration with actual values before applying")


@config_app.command("export-mirror")
def export_mirror(
    mirror_name: str = typer.Argument(..., help="Mirror name"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file path"),
    environment: str = typer.Option(DEFAULT_ENVIRONMENT, "--environment", help="Environment for metadata"),
) -> None:
    """Write a starter mirror document."""
    path = output or default_mirror_path(mirror_name, environment)
    console.print(f"Exporting mirror '{mirror_name}' to {path}...")
    try:
        write_document(mirror_template(mirror_name, environment), path)
    except MirrorCliError as e:
        fail(e)
    console.print(f"[green]✓ Mirror configuration exported to {path}[/green]")
    console.print("Note: update the configuration with actual values before applying")
