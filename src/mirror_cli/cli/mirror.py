"""Mirror management CLI commands."""

import json
from datetime import datetime, timezone

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from mirror_cli.cli.common import console, fail, get_context, run_remote
from mirror_cli.errors import ConfirmationDeclinedError, MirrorCliError
from mirror_cli.operations import (
    build_mirror_update,
    drop_mirror,
    edit_mirror,
    parse_table_mappings,
    require_confirmation,
)
from mirror_cli.types import CreateCDCFlowRequest, FlowConnectionConfigs, MirrorStatusResponse

mirror_app = typer.Typer(help="Manage PeerDB mirrors")


def _format_created(epoch_seconds: float) -> str:
    if not epoch_seconds:
        return "-"
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


@mirror_app.command("create")
def create_mirror(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", help="Mirror name"),
    source: str = typer.Option(..., "--source", help="Source peer name"),
    destination: str = typer.Option(..., "--destination", help="Destination peer name"),
    tables: list[str] = typer.Option(
        ..., "--tables", help="Table mapping source->destination (repeatable or comma-separated)"
    ),
    batch_size: int = typer.Option(1000, "--batch-size", help="Max rows per sync batch"),
    idle_timeout: int = typer.Option(60, "--idle-timeout", help="Idle timeout in seconds"),
    initial_snapshot: bool = typer.Option(
        True, "--initial-snapshot/--no-initial-snapshot", help="Copy existing rows first"
    ),
    publication: str = typer.Option("", "--publication", help="Postgres publication name"),
    replication_slot: str = typer.Option("", "--replication-slot", help="Postgres replication slot name"),
) -> None:
    """Create a CDC mirror between two peers."""
    try:
        mappings = parse_table_mappings(tables)
    except MirrorCliError as e:
        fail(e)
    if not mappings:
        fail("at least one --tables mapping is required")

    request = CreateCDCFlowRequest(
        connection_configs=FlowConnectionConfigs(
            flow_job_name=name,
            source_name=source,
            destination_name=destination,
            table_mappings=mappings,
            max_batch_size=batch_size,
            idle_timeout_seconds=idle_timeout,
            do_initial_snapshot=initial_snapshot,
            publication_name=publication or None,
            replication_slot_name=replication_slot or None,
        )
    )

    response = run_remote(get_context(ctx), lambda client: client.create_cdc_mirror(request))
    console.print(f"[green]✓ Mirror '{name}' created successfully[/green]")
    console.print(f"  Workflow ID: {response.workflow_id}")


@mirror_app.command("list")
def list_mirrors(ctx: typer.Context) -> None:
    """List all mirrors."""
    response = run_remote(get_context(ctx), lambda client: client.list_mirrors())

    if not response.mirrors:
        console.print("[yellow]No mirrors found[/yellow]")
        return

    table = Table(title="Mirrors")
    table.add_column("Name", style="cyan")
    table.add_column("Source")
    table.add_column("Destination")
    table.add_column("Type")
    table.add_column("Created")

    for mirror in response.mirrors:
        table.add_row(
            mirror.name,
            f"{mirror.source_name} ({mirror.source_type})" if mirror.source_type else mirror.source_name,
            f"{mirror.destination_name} ({mirror.destination_type})"
            if mirror.destination_type
            else mirror.destination_name,
            "CDC" if mirror.is_cdc else "QRep",
            _format_created(mirror.created_at),
        )

    console.print(table)


def _print_status(status: MirrorStatusResponse) -> None:
    lines = [
        f"State: {status.current_flow_state or 'unknown'}",
        f"Created: {status.created_at or '-'}",
    ]
    cdc = status.cdc_status
    if cdc is not None:
        lines.append(f"Source type: {cdc.source_type or '-'}")
        lines.append(f"Destination type: {cdc.destination_type or '-'}")
        lines.append(f"Rows synced: {cdc.rows_synced}")
        lines.append(f"CDC batches: {len(cdc.cdc_batches)}")
        if cdc.snapshot_status is not None:
            lines.append(f"Snapshot clones: {len(cdc.snapshot_status.clones)}")
    if status.error_message:
        lines.append(f"[red]Error: {escape(status.error_message)}[/red]")

    console.print(Panel("\n".join(lines), title=f"Mirror {status.flow_job_name}"))


@mirror_app.command("status")
def mirror_status(
    ctx: typer.Context,
    mirror_name: str = typer.Argument(..., help="Mirror name"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw status as JSON"),
) -> None:
    """Show detailed status of a mirror."""
    status = run_remote(get_context(ctx), lambda client: client.get_mirror_status(mirror_name))

    if as_json:
        print(json.dumps(status.model_dump(mode="json"), indent=2))
        return
    _print_status(status)


@mirror_app.command("pause")
def pause_mirror(
    ctx: typer.Context,
    mirror_name: str = typer.Argument(..., help="Mirror name"),
) -> None:
    """Pause a running mirror."""
    run_remote(get_context(ctx), lambda client: client.pause_mirror(mirror_name))
    console.print(f"[green]✓ Mirror '{mirror_name}' paused successfully[/green]")


@mirror_app.command("resume")
def resume_mirror(
    ctx: typer.Context,
    mirror_name: str = typer.Argument(..., help="Mirror name"),
) -> None:
    """Resume a paused mirror."""
    run_remote(get_context(ctx), lambda client: client.resume_mirror(mirror_name))
    console.print(f"[green]✓ Mirror '{mirror_name}' resumed successfully[/green]")


@mirror_app.command("edit")
def edit_mirror_command(
    ctx: typer.Context,
    mirror_name: str = typer.Argument(..., help="Mirror name"),
    add_tables: list[str] = typer.Option([], "--add-tables", help="Table mappings to add (source->destination)"),
    remove_tables: list[str] = typer.Option(
        [], "--remove-tables", help="Table mappings to remove (source->destination)"
    ),
    batch_size: int = typer.Option(0, "--batch-size", help="New batch size (0 keeps the current value)"),
    idle_timeout: int = typer.Option(0, "--idle-timeout", help="New idle timeout (0 keeps the current value)"),
) -> None:
    """Update a mirror's tables or tuning. The mirror is paused and resumed around the update."""
    try:
        update = build_mirror_update(add_tables, remove_tables, batch_size, idle_timeout)
    except MirrorCliError as e:
        fail(e)

    run_remote(get_context(ctx), lambda client: edit_mirror(client, mirror_name, update))
    console.print(f"[green]✓ Mirror '{mirror_name}' updated successfully[/green]")


@mirror_app.command("drop")
def drop_mirror_command(
    ctx: typer.Context,
    mirror_name: str = typer.Argument(..., help="Mirror name"),
    skip_destination_drop: bool = typer.Option(
        False, "--skip-destination-drop", help="Keep replicated tables in the destination"
    ),
    force: bool = typer.Option(False, "--force", help="Drop without confirmation"),
) -> None:
    """Terminate and drop a mirror."""
    state = get_context(ctx)
    if not force:
        try:
            require_confirmation(state.confirm, f"drop mirror '{mirror_name}'")
        except ConfirmationDeclinedError as e:
            fail(e)

    run_remote(
        state,
        lambda client: drop_mirror(
            client,
            mirror_name,
            confirm=state.confirm,
            force=True,
            skip_destination_drop=skip_destination_drop,
        ),
    )
    console.print(f"[green]✓ Mirror '{mirror_name}' dropped successfully[/green]")
