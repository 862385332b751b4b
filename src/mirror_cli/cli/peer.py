"""Peer management CLI commands.

This module provides the `peer` command group:
- create: Create a peer from --type specific flags
- validate: Ask the service to check a peer definition without creating it
- list: Display peers in a table
- drop: Drop a peer after confirmation
"""

from dataclasses import dataclass
from typing import Any

import typer
from rich.table import Table

from mirror_cli.cli.common import console, fail, get_context, run_remote
from mirror_cli.errors import ConfirmationDeclinedError, MirrorCliError
from mirror_cli.operations import drop_peer, require_confirmation
from mirror_cli.translate import build_peer, resolve_peer_type
from mirror_cli.types import Peer

peer_app = typer.Typer(help="Manage PeerDB peers")

_FLAG_PREFIXES = ("pg_", "bq_", "sf_")


@dataclass
class PeerFlags:
    """Connection flags shared by `peer create` and `peer validate`."""

    pg_host: str
    pg_port: int
    pg_user: str
    pg_password: str
    pg_database: str
    pg_tls_host: str
    pg_metadata_schema: str
    bq_project: str
    bq_dataset: str
    bq_auth_type: str
    bq_private_key: str
    bq_private_key_id: str
    bq_client_email: str
    bq_client_id: str
    sf_account: str
    sf_user: str
    sf_password: str
    sf_private_key: str
    sf_database: str
    sf_warehouse: str
    sf_role: str
    sf_metadata_schema: str
    sf_query_timeout: int

    def config_for(self, kind: str) -> dict[str, Any]:
        """Settings mapping for a canonical peer kind."""
        if kind == "postgres":
            return {
                "host": self.pg_host,
                "port": self.pg_port,
                "user": self.pg_user,
                "password": self.pg_password,
                "database": self.pg_database,
                "tls_host": self.pg_tls_host,
                "metadata_schema": self.pg_metadata_schema,
            }
        if kind == "snowflake":
            return {
                "account_id": self.sf_account,
                "username": self.sf_user,
                "password": self.sf_password,
                "private_key": self.sf_private_key,
                "database": self.sf_database,
                "warehouse": self.sf_warehouse,
                "role": self.sf_role,
                "query_timeout": self.sf_query_timeout,
                "metadata_schema": self.sf_metadata_schema,
            }
        return {
            "project_id": self.bq_project,
            "dataset_id": self.bq_dataset,
            "auth_type": self.bq_auth_type,
            "private_key": self.bq_private_key or None,
            "private_key_id": self.bq_private_key_id or None,
            "client_email": self.bq_client_email or None,
            "client_id": self.bq_client_id or None,
        }


def _build_peer(name: str, peer_type: str, flags: PeerFlags) -> Peer:
    try:
        kind = resolve_peer_type(peer_type)
        return build_peer(name, kind, flags.config_for(kind))
    except MirrorCliError as e:
        fail(e)


@peer_app.command("create")
def create_peer(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", help="Peer name"),
    peer_type: str = typer.Option(..., "--type", help="Peer type: postgres, snowflake, bigquery"),
    allow_update: bool = typer.Option(False, "--allow-update", help="Update the peer if it exists"),
    pg_host: str = typer.Option("", "--pg-host", help="PostgreSQL host"),
    pg_port: int = typer.Option(5432, "--pg-port", help="PostgreSQL port"),
    pg_user: str = typer.Option("", "--pg-user", help="PostgreSQL user"),
    pg_password: str = typer.Option("", "--pg-password", help="PostgreSQL password"),
    pg_database: str = typer.Option("", "--pg-database", help="PostgreSQL database"),
    pg_tls_host: str = typer.Option("", "--pg-tls-host", help="PostgreSQL TLS host"),
    pg_metadata_schema: str = typer.Option("_peerdb_internal", "--pg-metadata-schema", help="PostgreSQL metadata schema"),
    bq_project: str = typer.Option("", "--bq-project", help="BigQuery project ID"),
    bq_dataset: str = typer.Option("", "--bq-dataset", help="BigQuery dataset ID"),
    bq_auth_type: str = typer.Option("service_account", "--bq-auth-type", help="BigQuery auth type"),
    bq_private_key: str = typer.Option("", "--bq-private-key", help="BigQuery private key"),
    bq_private_key_id: str = typer.Option("", "--bq-private-key-id", help="BigQuery private key ID"),
    bq_client_email: str = typer.Option("", "--bq-client-email", help="BigQuery client email"),
    bq_client_id: str = typer.Option("", "--bq-client-id", help="BigQuery client ID"),
    sf_account: str = typer.Option("", "--sf-account", help="Snowflake account ID"),
    sf_user: str = typer.Option("", "--sf-user", help="Snowflake username"),
    sf_password: str = typer.Option("", "--sf-password", help="Snowflake password"),
    sf_private_key: str = typer.Option("", "--sf-private-key", help="Snowflake private key"),
    sf_database: str = typer.Option("", "--sf-database", help="Snowflake database"),
    sf_warehouse: str = typer.Option("", "--sf-warehouse", help="Snowflake warehouse"),
    sf_role: str = typer.Option("", "--sf-role", help="Snowflake role"),
    sf_metadata_schema: str = typer.Option("_PEERDB_INTERNAL", "--sf-metadata-schema", help="Snowflake metadata schema"),
    sf_query_timeout: int = typer.Option(300, "--sf-query-timeout", help="Snowflake query timeout in seconds"),
) -> None:
    """Create a new peer."""
    flags = PeerFlags(**{k: v for k, v in locals().items() if k.startswith(_FLAG_PREFIXES)})
    peer = _build_peer(name, peer_type, flags)

    response = run_remote(
        get_context(ctx), lambda client: client.create_peer(peer, allow_update=allow_update)
    )
    if response.failed:
        fail(f"Peer '{name}' was not created: {response.message or 'service reported FAILED'}")

    console.print(f"[green]✓ Peer '{name}' created successfully[/green]")
    if response.message:
        console.print(f"  Message: {response.message}")


@peer_app.command("validate")
def validate_peer(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", help="Peer name"),
    peer_type: str = typer.Option(..., "--type", help="Peer type: postgres, snowflake, bigquery"),
    pg_host: str = typer.Option("", "--pg-host", help="PostgreSQL host"),
    pg_port: int = typer.Option(5432, "--pg-port", help="PostgreSQL port"),
    pg_user: str = typer.Option("", "--pg-user", help="PostgreSQL user"),
    pg_password: str = typer.Option("", "--pg-password", help="PostgreSQL password"),
    pg_database: str = typer.Option("", "--pg-database", help="PostgreSQL database"),
    pg_tls_host: str = typer.Option("", "--pg-tls-host", help="PostgreSQL TLS host"),
    pg_metadata_schema: str = typer.Option("_peerdb_internal", "--pg-metadata-schema", help="PostgreSQL metadata schema"),
    bq_project: str = typer.Option("", "--bq-project", help="BigQuery project ID"),
    bq_dataset: str = typer.Option("", "--bq-dataset", help="BigQuery dataset ID"),
    bq_auth_type: str = typer.Option("service_account", "--bq-auth-type", help="BigQuery auth type"),
    bq_private_key: str = typer.Option("", "--bq-private-key", help="BigQuery private key"),
    bq_private_key_id: str = typer.Option("", "--bq-private-key-id", help="BigQuery private key ID"),
    bq_client_email: str = typer.Option("", "--bq-client-email", help="BigQuery client email"),
    bq_client_id: str = typer.Option("", "--bq-client-id", help="BigQuery client ID"),
    sf_account: str = typer.Option("", "--sf-account", help="Snowflake account ID"),
    sf_user: str = typer.Option("", "--sf-user", help="Snowflake username"),
    sf_password: str = typer.Option("", "--sf-password", help="Snowflake password"),
    sf_private_key: str = typer.Option("", "--sf-private-key", help="Snowflake private key"),
    sf_database: str = typer.Option("", "--sf-database", help="Snowflake database"),
    sf_warehouse: str = typer.Option("", "--sf-warehouse", help="Snowflake warehouse"),
    sf_role: str = typer.Option("", "--sf-role", help="Snowflake role"),
    sf_metadata_schema: str = typer.Option("_PEERDB_INTERNAL", "--sf-metadata-schema", help="Snowflake metadata schema"),
    sf_query_timeout: int = typer.Option(300, "--sf-query-timeout", help="Snowflake query timeout in seconds"),
) -> None:
    """Validate a peer definition against the service without creating it."""
    flags = PeerFlags(**{k: v for k, v in locals().items() if k.startswith(_FLAG_PREFIXES)})
    peer = _build_peer(name, peer_type, flags)

    response = run_remote(get_context(ctx), lambda client: client.validate_peer(peer))
    if not response.valid:
        fail(f"Peer configuration is invalid: {response.message or response.status}")

    console.print("[green]✓ Peer configuration is valid[/green]")
    if response.message:
        console.print(f"  Message: {response.message}")


@peer_app.command("list")
def list_peers(ctx: typer.Context) -> None:
    """List all peers."""
    response = run_remote(get_context(ctx), lambda client: client.list_peers())

    if not response.items:
        console.print("[yellow]No peers found[/yellow]")
        return

    table = Table(title="Peers")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Role")

    sources = {p.name for p in response.source_items}
    destinations = {p.name for p in response.destination_items}
    for peer in response.items:
        roles = [r for r, names in (("source", sources), ("destination", destinations)) if peer.name in names]
        table.add_row(peer.name, peer.type, ", ".join(roles) or "-")

    console.print(table)


@peer_app.command("drop")
def drop_peer_command(
    ctx: typer.Context,
    peer_name: str = typer.Argument(..., help="Peer to drop"),
    force: bool = typer.Option(False, "--force", help="Drop without confirmation"),
) -> None:
    """Drop a peer."""
    state = get_context(ctx)
    if not force:
        try:
            require_confirmation(state.confirm, f"drop peer '{peer_name}'")
        except ConfirmationDeclinedError as e:
            fail(e)

    run_remote(
        state,
        lambda client: drop_peer(client, peer_name, confirm=state.confirm, force=True),
    )
    console.print(f"[green]✓ Peer '{peer_name}' dropped successfully[/green]")
