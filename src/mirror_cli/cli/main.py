"""mirror-cli - manage PeerDB peers and mirrors from the command line."""

from pathlib import Path
from typing import Optional

import typer

from mirror_cli.cli.common import CliContext, configure_logging
from mirror_cli.cli.config import config_app
from mirror_cli.cli.mirror import mirror_app
from mirror_cli.cli.peer import peer_app

app = typer.Typer(
    name="mirror-cli",
    help="Manage PeerDB mirrors and peers",
    no_args_is_help=True,
)

# Add command groups
app.add_typer(config_app, name="config")
app.add_typer(peer_app, name="peer")
app.add_typer(mirror_app, name="mirror")


@app.callback()
def root(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", help="Settings file (default: ~/.mirror_cli/config.yaml)"
    ),
    host: Optional[str] = typer.Option(None, "--host", help="PeerDB server host"),
    port: Optional[int] = typer.Option(None, "--port", help="PeerDB server port"),
    tls: Optional[bool] = typer.Option(None, "--tls/--no-tls", help="Use TLS"),
    username: Optional[str] = typer.Option(None, "--username", help="Username"),
    password: Optional[str] = typer.Option(None, "--password", help="Password"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Manage PeerDB mirrors and peers."""
    configure_logging(verbose)
    state = ctx.ensure_object(CliContext)
    state.config_file = config
    state.overrides = {
        "peerdb_host": host,
        "peerdb_port": port,
        "tls": tls,
        "username": username,
        "password": password,
    }


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
