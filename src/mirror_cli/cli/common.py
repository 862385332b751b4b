"""
Shared plumbing for CLI commands.

The root callback stores a CliContext on the typer context; commands read
it back with get_context() instead of consulting global flag state.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, NoReturn, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from mirror_cli.errors import MirrorCliError
from mirror_cli.operations import Confirm
from mirror_cli.peerdb_client import DEFAULT_TIMEOUT_SECONDS, PeerDBClient, connect
from mirror_cli.settings import Settings, load_settings

T = TypeVar("T")

console = Console()
err_console = Console(stderr=True)


def prompt_confirm(prompt: str) -> bool:
    """Ask the operator a yes/no question; the default is no."""
    return typer.confirm(prompt, default=False)


@dataclass
class CliContext:
    """
    Per-invocation CLI state.

    Attributes:
        config_file: Explicit settings file from --config.
        overrides: Settings overrides from root flags (None = not given).
        confirm: Confirmation used by destructive commands.
    """

    config_file: Path | None = None
    overrides: dict[str, Any] = field(default_factory=dict)
    confirm: Confirm = prompt_confirm

    def settings(self) -> Settings:
        try:
            return load_settings(self.config_file, **self.overrides)
        except MirrorCliError as e:
            fail(e)


def get_context(ctx: typer.Context) -> CliContext:
    if isinstance(ctx.obj, CliContext):
        return ctx.obj
    return CliContext()


def configure_logging(verbose: bool) -> None:
    """Send library logs to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def fail(error: Exception | str) -> NoReturn:
    """Print an error and exit with status 1."""
    err_console.print(f"[red]Error:[/red] {escape(str(error))}")
    raise typer.Exit(1)


def run_remote(
    state: CliContext,
    operation: Callable[[PeerDBClient], Awaitable[T]],
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> T:
    """
    Connect to the flow service and run one async operation against it.

    Any MirrorCliError is printed and turned into exit status 1.
    """
    settings = state.settings()

    async def _run() -> T:
        async with connect(settings, timeout=timeout) as client:
            return await operation(client)

    try:
        return asyncio.run(_run())
    except MirrorCliError as e:
        fail(e)
