"""CLI commands for mirror-cli."""

from mirror_cli.cli.main import app, main

__all__ = ["app", "main"]
