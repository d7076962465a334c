"""Command-line interface."""

from scanwell.interface.cli.core.main import cli_entrypoint, main

__all__ = ["cli_entrypoint", "main"]
