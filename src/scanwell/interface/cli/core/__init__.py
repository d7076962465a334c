"""Shared CLI plumbing: async execution, error rendering and theming."""

from scanwell.interface.cli.core.async_runner import async_command, run_async
from scanwell.interface.cli.core.error_handler import (
    EXIT_FATAL,
    EXIT_RECOVERABLE,
    handle_error,
)
from scanwell.interface.cli.core.theme import create_console

__all__ = [
    "EXIT_FATAL",
    "EXIT_RECOVERABLE",
    "async_command",
    "create_console",
    "handle_error",
    "run_async",
]
