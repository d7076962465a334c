"""CLI Error Handler.

Renders a ScanwellError for a human (error id, message, numbered recovery
hints) or as JSON for scripts and assistants, then exits. Recoverable scan
failures print the configuration recovery report and exit with a distinct
code so callers can tell "fix the config and rerun" from "give up".
"""

import json
import sys
from typing import NoReturn

from rich.markdown import Markdown
from rich.text import Text

from scanwell.foundation.errors import ErrorCode, ScanRecoverableError, ScanwellError
from scanwell.interface.cli.core.theme import create_console
from scanwell.scanning.fallback import format_for_output

EXIT_FATAL = 1
EXIT_RECOVERABLE = 2


def as_scanwell_error(error: Exception) -> ScanwellError:
    """Wrap anything that is not already a ScanwellError."""
    if isinstance(error, ScanwellError):
        return error
    return ScanwellError(
        code=ErrorCode.INTERNAL_ERROR,
        context={"detail": str(error) or type(error).__name__},
        cause=error,
    )


def error_payload(error: ScanwellError) -> dict:
    """JSON-serializable form of an error, including any recovery analysis."""
    payload = error.to_dict()
    if error.cause:
        payload["cause"] = str(error.cause)
    if isinstance(error, ScanRecoverableError) and error.fallback_analysis is not None:
        payload["fallback_analysis"] = error.fallback_analysis.to_dict()
    return payload


def handle_error(
    error: ScanwellError | Exception,
    json_output: bool = False,
) -> NoReturn:
    """Report an error and exit.

    Args:
        error: The error to handle (ScanwellError or generic Exception)
        json_output: If True, print JSON to stdout instead of rich text

    Raises:
        SystemExit: EXIT_RECOVERABLE for ScanRecoverableError, else EXIT_FATAL
    """
    error = as_scanwell_error(error)
    exit_code = EXIT_RECOVERABLE if isinstance(error, ScanRecoverableError) else EXIT_FATAL

    if json_output:
        print(json.dumps(error_payload(error), indent=2))
        sys.exit(exit_code)

    if isinstance(error, ScanRecoverableError) and error.fallback_analysis is not None:
        _print_recovery_report(error)
    else:
        _print_human_error(error)
    sys.exit(exit_code)


def _print_human_error(error: ScanwellError) -> None:
    console = create_console(stderr=True)

    header = Text()
    header.append(error.error_id, style="scan.error")
    header.append(f" {error.message}")
    console.print(header)

    if error.recovery_hints:
        console.print("\n[bold]What you can do:[/]")
        for i, hint in enumerate(error.recovery_hints, 1):
            console.print(f"  {i}. {hint}")


def _print_recovery_report(error: ScanRecoverableError) -> None:
    console = create_console()
    console.print(f"[scan.recoverable]{error.error_id}[/] {error.message}\n")
    console.print(Markdown(format_for_output(error.fallback_analysis)))
