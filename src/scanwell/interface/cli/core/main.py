"""Main CLI entry point.

    scanwell scan [PATH]              run a full scan and summarize the results
    scanwell validate [PATH]          pre-scan validation only, no server needed
    scanwell diagnose "<error>" [PATH]  recovery analysis for a scanner error

Exit codes: 0 success, 1 fatal error, 2 recoverable configuration error.
"""

import json
import logging
import sys
from pathlib import Path

import click

from scanwell import __version__
from scanwell.foundation.config import get_config, load_scan_config
from scanwell.foundation.logging import configure_logging
from scanwell.interface.cli.core.async_runner import async_command
from scanwell.interface.cli.core.error_handler import (
    EXIT_FATAL,
    handle_error,
)
from scanwell.interface.cli.core.theme import create_console
from scanwell.interface.cli.render import render_scan_result
from scanwell.scanning.fallback import ScanFallbackService, format_for_output
from scanwell.scanning.orchestrator import ScanOptions, ScanOrchestrator
from scanwell.scanning.validation import PreScanValidator, format_validation_output

logger = logging.getLogger(__name__)

console = create_console()

_SEVERITIES = ("BLOCKER", "CRITICAL", "MAJOR", "MINOR", "INFO")
_TYPES = ("BUG", "VULNERABILITY", "CODE_SMELL", "SECURITY_HOTSPOT")


def cli_entrypoint() -> None:
    """Wrapped entrypoint with global error handling.

    Called from pyproject.toml [project.scripts].
    """
    try:
        main(standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except click.Abort:
        console.print("\n  [scan.muted]Interrupted[/]")
        sys.exit(130)
    except Exception as e:
        handle_error(e, json_output=False)


@click.group()
@click.version_option(__version__, prog_name="scanwell")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, debug: bool) -> None:
    """Run code-quality scans and recover from configuration failures."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    configure_logging(debug=debug)


@main.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False), default=".")
@click.option("--force-cli", is_flag=True, help="Use sonar-scanner even for Maven/Gradle projects")
@click.option("--no-fallback", is_flag=True, help="Skip the configuration recovery analysis")
@click.option("--max-retries", type=click.IntRange(min=0), default=None, help="Retries for permission failures")
@click.option(
    "--severity",
    "severities",
    multiple=True,
    type=click.Choice(_SEVERITIES, case_sensitive=False),
    help="Only report issues of this severity (repeatable)",
)
@click.option(
    "--type",
    "types",
    multiple=True,
    type=click.Choice(_TYPES, case_sensitive=False),
    help="Only report issues of this type (repeatable)",
)
@click.option("--json", "json_output", is_flag=True, help="Output results as JSON")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@async_command
async def scan(
    path: str,
    force_cli: bool,
    no_fallback: bool,
    max_retries: int | None,
    severities: tuple[str, ...],
    types: tuple[str, ...],
    json_output: bool,
    debug: bool,
) -> None:
    """Scan PATH and summarize the issues the server reports.

    Credentials come from PATH/scanwell.env or the SONAR_URL, SONAR_TOKEN
    and SONAR_PROJECT_KEY environment variables.
    """
    if debug:
        configure_logging(debug=True)

    project_path = Path(path).resolve()
    options = ScanOptions(
        force_cli=force_cli,
        enable_fallback=False if no_fallback else None,
        max_retries=max_retries,
        severities=tuple(s.upper() for s in severities),
        types=tuple(t.upper() for t in types),
    )

    try:
        config = load_scan_config(project_path)
        orchestrator = ScanOrchestrator(config, settings=get_config(), options=options)
        result = await orchestrator.execute(project_path)
    except Exception as e:
        logger.debug("Scan failed", exc_info=True)
        handle_error(e, json_output=json_output)

    if json_output:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        render_scan_result(console, result)


@main.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False), default=".")
@click.option("--json", "json_output", is_flag=True, help="Output results as JSON")
@async_command
async def validate(path: str, json_output: bool) -> None:
    """Detect languages and scanner properties for PATH without scanning."""
    project_path = Path(path).resolve()
    try:
        result = await PreScanValidator().validate(project_path)
    except Exception as e:
        handle_error(e, json_output=json_output)

    if json_output:
        click.echo(json.dumps(result.summary(), indent=2))
    else:
        click.echo(format_validation_output(result))
    if not result.can_proceed:
        sys.exit(EXIT_FATAL)


@main.command()
@click.argument("error_text")
@click.argument("path", type=click.Path(exists=True, file_okay=False), default=".")
@click.option("--json", "json_output", is_flag=True, help="Output results as JSON")
@async_command
async def diagnose(error_text: str, path: str, json_output: bool) -> None:
    """Explain a scanner ERROR_TEXT and suggest a configuration for PATH."""
    project_path = Path(path).resolve()
    try:
        analysis = await ScanFallbackService().analyze(error_text, project_path)
    except Exception as e:
        handle_error(e, json_output=json_output)

    if json_output:
        click.echo(json.dumps(analysis.to_dict(), indent=2))
    else:
        click.echo(format_for_output(analysis))
