"""Rich rendering of scan results."""

from rich.console import Console
from rich.table import Table

from scanwell.interface.cli.core.theme import SEVERITY_ORDER, score_style, severity_style
from scanwell.scanning.orchestrator import ScanResult


def _severity_table(result: ScanResult) -> Table:
    table = Table(title="Issues by severity", header_style="scan.label", title_justify="left")
    table.add_column("Severity")
    table.add_column("Count", justify="right")
    ordered = sorted(
        result.issues_by_severity.items(),
        key=lambda item: SEVERITY_ORDER.index(item[0]) if item[0] in SEVERITY_ORDER else 99,
    )
    for severity, count in ordered:
        table.add_row(f"[{severity_style(severity)}]{severity}[/]", str(count))
    return table


def _top_issues_table(result: ScanResult) -> Table:
    table = Table(title="Top issues", header_style="scan.label", title_justify="left")
    table.add_column("Severity")
    table.add_column("Type")
    table.add_column("Location")
    table.add_column("Message", overflow="fold")
    for issue in result.top_issues:
        component = issue.get("component") or ""
        location = component.split(":", 1)[-1]
        if issue.get("line"):
            location = f"{location}:{issue['line']}"
        severity = issue.get("severity") or ""
        table.add_row(
            f"[{severity_style(severity)}]{severity}[/]",
            issue.get("type") or "",
            location,
            issue.get("message") or "",
        )
    return table


def render_scan_result(console: Console, result: ScanResult) -> None:
    """Print a scan summary: score, counts, hotspots and the top issues."""
    context = result.project_context
    scanner = result.scanner_type.value
    if result.fallback_used:
        scanner += " (fallback)"
    elif result.scanner_forced:
        scanner += " (forced)"

    console.print()
    console.print(f"[scan.heading]{result.project_key}[/]  [scan.muted]{context.path}[/]")
    console.print(f"  [scan.label]Scanner:[/] {scanner}    [scan.label]Config:[/] {result.config_source}")
    if context.languages:
        console.print(f"  [scan.label]Languages:[/] {', '.join(sorted(context.languages))}")
    if result.attempts > 1:
        console.print(f"  [scan.label]Attempts:[/] {result.attempts}")
    if result.properties_file:
        console.print(f"  [scan.label]Saved configuration:[/] {result.properties_file}")

    score = result.quality_score
    console.print(
        f"\n  [scan.label]Quality score:[/] [{score_style(score)}]{score}/100[/]"
        f"    [scan.label]Issues:[/] {result.total_issues}"
    )

    if result.clean_code_metrics:
        metrics = "  ".join(f"{name}: {count}" for name, count in result.clean_code_metrics.items())
        console.print(f"  [scan.label]Clean code:[/] {metrics}")

    if result.security_hotspots:
        by_probability = result.security_hotspots["by_probability"]
        summary = ", ".join(f"{count} {prob}" for prob, count in by_probability.items())
        console.print(
            f"  [scan.label]Security hotspots:[/] {result.security_hotspots['total']} ({summary})"
        )

    if result.issues_by_severity:
        console.print()
        console.print(_severity_table(result))
    if result.top_issues:
        console.print()
        console.print(_top_issues_table(result))
    console.print()
