"""Console theme for scanwell output."""

from rich.console import Console
from rich.theme import Theme

# =============================================================================
# THEME
# =============================================================================

SCANWELL_THEME = Theme({
    # Outcome
    "scan.success": "bold green",
    "scan.warning": "yellow",
    "scan.error": "bold red",
    "scan.recoverable": "bold yellow",

    # Text hierarchy
    "scan.heading": "bold white",
    "scan.label": "cyan",
    "scan.muted": "dim",

    # Severities
    "severity.blocker": "bold red",
    "severity.critical": "red",
    "severity.major": "yellow",
    "severity.minor": "cyan",
    "severity.info": "dim",
})

SEVERITY_ORDER = ("BLOCKER", "CRITICAL", "MAJOR", "MINOR", "INFO")


def severity_style(severity: str | None) -> str:
    """Theme style for an issue severity."""
    if not severity or severity.upper() not in SEVERITY_ORDER:
        return "scan.muted"
    return f"severity.{severity.lower()}"


def score_style(score: int) -> str:
    """Theme style for a 0-100 quality score."""
    if score >= 80:
        return "scan.success"
    elif score >= 50:
        return "scan.warning"
    return "scan.error"


# =============================================================================
# CONSOLE FACTORY
# =============================================================================

def create_console(*, stderr: bool = False) -> Console:
    """Create a Rich console with the scanwell theme."""
    return Console(theme=SCANWELL_THEME, stderr=stderr)
