"""Summaries computed from fetched results."""

import json
import logging
import math
from collections import Counter
from collections.abc import Iterable, Sequence
from typing import Any

from scanwell.sonar.models import ComponentMeasures, SecurityHotspot, SonarIssue

logger = logging.getLogger(__name__)

# Quality score penalty per issue
QUALITY_WEIGHTS = {"BLOCKER": 100, "CRITICAL": 50, "MAJOR": 20, "MINOR": 5, "INFO": 1}

# Sort order for top issues
SEVERITY_WEIGHTS = {"BLOCKER": 5, "CRITICAL": 4, "MAJOR": 3, "MINOR": 2, "INFO": 1}

PROBABILITY_WEIGHTS = {"HIGH": 3, "MEDIUM": 2, "LOW": 1}

TOP_ISSUES = 10
TOP_HOTSPOTS = 5

CLEAN_CODE_METRICS = {
    "reliability": "reliability_issues",
    "maintainability": "maintainability_issues",
    "security": "security_issues",
}


def severity_weight(severity: str | None) -> int:
    return SEVERITY_WEIGHTS.get(severity or "", 0)


def quality_score(issues: Iterable[SonarIssue]) -> int:
    """0-100; 100 minus a tenth of the summed severity penalties, halves rounded up."""
    penalty = sum(QUALITY_WEIGHTS.get(issue.severity, 0) for issue in issues)
    return max(0, math.floor(100 - penalty / 10 + 0.5))


def count_by(issues: Iterable[SonarIssue], attribute: str) -> dict[str, int]:
    return dict(Counter(getattr(issue, attribute) for issue in issues))


def top_issues(issues: Sequence[SonarIssue], limit: int = TOP_ISSUES) -> list[dict[str, Any]]:
    """Most severe issues first; ties keep server order."""
    ranked = sorted(issues, key=lambda issue: severity_weight(issue.severity), reverse=True)
    return [
        issue.model_dump(include={"key", "severity", "type", "message", "component", "line"})
        for issue in ranked[:limit]
    ]


def hotspot_summary(
    hotspots: Sequence[SecurityHotspot],
    limit: int = TOP_HOTSPOTS,
) -> dict[str, Any] | None:
    """Total, counts per probability, and the riskiest hotspots; None when empty."""
    if not hotspots:
        return None

    by_probability = Counter(h.vulnerability_probability or "MEDIUM" for h in hotspots)
    ranked = sorted(
        hotspots,
        key=lambda h: PROBABILITY_WEIGHTS.get(h.vulnerability_probability or "MEDIUM", 0),
        reverse=True,
    )
    return {
        "total": len(hotspots),
        "by_probability": dict(by_probability),
        "top_hotspots": [
            h.model_dump(
                include={
                    "key",
                    "vulnerability_probability",
                    "security_category",
                    "message",
                    "component",
                    "line",
                    "status",
                }
            )
            for h in ranked[:limit]
        ],
    }


def metric_total(value: str | None) -> int:
    """``total`` from a JSON-valued impact metric; 0 when absent or malformed."""
    if not value:
        return 0
    try:
        parsed = json.loads(value)
    except ValueError:
        logger.debug("Unparseable metric value %r", value)
        return 0
    if not isinstance(parsed, dict):
        return 0
    total = parsed.get("total") or 0
    return total if isinstance(total, int) else 0


def clean_code_metrics(measures: ComponentMeasures | None) -> dict[str, int] | None:
    """Reliability/maintainability/security issue totals; None without measures."""
    if measures is None or not measures.measures:
        return None
    return {name: metric_total(measures.value(metric)) for name, metric in CLEAN_CODE_METRICS.items()}
