"""Analysis server access: HTTP client, completion polling and result summaries."""

from scanwell.sonar.cache import TTLCache
from scanwell.sonar.client import (
    DEFAULT_HOTSPOT_STATUSES,
    DEFAULT_METRICS,
    IssueFilter,
    SonarClient,
)
from scanwell.sonar.models import (
    CeTask,
    ComponentMeasures,
    RuleDetails,
    SecurityHotspot,
    SonarIssue,
)
from scanwell.sonar.poller import CompletionPoller, wait_for_cache_refresh

__all__ = [
    "DEFAULT_HOTSPOT_STATUSES",
    "DEFAULT_METRICS",
    "CeTask",
    "CompletionPoller",
    "ComponentMeasures",
    "IssueFilter",
    "RuleDetails",
    "SecurityHotspot",
    "SonarClient",
    "SonarIssue",
    "TTLCache",
    "wait_for_cache_refresh",
]
