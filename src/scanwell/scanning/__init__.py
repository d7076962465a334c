"""Scan execution and recovery.

Strategy selection, the per-project lock, parameter building, the cascading
executor, retry and recovery classification, and the orchestrator that ties
them together.
"""

from scanwell.scanning.executor import AnalysisExecutor
from scanwell.scanning.orchestrator import (
    ScanOptions,
    ScanOrchestrator,
    ScanResult,
    build_scan_result,
)
from scanwell.scanning.retry import RetryPolicy

__all__ = [
    "AnalysisExecutor",
    "RetryPolicy",
    "ScanOptions",
    "ScanOrchestrator",
    "ScanResult",
    "build_scan_result",
]
