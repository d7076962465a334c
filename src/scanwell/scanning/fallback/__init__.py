"""Configuration recovery for scans that failed on a configuration error."""

from scanwell.scanning.fallback.parser import RECOVERABLE_CATEGORIES, ScanErrorParser
from scanwell.scanning.fallback.service import (
    ScanFallbackService,
    format_for_output,
    suggested_template,
)
from scanwell.scanning.fallback.structure import ProjectStructureAnalyzer

__all__ = [
    "RECOVERABLE_CATEGORIES",
    "ProjectStructureAnalyzer",
    "ScanErrorParser",
    "ScanFallbackService",
    "format_for_output",
    "suggested_template",
]
