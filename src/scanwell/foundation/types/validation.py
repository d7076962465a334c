"""Pre-scan validation types."""


from dataclasses import dataclass, field
from typing import Literal

from scanwell.foundation.types.scan import ModuleInfo

Confidence = Literal["high", "medium", "low"]
Severity = Literal["error", "warning", "info"]
ScanQuality = Literal["full", "partial", "degraded"]


@dataclass(frozen=True, slots=True)
class DetectedProperty:
    """A scanner property inferred from the project layout."""

    key: str
    """Property key, e.g. ``sonar.java.binaries``."""

    value: str
    """Detected value."""

    confidence: Confidence
    """How sure the analyzer is."""

    source: str
    """Where the value came from, e.g. ``detected from target/classes``."""


@dataclass(frozen=True, slots=True)
class ValidationWarning:
    """Something the user may want to fix before scanning."""

    code: str
    severity: Severity
    message: str
    suggestion: str | None = None


@dataclass(frozen=True, slots=True)
class LanguageAnalysisResult:
    """What one language analyzer found."""

    detected: bool
    language: str
    version: str | None = None
    build_tool: str | None = None
    modules: tuple[ModuleInfo, ...] = ()
    properties: tuple[DetectedProperty, ...] = ()
    warnings: tuple[ValidationWarning, ...] = ()


@dataclass(frozen=True, slots=True)
class ExistingConfigAnalysis:
    """Comparison of sonar-project.properties with detected properties."""

    exists: bool
    path: str
    properties: dict[str, str] = field(default_factory=dict)
    missing_critical: tuple[str, ...] = ()
    """Critical keys absent from the file but detectable."""

    missing_recommended: tuple[str, ...] = ()
    completeness_score: int = 0
    """0-100; critical keys weigh 60, recommended keys 40."""


@dataclass(frozen=True, slots=True)
class PreScanValidationResult:
    """Aggregate result over every registered language analyzer."""

    languages: tuple[LanguageAnalysisResult, ...]
    detected_properties: tuple[DetectedProperty, ...]
    missing_critical: tuple[str, ...]
    missing_recommended: tuple[str, ...]
    warnings: tuple[ValidationWarning, ...]
    scan_quality: ScanQuality
    can_proceed: bool = True
    existing_config: ExistingConfigAnalysis | None = None

    def properties_map(self) -> dict[str, str]:
        """Detected properties keyed by name; later analyzers win on conflict."""
        return {prop.key: prop.value for prop in self.detected_properties}

    def summary(self) -> dict[str, object]:
        """Compact form attached to scan results."""
        existing = self.existing_config
        return {
            "scan_quality": self.scan_quality,
            "detected_languages": [lang.language for lang in self.languages],
            "warnings": len(self.warnings),
            "config_completeness": existing.completeness_score if existing else None,
            "missing_critical": list(existing.missing_critical) if existing else [],
            "detected_properties": [
                {"key": p.key, "value": p.value, "confidence": p.confidence}
                for p in self.detected_properties
            ],
        }
