"""Pre-scan validation.

Runs every registered language analyzer over the project, merges what they
detect, and compares it with an existing sonar-project.properties. The
result feeds the executor's "detected properties" and is attached to the
scan result. Validation is advisory: ``can_proceed`` is always True.
"""

import logging
from pathlib import Path

from scanwell.foundation.types.validation import (
    DetectedProperty,
    LanguageAnalysisResult,
    PreScanValidationResult,
    ScanQuality,
    ValidationWarning,
)
from scanwell.scanning.runner import ScannerRunner
from scanwell.scanning.validation.base import LanguageAnalyzer
from scanwell.scanning.validation.cpp import CppAnalyzer
from scanwell.scanning.validation.existing import ExistingConfigValidator
from scanwell.scanning.validation.go import GoAnalyzer
from scanwell.scanning.validation.java import JavaAnalyzer
from scanwell.scanning.validation.javascript import JavaScriptAnalyzer
from scanwell.scanning.validation.python import PythonAnalyzer

logger = logging.getLogger(__name__)

_MAX_VALUE_WIDTH = 50
_SEVERITY_PREFIX = {"error": "[ERROR]", "warning": "[WARN]", "info": "[INFO]"}


def default_analyzers(runner: ScannerRunner | None = None) -> list[LanguageAnalyzer]:
    return [
        JavaAnalyzer(runner),
        PythonAnalyzer(),
        JavaScriptAnalyzer(),
        GoAnalyzer(),
        CppAnalyzer(),
    ]


class PreScanValidator:
    """Aggregates language analyzers into one validation result."""

    def __init__(
        self,
        runner: ScannerRunner | None = None,
        analyzers: list[LanguageAnalyzer] | None = None,
        existing: ExistingConfigValidator | None = None,
    ):
        self._analyzers: dict[str, LanguageAnalyzer] = {}
        for analyzer in analyzers if analyzers is not None else default_analyzers(runner):
            self.register_analyzer(analyzer)
        self.existing = existing or ExistingConfigValidator()

    def register_analyzer(self, analyzer: LanguageAnalyzer) -> None:
        """Add or replace the analyzer for ``analyzer.language``."""
        self._analyzers[analyzer.language] = analyzer

    @property
    def registered_languages(self) -> list[str]:
        return list(self._analyzers)

    async def validate(self, project_path: Path) -> PreScanValidationResult:
        languages: list[LanguageAnalysisResult] = []
        properties: list[DetectedProperty] = []
        warnings: list[ValidationWarning] = []
        critical: list[str] = []
        recommended: list[str] = []

        for analyzer in self._analyzers.values():
            try:
                if not await analyzer.detect(project_path):
                    continue
                result = await analyzer.analyze(project_path)
            except Exception as e:
                logger.warning("Analyzer %s failed: %s", analyzer.language, e)
                warnings.append(ValidationWarning(
                    code="ANALYZER_ERROR",
                    severity="warning",
                    message=f"Analyzer {analyzer.language} failed: {e}",
                    suggestion="Check project structure and permissions",
                ))
                continue
            languages.append(result)
            properties.extend(result.properties)
            warnings.extend(result.warnings)
            critical.extend(analyzer.critical_properties)
            recommended.extend(analyzer.recommended_properties)

        critical = list(dict.fromkeys(critical))
        recommended = list(dict.fromkeys(recommended))
        existing = self.existing.validate(project_path, properties, critical, recommended)

        present = {prop.key for prop in properties}
        missing_critical = tuple(k for k in critical if k not in present)
        missing_recommended = tuple(k for k in recommended if k not in present)

        result = PreScanValidationResult(
            languages=tuple(languages),
            detected_properties=tuple(properties),
            missing_critical=missing_critical,
            missing_recommended=missing_recommended,
            warnings=tuple(warnings),
            scan_quality=scan_quality(languages, missing_critical, warnings),
            can_proceed=True,
            existing_config=existing if existing.exists else None,
        )
        logger.info(
            "Pre-scan validation: %d language(s), %d properties, quality=%s",
            len(languages),
            len(properties),
            result.scan_quality,
        )
        return result


def scan_quality(
    languages: list[LanguageAnalysisResult],
    missing_critical: tuple[str, ...],
    warnings: list[ValidationWarning],
) -> ScanQuality:
    if not languages:
        return "degraded"
    if missing_critical or any(w.severity == "error" for w in warnings):
        return "partial"
    return "full"


def format_validation_output(result: PreScanValidationResult) -> str:
    """Plain-text report of a validation result."""
    lines = ["PRE-SCAN VALIDATION RESULTS", "=" * 28, ""]

    if not result.languages:
        lines.append("No languages detected in this project")
    else:
        lines.append("Languages Detected:")
        for lang in result.languages:
            version = f" {lang.version}" if lang.version else ""
            build = f" ({lang.build_tool})" if lang.build_tool else ""
            modules = f" - {len(lang.modules)} modules" if len(lang.modules) > 1 else ""
            lines.append(f"  - {lang.language}{version}{build}{modules}")
    lines.append("")

    if result.detected_properties:
        lines.append("DETECTED PROPERTIES:")
        for prop in result.detected_properties:
            value = prop.value
            if len(value) > _MAX_VALUE_WIDTH:
                value = value[: _MAX_VALUE_WIDTH - 3] + "..."
            lines.append(f"  {prop.key} = {value} [confidence: {prop.confidence}]")
        lines.append("")

    if result.warnings:
        lines.append("WARNINGS (scan will proceed):")
        for warning in result.warnings:
            lines.append(f"  {_SEVERITY_PREFIX[warning.severity]} {warning.code}: {warning.message}")
            if warning.suggestion:
                lines.append(f"    Suggestion: {warning.suggestion}")
        lines.append("")

    if existing := result.existing_config:
        lines.append("CONFIG ANALYSIS (sonar-project.properties exists):")
        lines.append(f"  Completeness: {existing.completeness_score}%")
        if existing.missing_critical:
            lines.append("  Missing critical (will be added automatically):")
            lines.extend(f"    - {key}" for key in existing.missing_critical)
        if existing.missing_recommended:
            lines.append("  Recommended additions:")
            lines.extend(f"    - {key}" for key in existing.missing_recommended)
        lines.append("")

    lines.append(f"Scan Quality: {result.scan_quality.upper()}")
    lines.append(f"Can Proceed: {'YES' if result.can_proceed else 'NO'}")
    return "\n".join(lines)
