"""Base class for language analyzers.

Each analyzer answers two questions about a project directory:
- Is this language present? (``detect``)
- Which scanner properties can be inferred from the layout? (``analyze``)

Analyzers never raise out of ``detect``/``analyze``. A failing analyzer
turns into a single warning so one broken build file cannot stop the scan.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from scanwell.foundation.types.scan import ModuleInfo
from scanwell.foundation.types.validation import (
    Confidence,
    DetectedProperty,
    LanguageAnalysisResult,
    Severity,
    ValidationWarning,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LanguageFindings:
    """Mutable accumulator filled in by ``analyze_language``."""

    properties: list[DetectedProperty] = field(default_factory=list)
    warnings: list[ValidationWarning] = field(default_factory=list)
    modules: list[ModuleInfo] = field(default_factory=list)
    version: str | None = None
    build_tool: str | None = None

    def add_property(self, key: str, value: str, confidence: Confidence, source: str) -> None:
        self.properties.append(DetectedProperty(key, value, confidence, source))

    def warn(
        self,
        code: str,
        severity: Severity,
        message: str,
        suggestion: str | None = None,
    ) -> None:
        self.warnings.append(ValidationWarning(code, severity, message, suggestion))


class LanguageAnalyzer(ABC):
    """Detects one language and infers its scanner properties."""

    language: str = ""
    """Identifier reported in results (java, python, ...)."""

    critical_properties: tuple[str, ...] = ("sonar.sources",)
    """Properties without which the analysis is wrong or empty."""

    recommended_properties: tuple[str, ...] = ()
    """Properties that improve the analysis when present."""

    @abstractmethod
    def detect_language(self, project_path: Path) -> bool:
        """Whether the project uses this language (build-file sniffing)."""
        ...

    @abstractmethod
    async def analyze_language(self, project_path: Path) -> LanguageFindings:
        """Infer properties for a project where the language was detected."""
        ...

    async def detect(self, project_path: Path) -> bool:
        try:
            return self.detect_language(project_path)
        except OSError as e:
            logger.debug("%s detection failed: %s", self.language, e)
            return False

    async def analyze(self, project_path: Path) -> LanguageAnalysisResult:
        if not await self.detect(project_path):
            return LanguageAnalysisResult(detected=False, language=self.language)

        try:
            findings = await self.analyze_language(project_path)
        except Exception as e:
            logger.warning("Error analyzing %s project: %s", self.language, e)
            return LanguageAnalysisResult(
                detected=True,
                language=self.language,
                warnings=(
                    ValidationWarning(
                        code=f"{self.language.upper()}-ERR-001",
                        severity="warning",
                        message=f"Error analyzing {self.language} project: {e}",
                        suggestion="Check project structure and try again",
                    ),
                ),
            )

        return LanguageAnalysisResult(
            detected=True,
            language=self.language,
            version=findings.version,
            build_tool=findings.build_tool,
            modules=tuple(findings.modules),
            properties=tuple(findings.properties),
            warnings=tuple(findings.warnings),
        )


# Filesystem helpers

def read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def read_json(path: Path) -> dict[str, Any] | None:
    content = read_text(path)
    if not content:
        return None
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def existing(project_path: Path, candidates: tuple[str, ...]) -> list[str]:
    """The candidates that exist under ``project_path``, in order."""
    return [c for c in candidates if (project_path / c).exists()]


def first_existing(project_path: Path, candidates: tuple[str, ...]) -> str | None:
    return next((c for c in candidates if (project_path / c).exists()), None)

