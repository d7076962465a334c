"""Scanner error parsing.

Turns raw scanner output into a category, a suggested fix and the
properties that are probably missing. Categories are tried in order and the
first match wins.
"""

import re
from dataclasses import dataclass

from scanwell.foundation.types.scan import ErrorCategory, ParsedScanError


@dataclass(frozen=True, slots=True)
class _ErrorPattern:
    category: ErrorCategory
    pattern: re.Pattern[str]
    suggested_fix: str
    missing_parameters: tuple[str, ...] = ()
    path_pattern: re.Pattern[str] | None = None
    """Extracts an affected module/pattern name from the message."""


_PATTERNS: tuple[_ErrorPattern, ...] = (
    _ErrorPattern(
        ErrorCategory.SOURCES_NOT_FOUND,
        re.compile(
            r"Unable to find source files|No sources found|sonar\.sources.*does not exist"
            r"|No source files found",
            re.IGNORECASE,
        ),
        "Configure sonar.sources with the correct source directory path",
        ("sonar.sources",),
    ),
    _ErrorPattern(
        ErrorCategory.BINARY_PATH_MISSING,
        re.compile(
            r"Unable to find.*classes|sonar\.java\.binaries.*does not exist"
            r"|No compiled classes found|Your project contains.*but sonar\.java\.binaries",
            re.IGNORECASE,
        ),
        "Run build first (mvn compile / gradle build) and configure sonar.java.binaries",
        ("sonar.java.binaries",),
    ),
    _ErrorPattern(
        ErrorCategory.MODULE_CONFIG_ERROR,
        re.compile(
            r"Module.*not found|Invalid module configuration|Unrecognized module"
            r"|Unable to load module|sonar\.modules.*invalid",
            re.IGNORECASE,
        ),
        "Review multi-module configuration in sonar-project.properties",
        ("sonar.modules",),
        re.compile(r"module[:\s]+['\"]?([^'\"]+)['\"]?", re.IGNORECASE),
    ),
    _ErrorPattern(
        ErrorCategory.EXCLUSION_PATTERN_ERROR,
        re.compile(r"Invalid exclusion pattern|Exclusion.*error|Pattern.*is not valid", re.IGNORECASE),
        "Fix exclusion pattern syntax (use **/*.ext format)",
        ("sonar.exclusions",),
        re.compile(r"pattern[:\s]+['\"]?([^'\"]+)['\"]?", re.IGNORECASE),
    ),
    _ErrorPattern(
        ErrorCategory.LANGUAGE_NOT_DETECTED,
        re.compile(
            r"No files nor directories matching|Unable to determine language"
            r"|No analyzable files|Language not supported",
            re.IGNORECASE,
        ),
        "Verify source files exist and configure language-specific parameters",
        ("sonar.language", "sonar.sources"),
    ),
    _ErrorPattern(
        ErrorCategory.PERMISSION_DENIED,
        re.compile(
            r"403|Permission denied|Insufficient privileges|Access denied|Not authorized",
            re.IGNORECASE,
        ),
        "Check token permissions or regenerate with admin rights",
    ),
    _ErrorPattern(
        ErrorCategory.SCANNER_NOT_FOUND,
        re.compile(
            r"sonar-scanner.*not found|command not found.*sonar|Cannot find sonar-scanner",
            re.IGNORECASE,
        ),
        "Install SonarQube Scanner: brew install sonar-scanner (macOS) "
        "or apt-get install sonar-scanner-cli (Linux)",
    ),
)

RECOVERABLE_CATEGORIES = frozenset({
    ErrorCategory.SOURCES_NOT_FOUND,
    ErrorCategory.BINARY_PATH_MISSING,
    ErrorCategory.MODULE_CONFIG_ERROR,
    ErrorCategory.EXCLUSION_PATTERN_ERROR,
    ErrorCategory.LANGUAGE_NOT_DETECTED,
})

RECOMMENDATIONS: dict[ErrorCategory, str] = {
    ErrorCategory.SOURCES_NOT_FOUND: (
        "Save the suggested template as sonar-project.properties with the correct source paths."
    ),
    ErrorCategory.BINARY_PATH_MISSING: (
        "Build the project first, then set sonar.java.binaries in sonar-project.properties."
    ),
    ErrorCategory.MODULE_CONFIG_ERROR: (
        "Configure sonar.modules and one block per module in sonar-project.properties."
    ),
    ErrorCategory.EXCLUSION_PATTERN_ERROR: (
        "Correct the sonar.exclusions patterns in sonar-project.properties."
    ),
    ErrorCategory.LANGUAGE_NOT_DETECTED: (
        "Set the language and sources explicitly in sonar-project.properties."
    ),
    ErrorCategory.PERMISSION_DENIED: (
        "Regenerate the token with 'Execute Analysis' permission and update scanwell.env."
    ),
    ErrorCategory.SCANNER_NOT_FOUND: "Install the sonar-scanner CLI before running a scan.",
    ErrorCategory.UNKNOWN: (
        "Review the error details and adapt the suggested template to the project."
    ),
}

_QUOTED_PATH_RE = re.compile(r"['\"]([/\\][^'\"]+)['\"]")
_ABSOLUTE_PATH_RE = re.compile(r"(?:/[\w.-]+)+|(?:[A-Z]:\\[\w.\\-]+)+", re.IGNORECASE)


class ScanErrorParser:
    """Categorizes scanner error output."""

    def parse(self, message: str) -> ParsedScanError:
        for entry in _PATTERNS:
            if not entry.pattern.search(message):
                continue
            affected: tuple[str, ...] = ()
            if entry.path_pattern and (match := entry.path_pattern.search(message)):
                affected = (match.group(1),)
            return ParsedScanError(
                category=entry.category,
                original_message=message,
                suggested_fix=entry.suggested_fix,
                missing_parameters=entry.missing_parameters,
                affected_paths=affected,
            )
        return ParsedScanError(
            category=ErrorCategory.UNKNOWN,
            original_message=message,
            suggested_fix="Review the error message and check SonarQube documentation",
        )

    def is_recoverable(self, error: ParsedScanError) -> bool:
        """Whether a corrected configuration can fix ``error``."""
        return error.category in RECOVERABLE_CATEGORIES

    def recommendation(self, error: ParsedScanError) -> str:
        return RECOMMENDATIONS[error.category]

    def extract_paths(self, message: str) -> list[str]:
        """Quoted and absolute paths mentioned in ``message``, deduplicated in order."""
        found = _QUOTED_PATH_RE.findall(message) + _ABSOLUTE_PATH_RE.findall(message)
        return list(dict.fromkeys(found))
