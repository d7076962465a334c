"""Core scan types shared by the executor, lock, selector and fallback analyzer."""


import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from scanwell.foundation.security import mask_token


class ScannerStrategy(str, Enum):
    """Way of invoking the analysis for a project."""

    MAVEN = "maven"
    GRADLE = "gradle"
    CLI = "cli"

    @property
    def is_native(self) -> bool:
        """Build-tool plugin strategies (Maven, Gradle)."""
        return self is not ScannerStrategy.CLI


@dataclass(frozen=True, slots=True)
class ProjectContext:
    """Read-only snapshot of what was detected about a project."""

    path: Path
    """Absolute project root."""

    name: str
    """Project directory name."""

    languages: frozenset[str] = frozenset()
    """Lower-case language identifiers (java, typescript, python, ...)."""

    frameworks: tuple[str, ...] = ()
    """Detected frameworks, informational only."""

    build_tool: str | None = None
    """maven, gradle, npm, ... or None when unknown."""

    package_manager: str | None = None
    """npm, yarn, pnpm, pip, ... or None."""

    def has_language(self, *names: str) -> bool:
        """True when any of ``names`` is among the detected languages."""
        detected = {lang.lower() for lang in self.languages}
        return any(name.lower() in detected for name in names)


@dataclass(frozen=True, slots=True)
class ScanConfig:
    """Connection settings for one project. Never mutated after load."""

    server_url: str
    """Analysis server base URL without trailing slash."""

    token: str
    """Authentication token. Only ever displayed masked."""

    project_key: str
    """Server-side project key."""

    created_at: str = ""
    """When the project was registered (ISO 8601), informational."""

    def __repr__(self) -> str:
        return (
            f"ScanConfig(server_url={self.server_url!r}, token={mask_token(self.token)!r}, "
            f"project_key={self.project_key!r})"
        )

    @property
    def masked_token(self) -> str:
        return mask_token(self.token)


@dataclass(frozen=True, slots=True)
class ScannerInvocation:
    """A fully built scanner command line."""

    strategy: ScannerStrategy
    command: str
    args: tuple[str, ...]

    @property
    def sonar_params(self) -> list[str]:
        """Only the ``-Dsonar.*`` arguments."""
        return [a for a in self.args if a.startswith("-Dsonar.")]


@dataclass(frozen=True, slots=True)
class LockRecord:
    """Contents of a project's analysis lock file."""

    pid: int
    """Process that holds the lock."""

    timestamp: datetime
    """When the lock was taken (timezone-aware)."""

    project: str
    """Basename of the locked project directory."""

    def to_json(self) -> str:
        return json.dumps({
            "pid": self.pid,
            "timestamp": self.timestamp.isoformat(),
            "project": self.project,
        })

    @classmethod
    def from_json(cls, text: str) -> "LockRecord":
        """Parse a lock file. Raises ValueError/KeyError/TypeError on corrupt content."""
        data = json.loads(text)
        timestamp = datetime.fromisoformat(data["timestamp"])
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=UTC)
        return cls(pid=int(data["pid"]), timestamp=timestamp, project=str(data["project"]))

    def age_seconds(self, now: datetime | None = None) -> float:
        return ((now or datetime.now(UTC)) - self.timestamp).total_seconds()


class ErrorCategory(str, Enum):
    """Scan failure categories, in matching priority order."""

    SOURCES_NOT_FOUND = "SOURCES_NOT_FOUND"
    BINARY_PATH_MISSING = "BINARY_PATH_MISSING"
    MODULE_CONFIG_ERROR = "MODULE_CONFIG_ERROR"
    EXCLUSION_PATTERN_ERROR = "EXCLUSION_PATTERN_ERROR"
    LANGUAGE_NOT_DETECTED = "LANGUAGE_NOT_DETECTED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    SCANNER_NOT_FOUND = "SCANNER_NOT_FOUND"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True, slots=True)
class ParsedScanError:
    """A scanner error message broken down into something actionable."""

    category: ErrorCategory
    original_message: str
    suggested_fix: str
    missing_parameters: tuple[str, ...] = ()
    affected_paths: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ModuleInfo:
    """A build module discovered under the project root."""

    name: str
    path: str
    """Path relative to the project root ('.' for the root)."""

    build_tool: str | None = None
    languages: tuple[str, ...] = ()
    source_dirs: tuple[str, ...] = ()
    test_dirs: tuple[str, ...] = ()
    binary_dirs: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class LanguageInfo:
    """File census for one language."""

    language: str
    file_count: int
    extensions: tuple[str, ...]
    percentage: float


@dataclass(frozen=True, slots=True)
class ProjectStructure:
    """Result of walking a project to propose a configuration."""

    root_path: str
    project_type: str
    """'single' or 'multi-module'."""

    modules: tuple[ModuleInfo, ...] = ()
    languages: tuple[LanguageInfo, ...] = ()
    build_files: tuple[str, ...] = ()
    config_files: tuple[str, ...] = ()
    directory_tree: str = ""
    suggested_exclusions: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class FallbackAnalysisResult:
    """Everything a user needs to fix a recoverable scan failure."""

    parsed_error: ParsedScanError
    project_structure: ProjectStructure
    suggested_template: str
    recoverable: bool
    recommendation: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_category": self.parsed_error.category.value,
            "suggested_fix": self.parsed_error.suggested_fix,
            "missing_parameters": list(self.parsed_error.missing_parameters),
            "project_type": self.project_structure.project_type,
            "modules": [m.name for m in self.project_structure.modules],
            "languages": [lang.language for lang in self.project_structure.languages],
            "suggested_template": self.suggested_template,
            "recoverable": self.recoverable,
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True, slots=True)
class ExecutionOutcome:
    """What the cascading executor actually ran."""

    strategy: ScannerStrategy
    """Strategy of the invocation that succeeded."""

    params: tuple[str, ...]
    """``-Dsonar.*`` parameters of that invocation."""

    fell_back: bool = False
    """True when a native attempt failed and the CLI run succeeded."""

    output: str = ""
    """Tail of the scanner output."""

    tried: tuple[ScannerStrategy, ...] = field(default=())
    """Strategies attempted, in order."""
