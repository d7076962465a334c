"""Scanwell Error System.

Provides structured error handling with:
- Numeric error codes for programmatic handling
- User-friendly messages
- Recovery hints for self-healing
- Context for debugging

Every failure that leaves the scan engine is a ScanwellError. Typed
subclasses exist for the failures callers branch on (lock timeout,
recoverable scan failure, exhausted retries, server-side job states).
"""


from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Numeric error codes organized by category.

    Format: XYYY where X = category, YYY = specific error

    Categories:
        1xxx - Scanner errors
        2xxx - Lock errors
        3xxx - Analysis server errors
        4xxx - Validation/Configuration errors
        5xxx - Network/IO errors
        9xxx - Internal errors
    """

    # 1xxx - Scanner Errors
    SCANNER_NOT_FOUND = 1001
    SCANNER_EXECUTION_FAILED = 1002
    SCANNER_TIMEOUT = 1003
    COMPILATION_REQUIRED = 1004
    SCAN_RECOVERABLE = 1005
    SCAN_FAILED = 1006
    RETRY_EXHAUSTED = 1007

    # 2xxx - Lock Errors
    LOCK_TIMEOUT = 2001
    LOCK_IO_ERROR = 2002

    # 3xxx - Analysis Server Errors
    ANALYSIS_FAILED = 3001
    ANALYSIS_CANCELED = 3002
    ANALYSIS_TIMEOUT = 3003
    SERVER_PERMISSION_DENIED = 3004
    PROJECT_NOT_FOUND = 3005
    SERVER_AUTH_FAILED = 3006
    SERVER_API_ERROR = 3007

    # 4xxx - Validation/Configuration Errors
    INVALID_ARGUMENT = 4001
    UNSAFE_ARGUMENT = 4002
    CONFIG_MISSING = 4101
    CONFIG_INVALID = 4102

    # 5xxx - Network/IO Errors
    NETWORK_UNREACHABLE = 5001
    NETWORK_TIMEOUT = 5002
    FILE_WRITE_FAILED = 5003

    # 9xxx - Internal Errors
    INTERNAL_ERROR = 9001

    @property
    def category(self) -> str:
        """Get the error category name."""
        prefix = self.value // 1000
        return {
            1: "scanner",
            2: "lock",
            3: "server",
            4: "config",
            5: "io",
            9: "internal",
        }.get(prefix, "unknown")

    @property
    def is_recoverable(self) -> bool:
        """Whether this error type is typically recoverable."""
        non_recoverable = {
            ErrorCode.LOCK_TIMEOUT,
            ErrorCode.SCAN_FAILED,
            ErrorCode.RETRY_EXHAUSTED,
            ErrorCode.ANALYSIS_CANCELED,
            ErrorCode.SERVER_AUTH_FAILED,
            ErrorCode.PROJECT_NOT_FOUND,
            ErrorCode.UNSAFE_ARGUMENT,
            ErrorCode.CONFIG_MISSING,
            ErrorCode.CONFIG_INVALID,
        }
        return self not in non_recoverable


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    # Scanner errors
    ErrorCode.SCANNER_NOT_FOUND: "Scanner executable '{command}' not found.",
    ErrorCode.SCANNER_EXECUTION_FAILED: "Analysis failed: {detail}",
    ErrorCode.SCANNER_TIMEOUT: "Scanner '{command}' timed out after {timeout}s.",
    ErrorCode.COMPILATION_REQUIRED: (
        "Java project must be compiled before analysis. "
        "No compiled classes found (expected {expected}). Run '{command}' first."
    ),
    ErrorCode.SCAN_RECOVERABLE: "Analysis failed with a recoverable configuration error: {detail}",
    ErrorCode.SCAN_FAILED: "Analysis failed after {attempts} attempt(s): {detail}",
    ErrorCode.RETRY_EXHAUSTED: "Analysis failed after {attempts} attempts: {detail}",

    # Lock errors
    ErrorCode.LOCK_TIMEOUT: (
        "Timed out after {waited}s waiting for analysis lock '{path}'. "
        "Another analysis is running for this project."
    ),
    ErrorCode.LOCK_IO_ERROR: "Cannot create analysis lock '{path}': {detail}",

    # Server errors
    ErrorCode.ANALYSIS_FAILED: "Analysis failed: {detail}",
    ErrorCode.ANALYSIS_CANCELED: "Analysis was canceled",
    ErrorCode.ANALYSIS_TIMEOUT: "Analysis timeout after {timeout}s",
    ErrorCode.SERVER_PERMISSION_DENIED: (
        "Permission denied (HTTP 403) while {operation} for project '{project_key}'."
    ),
    ErrorCode.PROJECT_NOT_FOUND: "Project '{project_key}' not found when {operation}.",
    ErrorCode.SERVER_AUTH_FAILED: (
        "Authentication failed (HTTP 401) for {server_url} using token {masked_token}."
    ),
    ErrorCode.SERVER_API_ERROR: "Analysis server error while {operation}: {detail}",

    # Validation/config errors
    ErrorCode.INVALID_ARGUMENT: "Invalid {field}: {detail}",
    ErrorCode.UNSAFE_ARGUMENT: "Unsafe scanner argument rejected: {detail}",
    ErrorCode.CONFIG_MISSING: "Missing configuration value '{key}'. {detail}",
    ErrorCode.CONFIG_INVALID: "Invalid configuration value for '{key}': {detail}",

    # IO errors
    ErrorCode.NETWORK_UNREACHABLE: "Cannot reach analysis server at {url}.",
    ErrorCode.NETWORK_TIMEOUT: "Request to {url} timed out after {timeout}s.",
    ErrorCode.FILE_WRITE_FAILED: "Failed to write '{path}': {detail}",

    # Internal errors
    ErrorCode.INTERNAL_ERROR: "Unexpected error: {detail}",
}


# Recovery hints for each error type
RECOVERY_HINTS: dict[ErrorCode, list[str]] = {
    ErrorCode.SCANNER_NOT_FOUND: [
        "Install the scanner: npm install -g sonarqube-scanner, or download sonar-scanner",
        "Make sure '{command}' is on your PATH",
        "Use --force-cli to skip build-tool plugins",
    ],
    ErrorCode.SCANNER_EXECUTION_FAILED: [
        "Check the scanner output above for the failing step",
        "Run 'scanwell diagnose \"<error text>\"' for a suggested configuration",
    ],
    ErrorCode.SCANNER_TIMEOUT: [
        "Increase scanner.native_timeout or scanner.cli_timeout in .scanwell/config.yaml",
        "Narrow sonar.sources or add sonar.exclusions for large generated folders",
    ],
    ErrorCode.COMPILATION_REQUIRED: [
        "Run '{command}' in the project directory",
        "Or add a sonar-project.properties with sonar.java.binaries pointing at your classes",
    ],
    ErrorCode.SCAN_RECOVERABLE: [
        "Review the suggested sonar-project.properties template",
        "Save it in the project root and run the scan again",
    ],
    ErrorCode.RETRY_EXHAUSTED: [
        "Verify the token has 'Execute Analysis' permission on the project",
        "Check the project key matches the server project exactly",
    ],
    ErrorCode.LOCK_TIMEOUT: [
        "Wait for the running analysis to finish",
        "If no analysis is running, delete '{path}'",
    ],
    ErrorCode.ANALYSIS_FAILED: [
        "Open the project's background tasks page on the server for the full log",
    ],
    ErrorCode.ANALYSIS_TIMEOUT: [
        "The server may be busy; check its background task queue",
        "Increase poll.timeout in .scanwell/config.yaml",
    ],
    ErrorCode.SERVER_PERMISSION_DENIED: [
        "Grant the token 'Browse' and 'Execute Analysis' permissions on the project",
        "Generate a new token with sufficient privileges",
    ],
    ErrorCode.PROJECT_NOT_FOUND: [
        "Check SONAR_PROJECT_KEY in scanwell.env",
        "Create the project on the server first",
    ],
    ErrorCode.SERVER_AUTH_FAILED: [
        "Regenerate the token and update SONAR_TOKEN",
    ],
    ErrorCode.UNSAFE_ARGUMENT: [
        "Remove shell metacharacters from project properties",
    ],
    ErrorCode.CONFIG_MISSING: [
        "Set {key} in scanwell.env or the environment",
    ],
    ErrorCode.CONFIG_INVALID: [
        "Check .scanwell/config.yaml and scanwell.env for typos",
    ],
    ErrorCode.NETWORK_UNREACHABLE: [
        "Check that the analysis server is running and SONAR_URL is correct",
    ],
    ErrorCode.NETWORK_TIMEOUT: [
        "Retry when the server is less busy",
        "Increase server.request_timeout in .scanwell/config.yaml",
    ],
    ErrorCode.INTERNAL_ERROR: [
        "Run again with --debug for the full traceback",
    ],
}


class ScanwellError(Exception):
    """Structured error with code, context, and recovery hints.

    Designed for:
    - Programmatic handling (error codes)
    - User display (message, hints)
    - Debugging (context, cause)

    Example:
        >>> err = ScanwellError(
        ...     code=ErrorCode.ANALYSIS_TIMEOUT,
        ...     context={"timeout": 60},
        ... )
        >>> print(err)
        [SCN-3003] Analysis timeout after 60s
    """

    def __init__(
        self,
        code: ErrorCode,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        self.code = code
        self.context = context or {}
        self.cause = cause
        super().__init__(str(self))

    @property
    def message(self) -> str:
        """Get the formatted user-friendly message."""
        template = ERROR_MESSAGES.get(self.code, "An error occurred: {detail}")
        try:
            return template.format(**self.context)
        except KeyError:
            return template

    @property
    def raw_message(self) -> str:
        """The unenriched failure text (scanner output or server message)."""
        raw = self.context.get("raw")
        return raw if isinstance(raw, str) and raw else self.message

    @property
    def recovery_hints(self) -> list[str]:
        """Get recovery suggestions for this error."""
        formatted = []
        for hint in RECOVERY_HINTS.get(self.code, []):
            try:
                formatted.append(hint.format(**self.context))
            except KeyError:
                formatted.append(hint)
        return formatted

    @property
    def is_recoverable(self) -> bool:
        """Whether this error is typically recoverable."""
        return self.code.is_recoverable

    @property
    def category(self) -> str:
        """Get the error category."""
        return self.code.category

    @property
    def error_id(self) -> str:
        """Get the error ID string (e.g., 'SCN-2001')."""
        return f"SCN-{self.code.value}"

    def __str__(self) -> str:
        return f"[{self.error_id}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, context={self.context!r})"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict for logging/JSON output."""
        return {
            "error_id": self.error_id,
            "code": self.code.value,
            "category": self.category,
            "message": self.message,
            "recoverable": self.is_recoverable,
            "recovery_hints": self.recovery_hints,
            "context": {k: v for k, v in self.context.items() if _is_plain(v)},
        }

    def for_llm(self) -> str:
        """Format error for an assistant consuming scan output.

        Provides structured information to:
        - Understand what went wrong
        - Choose a recovery strategy
        - Avoid the same error
        """
        parts = [
            f"ERROR {self.error_id}: {self.message}",
            f"Category: {self.category}",
            f"Recoverable: {self.is_recoverable}",
        ]

        if self.recovery_hints:
            parts.append("Recovery options:")
            for i, hint in enumerate(self.recovery_hints, 1):
                parts.append(f"  {i}. {hint}")

        return "\n".join(parts)


def _is_plain(value: Any) -> bool:
    return isinstance(value, str | int | float | bool | list | tuple | dict) or value is None


# Typed errors callers branch on

class ScannerNotFoundError(ScanwellError):
    """The scanner or build-tool executable is not installed."""

    def __init__(self, command: str, cause: Exception | None = None):
        super().__init__(ErrorCode.SCANNER_NOT_FOUND, {"command": command}, cause)


class ScannerExecutionError(ScanwellError):
    """A scanner process exited unsuccessfully.

    ``raw`` keeps the scanner's own output for classification; ``detail`` is
    the raw text followed by strategy-specific remediation.
    """

    def __init__(
        self,
        raw: str,
        *,
        strategy: str,
        solution: str = "",
        cause: Exception | None = None,
    ):
        detail = f"{raw}\n\n{solution}" if solution else raw
        super().__init__(
            ErrorCode.SCANNER_EXECUTION_FAILED,
            {"raw": raw, "detail": detail, "strategy": strategy},
            cause,
        )

    @property
    def strategy(self) -> str:
        return self.context["strategy"]


class ScannerTimeoutError(ScanwellError):
    """A scanner process exceeded its time limit."""

    def __init__(self, command: str, timeout: float):
        super().__init__(
            ErrorCode.SCANNER_TIMEOUT,
            {"command": command, "timeout": timeout, "raw": f"{command} timeout after {timeout}s"},
        )


class CompilationRequiredError(ScanwellError):
    """A JVM project has no compiled classes yet."""

    def __init__(self, expected: str, command: str):
        super().__init__(
            ErrorCode.COMPILATION_REQUIRED, {"expected": expected, "command": command}
        )


class LockTimeoutError(ScanwellError):
    """The per-project analysis lock could not be acquired in time."""

    def __init__(self, path: str, waited: float):
        super().__init__(ErrorCode.LOCK_TIMEOUT, {"path": path, "waited": round(waited, 1)})


class AnalysisFailedError(ScanwellError):
    """The server-side analysis job ended in FAILED."""

    def __init__(self, detail: str):
        super().__init__(ErrorCode.ANALYSIS_FAILED, {"detail": detail, "raw": detail})


class AnalysisCanceledError(ScanwellError):
    """The server-side analysis job was canceled."""

    def __init__(self) -> None:
        super().__init__(ErrorCode.ANALYSIS_CANCELED)


class AnalysisTimeoutError(ScanwellError):
    """No terminal job state was observed within the poll timeout."""

    def __init__(self, timeout: float):
        super().__init__(ErrorCode.ANALYSIS_TIMEOUT, {"timeout": timeout})


class ServerPermissionError(ScanwellError):
    """HTTP 403 from the analysis server."""

    def __init__(self, project_key: str, operation: str, steps: list[str]):
        self.steps = "\n".join(f"{i}. {step}" for i, step in enumerate(steps, 1))
        super().__init__(
            ErrorCode.SERVER_PERMISSION_DENIED,
            {"project_key": project_key, "operation": operation},
        )

    @property
    def message(self) -> str:
        base = super().message
        return f"{base}\n{self.steps}" if self.steps else base


class ProjectNotFoundError(ScanwellError):
    """HTTP 404 for the configured project key."""

    def __init__(self, project_key: str, operation: str):
        super().__init__(
            ErrorCode.PROJECT_NOT_FOUND, {"project_key": project_key, "operation": operation}
        )


class AuthenticationError(ScanwellError):
    """HTTP 401 from the analysis server. Only the masked token is kept."""

    def __init__(self, server_url: str, masked_token: str):
        super().__init__(
            ErrorCode.SERVER_AUTH_FAILED,
            {"server_url": server_url, "masked_token": masked_token},
        )


class ScanFailedError(ScanwellError):
    """A scan failed with a fatal, non-recoverable error."""

    def __init__(self, attempts: int, detail: str, cause: Exception | None = None):
        super().__init__(ErrorCode.SCAN_FAILED, {"attempts": attempts, "detail": detail}, cause)


class RetryExhaustedError(ScanwellError):
    """Retryable failures persisted through every allowed attempt."""

    def __init__(self, attempts: int, detail: str, cause: Exception | None = None):
        super().__init__(
            ErrorCode.RETRY_EXHAUSTED, {"attempts": attempts, "detail": detail}, cause
        )


class ScanRecoverableError(ScanwellError):
    """A scan failed in a way a corrected configuration can fix.

    ``fallback_analysis`` holds the parsed error, the detected project
    structure and a suggested sonar-project.properties template.
    """

    def __init__(self, detail: str, fallback_analysis: Any, cause: Exception | None = None):
        super().__init__(ErrorCode.SCAN_RECOVERABLE, {"detail": detail, "raw": detail}, cause)
        self.fallback_analysis = fallback_analysis


class ValidationError(ScanwellError):
    """Input rejected before it reaches a subprocess or the server."""

    def __init__(self, field: str, detail: str, *, unsafe: bool = False):
        code = ErrorCode.UNSAFE_ARGUMENT if unsafe else ErrorCode.INVALID_ARGUMENT
        super().__init__(code, {"field": field, "detail": detail})


class ConfigError(ScanwellError):
    """Missing or invalid configuration (credentials file, config.yaml)."""

    @property
    def key(self) -> str:
        return self.context.get("key", "")


# Convenience factory functions

def scanner_error(
    command: str,
    detail: str,
    cause: Exception | None = None,
) -> ScanwellError:
    """Create a scanner execution error for a non-strategy subprocess."""
    return ScanwellError(
        code=ErrorCode.SCANNER_EXECUTION_FAILED,
        context={"command": command, "detail": detail, "raw": detail},
        cause=cause,
    )


def config_error(
    code: ErrorCode,
    key: str = "",
    detail: str = "",
) -> ConfigError:
    """Create a configuration error."""
    return ConfigError(code=code, context={"key": key, "detail": detail})


def server_error(
    operation: str,
    detail: str,
    cause: Exception | None = None,
    **extra: Any,
) -> ScanwellError:
    """Create a generic analysis-server error."""
    return ScanwellError(
        code=ErrorCode.SERVER_API_ERROR,
        context={"operation": operation, "detail": detail, "raw": detail, **extra},
        cause=cause,
    )


def error_text(error: BaseException) -> str:
    """Plain failure text used for retry and recovery classification."""
    if isinstance(error, ScanwellError):
        return error.raw_message
    return str(error)
