"""Configuration type definitions - single source of truth for all config classes."""


from dataclasses import dataclass, field
from typing import Literal

LibraryPathMode = Literal["absolute", "relative", "glob"]


@dataclass(frozen=True, slots=True)
class RetryConfig:
    """Retry behaviour for transient (permission-class) scan failures."""

    max_retries: int = 2
    """Retries after the first attempt; total attempts are max_retries + 1."""

    retry_delay: float = 5.0
    """Seconds to sleep before rerunning a failed attempt."""


@dataclass(frozen=True, slots=True)
class LockConfig:
    """Per-project analysis lock timing."""

    stale_threshold: float = 600.0
    """A lock record older than this many seconds is reclaimed."""

    max_wait: float = 120.0
    """Give up acquiring after this many seconds."""

    poll_interval: float = 2.0
    """Sleep between acquisition attempts while the lock is held."""


@dataclass(frozen=True, slots=True)
class PollConfig:
    """Server-side job completion polling."""

    timeout: float = 60.0
    """Seconds before the wait fails with an analysis timeout."""

    interval: float = 2.0
    """Seconds between status checks."""

    cache_refresh: bool = True
    """Wait for the server's issue index to settle after success."""

    cache_min_wait: float = 5.0
    """Minimum seconds to wait for the issue index."""

    cache_max_wait: float = 15.0
    """Maximum seconds to wait for the issue index."""


@dataclass(frozen=True, slots=True)
class ScannerConfig:
    """Scanner selection and process limits."""

    force_cli: bool = False
    """Always use the generic scanner CLI, skipping build-tool plugins."""

    enable_fallback: bool = True
    """Produce a recovery analysis for recoverable failures."""

    native_timeout: float = 600.0
    """Timeout for Maven/Gradle plugin runs, in seconds."""

    cli_timeout: float = 300.0
    """Timeout for sonar-scanner runs, in seconds."""

    library_path_mode: LibraryPathMode = "relative"
    """How java.libraries paths are written to sonar-project.properties."""


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """Analysis server HTTP client settings."""

    request_timeout: float = 30.0
    """Per-request timeout in seconds."""

    page_size: int = 500
    """Issues per page (the server maximum)."""

    rule_cache_ttl: float = 300.0
    """Seconds a fetched rule description stays cached."""

    issue_statuses: tuple[str, ...] = field(default=("OPEN", "REOPENED"))
    """Issue statuses fetched by default."""
