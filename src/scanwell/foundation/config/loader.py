"""Scanwell configuration management.

Loads configuration from .scanwell/config.yaml with sensible defaults.
All settings can be overridden via environment variables (SCANWELL_*).

Config locations (in priority order):
1. Explicit path passed to load_config()
2. .scanwell/config.yaml (project-local)
3. ~/.scanwell/config.yaml (user-global)
4. Built-in defaults

Thread Safety:
    Uses threading.Lock for thread-safe lazy initialization.
"""


import logging
import os
import threading
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from scanwell.foundation.errors import ErrorCode, config_error
from scanwell.foundation.types.config import (
    LockConfig,
    PollConfig,
    RetryConfig,
    ScannerConfig,
    ServerConfig,
)

logger = logging.getLogger(__name__)

_SECTIONS: dict[str, type] = {
    "retry": RetryConfig,
    "lock": LockConfig,
    "poll": PollConfig,
    "scanner": ScannerConfig,
    "server": ServerConfig,
}


@dataclass(frozen=True, slots=True)
class ScanwellConfig:
    """Root configuration for Scanwell."""

    retry: RetryConfig = field(default_factory=RetryConfig)
    """Retry controller settings."""

    lock: LockConfig = field(default_factory=LockConfig)
    """Analysis lock settings."""

    poll: PollConfig = field(default_factory=PollConfig)
    """Completion poller settings."""

    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    """Scanner selection and process settings."""

    server: ServerConfig = field(default_factory=ServerConfig)
    """Analysis server client settings."""


# Global config instance (lazy-loaded, thread-safe)
_config: ScanwellConfig | None = None
_config_lock = threading.Lock()


def _get_dataclass_defaults() -> dict[str, dict[str, Any]]:
    """Get defaults from dataclass definitions (single source of truth)."""
    return {name: asdict(cls()) for name, cls in _SECTIONS.items()}


def _deep_update(base: dict, updates: dict) -> dict:
    """Recursively update a dict with another dict."""
    for key, value in updates.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_update(base[key], value)
        else:
            base[key] = value
    return base


def _coerce(value: str) -> bool | int | float | str:
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    if value.isdigit() or (value.startswith("-") and value[1:].isdigit()):
        return int(value)
    try:
        return float(value)
    except ValueError:
        return value


def _apply_env_overrides(config_dict: dict, environ: dict[str, str] | None = None) -> dict:
    """Apply environment variable overrides.

    Environment variables follow pattern: SCANWELL_SECTION_KEY

    Examples:
        SCANWELL_RETRY_MAX_RETRIES=4
        SCANWELL_LOCK_MAX_WAIT=300
        SCANWELL_SCANNER_FORCE_CLI=true

    FORCE_CLI_SCANNER=true is honoured as an alias for scanner.force_cli.
    """
    env = os.environ if environ is None else environ
    prefix = "SCANWELL_"

    for key, value in env.items():
        if not key.startswith(prefix):
            continue

        path_str = key[len(prefix):].lower()
        for section, cls in _SECTIONS.items():
            if not path_str.startswith(section + "_"):
                continue
            option = path_str[len(section) + 1:]
            if option not in {f.name for f in fields(cls)}:
                logger.debug("Ignoring unknown config override %s", key)
                break
            config_dict.setdefault(section, {})[option] = _coerce(value)
            break

    if env.get("FORCE_CLI_SCANNER", "").lower() == "true":
        config_dict.setdefault("scanner", {})["force_cli"] = True

    return config_dict


def _dict_to_config(data: dict) -> ScanwellConfig:
    """Convert a dict to ScanwellConfig."""
    sections: dict[str, Any] = {}
    for name, cls in _SECTIONS.items():
        section = dict(data.get(name) or {})
        known = {f.name for f in fields(cls)}
        unknown = set(section) - known
        if unknown:
            raise config_error(
                ErrorCode.CONFIG_INVALID,
                key=f"{name}.{sorted(unknown)[0]}",
                detail="unknown option",
            )
        if "issue_statuses" in section:
            section["issue_statuses"] = tuple(section["issue_statuses"])
        sections[name] = cls(**section)

    mode = sections["scanner"].library_path_mode
    if mode not in ("absolute", "relative", "glob"):
        raise config_error(
            ErrorCode.CONFIG_INVALID,
            key="scanner.library_path_mode",
            detail=f"'{mode}' is not one of absolute, relative, glob",
        )
    if sections["retry"].max_retries < 0:
        raise config_error(
            ErrorCode.CONFIG_INVALID, key="retry.max_retries", detail="must be >= 0"
        )

    return ScanwellConfig(**sections)


def load_config(
    path: str | Path | None = None,
    *,
    environ: dict[str, str] | None = None,
) -> ScanwellConfig:
    """Load configuration from file with defaults and env overrides.

    Priority (highest to lowest):
    1. Environment variables (SCANWELL_*)
    2. Explicit path if provided
    3. .scanwell/config.yaml (project-local)
    4. ~/.scanwell/config.yaml (user-global)
    5. Built-in defaults

    Args:
        path: Optional explicit config file path.
        environ: Environment mapping (default: os.environ).

    Returns:
        Merged ScanwellConfig instance.
    """
    global _config

    config_dict: dict[str, Any] = _get_dataclass_defaults()

    config_paths = []
    if path:
        config_paths.append(Path(path))
    config_paths.extend([
        Path(".scanwell/config.yaml"),
        Path.home() / ".scanwell" / "config.yaml",
    ])

    for config_path in config_paths:
        if config_path.exists():
            try:
                with open(config_path) as f:
                    file_config = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                logger.warning("Skipping unreadable config %s: %s", config_path, e)
                continue
            if isinstance(file_config, dict):
                _deep_update(config_dict, file_config)
                logger.debug("Loaded config from %s", config_path)
                break

    config_dict = _apply_env_overrides(config_dict, environ)

    _config = _dict_to_config(config_dict)
    return _config


def get_config() -> ScanwellConfig:
    """Get the current configuration, loading if needed.

    Thread-safe with double-check locking.
    """
    global _config

    if _config is not None:
        return _config

    with _config_lock:
        if _config is None:
            _config = load_config()
        return _config


def reset_config() -> None:
    """Reset the global config (useful for testing)."""
    global _config
    with _config_lock:
        _config = None
