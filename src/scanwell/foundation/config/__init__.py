"""Configuration loading."""

from scanwell.foundation.config.credentials import CREDENTIALS_FILE, load_scan_config
from scanwell.foundation.config.loader import (
    ScanwellConfig,
    get_config,
    load_config,
    reset_config,
)

__all__ = [
    "CREDENTIALS_FILE",
    "ScanwellConfig",
    "get_config",
    "load_config",
    "load_scan_config",
    "reset_config",
]
