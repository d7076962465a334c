"""Per-project server credentials.

Read from ``scanwell.env`` in the project root (``KEY=value`` lines, ``#``
comments) and overridden by the process environment:

    SONAR_URL=https://sonar.example.com
    SONAR_TOKEN=squ_...
    SONAR_PROJECT_KEY=my-project
    CREATED_AT=2026-01-01T00:00:00Z
"""

import logging
import os
from pathlib import Path

from scanwell.foundation.errors import ErrorCode, config_error
from scanwell.foundation.security import sanitize_project_key, sanitize_url
from scanwell.foundation.types.scan import ScanConfig

logger = logging.getLogger(__name__)

CREDENTIALS_FILE = "scanwell.env"

_REQUIRED = ("SONAR_URL", "SONAR_TOKEN", "SONAR_PROJECT_KEY")


def _parse_env_file(path: Path) -> dict[str, str]:
    values: dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        values[key.strip()] = value.strip().strip('"').strip("'")
    return values


def load_scan_config(
    project_path: str | Path,
    *,
    environ: dict[str, str] | None = None,
) -> ScanConfig:
    """Load the connection settings for a project.

    Raises:
        ScanwellError: CONFIG_MISSING when a required value is absent,
            INVALID_ARGUMENT when the URL or project key is malformed.
    """
    env = os.environ if environ is None else environ
    values: dict[str, str] = {}

    env_file = Path(project_path) / CREDENTIALS_FILE
    if env_file.is_file():
        try:
            values.update(_parse_env_file(env_file))
        except OSError as e:
            raise config_error(
                ErrorCode.CONFIG_INVALID, key=CREDENTIALS_FILE, detail=str(e)
            ) from e

    for key in (*_REQUIRED, "CREATED_AT"):
        if env.get(key):
            values[key] = env[key]

    for key in _REQUIRED:
        if not values.get(key):
            raise config_error(
                ErrorCode.CONFIG_MISSING,
                key=key,
                detail=f"Add it to {env_file} or export it.",
            )

    config = ScanConfig(
        server_url=sanitize_url(values["SONAR_URL"]),
        token=values["SONAR_TOKEN"],
        project_key=sanitize_project_key(values["SONAR_PROJECT_KEY"]),
        created_at=values.get("CREATED_AT", ""),
    )
    logger.debug("Loaded scan config %r", config)
    return config
