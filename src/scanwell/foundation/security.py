"""Input sanitization and secret masking.

Everything that ends up on a scanner command line or in a log line passes
through here first. Scanner processes are spawned without a shell, so the
metacharacter check rejects input rather than escaping it.
"""

import re
from urllib.parse import urlparse

from scanwell.foundation.errors import ValidationError

_MASK_VISIBLE = 4
_MASK_MIN_LENGTH = 8

_PROJECT_KEY_RE = re.compile(r"^[a-zA-Z0-9._:-]+$")
_PROJECT_KEY_MAX = 400

_SHELL_META_RE = re.compile(r"[;&|`$(){}<>]")
_CONTROL_CHARS_RE = re.compile(r"[\0\r\n]")


def mask_token(token: str | None) -> str:
    """Mask a token for display: first four characters plus a fixed suffix.

    The masked form never reveals the token length.

    >>> mask_token("squ_abcdef123456")
    'squ_****'
    """
    if not token or len(token) < _MASK_MIN_LENGTH:
        return "[INVALID_TOKEN]"
    return f"{token[:_MASK_VISIBLE]}****"


def sanitize_command_args(args: list[str] | tuple[str, ...]) -> list[str]:
    """Strip control characters and reject shell metacharacters.

    Raises:
        ValidationError: If any argument contains a shell metacharacter
    """
    cleaned: list[str] = []
    for arg in args:
        value = _CONTROL_CHARS_RE.sub("", str(arg))
        if _SHELL_META_RE.search(value):
            raise ValidationError(
                "scanner argument",
                f"'{_display_arg(value)}' contains a shell metacharacter",
                unsafe=True,
            )
        cleaned.append(value)
    return cleaned


def sanitize_project_key(key: str) -> str:
    """Validate a server project key.

    Raises:
        ValidationError: If the key is empty, too long or has invalid characters
    """
    key = key.strip()
    if not key:
        raise ValidationError("project key", "must not be empty")
    if len(key) > _PROJECT_KEY_MAX:
        raise ValidationError("project key", f"longer than {_PROJECT_KEY_MAX} characters")
    if not _PROJECT_KEY_RE.match(key):
        raise ValidationError(
            "project key", f"'{key}' may only contain letters, digits, '.', '_', ':' and '-'"
        )
    return key


def sanitize_url(url: str) -> str:
    """Validate an analysis server URL and drop any trailing slash."""
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("server URL", f"'{url}' must be an http(s) URL")
    return url.strip().rstrip("/")


def mask_param(param: str) -> str:
    """Mask credential values inside a ``-Dkey=value`` argument for display."""
    if not param.startswith("-D") or "=" not in param:
        return _display_arg(param)
    key, value = param[2:].split("=", 1)
    lowered = key.lower()
    if "token" in lowered or "login" in lowered or "password" in lowered:
        return f"-D{key}=****"
    return _display_arg(f"-D{key}={value}")


def _display_arg(value: str, limit: int = 100) -> str:
    return value if len(value) <= limit else value[:limit] + "..."
