"""Failure classification for the scan retry/recovery loop.

A failed cycle is one of three things:
- RETRYABLE: a transient permission error while attempts remain
- RECOVERABLE: a configuration problem a corrected properties file can fix
- FATAL: everything else

The signature tables are data, versioned so that changes to them show up
in logs and results.
"""

import re
from enum import Enum

SIGNATURES_VERSION = "1"

RETRYABLE_SIGNATURES: tuple[str, ...] = (
    "403",
    "Permission denied",
    "Insufficient privileges",
)

RECOVERABLE_SIGNATURES: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"Unable to find source",
        r"No sources found",
        r"sonar\.sources.*does not exist",
        r"Unable to find.*classes",
        r"sonar\.java\.binaries",
        r"Module.*not found",
        r"Invalid module configuration",
        r"No files nor directories matching",
        r"Unable to determine language",
    )
)


class ErrorClass(str, Enum):
    """Outcome of classifying a failure message."""

    RETRYABLE = "retryable"
    RECOVERABLE = "recoverable"
    FATAL = "fatal"


def is_retryable(message: str) -> bool:
    """Whether ``message`` carries a permission-error signature."""
    lowered = message.lower()
    return any(signature.lower() in lowered for signature in RETRYABLE_SIGNATURES)


def is_recoverable(message: str) -> bool:
    """Whether ``message`` matches a configuration-error signature."""
    return any(pattern.search(message) for pattern in RECOVERABLE_SIGNATURES)


def classify(message: str, attempt: int = 1, max_retries: int = 2) -> ErrorClass:
    """Classify a failure seen on ``attempt`` (1-based).

    Retrying wins only while attempts remain; a permission error on the last
    attempt is classified on its text like any other failure.
    """
    if attempt <= max_retries and is_retryable(message):
        return ErrorClass.RETRYABLE
    if is_recoverable(message):
        return ErrorClass.RECOVERABLE
    return ErrorClass.FATAL
