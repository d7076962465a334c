"""Retry controller for scan cycles.

Permission errors right after a project is created are often transient (the
server is still setting up the project's permissions), so those are retried
after a delay. Everything else goes straight back to the caller.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from scanwell.foundation.errors import (
    RetryExhaustedError,
    ScanFailedError,
    ScanwellError,
    error_text,
)
from scanwell.foundation.types.config import RetryConfig
from scanwell.foundation.types.scan import ScanConfig, ScannerStrategy
from scanwell.scanning import classifier

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _describe(error: BaseException) -> str:
    if isinstance(error, ScanwellError):
        return error.context.get("detail") or error.message
    return str(error)


def debug_steps(config: ScanConfig) -> list[str]:
    """Numbered checks for a permission failure that survived every retry."""
    return [
        "Wait 30 seconds and try again (the project may still be initializing)",
        "Check token permissions on the server (Administration > Security > Users)",
        f"Verify the project exists: {config.server_url}/projects",
        f"Test the API directly: curl -u TOKEN: {config.server_url}/api/projects/search",
        "Regenerate the token with 'Execute Analysis' permission and update scanwell.env",
        "Check the server logs for detailed errors",
    ]


class RetryPolicy:
    """Reruns whole scan attempts on transient permission errors.

    Attempts run 1..max_retries + 1. ``attempts`` holds the number of the
    last attempt started, so a caller handling the final failure can report
    how many were made.
    """

    def __init__(
        self,
        max_retries: int = 2,
        retry_delay: float = 5.0,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._sleep = sleep
        self.attempts = 0

    @classmethod
    def from_config(cls, config: RetryConfig, **kwargs) -> "RetryPolicy":
        return cls(max_retries=config.max_retries, retry_delay=config.retry_delay, **kwargs)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def is_retryable(self, error: BaseException, attempt: int) -> bool:
        """Permission-class failure with attempts remaining."""
        return attempt <= self.max_retries and classifier.is_retryable(error_text(error))

    async def run(self, attempt_fn: Callable[[int], Awaitable[T]]) -> T:
        """Run ``attempt_fn(attempt)`` until it succeeds or fails for good.

        Raises:
            Exception: The failure of the last attempt, unchanged
        """
        attempt = 1
        while True:
            self.attempts = attempt
            logger.info("Starting analysis (attempt %d/%d)", attempt, self.max_attempts)
            try:
                return await attempt_fn(attempt)
            except Exception as e:
                if not self.is_retryable(e, attempt):
                    raise
                logger.warning(
                    "Attempt %d failed with a permission error, retrying in %ss: %s",
                    attempt,
                    self.retry_delay,
                    error_text(e).splitlines()[0] if error_text(e) else type(e).__name__,
                )
                await self._sleep(self.retry_delay)
                attempt += 1

    def enrich(
        self,
        error: BaseException,
        attempt: int,
        config: ScanConfig,
        strategy: ScannerStrategy,
    ) -> ScanwellError:
        """Turn a final failure into a fatal error carrying diagnostics.

        Returns RetryExhaustedError when at least one retry was spent,
        ScanFailedError otherwise. Permission failures get TOKEN DIAGNOSTICS
        and numbered DEBUG STEPS appended to the detail.
        """
        detail = _describe(error)
        if classifier.is_retryable(error_text(error)):
            lines = [
                detail,
                "",
                "TOKEN DIAGNOSTICS:",
                f"- Strategy: {strategy.value}",
                f"- Project Key: {config.project_key}",
                f"- Server URL: {config.server_url}",
                f"- Token: {config.masked_token}",
                "",
                "DEBUG STEPS:",
                *(f"{i}. {step}" for i, step in enumerate(debug_steps(config), 1)),
            ]
            detail = "\n".join(lines)

        cause = error if isinstance(error, Exception) else None
        if attempt > 1:
            enriched: ScanwellError = RetryExhaustedError(attempt, detail, cause)
        else:
            enriched = ScanFailedError(attempt, detail, cause)
        enriched.context.update({
            "raw": error_text(error),
            "strategy": strategy.value,
            "project_key": config.project_key,
            "server_url": config.server_url,
            "masked_token": config.masked_token,
        })
        return enriched
