"""Server-side completion polling.

After the scanner uploads its report, the server processes it in a
background task. ``CompletionPoller.wait`` blocks until that task reaches a
terminal state; ``wait_for_cache_refresh`` then waits for the issue index to
settle so the results fetched next reflect the new analysis.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from scanwell.foundation.errors import (
    AnalysisCanceledError,
    AnalysisFailedError,
    AnalysisTimeoutError,
)
from scanwell.foundation.types.config import PollConfig
from scanwell.sonar.client import SonarClient
from scanwell.sonar.models import CeTask

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class CompletionPoller:
    """Polls the project's latest background task until it finishes.

    - SUCCESS returns the task
    - FAILED raises AnalysisFailedError with the server's error message
    - CANCELED raises AnalysisCanceledError
    - no task yet, or any other status, keeps polling
    - no terminal state within ``timeout`` raises AnalysisTimeoutError

    HTTP errors (403, 404, 401) propagate from the client unchanged.
    """

    def __init__(
        self,
        client: SonarClient,
        project_key: str | None = None,
        timeout: float = 60.0,
        interval: float = 2.0,
        *,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.project_key = project_key or client.project_key
        self.timeout = timeout
        self.interval = interval
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_config(cls, client: SonarClient, config: PollConfig, **kwargs) -> "CompletionPoller":
        return cls(client, timeout=config.timeout, interval=config.interval, **kwargs)

    async def wait(self) -> CeTask:
        deadline = self._clock() + self.timeout
        logger.info("Waiting for analysis of %s (timeout %ss)", self.project_key, self.timeout)

        while self._clock() < deadline:
            task = await self.client.get_latest_task()
            if task is None:
                logger.debug("No analysis task yet")
            elif task.status == "SUCCESS":
                logger.info("Analysis completed")
                return task
            elif task.status == "FAILED":
                raise AnalysisFailedError(task.error_message or "Unknown error")
            elif task.status == "CANCELED":
                raise AnalysisCanceledError()
            else:
                logger.debug("Analysis task %s", task.status)
            await self._sleep(self.interval)

        raise AnalysisTimeoutError(self.timeout)


async def wait_for_cache_refresh(
    fetch_count: Callable[[], Awaitable[int]],
    min_wait: float = 5.0,
    max_wait: float = 15.0,
    interval: float = 2.0,
    *,
    sleep: Sleep = asyncio.sleep,
) -> bool:
    """Wait until two consecutive issue counts match.

    Always waits ``min_wait`` first, then checks every ``interval`` seconds
    until ``max_wait`` has elapsed. Fetch failures only extend the wait.

    Returns:
        True when the count stabilized, False when the wait timed out
    """
    await sleep(min_wait)
    waited = min_wait
    previous: int | None = None

    while waited < max_wait:
        try:
            current = await fetch_count()
        except Exception as e:
            logger.debug("Issue count unavailable (%s), waiting longer", e)
        else:
            logger.debug("Issue count %d (previous %s)", current, previous)
            if previous is not None and current == previous:
                logger.info("Issue index settled at %d issues", current)
                return True
            previous = current
        await sleep(interval)
        waited += interval

    logger.info("Issue index did not settle after %.0fs, continuing", waited)
    return False
