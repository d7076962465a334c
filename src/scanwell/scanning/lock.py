"""Per-project analysis lock.

Advisory lock file that keeps two analysis runs from touching the same
project directory at once. Acquisition is an exclusive create of
``<project>/.sonar-analysis.lock``; the file records who holds it and since
when, so a lock left behind by a crashed run can be reclaimed once stale.
"""

import asyncio
import contextlib
import logging
import os
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from pathlib import Path

from scanwell.foundation.errors import LockTimeoutError
from scanwell.foundation.types.config import LockConfig
from scanwell.foundation.types.scan import LockRecord

logger = logging.getLogger(__name__)

LOCK_FILENAME = ".sonar-analysis.lock"


def lock_path_for(project_path: str | Path) -> Path:
    """Location of the lock file for a project directory."""
    return Path(project_path) / LOCK_FILENAME


class AnalysisLock:
    """Acquire and release project lock files.

    Example:
        lock = AnalysisLock()
        async with lock.hold(lock_path_for(project)):
            # ... run the scanner ...

    Contention:
        - A held, fresh lock is polled every ``poll_interval`` seconds
        - A corrupt or stale lock is deleted and acquisition retried at once
        - After ``max_wait`` seconds a LockTimeoutError is raised
    """

    def __init__(
        self,
        stale_threshold: float = 600.0,
        max_wait: float = 120.0,
        poll_interval: float = 2.0,
    ):
        """Initialize lock timing.

        Args:
            stale_threshold: Seconds after which a lock record is reclaimed
            max_wait: Seconds to keep trying before giving up
            poll_interval: Seconds between attempts while the lock is held
        """
        self.stale_threshold = stale_threshold
        self.max_wait = max_wait
        self.poll_interval = poll_interval

    @classmethod
    def from_config(cls, config: LockConfig) -> "AnalysisLock":
        return cls(
            stale_threshold=config.stale_threshold,
            max_wait=config.max_wait,
            poll_interval=config.poll_interval,
        )

    def _try_create(self, lock_path: Path) -> LockRecord:
        """Exclusive create. Raises FileExistsError when already held."""
        record = LockRecord(
            pid=os.getpid(),
            timestamp=datetime.now(UTC),
            project=lock_path.parent.name,
        )
        fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(record.to_json())
        return record

    def _read_record(self, lock_path: Path) -> LockRecord | None:
        """Read the current holder, or None when the file is unreadable or corrupt."""
        try:
            return LockRecord.from_json(lock_path.read_text(encoding="utf-8"))
        except (OSError, ValueError, KeyError, TypeError):
            return None

    def _remove(self, lock_path: Path) -> bool:
        try:
            lock_path.unlink(missing_ok=True)
            return True
        except OSError as e:
            logger.warning("Could not remove lock %s: %s", lock_path, e)
            return False

    async def acquire(self, lock_path: str | Path) -> LockRecord:
        """Acquire the lock, waiting while another live run holds it.

        Args:
            lock_path: Lock file path (see lock_path_for)

        Returns:
            The record written for this holder

        Raises:
            LockTimeoutError: If the lock stays held for max_wait seconds
            OSError: For create failures other than "already exists"
        """
        lock_path = Path(lock_path)
        loop = asyncio.get_running_loop()
        start = loop.time()

        while True:
            elapsed = loop.time() - start
            if elapsed >= self.max_wait:
                raise LockTimeoutError(str(lock_path), elapsed)

            try:
                record = self._try_create(lock_path)
                logger.debug("Acquired analysis lock %s (pid %d)", lock_path, record.pid)
                return record
            except FileExistsError:
                pass

            holder = self._read_record(lock_path)
            if holder is None:
                logger.warning("Removing corrupt analysis lock %s", lock_path)
                if self._remove(lock_path):
                    continue
                await asyncio.sleep(self.poll_interval)
                continue

            age = holder.age_seconds()
            if age > self.stale_threshold:
                logger.warning(
                    "Removing stale analysis lock %s (pid %d, %.0fs old)",
                    lock_path,
                    holder.pid,
                    age,
                )
                if self._remove(lock_path):
                    continue
                await asyncio.sleep(self.poll_interval)
                continue

            logger.info(
                "Analysis already running for %s (pid %d), waiting...",
                holder.project,
                holder.pid,
            )
            await asyncio.sleep(self.poll_interval)

    async def release(self, lock_path: str | Path) -> None:
        """Release the lock. Releasing a lock that is not there is a no-op."""
        lock_path = Path(lock_path)
        try:
            lock_path.unlink()
            logger.debug("Released analysis lock %s", lock_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to release analysis lock %s: %s", lock_path, e)

    @contextlib.asynccontextmanager
    async def hold(self, lock_path: str | Path) -> AsyncIterator[LockRecord]:
        """Hold the lock for the duration of the block."""
        record = await self.acquire(lock_path)
        try:
            yield record
        finally:
            await self.release(lock_path)
