"""Scanner process execution.

Scanner and build-tool processes are started without a shell; arguments go
straight to the executable, so no quoting is involved.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from scanwell.foundation.errors import ScannerNotFoundError, ScannerTimeoutError

logger = logging.getLogger(__name__)

OUTPUT_TAIL = 500


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Completed process."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def combined(self) -> str:
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


@runtime_checkable
class ScannerRunner(Protocol):
    """Runs an external command to completion."""

    async def run(
        self,
        command: str,
        args: list[str] | tuple[str, ...],
        *,
        cwd: Path,
        timeout: float,
    ) -> ProcessResult:
        """Run ``command`` with ``args`` in ``cwd``.

        Raises:
            ScannerNotFoundError: If the executable does not exist
            ScannerTimeoutError: If the process exceeds ``timeout`` seconds
        """
        ...


class SubprocessRunner:
    """ScannerRunner backed by asyncio subprocesses."""

    async def run(
        self,
        command: str,
        args: list[str] | tuple[str, ...],
        *,
        cwd: Path,
        timeout: float,
    ) -> ProcessResult:
        try:
            proc = await asyncio.create_subprocess_exec(
                command,
                *args,
                cwd=str(cwd),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=dict(os.environ),
            )
        except FileNotFoundError as e:
            raise ScannerNotFoundError(command, cause=e) from e
        except PermissionError as e:
            # Non-executable gradlew lands here; keep the text the remediation matches on
            return ProcessResult(returncode=126, stdout="", stderr=f"{command}: Permission denied ({e})")

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except TimeoutError:
            proc.kill()
            await proc.wait()
            raise ScannerTimeoutError(command, timeout) from None

        result = ProcessResult(
            returncode=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )
        logger.debug("%s exited with %d", command, result.returncode)
        return result


def tail(text: str, limit: int = OUTPUT_TAIL) -> str:
    """Last ``limit`` characters of scanner output."""
    return text[-limit:] if len(text) > limit else text
