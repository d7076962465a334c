"""Tests for the retry controller."""

import pytest
from conftest import FakeSleep

from scanwell.foundation.errors import (
    ErrorCode,
    RetryExhaustedError,
    ScanFailedError,
    ScannerExecutionError,
)
from scanwell.foundation.types.config import RetryConfig
from scanwell.foundation.types.scan import ScanConfig, ScannerStrategy
from scanwell.scanning.retry import RetryPolicy, debug_steps


def _permission_error() -> ScannerExecutionError:
    return ScannerExecutionError(
        "sonar-scanner exited with code 1\nERROR: HTTP 403 Forbidden", strategy="cli"
    )


class TestRetryPolicy:
    """Tests for RetryPolicy.run."""

    @pytest.mark.asyncio
    async def test_success_first_time(self, fake_sleep: FakeSleep) -> None:
        policy = RetryPolicy(sleep=fake_sleep)

        async def attempt(n: int) -> str:
            return f"done on {n}"

        assert await policy.run(attempt) == "done on 1"
        assert policy.attempts == 1
        assert fake_sleep.calls == []

    @pytest.mark.asyncio
    async def test_permission_errors_retry_until_bound(self, fake_sleep: FakeSleep) -> None:
        """max_retries=2 means three attempts and two delays."""
        policy = RetryPolicy(max_retries=2, retry_delay=5.0, sleep=fake_sleep)
        seen: list[int] = []

        async def attempt(n: int) -> None:
            seen.append(n)
            raise _permission_error()

        with pytest.raises(ScannerExecutionError):
            await policy.run(attempt)

        assert seen == [1, 2, 3]
        assert policy.attempts == 3
        assert fake_sleep.calls == [5.0, 5.0]

    @pytest.mark.asyncio
    async def test_recovers_on_second_attempt(self, fake_sleep: FakeSleep) -> None:
        policy = RetryPolicy(sleep=fake_sleep)

        async def attempt(n: int) -> int:
            if n == 1:
                raise RuntimeError("Insufficient privileges")
            return n

        assert await policy.run(attempt) == 2
        assert fake_sleep.calls == [5.0]

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self, fake_sleep: FakeSleep) -> None:
        policy = RetryPolicy(sleep=fake_sleep)
        error = ScannerExecutionError("No sources found", strategy="cli")

        async def attempt(n: int) -> None:
            raise error

        with pytest.raises(ScannerExecutionError) as exc_info:
            await policy.run(attempt)

        assert exc_info.value is error
        assert policy.attempts == 1
        assert fake_sleep.calls == []

    @pytest.mark.asyncio
    async def test_zero_retries(self, fake_sleep: FakeSleep) -> None:
        policy = RetryPolicy.from_config(RetryConfig(max_retries=0), sleep=fake_sleep)

        async def attempt(n: int) -> None:
            raise _permission_error()

        with pytest.raises(ScannerExecutionError):
            await policy.run(attempt)

        assert policy.max_attempts == 1
        assert fake_sleep.calls == []


class TestEnrich:
    """Tests for RetryPolicy.enrich."""

    def test_single_attempt_is_scan_failed(self, scan_config: ScanConfig) -> None:
        error = ScannerExecutionError("java.lang.OutOfMemoryError", strategy="maven")

        enriched = RetryPolicy().enrich(error, 1, scan_config, ScannerStrategy.MAVEN)

        assert isinstance(enriched, ScanFailedError)
        assert enriched.code == ErrorCode.SCAN_FAILED
        assert enriched.cause is error
        assert enriched.raw_message == "java.lang.OutOfMemoryError"
        assert "TOKEN DIAGNOSTICS" not in enriched.message

    def test_exhausted_permission_error(self, scan_config: ScanConfig) -> None:
        enriched = RetryPolicy().enrich(_permission_error(), 3, scan_config, ScannerStrategy.CLI)

        assert isinstance(enriched, RetryExhaustedError)
        assert enriched.message.startswith("Analysis failed after 3 attempts:")
        assert "TOKEN DIAGNOSTICS:" in enriched.message
        assert "- Token: squ_****" in enriched.message
        assert "6. Check the server logs for detailed errors" in enriched.message
        assert scan_config.token not in enriched.message
        assert enriched.context["strategy"] == "cli"
        assert enriched.is_recoverable is False

    def test_debug_steps_use_server(self, scan_config: ScanConfig) -> None:
        steps = debug_steps(scan_config)

        assert len(steps) == 6
        assert f"{scan_config.server_url}/projects" in steps[2]
