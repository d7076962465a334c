"""Scan orchestration.

The full workflow for one project:

1. Detect the project context and run pre-scan validation (best effort)
2. Run scan cycles under the retry policy; a cycle is executor trigger
   (lock, strategy cascade), completion poll and issue-index settle
3. On failure: persist the last parameters, then raise either a
   ScanRecoverableError carrying a fallback analysis or an enriched fatal error
4. On success: persist the parameters (CLI runs only), fetch issues,
   hotspots and metrics, and summarize them into a ScanResult
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from scanwell.foundation.config.loader import ScanwellConfig, get_config
from scanwell.foundation.errors import (
    CompilationRequiredError,
    LockTimeoutError,
    ScannerNotFoundError,
    ScanRecoverableError,
    ScanwellError,
    ValidationError,
    error_text,
)
from scanwell.foundation.types.scan import (
    ExecutionOutcome,
    ProjectContext,
    ScanConfig,
    ScannerStrategy,
)
from scanwell.foundation.types.validation import PreScanValidationResult
from scanwell.scanning import classifier
from scanwell.scanning.context import detect_project_context
from scanwell.scanning.executor import AnalysisExecutor
from scanwell.scanning.fallback import ScanFallbackService
from scanwell.scanning.lock import AnalysisLock
from scanwell.scanning.params.builder import ParameterBuilder
from scanwell.scanning.properties import ConfigPersister
from scanwell.scanning.retry import RetryPolicy
from scanwell.scanning.runner import ScannerRunner, SubprocessRunner
from scanwell.scanning.validation import PreScanValidator
from scanwell.sonar import results
from scanwell.sonar.client import IssueFilter, SonarClient
from scanwell.sonar.models import ComponentMeasures, SecurityHotspot
from scanwell.sonar.poller import CompletionPoller, wait_for_cache_refresh

logger = logging.getLogger(__name__)

ConfigSource = Literal["properties-file", "auto-detected", "cli-params"]

# Never reclassified: their own messages and hints are the useful output
_PASS_THROUGH = (LockTimeoutError, CompilationRequiredError, ScannerNotFoundError, ValidationError)


@dataclass(frozen=True, slots=True)
class ScanOptions:
    """Per-run overrides of the loaded configuration."""

    force_cli: bool = False
    """Use sonar-scanner even for Maven/Gradle projects."""

    enable_fallback: bool | None = None
    """Produce a recovery analysis for recoverable failures (None: config)."""

    max_retries: int | None = None
    """Override retry.max_retries."""

    retry_delay: float | None = None
    """Override retry.retry_delay."""

    severities: tuple[str, ...] = ()
    """Only fetch issues of these severities."""

    types: tuple[str, ...] = ()
    """Only fetch issues of these types. SECURITY_HOTSPOT is ignored here."""


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Summary of a completed scan."""

    project_key: str
    total_issues: int
    issues_by_severity: dict[str, int]
    issues_by_type: dict[str, int]
    quality_score: int
    top_issues: list[dict[str, Any]]
    project_context: ProjectContext
    scanner_type: ScannerStrategy
    scanner_forced: bool = False
    fallback_used: bool = False
    config_source: ConfigSource = "cli-params"
    security_hotspots: dict[str, Any] | None = None
    clean_code_metrics: dict[str, int] | None = None
    pre_scan: dict[str, Any] | None = None
    properties_file: str | None = None
    """sonar-project.properties generated by this run, if any."""

    attempts: int = 1
    scanner_output: str = field(default="", repr=False)

    def to_dict(self) -> dict[str, Any]:
        context = self.project_context
        return {
            "project_key": self.project_key,
            "total_issues": self.total_issues,
            "issues_by_severity": self.issues_by_severity,
            "issues_by_type": self.issues_by_type,
            "quality_score": self.quality_score,
            "top_issues": self.top_issues,
            "project_context": {
                "name": context.name,
                "path": str(context.path),
                "languages": sorted(context.languages),
                "frameworks": list(context.frameworks),
                "build_tool": context.build_tool,
            },
            "security_hotspots": self.security_hotspots,
            "clean_code_metrics": self.clean_code_metrics,
            "pre_scan": self.pre_scan,
            "config_source": self.config_source,
            "scanner_type": self.scanner_type.value,
            "scanner_forced": self.scanner_forced,
            "fallback_used": self.fallback_used,
            "properties_file": self.properties_file,
            "attempts": self.attempts,
        }


def config_source(validation: PreScanValidationResult | None) -> ConfigSource:
    if validation is not None and validation.existing_config is not None:
        if validation.existing_config.exists:
            return "properties-file"
    if validation is not None and validation.detected_properties:
        return "auto-detected"
    return "cli-params"


def build_scan_result(
    config: ScanConfig,
    context: ProjectContext,
    outcome: ExecutionOutcome,
    issues: list,
    hotspots: list[SecurityHotspot],
    measures: ComponentMeasures | None,
    validation: PreScanValidationResult | None,
    *,
    forced: bool = False,
    properties_file: Path | None = None,
    attempts: int = 1,
) -> ScanResult:
    """Summarize fetched results into a ScanResult."""
    return ScanResult(
        project_key=config.project_key,
        total_issues=len(issues),
        issues_by_severity=results.count_by(issues, "severity"),
        issues_by_type=results.count_by(issues, "type"),
        quality_score=results.quality_score(issues),
        top_issues=results.top_issues(issues),
        project_context=context,
        scanner_type=outcome.strategy,
        scanner_forced=forced,
        fallback_used=outcome.fell_back,
        config_source=config_source(validation),
        security_hotspots=results.hotspot_summary(hotspots),
        clean_code_metrics=results.clean_code_metrics(measures),
        pre_scan=validation.summary() if validation is not None else None,
        properties_file=str(properties_file) if properties_file else None,
        attempts=attempts,
        scanner_output=outcome.output,
    )


def _recoverable_line(message: str) -> str:
    """The line of ``message`` that made it recoverable (else its first line)."""
    lines = [line.strip() for line in message.splitlines() if line.strip()]
    for line in lines:
        if classifier.is_recoverable(line):
            return line
    return lines[0] if lines else message


class ScanOrchestrator:
    """Runs the complete scan workflow for one project."""

    def __init__(
        self,
        config: ScanConfig,
        *,
        settings: ScanwellConfig | None = None,
        options: ScanOptions | None = None,
        runner: ScannerRunner | None = None,
        client_factory: Callable[[ScanConfig], SonarClient] | None = None,
        validator: PreScanValidator | None = None,
        fallback_service: ScanFallbackService | None = None,
        persister: ConfigPersister | None = None,
        lock: AnalysisLock | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.settings = settings or get_config()
        self.options = options or ScanOptions()
        self.runner = runner or SubprocessRunner()
        self.client_factory = client_factory or (
            lambda cfg: SonarClient.from_config(cfg, self.settings.server)
        )
        self.validator = validator or PreScanValidator(runner=self.runner)
        self.fallback_service = fallback_service or ScanFallbackService()
        self.persister = persister or ConfigPersister(
            library_path_mode=self.settings.scanner.library_path_mode
        )
        self.lock = lock or AnalysisLock.from_config(self.settings.lock)
        self._sleep = sleep

    @property
    def force_cli(self) -> bool:
        return self.options.force_cli or self.settings.scanner.force_cli

    @property
    def enable_fallback(self) -> bool:
        if self.options.enable_fallback is not None:
            return self.options.enable_fallback
        return self.settings.scanner.enable_fallback

    def _retry_policy(self) -> RetryPolicy:
        retry = self.settings.retry
        options = self.options
        return RetryPolicy(
            max_retries=retry.max_retries if options.max_retries is None else options.max_retries,
            retry_delay=retry.retry_delay if options.retry_delay is None else options.retry_delay,
            sleep=self._sleep,
        )

    async def execute(self, project_path: Path) -> ScanResult:
        """Scan ``project_path`` and return the summarized results.

        Raises:
            ScanRecoverableError: Configuration failure; carries the fallback analysis
            RetryExhaustedError: Permission failures outlasted every retry
            ScanFailedError: Any other failure
            LockTimeoutError, CompilationRequiredError, ScannerNotFoundError,
            ValidationError: Unchanged
        """
        project_path = project_path.resolve()
        logger.info("Scanning %s as %s", project_path, self.config.project_key)

        context = await asyncio.to_thread(detect_project_context, project_path)
        validation = await self.run_validation(project_path)
        detected = validation.properties_map() if validation is not None else {}
        if detected:
            logger.info("%d detected properties available for the CLI scanner", len(detected))

        client = self.client_factory(self.config)
        async with client:
            executor = AnalysisExecutor(
                self.config,
                context,
                self.runner,
                force_cli=self.force_cli,
                scanner=self.settings.scanner,
                lock=self.lock,
                builder=ParameterBuilder(self.config, context, self.runner, self.validator),
            )
            policy = self._retry_policy()
            outcome = await self._run_cycles(policy, executor, client, project_path, detected)

            properties_file = self.persister.persist(
                project_path, outcome.params, outcome.strategy
            )
            return await self._collect(
                client, context, outcome, validation, properties_file, policy.attempts
            )

    async def run_validation(self, project_path: Path) -> PreScanValidationResult | None:
        """Pre-scan validation; failures are logged and yield None."""
        try:
            result = await self.validator.validate(project_path)
        except Exception as e:
            logger.warning("Pre-scan validation failed (continuing anyway): %s", e)
            return None

        if result.languages:
            logger.info(
                "Pre-scan detected languages: %s",
                ", ".join(lang.language for lang in result.languages),
            )
        for warning in result.warnings:
            level = logging.ERROR if warning.severity == "error" else logging.WARNING
            logger.log(level, "Pre-scan [%s]: %s", warning.code, warning.message)
        if result.scan_quality != "full":
            logger.warning("Pre-scan quality: %s (scan will proceed)", result.scan_quality.upper())
        existing = result.existing_config
        if existing is not None and existing.exists:
            logger.info(
                "Existing sonar-project.properties completeness: %d%%",
                existing.completeness_score,
            )
            if existing.missing_critical:
                logger.info("  Missing critical: %s", ", ".join(existing.missing_critical))
        return result

    async def _run_cycles(
        self,
        policy: RetryPolicy,
        executor: AnalysisExecutor,
        client: SonarClient,
        project_path: Path,
        detected: Mapping[str, str],
    ) -> ExecutionOutcome:
        poll = self.settings.poll

        async def cycle(attempt: int) -> ExecutionOutcome:
            outcome = await executor.trigger(project_path, detected)
            logger.info("Analysis submitted with %s", outcome.strategy.value)
            await CompletionPoller.from_config(client, poll, sleep=self._sleep).wait()
            if poll.cache_refresh:
                await wait_for_cache_refresh(
                    client.count_issues,
                    min_wait=poll.cache_min_wait,
                    max_wait=poll.cache_max_wait,
                    interval=poll.interval,
                    sleep=self._sleep,
                )
            return outcome

        try:
            return await policy.run(cycle)
        except _PASS_THROUGH:
            raise
        except Exception as e:
            raise await self._classify_failure(e, policy, executor, project_path) from e

    async def _classify_failure(
        self,
        error: Exception,
        policy: RetryPolicy,
        executor: AnalysisExecutor,
        project_path: Path,
    ) -> ScanwellError:
        """Persist what was built, then return the error to raise."""
        strategy = executor.last_strategy or executor.strategy
        if executor.last_built_params:
            path = self.persister.persist(project_path, executor.last_built_params, strategy)
            if path is not None:
                logger.info("Generated %s despite the failure; review and correct it", path.name)

        message = error_text(error)
        if self.enable_fallback and classifier.is_recoverable(message):
            logger.info("Recoverable configuration error, analyzing project structure")
            analysis = await self.fallback_service.analyze(message, project_path)
            return ScanRecoverableError(_recoverable_line(message), analysis, cause=error)

        return policy.enrich(error, policy.attempts, self.config, strategy)

    async def _collect(
        self,
        client: SonarClient,
        context: ProjectContext,
        outcome: ExecutionOutcome,
        validation: PreScanValidationResult | None,
        properties_file: Path | None,
        attempts: int,
    ) -> ScanResult:
        types = tuple(t for t in self.options.types if t != "SECURITY_HOTSPOT")
        issue_filter = IssueFilter(
            severities=self.options.severities,
            types=types,
            statuses=self.settings.server.issue_statuses,
        )
        issues = await client.get_issues(issue_filter)

        try:
            hotspots = await client.get_security_hotspots()
        except Exception as e:
            logger.warning("Could not fetch security hotspots: %s", e)
            hotspots = []

        measures: ComponentMeasures | None
        try:
            measures = await client.get_project_metrics()
        except Exception as e:
            logger.warning("Could not fetch project metrics: %s", e)
            measures = None

        return build_scan_result(
            self.config,
            context,
            outcome,
            issues,
            hotspots,
            measures,
            validation,
            forced=self.force_cli,
            properties_file=properties_file,
            attempts=attempts,
        )
