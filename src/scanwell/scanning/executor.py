"""Cascading analysis executor.

One attempt of a scan: take the project lock, pick a strategy, build the
parameters and run the scanner. A failed Maven/Gradle run falls back once
to the generic CLI when pre-scan validation detected properties the CLI can
carry; otherwise the native failure is raised as it was.
"""

import logging
from collections.abc import Mapping
from pathlib import Path

from scanwell.foundation.errors import ScannerExecutionError, ScanwellError
from scanwell.foundation.security import mask_param, sanitize_command_args
from scanwell.foundation.types.config import ScannerConfig
from scanwell.foundation.types.scan import (
    ExecutionOutcome,
    ProjectContext,
    ScanConfig,
    ScannerInvocation,
    ScannerStrategy,
)
from scanwell.scanning.compilation import check_java_compilation
from scanwell.scanning.lock import AnalysisLock, lock_path_for
from scanwell.scanning.params.builder import ParameterBuilder
from scanwell.scanning.runner import ProcessResult, ScannerRunner, tail
from scanwell.scanning.selection import (
    build_gradle_command,
    build_maven_command,
    describe_scanner,
    select_scanner,
)
from scanwell.scanning.validation.existing import PROPERTIES_FILE

logger = logging.getLogger(__name__)

CLI_COMMAND = "sonar-scanner"

# Scanner errors are usually at the end of the output
ERROR_TAIL = 2000

_SCANNER_DOCS = "https://docs.sonarqube.org/latest/analysis/scan/sonarscanner/"
_GRADLE_PLUGIN_DOCS = "https://plugins.gradle.org/plugin/org.sonarqube"


def _maven_solution(text: str) -> str:
    if "COMPILATION_ERROR" in text or "Cannot find symbol" in text or "package does not exist" in text:
        return (
            "Maven project needs to be compiled first!\n"
            "Run: mvn clean compile\n"
            "After compilation, retry the scan."
        )
    if "mvn: not found" in text or "mvn: command not found" in text:
        return (
            "Maven is not installed.\n"
            "Install it with:\n"
            "  macOS: brew install maven\n"
            "  Ubuntu/Debian: sudo apt-get install maven\n"
            "  Windows: choco install maven"
        )
    return ""


def _gradle_solution(text: str) -> str:
    if "compileJava FAILED" in text or "Compilation failed" in text or "Could not resolve" in text:
        return (
            "Gradle project needs to be compiled first!\n"
            "Run: ./gradlew clean compileJava\n"
            "After compilation, retry the scan."
        )
    if (
        "gradlew: not found" in text
        or "gradlew: command not found" in text
        or ("permission denied" in text.lower() and "gradlew" in text)
    ):
        return (
            "Gradle wrapper not found or not executable.\n"
            "Try one of:\n"
            "  chmod +x gradlew\n"
            "  gradle wrapper\n"
            "  brew install gradle"
        )
    if ("sonar" in text and "not found" in text) or ("Task" in text and "sonar" in text):
        return (
            "Gradle Sonar plugin not configured.\n"
            "Add to build.gradle:\n"
            "  plugins {\n"
            '    id "org.sonarqube" version "X.X.X"\n'
            "  }\n"
            "Or to build.gradle.kts:\n"
            "  plugins {\n"
            '    id("org.sonarqube") version "X.X.X"\n'
            "  }\n"
            f"Latest version: {_GRADLE_PLUGIN_DOCS}"
        )
    return ""


def _cli_solution(text: str) -> str:
    if "sonar-scanner: not found" in text or "command not found" in text:
        return (
            "sonar-scanner is not installed.\n"
            f"Download: {_SCANNER_DOCS}\n"
            "  macOS: brew install sonar-scanner\n"
            "  Ubuntu/Debian: sudo apt-get install sonar-scanner-cli\n"
            "  Windows: choco install sonarscanner-msbuild-net46"
        )
    return ""


def _generic_solution(text: str) -> str:
    if "timeout" in text:
        return (
            "The analysis took longer than expected.\n"
            "  - The project may be too large for the default timeout\n"
            "  - Add sonar.exclusions for generated or vendored code\n"
            "  - Check that the analysis server is not overloaded"
        )
    if "Permission denied" in text:
        return (
            "Permission issues detected.\n"
            "  - Check file permissions in the project directory\n"
            "  - Make sure the scanner can write its work directory\n"
            "  - Avoid running the scan from a read-only location"
        )
    if "401" in text or "403" in text:
        return (
            "Authentication/Authorization error.\n"
            "  - Verify SONAR_TOKEN in scanwell.env is valid\n"
            "  - Make sure the token has 'Execute Analysis' permission\n"
            "  - Check that the project key exists on the server"
        )
    return ""


_STRATEGY_SOLUTIONS = {
    ScannerStrategy.MAVEN: _maven_solution,
    ScannerStrategy.GRADLE: _gradle_solution,
    ScannerStrategy.CLI: _cli_solution,
}


def remediation(strategy: ScannerStrategy, text: str) -> str:
    """Strategy-specific fix for a scanner failure, then a generic one."""
    parts = [_STRATEGY_SOLUTIONS[strategy](text), _generic_solution(text)]
    return "\n\n".join(part for part in parts if part)


def _failure(strategy: ScannerStrategy, command: str, result: ProcessResult) -> ScannerExecutionError:
    raw = f"{command} exited with code {result.returncode}\n{tail(result.combined, ERROR_TAIL)}"
    return ScannerExecutionError(raw, strategy=strategy.value, solution=remediation(strategy, raw))


class AnalysisExecutor:
    """Runs one scan attempt for a project.

    ``last_built_params`` and ``last_strategy`` describe the most recent
    invocation, successful or not, so the caller can persist its parameters.
    """

    def __init__(
        self,
        config: ScanConfig,
        context: ProjectContext | None,
        runner: ScannerRunner,
        *,
        force_cli: bool = False,
        scanner: ScannerConfig | None = None,
        lock: AnalysisLock | None = None,
        builder: ParameterBuilder | None = None,
    ):
        self.config = config
        self.context = context
        self.runner = runner
        self.scanner = scanner or ScannerConfig()
        self.force_cli = force_cli or self.scanner.force_cli
        self.lock = lock or AnalysisLock()
        self.builder = builder or ParameterBuilder(config, context, runner)
        self.last_built_params: list[str] = []
        self.last_strategy: ScannerStrategy | None = None

    @property
    def strategy(self) -> ScannerStrategy:
        return select_scanner(self.context, force_cli=self.force_cli)

    async def trigger(
        self,
        project_path: Path,
        detected: Mapping[str, str] | None = None,
    ) -> ExecutionOutcome:
        """Run the scanner under the project lock.

        Args:
            project_path: Project root
            detected: Properties from pre-scan validation, used for the CLI
                run and for the native-to-CLI fallback

        Raises:
            LockTimeoutError: If another analysis holds the lock too long
            ScanwellError: The failure of the last invocation tried
        """
        detected = dict(detected or {})
        async with self.lock.hold(lock_path_for(project_path)):
            strategy = self.strategy
            logger.info("Scanner: %s", describe_scanner(strategy))
            if strategy.is_native:
                return await self._run_native(strategy, project_path, detected)
            params = await self._cli_params(project_path, detected)
            return await self._run_cli(project_path, params, tried=(ScannerStrategy.CLI,))

    async def _run_native(
        self,
        strategy: ScannerStrategy,
        project_path: Path,
        detected: dict[str, str],
    ) -> ExecutionOutcome:
        try:
            check_java_compilation(project_path, self.context)
            invocation = self._native_invocation(strategy)
            self.last_built_params = invocation.sonar_params
            self.last_strategy = strategy
            logger.info("Running: %s %s", invocation.command, invocation.args[0])
            result = await self.runner.run(
                invocation.command,
                invocation.args,
                cwd=project_path,
                timeout=self.scanner.native_timeout,
            )
            if not result.ok:
                raise _failure(strategy, invocation.command, result)
        except ScanwellError as e:
            if not detected:
                raise
            logger.warning(
                "%s scan failed, retrying with sonar-scanner: %s",
                strategy.value,
                e.raw_message.splitlines()[0],
            )
            logger.info("Using %d detected properties:", len(detected))
            params = self.builder.detected_params(detected)
            return await self._run_cli(
                project_path, params, tried=(strategy, ScannerStrategy.CLI), fell_back=True
            )

        return ExecutionOutcome(
            strategy=strategy,
            params=tuple(self.last_built_params),
            output=tail(result.combined),
            tried=(strategy,),
        )

    def _native_invocation(self, strategy: ScannerStrategy) -> ScannerInvocation:
        if strategy is ScannerStrategy.MAVEN:
            return build_maven_command(self.config)
        return build_gradle_command(self.config)

    async def _cli_params(self, project_path: Path, detected: dict[str, str]) -> list[str]:
        if (project_path / PROPERTIES_FILE).exists():
            logger.info("Using %s (adding missing critical properties)", PROPERTIES_FILE)
            return await self.builder.existing_config_params(project_path, detected)
        if detected:
            logger.info("Using %d detected properties:", len(detected))
            return self.builder.detected_params(detected)
        logger.info("Using language defaults")
        return await self.builder.language_params(project_path)

    async def _run_cli(
        self,
        project_path: Path,
        params: list[str],
        *,
        tried: tuple[ScannerStrategy, ...],
        fell_back: bool = False,
    ) -> ExecutionOutcome:
        check_java_compilation(project_path, self.context)
        safe = sanitize_command_args(params)
        self.last_built_params = safe
        self.last_strategy = ScannerStrategy.CLI
        logger.debug("sonar-scanner %s", " ".join(mask_param(p) for p in safe))

        result = await self.runner.run(
            CLI_COMMAND, safe, cwd=project_path, timeout=self.scanner.cli_timeout
        )
        if not result.ok:
            raise _failure(ScannerStrategy.CLI, CLI_COMMAND, result)

        return ExecutionOutcome(
            strategy=ScannerStrategy.CLI,
            params=tuple(safe),
            fell_back=fell_back,
            output=tail(result.combined),
            tried=tried,
        )
