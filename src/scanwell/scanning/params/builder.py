"""Scanner parameter building.

Every CLI invocation starts from the same credential/project parameters and
adds one of: the missing critical properties of an existing configuration
file, the properties detected by pre-scan validation, or language defaults.
"""

import logging
import time
from collections.abc import Mapping
from pathlib import Path

from scanwell.foundation.security import mask_param
from scanwell.foundation.types.scan import ProjectContext, ScanConfig
from scanwell.scanning.params import languages
from scanwell.scanning.runner import ScannerRunner
from scanwell.scanning.validation.prescan import PreScanValidator

logger = logging.getLogger(__name__)


class ParameterBuilder:
    """Builds ``-Dkey=value`` argument lists for one project."""

    def __init__(
        self,
        config: ScanConfig,
        context: ProjectContext | None,
        runner: ScannerRunner,
        validator: PreScanValidator | None = None,
    ):
        self.config = config
        self.context = context
        self.runner = runner
        self.validator = validator or PreScanValidator()

    def auth_params(self) -> list[str]:
        """Server URL, token and a unique project version."""
        return [
            f"-Dsonar.host.url={self.config.server_url}",
            f"-Dsonar.login={self.config.token}",
            f"-Dsonar.projectVersion={int(time.time() * 1000)}",
        ]

    def base_params(self) -> list[str]:
        """Project key plus auth params, for runs without a properties file."""
        return [f"-Dsonar.projectKey={self.config.project_key}", *self.auth_params()]

    def detected_params(self, detected: Mapping[str, str]) -> list[str]:
        """Base params plus every detected property."""
        params = self.base_params()
        for key, value in detected.items():
            param = f"-D{key}={value}"
            params.append(param)
            logger.info("  %s", mask_param(param)[2:])
        return params

    async def existing_config_params(
        self,
        project_path: Path,
        detected: Mapping[str, str] | None,
    ) -> list[str]:
        """Auth params plus only the critical properties the file lacks.

        The scanner reads sonar-project.properties itself; values passed here
        only fill its gaps. Caller-detected values win over fresh detection.
        """
        params = self.auth_params()
        try:
            result = await self.validator.validate(project_path)
        except Exception as e:
            logger.warning("Pre-scan validation skipped: %s", e)
            return params

        if result.existing_config is None:
            return params

        fresh = result.properties_map()
        added = 0
        for key in result.existing_config.missing_critical:
            value = (detected or {}).get(key) or fresh.get(key)
            if value:
                params.append(f"-D{key}={value}")
                logger.info("  Adding missing critical: %s=%s", key, value)
                added += 1
        if not added:
            logger.info("All critical properties present in config file")
        return params

    async def language_params(self, project_path: Path) -> list[str]:
        """Base params plus language-specific defaults for the project."""
        params = self.base_params()
        context = self.context
        if context is None:
            params.append(f"-Dsonar.sources={project_path}")
            return params

        build_tool = (context.build_tool or "").lower() or None

        # JS/TS first: a JS project may also list java
        if context.has_language("javascript", "typescript"):
            params += languages.javascript_params(project_path)
        elif context.has_language("java"):
            params += await languages.java_params(project_path, build_tool, self.runner)
        elif context.has_language("c++", "cpp", "c"):
            params += languages.cfamily_params(project_path)
        elif context.has_language("python"):
            params += languages.python_params(project_path)
        elif context.has_language("go"):
            params += languages.go_params(project_path)
        else:
            params.append(f"-Dsonar.sources={project_path}")
        return params
