"""sonar-project.properties generation and persistence.

``PropertiesFileManager`` renders and writes the file (atomically, never
clobbering an existing one unless asked). ``ConfigPersister`` turns the
exact ``-D`` parameters of a CLI run into that file so the next run, or a
human, starts from what the scanner actually used.
"""

import logging
import os
import tempfile
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from scanwell.foundation.errors import ErrorCode, ScanwellError
from scanwell.foundation.types.config import LibraryPathMode
from scanwell.foundation.types.scan import ScannerStrategy
from scanwell.scanning.params.paths import count_libraries, process_library_paths
from scanwell.scanning.validation.existing import PROPERTIES_FILE, parse_properties

logger = logging.getLogger(__name__)

# Never written to disk: credentials and per-run values
TRANSIENT_KEYS = frozenset({
    "sonar.host.url",
    "sonar.login",
    "sonar.token",
    "sonar.projectVersion",
})

_DISPLAY_KEYS = ("sonar.sources", "sonar.java.binaries", "sonar.coverage.jacoco.xmlReportPaths")


@dataclass(frozen=True, slots=True)
class ModuleConfig:
    """One module block of a multi-module configuration."""

    name: str
    base_dir: str
    sources: str
    tests: str | None = None
    binaries: str | None = None
    exclusions: str | None = None
    language: str | None = None


@dataclass(frozen=True, slots=True)
class PropertiesConfig:
    """Contents of a sonar-project.properties file."""

    project_key: str
    sources: str | None = None
    project_name: str | None = None
    project_version: str | None = None
    tests: str | None = None
    exclusions: str | None = None
    encoding: str = "UTF-8"
    modules: tuple[ModuleConfig, ...] = ()
    java_binaries: str | None = None
    java_test_binaries: str | None = None
    java_libraries: str | None = None
    java_source: str | None = None
    coverage_report_paths: str | None = None
    additional_properties: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class WriteResult:
    success: bool
    config_path: Path
    content: str = ""
    backup_path: Path | None = None
    warnings: tuple[str, ...] = ()


class PropertiesFileManager:
    """Reads and writes a project's sonar-project.properties."""

    def path_for(self, project_path: Path) -> Path:
        return project_path / PROPERTIES_FILE

    def exists(self, project_path: Path) -> bool:
        return self.path_for(project_path).is_file()

    def read(self, project_path: Path) -> dict[str, str] | None:
        try:
            content = self.path_for(project_path).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        return parse_properties(content)

    def delete(self, project_path: Path) -> bool:
        try:
            self.path_for(project_path).unlink()
        except FileNotFoundError:
            return False
        return True

    def render(self, config: PropertiesConfig, *, now: datetime | None = None) -> str:
        timestamp = (now or datetime.now(UTC)).isoformat(timespec="seconds")
        lines = [
            "# SonarQube Project Configuration",
            "# Generated by scanwell",
            f"# {timestamp}",
            "",
            "# Project identification",
            f"sonar.projectKey={config.project_key}",
        ]
        if config.project_name:
            lines.append(f"sonar.projectName={config.project_name}")
        if config.project_version:
            lines.append(f"sonar.projectVersion={config.project_version}")
        lines.append("")

        if config.modules:
            lines.append("# Modules")
            lines.append(f"sonar.modules={','.join(m.name for m in config.modules)}")
            lines.append("")
            for module in config.modules:
                lines.append(f"# Module: {module.name}")
                lines.append(f"{module.name}.sonar.projectBaseDir={module.base_dir}")
                lines.append(f"{module.name}.sonar.sources={module.sources}")
                if module.tests:
                    lines.append(f"{module.name}.sonar.tests={module.tests}")
                if module.binaries:
                    lines.append(f"{module.name}.sonar.java.binaries={module.binaries}")
                if module.exclusions:
                    lines.append(f"{module.name}.sonar.exclusions={module.exclusions}")
                if module.language:
                    lines.append(f"{module.name}.sonar.language={module.language}")
                lines.append("")
        else:
            lines.append("# Sources")
            lines.append(f"sonar.sources={config.sources or '.'}")
            if config.tests:
                lines.append(f"sonar.tests={config.tests}")
            lines.append("")

        if config.exclusions:
            lines += ["# Exclusions", f"sonar.exclusions={config.exclusions}", ""]

        lines += ["# Encoding", f"sonar.sourceEncoding={config.encoding}", ""]

        java = [
            ("sonar.java.binaries", config.java_binaries),
            ("sonar.java.test.binaries", config.java_test_binaries),
            ("sonar.java.libraries", config.java_libraries),
            ("sonar.java.source", config.java_source),
        ]
        if any(value for _, value in java):
            lines.append("# Java")
            lines += [f"{key}={value}" for key, value in java if value]
            lines.append("")

        if config.coverage_report_paths:
            lines += [
                "# Coverage",
                f"sonar.coverage.jacoco.xmlReportPaths={config.coverage_report_paths}",
                "",
            ]

        if config.additional_properties:
            lines.append("# Additional properties")
            lines += [f"{k}={v}" for k, v in config.additional_properties.items()]
            lines.append("")

        return "\n".join(lines)

    def write_config(
        self,
        project_path: Path,
        config: PropertiesConfig,
        *,
        overwrite: bool = False,
    ) -> WriteResult:
        """Write the file atomically.

        An existing file is left alone unless ``overwrite`` is set, in which
        case it is first copied to ``sonar-project.properties.backup.<ts>``.
        """
        target = self.path_for(project_path)
        content = self.render(config)

        kept = WriteResult(
            success=False,
            config_path=target,
            content=content,
            warnings=(f"{PROPERTIES_FILE} already exists; not overwritten",),
        )
        if not overwrite:
            if target.exists() or not _atomic_write(target, content, exclusive=True):
                return kept
            return WriteResult(success=True, config_path=target, content=content)

        backup: Path | None = None
        if target.exists():
            stamp = datetime.now(UTC).strftime("%Y%m%d%H%M%S")
            backup = target.with_name(f"{PROPERTIES_FILE}.backup.{stamp}")
            _atomic_write(backup, target.read_text(encoding="utf-8"))

        _atomic_write(target, content)
        return WriteResult(success=True, config_path=target, content=content, backup_path=backup)


def _atomic_write(path: Path, content: str, *, exclusive: bool = False) -> bool:
    """Write via a temp file; with ``exclusive``, never replace an existing ``path``.

    Returns False when ``exclusive`` and ``path`` appeared first.
    """
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        if not exclusive:
            os.replace(tmp, path)
            return True
        try:
            os.link(tmp, path)
        except FileExistsError:
            return False
        finally:
            Path(tmp).unlink(missing_ok=True)
        return True
    except OSError as e:
        Path(tmp).unlink(missing_ok=True)
        raise ScanwellError(
            ErrorCode.FILE_WRITE_FAILED, {"path": str(path), "detail": str(e)}, cause=e
        ) from e


def parse_params(params: Iterable[str]) -> dict[str, str]:
    """``-Dkey=value`` arguments to a dict; other arguments are ignored."""
    parsed: dict[str, str] = {}
    for param in params:
        if not param.startswith("-D"):
            continue
        key, sep, value = param[2:].partition("=")
        if sep and key:
            parsed[key] = value
    return parsed


class ConfigPersister:
    """Saves the parameters of a CLI run as sonar-project.properties.

    Best effort: nothing here raises. Native (Maven/Gradle) runs are skipped
    because their plugins never read the file.
    """

    def __init__(
        self,
        manager: PropertiesFileManager | None = None,
        library_path_mode: LibraryPathMode = "relative",
    ):
        self.manager = manager or PropertiesFileManager()
        self.library_path_mode = library_path_mode

    def persist(
        self,
        project_path: Path,
        params: Iterable[str],
        strategy: ScannerStrategy,
    ) -> Path | None:
        """Write the file and return its path, or None when skipped."""
        try:
            return self._persist(project_path, params, strategy)
        except Exception as e:
            logger.warning("Could not auto-generate %s: %s", PROPERTIES_FILE, e)
            return None

    def _persist(
        self,
        project_path: Path,
        params: Iterable[str],
        strategy: ScannerStrategy,
    ) -> Path | None:
        if strategy.is_native:
            logger.debug("Skipping %s for %s strategy", PROPERTIES_FILE, strategy.value)
            return None

        values = parse_params(params)
        useful = {k: v for k, v in values.items() if k not in TRANSIENT_KEYS}
        if not useful:
            logger.info("No configuration parameters to save")
            return None

        if self.manager.exists(project_path):
            logger.debug("%s exists; leaving it untouched", PROPERTIES_FILE)
            return None

        raw_libraries = useful.get("sonar.java.libraries")
        libraries = None
        if raw_libraries:
            libraries = ",".join(
                process_library_paths(raw_libraries.split(","), project_path, self.library_path_mode)
            )

        config = PropertiesConfig(
            project_key=useful.get("sonar.projectKey", ""),
            sources=useful.get("sonar.sources"),
            tests=useful.get("sonar.tests"),
            exclusions=useful.get("sonar.exclusions"),
            java_binaries=useful.get("sonar.java.binaries"),
            java_test_binaries=useful.get("sonar.java.test.binaries"),
            java_libraries=libraries,
            java_source=useful.get("sonar.java.source"),
            coverage_report_paths=useful.get("sonar.coverage.jacoco.xmlReportPaths"),
            additional_properties=_additional(useful),
        )
        result = self.manager.write_config(project_path, config)
        if not result.success:
            return None

        logger.info("Generated %s (%d properties from scanner)", result.config_path, len(useful))
        for key in _DISPLAY_KEYS:
            if value := useful.get(key):
                logger.info("  %s=%s", key, value if len(value) <= 50 else value[:47] + "...")
        if raw_libraries:
            logger.info(
                "  sonar.java.libraries=%d JARs (%s paths)",
                count_libraries(raw_libraries),
                self.library_path_mode,
            )
        return result.config_path


_MAPPED_KEYS = frozenset({
    "sonar.projectKey",
    "sonar.sources",
    "sonar.tests",
    "sonar.exclusions",
    "sonar.sourceEncoding",
    "sonar.java.binaries",
    "sonar.java.test.binaries",
    "sonar.java.libraries",
    "sonar.java.source",
    "sonar.coverage.jacoco.xmlReportPaths",
})


def _additional(values: Mapping[str, str]) -> dict[str, str]:
    return {k: v for k, v in values.items() if k not in _MAPPED_KEYS}
