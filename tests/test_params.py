"""Tests for scanner parameter building."""

import json
from pathlib import Path

import pytest
from conftest import FakeRunner, failed, make_tree, ok

from scanwell.foundation.types.scan import ProjectContext, ScanConfig
from scanwell.scanning.context import detect_project_context
from scanwell.scanning.libraries import parse_maven_classpath, resolve_gradle_libraries
from scanwell.scanning.params import languages
from scanwell.scanning.params.builder import ParameterBuilder
from scanwell.scanning.params.paths import (
    GRADLE_GLOB,
    M2_GLOB,
    PROJECT_LIB_GLOB,
    process_library_paths,
    summarize_libraries,
)
from scanwell.scanning.validation.prescan import PreScanValidator

MAVEN_CLASSPATH_OUTPUT = """\
[INFO] Scanning for projects...
[INFO] --- maven-dependency-plugin:3.6.0:build-classpath (default-cli) @ shop ---
Downloading from central: https://repo.maven.apache.org/maven2/x.pom
Progress (1): 4.1 kB
/home/dev/.m2/repository/org/slf4j/slf4j-api/2.0.9/slf4j-api-2.0.9.jar:/home/dev/.m2/repository/junit/junit/4.13/junit-4.13.jar
[INFO] BUILD SUCCESS
"""


def _builder(project: Path, config: ScanConfig, runner: FakeRunner) -> ParameterBuilder:
    return ParameterBuilder(
        config, detect_project_context(project), runner, PreScanValidator(runner)
    )


# =============================================================================
# ParameterBuilder
# =============================================================================


class TestParameterBuilder:
    """Tests for the parameter sources the executor chooses from."""

    def test_auth_params(self, scan_config: ScanConfig, runner: FakeRunner) -> None:
        params = ParameterBuilder(scan_config, None, runner).auth_params()

        assert params[:2] == [
            "-Dsonar.host.url=https://sonar.example.com",
            f"-Dsonar.login={scan_config.token}",
        ]
        assert params[2].startswith("-Dsonar.projectVersion=")

    def test_detected_params_keep_order(self, scan_config: ScanConfig, runner: FakeRunner) -> None:
        builder = ParameterBuilder(scan_config, None, runner)

        params = builder.detected_params({"sonar.sources": "src", "sonar.tests": "tests"})

        assert params[0] == "-Dsonar.projectKey=demo-project"
        assert params[-2:] == ["-Dsonar.sources=src", "-Dsonar.tests=tests"]

    @pytest.mark.asyncio
    async def test_no_context_scans_root(self, tmp_path: Path, scan_config: ScanConfig, runner: FakeRunner) -> None:
        params = await ParameterBuilder(scan_config, None, runner).language_params(tmp_path)

        assert params[-1] == f"-Dsonar.sources={tmp_path}"

    @pytest.mark.asyncio
    async def test_python_defaults(self, python_project: Path, scan_config: ScanConfig, runner: FakeRunner) -> None:
        params = await _builder(python_project, scan_config, runner).language_params(python_project)

        assert "-Dsonar.sources=src" in params
        assert "-Dsonar.tests=tests" in params
        assert "-Dsonar.test.inclusions=**/test_*.py,**/*_test.py" in params
        exclusions = next(p for p in params if p.startswith("-Dsonar.exclusions="))
        assert "test_*.py" not in exclusions

    @pytest.mark.asyncio
    async def test_javascript_wins_over_java(self, tmp_path: Path, scan_config: ScanConfig, runner: FakeRunner) -> None:
        """A JS project that also has a pom is configured as JS."""
        make_tree(tmp_path, {
            "package.json": json.dumps({"name": "web"}),
            "tsconfig.json": "{}",
            "pom.xml": "<project/>",
            "src/": "",
        })

        params = await _builder(tmp_path, scan_config, runner).language_params(tmp_path)

        assert "-Dsonar.typescript.tsconfigPath=tsconfig.json" in params
        assert "-Dsonar.sources=src" in params
        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_maven_defaults(self, maven_project: Path, scan_config: ScanConfig) -> None:
        """Maven layout, resolved libraries and the compiler level."""
        runner = FakeRunner({"mvn": [ok(MAVEN_CLASSPATH_OUTPUT)]})

        params = await _builder(maven_project, scan_config, runner).language_params(maven_project)

        assert "-Dsonar.sources=src/main/java" in params
        assert "-Dsonar.tests=src/test/java" in params
        assert "-Dsonar.java.binaries=target/classes" in params
        assert params[-1] == "-Dsonar.java.source=17"
        libraries = next(p for p in params if p.startswith("-Dsonar.java.libraries="))
        assert libraries.count(".jar") == 2
        assert runner.calls[0].args == ["dependency:build-classpath", "-DincludeScope=compile"]

    @pytest.mark.asyncio
    async def test_maven_library_failure_is_ignored(self, maven_project: Path, scan_config: ScanConfig) -> None:
        runner = FakeRunner({"mvn": [failed("[ERROR] offline")]})

        params = await _builder(maven_project, scan_config, runner).language_params(maven_project)

        assert not any(p.startswith("-Dsonar.java.libraries=") for p in params)

    @pytest.mark.asyncio
    async def test_existing_config_adds_missing_critical(
        self, python_project: Path, scan_config: ScanConfig, runner: FakeRunner
    ) -> None:
        """Caller-detected values win; present keys are left to the file."""
        make_tree(python_project, {"sonar-project.properties": "sonar.projectKey=demo\n"})
        builder = _builder(python_project, scan_config, runner)

        params = await builder.existing_config_params(python_project, {"sonar.sources": "src,lib"})

        assert len(params) == 4
        assert params[-1] == "-Dsonar.sources=src,lib"

    @pytest.mark.asyncio
    async def test_existing_config_complete(
        self, python_project: Path, scan_config: ScanConfig, runner: FakeRunner
    ) -> None:
        make_tree(python_project, {"sonar-project.properties": "sonar.sources=src\n"})

        params = await _builder(python_project, scan_config, runner).existing_config_params(
            python_project, None
        )

        assert len(params) == 3


# =============================================================================
# Language defaults
# =============================================================================


class TestLanguageDefaults:
    """Tests for the per-language default builders."""

    def test_go(self, tmp_path: Path) -> None:
        make_tree(tmp_path, {"go.mod": "module x", "coverage.out": ""})

        params = languages.go_params(tmp_path)

        assert params[0] == "-Dsonar.sources=."
        assert params[-1] == "-Dsonar.go.coverage.reportPaths=coverage.out"

    def test_cfamily(self, tmp_path: Path) -> None:
        make_tree(tmp_path, {"build/compile_commands.json": "[]", "src/": "", "include/": ""})

        params = languages.cfamily_params(tmp_path)

        assert params[0] == "-Dsonar.cfamily.compile-commands=build/compile_commands.json"
        assert params[1] == "-Dsonar.sources=src,include"

    def test_jacoco_reports(self, tmp_path: Path) -> None:
        make_tree(tmp_path, {"target/site/jacoco/jacoco.xml": "", "build/jacoco/test.xml": ""})

        assert languages.jacoco_params(tmp_path) == [
            "-Dsonar.coverage.jacoco.xmlReportPaths=target/site/jacoco/jacoco.xml,build/jacoco/test.xml"
        ]

    def test_javascript_without_src(self, tmp_path: Path) -> None:
        params = languages.javascript_params(tmp_path)

        assert params[0] == "-Dsonar.sources=."


class TestDetectPythonVersions:
    """Tests for detect_python_versions."""

    @pytest.mark.parametrize(
        ("requires", "expected"),
        [
            (">=3.11", ["3.11"]),
            (">=3.9,<3.12", ["3.9", "3.10", "3.11"]),
            ("~=3.10", []),
        ],
    )
    def test_requires_python(self, tmp_path: Path, requires: str, expected: list[str]) -> None:
        make_tree(tmp_path, {"pyproject.toml": f'requires-python = "{requires}"\n'})

        assert languages.detect_python_versions(tmp_path) == expected

    def test_python_version_file(self, tmp_path: Path) -> None:
        make_tree(tmp_path, {".python-version": "3.12.1\n"})

        assert languages.detect_python_versions(tmp_path) == ["3.12"]


# =============================================================================
# Libraries and paths
# =============================================================================


class TestLibraries:
    """Tests for classpath parsing and Gradle cache scanning."""

    def test_parse_maven_classpath(self) -> None:
        jars = parse_maven_classpath(MAVEN_CLASSPATH_OUTPUT)

        assert jars == [
            "/home/dev/.m2/repository/org/slf4j/slf4j-api/2.0.9/slf4j-api-2.0.9.jar",
            "/home/dev/.m2/repository/junit/junit/4.13/junit-4.13.jar",
        ]

    def test_parse_empty(self) -> None:
        assert parse_maven_classpath("[INFO] BUILD SUCCESS") == []

    def test_gradle_cache(self, tmp_path: Path) -> None:
        make_tree(tmp_path, {
            "caches/modules-2/files-2.1/org.x/lib/1.0/abc/lib-1.0.jar": "",
            "caches/modules-2/files-2.1/org.x/lib/1.0/abc/lib-1.0.pom": "",
        })

        jars = resolve_gradle_libraries(tmp_path)

        assert [Path(j).name for j in jars] == ["lib-1.0.jar"]

    def test_gradle_cache_missing(self, tmp_path: Path) -> None:
        assert resolve_gradle_libraries(tmp_path) == []


class TestProcessLibraryPaths:
    """Tests for process_library_paths."""

    def test_absolute_is_unchanged(self, tmp_path: Path) -> None:
        libs = ["/home/dev/.m2/repository/a.jar", " "]

        assert process_library_paths(libs, tmp_path, "absolute") == ["/home/dev/.m2/repository/a.jar"]

    def test_relative(self, tmp_path: Path) -> None:
        libs = [
            "/home/dev/.m2/repository/a/a.jar",
            "/home/dev/.m2/repository/b/b.jar",
            "/home/dev/.gradle/caches/c.jar",
            str(tmp_path / "lib" / "d.jar"),
            "/opt/shared/e.jar",
        ]

        assert process_library_paths(libs, tmp_path, "relative") == [
            M2_GLOB,
            GRADLE_GLOB,
            "lib/d.jar",
            "/opt/shared/e.jar",
        ]

    def test_glob_collapses_project_libs(self, tmp_path: Path) -> None:
        libs = [str(tmp_path / "lib" / "d.jar"), str(tmp_path / "lib" / "e.jar")]

        assert process_library_paths(libs, tmp_path, "glob") == [PROJECT_LIB_GLOB]

    def test_summarize(self) -> None:
        assert summarize_libraries("a,b,c,d,e") == "a, b, c (+2 more)"
