"""Tests for pre-scan validation and the language analyzers."""

from pathlib import Path

import pytest
from conftest import FakeRunner, make_tree

from scanwell.scanning.validation.base import LanguageAnalyzer, LanguageFindings
from scanwell.scanning.validation.cpp import CppAnalyzer
from scanwell.scanning.validation.existing import (
    ExistingConfigValidator,
    completeness_score,
    parse_properties,
)
from scanwell.scanning.validation.go import GoAnalyzer
from scanwell.scanning.validation.java import (
    JavaAnalyzer,
    extract_gradle_modules,
    extract_maven_modules,
)
from scanwell.scanning.validation.javascript import JavaScriptAnalyzer
from scanwell.scanning.validation.prescan import PreScanValidator, format_validation_output
from scanwell.scanning.validation.python import PythonAnalyzer, python_version_from_pyproject


class BrokenAnalyzer(LanguageAnalyzer):
    language = "broken"

    def detect_language(self, project_path: Path) -> bool:
        raise RuntimeError("cannot read build file")

    async def analyze_language(self, project_path: Path) -> LanguageFindings:
        return LanguageFindings()


class FailingAnalyzer(LanguageAnalyzer):
    language = "failing"

    def detect_language(self, project_path: Path) -> bool:
        return True

    async def analyze_language(self, project_path: Path) -> LanguageFindings:
        raise ValueError("bad layout")


# =============================================================================
# Analyzers
# =============================================================================


class TestJavaAnalyzer:
    """Tests for JavaAnalyzer."""

    @pytest.mark.asyncio
    async def test_maven_layout(self, maven_project: Path, runner: FakeRunner, tmp_path: Path) -> None:
        result = await JavaAnalyzer(runner, home=tmp_path).analyze(maven_project)

        props = {p.key: p.value for p in result.properties}
        assert result.detected
        assert result.build_tool == "maven"
        assert result.version == "17"
        assert props["sonar.sources"] == "src/main/java"
        assert props["sonar.tests"] == "src/test/java"
        assert props["sonar.java.binaries"] == "target/classes"
        assert result.warnings == ()

    @pytest.mark.asyncio
    async def test_uncompiled_gradle(self, tmp_path: Path, runner: FakeRunner) -> None:
        project = make_tree(tmp_path / "app", {
            "build.gradle": "java { sourceCompatibility = '21' }",
            "settings.gradle": "include ':core'\ninclude ':web'",
            "src/main/java/": "",
        })

        result = await JavaAnalyzer(runner, home=tmp_path / "home").analyze(project)

        codes = [w.code for w in result.warnings]
        assert result.version == "21"
        assert "JAVA-WARN-001" in codes
        assert "JAVA-WARN-002" in codes
        assert [m.name for m in result.modules] == ["core", "web"]
        assert runner.calls == []

    def test_module_extraction(self) -> None:
        pom = "<modules>\n  <module>api</module>\n  <module> impl </module>\n</modules>"

        assert extract_maven_modules(pom) == ["api", "impl"]
        assert extract_gradle_modules('include("app")\ninclude ":lib"') == ["app", "lib"]


class TestOtherAnalyzers:
    """Tests for the Python, JavaScript, Go and C/C++ analyzers."""

    @pytest.mark.asyncio
    async def test_python(self, python_project: Path) -> None:
        result = await PythonAnalyzer().analyze(python_project)

        props = {p.key: p.value for p in result.properties}
        assert result.version == "3.11"
        assert result.build_tool == "pyproject"
        assert props["sonar.python.version"] == "3.11"
        assert props["sonar.sources"] == "src"
        assert props["sonar.tests"] == "tests"

    def test_poetry_python_version(self) -> None:
        assert python_version_from_pyproject('[tool.poetry.dependencies]\npython = "^3.10"\n') == "3.10"

    @pytest.mark.asyncio
    async def test_python_without_src(self, tmp_path: Path) -> None:
        make_tree(tmp_path, {"requirements.txt": "httpx"})

        result = await PythonAnalyzer().analyze(tmp_path)

        assert result.build_tool == "pip"
        assert [w.code for w in result.warnings] == ["PYTHON-WARN-001"]

    @pytest.mark.asyncio
    async def test_javascript_main_field(self, tmp_path: Path) -> None:
        make_tree(tmp_path, {"package.json": '{"main": "server/index.js"}', "coverage/lcov.info": ""})

        result = await JavaScriptAnalyzer().analyze(tmp_path)

        props = {p.key: p.value for p in result.properties}
        assert props["sonar.sources"] == "server"
        assert props["sonar.javascript.lcov.reportPaths"] == "coverage/lcov.info"

    @pytest.mark.asyncio
    async def test_go(self, tmp_path: Path) -> None:
        make_tree(tmp_path, {"go.mod": "module example.com/x\n\ngo 1.22\n"})

        result = await GoAnalyzer().analyze(tmp_path)

        assert result.version == "1.22"
        assert [w.code for w in result.warnings] == ["GO-INFO-001"]

    @pytest.mark.asyncio
    async def test_cpp_without_compile_commands(self, tmp_path: Path) -> None:
        make_tree(tmp_path, {"CMakeLists.txt": "", "src/": ""})

        result = await CppAnalyzer().analyze(tmp_path)

        (warning,) = result.warnings
        assert result.build_tool == "cmake"
        assert warning.code == "CPP-WARN-002"
        assert "CMAKE_EXPORT_COMPILE_COMMANDS" in warning.suggestion

    @pytest.mark.asyncio
    async def test_not_detected(self, tmp_path: Path) -> None:
        result = await GoAnalyzer().analyze(tmp_path)

        assert result.detected is False
        assert result.properties == ()

    @pytest.mark.asyncio
    async def test_analyze_failure_becomes_warning(self, tmp_path: Path) -> None:
        result = await FailingAnalyzer().analyze(tmp_path)

        (warning,) = result.warnings
        assert result.detected
        assert warning.code == "FAILING-ERR-001"


# =============================================================================
# PreScanValidator
# =============================================================================


class TestPreScanValidator:
    """Tests for the aggregate validation result."""

    @pytest.mark.asyncio
    async def test_compiled_maven_is_full(self, maven_project: Path, runner: FakeRunner) -> None:
        result = await PreScanValidator(runner).validate(maven_project)

        assert [lang.language for lang in result.languages] == ["java"]
        assert result.missing_critical == ()
        assert result.scan_quality == "full"
        assert result.can_proceed
        assert result.existing_config is None
        assert result.properties_map()["sonar.java.binaries"] == "target/classes"

    @pytest.mark.asyncio
    async def test_missing_critical_is_partial(self, tmp_path: Path, runner: FakeRunner) -> None:
        make_tree(tmp_path, {"pom.xml": "<project/>", "src/main/java/": ""})

        result = await PreScanValidator(runner).validate(tmp_path)

        assert result.missing_critical == ("sonar.java.binaries",)
        assert result.scan_quality == "partial"
        assert result.can_proceed

    @pytest.mark.asyncio
    async def test_nothing_detected_is_degraded(self, tmp_path: Path, runner: FakeRunner) -> None:
        result = await PreScanValidator(runner).validate(tmp_path)

        assert result.languages == ()
        assert result.scan_quality == "degraded"
        assert result.can_proceed

    @pytest.mark.asyncio
    async def test_analyzer_error_is_reported(self, python_project: Path) -> None:
        validator = PreScanValidator(analyzers=[BrokenAnalyzer(), PythonAnalyzer()])

        result = await validator.validate(python_project)

        assert result.warnings[0].code == "ANALYZER_ERROR"
        assert [lang.language for lang in result.languages] == ["python"]

    def test_register_replaces_language(self) -> None:
        validator = PreScanValidator(analyzers=[GoAnalyzer()])
        replacement = GoAnalyzer()

        validator.register_analyzer(replacement)
        validator.register_analyzer(CppAnalyzer())

        assert validator.registered_languages == ["go", "cpp"]

    @pytest.mark.asyncio
    async def test_existing_config(self, python_project: Path) -> None:
        """Only detected keys count towards completeness."""
        make_tree(python_project, {"sonar-project.properties": "# mine\nsonar.sources=src\n"})

        result = await PreScanValidator(analyzers=[PythonAnalyzer()]).validate(python_project)

        existing = result.existing_config
        assert existing is not None
        assert existing.completeness_score == 60
        assert existing.missing_critical == ()
        assert existing.missing_recommended == ("sonar.python.version", "sonar.tests", "sonar.exclusions")

    @pytest.mark.asyncio
    async def test_summary(self, python_project: Path) -> None:
        result = await PreScanValidator(analyzers=[PythonAnalyzer()]).validate(python_project)

        summary = result.summary()

        assert summary["detected_languages"] == ["python"]
        assert summary["config_completeness"] is None
        assert {"key": "sonar.sources", "value": "src", "confidence": "high"} in summary[
            "detected_properties"
        ]

    @pytest.mark.asyncio
    async def test_format_output(self, maven_project: Path, runner: FakeRunner) -> None:
        make_tree(maven_project, {"sonar-project.properties": "sonar.sources=src/main/java\n"})
        result = await PreScanValidator(runner).validate(maven_project)

        text = format_validation_output(result)

        assert text.startswith("PRE-SCAN VALIDATION RESULTS")
        assert "  - java 17 (maven)" in text
        assert "CONFIG ANALYSIS (sonar-project.properties exists):" in text
        assert "    - sonar.java.binaries" in text
        assert text.endswith("Can Proceed: YES")


class TestExistingConfig:
    """Tests for properties parsing and completeness scoring."""

    def test_parse_properties(self) -> None:
        content = "# comment\n\nsonar.sources = src\nsonar.empty=\nnot a property\nurl=http://x?a=b\n"

        assert parse_properties(content) == {
            "sonar.sources": "src",
            "sonar.empty": "",
            "url": "http://x?a=b",
        }

    def test_nothing_detected_is_full_marks(self) -> None:
        assert completeness_score({}, set(), ["sonar.sources"], ["sonar.tests"]) == 100

    def test_partial_score(self) -> None:
        score = completeness_score(
            {"sonar.sources": "src", "sonar.tests": ""},
            {"sonar.sources", "sonar.java.binaries", "sonar.tests"},
            ["sonar.sources", "sonar.java.binaries"],
            ["sonar.tests"],
        )

        assert score == 30

    def test_missing_file(self, tmp_path: Path) -> None:
        analysis = ExistingConfigValidator().validate(tmp_path, [], ["sonar.sources"], [])

        assert analysis.exists is False
        assert analysis.missing_critical == ("sonar.sources",)
