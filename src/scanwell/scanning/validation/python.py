"""Python analyzer."""

import re
from pathlib import Path

from scanwell.scanning.validation.base import (
    LanguageAnalyzer,
    LanguageFindings,
    existing,
    read_text,
)

PROJECT_FILES = (
    "pyproject.toml",
    "setup.py",
    "setup.cfg",
    "requirements.txt",
    "Pipfile",
    "poetry.lock",
)
EXCLUSIONS = "**/__pycache__/**,**/venv/**,**/.venv/**,**/env/**,**/*.pyc"

_REQUIRES_PYTHON_RE = re.compile(r"requires-python\s*=\s*[\"']([^\"']+)[\"']")
_POETRY_PYTHON_RE = re.compile(r"python\s*=\s*[\"'][\^~]?(\d+\.\d+)")
_VERSION_RE = re.compile(r"(\d+\.\d+)")


def python_version_from_pyproject(content: str) -> str | None:
    """Lowest version named by ``requires-python`` or a Poetry constraint."""
    if match := _REQUIRES_PYTHON_RE.search(content):
        if version := _VERSION_RE.search(match.group(1)):
            return version.group(1)
    if match := _POETRY_PYTHON_RE.search(content):
        return match.group(1)
    return None


class PythonAnalyzer(LanguageAnalyzer):
    language = "python"
    recommended_properties = (
        "sonar.python.version",
        "sonar.tests",
        "sonar.python.coverage.reportPaths",
        "sonar.exclusions",
    )

    def detect_language(self, project_path: Path) -> bool:
        return any((project_path / name).exists() for name in PROJECT_FILES)

    async def analyze_language(self, project_path: Path) -> LanguageFindings:
        findings = LanguageFindings()

        pyproject = read_text(project_path / "pyproject.toml")
        if pyproject is not None:
            findings.build_tool = "poetry" if "[tool.poetry]" in pyproject else "pyproject"
            findings.version = python_version_from_pyproject(pyproject)
        elif (project_path / "Pipfile").exists():
            findings.build_tool = "pipenv"
        elif (project_path / "setup.py").exists():
            findings.build_tool = "setuptools"
        elif (project_path / "requirements.txt").exists():
            findings.build_tool = "pip"

        if not findings.version:
            pinned = read_text(project_path / ".python-version")
            if pinned and pinned.strip():
                findings.version = pinned.strip().splitlines()[0]

        if findings.version:
            findings.add_property(
                "sonar.python.version",
                findings.version,
                "high",
                "detected from project configuration",
            )

        if sources := existing(project_path, ("src", "lib", "app")):
            findings.add_property(
                "sonar.sources", ",".join(sources), "high", "detected Python source directories"
            )
        else:
            findings.add_property("sonar.sources", ".", "low", "defaulting to project root")
            findings.warn(
                "PYTHON-WARN-001",
                "info",
                "No standard Python source directory found (src/, lib/)",
                "Consider organizing code in a src/ directory",
            )

        if tests := existing(project_path, ("tests", "test", "spec")):
            findings.add_property(
                "sonar.tests", ",".join(tests), "high", "detected Python test directories"
            )

        self._detect_coverage(project_path, findings)

        findings.add_property("sonar.exclusions", EXCLUSIONS, "medium", "standard Python exclusions")
        return findings

    def _detect_coverage(self, project_path: Path, findings: LanguageFindings) -> None:
        key = "sonar.python.coverage.reportPaths"
        if (project_path / "coverage.xml").exists():
            findings.add_property(key, "coverage.xml", "high", "detected coverage.xml report")
        elif (project_path / "htmlcov" / "coverage.xml").exists():
            findings.add_property(
                key, "htmlcov/coverage.xml", "high", "detected coverage report in htmlcov/"
            )
        elif (project_path / ".coverage").exists():
            findings.add_property(
                key,
                "coverage.xml",
                "low",
                '.coverage found - run "coverage xml" to generate XML report',
            )
