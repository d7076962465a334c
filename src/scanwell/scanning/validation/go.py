"""Go analyzer. Go tests live beside the sources, so both point at the root."""

import re
from pathlib import Path

from scanwell.scanning.validation.base import (
    LanguageAnalyzer,
    LanguageFindings,
    first_existing,
    read_text,
)

COVERAGE_PATHS = ("coverage.out", "cover.out", "coverage.txt")

_GO_VERSION_RE = re.compile(r"^go\s+(\d+\.\d+)", re.MULTILINE)


class GoAnalyzer(LanguageAnalyzer):
    language = "go"
    recommended_properties = ("sonar.go.coverage.reportPaths", "sonar.tests", "sonar.exclusions")

    def detect_language(self, project_path: Path) -> bool:
        return (project_path / "go.mod").exists()

    async def analyze_language(self, project_path: Path) -> LanguageFindings:
        findings = LanguageFindings(build_tool="go")

        go_mod = read_text(project_path / "go.mod") or ""
        if match := _GO_VERSION_RE.search(go_mod):
            findings.version = match.group(1)

        findings.add_property("sonar.sources", ".", "high", "Go project root directory")
        findings.add_property(
            "sonar.tests", ".", "medium", "Go tests are co-located with source files"
        )

        if report := first_existing(project_path, COVERAGE_PATHS):
            findings.add_property(
                "sonar.go.coverage.reportPaths",
                report,
                "high",
                f"detected Go coverage report at {report}",
            )
        else:
            findings.warn(
                "GO-INFO-001",
                "info",
                "No coverage report found",
                'Run "go test -coverprofile=coverage.out ./..." to generate coverage',
            )

        findings.add_property(
            "sonar.exclusions",
            "**/vendor/**,**/*_test.go",
            "high",
            "standard Go exclusions (vendor and test files from sources)",
        )
        findings.add_property("sonar.test.inclusions", "**/*_test.go", "high", "Go test file pattern")
        return findings
