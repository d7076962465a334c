"""JavaScript/TypeScript analyzer."""

import posixpath
from pathlib import Path

from scanwell.scanning.validation.base import (
    LanguageAnalyzer,
    LanguageFindings,
    existing,
    first_existing,
    read_json,
)

SOURCE_CANDIDATES = ("src", "lib", "app", "source")
TEST_CANDIDATES = ("test", "tests", "__tests__", "spec", "specs")
LCOV_PATHS = ("coverage/lcov.info", "coverage/lcov-report/lcov.info", ".nyc_output/lcov.info")
EXCLUSIONS = "**/node_modules/**,**/dist/**,**/build/**,**/*.min.js,**/coverage/**"


class JavaScriptAnalyzer(LanguageAnalyzer):
    language = "javascript"
    recommended_properties = (
        "sonar.tests",
        "sonar.javascript.lcov.reportPaths",
        "sonar.typescript.tsconfigPath",
        "sonar.exclusions",
    )

    def detect_language(self, project_path: Path) -> bool:
        return (project_path / "package.json").exists()

    async def analyze_language(self, project_path: Path) -> LanguageFindings:
        findings = LanguageFindings()
        package = read_json(project_path / "package.json") or {}

        if (project_path / "pnpm-lock.yaml").exists():
            findings.build_tool = "pnpm"
        elif (project_path / "yarn.lock").exists():
            findings.build_tool = "yarn"
        else:
            findings.build_tool = "npm"

        if (project_path / "tsconfig.json").exists():
            findings.version = "typescript"
            findings.add_property(
                "sonar.typescript.tsconfigPath",
                "tsconfig.json",
                "high",
                "detected TypeScript configuration",
            )

        main = package.get("main")
        if sources := existing(project_path, SOURCE_CANDIDATES):
            findings.add_property(
                "sonar.sources", ",".join(sources), "high", "detected source directories"
            )
        elif isinstance(main, str) and main:
            main_dir = posixpath.dirname(main) or "."
            findings.add_property(
                "sonar.sources",
                "src" if main_dir == "." else main_dir,
                "medium",
                "inferred from package.json main field",
            )
        else:
            findings.add_property("sonar.sources", "src", "low", "defaulting to src/")

        if tests := existing(project_path, TEST_CANDIDATES):
            findings.add_property("sonar.tests", ",".join(tests), "high", "detected test directories")

        if lcov := first_existing(project_path, LCOV_PATHS):
            findings.add_property(
                "sonar.javascript.lcov.reportPaths", lcov, "high", f"detected LCOV report at {lcov}"
            )
        else:
            findings.warn(
                "JS-INFO-001",
                "info",
                "No coverage report found",
                "Run tests with --coverage flag to generate lcov.info",
            )

        findings.add_property(
            "sonar.exclusions", EXCLUSIONS, "high", "standard JavaScript/TypeScript exclusions"
        )
        return findings
