"""C/C++ analyzer. The C-family sensor needs a compilation database."""

from pathlib import Path

from scanwell.scanning.validation.base import (
    LanguageAnalyzer,
    LanguageFindings,
    existing,
    first_existing,
)

BUILD_FILES = ("CMakeLists.txt", "Makefile", "meson.build", "configure.ac", "BUILD.bazel")
COMPILE_COMMANDS_PATHS = (
    "compile_commands.json",
    "build/compile_commands.json",
    "cmake-build-debug/compile_commands.json",
    "cmake-build-release/compile_commands.json",
)
BUILD_WRAPPER_PATHS = ("bw-output", "build-wrapper-output", ".sonar/bw-output")
EXCLUSIONS = "**/build/**,**/cmake-build-*/**,**/third_party/**,**/vendor/**"

# First match wins
_BUILD_TOOLS = (
    ("CMakeLists.txt", "cmake"),
    ("meson.build", "meson"),
    ("Makefile", "make"),
    ("BUILD.bazel", "bazel"),
)


class CppAnalyzer(LanguageAnalyzer):
    language = "cpp"
    critical_properties = ("sonar.sources", "sonar.cfamily.compile-commands")
    recommended_properties = ("sonar.cfamily.build-wrapper-output", "sonar.tests", "sonar.exclusions")

    def detect_language(self, project_path: Path) -> bool:
        return any(
            (project_path / name).exists()
            for name in (*BUILD_FILES, "compile_commands.json")
        )

    async def analyze_language(self, project_path: Path) -> LanguageFindings:
        findings = LanguageFindings()
        findings.build_tool = next(
            (tool for name, tool in _BUILD_TOOLS if (project_path / name).exists()), None
        )

        if sources := existing(project_path, ("src", "source", "lib", "include")):
            findings.add_property(
                "sonar.sources", ",".join(sources), "high", "detected C/C++ source directories"
            )
        else:
            findings.add_property("sonar.sources", "src", "low", "defaulting to src/")
            findings.warn(
                "CPP-WARN-001",
                "warning",
                "No standard source directory found",
                "Configure sonar.sources to point to your source directories",
            )

        if compile_commands := first_existing(project_path, COMPILE_COMMANDS_PATHS):
            findings.add_property(
                "sonar.cfamily.compile-commands",
                compile_commands,
                "high",
                "detected compile_commands.json",
            )
        else:
            findings.warn(
                "CPP-WARN-002",
                "warning",
                "No compile_commands.json found",
                'Run "cmake -DCMAKE_EXPORT_COMPILE_COMMANDS=ON ." to generate'
                if findings.build_tool == "cmake"
                else "Use bear or intercept-build to generate compile_commands.json",
            )

        if bw_output := first_existing(project_path, BUILD_WRAPPER_PATHS):
            findings.add_property(
                "sonar.cfamily.build-wrapper-output",
                bw_output,
                "high",
                "detected build-wrapper output directory",
            )

        if tests := existing(project_path, ("test", "tests", "unittest", "unit_tests")):
            findings.add_property("sonar.tests", ",".join(tests), "high", "detected test directories")

        findings.add_property("sonar.exclusions", EXCLUSIONS, "medium", "standard C/C++ exclusions")
        return findings
