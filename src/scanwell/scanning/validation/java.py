"""Java analyzer: Maven and Gradle layouts, compiled classes, libraries, JaCoCo."""

import re
from pathlib import Path

from scanwell.foundation.types.scan import ModuleInfo
from scanwell.scanning.libraries import resolve_maven_libraries
from scanwell.scanning.runner import ScannerRunner, SubprocessRunner
from scanwell.scanning.validation.base import (
    LanguageAnalyzer,
    LanguageFindings,
    existing,
    read_text,
)

JACOCO_PATHS = (
    "target/site/jacoco/jacoco.xml",
    "target/jacoco-report/jacoco.xml",
    "target/jacoco/jacoco.xml",
    "build/reports/jacoco/test/jacocoTestReport.xml",
    "build/reports/jacoco/jacocoTestReport.xml",
    "build/jacoco/test.xml",
)

_MAVEN_VERSION_PATTERNS = (
    re.compile(r"<maven\.compiler\.source>(\d+(?:\.\d+)?)</maven\.compiler\.source>"),
    re.compile(r"<maven\.compiler\.target>(\d+(?:\.\d+)?)</maven\.compiler\.target>"),
    re.compile(r"<java\.version>(\d+(?:\.\d+)?)</java\.version>"),
)
_GRADLE_VERSION_PATTERNS = (
    re.compile(r"sourceCompatibility\s*=\s*['\"]?(\d+(?:\.\d+)?)['\"]?"),
    re.compile(r"JavaVersion\.VERSION_(\d+)"),
    re.compile(r"languageVersion\.set\(JavaLanguageVersion\.of\((\d+)\)\)"),
)
_MAVEN_MODULES_RE = re.compile(r"<modules>(.*?)</modules>", re.DOTALL)
_MAVEN_MODULE_RE = re.compile(r"<module>([^<]+)</module>")
_GRADLE_INCLUDE_RE = re.compile(r"include\s*\(?['\"]([^'\"]+)['\"]\)?")


def _first_match(content: str, patterns: tuple[re.Pattern[str], ...]) -> str | None:
    for pattern in patterns:
        if match := pattern.search(content):
            return match.group(1)
    return None


def extract_maven_modules(pom: str) -> list[str]:
    block = _MAVEN_MODULES_RE.search(pom)
    if not block:
        return []
    return [m.strip() for m in _MAVEN_MODULE_RE.findall(block.group(1))]


def extract_gradle_modules(settings: str) -> list[str]:
    return [name.lstrip(":") for name in _GRADLE_INCLUDE_RE.findall(settings)]


class JavaAnalyzer(LanguageAnalyzer):
    """Maven/Gradle projects.

    Library resolution shells out to ``mvn`` through the injected runner;
    Gradle libraries are left to the scanner and only reported as warnings.
    """

    language = "java"
    critical_properties = ("sonar.sources", "sonar.java.binaries")
    recommended_properties = (
        "sonar.tests",
        "sonar.java.libraries",
        "sonar.java.source",
        "sonar.java.test.binaries",
        "sonar.coverage.jacoco.xmlReportPaths",
    )

    def __init__(self, runner: ScannerRunner | None = None, home: Path | None = None):
        self.runner = runner or SubprocessRunner()
        self.home = home or Path.home()

    def detect_language(self, project_path: Path) -> bool:
        return any(
            (project_path / name).exists()
            for name in ("pom.xml", "build.gradle", "build.gradle.kts")
        )

    async def analyze_language(self, project_path: Path) -> LanguageFindings:
        findings = LanguageFindings()
        if (project_path / "pom.xml").exists():
            findings.build_tool = "maven"
            await self._analyze_maven(project_path, findings)
        else:
            findings.build_tool = "gradle"
            self._analyze_gradle(project_path, findings)

        if reports := existing(project_path, JACOCO_PATHS):
            findings.add_property(
                "sonar.coverage.jacoco.xmlReportPaths",
                ",".join(reports),
                "high",
                f"detected JaCoCo reports: {', '.join(reports)}",
            )
        return findings

    async def _analyze_maven(self, project_path: Path, findings: LanguageFindings) -> None:
        pom = read_text(project_path / "pom.xml")
        if pom and (version := _first_match(pom, _MAVEN_VERSION_PATTERNS)):
            findings.version = version
            findings.add_property(
                "sonar.java.source", version, "high", "detected from pom.xml maven.compiler.source"
            )

        if (project_path / "src/main/java").exists():
            findings.add_property("sonar.sources", "src/main/java", "high", "Maven standard layout")
        if (project_path / "src/test/java").exists():
            findings.add_property("sonar.tests", "src/test/java", "high", "Maven standard layout")

        if (project_path / "target/classes").exists():
            findings.add_property(
                "sonar.java.binaries", "target/classes", "high", "Maven target/classes directory"
            )
        else:
            findings.warn(
                "JAVA-WARN-001",
                "warning",
                "No compiled classes found in target/classes",
                'Run "mvn compile" before scanning',
            )
        if (project_path / "target/test-classes").exists():
            findings.add_property(
                "sonar.java.test.binaries",
                "target/test-classes",
                "high",
                "Maven target/test-classes directory",
            )

        for name in extract_maven_modules(pom or ""):
            findings.modules.append(ModuleInfo(
                name=name,
                path=name,
                build_tool="maven",
                languages=("java",),
                source_dirs=(f"{name}/src/main/java",),
                test_dirs=(f"{name}/src/test/java",),
                binary_dirs=(f"{name}/target/classes",),
            ))

        libraries = await resolve_maven_libraries(self.runner, project_path)
        if libraries:
            findings.add_property(
                "sonar.java.libraries",
                ",".join(libraries),
                "high",
                f"resolved {len(libraries)} JARs via mvn dependency:build-classpath",
            )
        elif (self.home / ".m2" / "repository").exists():
            findings.warn(
                "JAVA-WARN-002",
                "warning",
                "Could not resolve Maven dependencies via command",
                'Run "mvn dependency:resolve" to download dependencies',
            )

    def _analyze_gradle(self, project_path: Path, findings: LanguageFindings) -> None:
        build = read_text(project_path / "build.gradle") or read_text(project_path / "build.gradle.kts")
        if build and (version := _first_match(build, _GRADLE_VERSION_PATTERNS)):
            findings.version = version
            findings.add_property(
                "sonar.java.source",
                version,
                "high",
                "detected from build.gradle sourceCompatibility",
            )

        if (project_path / "src/main/java").exists():
            findings.add_property("sonar.sources", "src/main/java", "high", "Gradle standard layout")
        if (project_path / "src/test/java").exists():
            findings.add_property("sonar.tests", "src/test/java", "high", "Gradle standard layout")

        for binaries in ("build/classes/java/main", "build/classes/kotlin/main"):
            if (project_path / binaries).exists():
                findings.add_property(
                    "sonar.java.binaries", binaries, "high", f"Gradle {binaries} directory"
                )
                break
        else:
            findings.warn(
                "JAVA-WARN-001",
                "warning",
                "No compiled classes found in build/classes",
                'Run "gradle build" or "./gradlew build" before scanning',
            )
        if (project_path / "build/classes/java/test").exists():
            findings.add_property(
                "sonar.java.test.binaries",
                "build/classes/java/test",
                "high",
                "Gradle build/classes/java/test directory",
            )

        settings = read_text(project_path / "settings.gradle") or ""
        for name in extract_gradle_modules(settings):
            findings.modules.append(ModuleInfo(
                name=name,
                path=name,
                build_tool="gradle",
                languages=("java",),
                source_dirs=(f"{name}/src/main/java",),
                test_dirs=(f"{name}/src/test/java",),
                binary_dirs=(f"{name}/build/classes/java/main",),
            ))

        if (self.home / ".gradle" / "caches" / "modules-2" / "files-2.1").exists():
            findings.warn(
                "JAVA-WARN-003",
                "info",
                "Gradle dependencies detected but not fully resolved",
                "Libraries will be resolved from Gradle cache",
            )
        else:
            findings.warn(
                "JAVA-WARN-002",
                "warning",
                "Could not resolve Gradle dependencies",
                'Run "./gradlew build" to download dependencies',
            )
