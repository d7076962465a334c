"""Scanner selection.

Maven/Gradle projects written in a JVM language are analyzed through the
build tool's own plugin, which resolves the classpath itself. Everything
else goes through the generic sonar-scanner CLI.
"""

import time
from collections.abc import Mapping

from scanwell.foundation.types.scan import ProjectContext, ScanConfig, ScannerInvocation, ScannerStrategy

JVM_LANGUAGES = frozenset({"java", "kotlin", "scala", "groovy"})
NATIVE_PLUGIN_BUILD_TOOLS = frozenset({"maven", "gradle"})

_DESCRIPTIONS = {
    ScannerStrategy.MAVEN: "Maven Sonar Plugin (mvn sonar:sonar) - Full classpath analysis",
    ScannerStrategy.GRADLE: "Gradle Sonar Plugin (gradle sonar) - Full classpath analysis",
    ScannerStrategy.CLI: "SonarScanner CLI (sonar-scanner)",
}


def select_scanner(
    context: ProjectContext | None,
    *,
    force_cli: bool = False,
) -> ScannerStrategy:
    """Pick the scanner strategy for a project.

    Returns CLI when forced, when nothing is known about the project, or
    when the project is not a JVM project built by Maven or Gradle.
    """
    if force_cli or context is None:
        return ScannerStrategy.CLI

    has_jvm_language = any(lang.lower() in JVM_LANGUAGES for lang in context.languages)
    build_tool = (context.build_tool or "").lower()

    if has_jvm_language and build_tool in NATIVE_PLUGIN_BUILD_TOOLS:
        return ScannerStrategy.MAVEN if build_tool == "maven" else ScannerStrategy.GRADLE

    return ScannerStrategy.CLI


def describe_scanner(strategy: ScannerStrategy) -> str:
    """Human-readable description of a strategy."""
    return _DESCRIPTIONS[strategy]


def _plugin_args(
    goal: str,
    config: ScanConfig,
    extra_properties: Mapping[str, str] | None,
) -> tuple[str, ...]:
    args = [
        goal,
        "-q",
        f"-Dsonar.host.url={config.server_url}",
        f"-Dsonar.login={config.token}",
        f"-Dsonar.projectKey={config.project_key}",
        # Unique version forces a fresh analysis
        f"-Dsonar.projectVersion={int(time.time() * 1000)}",
    ]
    for key, value in (extra_properties or {}).items():
        args.append(f"-D{key}={value}")
    return tuple(args)


def build_maven_command(
    config: ScanConfig,
    extra_properties: Mapping[str, str] | None = None,
) -> ScannerInvocation:
    """``mvn sonar:sonar -q -Dsonar...``"""
    return ScannerInvocation(
        strategy=ScannerStrategy.MAVEN,
        command="mvn",
        args=_plugin_args("sonar:sonar", config, extra_properties),
    )


def build_gradle_command(
    config: ScanConfig,
    extra_properties: Mapping[str, str] | None = None,
) -> ScannerInvocation:
    """``./gradlew sonar -q -Dsonar...``"""
    return ScannerInvocation(
        strategy=ScannerStrategy.GRADLE,
        command="./gradlew",
        args=_plugin_args("sonar", config, extra_properties),
    )
