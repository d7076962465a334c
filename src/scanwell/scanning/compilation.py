"""Java compilation precheck.

The JVM analyzers need compiled classes. Running a scan over an uncompiled
Maven or Gradle project fails late and with an unhelpful message, so the
executor checks for class output first and fails fast with the command to run.
"""

import logging
import os
from pathlib import Path

from scanwell.foundation.errors import CompilationRequiredError
from scanwell.foundation.types.scan import ProjectContext
from scanwell.scanning.validation.existing import PROPERTIES_FILE

logger = logging.getLogger(__name__)

_SEARCH_SKIP = frozenset({"node_modules", ".git", ".idea", ".vscode", "src"})
_MAX_SEARCH_DEPTH = 3

_BUILD_LAYOUTS: dict[str, tuple[tuple[str, ...], str]] = {
    "maven": (("target/classes",), "mvn compile -q"),
    "gradle": (("build/classes/java/main", "build/classes/kotlin/main"), "./gradlew compileJava"),
}


def _find_classes_dir(root: Path, relative: str, depth: int = 0) -> Path | None:
    """Depth-limited search for ``relative`` under any subdirectory."""
    candidate = root / relative
    if candidate.is_dir():
        return candidate
    if depth >= _MAX_SEARCH_DEPTH:
        return None
    try:
        entries = sorted(os.scandir(root), key=lambda e: e.name)
    except OSError:
        return None
    for entry in entries:
        if not entry.is_dir(follow_symlinks=False) or entry.name in _SEARCH_SKIP:
            continue
        found = _find_classes_dir(Path(entry.path), relative, depth + 1)
        if found is not None:
            return found
    return None


def check_java_compilation(project_path: Path, context: ProjectContext | None) -> None:
    """Fail fast when a Maven/Gradle Java project has no compiled classes.

    Skipped for non-Java projects, when sonar-project.properties exists
    (the user owns the binaries setting), or when the build tool is unknown.

    Raises:
        CompilationRequiredError: With the expected directory and build command
    """
    if context is None or not context.has_language("java"):
        return
    if (project_path / PROPERTIES_FILE).exists():
        logger.debug("Skipping compilation check: %s present", PROPERTIES_FILE)
        return

    layout = _BUILD_LAYOUTS.get((context.build_tool or "").lower())
    if layout is None:
        return

    expected, command = layout
    for relative in expected:
        found = _find_classes_dir(project_path, relative)
        if found is not None:
            logger.debug("Compiled classes found at %s", found)
            return

    raise CompilationRequiredError(expected=" or ".join(expected), command=command)
