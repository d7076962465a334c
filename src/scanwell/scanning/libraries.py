"""Java library (classpath) resolution.

Best effort throughout: a project analyzes fine without libraries, just
less precisely, so every failure here is logged and swallowed.
"""

import logging
import os
import re
from pathlib import Path

from scanwell.foundation.errors import ScanwellError
from scanwell.scanning.runner import ScannerRunner

logger = logging.getLogger(__name__)

CLASSPATH_TIMEOUT = 60.0
_MAX_JARS = 500
_MAX_ENTRIES_PER_DIR = 100

_LOG_MARKERS = ("[INFO]", "[WARNING]", "[ERROR]", "Downloading from ", "Downloaded from ")
_PROGRESS_RE = re.compile(r"\(?\d+\s*(kB|MB|B)\s*(at|/s)", re.IGNORECASE)
_WINDOWS_DRIVE_RE = re.compile(r"^[A-Za-z]:")


def _is_classpath_line(line: str) -> bool:
    """Keep only lines that look like resolved classpath entries."""
    stripped = line.strip()
    if not stripped or ("/" not in stripped and "\\" not in stripped):
        return False
    if any(marker in stripped for marker in _LOG_MARKERS):
        return False
    if stripped.startswith("Progress ") or "://" in stripped or "central:" in stripped:
        return False
    if _PROGRESS_RE.search(stripped):
        return False
    for part in re.split(r"[:;]", stripped):
        part = part.strip()
        if (part.startswith("/") or _WINDOWS_DRIVE_RE.match(part)) and (
            part.endswith(".jar") or ".m2/repository" in part or "target/" in part
        ):
            return True
    return False


def parse_maven_classpath(output: str) -> list[str]:
    """Extract jar paths from ``mvn dependency:build-classpath`` output."""
    lines = [line.strip() for line in output.splitlines() if _is_classpath_line(line)]
    if not lines:
        return []
    classpath = "".join(lines)
    return [p for p in classpath.split(os.pathsep) if p.strip() and ".jar" in p]


async def resolve_maven_libraries(runner: ScannerRunner, project_path: Path) -> list[str]:
    """Compile-scope dependency jars for a Maven project."""
    logger.info("Resolving Maven dependencies...")
    try:
        # No -q: quiet mode suppresses the classpath itself
        result = await runner.run(
            "mvn",
            ["dependency:build-classpath", "-DincludeScope=compile"],
            cwd=project_path,
            timeout=CLASSPATH_TIMEOUT,
        )
    except ScanwellError as e:
        logger.warning("Could not resolve Maven dependencies: %s", e.message)
        return []

    if not result.ok:
        logger.warning("Maven dependency resolution exited with %d", result.returncode)
        return []

    libraries = parse_maven_classpath(result.stdout)
    if libraries:
        logger.info("Added %d Maven libraries", len(libraries))
    else:
        logger.warning("No Maven dependencies found in classpath output")
    return libraries


def _find_jars(directory: Path, max_depth: int, found: list[str]) -> None:
    if max_depth <= 0 or len(found) > _MAX_JARS:
        return
    try:
        entries = sorted(directory.iterdir())[:_MAX_ENTRIES_PER_DIR]
    except OSError:
        return
    for entry in entries:
        if entry.is_file() and entry.suffix == ".jar":
            found.append(str(entry))
        elif entry.is_dir() and max_depth > 1:
            _find_jars(entry, max_depth - 1, found)
            if len(found) > _MAX_JARS:
                return


def resolve_gradle_libraries(gradle_home: Path | None = None) -> list[str]:
    """Jars from the local Gradle module cache (depth-limited scan)."""
    cache = (gradle_home or Path.home() / ".gradle") / "caches" / "modules-2" / "files-2.1"
    if not cache.is_dir():
        logger.info("Gradle cache not accessible at %s", cache)
        return []
    jars: list[str] = []
    _find_jars(cache, 5, jars)
    logger.info("Added %d Gradle libraries", len(jars))
    return jars
