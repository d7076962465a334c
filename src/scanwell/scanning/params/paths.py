"""Path portability for generated scanner configuration.

Library paths resolved on one machine (``/home/alice/.m2/repository/...``)
are useless in a committed sonar-project.properties. These helpers rewrite
them into forms that work for anyone checking the project out.
"""

import os
from collections.abc import Iterable
from pathlib import Path

from scanwell.foundation.types.config import LibraryPathMode

_M2_MARKER = f"{os.sep}.m2{os.sep}repository"
_GRADLE_MARKER = f"{os.sep}.gradle{os.sep}caches"

M2_GLOB = "${user.home}/.m2/repository/**/*.jar"
GRADLE_GLOB = "${user.home}/.gradle/caches/**/*.jar"
PROJECT_LIB_GLOB = "**/lib/**/*.jar"


def make_relative_if_possible(path: str, project_path: Path) -> str:
    """Relativize ``path`` when it lives under the project, else return it unchanged."""
    try:
        return Path(path).resolve().relative_to(project_path.resolve()).as_posix()
    except (ValueError, OSError):
        return path


def process_library_paths(
    libraries: Iterable[str],
    project_path: Path,
    mode: LibraryPathMode = "relative",
) -> list[str]:
    """Rewrite library paths according to ``mode``.

    - absolute: unchanged
    - relative: local Maven/Gradle caches become ``${user.home}`` globs,
      project jars become project-relative
    - glob: like relative, but project ``lib/`` jars collapse to one glob
    """
    items = [p.strip() for p in libraries if p.strip()]
    if mode == "absolute":
        return items

    result: list[str] = []
    seen: set[str] = set()

    def add(value: str) -> None:
        if value not in seen:
            seen.add(value)
            result.append(value)

    for item in items:
        if _M2_MARKER in item or "/.m2/repository" in item:
            add(M2_GLOB)
        elif _GRADLE_MARKER in item or "/.gradle/caches" in item:
            add(GRADLE_GLOB)
        else:
            relative = make_relative_if_possible(item, project_path)
            if mode == "glob" and relative != item and "/lib/" in f"/{relative}":
                add(PROJECT_LIB_GLOB)
            else:
                add(relative)
    return result


def count_libraries(value: str) -> int:
    """Number of entries in a comma-separated library list."""
    return len([p for p in value.split(",") if p.strip()])


def summarize_libraries(value: str, limit: int = 3) -> str:
    """Short display form of a library list."""
    parts = [p.strip() for p in value.split(",") if p.strip()]
    if len(parts) <= limit:
        return ", ".join(parts)
    return f"{', '.join(parts[:limit])} (+{len(parts) - limit} more)"
