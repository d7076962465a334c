"""Language-specific default scanner parameters.

Used when a CLI scan has neither a sonar-project.properties nor detected
properties to go on. Each builder inspects the project layout and returns
``-Dkey=value`` arguments.
"""

import logging
import re
from pathlib import Path

from scanwell.scanning.libraries import resolve_gradle_libraries, resolve_maven_libraries
from scanwell.scanning.runner import ScannerRunner

logger = logging.getLogger(__name__)

JACOCO_REPORT_PATHS = (
    "target/site/jacoco/jacoco.xml",
    "target/jacoco-report/jacoco.xml",
    "target/jacoco/jacoco.xml",
    "build/reports/jacoco/test/jacocoTestReport.xml",
    "build/jacoco/test.xml",
)

JAVA_SOURCE_CANDIDATES = ("src/main/java", "src/java", "src", "java", "source", "sources")
JAVA_TEST_CANDIDATES = ("src/test/java", "test/java", "tests/java", "src/tests/java", "test", "tests")

JS_EXCLUSIONS = (
    "**/node_modules/**",
    "**/dist/**",
    "**/build/**",
    "**/coverage/**",
    "**/*.min.js",
    "**/*.bundle.js",
)
JS_TEST_INCLUSIONS = (
    "**/*.test.ts",
    "**/*.test.tsx",
    "**/*.spec.ts",
    "**/*.spec.tsx",
    "**/*.test.js",
    "**/*.test.jsx",
    "**/*.spec.js",
    "**/*.spec.jsx",
)

PYTHON_EXCLUSIONS = (
    "**/__pycache__/**",
    "**/venv/**",
    "**/env/**",
    "**/.venv/**",
    "**/site-packages/**",
)
PYTHON_TEST_FILES = ("**/test_*.py", "**/*_test.py")

CFAMILY_SOURCE_CANDIDATES = ("src", "source", "include", "inc")
CFAMILY_EXCLUSIONS = (
    "**/build/**",
    "**/Build/**",
    "**/cmake-build-*/**",
    "**/third_party/**",
    "**/thirdparty/**",
    "**/vendor/**",
    "**/external/**",
    "**/.git/**",
    "**/node_modules/**",
)

_PY_SKIP = frozenset({"__pycache__", "venv", "env", "node_modules"})

_POM_SOURCE_RE = re.compile(r"<maven\.compiler\.source>(\d+(?:\.\d+)?)</maven\.compiler\.source>")
_POM_TARGET_RE = re.compile(r"<maven\.compiler\.target>(\d+(?:\.\d+)?)</maven\.compiler\.target>")
_GRADLE_SOURCE_RE = re.compile(r"sourceCompatibility\s*=\s*['\"]?(\d+(?:\.\d+)?)['\"]?")
_GRADLE_TARGET_RE = re.compile(r"targetCompatibility\s*=\s*['\"]?(\d+(?:\.\d+)?)['\"]?")
_REQUIRES_PYTHON_RE = re.compile(r"requires-python\s*=\s*[\"']([^\"']+)[\"']")


def _read(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def _contains_suffix(directory: Path, suffix: str) -> bool:
    try:
        return any(p.is_file() for p in directory.rglob(f"*{suffix}"))
    except OSError:
        return False


# JavaScript / TypeScript

def javascript_params(project_path: Path) -> list[str]:
    params: list[str] = []
    if (project_path / "tsconfig.json").exists():
        params.append("-Dsonar.typescript.tsconfigPath=tsconfig.json")

    params.append(f"-Dsonar.sources={'src' if (project_path / 'src').is_dir() else '.'}")
    params.append(f"-Dsonar.exclusions={','.join(JS_EXCLUSIONS)}")
    params.append(f"-Dsonar.test.inclusions={','.join(JS_TEST_INCLUSIONS)}")
    params.append("-Dsonar.javascript.file.suffixes=.js,.jsx")
    params.append("-Dsonar.typescript.file.suffixes=.ts,.tsx")
    return params


# Java

def jacoco_params(project_path: Path) -> list[str]:
    found = [p for p in JACOCO_REPORT_PATHS if (project_path / p).exists()]
    if found:
        logger.info("Found JaCoCo reports: %s", ", ".join(found))
        return [f"-Dsonar.coverage.jacoco.xmlReportPaths={','.join(found)}"]
    return []


def detect_java_version(project_path: Path, build_tool: str | None) -> str | None:
    """Java level from pom.xml or build.gradle(.kts)."""
    if build_tool == "maven":
        content = _read(project_path / "pom.xml") or ""
        patterns = (_POM_SOURCE_RE, _POM_TARGET_RE)
    elif build_tool == "gradle":
        content = _read(project_path / "build.gradle") or _read(project_path / "build.gradle.kts") or ""
        patterns = (_GRADLE_SOURCE_RE, _GRADLE_TARGET_RE)
    else:
        return None
    for pattern in patterns:
        if match := pattern.search(content):
            return match.group(1)
    return None


def _if_exists(project_path: Path, relative: str, param: str) -> list[str]:
    if (project_path / relative).exists():
        return [param]
    logger.debug("%s not found", relative)
    return []


async def java_params(
    project_path: Path,
    build_tool: str | None,
    runner: ScannerRunner,
) -> list[str]:
    params: list[str] = []

    if build_tool == "maven":
        params.append("-Dsonar.sources=src/main/java")
        params += _if_exists(project_path, "src/test/java", "-Dsonar.tests=src/test/java")
        params += _if_exists(project_path, "target/classes", "-Dsonar.java.binaries=target/classes")
        params += _if_exists(
            project_path, "target/test-classes", "-Dsonar.java.test.binaries=target/test-classes"
        )
        if libraries := await resolve_maven_libraries(runner, project_path):
            params.append(f"-Dsonar.java.libraries={','.join(libraries)}")
        params += jacoco_params(project_path)
    elif build_tool == "gradle":
        params.append("-Dsonar.sources=src/main/java")
        params += _if_exists(project_path, "src/test/java", "-Dsonar.tests=src/test/java")
        params += _if_exists(
            project_path, "build/classes/java/main", "-Dsonar.java.binaries=build/classes/java/main"
        )
        params += _if_exists(
            project_path,
            "build/classes/java/test",
            "-Dsonar.java.test.binaries=build/classes/java/test",
        )
        if libraries := resolve_gradle_libraries():
            params.append(f"-Dsonar.java.libraries={','.join(libraries)}")
        params += jacoco_params(project_path)
    else:
        sources = [d for d in JAVA_SOURCE_CANDIDATES if _contains_suffix(project_path / d, ".java")]
        tests = [d for d in JAVA_TEST_CANDIDATES if _contains_suffix(project_path / d, ".java")]
        params.append(f"-Dsonar.sources={','.join(sources) if sources else project_path}")
        if tests:
            params.append(f"-Dsonar.tests={','.join(tests)}")
        params.append("-Dsonar.java.source=8")

    if version := detect_java_version(project_path, build_tool):
        params.append(f"-Dsonar.java.source={version}")
    return params


# C / C++

def cfamily_params(project_path: Path) -> list[str]:
    params: list[str] = []
    if (project_path / "compile_commands.json").exists():
        params.append("-Dsonar.cfamily.compile-commands=compile_commands.json")
    elif (project_path / "build" / "compile_commands.json").exists():
        params.append("-Dsonar.cfamily.compile-commands=build/compile_commands.json")
    else:
        logger.warning(
            "compile_commands.json not found; for CMake use -DCMAKE_EXPORT_COMPILE_COMMANDS=ON"
        )

    sources = [d for d in CFAMILY_SOURCE_CANDIDATES if (project_path / d).is_dir()]
    params.append(f"-Dsonar.sources={','.join(sources) if sources else '.'}")
    params.append(f"-Dsonar.exclusions={','.join(CFAMILY_EXCLUSIONS)}")
    params.append("-Dsonar.c.file.suffixes=.c,.h")
    params.append("-Dsonar.cpp.file.suffixes=.cpp,.hpp,.cc,.cxx,.c++,.hh,.hxx,.h++")
    return params


# Python

def _contains_python(directory: Path, depth: int = 0) -> bool:
    if depth > 2 or not directory.is_dir():
        return False
    try:
        entries = list(directory.iterdir())
    except OSError:
        return False
    for entry in entries:
        if entry.name.startswith(".") or entry.name in _PY_SKIP:
            continue
        if entry.is_file() and entry.suffix == ".py":
            return True
        if entry.is_dir() and _contains_python(entry, depth + 1):
            return True
    return False


def detect_python_versions(project_path: Path) -> list[str]:
    """Versions for sonar.python.version.

    ``requires-python = ">=3.8,<3.12"`` expands to 3.8 through 3.11; a lone
    lower bound covers one minor version. Falls back to .python-version.
    """
    pyproject = _read(project_path / "pyproject.toml")
    if pyproject and (match := _REQUIRES_PYTHON_RE.search(pyproject)):
        spec = match.group(1)
        low = re.search(r">=?(\d+)\.(\d+)", spec)
        if low:
            min_major, min_minor = int(low.group(1)), int(low.group(2))
            max_major, max_minor = min_major, min_minor + 1
            if high := re.search(r"<(\d+)\.(\d+)", spec):
                max_major, max_minor = int(high.group(1)), int(high.group(2))
            versions = []
            for major in range(min_major, max_major + 1):
                start = min_minor if major == min_major else 0
                end = max_minor if major == max_major else 100
                versions += [f"{major}.{minor}" for minor in range(start, end) if major >= 3]
            if versions:
                return versions

    pinned = _read(project_path / ".python-version")
    if pinned and (match := re.match(r"^(\d+\.\d+)", pinned.strip())):
        return [match.group(1)]
    return []


def python_params(project_path: Path) -> list[str]:
    params: list[str] = []
    sources = [d for d in ("src", "app", "lib") if _contains_python(project_path / d)]
    params.append(f"-Dsonar.sources={','.join(sources) if sources else '.'}")

    test_dir = next((d for d in ("test", "tests") if (project_path / d).exists()), None)

    # A file may not be both excluded and a test, so test globs only go in
    # the exclusions when there is no dedicated test directory
    exclusions = list(PYTHON_EXCLUSIONS)
    if test_dir is None:
        exclusions += PYTHON_TEST_FILES
    params.append(f"-Dsonar.exclusions={','.join(exclusions)}")

    if test_dir is not None:
        params.append(f"-Dsonar.tests={test_dir}")
        params.append(f"-Dsonar.test.inclusions={','.join(PYTHON_TEST_FILES)}")

    if versions := detect_python_versions(project_path):
        params.append(f"-Dsonar.python.version={','.join(versions)}")
    return params


# Go

def go_params(project_path: Path) -> list[str]:
    if not (project_path / "go.mod").exists():
        logger.warning("go.mod not found - analysis may be less accurate")
    params = [
        "-Dsonar.sources=.",
        "-Dsonar.exclusions=**/*_test.go,**/vendor/**",
        "-Dsonar.tests=.",
        "-Dsonar.test.inclusions=**/*_test.go",
    ]
    if (project_path / "coverage.out").exists():
        params.append("-Dsonar.go.coverage.reportPaths=coverage.out")
    return params
