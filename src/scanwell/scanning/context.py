"""Project context detection by build-file sniffing.

Produces the read-only ``ProjectContext`` the selector and parameter
builder work from. Only the root directory is inspected.
"""

import json
import logging
from pathlib import Path

from scanwell.foundation.types.scan import ProjectContext

logger = logging.getLogger(__name__)

_JVM_BUILD_TOOLS = frozenset({"maven", "gradle"})

# Checked in order; the first dependency present names the framework
_JS_FRAMEWORKS = (
    ("react", "react"),
    ("vue", "vue"),
    ("@angular/core", "angular"),
    ("angular", "angular"),
    ("express", "express"),
    ("next", "nextjs"),
)
_PYTHON_FILES = (
    ("pyproject.toml", "poetry"),
    ("Pipfile", "pipenv"),
    ("requirements.txt", "pip"),
    ("setup.py", "pip"),
)
_CFAMILY_FILES = (
    ("CMakeLists.txt", "cmake"),
    ("meson.build", "meson"),
    ("Makefile", "make"),
)


class _Detection:
    def __init__(self, path: Path):
        self.path = path
        self.languages: list[str] = []
        self.frameworks: list[str] = []
        self.build_tool: str | None = None
        self.package_manager: str | None = None

    def add_language(self, language: str) -> None:
        if language not in self.languages:
            self.languages.append(language)

    def set_build_tool(self, tool: str) -> None:
        # A JVM build tool decides the scanner strategy, so it is never replaced
        if self.build_tool not in _JVM_BUILD_TOOLS:
            self.build_tool = tool


def _javascript(d: _Detection) -> None:
    package_json = d.path / "package.json"
    if not package_json.is_file():
        return
    d.add_language("javascript")
    if (d.path / "pnpm-lock.yaml").exists():
        d.package_manager = "pnpm"
    elif (d.path / "yarn.lock").exists():
        d.package_manager = "yarn"
    else:
        d.package_manager = "npm"

    try:
        package = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.debug("Unreadable package.json: %s", e)
        return
    if not isinstance(package, dict):
        return
    dependencies = {**package.get("dependencies", {}), **package.get("devDependencies", {})}
    for dependency, framework in _JS_FRAMEWORKS:
        if dependency in dependencies:
            d.frameworks.append(framework)
            break
    if "build" in package.get("scripts", {}):
        if "webpack" in dependencies:
            d.set_build_tool("webpack")
        elif "vite" in dependencies:
            d.set_build_tool("vite")


def _typescript(d: _Detection) -> None:
    if (d.path / "tsconfig.json").exists():
        d.add_language("typescript")


def _java(d: _Detection) -> None:
    pom = d.path / "pom.xml"
    if pom.exists():
        d.add_language("java")
        d.build_tool = "maven"
        try:
            if "spring-boot" in pom.read_text(encoding="utf-8"):
                d.frameworks.append("spring-boot")
        except (OSError, UnicodeDecodeError):
            pass
    elif (d.path / "build.gradle").exists() or (d.path / "build.gradle.kts").exists():
        d.add_language("java")
        d.build_tool = "gradle"


def _python(d: _Detection) -> None:
    for filename, tool in _PYTHON_FILES:
        if (d.path / filename).exists():
            d.add_language("python")
            d.set_build_tool(tool)
            d.package_manager = d.package_manager or tool
            return


def _go(d: _Detection) -> None:
    if (d.path / "go.mod").exists():
        d.add_language("go")
        d.set_build_tool("go-modules")


def _cfamily(d: _Detection) -> None:
    for filename, tool in _CFAMILY_FILES:
        if (d.path / filename).exists():
            d.add_language("cpp")
            d.set_build_tool(tool)
            return


def _rust(d: _Detection) -> None:
    if (d.path / "Cargo.toml").exists():
        d.add_language("rust")
        d.set_build_tool("cargo")


def _csharp(d: _Detection) -> None:
    try:
        found = any(p.suffix == ".csproj" for p in d.path.iterdir())
    except OSError:
        return
    if found:
        d.add_language("csharp")
        d.set_build_tool("dotnet")


_DETECTORS = (_javascript, _typescript, _java, _python, _go, _cfamily, _rust, _csharp)


def detect_project_context(project_path: Path) -> ProjectContext:
    """Detect languages, frameworks and build tool for ``project_path``.

    A project with no recognized build file gets the single language
    ``generic`` and no build tool.
    """
    path = project_path.resolve()
    detection = _Detection(path)
    for detector in _DETECTORS:
        detector(detection)
    if not detection.languages:
        detection.languages.append("generic")

    context = ProjectContext(
        path=path,
        name=path.name,
        languages=frozenset(detection.languages),
        frameworks=tuple(detection.frameworks),
        build_tool=detection.build_tool,
        package_manager=detection.package_manager,
    )
    logger.debug(
        "Project context: languages=%s build_tool=%s",
        sorted(context.languages),
        context.build_tool,
    )
    return context
