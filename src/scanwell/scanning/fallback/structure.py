"""Project structure analysis for configuration recovery.

Walks the project (bounded depth, skipping tool and vendor directories) to
find build files, modules and a language census, and renders a short
directory tree the user can check the suggested configuration against.
"""

import fnmatch
import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path

from scanwell.foundation.types.scan import LanguageInfo, ModuleInfo, ProjectStructure

logger = logging.getLogger(__name__)

MAX_DEPTH = 5
MAX_TREE_DEPTH = 3
MAX_TREE_LINES = 100


@dataclass(frozen=True, slots=True)
class _BuildFile:
    pattern: str
    build_tool: str
    languages: tuple[str, ...]


BUILD_FILES: tuple[_BuildFile, ...] = (
    _BuildFile("pom.xml", "maven", ("java",)),
    _BuildFile("build.gradle", "gradle", ("java", "kotlin")),
    _BuildFile("build.gradle.kts", "gradle", ("kotlin", "java")),
    _BuildFile("package.json", "npm", ("javascript", "typescript")),
    _BuildFile("*.csproj", "dotnet", ("csharp",)),
    _BuildFile("*.sln", "dotnet", ("csharp",)),
    _BuildFile("Cargo.toml", "cargo", ("rust",)),
    _BuildFile("go.mod", "go", ("go",)),
    _BuildFile("pyproject.toml", "python", ("python",)),
    _BuildFile("requirements.txt", "python", ("python",)),
    _BuildFile("setup.py", "python", ("python",)),
)

LANGUAGE_EXTENSIONS: dict[str, tuple[str, ...]] = {
    "java": (".java",),
    "kotlin": (".kt", ".kts"),
    "javascript": (".js", ".jsx", ".mjs"),
    "typescript": (".ts", ".tsx"),
    "python": (".py",),
    "go": (".go",),
    "rust": (".rs",),
    "csharp": (".cs",),
    "cpp": (".cpp", ".cc", ".cxx", ".c", ".h", ".hpp"),
}
_EXTENSION_LANGUAGE = {ext: lang for lang, exts in LANGUAGE_EXTENSIONS.items() for ext in exts}

DEFAULT_EXCLUSIONS = (
    "**/node_modules/**",
    "**/target/**",
    "**/build/**",
    "**/dist/**",
    "**/out/**",
    "**/bin/**",
    "**/obj/**",
    "**/.git/**",
    "**/.idea/**",
    "**/.vscode/**",
    "**/vendor/**",
    "**/__pycache__/**",
    "**/*.min.js",
    "**/*.min.css",
)

# Per build tool: (sources, tests, binaries)
SOURCE_PATTERNS: dict[str, tuple[tuple[str, ...], tuple[str, ...], tuple[str, ...]]] = {
    "maven": (
        ("src/main/java", "src/main/kotlin", "src/main/scala"),
        ("src/test/java", "src/test/kotlin", "src/test/scala"),
        ("target/classes",),
    ),
    "gradle": (
        ("src/main/java", "src/main/kotlin", "src/main/groovy"),
        ("src/test/java", "src/test/kotlin", "src/test/groovy"),
        ("build/classes/java/main", "build/classes/kotlin/main"),
    ),
    "npm": (("src", "lib", "app"), ("test", "tests", "__tests__", "spec"), ()),
    "dotnet": ((".",), ("Tests", "Test"), ("bin/Debug", "bin/Release")),
    "cargo": (("src",), ("tests",), ()),
    "go": ((".",), (".",), ()),
    "python": (("src", "."), ("tests", "test"), ()),
}

SKIP_DIRS = frozenset({
    "node_modules", "target", "build", "dist", "out", "bin", "obj",
    "vendor", "__pycache__", "coverage",
})

CONFIG_FILE_PATTERNS = (
    "sonar-project.properties",
    "tsconfig.json",
    "jsconfig.json",
    ".eslintrc*",
    ".prettierrc*",
    "pytest.ini",
    "phpunit.xml",
    "jest.config.*",
)

IMPORTANT_FILES = frozenset({
    "pom.xml", "build.gradle", "build.gradle.kts", "package.json",
    "tsconfig.json", "go.mod", "Cargo.toml", "requirements.txt",
    "pyproject.toml", "setup.py", "sonar-project.properties",
    "scanwell.env", "README.md",
})


def should_skip(name: str) -> bool:
    return name in SKIP_DIRS or name.startswith(".")


def _is_important(name: str) -> bool:
    return name in IMPORTANT_FILES or name.endswith((".csproj", ".sln"))


def _match_build_file(name: str) -> _BuildFile | None:
    return next((bf for bf in BUILD_FILES if fnmatch.fnmatchcase(name, bf.pattern)), None)


def _entries(directory: Path) -> list[Path]:
    try:
        return sorted(directory.iterdir())
    except OSError as e:
        logger.debug("Cannot list %s: %s", directory, e)
        return []


class ProjectStructureAnalyzer:
    """Describes a project's layout for the fallback report."""

    def __init__(self, max_depth: int = MAX_DEPTH, max_tree_lines: int = MAX_TREE_LINES):
        self.max_depth = max_depth
        self.max_tree_lines = max_tree_lines

    def analyze(self, project_path: Path) -> ProjectStructure:
        root = project_path.resolve()
        build_files = self.find_build_files(root)
        modules = self.detect_modules(root, build_files)
        return ProjectStructure(
            root_path=str(root),
            project_type="multi-module" if len(modules) > 1 else "single",
            modules=tuple(modules),
            languages=tuple(self.analyze_languages(root)),
            build_files=tuple(rel for rel, _ in build_files),
            config_files=tuple(self.find_config_files(root)),
            directory_tree=self.directory_tree(root),
            suggested_exclusions=DEFAULT_EXCLUSIONS,
        )

    def find_build_files(self, root: Path) -> list[tuple[str, _BuildFile]]:
        """(relative path, build file kind) for every build file found."""
        found: list[tuple[str, _BuildFile]] = []

        def walk(directory: Path, depth: int) -> None:
            if depth > self.max_depth:
                return
            for entry in _entries(directory):
                if entry.is_dir():
                    if not should_skip(entry.name):
                        walk(entry, depth + 1)
                elif kind := _match_build_file(entry.name):
                    found.append((entry.relative_to(root).as_posix(), kind))

        walk(root, 0)
        return found

    def detect_modules(
        self,
        root: Path,
        build_files: list[tuple[str, _BuildFile]],
    ) -> list[ModuleInfo]:
        """One module per directory holding a build file (first file wins)."""
        by_dir: dict[str, _BuildFile] = {}
        for relative, kind in build_files:
            directory = Path(relative).parent.as_posix()
            by_dir.setdefault(directory, kind)

        modules: list[ModuleInfo] = []
        for directory, kind in by_dir.items():
            module_root = root / directory
            sources, tests, binaries = SOURCE_PATTERNS.get(kind.build_tool, SOURCE_PATTERNS["npm"])
            found_sources = tuple(p for p in sources if (module_root / p).exists())
            modules.append(ModuleInfo(
                name=root.name if directory == "." else Path(directory).name,
                path=directory,
                build_tool=kind.build_tool,
                languages=kind.languages,
                source_dirs=found_sources or ("src",),
                test_dirs=tuple(p for p in tests if (module_root / p).exists()),
                binary_dirs=tuple(p for p in binaries if (module_root / p).exists()),
            ))

        if not modules:
            modules.append(ModuleInfo(
                name=root.name,
                path=".",
                source_dirs=("src",),
                test_dirs=("test", "tests"),
            ))
        return modules

    def analyze_languages(self, root: Path) -> list[LanguageInfo]:
        """File counts per language, most files first."""
        counts: Counter[str] = Counter()
        extensions: dict[str, set[str]] = {}

        def walk(directory: Path, depth: int) -> None:
            if depth > self.max_depth:
                return
            for entry in _entries(directory):
                if entry.is_dir():
                    if not should_skip(entry.name):
                        walk(entry, depth + 1)
                    continue
                suffix = entry.suffix.lower()
                if language := _EXTENSION_LANGUAGE.get(suffix):
                    counts[language] += 1
                    extensions.setdefault(language, set()).add(suffix)

        walk(root, 0)
        total = sum(counts.values())
        return [
            LanguageInfo(
                language=language,
                file_count=count,
                extensions=tuple(sorted(extensions[language])),
                percentage=round(count / total * 100) if total else 0,
            )
            for language, count in counts.most_common()
        ]

    def find_config_files(self, root: Path) -> list[str]:
        return [
            entry.name
            for entry in _entries(root)
            if any(fnmatch.fnmatchcase(entry.name, p) for p in CONFIG_FILE_PATTERNS)
        ]

    def directory_tree(self, root: Path) -> str:
        """ASCII tree of directories and notable files, depth and size bounded."""
        lines = [f"{root.name}/"]

        def walk(directory: Path, prefix: str, depth: int) -> None:
            if depth > MAX_TREE_DEPTH or len(lines) > self.max_tree_lines:
                return
            entries = [e for e in _entries(directory) if not should_skip(e.name)]
            # Directories first, then files, each alphabetical
            entries.sort(key=lambda e: (not e.is_dir(), e.name))
            for i, entry in enumerate(entries):
                if len(lines) >= self.max_tree_lines:
                    return
                last = i == len(entries) - 1
                connector = "└── " if last else "├── "
                if entry.is_dir():
                    lines.append(f"{prefix}{connector}{entry.name}/")
                    walk(entry, prefix + ("    " if last else "│   "), depth + 1)
                elif _is_important(entry.name):
                    lines.append(f"{prefix}{connector}{entry.name}")

        walk(root, "", 0)
        if len(lines) >= self.max_tree_lines:
            lines.append("... (truncated)")
        return "\n".join(lines)
