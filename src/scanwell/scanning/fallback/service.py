"""Scan fallback service.

When a scan fails with a configuration error, combine the parsed error and
the project structure into a suggested sonar-project.properties and a
Markdown recovery report.
"""

import asyncio
from pathlib import Path

from scanwell.foundation.types.scan import FallbackAnalysisResult, ParsedScanError, ProjectStructure
from scanwell.scanning.fallback.parser import ScanErrorParser
from scanwell.scanning.fallback.structure import ProjectStructureAnalyzer

_MESSAGE_PREVIEW = 200
_LANGUAGE_PREVIEW = 5


class ScanFallbackService:
    """Produces a ``FallbackAnalysisResult`` for a failed scan."""

    def __init__(
        self,
        parser: ScanErrorParser | None = None,
        structure_analyzer: ProjectStructureAnalyzer | None = None,
    ):
        self.parser = parser or ScanErrorParser()
        self.structure_analyzer = structure_analyzer or ProjectStructureAnalyzer()

    async def analyze(self, message: str, project_path: Path) -> FallbackAnalysisResult:
        parsed = self.parser.parse(message)
        structure = await asyncio.to_thread(self.structure_analyzer.analyze, project_path)
        return FallbackAnalysisResult(
            parsed_error=parsed,
            project_structure=structure,
            suggested_template=suggested_template(parsed, structure),
            recoverable=self.parser.is_recoverable(parsed),
            recommendation=self.parser.recommendation(parsed),
        )

    def is_recoverable(self, error: ParsedScanError) -> bool:
        return self.parser.is_recoverable(error)


def suggested_template(error: ParsedScanError, structure: ProjectStructure) -> str:
    """A sonar-project.properties the user can start from."""
    lines = [
        "# Suggested sonar-project.properties",
        f"# Generated from a {error.category.value} error and the project structure",
        "",
        "sonar.projectKey=<YOUR_PROJECT_KEY>",
        "",
    ]

    modules = structure.modules
    if structure.project_type == "multi-module" and len(modules) > 1:
        lines.append("# Multi-module project detected")
        lines.append(f"sonar.modules={','.join(m.name for m in modules)}")
        lines.append("")
        for module in modules:
            lines.append(f"# Module: {module.name}")
            lines.append(f"{module.name}.sonar.projectBaseDir={module.path}")
            if module.source_dirs:
                lines.append(f"{module.name}.sonar.sources={','.join(module.source_dirs)}")
            if module.test_dirs:
                lines.append(f"{module.name}.sonar.tests={','.join(module.test_dirs)}")
            if module.binary_dirs:
                lines.append(f"{module.name}.sonar.java.binaries={','.join(module.binary_dirs)}")
            lines.append("")
    else:
        module = modules[0] if modules else None
        sources = module.source_dirs if module and module.source_dirs else ("src",)
        lines.append(f"sonar.sources={','.join(sources)}")
        if module and module.test_dirs:
            lines.append(f"sonar.tests={','.join(module.test_dirs)}")
        if module and module.binary_dirs:
            lines.append(f"sonar.java.binaries={','.join(module.binary_dirs)}")
        lines.append("")

    lines.append("# Exclusions")
    lines.append(f"sonar.exclusions={','.join(structure.suggested_exclusions)}")
    lines.append("")
    lines.append("# Encoding")
    lines.append("sonar.sourceEncoding=UTF-8")
    return "\n".join(lines)


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def format_for_output(result: FallbackAnalysisResult) -> str:
    """Markdown recovery report for a failed scan."""
    error = result.parsed_error
    structure = result.project_structure
    lines = [
        "SCAN FAILED - Configuration Recovery Available",
        "",
        "## Error Analysis",
        f"Category: {error.category.value}",
        f"Message: {_truncate(error.original_message, _MESSAGE_PREVIEW)}",
    ]
    if error.suggested_fix:
        lines.append(f"Suggested Fix: {error.suggested_fix}")
    if error.missing_parameters:
        lines.append(f"Missing Parameters: {', '.join(error.missing_parameters)}")
    lines.append("")

    lines.append("## Project Structure Detected")
    lines.append(f"Type: {structure.project_type}")
    lines.append(f"Root: {structure.root_path}")
    lines.append("")

    if structure.languages:
        lines.append("Languages:")
        for lang in structure.languages[:_LANGUAGE_PREVIEW]:
            lines.append(f"  - {lang.language}: {lang.file_count} files ({lang.percentage}%)")
        lines.append("")

    if structure.modules:
        lines.append("Modules:")
        for module in structure.modules:
            languages = f" ({', '.join(module.languages)})" if module.languages else ""
            build = f" - {module.build_tool}" if module.build_tool else ""
            lines.append(f"  - {module.name}{languages}{build}")
            if module.source_dirs:
                lines.append(f"    Sources: {', '.join(module.source_dirs)}")
            if module.test_dirs:
                lines.append(f"    Tests: {', '.join(module.test_dirs)}")
        lines.append("")

    lines += ["## Directory Tree", "```", structure.directory_tree, "```", ""]

    lines.append("## Recovery Instructions")
    if result.recoverable:
        lines.append("This error is recoverable with proper configuration.")
        lines.append("")
        lines.append(result.recommendation)
    else:
        lines.append("This error may require manual intervention.")
        lines.append(result.recommendation)
    lines.append("")

    lines += [
        "## Suggested Configuration Template",
        "```properties",
        result.suggested_template,
        "```",
    ]
    return "\n".join(lines)
