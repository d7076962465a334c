"""Compare an existing sonar-project.properties with what was detected."""

from collections.abc import Sequence
from pathlib import Path

from scanwell.foundation.types.validation import DetectedProperty, ExistingConfigAnalysis
from scanwell.scanning.validation.base import read_text

PROPERTIES_FILE = "sonar-project.properties"

CRITICAL_WEIGHT = 60
RECOMMENDED_WEIGHT = 40


def parse_properties(content: str) -> dict[str, str]:
    """Parse ``key=value`` lines, ignoring blanks and ``#`` comments."""
    properties: dict[str, str] = {}
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        key, sep, value = stripped.partition("=")
        if sep and key.strip():
            properties[key.strip()] = value.strip()
    return properties


class ExistingConfigValidator:
    """Reads the project's properties file and scores its completeness."""

    def read(self, project_path: Path) -> dict[str, str] | None:
        content = read_text(project_path / PROPERTIES_FILE)
        return None if content is None else parse_properties(content)

    def validate(
        self,
        project_path: Path,
        detected: Sequence[DetectedProperty],
        critical: Sequence[str],
        recommended: Sequence[str],
    ) -> ExistingConfigAnalysis:
        config_path = str(project_path / PROPERTIES_FILE)
        properties = self.read(project_path)
        if properties is None:
            return ExistingConfigAnalysis(
                exists=False,
                path=config_path,
                missing_critical=tuple(critical),
                missing_recommended=tuple(recommended),
            )

        detected_keys = {prop.key for prop in detected}

        def missing(keys: Sequence[str]) -> tuple[str, ...]:
            return tuple(k for k in keys if not properties.get(k) and k in detected_keys)

        return ExistingConfigAnalysis(
            exists=True,
            path=config_path,
            properties=properties,
            missing_critical=missing(critical),
            missing_recommended=missing(recommended),
            completeness_score=completeness_score(properties, detected_keys, critical, recommended),
        )


def completeness_score(
    properties: dict[str, str],
    detected_keys: set[str],
    critical: Sequence[str],
    recommended: Sequence[str],
) -> int:
    """0-100. Only keys that were detected count; none detected means full marks."""

    def part(keys: Sequence[str], weight: int) -> float:
        relevant = [k for k in keys if k in detected_keys]
        if not relevant:
            return weight
        present = [k for k in relevant if properties.get(k)]
        return len(present) / len(relevant) * weight

    return round(part(critical, CRITICAL_WEIGHT) + part(recommended, RECOMMENDED_WEIGHT))
