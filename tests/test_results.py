"""Tests for result summaries."""

import pytest
from conftest import issue

from scanwell.sonar import results
from scanwell.sonar.models import ComponentMeasures, SecurityHotspot, SonarIssue


def _issues(*severities: str) -> list[SonarIssue]:
    return [SonarIssue.model_validate(issue(f"I{i}", s)) for i, s in enumerate(severities)]


class TestQualityScore:
    """Tests for quality_score."""

    @pytest.mark.parametrize(
        ("severities", "expected"),
        [
            ((), 100),
            (("BLOCKER",), 90),
            (("MINOR",), 100),
            (("MINOR", "MINOR", "MINOR"), 99),
            (("MAJOR", "MINOR"), 98),
            (("CRITICAL", "INFO"), 95),
            (("BLOCKER",) * 11, 0),
        ],
    )
    def test_score(self, severities: tuple[str, ...], expected: int) -> None:
        assert results.quality_score(_issues(*severities)) == expected

    def test_unknown_severity_is_free(self) -> None:
        assert results.quality_score(_issues("TRIVIAL")) == 100


class TestIssueSummaries:
    """Tests for count_by and top_issues."""

    def test_count_by(self) -> None:
        counts = results.count_by(_issues("MAJOR", "MINOR", "MAJOR"), "severity")

        assert counts == {"MAJOR": 2, "MINOR": 1}

    def test_top_issues_most_severe_first(self) -> None:
        """Ties keep the server's order."""
        top = results.top_issues(_issues("MINOR", "BLOCKER", "MAJOR", "BLOCKER"))

        assert [i["key"] for i in top] == ["I1", "I3", "I2", "I0"]
        assert set(top[0]) == {"key", "severity", "type", "message", "component", "line"}

    def test_top_issues_limit(self) -> None:
        assert len(results.top_issues(_issues(*["INFO"] * 15))) == results.TOP_ISSUES


class TestHotspotSummary:
    """Tests for hotspot_summary."""

    def test_empty(self) -> None:
        assert results.hotspot_summary([]) is None

    def test_summary(self) -> None:
        hotspots = [
            SecurityHotspot(key="H1", vulnerability_probability="LOW"),
            SecurityHotspot(key="H2"),
            SecurityHotspot(key="H3", vulnerability_probability="HIGH"),
        ]

        summary = results.hotspot_summary(hotspots)

        assert summary["total"] == 3
        assert summary["by_probability"] == {"LOW": 1, "MEDIUM": 1, "HIGH": 1}
        assert [h["key"] for h in summary["top_hotspots"]] == ["H3", "H2", "H1"]


class TestCleanCodeMetrics:
    """Tests for the JSON-valued impact metrics."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ('{"total": 4, "HIGH": 1}', 4),
            ('{"HIGH": 1}', 0),
            ("[4]", 0),
            ("not json", 0),
            ("", 0),
            (None, 0),
        ],
    )
    def test_metric_total(self, value: str | None, expected: int) -> None:
        assert results.metric_total(value) == expected

    def test_no_measures(self) -> None:
        assert results.clean_code_metrics(None) is None
        assert results.clean_code_metrics(ComponentMeasures()) is None

    def test_metrics(self) -> None:
        measures = ComponentMeasures.model_validate({
            "key": "demo-project",
            "measures": [
                {"metric": "reliability_issues", "value": '{"total": 3}'},
                {"metric": "security_issues", "value": '{"total": 1}'},
                {"metric": "ncloc", "value": "900"},
            ],
        })

        assert results.clean_code_metrics(measures) == {
            "reliability": 3,
            "maintainability": 0,
            "security": 1,
        }
