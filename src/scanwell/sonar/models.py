"""Pydantic models for analysis server responses.

All models inherit from CamelModel, which maps the server's camelCase JSON
onto snake_case fields. Unknown fields are ignored, so newer server versions
with extra attributes still parse.
"""

from pydantic import BaseModel, ConfigDict, Field


def _to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    parts = string.split("_")
    return parts[0] + "".join(word.capitalize() for word in parts[1:])


class CamelModel(BaseModel):
    """Base model with camelCase JSON (de)serialization."""

    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
    )


# ═══════════════════════════════════════════════════════════════
# ISSUES AND HOTSPOTS
# ═══════════════════════════════════════════════════════════════


class SonarIssue(CamelModel):
    """An open issue from /api/issues/search."""

    key: str
    rule: str = ""
    severity: str = "INFO"
    type: str = "CODE_SMELL"
    message: str = ""
    component: str = ""
    line: int | None = None
    status: str = "OPEN"
    effort: str | None = None
    tags: list[str] = Field(default_factory=list)


class IssuePage(CamelModel):
    """One page of /api/issues/search."""

    total: int = 0
    p: int = 1
    ps: int = 0
    issues: list[SonarIssue] = Field(default_factory=list)


class SecurityHotspot(CamelModel):
    """A security hotspot from /api/hotspots/search."""

    key: str
    component: str = ""
    message: str = ""
    line: int | None = None
    status: str = "TO_REVIEW"
    vulnerability_probability: str | None = None
    security_category: str | None = None


class HotspotPage(CamelModel):
    hotspots: list[SecurityHotspot] = Field(default_factory=list)


# ═══════════════════════════════════════════════════════════════
# COMPUTE ENGINE
# ═══════════════════════════════════════════════════════════════


class CeTask(CamelModel):
    """A background analysis task from /api/ce/activity."""

    id: str = ""
    type: str = ""
    status: str
    """PENDING, IN_PROGRESS, SUCCESS, FAILED or CANCELED."""

    error_message: str | None = None
    submitted_at: str | None = None
    executed_at: str | None = None


class CeActivity(CamelModel):
    tasks: list[CeTask] = Field(default_factory=list)


# ═══════════════════════════════════════════════════════════════
# MEASURES AND RULES
# ═══════════════════════════════════════════════════════════════


class Measure(CamelModel):
    """One metric value. Clean Code metrics carry a JSON object as value."""

    metric: str
    value: str | None = None
    best_value: bool | None = None


class ComponentMeasures(CamelModel):
    key: str = ""
    name: str = ""
    measures: list[Measure] = Field(default_factory=list)

    def value(self, metric: str) -> str | None:
        """Raw value of ``metric``, or None when the server did not return it."""
        return next((m.value for m in self.measures if m.metric == metric), None)


class MeasuresResponse(CamelModel):
    component: ComponentMeasures = Field(default_factory=ComponentMeasures)


class DescriptionSection(CamelModel):
    key: str
    content: str = ""


class RuleDetails(CamelModel):
    """Rule description from /api/rules/show."""

    key: str
    name: str = ""
    html_desc: str | None = None
    md_desc: str | None = None
    severity: str | None = None
    default_severity: str | None = None
    status: str | None = None
    type: str | None = None
    lang: str | None = None
    lang_name: str | None = None
    tags: list[str] = Field(default_factory=list)
    sys_tags: list[str] = Field(default_factory=list)
    description_sections: list[DescriptionSection] = Field(default_factory=list)

    @property
    def effective_severity(self) -> str | None:
        return self.severity or self.default_severity

    @property
    def description(self) -> str:
        """Best available description text across server versions."""
        if self.description_sections:
            return "\n\n".join(section.content for section in self.description_sections)
        return self.md_desc or self.html_desc or ""


class RuleResponse(CamelModel):
    rule: RuleDetails
