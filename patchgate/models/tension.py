"""
Tension (amber edge) monitoring models.

TensionRule is parsed from the rule YAML, not defined in code.
"""

from enum import Enum
from typing import Any, Dict, List

from sqlmodel import SQLModel, Field


class TensionSeverity(str, Enum):
    """Tension severity enum. CLEAR is only ever a verdict, never a rule severity."""

    BLOCK = "BLOCK"
    AMBER = "AMBER"
    YELLOW = "YELLOW"
    CLEAR = "CLEAR"

    @property
    def level(self) -> int:
        return _SEVERITY_LEVELS[self]


_SEVERITY_LEVELS = {
    TensionSeverity.BLOCK: 3,
    TensionSeverity.AMBER: 2,
    TensionSeverity.YELLOW: 1,
    TensionSeverity.CLEAR: 0,
}


class TensionRule(SQLModel):
    """A configurable policy check over patch facts."""

    name: str = Field(description="Unique rule name.")
    condition: str = Field(description="Boolean expression over the fact context.")
    severity: TensionSeverity = Field(description="Severity when triggered.")
    actions: List[str] = Field(
        default_factory=list, description="Ordered remediation hints."
    )


class PatchFactContext(SQLModel):
    """Facts derived from a patch's content and its package name."""

    patch_content: str
    package_name: str
    package_category: str
    patch_size: int
    line_count: int
    has_imports: bool
    has_exports: bool
    security_keywords: List[str] = Field(default_factory=list)

    def bindings(self) -> Dict[str, Any]:
        """Variable environment for rule conditions."""
        return self.model_dump()


class RuleEvaluation(SQLModel):
    """Whether one rule triggered."""

    rule: TensionRule
    triggered: bool


class TensionReport(SQLModel):
    """Outcome of analyzing one patch against the tension rule set."""

    package: str
    violations: List[RuleEvaluation] = Field(default_factory=list)
    max_severity: TensionSeverity = TensionSeverity.CLEAR
    recommendations: List[str] = Field(default_factory=list)

    @property
    def triggered_rules(self) -> List[TensionRule]:
        return [v.rule for v in self.violations if v.triggered]
