"""
Invariant validation results.

Pure data models, no service imports.
"""

from enum import Enum
from typing import List

from sqlmodel import SQLModel, Field


class Severity(str, Enum):
    """Invariant severity enum."""

    LOW = "low"
    HIGH = "high"
    CRITICAL = "critical"


class InvariantViolation(SQLModel):
    """A single failed invariant."""

    invariant: str = Field(description="Name of the violated invariant.")
    description: str = Field(description="Why the invariant exists or why it failed.")
    severity: Severity = Field(description="Severity of the violation.")


class ValidationResult(SQLModel):
    """Outcome of validating one patch."""

    package: str
    is_valid: bool
    violations: List[InvariantViolation] = Field(default_factory=list)

    def has_severity(self, severity: Severity) -> bool:
        return any(v.severity == severity for v in self.violations)


class AuditReport(SQLModel):
    """Aggregate of validating every patched dependency in a manifest."""

    results: List[ValidationResult] = Field(default_factory=list)

    @property
    def critical(self) -> List[ValidationResult]:
        return [r for r in self.results if r.has_severity(Severity.CRITICAL)]

    @property
    def high(self) -> List[ValidationResult]:
        return [r for r in self.results if r.has_severity(Severity.HIGH)]

    @property
    def valid(self) -> List[ValidationResult]:
        return [r for r in self.results if r.is_valid]

    @property
    def exit_code(self) -> int:
        """Critical violations block; high ones are report-only."""
        return 1 if self.critical else 0


class PatchFileInspection(SQLModel):
    """Format check of a patch file on disk."""

    package: str
    patch_file: str
    exists: bool
    size: int = 0
    lines: int = 0
    has_diff: bool = False
    has_hunks: bool = False

    @property
    def issues(self) -> List[str]:
        if not self.exists:
            return ["missing patch file"]
        issues = []
        if not self.has_diff:
            issues.append("invalid patch format (no diff header)")
        if not self.has_hunks:
            issues.append("invalid patch format (no hunks)")
        return issues
