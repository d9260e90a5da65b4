"""
Models package.

Pure data models and DTOs with no service-layer imports.
"""

from patchgate.models.analytics import AnalyticsViolation, PatchAnalytics, PatchHealth
from patchgate.models.canary import (
    CanaryGlobals,
    CanaryMatrix,
    CanaryPatchState,
    RolloutStrategy,
    Stage,
)
from patchgate.models.invariant import (
    AuditReport,
    InvariantViolation,
    PatchFileInspection,
    Severity,
    ValidationResult,
)
from patchgate.models.metadata import PatchMetadata
from patchgate.models.patch_resource import PatchCustomResource, Phase
from patchgate.models.tension import (
    PatchFactContext,
    TensionReport,
    TensionRule,
    TensionSeverity,
)

__all__ = [
    "AnalyticsViolation",
    "AuditReport",
    "CanaryGlobals",
    "CanaryMatrix",
    "CanaryPatchState",
    "InvariantViolation",
    "PatchAnalytics",
    "PatchCustomResource",
    "PatchFactContext",
    "PatchFileInspection",
    "PatchHealth",
    "PatchMetadata",
    "Phase",
    "RolloutStrategy",
    "Severity",
    "Stage",
    "TensionReport",
    "TensionRule",
    "TensionSeverity",
    "ValidationResult",
]
