"""Invariant rule engine."""

from typing import Any, Dict, Iterable, List, Optional

from patchgate.core.logging import get_logger
from patchgate.models.invariant import InvariantViolation, Severity
from patchgate.services.invariants.rules import InvariantRule, RuleContext

logger = get_logger(__name__)

VALIDATION_ERROR = "validation-error"


def validate(
    rules: Iterable[InvariantRule],
    patch_text: str,
    package_name: str,
    original_text: Optional[str] = None,
    layers: Optional[Dict[str, Any]] = None,
) -> List[InvariantViolation]:
    """
    Run every rule, in declared order, against a patch.

    A rule returning False yields a violation carrying the rule's own
    severity. A rule that raises is recorded as a high-severity
    ``validation-error`` and the remaining rules still run.

    Args:
        rules: Rules to evaluate.
        patch_text: Full patch text.
        package_name: Patched package (``name`` or ``name@version``).
        original_text: Pre-patch text, for rules that compare before/after.
        layers: Dependency layer configuration for the boundary rule.

    Returns:
        Violations in rule order; empty when the patch is compliant.
    """
    ctx = RuleContext(
        patch_text=patch_text,
        package_name=package_name,
        original_text=original_text,
        layers=layers,
    )
    violations: List[InvariantViolation] = []

    for rule in rules:
        try:
            compliant = rule.validate(ctx)
        except Exception as e:
            logger.error("Invariant %s raised on %s: %s", rule.name, package_name, e)
            violations.append(
                InvariantViolation(
                    invariant=VALIDATION_ERROR,
                    description=f"Failed to validate invariant {rule.name}: {e}",
                    severity=Severity.HIGH,
                )
            )
            continue

        if not compliant:
            violations.append(
                InvariantViolation(
                    invariant=rule.name,
                    description=rule.description,
                    severity=rule.severity,
                )
            )

    return violations
