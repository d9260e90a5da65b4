"""
Validation checks run against a Patch resource before it is applied.

Any violation fails validation.
"""

import os
from typing import List, Optional

from patchgate.core.flags import FeatureFlags
from patchgate.core.logging import get_logger
from patchgate.models.invariant import Severity
from patchgate.models.patch_resource import (
    PatchCustomResource,
    ResourceViolation,
    ValidationOutcome,
)
from patchgate.services.invariants.rules import InvariantRule
from patchgate.services.invariants.validation import validate_patch
from patchgate.services.operator.signing import SignatureVerifier

logger = get_logger(__name__)


def resolve_patch_path(patch_ref: str, patch_root: Optional[str]) -> str:
    if os.path.isabs(patch_ref) or not patch_root:
        return patch_ref
    return os.path.join(patch_root, patch_ref)


def structural_violations(resource: PatchCustomResource) -> List[ResourceViolation]:
    spec = resource.spec
    violations = []
    if not spec.package:
        violations.append(
            ResourceViolation(
                rule="missing-package",
                severity=Severity.CRITICAL.value,
                message="Package name is required",
            )
        )
    if not spec.patch_ref:
        violations.append(
            ResourceViolation(
                rule="missing-patch-ref",
                severity=Severity.CRITICAL.value,
                message="Patch reference is required",
            )
        )
    if not 0 <= spec.rollout <= 100:
        violations.append(
            ResourceViolation(
                rule="invalid-rollout",
                severity=Severity.CRITICAL.value,
                message=f"Rollout percentage must be between 0 and 100, got {spec.rollout}",
            )
        )
    return violations


async def check_resource(
    resource: PatchCustomResource,
    verifier: SignatureVerifier,
    flags: FeatureFlags,
    rules: List[InvariantRule],
    patch_root: Optional[str] = None,
) -> ValidationOutcome:
    """
    Run structural, signature and invariant checks.

    Args:
        resource: Resource to check.
        verifier: Used when the ``cosign-signing`` flag is on.
        flags: Feature flags.
        rules: Invariant rules, used when ``invariant-validation`` is on.
        patch_root: Base directory for a relative ``patch_ref``.

    Returns:
        ValidationOutcome: ``passed`` is True iff there are no violations.
    """
    violations = structural_violations(resource)
    signed = False
    verified = False

    patch_path = None
    if resource.spec.patch_ref:
        patch_path = resolve_patch_path(resource.spec.patch_ref, patch_root)

    if patch_path and flags.is_enabled("cosign-signing"):
        signed = await verifier.is_signed(patch_path)
        if not signed:
            violations.append(
                ResourceViolation(
                    rule="unsigned-patch",
                    severity=Severity.HIGH.value,
                    message="Patch is not signed",
                )
            )
        else:
            verified = await verifier.verify(patch_path)
            if not verified:
                violations.append(
                    ResourceViolation(
                        rule="invalid-signature",
                        severity=Severity.CRITICAL.value,
                        message="Patch signature verification failed",
                    )
                )

    if patch_path and os.path.isfile(patch_path) and flags.is_enabled("invariant-validation"):
        result = validate_patch(resource.spec.package, patch_path, rules=rules)
        for violation in result.violations:
            if violation.severity == Severity.CRITICAL:
                violations.append(
                    ResourceViolation(
                        rule=violation.invariant,
                        severity=violation.severity.value,
                        message=violation.description,
                    )
                )

    if violations:
        logger.info(
            "Validation failed for %s: %s",
            resource.key,
            ", ".join(v.rule for v in violations),
        )
    return ValidationOutcome(
        passed=not violations,
        violations=violations,
        signed=signed,
        signature_verified=verified,
    )
