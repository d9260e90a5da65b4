"""
Patch validation service.

Runs the invariant rule set against patch files, one at a time or for every
patched dependency in a manifest.
"""

import os
from typing import Any, Dict, List, Optional

from patchgate.core.logging import get_logger
from patchgate.models.invariant import (
    AuditReport,
    InvariantViolation,
    PatchFileInspection,
    Severity,
    ValidationResult,
)
from patchgate.services.invariants.engine import validate
from patchgate.services.invariants.rules import DEFAULT_RULES, InvariantRule
from patchgate.services.patches.manifest import get_patched_dependencies

logger = get_logger(__name__)

PATCH_FILE_EXISTS = "patch-file-exists"


def read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


def validate_patch(
    package_name: str,
    patch_file_path: str,
    rules: Optional[List[InvariantRule]] = None,
    original_text: Optional[str] = None,
    layers: Optional[Dict[str, Any]] = None,
) -> ValidationResult:
    """
    Validate a single patch file.

    Fails closed with one critical ``patch-file-exists`` violation when the
    file is absent.
    """
    if not os.path.exists(patch_file_path):
        logger.warning("Patch file %s for %s does not exist", patch_file_path, package_name)
        return ValidationResult(
            package=package_name,
            is_valid=False,
            violations=[
                InvariantViolation(
                    invariant=PATCH_FILE_EXISTS,
                    description=f"Patch file {patch_file_path} does not exist",
                    severity=Severity.CRITICAL,
                )
            ],
        )

    patch_text = read_text(patch_file_path)
    violations = validate(
        DEFAULT_RULES if rules is None else rules,
        patch_text,
        package_name,
        original_text=original_text,
        layers=layers,
    )
    return ValidationResult(
        package=package_name, is_valid=not violations, violations=violations
    )


def audit_patches(
    manifest_path: str,
    rules: Optional[List[InvariantRule]] = None,
    layers: Optional[Dict[str, Any]] = None,
) -> AuditReport:
    """Validate every patched dependency listed in the manifest."""
    report = AuditReport()
    for package_key, patch_path in get_patched_dependencies(manifest_path).items():
        logger.info("Validating %s...", package_key)
        report.results.append(
            validate_patch(package_key, patch_path, rules=rules, layers=layers)
        )
    return report


def inspect_patch_file(package_name: str, patch_file_path: str) -> PatchFileInspection:
    """Check that a patch file exists and looks like a unified diff."""
    if not os.path.exists(patch_file_path):
        return PatchFileInspection(
            package=package_name, patch_file=patch_file_path, exists=False
        )

    content = read_text(patch_file_path)
    return PatchFileInspection(
        package=package_name,
        patch_file=patch_file_path,
        exists=True,
        size=len(content),
        lines=len(content.split("\n")),
        has_diff="diff --git" in content,
        has_hunks="@@" in content,
    )
