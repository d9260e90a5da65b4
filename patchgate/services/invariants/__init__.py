"""
Invariant validation for dependency patches.
"""

from patchgate.services.invariants.engine import validate
from patchgate.services.invariants.loader import get_enabled_rules, load_yaml_document
from patchgate.services.invariants.rules import DEFAULT_RULES, InvariantRule, RuleContext
from patchgate.services.invariants.validation import (
    audit_patches,
    inspect_patch_file,
    validate_patch,
)

__all__ = [
    "DEFAULT_RULES",
    "InvariantRule",
    "RuleContext",
    "audit_patches",
    "get_enabled_rules",
    "inspect_patch_file",
    "load_yaml_document",
    "validate",
    "validate_patch",
]
