"""
LangGraph runtime context for the reconciliation pipeline.

Dependencies injected into every node through ``Runtime[Ctx]``.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from patchgate.core.flags import FeatureFlags
from patchgate.services.invariants.rules import DEFAULT_RULES, InvariantRule
from patchgate.services.operator.resource_store import ResourceStore
from patchgate.services.operator.signing import SignatureVerifier


@dataclass
class Ctx:
    """Runtime context for reconciliation nodes.

    Attributes:
        store: Where resources, their status and their targets live.
        verifier: Signature verifier for patch files.
        flags: Feature flags consulted by the validation step.
        rules: Invariant rules run against the referenced patch file.
        patch_root: Base directory for relative ``spec.patch_ref`` values.
    """

    store: ResourceStore
    verifier: SignatureVerifier
    flags: FeatureFlags
    rules: List[InvariantRule] = field(default_factory=lambda: list(DEFAULT_RULES))
    patch_root: Optional[str] = None
