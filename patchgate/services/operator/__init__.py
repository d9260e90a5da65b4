"""
Reconciliation operator for Patch resources.
"""

from patchgate.services.operator.operator import PatchOperator
from patchgate.services.operator.resource_store import (
    FileResourceStore,
    InMemoryResourceStore,
    ResourceStore,
)
from patchgate.services.operator.signing import (
    CosignVerifier,
    SignatureVerifier,
    StaticSignatureVerifier,
)

__all__ = [
    "CosignVerifier",
    "FileResourceStore",
    "InMemoryResourceStore",
    "PatchOperator",
    "ResourceStore",
    "SignatureVerifier",
    "StaticSignatureVerifier",
]
