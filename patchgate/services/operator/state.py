"""
Reconciliation state for a single Patch resource.

Pure graph state, no service-layer imports.
"""

from typing import List, Optional

from sqlmodel import SQLModel, Field

from patchgate.models.patch_resource import PatchCustomResource, ValidationOutcome


class ReconcileState(SQLModel):
    """
    State of one pass of the reconciliation pipeline.

    This is used by LangGraph to manage workflow state, not a database table.
    """

    resource: PatchCustomResource = Field(description="The resource being reconciled.")
    validation: Optional[ValidationOutcome] = Field(
        default=None, description="Outcome of the validation step."
    )
    applied_targets: List[str] = Field(
        default_factory=list, description="Keys of targets patched so far."
    )
    error: Optional[str] = Field(
        default=None, description="Error raised while applying, if any."
    )
