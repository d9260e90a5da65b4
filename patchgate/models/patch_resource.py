"""
Patch custom resource models.

Mirrors the ``Patch`` custom resource the reconciliation operator acts on.
Key: (metadata.namespace, metadata.name)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlmodel import SQLModel, Field

from patchgate.models.canary import Stage


class Phase(str, Enum):
    """Lifecycle phase of a Patch resource."""

    PENDING = "Pending"
    VALIDATING = "Validating"
    APPLYING = "Applying"
    APPLIED = "Applied"
    FAILED = "Failed"
    ROLLING_BACK = "RollingBack"


class ResourceMetadata(SQLModel):
    name: str
    namespace: str = "default"
    uid: str = ""
    generation: int = 1

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"


class PatchSelectors(SQLModel):
    match_labels: Dict[str, str] = Field(default_factory=dict)


class ValidationSettings(SQLModel):
    enabled: bool = True
    timeout: str = "5m"
    retries: int = 0


class MonitoringSettings(SQLModel):
    enabled: bool = False
    error_threshold: int = 0
    latency_threshold: str = ""


class PatchSpec(SQLModel):
    """Desired state: which package/patch, at what stage and rollout."""

    package: str = ""
    version: Optional[str] = None
    patch_ref: str = ""
    stage: Stage = Stage.CANARY
    rollout: int = 0
    selectors: Optional[PatchSelectors] = None
    validation: Optional[ValidationSettings] = None
    monitoring: Optional[MonitoringSettings] = None


class ResourceViolation(SQLModel):
    """A structural or signature check that failed."""

    rule: str
    severity: str
    message: str


class ValidationOutcome(SQLModel):
    passed: bool
    violations: List[ResourceViolation] = Field(default_factory=list)
    signed: bool = False
    signature_verified: bool = False


class PatchStatus(SQLModel):
    """Observed state written back by the operator."""

    phase: Phase = Phase.PENDING
    observed_generation: Optional[int] = None
    last_update_time: Optional[str] = None
    applied_to: List[str] = Field(default_factory=list)
    message: Optional[str] = None
    validation_result: Optional[ValidationOutcome] = None


class PatchCustomResource(SQLModel):
    """A ``Patch`` custom resource."""

    api_version: str = "patchgate.io/v1"
    kind: str = "Patch"
    meta: ResourceMetadata = Field(description="Resource metadata (``metadata`` in manifests).")
    spec: PatchSpec = Field(default_factory=PatchSpec)
    status: PatchStatus = Field(default_factory=PatchStatus)

    @property
    def key(self) -> str:
        return self.meta.key

    def set_phase(self, phase: Phase, message: Optional[str] = None) -> None:
        """Record a phase transition on the status sub-object."""
        self.status.phase = phase
        self.status.last_update_time = datetime.now(timezone.utc).isoformat()
        self.status.observed_generation = self.meta.generation
        if message is not None:
            self.status.message = message


class Target(SQLModel):
    """A workload the patch is applied to."""

    name: str
    namespace: str = "default"
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, Any] = Field(default_factory=dict)
    source: Optional[str] = Field(
        default=None, description="Backing manifest path, when file based."
    )

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"
