"""
Patch analytics DTOs served by the API.
"""

from typing import Any, Dict, List

from sqlmodel import SQLModel, Field


class AnalyticsViolation(SQLModel):
    package: str
    invariant: str
    severity: str
    description: str


class PatchAnalytics(SQLModel):
    patched_deps: Dict[str, str] = Field(default_factory=dict)
    violations: List[AnalyticsViolation] = Field(default_factory=list)
    canary_state: Dict[str, Any] = Field(default_factory=dict)
    last_sync: str = Field(default="never", description="Newest patch file mtime (ISO-8601).")
    uptime: float = Field(default=0.0, description="Seconds since the service started.")
    version: str


class PatchHealth(SQLModel):
    status: str = Field(description="``healthy`` or ``degraded``.")
    timestamp: str
    violations_count: int
    patches_count: int
