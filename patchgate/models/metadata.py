"""
Patch metadata DTO.

Why a dependency was patched, as recorded next to the patch file.
"""

from typing import List, Optional

from sqlmodel import SQLModel, Field


class PatchMetadata(SQLModel):
    reason: str = Field(default="security", description="Why the package was patched.")
    date: str = Field(default="unknown", description="When the patch was created.")
    pr: Optional[str] = Field(default=None, description="Pull request reference.")
    invariants: List[str] = Field(
        default_factory=lambda: ["unknown"],
        description="Invariants the patch claims to satisfy.",
    )
    description: Optional[str] = None
