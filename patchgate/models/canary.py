"""
Canary rollout models.

CanaryPatchState: rollout state of one governed package.
CanaryMatrix: the persisted document (per-package map + global defaults).
"""

from enum import Enum
from typing import Dict

from sqlmodel import SQLModel, Field


class Stage(str, Enum):
    """Rollout stage enum."""

    STABLE = "stable"
    CANARY = "canary"


class RolloutStrategy(str, Enum):
    """Rollout strategy enum."""

    RANDOM = "random"
    GRADUAL = "gradual"


DEFAULT_ROLLOUT_PERCENTAGE = 5


class CanaryPatchState(SQLModel):
    """
    Rollout state of a single patched package.

    Invariant (kept by the control operations): stage is stable iff
    rollout_percentage is 100.
    """

    stage: Stage = Field(default=Stage.CANARY, description="Current rollout stage.")
    rollout_percentage: int = Field(
        default=DEFAULT_ROLLOUT_PERCENTAGE,
        ge=0,
        le=100,
        description="Share of consumers receiving the patch.",
    )
    rollout_strategy: RolloutStrategy = Field(
        default=RolloutStrategy.RANDOM, description="How consumers are selected."
    )
    monitoring_window: str = Field(
        default="24h", description="Observation window before promotion, e.g. 24h."
    )
    rollback_on_errors: bool = Field(
        default=True, description="Roll back automatically when errors exceed the threshold."
    )
    rollback_threshold: int = Field(
        default=5, ge=0, description="Error count that triggers a rollback."
    )


class AutoPromotionCriteria(SQLModel):
    """Criteria a canary must meet before automatic promotion."""

    min_hours_in_canary: int = 24
    max_error_rate: float = 0.01


class CanaryGlobals(SQLModel):
    """Global defaults stored alongside the per-package map."""

    default_rollout_percentage: int = Field(
        default=DEFAULT_ROLLOUT_PERCENTAGE, ge=0, le=100
    )
    monitoring_enabled: bool = True
    prometheus_metrics_enabled: bool = True
    slack_notifications_enabled: bool = False
    auto_promotion_enabled: bool = True
    auto_promotion: AutoPromotionCriteria = Field(default_factory=AutoPromotionCriteria)


class CanaryMatrix(SQLModel):
    """The canary matrix document."""

    version: int = Field(default=0, ge=0, description="Bumped on every save.")
    patches: Dict[str, CanaryPatchState] = Field(default_factory=dict)
    global_defaults: CanaryGlobals = Field(default_factory=CanaryGlobals)
