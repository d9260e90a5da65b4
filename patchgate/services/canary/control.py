"""
Canary control operations.

Each operation is an explicit operator command against the canary matrix.
Preconditions are checked inside the store's locked read-modify-write, so a
failed command never writes anything.
"""

import random
from typing import Dict, Optional

from patchgate.core.errors import CanaryStateError, ResourceNotFoundError
from patchgate.core.logging import get_logger
from patchgate.models.canary import (
    CanaryMatrix,
    CanaryPatchState,
    RolloutStrategy,
    Stage,
)
from patchgate.services.canary.store import CanaryMatrixStore

logger = get_logger(__name__)

DEMOTE_PERCENTAGE = 5


def stage_for(percentage: int) -> Stage:
    return Stage.STABLE if percentage == 100 else Stage.CANARY


def _check_percentage(percentage: int) -> None:
    if isinstance(percentage, bool) or not isinstance(percentage, int):
        raise CanaryStateError(f"Rollout percentage must be an integer, got {percentage!r}")
    if not 0 <= percentage <= 100:
        raise CanaryStateError(f"Rollout percentage must be between 0 and 100, got {percentage}")


def _require(matrix: CanaryMatrix, package: str) -> CanaryPatchState:
    state = matrix.patches.get(package)
    if state is None:
        raise CanaryStateError(f"Package {package} is not tracked in the canary matrix")
    return state


def should_enable(percentage: int, rng: random.Random) -> bool:
    """
    Coarse rollout decision for a single, independent check.

    Draws fresh every call: the same caller can get different answers.
    """
    if percentage >= 100:
        return True
    if percentage <= 0:
        return False
    return rng.random() * 100 < percentage


class CanaryController:
    """Mutates and queries the canary matrix."""

    def __init__(self, store: CanaryMatrixStore, rng: Optional[random.Random] = None):
        self.store = store
        self.rng = rng or random.Random()

    def add(self, package: str, percentage: Optional[int] = None) -> CanaryPatchState:
        """Start tracking a package; the stage follows the percentage."""

        def mutate(matrix: CanaryMatrix) -> CanaryPatchState:
            if package in matrix.patches:
                raise CanaryStateError(f"Package {package} is already tracked")
            pct = matrix.global_defaults.default_rollout_percentage if percentage is None else percentage
            _check_percentage(pct)
            state = CanaryPatchState(
                stage=stage_for(pct),
                rollout_percentage=pct,
                rollout_strategy=RolloutStrategy.RANDOM,
                rollback_on_errors=True,
            )
            matrix.patches[package] = state
            return state

        state = self.store.update(mutate)
        logger.info("Added %s at %d%% (%s)", package, state.rollout_percentage, state.stage.value)
        return state

    def remove(self, package: str) -> None:
        def mutate(matrix: CanaryMatrix) -> None:
            _require(matrix, package)
            del matrix.patches[package]

        self.store.update(mutate)
        logger.info("Removed %s from the canary matrix", package)

    def promote(self, package: str) -> CanaryPatchState:
        def mutate(matrix: CanaryMatrix) -> CanaryPatchState:
            state = _require(matrix, package)
            state.stage = Stage.STABLE
            state.rollout_percentage = 100
            return state

        state = self.store.update(mutate)
        logger.info("Promoted %s to stable", package)
        return state

    def demote(self, package: str, percentage: int = DEMOTE_PERCENTAGE) -> CanaryPatchState:
        """Send a package (back) to canary; creates the entry if untracked."""
        _check_percentage(percentage)
        if percentage == 100:
            raise CanaryStateError("Cannot demote to 100%, use promote")

        def mutate(matrix: CanaryMatrix) -> CanaryPatchState:
            state = matrix.patches.get(package)
            if state is None:
                state = CanaryPatchState(
                    stage=Stage.CANARY,
                    rollout_percentage=percentage,
                    rollout_strategy=RolloutStrategy.RANDOM,
                    rollback_on_errors=True,
                )
                matrix.patches[package] = state
            else:
                state.stage = Stage.CANARY
                state.rollout_percentage = percentage
            return state

        state = self.store.update(mutate)
        logger.info("Demoted %s to %d%% canary", package, percentage)
        return state

    def rollout(self, package: str, percentage: int) -> CanaryPatchState:
        _check_percentage(percentage)

        def mutate(matrix: CanaryMatrix) -> CanaryPatchState:
            state = _require(matrix, package)
            state.rollout_percentage = percentage
            state.stage = stage_for(percentage)
            return state

        state = self.store.update(mutate)
        logger.info("%s now at %d%% (%s)", package, percentage, state.stage.value)
        return state

    def check(self, package: str) -> bool:
        """Decide whether this invocation should get the patched package."""
        state = self.store.load().patches.get(package)
        if state is None:
            raise ResourceNotFoundError(f"Package {package} is not tracked in the canary matrix")
        return should_enable(state.rollout_percentage, self.rng)

    def list(self) -> Dict[str, CanaryPatchState]:
        return dict(self.store.load().patches)
