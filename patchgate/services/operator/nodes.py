"""Nodes of the reconciliation pipeline."""

from langgraph.runtime import Runtime

from patchgate.core.logging import get_logger
from patchgate.models.patch_resource import Phase
from patchgate.services.operator.checks import check_resource
from patchgate.services.operator.context import Ctx
from patchgate.services.operator.state import ReconcileState

logger = get_logger(__name__)


async def validate(state: ReconcileState, runtime: Runtime[Ctx]) -> dict:
    """Move to Validating and run every check against the resource."""
    ctx = runtime.context
    resource = state.resource
    resource.set_phase(Phase.VALIDATING)
    await ctx.store.update_status(resource)

    outcome = await check_resource(
        resource, ctx.verifier, ctx.flags, ctx.rules, patch_root=ctx.patch_root
    )
    resource.status.validation_result = outcome
    return {"resource": resource, "validation": outcome}


async def apply(state: ReconcileState, runtime: Runtime[Ctx]) -> dict:
    """Patch every selected target, stopping at the first failure."""
    ctx = runtime.context
    resource = state.resource
    resource.set_phase(Phase.APPLYING)
    await ctx.store.update_status(resource)

    applied = []
    try:
        targets = await ctx.store.find_targets(resource)
    except Exception as e:
        logger.error("Failed to find targets for %s: %s", resource.key, e)
        return {"resource": resource, "applied_targets": applied, "error": str(e)}

    for target in targets:
        try:
            await ctx.store.apply_to_target(target, resource)
        except Exception as e:
            logger.error("Failed to apply %s to %s: %s", resource.key, target.key, e)
            return {"resource": resource, "applied_targets": applied, "error": str(e)}
        applied.append(target.key)

    logger.info("Applied %s to %d target(s)", resource.key, len(applied))
    return {"resource": resource, "applied_targets": applied, "error": None}


async def rollback(state: ReconcileState, runtime: Runtime[Ctx]) -> dict:
    """Revert targets patched before the apply failure."""
    ctx = runtime.context
    resource = state.resource
    resource.set_phase(Phase.ROLLING_BACK)
    await ctx.store.update_status(resource)

    applied = set(state.applied_targets)
    try:
        targets = [t for t in await ctx.store.find_targets(resource) if t.key in applied]
    except Exception as e:
        logger.error("Failed to find targets to revert for %s: %s", resource.key, e)
        return {"resource": resource, "applied_targets": []}

    for target in reversed(targets):
        try:
            await ctx.store.revert_target(target, resource)
        except Exception as e:
            logger.error("Failed to revert %s on %s: %s", resource.key, target.key, e)
    return {"resource": resource, "applied_targets": []}


async def mark_applied(state: ReconcileState, runtime: Runtime[Ctx]) -> dict:
    resource = state.resource
    resource.status.applied_to = list(state.applied_targets)
    resource.set_phase(Phase.APPLIED, f"Applied to {len(state.applied_targets)} target(s)")
    await runtime.context.store.update_status(resource)
    return {"resource": resource}


async def fail(state: ReconcileState, runtime: Runtime[Ctx]) -> dict:
    resource = state.resource
    if state.error:
        message = f"Apply failed: {state.error}"
    elif state.validation and state.validation.violations:
        message = "Validation failed: " + "; ".join(
            v.message for v in state.validation.violations
        )
    else:
        message = "Validation failed"
    resource.status.applied_to = []
    resource.set_phase(Phase.FAILED, message)
    await runtime.context.store.update_status(resource)
    return {"resource": resource}


def route_after_validation(state: ReconcileState) -> str:
    return "apply" if state.validation and state.validation.passed else "fail"


def route_after_apply(state: ReconcileState) -> str:
    if state.error is None:
        return "mark_applied"
    return "rollback" if state.applied_targets else "fail"
