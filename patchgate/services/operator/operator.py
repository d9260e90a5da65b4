"""
Patch reconciliation operator.

Polls the resource store and drives every new or changed Patch resource
through the reconciliation graph.
"""

import asyncio
from typing import Dict, List, Optional

from patchgate.core.flags import FeatureFlags
from patchgate.core.logging import get_logger
from patchgate.models.patch_resource import PatchCustomResource, Phase
from patchgate.services.invariants.rules import DEFAULT_RULES, InvariantRule
from patchgate.services.operator.context import Ctx
from patchgate.services.operator.graph import reconcile_graph
from patchgate.services.operator.resource_store import ResourceStore
from patchgate.services.operator.signing import SignatureVerifier

logger = get_logger(__name__)

TERMINAL_PHASES = (Phase.APPLIED, Phase.FAILED)


class PatchOperator:
    """
    Reconciles Patch resources.

    A resource is processed when its ``namespace/name`` key has not been seen
    or its ``metadata.generation`` differs from the last one processed.
    Resources whose persisted status already records a terminal phase for
    the current generation are skipped on first sight.
    """

    def __init__(
        self,
        store: ResourceStore,
        verifier: SignatureVerifier,
        flags: FeatureFlags,
        interval: float = 5.0,
        rules: Optional[List[InvariantRule]] = None,
        patch_root: Optional[str] = None,
    ):
        self.store = store
        self.interval = interval
        self.ctx = Ctx(
            store=store,
            verifier=verifier,
            flags=flags,
            rules=list(DEFAULT_RULES if rules is None else rules),
            patch_root=patch_root,
        )
        self.processed: Dict[str, int] = {}
        self._lock = asyncio.Lock()
        self._stopping: Optional[asyncio.Event] = None

    def needs_reconcile(self, resource: PatchCustomResource) -> bool:
        generation = resource.meta.generation
        seen = self.processed.get(resource.key)
        if seen is not None:
            return seen != generation
        status = resource.status
        return not (
            status.observed_generation == generation and status.phase in TERMINAL_PHASES
        )

    async def reconcile_resource(self, resource: PatchCustomResource) -> PatchCustomResource:
        """Run one resource through the graph and return its final form."""
        logger.info("Reconciling %s (generation %d)", resource.key, resource.meta.generation)
        result = await reconcile_graph.ainvoke({"resource": resource}, context=self.ctx)
        final = result["resource"]
        if isinstance(final, dict):
            final = PatchCustomResource.model_validate(final)
        logger.info("%s is %s", final.key, final.status.phase.value)
        return final

    async def mark_failed(
        self, resource: PatchCustomResource, error: Exception
    ) -> PatchCustomResource:
        """Force a resource whose pipeline raised into Failed."""
        resource.status.applied_to = []
        resource.set_phase(Phase.FAILED, f"Reconciliation error: {error}")
        try:
            await self.store.update_status(resource)
        except Exception as e:
            logger.error("Could not record failure of %s: %s", resource.key, e)
        return resource

    async def reconcile_once(self) -> List[PatchCustomResource]:
        """
        One reconciliation pass.

        Returns:
            The resources processed in this pass. Empty when another pass is
            still running.
        """
        if self._lock.locked():
            logger.warning("Previous reconciliation pass still running, skipping")
            return []

        async with self._lock:
            try:
                resources = await self.store.list_patches()
            except Exception as e:
                logger.error("Error during reconciliation: %s", e, exc_info=True)
                return []

            reconciled = []
            for resource in resources:
                if not self.needs_reconcile(resource):
                    self.processed.setdefault(resource.key, resource.meta.generation)
                    continue
                try:
                    reconciled.append(await self.reconcile_resource(resource))
                except Exception as e:
                    logger.error("Error reconciling %s: %s", resource.key, e, exc_info=True)
                    reconciled.append(await self.mark_failed(resource, e))
                self.processed[resource.key] = resource.meta.generation
            return reconciled

    async def run(self) -> None:
        """Poll every ``interval`` seconds until ``stop()`` is called."""
        self._stopping = asyncio.Event()
        logger.info("Patch operator started (interval %ss)", self.interval)
        while not self._stopping.is_set():
            await self.reconcile_once()
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Patch operator stopped")

    def stop(self) -> None:
        if self._stopping is not None:
            self._stopping.set()
