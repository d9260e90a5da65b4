"""
Patch analytics service.

Aggregates the patched dependency map, current audit violations and the
canary matrix into one snapshot for the API.
"""

import os
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import yaml

from patchgate.core.config import Settings
from patchgate.core.errors import ResourceNotFoundError
from patchgate.core.flags import FeatureFlags
from patchgate.core.logging import get_logger
from patchgate.models.analytics import AnalyticsViolation, PatchAnalytics, PatchHealth
from patchgate.models.invariant import Severity
from patchgate.services.canary.store import CanaryMatrixStore, matrix_to_document
from patchgate.services.invariants.loader import get_enabled_rules, load_yaml_document
from patchgate.services.invariants.validation import audit_patches
from patchgate.services.patches.manifest import get_patched_dependencies

logger = get_logger(__name__)

_STARTED_AT = time.monotonic()


class PatchAnalyticsService:
    """Builds analytics snapshots from the on-disk governance documents."""

    def __init__(self, settings: Settings, flags: Optional[FeatureFlags] = None):
        self.settings = settings
        self.flags = flags

    def get_patched_deps(self) -> Dict[str, str]:
        try:
            return get_patched_dependencies(self.settings.PACKAGE_MANIFEST_PATH)
        except (ResourceNotFoundError, ValueError) as e:
            logger.warning("Could not read patched dependencies: %s", e)
            return {}

    def get_violations(self) -> List[AnalyticsViolation]:
        """Critical and high violations from a fresh audit."""
        if self.flags is not None and not self.flags.is_enabled("invariant-validation"):
            return []
        try:
            report = audit_patches(
                self.settings.PACKAGE_MANIFEST_PATH,
                rules=get_enabled_rules(self.settings.INVARIANT_DEFINITIONS_PATH, self.flags),
                layers=load_yaml_document(self.settings.DEPENDENCY_LAYERS_PATH),
            )
        except (ResourceNotFoundError, ValueError) as e:
            logger.warning("Could not audit patched dependencies: %s", e)
            return []
        return [
            AnalyticsViolation(
                package=result.package,
                invariant=v.invariant,
                severity=v.severity.value,
                description=v.description,
            )
            for result in report.results
            for v in result.violations
            if v.severity in (Severity.CRITICAL, Severity.HIGH)
        ]

    def get_canary_state(self) -> Dict[str, Any]:
        try:
            matrix = CanaryMatrixStore(self.settings.CANARY_MATRIX_PATH).load()
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.warning("Cannot read canary matrix: %s", e)
            return {"error": "Cannot read canary matrix"}
        return matrix_to_document(matrix)

    @staticmethod
    def last_upstream_sync(patch_paths: List[str]) -> str:
        mtimes = [os.path.getmtime(p) for p in patch_paths if os.path.exists(p)]
        if not mtimes:
            return "never"
        return datetime.fromtimestamp(max(mtimes), tz=timezone.utc).isoformat()

    def get_analytics(self) -> PatchAnalytics:
        patched = self.get_patched_deps()
        return PatchAnalytics(
            patched_deps=patched,
            violations=self.get_violations(),
            canary_state=self.get_canary_state(),
            last_sync=self.last_upstream_sync(list(patched.values())),
            uptime=time.monotonic() - _STARTED_AT,
            version=self.settings.VERSION,
        )

    def get_health(self) -> PatchHealth:
        patched = self.get_patched_deps()
        violations = self.get_violations()
        return PatchHealth(
            status="healthy" if not violations else "degraded",
            timestamp=datetime.now(timezone.utc).isoformat(),
            violations_count=len(violations),
            patches_count=len(patched),
        )
