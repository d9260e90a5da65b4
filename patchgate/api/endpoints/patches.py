from typing import Annotated

from fastapi import APIRouter, Depends

from patchgate.core.config import get_settings
from patchgate.core.flags import get_feature_flags
from patchgate.models.analytics import PatchAnalytics, PatchHealth
from patchgate.services.patches.analytics import PatchAnalyticsService

router = APIRouter()


def get_analytics_service() -> PatchAnalyticsService:
    """Get analytics service (Dependency Injection)."""
    return PatchAnalyticsService(get_settings(), get_feature_flags())


ServiceDep = Annotated[PatchAnalyticsService, Depends(get_analytics_service)]


@router.get("", response_model=PatchAnalytics)
def get_patch_analytics(service: ServiceDep):
    """Patched dependencies, audit violations and canary state."""
    return service.get_analytics()


@router.get("/health", response_model=PatchHealth)
def get_patch_health(service: ServiceDep):
    """``healthy`` when the audit reports no critical or high violations."""
    return service.get_health()
