from fastapi import APIRouter
from patchgate.api.endpoints import patches_router

router = APIRouter(prefix="/api/v1")

router.include_router(patches_router, prefix="/patches", tags=["patches"])
