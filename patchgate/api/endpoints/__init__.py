from .health import router as health_router
from .patches import router as patches_router

__all__ = ["health_router", "patches_router"]
