from fastapi import FastAPI

from patchgate.api.api_v1 import router as api_v1
from patchgate.api.endpoints import health_router
from patchgate.core.config import get_settings
from patchgate.core.lifespan import lifespan
from patchgate.core.logging import setup_logging

settings = get_settings()
setup_logging(settings.LOG_LEVEL)

app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, lifespan=lifespan)


@app.get("/")
def root():
    return {"message": f"Hello from {settings.PROJECT_NAME}!"}


app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(api_v1)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
