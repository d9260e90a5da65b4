from contextlib import asynccontextmanager

from fastapi import FastAPI

from patchgate.core.flags import get_feature_flags


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Lifespan function for the FastAPI application.
    Releases the shared feature flag provider on shutdown.
    """
    yield

    if get_feature_flags.cache_info().currsize:
        get_feature_flags().close()
        get_feature_flags.cache_clear()
