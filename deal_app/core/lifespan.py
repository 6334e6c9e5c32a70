import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .throttling import rate_limiter_manager

logger = logging.getLogger("startup")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Waiting for application startup...")
    settings = app.state.settings

    if settings.RATE_LIMIT_ENABLED:
        try:
            await rate_limiter_manager.connect(settings)
        except Exception:
            logger.exception("Rate limiter connection failed")

    logger.info("Application startup complete.")

    yield

    try:
        await rate_limiter_manager.close()
    except Exception:
        logger.exception("Failed to close rate limiter connection")

    await app.state.engine.dispose()
    logger.info("Database engine disposed.")
