import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .get_db import Base, async_engine
from .settings import settings

logger = logging.getLogger("startup")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Waiting for application startup...")

    if settings.CREATE_TABLES_ON_STARTUP:
        import models.models  # noqa: F401

        try:
            async with async_engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables ensured.")
        except Exception:
            logger.exception("Failed to create database tables")
            raise

    logger.info("Application startup complete.")

    yield

    try:
        await async_engine.dispose()
    except Exception:
        logger.exception("Failed to dispose database engine")
