import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from tracking.config import Settings, settings as default_settings
from tracking.db import Database
from tracking.errors import StoreError, register_exception_handlers
from tracking.logging_config import configure_logging
from tracking.routers import configs, devices, locations
from tracking.services.configs import ensure_default_config
from tracking.store import Store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    # One store handle for the whole process
    database = Database(settings.DATABASE_URL, echo=settings.SQL_ECHO)
    store = Store(database)
    app.state.store = store

    if settings.CREATE_TABLES_ON_STARTUP:
        await database.create_all()
        logger.info("Database tables verified")

    if settings.SEED_DEFAULT_CONFIG_ON_STARTUP:
        await ensure_default_config(store)

    logger.info("%s v%s started (%s)", settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT)
    try:
        yield
    finally:
        await database.dispose()
        logger.info("Shutting down...")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="GPS tracker location ingestion and device configuration",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(locations.router, prefix=settings.API_PREFIX)
    app.include_router(devices.router, prefix=settings.API_PREFIX)
    app.include_router(configs.router, prefix=settings.API_PREFIX)

    @app.get("/health")
    async def health_check(request: Request):
        """Liveness with a database round-trip"""
        try:
            await request.app.state.store.ping()
            database = "ok"
        except StoreError:
            logger.warning("Health check: database unreachable", exc_info=True)
            database = "unreachable"
        return {
            "success": database == "ok",
            "status": "healthy" if database == "ok" else "degraded",
            "database": database,
            "version": settings.APP_VERSION,
        }

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("tracking.main:app", host="0.0.0.0", port=8000, reload=default_settings.is_development)
