from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chattl.app.dispatch.engine import DispatchEngine
from chattl.app.logging_config import configure_logging
from chattl.app.realtime.manager import RealtimeEventManager
from chattl.app.routes.chat import router as chat_router
from chattl.app.routes.config import router as config_router
from chattl.app.routes.context import router as context_router
from chattl.app.routes.health import router as health_router
from chattl.app.routes.realtime import router as realtime_router
from chattl.app.routes.translations import router as translations_router
from chattl.app.settings import build_settings


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _service_logger() -> logging.Logger:
    return logging.getLogger("chattl.service")


def create_app() -> FastAPI:
    settings = build_settings(_project_root())
    configure_logging(settings.log_level)
    logger = _service_logger()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.settings = settings
        app.state.started_at = datetime.now(timezone.utc)
        app.state.realtime_manager = RealtimeEventManager(settings=settings, logger=logger)
        app.state.dispatch_engine = DispatchEngine(
            settings=settings,
            logger=logger,
            sink=app.state.realtime_manager,
            surface=app.state.realtime_manager,
        )

        logger.info(
            "service_startup",
            extra={
                "event": "startup",
                "service_name": settings.service_name,
                "service_version": settings.service_version,
            },
        )
        logger.info(
            "service_config_loaded",
            extra={
                "event": "config_loaded",
                "service_name": settings.service_name,
                "service_version": settings.service_version,
                "config": settings.redacted(),
            },
        )
        await app.state.realtime_manager.start()
        await app.state.dispatch_engine.start()
        yield
        await app.state.dispatch_engine.stop()
        await app.state.realtime_manager.stop()
        logger.info(
            "service_shutdown",
            extra={
                "event": "shutdown",
                "service_name": settings.service_name,
                "service_version": settings.service_version,
            },
        )

    app = FastAPI(
        title=settings.service_name,
        version=settings.service_version,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def root() -> dict[str, str]:
        return {"message": "ChatTL translation service is running."}

    app.include_router(health_router)
    app.include_router(chat_router)
    app.include_router(context_router)
    app.include_router(translations_router)
    app.include_router(config_router)
    app.include_router(realtime_router)
    return app


app = create_app()
