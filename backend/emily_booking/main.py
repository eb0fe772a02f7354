from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from emily_booking.api import router
from emily_booking.core.config import get_settings
from emily_booking.core.logging import setup_logging
from emily_booking.session.redis_client import close_redis_client

logger = logging.getLogger(__name__)

settings = get_settings()
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Booking stub starting env=%s", settings.app_env)
    try:
        yield
    finally:
        if settings.use_redis_session_storage:
            close_redis_client()
            logger.info("Redis session storage closed")


def create_app() -> FastAPI:
    app = FastAPI(title="Grand Emily Booking API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
