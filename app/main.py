from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.coordinator import build_default_coordinator


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    coordinator = build_default_coordinator()
    try:
        yield
    finally:
        coordinator.shutdown()
        build_default_coordinator.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Stability Trigger",
        description="Telemetry ingestion with background stability detection and push alerts.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
