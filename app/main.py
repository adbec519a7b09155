from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from datastore.factory import build_default_store
from logging_config import configure_logging
from services.discovery import build_default_discovery
from services.feeds import build_default_feeds
from services.logs import build_default_logs


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    store = build_default_store()
    try:
        yield
    finally:
        store.close()
        for factory in (build_default_feeds, build_default_discovery, build_default_logs):
            factory.cache_clear()
        build_default_store.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Egg Telemetry Feeds",
        description="Aggregated egg-production series over a realtime sensor database.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
