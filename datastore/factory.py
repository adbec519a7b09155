from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Union

from datastore.mock_realtime import MockRealtimeDatabase
from datastore.rest_realtime import RestRealtimeDatabase
from settings import get_settings

logger = logging.getLogger(__name__)

RealtimeStore = Union[MockRealtimeDatabase, RestRealtimeDatabase]


@lru_cache
def build_default_store() -> RealtimeStore:
    """Process-wide store client, built on first use."""
    settings = get_settings()
    if settings.store_backend == "rest":
        logger.info("Connecting to realtime database", extra={"path": settings.database_url})
        return RestRealtimeDatabase(
            base_url=settings.database_url,
            auth=settings.database_auth,
            stream_retry_seconds=settings.stream_retry_seconds,
        )
    persistence = Path(settings.mock_db_path) if settings.mock_db_path else None
    return MockRealtimeDatabase(name="mock", persistence_path=persistence)
