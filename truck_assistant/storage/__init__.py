"""Record stores for fleet, maintenance, diagnostic and chat history data."""

from __future__ import annotations

from typing import Optional

import structlog

from truck_assistant.cache.local_cache import LocalCache
from truck_assistant.catalog.static_data import StaticData
from truck_assistant.config import Settings
from truck_assistant.storage.base import RecordNotFound, RecordStore, StoreError

logger = structlog.get_logger()

__all__ = ["RecordNotFound", "RecordStore", "StoreError", "build_store"]


def build_store(settings: Settings, static: Optional[StaticData] = None) -> RecordStore:
    """Instantiate the record store selected by configuration.

    The store is returned unopened; callers own ``open``/``close``.
    """
    backend = settings.resolved_storage_backend
    if backend == "postgres":
        from truck_assistant.db.session import Database
        from truck_assistant.storage.sql_store import SqlStore

        store: RecordStore = SqlStore(Database.from_settings(settings))
    elif backend == "mongo":
        from truck_assistant.storage.mongo_store import MongoStore

        store = MongoStore.from_settings(settings)
    elif backend == "local":
        from truck_assistant.storage.local_store import LocalStore

        store = LocalStore(LocalCache(settings.local_store_path), static)
    else:
        raise ValueError(f"Unknown storage backend: {backend}")
    logger.info("record_store_selected", backend=store.backend)
    return store
