"""
Store and service wiring for the FastAPI app.

Stores are built once per process from settings and shared by all requests.
"""

import logging
from functools import lru_cache

from moments.config import get_settings
from moments.service import MomentService
from moments.storage import BlobStore, InMemoryBlobStore, InMemoryTabularStore, TabularStore

logger = logging.getLogger(__name__)


@lru_cache()
def get_tabular_store() -> TabularStore:
    settings = get_settings()
    backend = settings.TABULAR_BACKEND
    logger.info(f"Using {backend} tabular store")

    if backend == "memory":
        return InMemoryTabularStore()

    if backend == "sql":
        from moments.sql_store import SqlTabularStore

        store = SqlTabularStore(settings.DATABASE_URL)
        store.init_db()
        return store

    from moments.google_store import SheetsTabularStore

    return SheetsTabularStore(credentials_file=settings.GOOGLE_APPLICATION_CREDENTIALS)


@lru_cache()
def get_blob_store() -> BlobStore:
    settings = get_settings()
    backend = settings.BLOB_BACKEND
    logger.info(f"Using {backend} blob store")

    if backend == "memory":
        return InMemoryBlobStore()

    from moments.google_store import DriveBlobStore

    return DriveBlobStore(credentials_file=settings.GOOGLE_APPLICATION_CREDENTIALS)


@lru_cache()
def get_moment_service() -> MomentService:
    """Shared MomentService built from settings."""
    return MomentService(
        settings=get_settings(),
        tabular_store=get_tabular_store(),
        blob_store=get_blob_store(),
    )
