"""
Pytest configuration and shared fixtures.

Test environment variables are set here, before any app import, so the cached
settings pick them up. Every test gets fresh in-memory stores.
"""

import os

os.environ.setdefault("SPREADSHEET_ID", "test-spreadsheet")
os.environ.setdefault("DRIVE_FOLDER_ID", "test-folder")
os.environ.setdefault("SHEET_NAME", "master")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("TABULAR_BACKEND", "memory")
os.environ.setdefault("BLOB_BACKEND", "memory")

import pytest
from fastapi.testclient import TestClient

# Clear settings cache before any app imports to ensure test env vars are used
from moments.config import get_settings
get_settings.cache_clear()

from moments.dependencies import get_moment_service
from moments.main import app
from moments.service import MomentService
from moments.storage import InMemoryBlobStore, InMemoryTabularStore


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def tabular_store() -> InMemoryTabularStore:
    return InMemoryTabularStore()


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def service(settings, tabular_store, blob_store) -> MomentService:
    return MomentService(settings=settings, tabular_store=tabular_store, blob_store=blob_store)


@pytest.fixture
def client(service):
    """Test client wired to the per-test service."""
    app.dependency_overrides[get_moment_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def stored_rows(tabular_store, settings):
    """Returns a function reading all moments-table rows, header included; [] if missing."""
    def read() -> list:
        spreadsheet = tabular_store.spreadsheets.get(settings.SPREADSHEET_ID)
        if spreadsheet is None:
            return []
        table = spreadsheet.get_table(settings.SHEET_NAME)
        return table.get_values() if table else []

    return read
