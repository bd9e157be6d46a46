"""Shared fixtures: an in-memory MongoDB and an API client bound to it."""

import sys
from pathlib import Path

import mongomock
import pytest
from fastapi.testclient import TestClient

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from catalog import CatalogStore  # noqa: E402
from database import ensure_indexes, get_db  # noqa: E402
from main import app  # noqa: E402


@pytest.fixture
def db():
    """Fresh mongomock database with the production indexes."""
    database = mongomock.MongoClient()["admin_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def catalog(db) -> CatalogStore:
    return CatalogStore(db)


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()
