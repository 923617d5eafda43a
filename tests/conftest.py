"""
Global pytest fixtures for the Shorty test suite.

Responsibilities:
    - Provide a fresh FastAPI TestClient via the app factory for integration tests
    - Provide an isolated in-memory Storage for direct testing
    - Provide a ShortlinkManager wired to the Storage fixture

Why an app factory?
    `create_app(storage=Storage())` gives every test its own in-memory store,
    so no test needs a running MongoDB and no state leaks between tests.
"""

import pytest
from fastapi.testclient import TestClient

from main import create_app
from shorty.manager.shortlink_manager import ShortlinkManager
from shorty.storage.storage import Storage


@pytest.fixture
def storage() -> Storage:
    """Provide a fresh in-memory Storage backend."""
    return Storage()


@pytest.fixture
def client(storage: Storage) -> TestClient:
    """
    Provide a TestClient for a new app instance backed by the storage fixture.

    Notes:
        - The `with` block runs the lifespan, so connect()/close() are exercised.
        - Tests may seed or inspect `storage` directly alongside HTTP calls.
    """
    with TestClient(create_app(storage=storage)) as test_client:
        yield test_client


@pytest.fixture
def manager(storage: Storage) -> ShortlinkManager:
    """Provide a ShortlinkManager wired to the storage fixture."""
    return ShortlinkManager(storage=storage)
