"""
Global pytest configuration and fixtures for the SharedMinds API test suite.
"""

import os
from typing import Generator

# Set test environment variables before settings are loaded
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only-32-chars"
os.environ.pop("SUPABASE_URL", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from sharedminds.core.database import get_db  # noqa: E402
from sharedminds.main import app  # noqa: E402

# Import fixtures from fixture modules
from tests.fixtures.ai_fixtures import *  # noqa: F403, F401, E402
from tests.fixtures.auth_fixtures import *  # noqa: F403, F401, E402
from tests.fixtures.profile_fixtures import *  # noqa: F403, F401, E402
from tests.fixtures.storage_fixtures import *  # noqa: F403, F401, E402
from tests.fixtures.storage_fixtures import FakeStorage  # noqa: E402


@pytest.fixture
def client(storage: FakeStorage) -> Generator[TestClient, None, None]:
    """Test client backed by in-memory storage."""
    app.dependency_overrides[get_db] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()
