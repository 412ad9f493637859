"""
Pytest configuration and shared fixtures.
"""

import os

# Cheap hashing and quiet output for the whole test session
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("SEED_DEMO_DATA", "true")

import pytest
from fastapi.testclient import TestClient

from api.database import APIDatabaseService, create_database
from api.main import app


@pytest.fixture
def client():
    """Create a test client with a freshly seeded database."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def failing_client():
    """Test client that returns 500 responses instead of re-raising server errors."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def seeded_database():
    """Create an in-memory database loaded with the demo records."""
    return create_database(seed=True, bcrypt_rounds=4)


@pytest.fixture
def db_service(seeded_database):
    """Create a database service over the seeded database."""
    return APIDatabaseService(seeded_database)


@pytest.fixture
def harry_answers():
    """Correct security-question answers for the seeded harry@hogwarts.edu user."""
    return [
        {"answer": "Hedwig"},
        {"answer": "Quidditch Through the Ages"},
        {"answer": "Evans"},
    ]
