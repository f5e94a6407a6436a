"""Shared test fixtures."""
import os

# Settings are read at import time; point them at throwaway backends first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")

import pytest
from unittest.mock import MagicMock


@pytest.fixture
def db():
    """Create test database session."""
    from linksplit.database import SessionLocal, engine, Base
    from linksplit import models  # noqa: F401

    # Create tables
    Base.metadata.create_all(bind=engine)

    # Create session
    session = SessionLocal()

    yield session

    # Cleanup
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def mock_redis():
    """Create a mock Redis client with an empty cache."""
    redis_mock = MagicMock()
    redis_mock.get.return_value = None
    return redis_mock
