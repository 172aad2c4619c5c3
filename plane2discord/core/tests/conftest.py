"""Shared fixtures for core tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def mock_settings() -> MagicMock:
    """Mock Settings object for database tests."""
    settings = MagicMock()
    settings.db_host = "localhost"
    settings.db_port = 5432
    settings.db_name = "test_db"
    settings.db_user = "test_user"
    settings.db_password = "test_password"  # noqa: S105
    return settings


@pytest.fixture
def mock_pool() -> tuple[MagicMock, AsyncMock]:
    """Create a pool whose acquire() yields a mock connection.

    Returns:
        Tuple of (pool, connection)
    """
    pool = MagicMock()
    conn = AsyncMock()

    async_acquire = AsyncMock()
    async_acquire.__aenter__.return_value = conn
    async_acquire.__aexit__.return_value = None
    pool.acquire.return_value = async_acquire
    pool.close = AsyncMock()
    return pool, conn
