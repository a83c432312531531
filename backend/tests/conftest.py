"""Shared fixtures for the taskflow test suite."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest


@pytest.fixture
def workspace_id():
    return uuid4()


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def mock_db():
    """AsyncSession stand-in; begin_nested() works as an async context manager
    and ``info`` holds realtime messages queued until commit.
    """
    db = MagicMock()
    db.execute = AsyncMock(return_value=MagicMock())
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.delete = AsyncMock()
    db.get = AsyncMock(return_value=None)
    db.info = {}

    nested = MagicMock()
    nested.__aenter__ = AsyncMock(return_value=nested)
    nested.__aexit__ = AsyncMock(return_value=False)
    db.begin_nested = MagicMock(return_value=nested)
    return db
