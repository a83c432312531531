"""Tests for the request session's commit, rollback and realtime hand-off."""

from contextlib import asynccontextmanager
from unittest.mock import patch

import pytest

from taskflow.db.session import get_db_session
from taskflow.realtime.channels import PENDING_MESSAGES_KEY, ChannelHub, publish_after_commit

TOPIC = "mentions:1"


@pytest.fixture
def session(mock_db):
    @asynccontextmanager
    async def factory():
        yield mock_db

    with patch("taskflow.db.session.async_session_factory", factory):
        yield mock_db


@pytest.fixture
def channel_hub():
    return ChannelHub()


@pytest.mark.asyncio
async def test_publishes_after_commit(session, channel_hub):
    subscription = channel_hub.subscribe(TOPIC)
    sessions = get_db_session()
    db = await sessions.__anext__()

    publish_after_commit(db, channel_hub, TOPIC, "INSERT", {"id": "m1"})
    assert subscription._queue.empty()

    with pytest.raises(StopAsyncIteration):
        await sessions.__anext__()

    session.commit.assert_awaited_once()
    message = await subscription.get()
    assert message.payload == {"id": "m1"}
    assert PENDING_MESSAGES_KEY not in session.info


@pytest.mark.asyncio
async def test_failed_request_discards(session, channel_hub):
    subscription = channel_hub.subscribe(TOPIC)
    sessions = get_db_session()
    db = await sessions.__anext__()
    publish_after_commit(db, channel_hub, TOPIC, "INSERT", {"id": "m1"})

    with pytest.raises(ValueError):
        await sessions.athrow(ValueError("bad input"))

    session.rollback.assert_awaited_once()
    session.commit.assert_not_awaited()
    assert subscription._queue.empty()
    assert PENDING_MESSAGES_KEY not in session.info


@pytest.mark.asyncio
async def test_failed_commit_discards(session, channel_hub):
    session.commit.side_effect = RuntimeError("deadlock detected")
    subscription = channel_hub.subscribe(TOPIC)
    sessions = get_db_session()
    db = await sessions.__anext__()
    publish_after_commit(db, channel_hub, TOPIC, "INSERT", {"id": "m1"})

    with pytest.raises(RuntimeError):
        await sessions.__anext__()

    session.rollback.assert_awaited_once()
    assert subscription._queue.empty()
