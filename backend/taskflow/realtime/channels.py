"""In-process publish/subscribe topics for realtime updates.

Each subscriber owns a bounded queue and consumes it as an async stream.
Publishing never blocks: a subscriber that falls behind loses its oldest
undelivered messages. A message tagged with a workspace only reaches
subscribers of that workspace (or untagged subscribers).

Services queue database-backed events with ``publish_after_commit``; the
session owner publishes them with ``publish_committed`` once the commit
succeeds, or drops them with ``discard_uncommitted`` on rollback.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.config import get_settings

logger = structlog.get_logger()

PENDING_MESSAGES_KEY = "pending_channel_messages"


def comment_topic(entity_type: str, entity_id: UUID | str) -> str:
    return f"comments:{entity_type}:{entity_id}"


def mention_topic(workspace_id: UUID | str) -> str:
    return f"mentions:{workspace_id}"


def parse_topic(topic: str) -> Optional[tuple[str, Optional[str], UUID]]:
    """Split a topic into ``(kind, entity_type, id)``; None when malformed.

    ``mentions:{workspace_id}`` gives ``("mentions", None, workspace_id)``
    and ``comments:{entity_type}:{entity_id}`` gives
    ``("comments", entity_type, entity_id)``.
    """
    parts = topic.split(":")
    try:
        if len(parts) == 2 and parts[0] == "mentions":
            return "mentions", None, UUID(parts[1])
        if len(parts) == 3 and parts[0] == "comments" and parts[1]:
            return "comments", parts[1], UUID(parts[2])
    except ValueError:
        return None
    return None


@dataclass
class ChannelMessage:
    """One event delivered on a topic."""

    topic: str
    event: str  # INSERT, UPDATE, DELETE, typing
    payload: dict[str, Any]
    sender_id: Optional[str] = None
    workspace_id: Optional[str] = None
    sent_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "event": self.event,
            "payload": self.payload,
            "sender_id": self.sender_id,
            "sent_at": self.sent_at.isoformat(),
        }


class Subscription:
    """A subscriber's message stream on one topic."""

    def __init__(
        self,
        hub: "ChannelHub",
        topic: str,
        maxsize: int,
        subscriber_id: Optional[str] = None,
        workspace_id: Optional[str] = None,
    ):
        self.hub = hub
        self.topic = topic
        self.subscriber_id = subscriber_id
        self.workspace_id = workspace_id
        self.dropped = 0
        self.closed = False
        self._queue: asyncio.Queue[Optional[ChannelMessage]] = asyncio.Queue(maxsize=maxsize)

    def _deliver(self, message: Optional[ChannelMessage]) -> None:
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(message)

    def accepts(self, message: ChannelMessage) -> bool:
        return (
            message.workspace_id is None
            or self.workspace_id is None
            or message.workspace_id == self.workspace_id
        )

    async def get(self) -> Optional[ChannelMessage]:
        """Wait for the next message; None once the subscription is closed."""
        if self.closed and self._queue.empty():
            return None
        return await self._queue.get()

    def __aiter__(self) -> AsyncIterator[ChannelMessage]:
        return self

    async def __anext__(self) -> ChannelMessage:
        message = await self.get()
        if message is None:
            raise StopAsyncIteration
        return message

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.hub.unsubscribe(self)
        # Wake a consumer blocked in get()
        self._deliver(None)


class ChannelHub:
    """Registry of topics and their subscribers."""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._topics: dict[str, set[Subscription]] = {}

    def subscribe(
        self,
        topic: str,
        subscriber_id: Optional[str] = None,
        workspace_id: Optional[str] = None,
    ) -> Subscription:
        subscription = Subscription(self, topic, self.queue_size, subscriber_id, workspace_id)
        self._topics.setdefault(topic, set()).add(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscribers = self._topics.get(subscription.topic)
        if not subscribers:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self._topics[subscription.topic]

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, ()))

    def publish_nowait(
        self,
        topic: str,
        event: str,
        payload: dict[str, Any],
        sender_id: Optional[str] = None,
        workspace_id: Optional[str] = None,
    ) -> int:
        """Fan a message out to the subscribers of ``topic``; returns the count."""
        message = ChannelMessage(
            topic=topic,
            event=event,
            payload=payload,
            sender_id=sender_id,
            workspace_id=workspace_id,
        )
        subscribers = [s for s in self._topics.get(topic, ()) if s.accepts(message)]
        for subscription in subscribers:
            subscription._deliver(message)
        logger.debug("channel_published", topic=topic, event=event, subscribers=len(subscribers))
        return len(subscribers)

    async def publish(
        self,
        topic: str,
        event: str,
        payload: dict[str, Any],
        sender_id: Optional[str] = None,
        workspace_id: Optional[str] = None,
    ) -> int:
        return self.publish_nowait(topic, event, payload, sender_id, workspace_id)


hub = ChannelHub(queue_size=get_settings().realtime_queue_size)


def publish_after_commit(
    session: AsyncSession,
    channel_hub: ChannelHub,
    topic: str,
    event: str,
    payload: dict[str, Any],
    sender_id: Optional[str] = None,
    workspace_id: Optional[str] = None,
) -> None:
    """Queue a message on ``session``; it is published once the session commits."""
    session.info.setdefault(PENDING_MESSAGES_KEY, []).append(
        (channel_hub, topic, event, payload, sender_id, workspace_id)
    )


def publish_committed(session: AsyncSession) -> int:
    """Publish the messages queued on a session that has just committed."""
    pending = session.info.pop(PENDING_MESSAGES_KEY, [])
    for channel_hub, *message in pending:
        channel_hub.publish_nowait(*message)
    return len(pending)


def discard_uncommitted(session: AsyncSession) -> int:
    """Drop the messages queued on a session that rolled back."""
    pending = session.info.pop(PENDING_MESSAGES_KEY, [])
    if pending:
        logger.info("channel_messages_discarded", count=len(pending))
    return len(pending)
