"""Ephemeral typing indicators."""

import time
from typing import Callable, Optional


class TypingTracker:
    """Tracks who is typing on each topic; entries expire after ``ttl_seconds``."""

    def __init__(self, ttl_seconds: float = 3.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._typing: dict[str, dict[str, tuple[float, Optional[str]]]] = {}

    def touch(self, topic: str, user_id: str, display_name: Optional[str] = None) -> None:
        """Record that ``user_id`` is typing now."""
        expires_at = self._clock() + self.ttl_seconds
        self._typing.setdefault(topic, {})[user_id] = (expires_at, display_name)

    def stop(self, topic: str, user_id: str) -> None:
        users = self._typing.get(topic)
        if users is not None:
            users.pop(user_id, None)
            if not users:
                del self._typing[topic]

    def active(self, topic: str, exclude_user: Optional[str] = None) -> list[dict[str, Optional[str]]]:
        """Users currently typing on ``topic``, never including ``exclude_user``."""
        users = self._typing.get(topic)
        if not users:
            return []
        now = self._clock()
        for user_id in [u for u, (expires_at, _) in users.items() if expires_at <= now]:
            del users[user_id]
        if not users:
            del self._typing[topic]
            return []
        return [
            {"user_id": user_id, "display_name": display_name}
            for user_id, (_, display_name) in users.items()
            if user_id != exclude_user
        ]
