"""Realtime topics and typing indicators."""

from taskflow.realtime.channels import (
    ChannelHub,
    ChannelMessage,
    Subscription,
    comment_topic,
    discard_uncommitted,
    hub,
    mention_topic,
    parse_topic,
    publish_after_commit,
    publish_committed,
)
from taskflow.realtime.presence import TypingTracker

__all__ = [
    "ChannelHub",
    "ChannelMessage",
    "Subscription",
    "TypingTracker",
    "comment_topic",
    "discard_uncommitted",
    "hub",
    "mention_topic",
    "parse_topic",
    "publish_after_commit",
    "publish_committed",
]
