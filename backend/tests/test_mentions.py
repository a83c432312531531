"""Tests for @mention extraction, member matching and mention rows."""

from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from taskflow.realtime.channels import ChannelHub, mention_topic, publish_committed
from taskflow.services.mention import (
    MentionService,
    extract_mentions,
    handle_variants,
    match_members,
)

from tests.factories import make_member


class TestExtractMentions:
    def test_finds_handles_in_order(self):
        assert extract_mentions("hey @alice and @bob.smith, see @carol-d") == [
            "alice",
            "bob.smith",
            "carol-d",
        ]

    def test_lowercases_and_deduplicates(self):
        assert extract_mentions("@Alice @alice @ALICE @bob") == ["alice", "bob"]

    def test_empty_inputs(self):
        assert extract_mentions("") == []
        assert extract_mentions(None) == []
        assert extract_mentions("no handles here, just an email@") == []


class TestHandleVariants:
    def test_spaces_become_underscore_or_vanish(self):
        assert handle_variants("Jane Doe") == {"jane doe", "jane_doe", "janedoe"}

    def test_missing_name(self):
        assert handle_variants(None) == set()
        assert handle_variants("") == set()


class TestMatchMembers:
    def test_matches_any_variant(self):
        jane = make_member(uuid4(), "Jane Doe")
        john = make_member(uuid4(), "John")
        assert match_members(["janedoe"], [jane, john]) == [jane]
        assert match_members(["jane_doe", "john"], [jane, john]) == [jane, john]

    def test_excludes_mentioner(self):
        author_id = uuid4()
        author = make_member(author_id, "Me")
        assert match_members(["me"], [author], exclude_user_id=author_id) == []

    def test_each_member_once(self):
        user_id = uuid4()
        member = make_member(user_id, "Sam")
        duplicate = make_member(user_id, "Sam")
        assert match_members(["sam"], [member, duplicate]) == [member]

    def test_skips_members_without_profile(self):
        ghost = SimpleNamespace(user_id=uuid4(), user=None)
        assert match_members(["ghost"], [ghost]) == []


class TestProcessMentions:
    @pytest.mark.asyncio
    async def test_creates_rows_and_publishes_after_commit(self, mock_db, workspace_id):
        channel_hub = ChannelHub()
        subscription = channel_hub.subscribe(mention_topic(workspace_id))
        author_id = uuid4()
        jane = make_member(uuid4(), "Jane Doe")
        service = MentionService(mock_db, channel_hub=channel_hub)
        service.members.list = AsyncMock(return_value=[jane, make_member(author_id, "Author")])

        created_row = SimpleNamespace(to_dict=lambda: {"id": "m1"})
        service.mentions.create = AsyncMock(return_value=created_row)

        content = "@jane_doe please review " + "x" * 300
        result = await service.process_mentions(
            content=content,
            workspace_id=workspace_id,
            entity_type="comment",
            entity_id=uuid4(),
            mentioner_id=author_id,
        )

        assert result == [created_row]
        kwargs = service.mentions.create.call_args.kwargs
        assert kwargs["mentioned_user_id"] == jane.user_id
        assert kwargs["mentioner_user_id"] == author_id
        assert kwargs["content_excerpt"] == content[:200]
        assert kwargs["is_read"] is False

        assert subscription._queue.empty()
        assert publish_committed(mock_db) == 1

        message = await subscription.get()
        assert message.event == "INSERT"
        assert message.payload == {"id": "m1"}
        assert message.workspace_id == str(workspace_id)

    @pytest.mark.asyncio
    async def test_no_handles_skips_lookup(self, mock_db, workspace_id):
        service = MentionService(mock_db, channel_hub=ChannelHub())
        service.members.list = AsyncMock()
        assert await service.process_mentions("plain text", workspace_id, "task", uuid4(), uuid4()) == []
        service.members.list.assert_not_awaited()
