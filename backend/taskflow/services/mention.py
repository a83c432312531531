"""@mention extraction, notification rows and lookups."""

import re
from typing import Any, Iterable, Optional, Sequence
from uuid import UUID

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.db.repository import Repository
from taskflow.exceptions import NotFoundError
from taskflow.models.mention import EXCERPT_LENGTH, Mention
from taskflow.models.user import Profile
from taskflow.models.workspace import WorkspaceMember
from taskflow.realtime.channels import (
    ChannelHub,
    hub as default_hub,
    mention_topic,
    publish_after_commit,
)

logger = structlog.get_logger()

MENTION_PATTERN = re.compile(r"@([a-zA-Z0-9_.-]+)")
MENTION_LIST_LIMIT = 50
USER_SEARCH_LIMIT = 10


def extract_mentions(text: Optional[str]) -> list[str]:
    """Lowercased, de-duplicated handles in order of first appearance."""
    seen: dict[str, None] = {}
    for match in MENTION_PATTERN.finditer(text or ""):
        seen.setdefault(match.group(1).lower(), None)
    return list(seen)


def handle_variants(display_name: Optional[str]) -> set[str]:
    """Handles a display name answers to: as-is, underscored, squashed."""
    name = (display_name or "").lower()
    if not name:
        return set()
    return {name, re.sub(r"\s+", "_", name), re.sub(r"\s+", "", name)}


def match_members(
    handles: Iterable[str],
    members: Sequence[Any],
    exclude_user_id: Optional[UUID] = None,
) -> list[Any]:
    """Members whose display name matches any handle, excluding the mentioner.

    ``members`` are objects with ``user_id`` and ``user.display_name``.
    Each member is returned at most once.
    """
    wanted = set(handles)
    matched: list[Any] = []
    seen: set[UUID] = set()
    for member in members:
        if member.user_id == exclude_user_id or member.user_id in seen:
            continue
        user = getattr(member, "user", None)
        if user is None:
            continue
        if handle_variants(user.display_name) & wanted:
            matched.append(member)
            seen.add(member.user_id)
    return matched


def profile_summary(profile: Optional[Profile]) -> Optional[dict[str, Any]]:
    if profile is None:
        return None
    return {
        "id": profile.id,
        "display_name": profile.display_name,
        "email": profile.email,
        "avatar_url": profile.avatar_url,
        "username": profile.username or None,
    }


class MentionService:
    """Service for mention rows and the member lookups behind them."""

    def __init__(self, db: AsyncSession, channel_hub: Optional[ChannelHub] = None):
        self.db = db
        self.hub = channel_hub or default_hub
        self.mentions = Repository(db, Mention)
        self.members = Repository(db, WorkspaceMember)

    async def process_mentions(
        self,
        content: str,
        workspace_id: UUID,
        entity_type: str,
        entity_id: UUID,
        mentioner_id: UUID,
        context_url: Optional[str] = None,
    ) -> list[Mention]:
        """Insert a mention row for every member named in ``content``."""
        handles = extract_mentions(content)
        if not handles:
            return []

        members = await self.members.list(workspace_id=workspace_id, status="active")
        created: list[Mention] = []
        for member in match_members(handles, members, exclude_user_id=mentioner_id):
            mention = await self.mentions.create(
                workspace_id=workspace_id,
                mentioned_user_id=member.user_id,
                mentioner_user_id=mentioner_id,
                entity_type=entity_type,
                entity_id=entity_id,
                content_excerpt=content[:EXCERPT_LENGTH],
                context_url=context_url,
                is_read=False,
            )
            created.append(mention)
            publish_after_commit(
                self.db,
                self.hub,
                mention_topic(workspace_id),
                "INSERT",
                mention.to_dict(),
                sender_id=str(mentioner_id),
                workspace_id=str(workspace_id),
            )

        logger.info(
            "mentions_processed",
            workspace_id=str(workspace_id),
            entity_type=entity_type,
            entity_id=str(entity_id),
            handles=len(handles),
            created=len(created),
        )
        return created

    async def list_mentions(
        self, workspace_id: UUID, user_id: UUID, unread_only: bool = False
    ) -> list[Mention]:
        filters: dict[str, Any] = {"workspace_id": workspace_id, "mentioned_user_id": user_id}
        if unread_only:
            filters["is_read"] = False
        return await self.mentions.list(
            order_by=(Mention.created_at.desc(),), limit=MENTION_LIST_LIMIT, **filters
        )

    async def unread_count(self, workspace_id: UUID, user_id: UUID) -> int:
        return await self.mentions.count(
            workspace_id=workspace_id, mentioned_user_id=user_id, is_read=False
        )

    async def _own_mention(self, mention_id: UUID, user_id: UUID) -> Mention:
        mention = await self.mentions.get_by(id=mention_id, mentioned_user_id=user_id)
        if mention is None:
            raise NotFoundError("Mention")
        return mention

    async def mark_read(self, mention_id: UUID, user_id: UUID) -> Mention:
        mention = await self._own_mention(mention_id, user_id)
        return await self.mentions.update(mention, is_read=True)

    async def mark_all_read(self, workspace_id: UUID, user_id: UUID) -> int:
        result = await self.db.execute(
            update(Mention)
            .where(
                Mention.workspace_id == workspace_id,
                Mention.mentioned_user_id == user_id,
                Mention.is_read.is_(False),
            )
            .values(is_read=True, updated_at=func.now())
        )
        return result.rowcount or 0

    async def delete_mention(self, mention_id: UUID, user_id: UUID) -> None:
        mention = await self._own_mention(mention_id, user_id)
        await self.mentions.delete(mention)

    async def search_users(self, workspace_id: UUID, query: str) -> list[dict[str, Any]]:
        """Active members whose display name contains ``query``."""
        result = await self.db.execute(
            select(Profile)
            .join(WorkspaceMember, WorkspaceMember.user_id == Profile.id)
            .where(
                WorkspaceMember.workspace_id == workspace_id,
                WorkspaceMember.status == "active",
                Profile.display_name.ilike(f"%{query}%"),
            )
            .order_by(Profile.display_name)
            .limit(USER_SEARCH_LIMIT)
        )
        return [profile_summary(profile) for profile in result.scalars().all()]

    async def mentionable_members(self, workspace_id: UUID) -> list[dict[str, Any]]:
        members = await self.members.list(workspace_id=workspace_id, status="active")
        return [profile_summary(member.user) for member in members if member.user is not None]
