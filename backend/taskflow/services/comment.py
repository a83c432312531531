"""Threaded comments and reactions on tasks, projects and workspaces."""

import re
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Iterable, Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.db.errors import is_missing_relation_error
from taskflow.db.repository import Repository
from taskflow.exceptions import (
    FeatureUnavailableError,
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
)
from taskflow.models.comment import (
    COMMENT_ENTITY_TYPES,
    REACTION_TYPES,
    Comment,
    CommentReaction,
)
from taskflow.models.task import Task
from taskflow.models.workspace import Project
from taskflow.realtime.channels import (
    ChannelHub,
    comment_topic,
    hub as default_hub,
    publish_after_commit,
)
from taskflow.services.comment_tree import build_comment_tree, thread_level_for
from taskflow.services.mention import MentionService
from taskflow.services.workspace import WorkspaceService

logger = structlog.get_logger()

COMMENT_MENTION_PATTERN = re.compile(r"@(\w+)")
UNKNOWN_AUTHOR = "Unknown User"

# Commentable entities stored in this database, by entity type
ENTITY_MODELS = {"task": Task, "project": Project}


def comment_mentions(content: str) -> list[str]:
    """Raw ``@word`` handles stored on the comment row."""
    return COMMENT_MENTION_PATTERN.findall(content)


def summarize_reactions(
    rows: Iterable[tuple[UUID, UUID, str]], user_id: Optional[UUID]
) -> tuple[dict[UUID, dict[str, int]], dict[UUID, str]]:
    """Count reactions per comment and pick out the caller's own.

    ``rows`` are ``(comment_id, user_id, reaction_type)`` triples.
    """
    counts: dict[UUID, dict[str, int]] = {}
    mine: dict[UUID, str] = {}
    for comment_id, reactor_id, reaction_type in rows:
        per_comment = counts.setdefault(comment_id, empty_reaction_counts())
        if reaction_type in per_comment:
            per_comment[reaction_type] += 1
        if user_id is not None and reactor_id == user_id:
            mine[comment_id] = reaction_type
    return counts, mine


def empty_reaction_counts() -> dict[str, int]:
    return {reaction: 0 for reaction in REACTION_TYPES}


def author_summary(comment: Comment) -> dict[str, Any]:
    author = comment.author
    if author is None:
        return {"id": comment.author_id, "display_name": UNKNOWN_AUTHOR, "avatar_url": None}
    return {
        "id": author.id,
        "display_name": author.display_name or author.email or UNKNOWN_AUTHOR,
        "avatar_url": author.avatar_url,
    }


@asynccontextmanager
async def comments_feature() -> AsyncIterator[None]:
    """Translate a missing comments table or column into ``FeatureUnavailableError``."""
    try:
        yield
    except DBAPIError as e:
        if is_missing_relation_error(e):
            logger.warning("comments_feature_unavailable", error=str(e))
            raise FeatureUnavailableError("comments") from e
        raise


class CommentService:
    """Service for comment threads, edits and reactions."""

    def __init__(self, db: AsyncSession, channel_hub: Optional[ChannelHub] = None):
        self.db = db
        self.hub = channel_hub or default_hub
        self.comments = Repository(db, Comment)
        self.reactions = Repository(db, CommentReaction)
        self.workspaces = WorkspaceService(db)
        self.mention_service = MentionService(db, channel_hub=self.hub)

    def _publish(self, comment: Comment, event: str, payload: dict[str, Any], sender: UUID) -> None:
        publish_after_commit(
            self.db,
            self.hub,
            comment_topic(comment.entity_type, comment.entity_id),
            event,
            payload,
            sender_id=str(sender),
            workspace_id=str(comment.workspace_id),
        )

    async def entity_workspace(self, entity_type: str, entity_id: UUID) -> Optional[UUID]:
        """Workspace that owns a commentable entity.

        Calendar events live outside this database, so their owner is
        unknown and None is returned; their comments are scoped by the
        comment row's own workspace.
        """
        if entity_type == "workspace":
            return entity_id
        model = ENTITY_MODELS.get(entity_type)
        if model is None:
            return None
        result = await self.db.execute(select(model.workspace_id).where(model.id == entity_id))
        owner = result.scalar_one_or_none()
        if owner is None:
            raise NotFoundError(entity_type.capitalize())
        return owner

    async def require_entity_in_workspace(
        self, workspace_id: UUID, entity_type: str, entity_id: UUID
    ) -> None:
        owner = await self.entity_workspace(entity_type, entity_id)
        if owner is not None and owner != workspace_id:
            raise NotFoundError(entity_type.capitalize())

    # =========================================================================
    # Reading
    # =========================================================================

    async def _reaction_rows(self, comment_ids: list[UUID]) -> list[tuple[UUID, UUID, str]]:
        """Reaction triples; an unmigrated reactions table yields none."""
        if not comment_ids:
            return []
        try:
            async with self.db.begin_nested():
                result = await self.db.execute(
                    select(
                        CommentReaction.comment_id,
                        CommentReaction.user_id,
                        CommentReaction.reaction_type,
                    ).where(CommentReaction.comment_id.in_(comment_ids))
                )
                return [tuple(row) for row in result.all()]
        except DBAPIError as e:
            if not is_missing_relation_error(e):
                raise
            logger.warning("comment_reactions_unavailable", error=str(e))
            return []

    async def list_comments(
        self,
        workspace_id: UUID,
        entity_type: str,
        entity_id: UUID,
        user_id: Optional[UUID] = None,
    ) -> list[dict[str, Any]]:
        """Threaded, non-deleted comments on an entity, oldest first."""
        async with comments_feature():
            comments = await self.comments.list(
                order_by=(Comment.created_at,),
                workspace_id=workspace_id,
                entity_type=entity_type,
                entity_id=entity_id,
                is_deleted=False,
            )

        counts, mine = summarize_reactions(
            await self._reaction_rows([c.id for c in comments]), user_id
        )
        rows = []
        for comment in comments:
            row = comment.to_dict()
            row["author"] = author_summary(comment)
            row["reactions"] = counts.get(comment.id, empty_reaction_counts())
            row["user_reaction"] = mine.get(comment.id)
            rows.append(row)
        return build_comment_tree(rows)

    async def count_comments(self, workspace_id: UUID, entity_type: str, entity_id: UUID) -> int:
        async with comments_feature():
            return await self.comments.count(
                workspace_id=workspace_id,
                entity_type=entity_type,
                entity_id=entity_id,
                is_deleted=False,
            )

    async def get_comment(self, comment_id: UUID) -> Comment:
        async with comments_feature():
            comment = await self.comments.get(comment_id)
        if comment is None or comment.is_deleted:
            raise NotFoundError("Comment")
        return comment

    # =========================================================================
    # Writing
    # =========================================================================

    async def create_comment(
        self,
        author_id: UUID,
        workspace_id: UUID,
        entity_type: str,
        entity_id: UUID,
        content: str,
        parent_comment_id: Optional[UUID] = None,
    ) -> Comment:
        content = (content or "").strip()
        if not content:
            raise InvalidRequestError("Comment content cannot be empty")
        if entity_type not in COMMENT_ENTITY_TYPES:
            raise InvalidRequestError(f"Invalid entity type: {entity_type}")

        await self.workspaces.require_member(workspace_id, author_id)
        await self.require_entity_in_workspace(workspace_id, entity_type, entity_id)

        parent_level = None
        if parent_comment_id is not None:
            parent = await self.get_comment(parent_comment_id)
            if (
                parent.workspace_id != workspace_id
                or parent.entity_type != entity_type
                or parent.entity_id != entity_id
            ):
                raise InvalidRequestError("Parent comment belongs to a different thread")
            parent_level = parent.thread_level

        async with comments_feature():
            comment = await self.comments.create(
                content=content,
                author_id=author_id,
                workspace_id=workspace_id,
                entity_type=entity_type,
                entity_id=entity_id,
                parent_comment_id=parent_comment_id,
                thread_level=thread_level_for(parent_level),
                mentions=comment_mentions(content),
            )

        await self.mention_service.process_mentions(
            content=content,
            workspace_id=workspace_id,
            entity_type="comment",
            entity_id=comment.id,
            mentioner_id=author_id,
        )
        self._publish(comment, "INSERT", comment.to_dict(), author_id)

        logger.info(
            "comment_created",
            comment_id=str(comment.id),
            entity_type=entity_type,
            entity_id=str(entity_id),
            thread_level=comment.thread_level,
        )
        return comment

    async def update_comment(self, comment_id: UUID, author_id: UUID, content: str) -> Comment:
        content = (content or "").strip()
        if not content:
            raise InvalidRequestError("Comment content cannot be empty")
        comment = await self.get_comment(comment_id)
        if comment.author_id != author_id:
            raise PermissionDeniedError("Only the author can edit this comment")

        async with comments_feature():
            comment = await self.comments.update(
                comment,
                content=content,
                mentions=comment_mentions(content),
                is_edited=True,
                edited_at=datetime.now(timezone.utc),
            )
        self._publish(comment, "UPDATE", comment.to_dict(), author_id)
        logger.info("comment_updated", comment_id=str(comment_id))
        return comment

    async def delete_comment(self, comment_id: UUID, author_id: UUID) -> None:
        """Soft-delete so replies keep their place in the thread."""
        comment = await self.get_comment(comment_id)
        if comment.author_id != author_id:
            raise PermissionDeniedError("Only the author can delete this comment")

        async with comments_feature():
            await self.comments.update(comment, is_deleted=True)
        self._publish(comment, "DELETE", {"id": comment.id}, author_id)
        logger.info("comment_deleted", comment_id=str(comment_id))

    # =========================================================================
    # Reactions
    # =========================================================================

    async def _comment_for_reaction(self, comment_id: UUID, user_id: UUID) -> Comment:
        comment = await self.get_comment(comment_id)
        await self.workspaces.require_member(comment.workspace_id, user_id)
        return comment

    async def add_reaction(self, comment_id: UUID, user_id: UUID, reaction_type: str) -> CommentReaction:
        """Set the caller's reaction, replacing any previous one."""
        if reaction_type not in REACTION_TYPES:
            raise InvalidRequestError(f"Invalid reaction type: {reaction_type}")
        comment = await self._comment_for_reaction(comment_id, user_id)

        async with comments_feature():
            await self.reactions.delete_where(comment_id=comment_id, user_id=user_id)
            reaction = await self.reactions.create(
                comment_id=comment_id, user_id=user_id, reaction_type=reaction_type
            )
        self._publish(
            comment,
            "UPDATE",
            {"id": comment.id, "reaction": reaction_type, "user_id": user_id},
            user_id,
        )
        return reaction

    async def remove_reaction(self, comment_id: UUID, user_id: UUID) -> None:
        comment = await self._comment_for_reaction(comment_id, user_id)
        async with comments_feature():
            removed = await self.reactions.delete_where(comment_id=comment_id, user_id=user_id)
        if removed:
            self._publish(
                comment, "UPDATE", {"id": comment.id, "reaction": None, "user_id": user_id}, user_id
            )
