"""Threaded comment and reaction models."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskflow.db.base import Base, BaseModel, CreatedAtMixin, UUIDMixin

if TYPE_CHECKING:
    from taskflow.models.user import Profile

COMMENT_ENTITY_TYPES = ("task", "project", "workspace", "calendar_event")
REACTION_TYPES = ("like", "love", "laugh", "thumbs_up", "thumbs_down", "confused", "heart")
MAX_THREAD_LEVEL = 5


class Comment(BaseModel):
    """Comment attached to any commentable entity, optionally a reply."""

    __tablename__ = "comments"
    __table_args__ = (
        CheckConstraint(
            f"thread_level >= 0 AND thread_level <= {MAX_THREAD_LEVEL}",
            name="ck_comment_thread_level",
        ),
    )

    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    workspace_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Polymorphic target: task, project, workspace, calendar_event
    entity_type: Mapped[str] = mapped_column(String(30), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), nullable=False, index=True)

    # Threading; the stored column is parent_id
    parent_comment_id: Mapped[UUID | None] = mapped_column(
        "parent_id",
        PGUUID(as_uuid=True),
        ForeignKey("comments.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    thread_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    edited_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    mentions: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)

    author: Mapped["Profile"] = relationship("Profile", lazy="joined")

    def __repr__(self) -> str:
        return f"<Comment {self.id} on {self.entity_type}:{self.entity_id}>"


class CommentReaction(Base, UUIDMixin, CreatedAtMixin):
    """A user's single reaction to a comment."""

    __tablename__ = "comment_reactions"
    __table_args__ = (
        UniqueConstraint("comment_id", "user_id", name="uq_comment_reaction_user"),
    )

    comment_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("comments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    reaction_type: Mapped[str] = mapped_column(String(20), nullable=False)

    def __repr__(self) -> str:
        return f"<CommentReaction {self.reaction_type} by user={self.user_id} on comment={self.comment_id}>"
