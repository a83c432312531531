"""Mention notification model."""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskflow.db.base import BaseModel

if TYPE_CHECKING:
    from taskflow.models.user import Profile

MENTION_ENTITY_TYPES = ("comment", "task", "project", "workspace", "calendar_event")
EXCERPT_LENGTH = 200


class Mention(BaseModel):
    """Link from an ``@name`` token in some text to a workspace member."""

    __tablename__ = "mentions"

    workspace_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    mentioned_user_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    mentioner_user_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    entity_type: Mapped[str] = mapped_column(String(30), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), nullable=False, index=True)
    content_excerpt: Mapped[str | None] = mapped_column(Text, nullable=True)
    context_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    mentioner: Mapped["Profile"] = relationship(
        "Profile", foreign_keys=[mentioner_user_id], lazy="joined"
    )

    def __repr__(self) -> str:
        return f"<Mention {self.mentioned_user_id} by {self.mentioner_user_id}>"
