"""User profile model."""

import re

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from taskflow.db.base import BaseModel


class Profile(BaseModel):
    """Public profile of an authenticated user.

    The id is the subject of the identity provider's JWT, so rows are
    created with an explicit id rather than a generated one.
    """

    __tablename__ = "profiles"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @property
    def username(self) -> str:
        """Mention handle derived from the display name."""
        return re.sub(r"\s+", "_", (self.display_name or "").lower())

    def __repr__(self) -> str:
        return f"<Profile {self.email}>"
