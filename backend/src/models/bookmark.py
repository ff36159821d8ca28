"""Bookmark model for storing user bookmarks."""
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, String, Text, UniqueConstraint, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin
from models.tag import bookmark_tags

if TYPE_CHECKING:
    from models.tag import Tag
    from models.user import User

DEFAULT_FOLDER = "Unsorted"


class Bookmark(Base, TimestampMixin):
    """Bookmark model - stores URLs with metadata, folder, visibility and tags."""

    __tablename__ = "bookmarks"
    __table_args__ = (
        # URL uniqueness is scoped to the owner, not global
        UniqueConstraint("user_id", "url", name="uq_bookmarks_user_id_url"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    favicon: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    folder: Mapped[str] = mapped_column(
        String(100), nullable=False, default=DEFAULT_FOLDER, server_default=DEFAULT_FOLDER,
        index=True,
    )
    is_public: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false(), index=True,
    )

    user: Mapped["User"] = relationship(back_populates="bookmarks")
    tag_objects: Mapped[list["Tag"]] = relationship(
        secondary=bookmark_tags,
        back_populates="bookmarks",
        order_by="Tag.name",
        passive_deletes=True,
    )
