from __future__ import annotations

from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from linkshelf.database import Base
from linkshelf.slug import SLUG_MAX_LENGTH


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    # Relationships: lazy="noload" enforces explicit eager loading in services.
    # The user owns both collections: removing an item from them deletes the row.
    categories: Mapped[List["Category"]] = relationship(
        "Category",
        back_populates="user",
        lazy="noload",
        cascade="all, delete-orphan",
        order_by="Category.id",
    )
    contents: Mapped[List["Content"]] = relationship(
        "Content",
        back_populates="user",
        lazy="noload",
        cascade="all, delete-orphan",
        order_by="Content.id",
    )


# ---------------------------------------------------------------------------
# Category
# ---------------------------------------------------------------------------
class Category(Base):
    __tablename__ = "categories"

    __table_args__ = (
        # Siblings may not share a slug.  NULL parent_id values are distinct in
        # a plain unique constraint, so top-level categories get a partial index.
        UniqueConstraint("user_id", "slug", "parent_id", name="uq_categories_user_slug_parent"),
        Index(
            "uq_categories_user_slug_root",
            "user_id",
            "slug",
            unique=True,
            postgresql_where=text("parent_id IS NULL"),
            sqlite_where=text("parent_id IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(SLUG_MAX_LENGTH), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    # Foreign keys
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=True, index=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="categories", lazy="noload")
    parent: Mapped[Optional["Category"]] = relationship(
        "Category", remote_side=[id], lazy="noload"
    )


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------
class Content(Base):
    __tablename__ = "contents"

    __table_args__ = (
        # One link per category per user; "no category" counts as a category.
        UniqueConstraint("user_id", "link", "category_id", name="uq_contents_user_link_category"),
        Index(
            "uq_contents_user_link_uncategorized",
            "user_id",
            "link",
            unique=True,
            postgresql_where=text("category_id IS NULL"),
            sqlite_where=text("category_id IS NULL"),
        ),
        # Reminder count / upcoming deadlines
        Index("ix_contents_user_id_deadline", "user_id", "deadline"),
        # Favorites listing
        Index("ix_contents_user_id_favorite", "user_id", "favorite"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    link: Mapped[str] = mapped_column(String(2048), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cover_image: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    deadline: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    favorite: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False, index=True
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    # Foreign keys
    category_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Relationships: all lazy="noload"; use selectinload in services
    user: Mapped["User"] = relationship("User", back_populates="contents", lazy="noload")
    category: Mapped[Optional["Category"]] = relationship("Category", lazy="noload")
