"""SQLAlchemy table mappings for users and documents."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from .models import ItemType, Role


def new_id() -> str:
    """Generate a new row id."""
    return uuid.uuid4().hex


def utc_now() -> datetime:
    """Return the current time as a tz-aware UTC datetime."""
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Store datetimes in UTC and always hand back tz-aware values.

    Naive datetimes are rejected on write; SQLite drops tzinfo on storage so
    values read back are re-tagged as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect: Dialect) -> Any:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("naive datetime is not allowed; timezone-aware required")
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: Optional[datetime], dialect: Dialect) -> Any:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for docvault tables."""


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, onupdate=utc_now, nullable=False
    )


class UserRow(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    external_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    role: Mapped[int] = mapped_column(Integer, default=int(Role.USER), nullable=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "external_id": self.external_id,
            "role": self.role,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class DocumentRow(TimestampMixin, Base):
    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    parent_id: Mapped[Optional[str]] = mapped_column(ForeignKey("documents.id"), nullable=True)
    item_type: Mapped[ItemType] = mapped_column(
        Enum(ItemType, name="item_type", native_enum=False, length=16),
        default=ItemType.FILE,
        nullable=False,
    )
    path: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    extracted_text: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    collection_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "item_type <> 'FOLDER' OR (status IS NULL AND size = 0)",
            name="ck_documents_folder_shape",
        ),
        Index("ix_documents_user_parent_type", "user_id", "parent_id", "item_type"),
        Index("ix_documents_parent", "parent_id"),
        Index("ix_documents_collection", "collection_id"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "parent_id": self.parent_id,
            "item_type": self.item_type,
            "path": self.path,
            "name": self.name,
            "type": self.type,
            "size": self.size,
            "status": self.status,
            "extracted_text": self.extracted_text,
            "collection_id": self.collection_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


__all__ = ["Base", "UserRow", "DocumentRow", "UTCDateTime", "new_id", "utc_now"]
