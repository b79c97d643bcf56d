"""SQLAlchemy 2.0 ORM models for the librophoto metadata store."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from librophoto.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookRecord(Base):
    """A named collection of captures.

    Created and deleted outside the capture lifecycle; only read here.
    """

    __tablename__ = "books"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<BookRecord(id={self.id}, title={self.title!r})>"


class CaptureRecord(Base):
    """Photographed page metadata.

    The image bytes live in the object store under storage_key; image_url
    is the public URL resolved for that key at upload time.
    """

    __tablename__ = "captures"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    book_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("books.id", ondelete="CASCADE"), nullable=False
    )
    image_url: Mapped[str] = mapped_column(Text, nullable=False)

    # Null for records written before keys were stored explicitly
    storage_key: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Microsecond precision keeps newest-first ordering stable for rapid uploads
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_captures_book_id_created_at", "book_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<CaptureRecord(id={self.id}, book_id={self.book_id})>"
