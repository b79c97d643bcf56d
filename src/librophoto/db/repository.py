"""Metadata store for books and captures.

Every operation opens its own session, so one failed call never leaves a
half-finished transaction behind for the next. SQLAlchemy failures are
re-raised as MetadataStoreError.
"""

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from librophoto.db.models import BookRecord, CaptureRecord
from librophoto.errors import MetadataStoreError
from librophoto.logging import get_logger
from librophoto.models import Book, Capture

logger = get_logger(__name__)


def _to_book(record: BookRecord) -> Book:
    return Book(
        id=record.id,
        title=record.title,
        description=record.description,
        created_at=record.created_at,
    )


def _to_capture(record: CaptureRecord) -> Capture:
    return Capture(
        id=record.id,
        book_id=record.book_id,
        image_url=record.image_url,
        created_at=record.created_at,
        storage_key=record.storage_key,
    )


class MetadataStore:
    """Repository for the books and captures tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_book(self, book_id: str) -> Book | None:
        """Get a book by ID."""
        try:
            async with self.session_factory() as session:
                record = await session.get(BookRecord, book_id)
        except SQLAlchemyError as e:
            logger.error("book_select_failed", book_id=book_id, error=str(e))
            raise MetadataStoreError(f"Failed to load book {book_id}") from e
        return _to_book(record) if record else None

    async def list_captures(self, book_id: str) -> list[Capture]:
        """List a book's captures, newest first."""
        query = (
            select(CaptureRecord)
            .where(CaptureRecord.book_id == book_id)
            .order_by(CaptureRecord.created_at.desc())
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                records = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("capture_select_failed", book_id=book_id, error=str(e))
            raise MetadataStoreError(f"Failed to list captures of book {book_id}") from e
        return [_to_capture(r) for r in records]

    async def insert_capture(
        self,
        book_id: str,
        image_url: str,
        storage_key: str | None = None,
    ) -> Capture:
        """Insert a capture record and return it with its assigned id and timestamp."""
        record = CaptureRecord(book_id=book_id, image_url=image_url, storage_key=storage_key)
        try:
            async with self.session_factory() as session:
                session.add(record)
                await session.commit()
                await session.refresh(record)
        except SQLAlchemyError as e:
            logger.error("capture_insert_failed", book_id=book_id, error=str(e))
            raise MetadataStoreError(f"Failed to insert capture for book {book_id}") from e
        return _to_capture(record)

    async def delete_capture(self, capture_id: str) -> bool:
        """Delete a capture record.

        Returns:
            True if a record was deleted, False if none matched.
        """
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    delete(CaptureRecord).where(CaptureRecord.id == capture_id)
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("capture_delete_failed", capture_id=capture_id, error=str(e))
            raise MetadataStoreError(f"Failed to delete capture {capture_id}") from e
        return result.rowcount > 0
