"""Shared fixtures: temporary SQLite metadata store, filesystem object store,
generated images and failure-injecting wrappers around both backends."""

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from io import BytesIO

import pytest
import pytest_asyncio
from PIL import Image

from librophoto.compression import CompressionProfile
from librophoto.db import BookRecord, CaptureRecord, MetadataStore
from librophoto.db.session import create_engine, create_session_factory, init_models
from librophoto.errors import MetadataStoreError, ObjectStoreError
from librophoto.models import Capture
from librophoto.storage import FileObjectStore

BOOK_ID = "B1"
BUCKET = "captures"
PUBLIC_BASE_URL = "https://example.test/storage/v1/object/public"


def make_image_bytes(width: int, height: int, fmt: str = "JPEG", mode: str = "RGB") -> bytes:
    """Encode a gradient image so compression has real detail to work on."""
    gradient = Image.linear_gradient("L").resize((width, height))
    if mode == "RGBA":
        img = Image.merge("RGBA", (gradient, gradient.transpose(Image.Transpose.FLIP_LEFT_RIGHT), gradient, gradient))
    else:
        img = Image.merge("RGB", (gradient, gradient.transpose(Image.Transpose.FLIP_TOP_BOTTOM), gradient))
    buffer = BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def profile() -> CompressionProfile:
    return CompressionProfile(max_bytes=734_003, max_dimension_px=1600)


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'librophoto.db'}")
    await init_models(engine)
    factory = create_session_factory(engine)
    async with factory() as session:
        session.add(BookRecord(id=BOOK_ID, title="Les Misérables", description=None))
        await session.commit()
    yield factory
    await engine.dispose()


@pytest.fixture
def metadata(session_factory) -> MetadataStore:
    return MetadataStore(session_factory)


@pytest.fixture
def object_store(tmp_path) -> FileObjectStore:
    return FileObjectStore(tmp_path / "objects", BUCKET, PUBLIC_BASE_URL)


async def seed_captures(session_factory, ids: Sequence[str], book_id: str = BOOK_ID) -> list[Capture]:
    """Insert captures oldest first; returns them newest first.

    Each capture gets a matching object key but no stored object.
    """
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    async with session_factory() as session:
        for offset, capture_id in enumerate(ids):
            key = f"{book_id}/{capture_id}.jpg"
            session.add(
                CaptureRecord(
                    id=capture_id,
                    book_id=book_id,
                    image_url=f"{PUBLIC_BASE_URL}/{BUCKET}/{key}",
                    storage_key=key,
                    created_at=base + timedelta(minutes=offset),
                )
            )
        await session.commit()
    return await MetadataStore(session_factory).list_captures(book_id)


class CallLog(list):
    """Ordered record of backend calls shared by the flaky wrappers."""


class FlakyObjectStore:
    """Wraps an object store, recording calls and failing on demand."""

    def __init__(self, inner: FileObjectStore, calls: CallLog | None = None) -> None:
        self.inner = inner
        self.calls = calls if calls is not None else CallLog()
        self.fail_put = False
        self.fail_public_url = False
        self.fail_remove = False

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        self.calls.append(("put", key))
        if self.fail_put:
            raise ObjectStoreError("simulated write failure")
        await self.inner.put(key, data, content_type)

    async def public_url(self, key: str) -> str:
        self.calls.append(("public_url", key))
        if self.fail_public_url:
            raise ObjectStoreError("simulated url failure")
        return await self.inner.public_url(key)

    async def remove(self, keys: Sequence[str]) -> None:
        self.calls.append(("remove", tuple(keys)))
        if self.fail_remove:
            raise ObjectStoreError("simulated remove failure")
        await self.inner.remove(keys)

    async def retrieve(self, key: str) -> bytes:
        return await self.inner.retrieve(key)


class FlakyMetadataStore:
    """Wraps a metadata store, recording calls and failing on demand."""

    def __init__(self, inner: MetadataStore, calls: CallLog | None = None) -> None:
        self.inner = inner
        self.calls = calls if calls is not None else CallLog()
        self.fail_insert = False
        self.fail_delete = False

    async def get_book(self, book_id: str):
        return await self.inner.get_book(book_id)

    async def list_captures(self, book_id: str):
        return await self.inner.list_captures(book_id)

    async def insert_capture(self, book_id: str, image_url: str, storage_key: str | None = None):
        self.calls.append(("insert_capture", image_url))
        if self.fail_insert:
            raise MetadataStoreError("simulated insert failure")
        return await self.inner.insert_capture(book_id, image_url, storage_key)

    async def delete_capture(self, capture_id: str) -> bool:
        self.calls.append(("delete_capture", capture_id))
        if self.fail_delete:
            raise MetadataStoreError("simulated delete failure")
        return await self.inner.delete_capture(capture_id)


@pytest.fixture
def calls() -> CallLog:
    return CallLog()


@pytest.fixture
def flaky_objects(object_store, calls) -> FlakyObjectStore:
    return FlakyObjectStore(object_store, calls)


@pytest.fixture
def flaky_metadata(metadata, calls) -> FlakyMetadataStore:
    return FlakyMetadataStore(metadata, calls)
