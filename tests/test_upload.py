"""Tests for the upload orchestrator."""

import asyncio
from io import BytesIO

import pytest
from PIL import Image

from conftest import BOOK_ID, BUCKET, make_image_bytes, seed_captures
from librophoto.errors import CompressionError, MetadataStoreError, ObjectStoreError
from librophoto.gallery.store import OptimisticCaptureStore
from librophoto.gallery.upload import UploadOrchestrator
from librophoto.models import Capture, ImageInput, PendingCapture
from librophoto.storage import key_from_public_url


@pytest.fixture
def store() -> OptimisticCaptureStore:
    return OptimisticCaptureStore(BOOK_ID)


@pytest.fixture
def orchestrator(store, flaky_objects, flaky_metadata, profile) -> UploadOrchestrator:
    return UploadOrchestrator(store, flaky_objects, flaky_metadata, profile)


@pytest.fixture
def photo() -> ImageInput:
    return ImageInput(make_image_bytes(1200, 900), content_type="image/jpeg", filename="page.jpg")


async def _loaded(store, session_factory) -> tuple:
    store.load(await seed_captures(session_factory, ["c1", "c2"]))
    return store.list()


class TestSuccessfulUpload:
    """Both writes succeed and the pending entry is reconciled."""

    @pytest.mark.asyncio
    async def test_list_grows_by_one_with_persisted_head(self, orchestrator, store, session_factory, photo):
        before = await _loaded(store, session_factory)

        capture = await orchestrator.upload(photo, BOOK_ID)

        entries = store.list()
        assert len(entries) == len(before) + 1
        assert entries[0] == capture
        assert isinstance(entries[0], Capture)
        assert entries[0].image_url.startswith("https://")
        assert entries[1:] == before

    @pytest.mark.asyncio
    async def test_object_and_record_written(self, orchestrator, metadata, object_store, photo):
        capture = await orchestrator.upload(photo, BOOK_ID)

        key = key_from_public_url(capture.image_url, BUCKET)
        assert key == capture.storage_key
        assert key.startswith(f"{BOOK_ID}/") and key.endswith(".jpg")
        stored = Image.open(BytesIO(await object_store.retrieve(key)))
        assert stored.format == "JPEG"
        assert [c.id for c in await metadata.list_captures(BOOK_ID)] == [capture.id]

    @pytest.mark.asyncio
    async def test_large_photo_stored_within_bounds(self, orchestrator, object_store, profile):
        capture = await orchestrator.upload(ImageInput(make_image_bytes(5000, 4000)), BOOK_ID)

        data = await object_store.retrieve(capture.storage_key)
        assert len(data) <= profile.max_bytes
        assert max(Image.open(BytesIO(data)).size) <= 1600

    @pytest.mark.asyncio
    async def test_object_write_precedes_metadata_insert(self, orchestrator, calls, photo):
        await orchestrator.upload(photo, BOOK_ID)

        assert [name for name, _ in calls] == ["put", "public_url", "insert_capture"]

    @pytest.mark.asyncio
    async def test_pending_entry_visible_during_write(self, orchestrator, store, flaky_objects, photo):
        seen = []
        original_put = flaky_objects.put

        async def observing_put(key, data, content_type):
            seen.extend(store.list())
            await original_put(key, data, content_type)

        flaky_objects.put = observing_put

        capture = await orchestrator.upload(photo, BOOK_ID)

        assert len(seen) == 1
        assert isinstance(seen[0], PendingCapture)
        assert seen[0].image_url.startswith("preview://")
        assert store.list() == (capture,)
        assert store.preview(seen[0].id) is None


class TestFailedUpload:
    """Failures after the pending entry was registered roll it back."""

    @pytest.mark.asyncio
    async def test_compression_failure_touches_nothing(self, orchestrator, store, session_factory, calls):
        before = await _loaded(store, session_factory)

        with pytest.raises(CompressionError):
            await orchestrator.upload(ImageInput(b"garbage", content_type="image/jpeg"), BOOK_ID)

        assert store.list() == before
        assert calls == []

    @pytest.mark.asyncio
    async def test_object_write_failure_rolls_back(self, orchestrator, store, session_factory, flaky_objects, calls, photo):
        before = await _loaded(store, session_factory)
        flaky_objects.fail_put = True

        with pytest.raises(ObjectStoreError):
            await orchestrator.upload(photo, BOOK_ID)

        assert store.list() == before
        assert "insert_capture" not in [name for name, _ in calls]

    @pytest.mark.asyncio
    async def test_url_failure_rolls_back(self, orchestrator, store, session_factory, flaky_objects, metadata, photo):
        before = await _loaded(store, session_factory)
        flaky_objects.fail_public_url = True

        with pytest.raises(ObjectStoreError):
            await orchestrator.upload(photo, BOOK_ID)

        assert store.list() == before
        assert len(await metadata.list_captures(BOOK_ID)) == 2

    @pytest.mark.asyncio
    async def test_metadata_failure_rolls_back_and_orphans_blob(
        self, orchestrator, store, session_factory, flaky_metadata, object_store, calls, photo
    ):
        before = await _loaded(store, session_factory)
        flaky_metadata.fail_insert = True

        with pytest.raises(MetadataStoreError):
            await orchestrator.upload(photo, BOOK_ID)

        assert store.list() == before
        # The blob stays behind; orphans are not reconciled
        put_key = next(arg for name, arg in calls if name == "put")
        assert await object_store.retrieve(put_key)

    @pytest.mark.asyncio
    async def test_cancellation_rolls_back(self, orchestrator, store, flaky_objects, photo):
        started = asyncio.Event()

        async def hanging_put(key, data, content_type):
            started.set()
            await asyncio.Event().wait()

        flaky_objects.put = hanging_put

        task = asyncio.create_task(orchestrator.upload(photo, BOOK_ID))
        await started.wait()
        assert len(store) == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert store.list() == ()


class TestConcurrentUploads:
    @pytest.mark.asyncio
    async def test_overlapping_uploads_each_reconcile(self, orchestrator, store, metadata, photo):
        results = await asyncio.gather(
            orchestrator.upload(photo, BOOK_ID),
            orchestrator.upload(photo, BOOK_ID),
        )

        assert {c.id for c in store.list()} == {c.id for c in results}
        assert all(isinstance(c, Capture) for c in store.list())
        assert len(await metadata.list_captures(BOOK_ID)) == 2


@pytest.mark.asyncio
async def test_upload_into_other_book_is_rejected(orchestrator, store, session_factory, calls, photo):
    before = await _loaded(store, session_factory)

    with pytest.raises(ValueError):
        await orchestrator.upload(photo, "B2")

    assert store.list() == before
    assert calls == []
