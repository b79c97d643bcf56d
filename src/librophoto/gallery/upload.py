"""Upload orchestration for new captures.

A capture becomes durable in two writes: the compressed image goes to the
object store, then a metadata record pointing at its public URL goes to
the metadata store. The gallery shows a pending entry for the whole
duration and either reconciles it with the stored record or rolls it back.
"""

from librophoto.compression import CompressionProfile, compress_image
from librophoto.db.repository import MetadataStore
from librophoto.gallery.store import OptimisticCaptureStore
from librophoto.logging import (
    get_logger,
    log_capture_reconciled,
    log_capture_rolled_back,
    log_orphaned_blob,
)
from librophoto.models import Capture, ImageInput, LocalPreview
from librophoto.storage.object_store import ObjectStore, build_object_key

logger = get_logger(__name__)


class UploadOrchestrator:
    """Drives compress -> pending entry -> object write -> metadata insert -> reconcile.

    Concurrent upload() calls are not serialized: each inserts its own
    pending entry at the head when its compression finishes, so entries of
    overlapping uploads may appear in either order.
    """

    def __init__(
        self,
        store: OptimisticCaptureStore,
        object_store: ObjectStore,
        metadata: MetadataStore,
        profile: CompressionProfile,
    ) -> None:
        self.store = store
        self.object_store = object_store
        self.metadata = metadata
        self.profile = profile

    async def upload(self, image: ImageInput, book_id: str) -> Capture:
        """Upload one image into a book.

        Args:
            image: Image bytes plus MIME hint
            book_id: Book the capture belongs to

        Returns:
            The persisted capture that replaced the pending entry.

        Raises:
            CompressionError: Input unreadable; the list was not touched.
            ObjectStoreError: Object write or URL resolution failed; the
                pending entry was rolled back.
            MetadataStoreError: Record insert failed; the pending entry was
                rolled back and the written object is left orphaned.
            ValueError: book_id is not the book this store lists.
        """
        if book_id != self.store.book_id:
            raise ValueError(f"Store holds book {self.store.book_id}, not {book_id}")

        log = logger.bind(book_id=book_id, filename=image.filename, content_type=image.content_type)
        log.info("upload_started", input_bytes=len(image.data))

        compressed = await compress_image(image, self.profile)

        temp_id = self.store.insert_pending(
            LocalPreview(data=compressed.data, content_type=compressed.content_type)
        )
        key = build_object_key(book_id, compressed.extension)
        log = log.bind(temp_id=temp_id, storage_key=key)

        stage = "object_write"
        try:
            await self.object_store.put(key, compressed.data, compressed.content_type)

            stage = "public_url"
            image_url = await self.object_store.public_url(key)

            stage = "metadata_insert"
            persisted = await self.metadata.insert_capture(
                book_id=book_id, image_url=image_url, storage_key=key
            )
        except BaseException as e:
            # Cancellation rolls back too; the entry must never be left pending
            self.store.rollback(temp_id)
            log_capture_rolled_back(log, temp_id, stage, str(e) or type(e).__name__)
            if stage != "object_write":
                log_orphaned_blob(log, key, reason=f"{stage}_failed")
            raise

        self.store.reconcile(temp_id, persisted)
        log_capture_reconciled(log, temp_id, persisted.id, key)
        return persisted
