"""Capture deletion across the metadata store and the object store."""

from dataclasses import dataclass

from librophoto.db.repository import MetadataStore
from librophoto.errors import CaptureStillUploadingError, ObjectStoreError
from librophoto.logging import get_logger, log_capture_deleted
from librophoto.models import CaptureEntry, PendingCapture
from librophoto.storage.object_store import ObjectStore, key_from_public_url

logger = get_logger(__name__)


@dataclass
class DeletionResult:
    """Outcome of a capture deletion.

    The deletion succeeded once the metadata record is gone; blob removal is
    best-effort and reported separately.
    """

    capture_id: str
    record_deleted: bool
    blob_removed: bool = False
    storage_key: str | None = None
    error: str | None = None


class DeletionCoordinator:
    """Deletes the metadata record first, then the backing object."""

    def __init__(self, object_store: ObjectStore, metadata: MetadataStore, bucket: str) -> None:
        self.object_store = object_store
        self.metadata = metadata
        self.bucket = bucket

    def storage_key_for(self, capture: CaptureEntry) -> str | None:
        """Object key of a capture: the stored key, else parsed from its URL."""
        if getattr(capture, "storage_key", None):
            return capture.storage_key
        return key_from_public_url(capture.image_url, self.bucket)

    async def delete(self, capture: CaptureEntry) -> DeletionResult:
        """Delete a persisted capture.

        Raises:
            CaptureStillUploadingError: If the capture is still pending.
            MetadataStoreError: If the record could not be deleted; the object
                is left untouched.
        """
        if isinstance(capture, PendingCapture):
            raise CaptureStillUploadingError(capture.id)

        log = logger.bind(capture_id=capture.id, book_id=capture.book_id)

        record_deleted = await self.metadata.delete_capture(capture.id)
        result = DeletionResult(capture_id=capture.id, record_deleted=record_deleted)

        key = self.storage_key_for(capture)
        if key is None:
            log.warning("blob_removal_skipped", image_url=capture.image_url, reason="no_storage_key")
            log_capture_deleted(log, capture.id, blob_removed=False)
            return result

        result.storage_key = key
        try:
            await self.object_store.remove([key])
            result.blob_removed = True
        except ObjectStoreError as e:
            result.error = str(e)
            log.warning("blob_removal_failed", storage_key=key, error=str(e))

        log_capture_deleted(log, capture.id, blob_removed=result.blob_removed)
        return result
