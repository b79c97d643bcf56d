"""Book page session: one open book with its grid, viewer and uploads.

BookGallery is the layer users interact with. It turns every failure from
the orchestrator or the coordinator into a generic notice and leaves the
capture list in its last consistent shape.
"""

from collections.abc import Callable

from librophoto.compression import CompressionProfile
from librophoto.db.repository import MetadataStore
from librophoto.errors import BookNotFoundError, CaptureStillUploadingError, LibrophotoError
from librophoto.gallery.deletion import DeletionCoordinator, DeletionResult
from librophoto.gallery.navigation import GalleryNavigator
from librophoto.gallery.store import OptimisticCaptureStore
from librophoto.gallery.upload import UploadOrchestrator
from librophoto.logging import get_logger, new_operation_id, set_operation_id
from librophoto.models import Book, Capture, CaptureEntry, ImageInput
from librophoto.storage.object_store import ObjectStore

logger = get_logger(__name__)

UPLOAD_FAILED_NOTICE = "The photo could not be added. Please try again."
DELETE_FAILED_NOTICE = "The photo could not be deleted. Please try again."
STILL_UPLOADING_NOTICE = "This photo is still uploading."

Notifier = Callable[[str], None]


def _log_notice(message: str) -> None:
    logger.info("user_notice", message=message)


class BookGallery:
    """Capture grid, viewer and upload state for one book."""

    def __init__(
        self,
        book_id: str,
        metadata: MetadataStore,
        object_store: ObjectStore,
        profile: CompressionProfile,
        bucket: str,
        notify: Notifier = _log_notice,
    ) -> None:
        self.book_id = book_id
        self.metadata = metadata
        self.notify = notify
        self.book: Book | None = None

        self.store = OptimisticCaptureStore(book_id)
        self.navigator = GalleryNavigator(self.store)
        self.uploader = UploadOrchestrator(self.store, object_store, metadata, profile)
        self.deleter = DeletionCoordinator(object_store, metadata, bucket)

        self._uploads_in_flight = 0

    @property
    def title(self) -> str | None:
        return self.book.title if self.book else None

    @property
    def captures(self) -> tuple[CaptureEntry, ...]:
        return self.store.list()

    @property
    def photo_count(self) -> int:
        return len(self.store)

    @property
    def is_uploading(self) -> bool:
        return self._uploads_in_flight > 0

    async def open(self) -> Book:
        """Load the book and its captures, newest first.

        Raises:
            BookNotFoundError: If the book does not exist.
            MetadataStoreError: If the metadata store cannot be read.
        """
        book = await self.metadata.get_book(self.book_id)
        if book is None:
            raise BookNotFoundError(self.book_id)
        captures = await self.metadata.list_captures(self.book_id)

        self.book = book
        self.store.load(captures)
        self.navigator.renormalize()
        logger.info("book_opened", book_id=self.book_id, photo_count=len(self.store))
        return book

    async def upload(self, image: ImageInput) -> Capture | None:
        """Add a photo to the book.

        Returns:
            The persisted capture, or None if the upload failed (a notice
            has been sent).
        """
        new_operation_id()
        self._uploads_in_flight += 1
        try:
            return await self.uploader.upload(image, self.book_id)
        except LibrophotoError as e:
            logger.warning("upload_failed", book_id=self.book_id, error=str(e), error_type=type(e).__name__)
            self.notify(UPLOAD_FAILED_NOTICE)
            return None
        finally:
            self._uploads_in_flight -= 1
            set_operation_id(None)

    async def delete_current(self) -> DeletionResult | None:
        """Delete the capture open in the viewer.

        The entry leaves the list only after the metadata record is deleted;
        the viewer then sits at the position the entry held when it was
        removed, clamped to the shorter list.

        Returns:
            The deletion result, or None if nothing was open or the deletion
            failed (a notice has been sent).
        """
        capture = self.navigator.current()
        if capture is None:
            return None

        new_operation_id()
        try:
            result = await self.deleter.delete(capture)
        except CaptureStillUploadingError:
            self.notify(STILL_UPLOADING_NOTICE)
            return None
        except LibrophotoError as e:
            logger.warning("delete_failed", capture_id=capture.id, error=str(e), error_type=type(e).__name__)
            self.notify(DELETE_FAILED_NOTICE)
            return None
        finally:
            set_operation_id(None)

        # Removed by id: uploads may have shifted positions while we awaited.
        # The viewer then sits where the deleted capture was, so the next one
        # slides under it.
        index = self.store.remove(capture.id)
        if index is not None:
            self.navigator.selected_index = index
        self.navigator.renormalize()
        return result
