"""Exception hierarchy for the capture lifecycle.

Backend adapters translate library exceptions into these types so the
orchestrator, the deletion coordinator and the gallery session only ever
handle failures they know how to react to.
"""


class LibrophotoError(Exception):
    """Base class for all librophoto errors."""


class CompressionError(LibrophotoError):
    """The input image could not be decoded or brought under the size limits."""


class ObjectStoreError(LibrophotoError):
    """A blob write, read or removal failed."""


class MetadataStoreError(LibrophotoError):
    """A metadata insert, select or delete failed."""


class BookNotFoundError(LibrophotoError):
    """The requested book does not exist in the metadata store."""

    def __init__(self, book_id: str) -> None:
        super().__init__(f"Book not found: {book_id}")
        self.book_id = book_id


class CaptureStillUploadingError(LibrophotoError):
    """A pending capture cannot be deleted before its upload settles."""

    def __init__(self, capture_id: str) -> None:
        super().__init__(f"Capture is still uploading: {capture_id}")
        self.capture_id = capture_id
