"""Domain types for books and captures.

A capture held by the gallery is either pending (uploaded optimistically,
not yet durable) or persisted (both backend writes confirmed). The two
flavors are distinct types so code that reconciles or rolls back an entry
can never confuse them.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Literal, Union

TEMP_ID_PREFIX = "temp-"
PREVIEW_SCHEME = "preview://"


@dataclass(frozen=True)
class Book:
    """A named collection of captures. Read-only to the capture lifecycle."""

    id: str
    title: str
    description: str | None
    created_at: datetime


@dataclass(frozen=True)
class Capture:
    """A persisted capture: both the object and the metadata record exist."""

    id: str
    book_id: str
    image_url: str
    created_at: datetime
    storage_key: str | None = None

    state: Literal["persisted"] = "persisted"

    @property
    def is_pending(self) -> bool:
        return False


@dataclass(frozen=True)
class PendingCapture:
    """A provisional capture shown while its upload is in flight."""

    id: str
    book_id: str
    image_url: str
    created_at: datetime

    state: Literal["pending"] = "pending"

    @property
    def is_pending(self) -> bool:
        return True


CaptureEntry = Union[PendingCapture, Capture]


def is_temp_id(capture_id: str) -> bool:
    """Return True if the id was generated locally for a pending capture."""
    return capture_id.startswith(TEMP_ID_PREFIX)


def preview_url(temp_id: str) -> str:
    """Local, non-durable image reference for a pending capture."""
    return f"{PREVIEW_SCHEME}{temp_id}"


@dataclass(frozen=True)
class ImageInput:
    """An image handed to the upload path by the caller.

    Attributes:
        data: Raw file bytes in any format Pillow can decode
        content_type: MIME hint supplied with the file, if any
        filename: Original file name, if any
    """

    data: bytes
    content_type: str | None = None
    filename: str | None = None

    @classmethod
    def from_path(cls, path: Path) -> ImageInput:
        """Read an image file, guessing its MIME type from the name."""
        path = Path(path)
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(data=path.read_bytes(), content_type=content_type, filename=path.name)


@dataclass(frozen=True)
class CompressedImage:
    """Re-encoded image ready for the object store."""

    data: bytes
    content_type: str
    extension: str
    width: int
    height: int

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class LocalPreview:
    """Bytes behind a pending capture's preview reference."""

    data: bytes
    content_type: str
