"""Object store interface and storage key helpers.

Keys are hierarchical strings scoped to a book: ``<book_id>/<suffix>.<ext>``.
Public URLs place the bucket name in front of the key, so a key can be
recovered from a URL by splitting on ``/<bucket>/``.
"""

import time
from collections.abc import Sequence
from typing import Protocol
from urllib.parse import unquote
from uuid import uuid4


class ObjectStore(Protocol):
    """Binary blob storage consumed by the capture lifecycle."""

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        """Write an object. Raises ObjectStoreError on failure or existing key."""
        ...

    async def public_url(self, key: str) -> str:
        """Resolve the durable public URL of an object."""
        ...

    async def remove(self, keys: Sequence[str]) -> None:
        """Remove objects. Missing keys are ignored."""
        ...

    async def retrieve(self, key: str) -> bytes:
        """Read an object's bytes."""
        ...


def build_object_key(book_id: str, extension: str, now_ms: int | None = None) -> str:
    """Build a collision-resistant key for a new capture image.

    Args:
        book_id: Owning book, used as the key prefix
        extension: File extension without the dot (e.g. "jpg")
        now_ms: Epoch milliseconds, defaults to the current time

    Returns:
        Key such as ``"<book_id>/1700000000000-1a2b3c4d.jpg"``
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return f"{book_id}/{now_ms}-{uuid4().hex[:8]}.{extension.lstrip('.')}"


def key_from_public_url(url: str, bucket: str) -> str | None:
    """Extract the object key from a public URL.

    Returns None when the URL does not contain the ``/<bucket>/`` marker or
    nothing follows it.
    """
    marker = f"/{bucket}/"
    if marker not in url:
        return None
    key = url.split(marker, 1)[1].split("?", 1)[0]
    return unquote(key) or None
