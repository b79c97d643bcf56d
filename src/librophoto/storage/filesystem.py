"""Async filesystem object store for capture images.

Objects are stored in: {base_path}/{bucket}/{key}
All file I/O operations are async using aiofiles.
"""

from collections.abc import Sequence
from pathlib import Path, PurePosixPath
from urllib.parse import quote

import aiofiles
import aiofiles.os

from librophoto.errors import ObjectStoreError
from librophoto.logging import get_logger

logger = get_logger(__name__)


class FileObjectStore:
    """Object store backed by a local directory.

    Public URLs are ``{public_base_url}/{bucket}/{key}``; serving them is
    left to whatever static file server fronts the storage directory.
    """

    def __init__(self, base_path: Path, bucket: str, public_base_url: str) -> None:
        """Initialize file storage.

        Args:
            base_path: Root directory for object storage.
                       Will be created if it doesn't exist.
            bucket: Bucket name, the first directory level under base_path
            public_base_url: URL prefix the bucket is served under
        """
        self.base_path = Path(base_path)
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        self.bucket_path = self.base_path / bucket
        # One-time operation on init
        self.bucket_path.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        parts = PurePosixPath(key).parts
        if not parts or key.startswith("/") or ".." in parts:
            raise ObjectStoreError(f"Invalid object key: {key!r}")
        return self.bucket_path.joinpath(*parts)

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        """Store object bytes under key.

        Args:
            key: Object key, e.g. "<book_id>/<suffix>.jpg"
            data: Object bytes
            content_type: MIME type; must agree with the key's extension

        Raises:
            ObjectStoreError: If the key is invalid, already exists, or the
                write fails.
        """
        filepath = self._path_for(key)
        try:
            await aiofiles.os.makedirs(filepath.parent, exist_ok=True)
            # "xb" refuses to overwrite an existing object
            async with aiofiles.open(filepath, "xb") as f:
                await f.write(data)
        except FileExistsError as e:
            raise ObjectStoreError(f"Object already exists: {key}") from e
        except OSError as e:
            raise ObjectStoreError(f"Failed to write object {key}: {e}") from e

        logger.debug("object_stored", key=key, size=len(data), content_type=content_type)

    async def public_url(self, key: str) -> str:
        """Return the public URL of an object."""
        self._path_for(key)
        return f"{self.public_base_url}/{self.bucket}/{quote(key)}"

    async def retrieve(self, key: str) -> bytes:
        """Retrieve object bytes.

        Raises:
            ObjectStoreError: If the object does not exist or cannot be read.
        """
        filepath = self._path_for(key)
        try:
            async with aiofiles.open(filepath, "rb") as f:
                return await f.read()
        except OSError as e:
            raise ObjectStoreError(f"Failed to read object {key}: {e}") from e

    async def remove(self, keys: Sequence[str]) -> None:
        """Remove objects. Keys that do not exist are skipped.

        Raises:
            ObjectStoreError: If a key is invalid or a removal fails.
        """
        for key in keys:
            filepath = self._path_for(key)
            try:
                await aiofiles.os.remove(filepath)
            except FileNotFoundError:
                logger.debug("object_missing", key=key)
            except OSError as e:
                raise ObjectStoreError(f"Failed to remove object {key}: {e}") from e
