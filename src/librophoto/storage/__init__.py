"""Object storage for capture images."""

from librophoto.storage.filesystem import FileObjectStore
from librophoto.storage.object_store import ObjectStore, build_object_key, key_from_public_url

__all__ = ["FileObjectStore", "ObjectStore", "build_object_key", "key_from_public_url"]
