"""Capture gallery: optimistic list, uploads, deletions and viewer state."""

from librophoto.gallery.deletion import DeletionCoordinator, DeletionResult
from librophoto.gallery.navigation import GalleryNavigator
from librophoto.gallery.session import BookGallery
from librophoto.gallery.store import OptimisticCaptureStore
from librophoto.gallery.upload import UploadOrchestrator

__all__ = [
    "BookGallery",
    "DeletionCoordinator",
    "DeletionResult",
    "GalleryNavigator",
    "OptimisticCaptureStore",
    "UploadOrchestrator",
]
