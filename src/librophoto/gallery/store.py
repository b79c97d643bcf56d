"""In-memory, newest-first list of the open book's captures.

Pending entries are inserted at the head while their upload runs and are
later either reconciled (replaced in place by the persisted capture) or
rolled back (removed). Every operation is synchronous and touches nothing
but the list and the preview bytes backing pending entries.
"""

import itertools
import time
from collections.abc import Callable, Iterable
from datetime import datetime, timezone

from librophoto.logging import get_logger
from librophoto.models import (
    TEMP_ID_PREFIX,
    Capture,
    CaptureEntry,
    LocalPreview,
    PendingCapture,
    preview_url,
)

logger = get_logger(__name__)

# Called with the position an entry occupied just before it was removed
RemovalListener = Callable[[int], None]


class OptimisticCaptureStore:
    """Ordered capture list with provisional entries for in-flight uploads."""

    def __init__(self, book_id: str) -> None:
        self.book_id = book_id
        self._entries: list[CaptureEntry] = []
        self._previews: dict[str, LocalPreview] = {}
        self._sequence = itertools.count(1)
        self._removal_listeners: list[RemovalListener] = []

    def __len__(self) -> int:
        return len(self._entries)

    def list(self) -> tuple[CaptureEntry, ...]:
        """Snapshot of the current entries, newest first."""
        return tuple(self._entries)

    def get(self, index: int) -> CaptureEntry:
        return self._entries[index]

    def index_of(self, capture_id: str) -> int | None:
        for i, entry in enumerate(self._entries):
            if entry.id == capture_id:
                return i
        return None

    def load(self, captures: Iterable[Capture]) -> None:
        """Replace the list with captures freshly read from the metadata store.

        Pending entries survive the reload at the head so an upload still in
        flight can reconcile or roll back its own entry afterwards.
        """
        pending = [e for e in self._entries if isinstance(e, PendingCapture)]
        self._entries = [*pending, *captures]

    def _next_temp_id(self) -> str:
        now_ms = time.time_ns() // 1_000_000
        return f"{TEMP_ID_PREFIX}{now_ms}-{next(self._sequence)}"

    def insert_pending(self, preview: LocalPreview) -> str:
        """Prepend a pending entry and return its temporary id."""
        temp_id = self._next_temp_id()
        self._previews[temp_id] = preview
        self._entries.insert(
            0,
            PendingCapture(
                id=temp_id,
                book_id=self.book_id,
                image_url=preview_url(temp_id),
                created_at=datetime.now(timezone.utc),
            ),
        )
        return temp_id

    def preview(self, temp_id: str) -> LocalPreview | None:
        """Bytes behind a pending entry's preview URL, while it is pending."""
        return self._previews.get(temp_id)

    def on_removal(self, listener: RemovalListener) -> None:
        """Register a callback run after every entry removal."""
        self._removal_listeners.append(listener)

    def _delete_at(self, index: int) -> None:
        del self._entries[index]
        for listener in self._removal_listeners:
            listener(index)

    def reconcile(self, temp_id: str, persisted: Capture) -> bool:
        """Replace the pending entry temp_id with persisted, keeping its position.

        If persisted is already listed (a reload picked up the committed
        record first), the pending entry is dropped instead.

        Returns:
            True if the entry was replaced, False otherwise.
        """
        self._previews.pop(temp_id, None)
        index = self.index_of(temp_id)
        if index is None:
            logger.info("reconcile_target_gone", temp_id=temp_id, capture_id=persisted.id)
            return False
        if self.index_of(persisted.id) is not None:
            logger.info("reconcile_already_listed", temp_id=temp_id, capture_id=persisted.id)
            self._delete_at(index)
            return False
        self._entries[index] = persisted
        return True

    def rollback(self, temp_id: str) -> int | None:
        """Remove the pending entry temp_id.

        Returns:
            The position the entry held, or None if it no longer exists.
        """
        self._previews.pop(temp_id, None)
        index = self.index_of(temp_id)
        if index is not None:
            self._delete_at(index)
        return index

    def remove(self, capture_id: str) -> int | None:
        """Remove an entry by id, pending or persisted.

        Returns:
            The position the entry held, or None if no entry matched.
        """
        self._previews.pop(capture_id, None)
        index = self.index_of(capture_id)
        if index is not None:
            self._delete_at(index)
        return index
