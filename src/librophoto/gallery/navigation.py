"""Full-screen viewer cursor over the capture list.

The viewer is either closed (selected_index is None) or open on a valid
index of the live list. The navigator stores nothing but the index; the
list is always read from the store.
"""

from librophoto.gallery.store import OptimisticCaptureStore
from librophoto.models import CaptureEntry


class GalleryNavigator:
    """Tracks which capture, if any, is open in the viewer."""

    def __init__(self, store: OptimisticCaptureStore) -> None:
        self.store = store
        self.selected_index: int | None = None
        store.on_removal(self._entry_removed)

    def _entry_removed(self, index: int) -> None:
        """Keep the cursor on the same capture when an entry above it goes away."""
        if self.selected_index is not None and index < self.selected_index:
            self.selected_index -= 1
        self.renormalize()

    @property
    def is_open(self) -> bool:
        return self.selected_index is not None

    def current(self) -> CaptureEntry | None:
        """The capture under the viewer, or None when closed."""
        if self.selected_index is None:
            return None
        return self.store.get(self.selected_index)

    def select(self, index: int) -> bool:
        """Open the viewer on index. Invalid indexes leave the state unchanged."""
        if not 0 <= index < len(self.store):
            return False
        self.selected_index = index
        return True

    def close(self) -> None:
        self.selected_index = None

    def next(self) -> bool:
        """Move to the next (older) capture; no-op at the end or when closed."""
        if self.selected_index is None or self.selected_index + 1 >= len(self.store):
            return False
        self.selected_index += 1
        return True

    def prev(self) -> bool:
        """Move to the previous (newer) capture; no-op at the start or when closed."""
        if self.selected_index is None or self.selected_index == 0:
            return False
        self.selected_index -= 1
        return True

    @property
    def has_next(self) -> bool:
        return self.selected_index is not None and self.selected_index + 1 < len(self.store)

    @property
    def has_prev(self) -> bool:
        return self.selected_index is not None and self.selected_index > 0

    def renormalize(self) -> None:
        """Bring the cursor back in range after the list shrank.

        An emptied list closes the viewer; an index past the end is clamped to
        the last capture; otherwise the index is kept, so the next capture
        slides under the viewer.
        """
        if self.selected_index is None:
            return
        length = len(self.store)
        if length == 0:
            self.selected_index = None
        elif self.selected_index >= length:
            self.selected_index = length - 1
