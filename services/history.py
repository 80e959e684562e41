"""
Snapshot-based undo/redo.

Every commit stores a plain-data copy of the store's nodes and
connections. Viewport and selection are view state and are never
recorded.
"""

import copy
import logging
from typing import Optional

from models.graph_store import GraphStore

logger = logging.getLogger(__name__)


class HistoryManager:
    """
    Undo/redo stack over a GraphStore.

    The stack is seeded with the store's state at construction, so entry 0
    is the initial document and can never be undone past.
    """

    def __init__(self, store: GraphStore, max_entries: int = 0):
        self._store = store
        self.max_entries = max_entries  # 0 = unlimited
        self._entries: list[dict] = []
        self._cursor = 0
        self.clear()

    @property
    def cursor(self) -> int:
        return self._cursor

    def __len__(self) -> int:
        return len(self._entries)

    def current(self) -> dict:
        """Deep copy of the entry at the cursor."""
        return copy.deepcopy(self._entries[self._cursor])

    def clear(self):
        """Drop all history and re-seed entry 0 from the current store."""
        self._entries = [self._store.snapshot()]
        self._cursor = 0

    def commit(self) -> bool:
        """
        Record the current document state.

        The redo branch beyond the cursor is discarded. A state identical
        to the entry at the cursor is not recorded (and leaves the redo
        branch intact). Returns True if an entry was appended.
        """
        state = self._store.snapshot()
        if state == self._entries[self._cursor]:
            return False

        del self._entries[self._cursor + 1:]
        self._entries.append(state)
        self._cursor = len(self._entries) - 1

        if self.max_entries and len(self._entries) > self.max_entries:
            overflow = len(self._entries) - self.max_entries
            del self._entries[:overflow]
            self._cursor -= overflow

        logger.debug(f"History commit -> entry {self._cursor} of {len(self._entries)}")
        return True

    def can_undo(self) -> bool:
        return self._cursor > 0

    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    def undo(self) -> bool:
        if not self.can_undo():
            return False
        self._cursor -= 1
        self._apply()
        return True

    def redo(self) -> bool:
        if not self.can_redo():
            return False
        self._cursor += 1
        self._apply()
        return True

    def _apply(self):
        self._store.restore(copy.deepcopy(self._entries[self._cursor]))
        logger.debug(f"History moved to entry {self._cursor}")

    def entry(self, index: int) -> Optional[dict]:
        if 0 <= index < len(self._entries):
            return copy.deepcopy(self._entries[index])
        return None
