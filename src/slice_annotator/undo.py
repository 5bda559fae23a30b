"""Single-level undo for the most recent annotation batch."""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from slice_annotator.annotations import AnnotationStore, UndoItem

LOGGER = logging.getLogger(__name__)

UndoEntry = Tuple[UndoItem, ...]


class UndoBuffer:
    """Holds the prior values of whichever channels were touched last.

    Recording a new entry discards the previous one; there is no history stack.
    """

    def __init__(self) -> None:
        self._entry: Optional[UndoEntry] = None

    @property
    def has_entry(self) -> bool:
        return self._entry is not None

    def record(self, items: Sequence[UndoItem]) -> None:
        self._entry = tuple(items) if items else None

    def clear(self) -> None:
        self._entry = None

    def pop_and_apply(self, store: AnnotationStore) -> List[int]:
        """Write the buffered prior values back and return the restored channels."""

        if self._entry is None:
            return []
        entry, self._entry = self._entry, None
        store.set_batch(
            [item.channel for item in entry],
            [item.slice for item in entry],
            [item.x for item in entry],
            [item.y for item in entry],
        )
        channels = [item.channel for item in entry]
        LOGGER.debug("Undo restored channel(s) %s", channels)
        return channels
