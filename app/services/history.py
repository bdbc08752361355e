# app/services/history.py

"""Append-only version history of accepted blueprints."""

from __future__ import annotations

import itertools
import logging
import time
from typing import Dict, List, Optional, Tuple

from fibo.schema import HistoryItem, Provenance, Scene

logger = logging.getLogger(__name__)


class HistoryStore:
    """
    Entries are deep copies, kept in insertion order, never edited or removed.
    Restoring an entry is up to the caller; the store only hands it back.
    """

    def __init__(self) -> None:
        self._items: List[HistoryItem] = []
        self._by_id: Dict[str, HistoryItem] = {}
        self._counter = itertools.count(1)

    def append(
        self,
        scene: Scene,
        provenance: Provenance,
        summary: Optional[str] = None,
    ) -> HistoryItem:
        timestamp = int(time.time() * 1000)
        # counter suffix keeps ids unique when two appends share a millisecond
        item_id = f"{timestamp}-{next(self._counter)}"
        item = HistoryItem(
            id=item_id,
            timestamp=timestamp,
            scene=scene.model_copy(deep=True),
            provenance=provenance,
            summary=summary if summary is not None else scene.short_description[:120],
        )
        self._items.append(item)
        self._by_id[item_id] = item
        logger.debug("History +%s (%s)", item_id, provenance.value)
        return item

    def items(self) -> Tuple[HistoryItem, ...]:
        return tuple(self._items)

    def get(self, item_id: str) -> HistoryItem:
        """Raises KeyError for unknown ids."""
        return self._by_id[item_id]

    def __len__(self) -> int:
        return len(self._items)
