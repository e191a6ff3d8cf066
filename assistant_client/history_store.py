"""
Bounded, persisted history of completed video summaries.

The newest record is first.  At most :data:`HISTORY_LIMIT` records are
kept; adding one more drops the oldest.  The whole list is written back to
local storage after every mutation.
"""

import json
import logging

from .session_record import SessionRecord
from .storage import LocalStorage

log = logging.getLogger("assistant_client")

HISTORY_KEY = "videoSummaryHistory"

#: Maximum number of records kept.
HISTORY_LIMIT = 10


class HistoryStore:
    """Most-recent-first list of :class:`SessionRecord`, capped in length."""

    def __init__(self, storage: LocalStorage, limit: int = HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("history limit must be at least 1")
        self._storage = storage
        self._limit = limit
        self._records: list[SessionRecord] = []
        self.load()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _persist(self) -> None:
        self._storage.set_item(
            HISTORY_KEY,
            json.dumps([r.to_dict() for r in self._records], ensure_ascii=False),
        )

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def load(self) -> list[SessionRecord]:
        """(Re)hydrate from storage.  Corrupt data is discarded, not raised."""
        raw = self._storage.get_item(HISTORY_KEY)
        if raw is None:
            self._records = []
            return self.records()
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError(f"expected a list, got {type(data).__name__}")
            records = [SessionRecord.from_dict(item) for item in data]
        except (ValueError, TypeError, RecursionError) as exc:
            log.warning("[HIST] Discarding corrupt history: %s", exc)
            self._storage.remove_item(HISTORY_KEY)
            self._records = []
            return self.records()

        self._records = records[: self._limit]
        log.debug("[HIST] Loaded %d history records", len(self._records))
        return self.records()

    def add(self, record: SessionRecord) -> None:
        """Prepend *record*, evicting the oldest entries beyond the limit."""
        self._records.insert(0, record)
        evicted = len(self._records) - self._limit
        if evicted > 0:
            del self._records[self._limit:]
            log.debug("[HIST] Evicted %d oldest record(s)", evicted)
        self._persist()

    def clear(self) -> None:
        """Empty the history and delete its persisted copy."""
        self._records = []
        self._storage.remove_item(HISTORY_KEY)

    def get(self, index: int) -> SessionRecord:
        return self._records[index]

    def records(self) -> list[SessionRecord]:
        """Return a copy of the records, newest first."""
        return list(self._records)

    @property
    def limit(self) -> int:
        return self._limit

    def __len__(self) -> int:
        return len(self._records)
