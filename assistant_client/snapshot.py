"""Persisted copy of the currently open summary, restored on the next start."""

import json
import logging

from .session_record import SessionRecord
from .storage import LocalStorage

log = logging.getLogger("assistant_client")

SNAPSHOT_KEY = "currentSummary"


class SnapshotCache:
    """Holds at most one :class:`SessionRecord` (its Q&A thread excluded)."""

    def __init__(self, storage: LocalStorage) -> None:
        self._storage = storage

    def save(self, record: SessionRecord) -> None:
        """Persist *record*, replacing any previous snapshot."""
        self._storage.set_item(
            SNAPSHOT_KEY, json.dumps(record.to_dict(), ensure_ascii=False),
        )
        log.debug("[SNAP] Saved current summary for %s", record.source_url)

    def load(self) -> SessionRecord | None:
        """Return the persisted snapshot, or *None* if absent or unreadable."""
        raw = self._storage.get_item(SNAPSHOT_KEY)
        if raw is None:
            return None
        try:
            return SessionRecord.from_dict(json.loads(raw))
        except (ValueError, TypeError, RecursionError) as exc:
            log.warning("[SNAP] Ignoring unreadable current summary: %s", exc)
            return None

    def clear(self) -> None:
        self._storage.remove_item(SNAPSHOT_KEY)
