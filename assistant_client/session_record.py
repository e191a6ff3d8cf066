"""
Session record: one completed video summary.

Records are stored as plain JSON objects with the keys ``url``,
``summary``, ``videoData``, ``timestamp`` and ``title``.  The follow-up
Q&A thread lives only in memory and is never serialised.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from .thread import Thread


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(raw) -> datetime:
    """Parse an ISO-8601 timestamp; a trailing ``Z`` and naive values mean UTC."""
    if not isinstance(raw, str):
        raise ValueError(f"timestamp must be a string, got {type(raw).__name__}")
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    ts = datetime.fromisoformat(raw)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass
class SessionRecord:
    """A summarized video plus its (unpersisted) follow-up Q&A thread."""

    source_url: str
    summary_text: str
    metadata: dict = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)
    derived_thread: Thread = field(default_factory=Thread, compare=False, repr=False)

    @property
    def title(self) -> str:
        """Video title if the backend supplied one, else the URL."""
        title = self.metadata.get("title")
        if isinstance(title, str) and title.strip():
            return title
        return self.source_url

    def fresh_copy(self) -> "SessionRecord":
        """Return the same record with an empty Q&A thread."""
        return replace(self, metadata=dict(self.metadata), derived_thread=Thread())

    def to_dict(self) -> dict:
        return {
            "url": self.source_url,
            "summary": self.summary_text,
            "videoData": self.metadata,
            "timestamp": self.created_at.isoformat(),
            "title": self.title,
        }

    @classmethod
    def from_dict(cls, data) -> "SessionRecord":
        """Rebuild a record from its JSON form.

        Raises :exc:`ValueError` when *data* does not have the expected
        shape.  A missing timestamp is tolerated (older snapshots did not
        store one) and defaults to now.
        """
        if not isinstance(data, dict):
            raise ValueError(f"record must be an object, got {type(data).__name__}")
        url = data.get("url")
        summary = data.get("summary")
        if not isinstance(url, str) or not isinstance(summary, str):
            raise ValueError("record needs string 'url' and 'summary' fields")
        metadata = data.get("videoData") or {}
        if not isinstance(metadata, dict):
            raise ValueError("record 'videoData' must be an object")
        raw_ts = data.get("timestamp")
        created_at = _parse_timestamp(raw_ts) if raw_ts is not None else _utcnow()
        return cls(
            source_url=url,
            summary_text=summary,
            metadata=metadata,
            created_at=created_at,
        )
