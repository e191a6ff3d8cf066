"""
Video summary session.

Ties the summary mode together:

1. validate the video URL locally,
2. request a summary,
3. on success make it the current session (saved as the snapshot) and
   prepend it to the history,
4. answer follow-up questions about the current video through a
   :class:`~.controller.RequestController` whose thread is the record's
   derived Q&A thread.

On construction the snapshot, if any, is restored as the current session
(without its Q&A thread, which is never persisted).
"""

import logging

from .backend_api import (
    DEFAULT_MODEL,
    SUMMARIZE_ERROR,
    BackendAPIError,
    BackendClient,
    SummaryResult,
    build_ask_payload,
    build_summarize_payload,
)
from .controller import QA_MODE, RequestController
from .history_store import HistoryStore
from .session_record import SessionRecord
from .snapshot import SnapshotCache
from .validation import InputError, normalise_input, validate_video_url

log = logging.getLogger("assistant_client")

NO_SUMMARY_MESSAGE = "Please generate a summary first before asking questions"


class SummarySession:
    """Current summary, its Q&A controller, and the persisted stores."""

    def __init__(
        self,
        client: BackendClient,
        history: HistoryStore,
        snapshot: SnapshotCache,
        model: str = DEFAULT_MODEL,
    ) -> None:
        self._client = client
        self.history = history
        self.snapshot = snapshot
        self.model = model

        self._current: SessionRecord | None = None
        self._qa: RequestController | None = None
        self._summarizing = False
        self._error: str | None = None

        restored = snapshot.load()
        if restored is not None:
            log.info("[SUMMARY] Restored current summary for %s",
                     restored.source_url)
            self._open(restored)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def current(self) -> SessionRecord | None:
        return self._current

    @property
    def qa(self) -> RequestController | None:
        """Controller for questions about the current video."""
        return self._qa

    @property
    def error(self) -> str | None:
        """Error from the last summarize request, if it failed."""
        return self._error

    @property
    def is_summarizing(self) -> bool:
        return self._summarizing

    @property
    def is_busy(self) -> bool:
        return self._summarizing or (self._qa is not None and self._qa.is_pending)

    def _open(self, record: SessionRecord) -> None:
        self._current = record
        self._qa = RequestController(
            self._client.post_ask,
            self._build_ask_payload,
            QA_MODE,
            thread=record.derived_thread,
        )

    def _build_ask_payload(self, question: str) -> dict:
        return build_ask_payload(self._current.source_url, question, self.model)

    # ------------------------------------------------------------------
    # Summarize
    # ------------------------------------------------------------------

    def begin_summarize(self, url: str) -> dict | None:
        """Validate *url* and return the summarize payload to send.

        Returns *None* for a blank URL or while another request is running.
        Raises :exc:`InputError` for a malformed URL.
        """
        if self.is_busy:
            log.debug("[SUMMARY] Summarize ignored, request pending")
            return None
        if not normalise_input(url):
            return None
        try:
            url = validate_video_url(url)
        except InputError as exc:
            self._error = str(exc)
            raise
        self._summarizing = True
        self._error = None
        return build_summarize_payload(url, self.model)

    def complete_summarize(self, payload: dict, result: SummaryResult) -> SessionRecord:
        """Turn a successful reply into the new current session."""
        self._summarizing = False
        record = SessionRecord(
            source_url=payload["url"],
            summary_text=result.summary,
            metadata=dict(result.video_data),
        )
        self._open(record)
        self.snapshot.save(record)
        self.history.add(record)
        log.info("[SUMMARY] Summary ready for %s (%s)",
                 record.source_url, record.title)
        return record

    def fail_summarize(self, exc: Exception) -> None:
        self._summarizing = False
        self._error = getattr(exc, "user_message", None) or SUMMARIZE_ERROR
        log.warning("[SUMMARY] Summarize failed: %s", self._error)

    def summarize(self, url: str) -> SessionRecord | None:
        """Summarize *url* synchronously.

        Returns the new record, or *None* if the request was ignored or
        failed (see :attr:`error`).
        """
        payload = self.begin_summarize(url)
        if payload is None:
            return None
        try:
            result = self._client.post_summarize(payload)
        except BackendAPIError as exc:
            self.fail_summarize(exc)
            return None
        return self.complete_summarize(payload, result)

    # ------------------------------------------------------------------
    # Follow-up questions
    # ------------------------------------------------------------------

    def begin_ask(self, question: str) -> dict | None:
        if self._qa is None:
            raise InputError(NO_SUMMARY_MESSAGE)
        if self._summarizing:
            return None
        return self._qa.begin_submit(question)

    def ask(self, question: str) -> bool:
        """Ask about the current video.  Raises :exc:`InputError` without one."""
        if self._qa is None:
            raise InputError(NO_SUMMARY_MESSAGE)
        if self._summarizing:
            return False
        return self._qa.submit(question)

    def retry_ask(self) -> bool:
        if self._qa is None or self._summarizing:
            return False
        return self._qa.retry()

    # ------------------------------------------------------------------
    # Session management
    # ------------------------------------------------------------------

    def open_from_history(self, index: int) -> SessionRecord | None:
        """Re-open a past summary as the current session (fresh Q&A)."""
        if self.is_busy:
            return None
        record = self.history.get(index).fresh_copy()
        self._open(record)
        self._error = None
        self.snapshot.save(record)
        return record

    def new_summary(self) -> bool:
        """Close the current session and forget its snapshot."""
        if self.is_busy:
            return False
        self._current = None
        self._qa = None
        self._error = None
        self.snapshot.clear()
        return True

    def clear_history(self) -> None:
        """Delete the history and the snapshot; the open session stays visible."""
        self.history.clear()
        self.snapshot.clear()
        log.info("[SUMMARY] History cleared")
