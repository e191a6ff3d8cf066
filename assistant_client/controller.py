"""
Request lifecycle controller.

Drives at most one outstanding backend round-trip per conversation::

    IDLE ──submit──▶ PENDING ──ok───▶ SUCCEEDED ──▶ IDLE
                        │
                        └──error──▶ FAILED ──retry──▶ PENDING

The human turn is appended as soon as a request is submitted.  The request
then settles into exactly one of two outcomes: the reply turn, or a generic
apology placeholder plus a retryable error flag.  ``retry()`` retracts that
placeholder and re-sends the payload that produced the last human turn.

The round-trip can be driven in two ways:

* ``submit()`` / ``retry()`` call the transport synchronously.
* ``begin_submit()`` / ``begin_retry()`` return the payload so that the
  caller can send it from a worker thread and later hand the outcome back
  with ``resolve()`` or ``fail()`` on the owning thread.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .backend_api import ANALYZE_ERROR, ASK_ERROR, CHAT_ERROR, BackendAPIError
from .thread import (
    ROLE_ANSWER,
    ROLE_ASSISTANT,
    ROLE_QUESTION,
    ROLE_USER,
    Thread,
    Turn,
)
from .validation import normalise_input

log = logging.getLogger("assistant_client")

#: Shown in the thread in place of an answer when a request fails.
APOLOGY_TEXT = (
    "I apologize, but I encountered an error. "
    "Please try rephrasing your question or try again later."
)


class RequestState(Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_TRANSITIONS: dict[RequestState, frozenset[RequestState]] = {
    RequestState.IDLE:      frozenset({RequestState.PENDING}),
    RequestState.PENDING:   frozenset({RequestState.SUCCEEDED, RequestState.FAILED}),
    RequestState.SUCCEEDED: frozenset({RequestState.IDLE}),
    RequestState.FAILED:    frozenset({RequestState.PENDING}),
}


@dataclass(frozen=True)
class ConversationMode:
    """Role vocabulary and fallback error text for one kind of conversation."""

    name: str
    human_role: str
    reply_role: str
    default_error: str


CHAT_MODE = ConversationMode("chat", ROLE_USER, ROLE_ASSISTANT, CHAT_ERROR)
DOCS_MODE = ConversationMode("docs", ROLE_USER, ROLE_ASSISTANT, ANALYZE_ERROR)
QA_MODE = ConversationMode("qa", ROLE_QUESTION, ROLE_ANSWER, ASK_ERROR)

Transport = Callable[[dict], str]
PayloadBuilder = Callable[[str], dict]


class RequestController:
    """Owns one conversation's thread and its request state machine."""

    def __init__(
        self,
        transport: Transport,
        build_payload: PayloadBuilder,
        mode: ConversationMode = CHAT_MODE,
        thread: Thread | None = None,
    ) -> None:
        self._transport = transport
        self._build_payload = build_payload
        self.mode = mode
        self.thread = thread if thread is not None else Thread()

        self._state = RequestState.IDLE
        self._error: str | None = None
        # Placeholder appended by the last failure; retry is valid only
        # while this exact turn is the thread's tail.
        self._failure_turn: Turn | None = None
        # (human turn, payload) of the last request that was sent.
        self._last_request: tuple[Turn, dict] | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> RequestState:
        return self._state

    @property
    def error(self) -> str | None:
        """Retryable error message from the last failure, if any."""
        return self._error

    @property
    def is_pending(self) -> bool:
        return self._state is RequestState.PENDING

    @property
    def can_retry(self) -> bool:
        return (
            self._state is RequestState.FAILED
            and self._failure_turn is not None
            and self.thread.tail is self._failure_turn
        )

    def _transition(self, new: RequestState) -> None:
        if new not in _TRANSITIONS[self._state]:
            raise RuntimeError(
                f"Illegal request transition {self._state.value} → {new.value}"
            )
        log.debug("[CTRL] %s: %s → %s",
                  self.mode.name, self._state.value, new.value)
        self._state = new

    # ------------------------------------------------------------------
    # Two-phase interface
    # ------------------------------------------------------------------

    def begin_submit(self, text: str) -> dict | None:
        """Append the human turn and return the payload to send.

        Returns *None* (and changes nothing) when *text* is blank or a
        request is already pending.
        """
        if self.is_pending:
            log.debug("[CTRL] %s: submit ignored, request pending",
                      self.mode.name)
            return None
        text = normalise_input(text)
        if not text:
            return None

        turn = Turn(self.mode.human_role, text)
        self.thread.append(turn)
        payload = self._build_payload(text)
        self._last_request = (turn, payload)
        self._failure_turn = None
        self._error = None
        self._transition(RequestState.PENDING)
        return payload

    def begin_retry(self) -> dict | None:
        """Retract the failure placeholder and return the payload to re-send.

        Returns *None* when the last failure's placeholder is not the tail
        of the thread (nothing to retry) or a request is pending.
        """
        if not self.can_retry:
            log.debug("[CTRL] %s: retry ignored (state=%s)",
                      self.mode.name, self._state.value)
            return None
        last_input = self.thread.find_last_user_input()
        if last_input is None:
            return None

        self.thread.remove_last()
        self._failure_turn = None
        self._error = None

        if self._last_request is not None and self._last_request[0] is last_input:
            payload = self._last_request[1]
        else:
            payload = self._build_payload(last_input.content)
            self._last_request = (last_input, payload)
        self._transition(RequestState.PENDING)
        return payload

    def resolve(self, answer: str) -> bool:
        """Complete the pending request with the backend's *answer*."""
        if not self.is_pending:
            log.warning("[CTRL] %s: discarding answer, no request pending",
                        self.mode.name)
            return False
        self.thread.append(Turn(self.mode.reply_role, answer))
        self._error = None
        self._transition(RequestState.SUCCEEDED)
        self._transition(RequestState.IDLE)
        return True

    def fail(self, exc: Exception) -> bool:
        """Complete the pending request as failed."""
        if not self.is_pending:
            log.warning("[CTRL] %s: discarding failure, no request pending",
                        self.mode.name)
            return False
        message = getattr(exc, "user_message", None) or self.mode.default_error
        log.warning("[CTRL] %s: request failed: %s", self.mode.name, message)

        placeholder = Turn(self.mode.reply_role, APOLOGY_TEXT)
        self.thread.append(placeholder)
        self._failure_turn = placeholder
        self._error = message
        self._transition(RequestState.FAILED)
        return True

    # ------------------------------------------------------------------
    # Synchronous interface
    # ------------------------------------------------------------------

    def _dispatch(self, payload: dict) -> None:
        try:
            answer = self._transport(payload)
        except BackendAPIError as exc:
            self.fail(exc)
        else:
            self.resolve(answer)

    def submit(self, text: str) -> bool:
        """Send *text* and wait for the outcome.  Returns *False* if ignored."""
        payload = self.begin_submit(text)
        if payload is None:
            return False
        self._dispatch(payload)
        return True

    def retry(self) -> bool:
        """Re-send the last failed request.  Returns *False* if ignored."""
        payload = self.begin_retry()
        if payload is None:
            return False
        self._dispatch(payload)
        return True

    # ------------------------------------------------------------------
    # Session management
    # ------------------------------------------------------------------

    def post_notice(self, text: str) -> bool:
        """Append an informational reply-role turn (e.g. "document loaded")."""
        if self.is_pending:
            return False
        self.thread.append(Turn(self.mode.reply_role, text))
        return True

    def reset(self) -> bool:
        """Start a new session: empty thread, no error, back to IDLE."""
        if self.is_pending:
            log.debug("[CTRL] %s: reset ignored, request pending",
                      self.mode.name)
            return False
        self.thread.clear()
        self._error = None
        self._failure_turn = None
        self._last_request = None
        self._state = RequestState.IDLE
        return True
