"""
Inference backend API client.

Every mode talks to the backend the same way: a JSON ``POST`` whose reply
carries the answer under a mode-specific key.  Anything that keeps a usable
answer from coming back (connection failure, timeout, non-2xx status,
unparseable or incomplete body) is raised as :class:`BackendAPIError`.
"""

import json
import logging
import os
from dataclasses import dataclass, field

import requests

log = logging.getLogger("assistant_client")


# ---------------------------------------------------------------------------
# Endpoints & defaults (override with environment variables)
# ---------------------------------------------------------------------------

CHAT_URL = os.environ.get("ASSISTANT_CHAT_URL", "http://localhost:8585/chat-ai")
ANALYZE_URL = os.environ.get(
    "ASSISTANT_ANALYZE_URL", "http://localhost:8000/api/analyze",
)
SUMMARIZE_URL = os.environ.get(
    "ASSISTANT_SUMMARIZE_URL", "http://127.0.0.1:8000/api/summarize",
)
ASK_URL = os.environ.get("ASSISTANT_ASK_URL", "http://localhost:8000/api/ask")

#: Model identifier sent with summary-mode requests.
DEFAULT_MODEL = os.environ.get("ASSISTANT_MODEL", "llama3-70b-8192")

#: Seconds before a request is abandoned and reported as a transport failure.
REQUEST_TIMEOUT = 120

_HEADERS = {
    "Content-Type": "application/json",
    "Accept":       "application/json",
}

# Fallback texts used when the backend gives no ``detail``.
CHAT_ERROR = "Failed to get answer"
ANALYZE_ERROR = "Unable to complete analysis. Please try again."
SUMMARIZE_ERROR = "Failed to generate summary"
ASK_ERROR = "Failed to process question"


# ---------------------------------------------------------------------------
# Error-handling helpers
# ---------------------------------------------------------------------------

class BackendAPIError(Exception):
    """Transport-level failure that preserves diagnostic context.

    Attributes
    ----------
    status_code : int | None
        HTTP status code (``None`` when no response arrived).
    endpoint : str
        The URL that was called.
    detail : str | None
        The ``detail`` string from the error body, when the backend sent one.
    default_message : str | None
        Text shown to the user when *detail* is absent (*None*: caller decides).
    response_body : str
        First 500 chars of the response body.
    payload_summary : dict | None
        Summarised payload for reproducing the issue.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
        detail: str | None = None,
        default_message: str | None = None,
        response_body: str = "",
        payload_summary: dict | None = None,
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        self.detail = detail
        self.default_message = default_message
        self.response_body = response_body
        self.payload_summary = payload_summary
        super().__init__(message)

    @property
    def user_message(self) -> str | None:
        """Text for the retryable error flag; *None* lets the caller pick a fallback."""
        return self.detail or self.default_message

    def __str__(self) -> str:  # noqa: D105
        parts = [super().__str__()]
        if self.status_code is not None:
            parts.append(f"  HTTP {self.status_code}")
        if self.endpoint:
            parts.append(f"  Endpoint: {self.endpoint}")
        if self.detail:
            parts.append(f"  Detail: {self.detail}")
        if self.response_body:
            parts.append(f"  Response: {self.response_body[:500]}")
        if self.payload_summary:
            parts.append(f"  Payload keys: {list(self.payload_summary.keys())}")
        return "\n".join(parts)


def _extract_error_detail(response: requests.Response) -> str | None:
    """Return the ``detail`` string of an error body, or *None*.

    FastAPI-style backends answer ``{"detail": "..."}``; validation errors
    put a list there instead, which is not user-readable and is ignored.
    """
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        detail = body.get("detail")
        if isinstance(detail, str) and detail.strip():
            return detail
    return None


def _summarise_payload(payload: dict) -> dict:
    """Return a compact summary of a request payload for diagnostics.

    Long text fields (document context can be large) are truncated.
    """
    summary = {}
    for k, v in payload.items():
        if isinstance(v, str) and len(v) > 80:
            summary[k] = v[:80] + "…"
        else:
            summary[k] = v
    return summary


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------

def build_chat_payload(message: str) -> dict:
    """Build the request body for free-form chat."""
    return {"message": message}


def build_analyze_payload(question: str, excerpt: str | None = None) -> dict:
    """Build the request body for document Q&A.

    When a document is attached its excerpt is prepended to the question.
    """
    if excerpt:
        message = f"Context from PDF: {excerpt}\n\nQuestion: {question}"
    else:
        message = question
    return {"message": message}


def build_summarize_payload(url: str, model: str | None = None) -> dict:
    return {"url": url, "model": model or DEFAULT_MODEL}


def build_ask_payload(url: str, question: str, model: str | None = None) -> dict:
    return {"url": url, "question": question, "model": model or DEFAULT_MODEL}


# ---------------------------------------------------------------------------
# Response parsers
# ---------------------------------------------------------------------------

def _answer_text(body, key: str) -> str | None:
    """Return ``body[key]`` when it is a string, else *None*."""
    if isinstance(body, dict):
        value = body.get(key)
        if isinstance(value, str):
            return value
    return None


def _analysis_text(body) -> str:
    """Docs replies use ``result`` or ``message``; anything else is shown raw."""
    if isinstance(body, dict):
        for key in ("result", "message"):
            value = body.get(key)
            if value:
                return value if isinstance(value, str) else json.dumps(value)
    return json.dumps(body, ensure_ascii=False)


@dataclass
class SummaryResult:
    """A successful summarize reply."""

    summary: str
    video_data: dict = field(default_factory=dict)


class BackendClient:
    """Thin wrapper around the backend's JSON endpoints."""

    def __init__(
        self,
        *,
        chat_url: str = CHAT_URL,
        analyze_url: str = ANALYZE_URL,
        summarize_url: str = SUMMARIZE_URL,
        ask_url: str = ASK_URL,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self.chat_url = chat_url
        self.analyze_url = analyze_url
        self.summarize_url = summarize_url
        self.ask_url = ask_url
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _post(self, url: str, payload: dict, default_message: str):
        """POST *payload* and return the decoded JSON body of a 2xx reply."""
        summary = _summarise_payload(payload)
        log.debug("[API] POST %s  payload=%s", url, summary)

        try:
            response = requests.post(
                url, headers=_HEADERS, json=payload, timeout=self.timeout,
            )
        except requests.RequestException as exc:
            log.error("[API] Network error calling %s: %s: %s",
                      url, type(exc).__name__, exc)
            raise BackendAPIError(
                f"Could not reach the backend: {type(exc).__name__}: {exc}",
                endpoint=url,
                default_message=default_message,
                payload_summary=summary,
            ) from exc

        log.debug("[API] POST %s → %d  (body len=%d)",
                  url, response.status_code, len(response.text or ""))

        if not response.ok:
            detail = _extract_error_detail(response)
            log.error("[API] HTTP %d from %s: %s",
                      response.status_code, url, detail or "(no detail)")
            raise BackendAPIError(
                f"Backend request failed (HTTP {response.status_code}).",
                status_code=response.status_code,
                endpoint=url,
                detail=detail,
                default_message=default_message,
                response_body=response.text[:500] if response.text else "",
                payload_summary=summary,
            )

        try:
            return response.json()
        except ValueError as exc:
            log.error("[API] Non-JSON response from %s: %s",
                      url, (response.text or "")[:200])
            raise BackendAPIError(
                f"Backend returned a non-JSON response (HTTP {response.status_code}).",
                status_code=response.status_code,
                endpoint=url,
                default_message=default_message,
                response_body=response.text[:500] if response.text else "",
                payload_summary=summary,
            ) from exc

    def _post_for_text(
        self, url: str, payload: dict, key: str, default_message: str,
    ) -> str:
        body = self._post(url, payload, default_message)
        text = _answer_text(body, key)
        if text is None:
            raise BackendAPIError(
                f"Unexpected response format.\n"
                f"Expected a string under '{key}' in the response.",
                endpoint=url,
                default_message=default_message,
                response_body=json.dumps(body)[:500],
                payload_summary=_summarise_payload(payload),
            )
        return text

    # ------------------------------------------------------------------
    # Public interface: each takes a ready payload and returns the answer
    # ------------------------------------------------------------------

    def post_chat(self, payload: dict) -> str:
        """Send a chat payload and return the assistant's ``message``."""
        return self._post_for_text(self.chat_url, payload, "message", CHAT_ERROR)

    def post_analyze(self, payload: dict) -> str:
        """Send a document-question payload and return the analysis text."""
        body = self._post(self.analyze_url, payload, ANALYZE_ERROR)
        return _analysis_text(body)

    def post_ask(self, payload: dict) -> str:
        """Send a video question and return the ``answer``."""
        return self._post_for_text(self.ask_url, payload, "answer", ASK_ERROR)

    def post_summarize(self, payload: dict) -> SummaryResult:
        """Send a summarize payload and return the summary plus video data."""
        body = self._post(self.summarize_url, payload, SUMMARIZE_ERROR)
        summary = _answer_text(body, "summary")
        if summary is None:
            raise BackendAPIError(
                "Unexpected response format.\n"
                "Expected a string under 'summary' in the response.",
                endpoint=self.summarize_url,
                default_message=SUMMARIZE_ERROR,
                response_body=json.dumps(body)[:500],
                payload_summary=_summarise_payload(payload),
            )
        video_data = body.get("video_data")
        if not isinstance(video_data, dict):
            video_data = {}
        return SummaryResult(summary=summary, video_data=video_data)

    def summarize(self, url: str, model: str | None = None) -> SummaryResult:
        return self.post_summarize(build_summarize_payload(url, model))
