"""Local input checks that run before anything reaches the network."""

import re

#: Canonical watch / short-link URL followed by an 11-character video id.
VIDEO_URL_RE = re.compile(
    r"^(https?://)?(www\.)?(youtube\.com/watch\?v=|youtu\.be/)[a-zA-Z0-9_-]{11}$"
)

INVALID_URL_MESSAGE = "Please enter a valid YouTube URL"


class InputError(ValueError):
    """A submission rejected locally (shown inline, never sent)."""


def is_valid_video_url(url: str) -> bool:
    return bool(VIDEO_URL_RE.fullmatch(url))


def validate_video_url(url: str) -> str:
    """Return *url* unchanged, or raise :exc:`InputError` if it is malformed.

    The text is matched as entered; surrounding whitespace is not trimmed.
    """
    if not is_valid_video_url(url or ""):
        raise InputError(INVALID_URL_MESSAGE)
    return url


def normalise_input(text: str | None) -> str:
    """Trim a free-text submission; empty means "nothing to send"."""
    return (text or "").strip()
