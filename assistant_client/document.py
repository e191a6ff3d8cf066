"""
Document-grounded question answering.

An uploaded PDF is read as text and only its first :data:`EXCERPT_CHARS`
characters are kept.  Every question asked afterwards carries that excerpt
as context.

Upload checks
-------------
* the file must have a ``.pdf`` extension
* it must not be larger than :data:`MAX_DOCUMENT_BYTES`
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .backend_api import BackendClient, build_analyze_payload
from .controller import DOCS_MODE, RequestController
from .validation import InputError

log = logging.getLogger("assistant_client")

#: Characters of document text sent along with each question.
EXCERPT_CHARS = 1000

#: Largest accepted upload (10 MiB).
MAX_DOCUMENT_BYTES = 10 * 1024 * 1024

UPLOAD_NOTICE = (
    "PDF uploaded successfully! You can now ask questions about its content."
)


@dataclass(frozen=True)
class DocumentExcerpt:
    """Bounded text taken from an uploaded document."""

    name: str
    path: str
    text: str


def read_excerpt(file_path: str, limit: int = EXCERPT_CHARS) -> DocumentExcerpt:
    """Validate *file_path* and return its leading *limit* characters.

    Raises :exc:`InputError` for unsupported or oversized files and for
    files that cannot be read.
    """
    basename = os.path.basename(file_path)
    if Path(file_path).suffix.lower() != ".pdf":
        raise InputError("Please upload a PDF file")

    try:
        size = os.path.getsize(file_path)
    except OSError as exc:
        raise InputError(f"Cannot read file: {exc}") from exc
    if size > MAX_DOCUMENT_BYTES:
        raise InputError("File size must be less than 10MB")

    try:
        with open(file_path, "r", encoding="utf-8", errors="replace") as fh:
            text = fh.read(limit)
    except OSError as exc:
        raise InputError(f"Cannot read file: {exc}") from exc

    return DocumentExcerpt(name=basename, path=file_path, text=text)


class DocumentSession:
    """Docs-mode conversation: one controller plus the attached excerpt."""

    def __init__(self, client: BackendClient) -> None:
        self.document: DocumentExcerpt | None = None
        self.controller = RequestController(
            client.post_analyze, self._build_payload, DOCS_MODE,
        )

    def _build_payload(self, question: str) -> dict:
        excerpt = self.document.text if self.document else None
        return build_analyze_payload(question, excerpt)

    def attach(self, file_path: str) -> DocumentExcerpt:
        """Load *file_path* as the context document for later questions."""
        if self.controller.is_pending:
            raise InputError("Please wait for the current answer first")
        excerpt = read_excerpt(file_path)
        self.document = excerpt
        self.controller.post_notice(UPLOAD_NOTICE)
        log.info("[DOCS] Attached %s (%d chars of context)",
                 excerpt.name, len(excerpt.text))
        return excerpt

    def detach(self) -> None:
        self.document = None

    def ask(self, question: str) -> bool:
        return self.controller.submit(question)

    def retry(self) -> bool:
        return self.controller.retry()

    def new_session(self) -> bool:
        """Drop the conversation and the attached document."""
        if not self.controller.reset():
            return False
        self.document = None
        return True
