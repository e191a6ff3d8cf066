"""Tests for assistant_client/document.py."""

import os
import tempfile
import unittest
from unittest import mock

from assistant_client import document
from assistant_client.backend_api import BackendAPIError
from assistant_client.document import (
    EXCERPT_CHARS,
    UPLOAD_NOTICE,
    DocumentSession,
    read_excerpt,
)
from assistant_client.validation import InputError


class _FakeClient:

    def __init__(self, *outcomes) -> None:
        self.outcomes = list(outcomes)
        self.payloads: list[dict] = []

    def post_analyze(self, payload: dict) -> str:
        self.payloads.append(payload)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class _TempFileTestCase(unittest.TestCase):

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)

    def write(self, name: str, text: str) -> str:
        path = os.path.join(self._tmp.name, name)
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(text)
        return path


# -----------------------------------------------------------------------
# Excerpt reading
# -----------------------------------------------------------------------

class TestReadExcerpt(_TempFileTestCase):

    def test_excerpt_is_bounded(self) -> None:
        path = self.write("report.pdf", "a" * 1500 + "b" * 10)
        excerpt = read_excerpt(path)
        self.assertEqual(excerpt.name, "report.pdf")
        self.assertEqual(len(excerpt.text), EXCERPT_CHARS)
        self.assertNotIn("b", excerpt.text)

    def test_short_document_kept_whole(self) -> None:
        path = self.write("note.PDF", "short text")
        self.assertEqual(read_excerpt(path).text, "short text")

    def test_non_pdf_rejected(self) -> None:
        path = self.write("notes.txt", "hello")
        with self.assertRaises(InputError):
            read_excerpt(path)

    def test_oversized_rejected(self) -> None:
        path = self.write("big.pdf", "x" * 64)
        with mock.patch.object(document, "MAX_DOCUMENT_BYTES", 10):
            with self.assertRaises(InputError):
                read_excerpt(path)

    def test_missing_file_rejected(self) -> None:
        with self.assertRaises(InputError):
            read_excerpt(os.path.join(self._tmp.name, "missing.pdf"))


# -----------------------------------------------------------------------
# Document session
# -----------------------------------------------------------------------

class TestDocumentSession(_TempFileTestCase):

    def test_question_without_document_sent_raw(self) -> None:
        client = _FakeClient("Answer")
        session = DocumentSession(client)
        session.ask("What?")
        self.assertEqual(client.payloads, [{"message": "What?"}])

    def test_attach_posts_notice_and_prefixes_questions(self) -> None:
        client = _FakeClient("It is a report.")
        session = DocumentSession(client)
        session.attach(self.write("r.pdf", "Quarterly numbers"))

        thread = session.controller.thread
        self.assertEqual(thread.tail.content, UPLOAD_NOTICE)

        session.ask("What is this?")
        self.assertEqual(
            client.payloads[0]["message"],
            "Context from PDF: Quarterly numbers\n\nQuestion: What is this?",
        )
        self.assertEqual(
            [(t.role, t.content) for t in thread][-2:],
            [("user", "What is this?"), ("assistant", "It is a report.")],
        )

    def test_retry_resends_original_context(self) -> None:
        client = _FakeClient(BackendAPIError("x", status_code=500), "ok")
        session = DocumentSession(client)
        session.attach(self.write("one.pdf", "first doc"))
        session.ask("Q")
        self.assertEqual(session.controller.error,
                         document.DOCS_MODE.default_error)

        session.document = read_excerpt(self.write("two.pdf", "second doc"))
        self.assertTrue(session.retry())
        self.assertEqual(client.payloads[0], client.payloads[1])
        self.assertIn("first doc", client.payloads[1]["message"])

    def test_attach_rejected_while_pending(self) -> None:
        session = DocumentSession(_FakeClient())
        session.controller.begin_submit("Q")
        with self.assertRaises(InputError):
            session.attach(self.write("r.pdf", "x"))

    def test_new_session_drops_document(self) -> None:
        session = DocumentSession(_FakeClient())
        session.attach(self.write("r.pdf", "x"))
        self.assertTrue(session.new_session())
        self.assertIsNone(session.document)
        self.assertEqual(len(session.controller.thread), 0)


if __name__ == "__main__":
    unittest.main()
