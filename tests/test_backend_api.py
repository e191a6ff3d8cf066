"""Tests for assistant_client/backend_api.py.

``requests.post`` is patched throughout; no real HTTP requests are made.
"""

import json
import unittest
from unittest import mock

import requests

from assistant_client import backend_api as api
from assistant_client.backend_api import (
    BackendAPIError,
    BackendClient,
    _extract_error_detail,
    _summarise_payload,
    build_analyze_payload,
    build_ask_payload,
    build_chat_payload,
    build_summarize_payload,
)


def _response(status: int, body) -> mock.Mock:
    """Fake ``requests.Response``; a ``str`` body is treated as non-JSON."""
    resp = mock.Mock()
    resp.status_code = status
    resp.ok = status < 400
    if isinstance(body, str):
        resp.text = body
        resp.json.side_effect = ValueError("not JSON")
    else:
        resp.text = json.dumps(body)
        resp.json.return_value = body
    return resp


# -----------------------------------------------------------------------
# Payload builders
# -----------------------------------------------------------------------

class TestPayloadBuilders(unittest.TestCase):

    def test_chat_payload_carries_raw_message(self) -> None:
        self.assertEqual(build_chat_payload("hello"), {"message": "hello"})

    def test_analyze_payload_without_document(self) -> None:
        self.assertEqual(build_analyze_payload("What?"), {"message": "What?"})

    def test_analyze_payload_prepends_excerpt(self) -> None:
        payload = build_analyze_payload("What is it about?", "Chapter 1 text")
        self.assertEqual(
            payload["message"],
            "Context from PDF: Chapter 1 text\n\nQuestion: What is it about?",
        )

    def test_summarize_payload_defaults_model(self) -> None:
        payload = build_summarize_payload("https://youtu.be/abcdefghijk")
        self.assertEqual(payload["url"], "https://youtu.be/abcdefghijk")
        self.assertEqual(payload["model"], api.DEFAULT_MODEL)

    def test_ask_payload(self) -> None:
        payload = build_ask_payload("u", "why?", "other-model")
        self.assertEqual(payload, {"url": "u", "question": "why?", "model": "other-model"})

    def test_summarise_payload_truncates_long_text(self) -> None:
        summary = _summarise_payload({"message": "x" * 500, "model": "m"})
        self.assertTrue(summary["message"].endswith("…"))
        self.assertLess(len(summary["message"]), 100)
        self.assertEqual(summary["model"], "m")


# -----------------------------------------------------------------------
# Error detail extraction
# -----------------------------------------------------------------------

class TestErrorDetail(unittest.TestCase):

    def test_detail_string(self) -> None:
        self.assertEqual(
            _extract_error_detail(_response(500, {"detail": "overloaded"})),
            "overloaded",
        )

    def test_missing_detail(self) -> None:
        self.assertIsNone(_extract_error_detail(_response(500, {"error": "x"})))

    def test_non_string_detail_ignored(self) -> None:
        body = {"detail": [{"loc": ["body", "url"], "msg": "field required"}]}
        self.assertIsNone(_extract_error_detail(_response(422, body)))

    def test_non_json_body(self) -> None:
        self.assertIsNone(_extract_error_detail(_response(502, "<html>Bad Gateway</html>")))

    def test_user_message_falls_back_to_default(self) -> None:
        exc = BackendAPIError("x", default_message="Failed to generate summary")
        self.assertEqual(exc.user_message, "Failed to generate summary")
        exc = BackendAPIError("x", detail="quota", default_message="ignored")
        self.assertEqual(exc.user_message, "quota")

    def test_user_message_none_without_detail_or_default(self) -> None:
        self.assertIsNone(BackendAPIError("x", status_code=500).user_message)

    def test_str_includes_diagnostics(self) -> None:
        exc = BackendAPIError(
            "Backend request failed (HTTP 500).",
            status_code=500, endpoint="http://x/chat-ai", detail="overloaded",
        )
        text = str(exc)
        self.assertIn("HTTP 500", text)
        self.assertIn("http://x/chat-ai", text)
        self.assertIn("overloaded", text)


# -----------------------------------------------------------------------
# Client round-trips
# -----------------------------------------------------------------------

class TestBackendClient(unittest.TestCase):

    def setUp(self) -> None:
        patcher = mock.patch("assistant_client.backend_api.requests.post")
        self.post = patcher.start()
        self.addCleanup(patcher.stop)
        self.client = BackendClient(
            chat_url="http://test/chat-ai",
            analyze_url="http://test/api/analyze",
            summarize_url="http://test/api/summarize",
            ask_url="http://test/api/ask",
            timeout=5,
        )

    def test_chat_success(self) -> None:
        self.post.return_value = _response(200, {"message": "hi"})
        self.assertEqual(self.client.post_chat({"message": "hello"}), "hi")
        args, kwargs = self.post.call_args
        self.assertEqual(args[0], "http://test/chat-ai")
        self.assertEqual(kwargs["json"], {"message": "hello"})
        self.assertEqual(kwargs["timeout"], 5)

    def test_http_error_carries_detail(self) -> None:
        self.post.return_value = _response(500, {"detail": "overloaded"})
        with self.assertRaises(BackendAPIError) as ctx:
            self.client.post_chat({"message": "hello"})
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(ctx.exception.user_message, "overloaded")

    def test_http_error_without_detail(self) -> None:
        self.post.return_value = _response(503, "Service Unavailable")
        with self.assertRaises(BackendAPIError) as ctx:
            self.client.post_chat({"message": "hello"})
        self.assertEqual(ctx.exception.user_message, api.CHAT_ERROR)

    def test_network_failure(self) -> None:
        self.post.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(BackendAPIError) as ctx:
            self.client.post_chat({"message": "hello"})
        self.assertIsNone(ctx.exception.status_code)
        self.assertEqual(ctx.exception.user_message, api.CHAT_ERROR)

    def test_timeout_is_transport_failure(self) -> None:
        self.post.side_effect = requests.Timeout("slow")
        with self.assertRaises(BackendAPIError):
            self.client.post_ask({"url": "u", "question": "q"})

    def test_non_json_success_body(self) -> None:
        self.post.return_value = _response(200, "not json at all")
        with self.assertRaises(BackendAPIError):
            self.client.post_chat({"message": "hello"})

    def test_missing_answer_key(self) -> None:
        self.post.return_value = _response(200, {"answer": "wrong key"})
        with self.assertRaises(BackendAPIError):
            self.client.post_chat({"message": "hello"})

    def test_analyze_prefers_result_then_message(self) -> None:
        self.post.return_value = _response(200, {"result": "R", "message": "M"})
        self.assertEqual(self.client.post_analyze({"message": "q"}), "R")
        self.post.return_value = _response(200, {"message": "M"})
        self.assertEqual(self.client.post_analyze({"message": "q"}), "M")

    def test_analyze_falls_back_to_raw_body(self) -> None:
        self.post.return_value = _response(200, {"other": 1})
        self.assertEqual(
            json.loads(self.client.post_analyze({"message": "q"})), {"other": 1},
        )

    def test_analyze_error_default(self) -> None:
        self.post.return_value = _response(500, {})
        with self.assertRaises(BackendAPIError) as ctx:
            self.client.post_analyze({"message": "q"})
        self.assertEqual(ctx.exception.user_message, api.ANALYZE_ERROR)

    def test_ask_success(self) -> None:
        self.post.return_value = _response(200, {"answer": "Because."})
        self.assertEqual(
            self.client.post_ask({"url": "u", "question": "Why?"}), "Because.",
        )
        self.assertEqual(self.post.call_args[0][0], "http://test/api/ask")

    def test_summarize_passes_video_data_through(self) -> None:
        video_data = {"title": "Talk", "duration": "12:34", "views": 10}
        self.post.return_value = _response(
            200, {"summary": "A talk.", "video_data": video_data},
        )
        result = self.client.summarize("https://youtu.be/abcdefghijk")
        self.assertEqual(result.summary, "A talk.")
        self.assertEqual(result.video_data, video_data)
        self.assertEqual(
            self.post.call_args[1]["json"],
            {"url": "https://youtu.be/abcdefghijk", "model": api.DEFAULT_MODEL},
        )

    def test_summarize_missing_video_data(self) -> None:
        self.post.return_value = _response(200, {"summary": "A talk."})
        self.assertEqual(self.client.summarize("u").video_data, {})

    def test_summarize_error_default(self) -> None:
        self.post.return_value = _response(400, {"detail": "Video unavailable"})
        with self.assertRaises(BackendAPIError) as ctx:
            self.client.summarize("u")
        self.assertEqual(ctx.exception.user_message, "Video unavailable")


if __name__ == "__main__":
    unittest.main()
