"""Tests for the input-box handling in assistant_client/app.py.

Methods are called on stand-in objects, so no Tk window is created.
"""

import importlib.util
import unittest
from types import SimpleNamespace

from assistant_client.backend_api import build_chat_payload
from assistant_client.controller import RequestController

_HAS_TK = importlib.util.find_spec("_tkinter") is not None

if _HAS_TK:
    from assistant_client.app import AssistantApp, _ConversationPanel


class _InputBox:
    """Mimics the two Text-widget calls ``_send`` makes."""

    def __init__(self, text: str) -> None:
        self.text = text

    def get(self, start, end) -> str:
        return self.text + "\n"

    def delete(self, start, end) -> None:
        self.text = ""


def _panel(text: str, accepted: bool) -> SimpleNamespace:
    sent: list[str] = []

    def on_send(value: str) -> bool:
        sent.append(value)
        return accepted

    return SimpleNamespace(_input=_InputBox(text), _on_send=on_send, sent=sent)


# -----------------------------------------------------------------------
# Conversation panel
# -----------------------------------------------------------------------

@unittest.skipUnless(_HAS_TK, "tkinter is not available")
class TestConversationPanelSend(unittest.TestCase):

    def test_accepted_text_clears_input(self) -> None:
        panel = _panel("  hello ", accepted=True)
        _ConversationPanel._send(panel)
        self.assertEqual(panel.sent, ["hello"])
        self.assertEqual(panel._input.text, "")

    def test_refused_text_stays_in_input(self) -> None:
        panel = _panel("typed while busy", accepted=False)
        _ConversationPanel._send(panel)
        self.assertEqual(panel.sent, ["typed while busy"])
        self.assertEqual(panel._input.text, "typed while busy")

    def test_blank_input_not_sent(self) -> None:
        panel = _panel("   ", accepted=True)
        _ConversationPanel._send(panel)
        self.assertEqual(panel.sent, [])


# -----------------------------------------------------------------------
# Chat send handler
# -----------------------------------------------------------------------

@unittest.skipUnless(_HAS_TK, "tkinter is not available")
class TestSendChat(unittest.TestCase):

    def setUp(self) -> None:
        self.started: list[dict] = []
        self.app = SimpleNamespace(
            _chat_ctrl=RequestController(lambda p: "ok", build_chat_payload),
            _client=SimpleNamespace(post_chat=None),
            _run_in_background=lambda kind, fn, payload: self.started.append(payload),
            _render_all=lambda: None,
        )

    def test_reports_acceptance(self) -> None:
        self.assertTrue(AssistantApp._send_chat(self.app, "first"))
        self.assertEqual(self.started, [{"message": "first"}])

    def test_reports_refusal_while_pending(self) -> None:
        AssistantApp._send_chat(self.app, "first")
        self.assertFalse(AssistantApp._send_chat(self.app, "second"))
        self.assertEqual(self.started, [{"message": "first"}])


if __name__ == "__main__":
    unittest.main()
