"""
Main GUI application for the AI assistant client.

Layout
------
┌──────────────────────────────────────────┐
│ Menu: File | History                      │
├──────────────────────────────────────────┤
│ [ Chat ] [ Docs ] [ Video Summary ]       │  ← notebook tabs
├──────────────────────────────────────────┤
│                                           │
│   Transcript (scrollable)                 │
│                                           │
│  ⚠️ error line (hidden when no error)      │
├──────────────────────────────────────────┤
│ Input text area…         │ [Send][Retry]  │
└──────────────────────────────────────────┘

Backend calls run on daemon threads; their outcomes are posted to a queue
that the Tk main loop drains every 40 ms, so the controllers and stores
are only ever touched from the UI thread.
"""

import logging
import queue
import threading
import tkinter as tk
from tkinter import filedialog, messagebox, scrolledtext, ttk
from typing import Callable

from .backend_api import BackendClient, build_chat_payload
from .controller import CHAT_MODE, RequestController
from .document import DocumentSession
from .history_store import HistoryStore
from .snapshot import SnapshotCache
from .storage import LocalStorage
from .summary_session import SummarySession
from .thread import Thread
from .validation import InputError

log = logging.getLogger("assistant_client")

_ROLE_LABELS = {
    "user":      ("You:", "user_lbl", "user_msg"),
    "question":  ("You:", "user_lbl", "user_msg"),
    "assistant": ("Assistant:", "asst_lbl", "asst_msg"),
    "answer":    ("Assistant:", "asst_lbl", "asst_msg"),
}


class _ConversationPanel(ttk.Frame):
    """Transcript + error line + input box + Send/Retry/New buttons."""

    def __init__(
        self,
        parent: tk.Widget,
        *,
        on_send: Callable[[str], bool],
        on_retry: Callable[[], None],
        on_new: Callable[[], None] | None = None,
        new_label: str = "New Chat",
        placeholder: str = "Type your message below to begin chatting.",
    ) -> None:
        super().__init__(parent)
        self._on_send = on_send
        self._placeholder = placeholder

        self._chat = scrolledtext.ScrolledText(
            self, wrap=tk.WORD, state=tk.DISABLED,
            font=("", 10), relief=tk.SUNKEN, borderwidth=1, height=14,
        )
        self._chat.pack(fill=tk.BOTH, expand=True, padx=10, pady=(6, 0))
        self._chat.tag_config("user_lbl",
                              foreground="#005cc5", font=("", 10, "bold"))
        self._chat.tag_config("asst_lbl",
                              foreground="#6f42c1", font=("", 10, "bold"))
        self._chat.tag_config("user_msg", foreground="#1a1a2e")
        self._chat.tag_config("asst_msg", foreground="#1a1a2e")
        self._chat.tag_config("hint",
                              foreground="#6c757d", font=("", 9, "italic"))

        self._error_var = tk.StringVar()
        ttk.Label(self, textvariable=self._error_var,
                  foreground="#c0392b").pack(fill=tk.X, padx=10)

        outer = ttk.Frame(self, padding=(10, 4))
        outer.pack(fill=tk.X, side=tk.BOTTOM)

        self._input = scrolledtext.ScrolledText(
            outer, height=3, wrap=tk.WORD, font=("", 10),
            relief=tk.SUNKEN, borderwidth=1,
        )
        self._input.grid(row=0, column=0, sticky="nsew")
        self._input.bind("<Return>", self._on_enter_key)

        act_col = ttk.Frame(outer)
        act_col.grid(row=0, column=1, sticky="ns", padx=(6, 0))
        self.send_btn = ttk.Button(act_col, text="Send ➤", width=10,
                                   command=self._send)
        self.send_btn.pack(pady=2)
        self.retry_btn = ttk.Button(act_col, text="Retry ↻", width=10,
                                    command=on_retry, state=tk.DISABLED)
        self.retry_btn.pack(pady=2)
        if on_new is not None:
            ttk.Button(act_col, text=new_label, width=10,
                       command=on_new).pack(pady=2)

        outer.columnconfigure(0, weight=1)

    def _on_enter_key(self, event: tk.Event) -> str | None:
        # Shift+Enter → insert a newline (default behaviour)
        if event.state & 0x1:
            return None
        self._send()
        return "break"

    def _send(self) -> None:
        text = self._input.get("1.0", tk.END).strip()
        if not text:
            return
        # Keep the typed text when the send is refused (request pending).
        if self._on_send(text):
            self._input.delete("1.0", tk.END)

    def render(self, thread: Thread | None, controller: RequestController | None) -> None:
        """Redraw the transcript and buttons from the controller's state."""
        self._chat.config(state=tk.NORMAL)
        self._chat.delete("1.0", tk.END)
        turns = thread.turns() if thread is not None else []
        if not turns:
            self._chat.insert(tk.END, self._placeholder, "hint")
        for i, turn in enumerate(turns):
            label, lbl_tag, body_tag = _ROLE_LABELS[turn.role]
            if i:
                self._chat.insert(tk.END, "\n\n")
            stamp = turn.timestamp.astimezone().strftime("%H:%M")
            self._chat.insert(tk.END, f"{label}  {stamp}\n", lbl_tag)
            self._chat.insert(tk.END, turn.content, body_tag)
        if controller is not None and controller.is_pending:
            self._chat.insert(tk.END, "\n\n… thinking", "hint")
        self._chat.config(state=tk.DISABLED)
        self._chat.see(tk.END)

        error = controller.error if controller is not None else None
        self._error_var.set(f"⚠️  {error}" if error else "")
        pending = controller is not None and controller.is_pending
        self.send_btn.config(state=tk.DISABLED if pending else tk.NORMAL)
        can_retry = controller is not None and controller.can_retry
        self.retry_btn.config(state=tk.NORMAL if can_retry else tk.DISABLED)


class AssistantApp:
    """Main application window."""

    def __init__(
        self,
        client: BackendClient | None = None,
        storage: LocalStorage | None = None,
    ) -> None:
        self.root = tk.Tk()
        self.root.title("AI Assistant")
        self.root.geometry("1000x720")
        self.root.minsize(760, 520)

        self._client = client or BackendClient()
        self._storage = storage or LocalStorage()
        self._queue: queue.Queue = queue.Queue()

        self._chat_ctrl = RequestController(
            self._client.post_chat, build_chat_payload, CHAT_MODE,
        )
        self._docs = DocumentSession(self._client)
        self._summary = SummarySession(
            self._client,
            HistoryStore(self._storage),
            SnapshotCache(self._storage),
        )

        self._url_var = tk.StringVar()
        self._doc_var = tk.StringVar(value="No document attached")
        self._summary_status_var = tk.StringVar()

        self._build_menu()
        self._build_tabs()
        self._render_all()
        self._pump_queue()

        self.root.protocol("WM_DELETE_WINDOW", self._on_close)

    # ------------------------------------------------------------------
    # UI construction
    # ------------------------------------------------------------------

    def _build_menu(self) -> None:
        bar = tk.Menu(self.root)
        self.root.config(menu=bar)

        file_menu = tk.Menu(bar, tearoff=False)
        bar.add_cascade(label="File", menu=file_menu)
        file_menu.add_command(label="Upload PDF…", command=self._upload_pdf)
        file_menu.add_separator()
        file_menu.add_command(label="Exit", command=self._on_close)

        history_menu = tk.Menu(bar, tearoff=False)
        bar.add_cascade(label="History", menu=history_menu)
        history_menu.add_command(label="New Summary", command=self._new_summary)
        history_menu.add_command(label="Clear History",
                                 command=self._clear_history)

    def _build_tabs(self) -> None:
        self._notebook = ttk.Notebook(self.root)
        self._notebook.pack(fill=tk.BOTH, expand=True)

        # -- Chat --
        self._chat_panel = _ConversationPanel(
            self._notebook,
            on_send=self._send_chat,
            on_retry=self._retry_chat,
            on_new=self._new_chat,
        )
        self._notebook.add(self._chat_panel, text="Chat")

        # -- Docs --
        docs_tab = ttk.Frame(self._notebook)
        self._notebook.add(docs_tab, text="Docs")
        bar = ttk.Frame(docs_tab, padding=(10, 6, 10, 0))
        bar.pack(fill=tk.X)
        ttk.Button(bar, text="📎 Upload PDF…",
                   command=self._upload_pdf).pack(side=tk.LEFT)
        ttk.Label(bar, textvariable=self._doc_var,
                  foreground="#444").pack(side=tk.LEFT, padx=10)
        self._docs_panel = _ConversationPanel(
            docs_tab,
            on_send=self._send_docs,
            on_retry=self._retry_docs,
            on_new=self._new_docs,
            new_label="New Session",
            placeholder="Upload a PDF, then ask questions about it.",
        )
        self._docs_panel.pack(fill=tk.BOTH, expand=True)

        # -- Video summary --
        self._build_summary_tab()

    def _build_summary_tab(self) -> None:
        tab = ttk.Frame(self._notebook)
        self._notebook.add(tab, text="Video Summary")

        paned = ttk.PanedWindow(tab, orient=tk.HORIZONTAL)
        paned.pack(fill=tk.BOTH, expand=True)

        # Sidebar: history list
        sidebar = ttk.Frame(paned, width=220)
        paned.add(sidebar, weight=0)
        ttk.Label(sidebar, text="🕘 History").pack(anchor=tk.W, padx=4, pady=4)
        self._history_list = tk.Listbox(
            sidebar, selectmode=tk.SINGLE, font=("", 10), activestyle="none",
        )
        self._history_list.pack(fill=tk.BOTH, expand=True, padx=4)
        self._history_list.bind("<<ListboxSelect>>", self._on_history_selected)
        ttk.Button(sidebar, text="🗑 Clear History",
                   command=self._clear_history).pack(fill=tk.X, padx=4, pady=4)

        main = ttk.Frame(paned)
        paned.add(main, weight=1)

        url_row = ttk.Frame(main, padding=(10, 6, 10, 0))
        url_row.pack(fill=tk.X)
        url_entry = ttk.Entry(url_row, textvariable=self._url_var)
        url_entry.pack(side=tk.LEFT, fill=tk.X, expand=True)
        url_entry.bind("<Return>", lambda _e: self._summarize())
        self._summarize_btn = ttk.Button(url_row, text="Summarize",
                                         command=self._summarize)
        self._summarize_btn.pack(side=tk.LEFT, padx=(6, 0))
        ttk.Button(url_row, text="New Summary",
                   command=self._new_summary).pack(side=tk.LEFT, padx=(6, 0))

        ttk.Label(main, textvariable=self._summary_status_var,
                  foreground="#444").pack(fill=tk.X, padx=10)

        self._summary_text = scrolledtext.ScrolledText(
            main, wrap=tk.WORD, state=tk.DISABLED, height=10,
            font=("", 10), relief=tk.SUNKEN, borderwidth=1,
        )
        self._summary_text.pack(fill=tk.BOTH, expand=True, padx=10, pady=6)

        self._qa_panel = _ConversationPanel(
            main,
            on_send=self._send_question,
            on_retry=self._retry_question,
            placeholder="Ask a question about the video.",
        )
        self._qa_panel.pack(fill=tk.BOTH, expand=True)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _render_all(self) -> None:
        self._chat_panel.render(self._chat_ctrl.thread, self._chat_ctrl)
        self._render_docs()
        self._render_summary()

    def _render_docs(self) -> None:
        doc = self._docs.document
        self._doc_var.set(f"📄 {doc.name}" if doc else "No document attached")
        self._docs_panel.render(self._docs.controller.thread,
                                self._docs.controller)

    def _render_summary(self) -> None:
        session = self._summary
        record = session.current

        if session.is_summarizing:
            status = "Generating summary…"
        elif session.error:
            status = f"⚠️  {session.error}"
        elif record is not None:
            parts = [record.title]
            duration = record.metadata.get("duration")
            if duration:
                parts.append(f"⏱ {duration}")
            status = "  ·  ".join(parts)
        else:
            status = "Enter a YouTube URL (e.g. https://youtube.com/watch?v=...)"
        self._summary_status_var.set(status)

        if record is not None and not self._url_var.get().strip():
            self._url_var.set(record.source_url)

        self._summary_text.config(state=tk.NORMAL)
        self._summary_text.delete("1.0", tk.END)
        if record is not None:
            self._summary_text.insert(tk.END, record.summary_text)
        self._summary_text.config(state=tk.DISABLED)

        self._summarize_btn.config(
            state=tk.DISABLED if session.is_busy else tk.NORMAL,
        )
        self._qa_panel.render(
            record.derived_thread if record is not None else None, session.qa,
        )

        self._history_list.delete(0, tk.END)
        for item in session.history.records():
            stamp = item.created_at.astimezone().strftime("%Y-%m-%d %H:%M")
            self._history_list.insert(tk.END, f"{item.title}  ({stamp})")

    # ------------------------------------------------------------------
    # Background requests
    # ------------------------------------------------------------------

    def _run_in_background(self, kind: str, call: Callable[[dict], object],
                           payload: dict) -> None:
        threading.Thread(
            target=self._worker, args=(kind, call, payload), daemon=True,
        ).start()

    def _worker(self, kind: str, call: Callable[[dict], object],
                payload: dict) -> None:
        """Background thread: call the backend and push the outcome to the queue."""
        try:
            result = call(payload)
        except Exception as exc:  # noqa: BLE001 – every failure is reported in the UI
            log.error("[APP] %s request failed: %s", kind, exc)
            self._queue.put((kind, "error", payload, exc))
        else:
            self._queue.put((kind, "done", payload, result))

    # ------------------------------------------------------------------
    # Queue pump (bridges worker thread → main thread)
    # ------------------------------------------------------------------

    def _pump_queue(self) -> None:
        try:
            while True:
                kind, outcome, payload, value = self._queue.get_nowait()
                if kind == "summarize":
                    if outcome == "done":
                        self._summary.complete_summarize(payload, value)
                    else:
                        self._summary.fail_summarize(value)
                else:
                    controller = self._controller_for(kind)
                    if controller is None:
                        continue
                    if outcome == "done":
                        controller.resolve(value)
                    else:
                        controller.fail(value)
                self._render_all()
        except queue.Empty:
            pass
        self.root.after(40, self._pump_queue)

    def _controller_for(self, kind: str) -> RequestController | None:
        if kind == "chat":
            return self._chat_ctrl
        if kind == "docs":
            return self._docs.controller
        return self._summary.qa

    # ------------------------------------------------------------------
    # Chat tab
    # ------------------------------------------------------------------

    def _send_chat(self, text: str) -> bool:
        payload = self._chat_ctrl.begin_submit(text)
        if payload is not None:
            self._run_in_background("chat", self._client.post_chat, payload)
        self._render_all()
        return payload is not None

    def _retry_chat(self) -> None:
        payload = self._chat_ctrl.begin_retry()
        if payload is not None:
            self._run_in_background("chat", self._client.post_chat, payload)
        self._render_all()

    def _new_chat(self) -> None:
        self._chat_ctrl.reset()
        self._render_all()

    # ------------------------------------------------------------------
    # Docs tab
    # ------------------------------------------------------------------

    def _upload_pdf(self) -> None:
        path = filedialog.askopenfilename(
            title="Upload PDF",
            filetypes=[("PDF files", "*.pdf"), ("All files", "*.*")],
        )
        if not path:
            return
        try:
            self._docs.attach(path)
        except InputError as exc:
            messagebox.showerror("Invalid file", str(exc))
            return
        self._notebook.select(1)
        self._render_all()

    def _send_docs(self, text: str) -> bool:
        payload = self._docs.controller.begin_submit(text)
        if payload is not None:
            self._run_in_background("docs", self._client.post_analyze, payload)
        self._render_all()
        return payload is not None

    def _retry_docs(self) -> None:
        payload = self._docs.controller.begin_retry()
        if payload is not None:
            self._run_in_background("docs", self._client.post_analyze, payload)
        self._render_all()

    def _new_docs(self) -> None:
        self._docs.new_session()
        self._render_all()

    # ------------------------------------------------------------------
    # Summary tab
    # ------------------------------------------------------------------

    def _summarize(self) -> None:
        try:
            payload = self._summary.begin_summarize(self._url_var.get())
        except InputError:
            self._render_all()
            return
        if payload is not None:
            self._run_in_background(
                "summarize", self._client.post_summarize, payload,
            )
        self._render_all()

    def _send_question(self, text: str) -> bool:
        try:
            payload = self._summary.begin_ask(text)
        except InputError as exc:
            messagebox.showwarning("No summary", str(exc))
            return False
        if payload is not None:
            self._run_in_background("qa", self._client.post_ask, payload)
        self._render_all()
        return payload is not None

    def _retry_question(self) -> None:
        qa = self._summary.qa
        if qa is None:
            return
        payload = qa.begin_retry()
        if payload is not None:
            self._run_in_background("qa", self._client.post_ask, payload)
        self._render_all()

    def _on_history_selected(self, _event=None) -> None:
        sel = self._history_list.curselection()
        if not sel:
            return
        record = self._summary.open_from_history(sel[0])
        if record is not None:
            self._url_var.set(record.source_url)
        self._render_all()

    def _new_summary(self) -> None:
        if self._summary.new_summary():
            self._url_var.set("")
        self._render_all()

    def _clear_history(self) -> None:
        if not messagebox.askyesno("Clear History",
                                   "Delete all saved summaries?"):
            return
        self._summary.clear_history()
        self._render_all()

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def _on_close(self) -> None:
        """Close storage and exit."""
        self._storage.close()
        self.root.destroy()

    def run(self) -> None:
        """Start the Tk main loop."""
        self.root.mainloop()
