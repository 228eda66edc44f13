"""
script_editor.py - Minimal in-terminal editor for scripts.

Used by `please edit` when neither $VISUAL nor $EDITOR is set. The app never
writes anything itself: it returns the edited text on save, or None if the
user backs out, and the caller decides what to do with it.
"""

from __future__ import annotations

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header, TextArea


class ScriptEditorApp(App[str | None]):
    CSS = """
    TextArea {
        border: round $primary;
        margin: 0 1;
    }
    TextArea:focus {
        border: round #FF4500;
    }
    """

    BINDINGS = [
        Binding("ctrl+s", "save", "Save", priority=True),
        Binding("escape", "cancel", "Discard changes", priority=True),
    ]

    def __init__(self, script_name: str, content: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.script_name = script_name
        self.original_content = content

    def compose(self) -> ComposeResult:
        yield Header()
        yield TextArea(self.original_content, id="script")
        yield Footer()

    def on_mount(self):
        self.title = f"{self.script_name}.sh"
        self.query_one(TextArea).focus()

    def action_save(self):
        text = self.query_one(TextArea).text
        # Unchanged buffer is reported the same way as a cancel
        self.exit(text if text != self.original_content else None)

    def action_cancel(self):
        self.exit(None)
