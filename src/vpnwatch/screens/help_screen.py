"""Help modal screen showing all key bindings."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Static

BUILTIN_BINDINGS = [
    ("c", "Connect the monitored service"),
    ("d", "Disconnect and keep it down"),
    ("r", "Check status now"),
    ("s", "Choose another VPN service"),
    ("?", "Show this help"),
    ("q", "Quit"),
]


class HelpScreen(ModalScreen[None]):
    """Modal displaying all key bindings."""

    BINDINGS = [
        ("escape", "dismiss_modal", "Close"),
        ("question_mark", "dismiss_modal", "Close"),
    ]

    DEFAULT_CSS = """
    HelpScreen {
        align: center middle;
    }
    #help-dialog {
        width: 56;
        height: auto;
        max-height: 20;
        border: thick $accent;
        background: $surface;
        padding: 1 2;
    }
    #help-title {
        text-style: bold;
        text-align: center;
        margin-bottom: 1;
    }
    #help-bindings {
        margin-bottom: 1;
    }
    #help-close {
        dock: bottom;
        width: 100%;
    }
    """

    def compose(self) -> ComposeResult:
        with VerticalScroll(id="help-dialog"):
            yield Static("Key Bindings", id="help-title")
            yield Static(self._format_bindings(), id="help-bindings")
            yield Button("Close [Esc]", id="help-close", variant="primary")

    def _format_bindings(self) -> str:
        lines = []
        for key, desc in BUILTIN_BINDINGS:
            lines.append(f"  {key:8s} {desc}")
        return "\n".join(lines)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "help-close":
            self.dismiss(None)

    def action_dismiss_modal(self) -> None:
        self.dismiss(None)
