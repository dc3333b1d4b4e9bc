"""Modal for choosing which VPN service to monitor."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import OptionList, Static
from textual.widgets.option_list import Option

from vpnwatch.engine import MonitorEngine


class ServiceScreen(ModalScreen[str | None]):
    """Lists configured services; dismisses with the chosen name or None."""

    BINDINGS = [
        ("escape", "dismiss_modal", "Close"),
    ]

    DEFAULT_CSS = """
    ServiceScreen {
        align: center middle;
    }
    #service-dialog {
        width: 60;
        height: auto;
        max-height: 24;
        border: thick $accent;
        background: $surface;
        padding: 1 2;
    }
    #service-title {
        text-style: bold;
        margin-bottom: 1;
    }
    #service-list {
        height: auto;
        max-height: 16;
    }
    """

    def __init__(self, engine: MonitorEngine, current: str = "") -> None:
        super().__init__()
        self.engine = engine
        self._current = current

    def compose(self) -> ComposeResult:
        with Vertical(id="service-dialog"):
            yield Static("Select VPN service", id="service-title")
            yield Static("Loading...", id="service-status")
            yield OptionList(id="service-list")

    def on_mount(self) -> None:
        def _work() -> None:
            names = self.engine.list_available_services()
            self.app.call_from_thread(self.show_services, names)

        self.run_worker(_work, thread=True, exclusive=True, group="services")

    def show_services(self, names: list[str]) -> None:
        status = self.query_one("#service-status", Static)
        option_list = self.query_one("#service-list", OptionList)
        option_list.clear_options()
        if not names:
            status.update("No services found")
            return
        status.update(f"Current: {self._current}" if self._current else "")
        option_list.add_options([Option(name, id=name) for name in names])
        if self._current in names:
            option_list.highlighted = names.index(self._current)
        option_list.focus()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        self.dismiss(event.option.id)

    def action_dismiss_modal(self) -> None:
        self.dismiss(None)
