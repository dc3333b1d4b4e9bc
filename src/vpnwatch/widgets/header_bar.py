"""Header bar widget showing hostname and the monitored service."""

from __future__ import annotations

import platform

from textual.widgets import Static


class HeaderBar(Static):
    """Top bar: hostname and service name."""

    DEFAULT_CSS = """
    HeaderBar {
        dock: top;
        height: 1;
        background: $accent;
        color: $text;
        text-style: bold;
    }
    """

    def __init__(self, service_name: str = "") -> None:
        super().__init__()
        self._service_name = service_name

    def on_mount(self) -> None:
        self._refresh_display()

    def set_service(self, service_name: str) -> None:
        if service_name != self._service_name:
            self._service_name = service_name
            self._refresh_display()

    def _refresh_display(self) -> None:
        hostname = platform.node() or "unknown"
        self.update(f" vpnwatch | {hostname} | {self._service_name or '-'} ")
