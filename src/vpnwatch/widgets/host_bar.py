"""Bottom bar showing the host's local and public addresses."""

from __future__ import annotations

from textual.widgets import Static

from vpnwatch.models import MonitorState


class HostBar(Static):
    """Local and public IP, each shown only if enabled in the config."""

    DEFAULT_CSS = """
    HostBar {
        dock: bottom;
        height: 1;
        background: $surface;
        color: $text-muted;
    }
    """

    def __init__(self, show_local_ip: bool = False, show_public_ip: bool = False) -> None:
        super().__init__()
        self._show_local_ip = show_local_ip
        self._show_public_ip = show_public_ip

    def on_mount(self) -> None:
        self.update(" ")

    def update_hosts(self, state: MonitorState) -> None:
        parts = []
        if self._show_local_ip:
            parts.append(f"Local: {state.local_ip or 'N/A'}")
        if self._show_public_ip:
            parts.append(f"Public: {state.public_ip or 'N/A'}")
        self.update(" " + " | ".join(parts) + " " if parts else " ")
