"""Main status panel: connection state, tunnel address and uptime."""

from __future__ import annotations

from rich.text import Text
from textual.widgets import Static

from vpnwatch.models import ConnectionState, MonitorState
from vpnwatch.utils import format_uptime

STATE_STYLES = {
    ConnectionState.CONNECTED: "bold green",
    ConnectionState.DISCONNECTED: "bold red",
    ConnectionState.CONNECTING: "bold yellow",
    ConnectionState.DISCONNECTING: "bold yellow",
    ConnectionState.UNKNOWN: "bold grey50",
}


class StatusPanel(Static):
    """Connection state of the monitored service."""

    DEFAULT_CSS = """
    StatusPanel {
        height: auto;
        border: round $accent;
        padding: 1 2;
        margin: 1 2;
    }
    """

    def __init__(self, show_tunnel_ip: bool = True) -> None:
        super().__init__()
        self._show_tunnel_ip = show_tunnel_ip
        self._state: MonitorState | None = None

    def on_mount(self) -> None:
        self._refresh_display()

    def update_state(self, state: MonitorState) -> None:
        self._state = state
        self._refresh_display()

    def _refresh_display(self) -> None:
        self.update(render_status(self._state, self._show_tunnel_ip))


def render_status(state: MonitorState | None, show_tunnel_ip: bool = True) -> Text:
    """Build the panel text for a published monitor state."""
    text = Text()
    if state is None:
        text.append("Waiting for first status check...", style="grey50")
        return text

    text.append("● ", style=STATE_STYLES[state.state])
    text.append(state.state.value, style=STATE_STYLES[state.state])
    text.append(f"  {state.service_name}\n", style="dim")

    if state.state is ConnectionState.CONNECTED:
        if show_tunnel_ip and state.tunnel_ip:
            text.append(f"Tunnel IP:  {state.tunnel_ip}\n")
        if state.interface_name:
            text.append(f"Interface:  {state.interface_name}\n")
        if state.connected_since:
            text.append(f"Connected:  {format_uptime(state.connected_since)}\n")

    if state.wants_connected is False and state.state is not ConnectionState.DISCONNECTED:
        text.append("Holding disconnected against auto-reconnect\n", style="yellow")
    return text
