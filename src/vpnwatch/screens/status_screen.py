"""Main screen: status panel refreshed from the monitor's published state."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.screen import Screen
from textual.widgets import Footer

from vpnwatch.config import AppConfig
from vpnwatch.engine import MonitorEngine
from vpnwatch.models import ConnectionState
from vpnwatch.widgets.header_bar import HeaderBar
from vpnwatch.widgets.host_bar import HostBar
from vpnwatch.widgets.status_panel import StatusPanel

REFRESH_INTERVAL = 0.5


class StatusScreen(Screen):
    """Shows the monitor state and forwards control actions to the engine."""

    def __init__(self, config: AppConfig, engine: MonitorEngine) -> None:
        super().__init__()
        self.config = config
        self.engine = engine

    def compose(self) -> ComposeResult:
        yield HeaderBar(self.engine.service_name)
        yield StatusPanel(show_tunnel_ip=self.config.show_tunnel_ip)
        yield HostBar(
            show_local_ip=self.config.show_local_ip,
            show_public_ip=self.config.show_public_ip,
        )
        yield Footer()

    def on_mount(self) -> None:
        self.set_interval(REFRESH_INTERVAL, self.refresh_state)
        self.refresh_state()

    def refresh_state(self) -> None:
        state = self.engine.snapshot()
        self.query_one(HeaderBar).set_service(state.service_name)
        self.query_one(StatusPanel).update_state(state)
        self.query_one(HostBar).update_hosts(state)

    # --- Actions ---

    def action_connect(self) -> None:
        if self.engine.state is ConnectionState.CONNECTED and self.engine.wants_connected is not False:
            self.notify("Already connected")
            return
        self.engine.connect()
        self.notify(f"Connecting {self.engine.service_name}...")

    def action_disconnect(self) -> None:
        if self.engine.state is ConnectionState.DISCONNECTED and self.engine.wants_connected is False:
            self.notify("Already disconnected")
            return
        self.engine.disconnect()
        self.notify(f"Disconnecting {self.engine.service_name}...")

    def action_refresh(self) -> None:
        if not self.engine.check_status("refresh"):
            self.notify("Status check already running")

    def action_pick_service(self) -> None:
        from vpnwatch.screens.service_screen import ServiceScreen

        def _on_dismiss(name: str | None) -> None:
            if name and name != self.engine.service_name:
                self.engine.set_service_name(name)
                self.config.save_service_name(name)
                self.refresh_state()

        self.app.push_screen(
            ServiceScreen(self.engine, current=self.engine.service_name),
            callback=_on_dismiss,
        )
