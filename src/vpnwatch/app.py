"""vpnwatch Textual application."""

from __future__ import annotations

from textual.app import App

from vpnwatch.config import AppConfig
from vpnwatch.engine import MonitorEngine
from vpnwatch.screens.status_screen import StatusScreen


class VPNWatchApp(App):
    """Terminal front-end for the VPN monitor."""

    TITLE = "vpnwatch"

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("c", "connect", "Connect"),
        ("d", "disconnect", "Disconnect"),
        ("r", "refresh", "Refresh"),
        ("s", "pick_service", "Service"),
        ("question_mark", "help", "Help"),
    ]

    def __init__(self, config: AppConfig, engine: MonitorEngine | None = None) -> None:
        super().__init__()
        self.config = config
        self.engine = engine or MonitorEngine(config)

    def on_mount(self) -> None:
        self.engine.start_monitoring()
        self.push_screen(StatusScreen(config=self.config, engine=self.engine))

    def _delegate(self, action: str) -> None:
        """Delegate an action to the current screen if it supports it."""
        screen = self.screen
        method = getattr(screen, action, None)
        if method:
            method()

    def action_connect(self) -> None:
        self._delegate("action_connect")

    def action_disconnect(self) -> None:
        self._delegate("action_disconnect")

    def action_refresh(self) -> None:
        self._delegate("action_refresh")

    def action_pick_service(self) -> None:
        self._delegate("action_pick_service")

    def action_help(self) -> None:
        from vpnwatch.screens.help_screen import HelpScreen

        self.push_screen(HelpScreen())

    def _shutdown_services(self) -> None:
        self.engine.close()

    def on_unmount(self) -> None:
        self._shutdown_services()

    def action_quit(self) -> None:
        self._shutdown_services()
        self.exit()
