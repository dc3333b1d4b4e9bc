"""Data models for vpnwatch."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ConnectionState(Enum):
    """Connection state of a VPN service, as reported by scutil."""

    CONNECTED = "Connected"
    DISCONNECTED = "Disconnected"
    CONNECTING = "Connecting"
    DISCONNECTING = "Disconnecting"
    UNKNOWN = "Unknown"

    @classmethod
    def from_token(cls, token: str) -> ConnectionState:
        """Map the first line of a status dump to a state.

        Only the four exact tokens scutil prints are recognized; anything
        else (including "Unknown" itself and the empty string) is UNKNOWN.
        """
        for state in (cls.CONNECTED, cls.DISCONNECTED, cls.CONNECTING, cls.DISCONNECTING):
            if token == state.value:
                return state
        return cls.UNKNOWN

    @property
    def is_active(self) -> bool:
        """Whether the tunnel is up or on its way up or down."""
        return self in (
            ConnectionState.CONNECTED,
            ConnectionState.CONNECTING,
            ConnectionState.DISCONNECTING,
        )


@dataclass(frozen=True)
class StatusSnapshot:
    """Structured result of parsing one status dump."""

    state: ConnectionState = ConnectionState.UNKNOWN
    tunnel_ip: str | None = None
    interface_name: str | None = None
    connected_since: datetime | None = None


@dataclass
class MonitorState:
    """Everything the monitor publishes to its readers."""

    service_name: str
    state: ConnectionState = ConnectionState.UNKNOWN
    tunnel_ip: str | None = None
    interface_name: str | None = None
    connected_since: datetime | None = None
    local_ip: str | None = None
    public_ip: str | None = None
    wants_connected: bool | None = None

    def apply_snapshot(self, snapshot: StatusSnapshot) -> bool:
        """Overwrite the connection fields. Returns True if anything changed."""
        before = (self.state, self.tunnel_ip, self.interface_name, self.connected_since)
        self.state = snapshot.state
        self.tunnel_ip = snapshot.tunnel_ip
        self.interface_name = snapshot.interface_name
        self.connected_since = snapshot.connected_since
        return before != (self.state, self.tunnel_ip, self.interface_name, self.connected_since)

    def clear_connection(self) -> None:
        self.apply_snapshot(StatusSnapshot())
