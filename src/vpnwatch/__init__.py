"""vpnwatch: VPN service status monitor for the terminal."""

__version__ = "0.3.0"
