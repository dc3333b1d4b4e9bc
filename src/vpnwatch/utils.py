"""Utility functions for IP validation and uptime formatting."""

from __future__ import annotations

import ipaddress
from datetime import datetime


def is_ipv4(value: str) -> bool:
    """Check whether a string is a dotted-quad IPv4 address."""
    try:
        ipaddress.IPv4Address(value)
        return True
    except ValueError:
        return False


def is_ip(value: str) -> bool:
    """Check whether a string is an IPv4 or IPv6 address."""
    try:
        ipaddress.ip_address(value)
        return True
    except ValueError:
        return False


def is_usable_local_ipv4(value: str) -> bool:
    """True for IPv4 addresses that can carry outbound traffic.

    Loopback, link-local (169.254/16) and unspecified addresses are excluded.
    """
    try:
        addr = ipaddress.IPv4Address(value)
    except ValueError:
        return False
    return not (addr.is_loopback or addr.is_link_local or addr.is_unspecified)


def format_uptime(since: datetime, now: datetime | None = None) -> str:
    """Format how long a connection has been up, e.g. "2h 14m" or "7m"."""
    if now is None:
        now = datetime.now().astimezone()
    seconds = max(0, int((now - since).total_seconds()))
    hours, remainder = divmod(seconds, 3600)
    minutes = remainder // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
