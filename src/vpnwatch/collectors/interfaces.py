"""Local interface table: primary IPv4 address and change detection."""

from __future__ import annotations

import hashlib
import logging
import socket
from typing import Callable

import psutil

from vpnwatch.scheduler import Scheduler, TimerHandle
from vpnwatch.utils import is_usable_local_ipv4

logger = logging.getLogger(__name__)

# Tunnel interfaces carry the VPN address, not the host's own one.
TUNNEL_PREFIXES = ("utun", "tun", "tap", "ppp", "ipsec", "wg")


def resolve_local_ip() -> str | None:
    """Return the host's primary IPv4 address, or None.

    Walks the interface table in name order and returns the first IPv4
    address on an interface that is up, is not a tunnel, and is not
    loopback or link-local.
    """
    try:
        addrs = psutil.net_if_addrs()
        stats = psutil.net_if_stats()
    except (OSError, psutil.Error) as e:
        logger.debug("Interface enumeration failed: %s", e)
        return None

    for name in sorted(addrs):
        if name.startswith(TUNNEL_PREFIXES):
            continue
        iface_stats = stats.get(name)
        if iface_stats is None or not iface_stats.isup:
            continue
        for addr in addrs[name]:
            if addr.family == socket.AF_INET and is_usable_local_ipv4(addr.address):
                return addr.address
    return None


def network_fingerprint() -> str | None:
    """Digest of interface names, up flags and addresses.

    Any interface going up or down, or any address change, yields a
    different digest. Returns None if the table cannot be read.
    """
    try:
        addrs = psutil.net_if_addrs()
        stats = psutil.net_if_stats()
    except (OSError, psutil.Error) as e:
        logger.debug("Interface enumeration failed: %s", e)
        return None

    parts = []
    for name in sorted(addrs):
        iface_stats = stats.get(name)
        up = bool(iface_stats and iface_stats.isup)
        addresses = sorted(a.address for a in addrs[name] if a.family in (socket.AF_INET, socket.AF_INET6))
        parts.append(f"{name}|{up}|{','.join(addresses)}")
    return hashlib.sha1("\n".join(parts).encode("utf-8")).hexdigest()


class NetworkChangeWatcher:
    """Calls back when the interface table changes.

    Polls :func:`network_fingerprint` on a short interval. The first
    reading only establishes a baseline; unreadable tables are skipped.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        interval: float = 2.0,
        fingerprint: Callable[[], str | None] = network_fingerprint,
    ) -> None:
        self._scheduler = scheduler
        self._interval = interval
        self._fingerprint = fingerprint
        self._last: str | None = None
        self._callback: Callable[[], None] | None = None
        self._handle: TimerHandle | None = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self, callback: Callable[[], None]) -> None:
        self.stop()
        self._callback = callback
        self._last = self._fingerprint()
        self._handle = self._scheduler.call_later(self._interval, self._poll, repeat=True)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._callback = None

    def _poll(self) -> None:
        current = self._fingerprint()
        if current is None:
            return
        previous, self._last = self._last, current
        if previous is not None and current != previous and self._callback is not None:
            logger.debug("Network change detected")
            self._callback()
