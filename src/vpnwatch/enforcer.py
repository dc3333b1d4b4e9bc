"""Keeps a VPN service down after the user disconnected it."""

from __future__ import annotations

import logging
from typing import Callable

from vpnwatch.models import ConnectionState
from vpnwatch.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

# States that mean the tunnel is (re)establishing itself.
RECONNECT_STATES = (ConnectionState.CONNECTED, ConnectionState.CONNECTING)


def should_reassert(wants_connected: bool | None, state: ConnectionState) -> bool:
    """Whether an observed state contradicts an explicit disconnect.

    ``wants_connected`` is None until the user has connected or
    disconnected at least once; a monitor that was just started never
    fights an existing connection.
    """
    return wants_connected is False and state in RECONNECT_STATES


class DisconnectEnforcer:
    """Fast re-check loop that runs while the user wants the tunnel down.

    On-demand VPN policies can bring a stopped tunnel straight back up.
    While armed, the enforcer triggers a status check every ``interval``
    seconds; the engine re-issues the stop command whenever that check
    observes a reconnect. It does not touch monitor state itself.
    """

    def __init__(self, scheduler: Scheduler, interval: float):
        self._scheduler = scheduler
        self._interval = interval
        self._handle: TimerHandle | None = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self, tick: Callable[[], None]) -> None:
        """Start (or restart) the loop, calling ``tick`` every period."""
        self.disarm()
        logger.debug("Disconnect enforcer armed (%.2fs)", self._interval)
        self._handle = self._scheduler.call_later(self._interval, tick, repeat=True)

    def disarm(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            logger.debug("Disconnect enforcer disarmed")
