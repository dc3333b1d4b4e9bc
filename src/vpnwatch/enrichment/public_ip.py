"""Public IP lookup with a TTL gate and a single background worker."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable

import requests

from vpnwatch.utils import is_ip

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://api.ipify.org"


class PublicIPFetcher:
    """Fetches the externally visible IP from an "echo my IP" endpoint.

    A new request is only made once ``ttl`` seconds have passed since the
    last successful fetch and no other request is outstanding. Failures
    keep the previous address and timestamp, so the next eligible trigger
    simply tries again.
    """

    def __init__(
        self,
        url: str = DEFAULT_URL,
        ttl: float = 60.0,
        timeout: float = 5.0,
        session: requests.Session | None = None,
        executor: Executor | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.url = url
        self.ttl = ttl
        self.timeout = timeout
        self._session = session or requests.Session()
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="public-ip")
        self._clock = clock
        self._lock = threading.Lock()
        self._ip: str | None = None
        self._last_fetch: float | None = None
        self._in_flight = False

    @property
    def ip(self) -> str | None:
        """Last successfully fetched address, possibly stale."""
        with self._lock:
            return self._ip

    @property
    def last_fetch(self) -> float | None:
        with self._lock:
            return self._last_fetch

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._in_flight

    def is_due(self, now: float | None = None) -> bool:
        if now is None:
            now = self._clock()
        with self._lock:
            return self._is_due(now)

    def _is_due(self, now: float) -> bool:
        return self._last_fetch is None or now - self._last_fetch >= self.ttl

    def maybe_refresh(
        self,
        callback: Callable[[str], None] | None = None,
        now: float | None = None,
    ) -> bool:
        """Start a background fetch if the TTL has expired.

        Returns True if a fetch was started. ``callback`` receives the new
        address on success and is never called on failure.
        """
        if now is None:
            now = self._clock()
        with self._lock:
            if self._in_flight:
                logger.debug("Public IP fetch already in flight")
                return False
            if not self._is_due(now):
                return False
            self._in_flight = True

        try:
            self._executor.submit(self._fetch, now, callback)
        except RuntimeError:
            # Executor already shut down.
            with self._lock:
                self._in_flight = False
            return False
        return True

    def _fetch(self, started: float, callback: Callable[[str], None] | None) -> None:
        """Perform the HTTP request in the background worker."""
        try:
            response = self._session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            address = response.text.strip()
            if not is_ip(address):
                raise ValueError(f"not an IP address: {address[:40]!r}")
        except (requests.RequestException, ValueError) as e:
            logger.debug("Public IP fetch from %s failed: %s", self.url, e)
            with self._lock:
                self._in_flight = False
            return
        except Exception:
            logger.exception("Unexpected error fetching public IP")
            with self._lock:
                self._in_flight = False
            return

        with self._lock:
            self._ip = address
            self._last_fetch = started
            self._in_flight = False

        if callback:
            try:
                callback(address)
            except Exception:
                logger.debug("Public IP callback failed", exc_info=True)

    def shutdown(self) -> None:
        """Shut down the worker without waiting for a pending request."""
        self._executor.shutdown(wait=False, cancel_futures=True)
