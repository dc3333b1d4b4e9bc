"""Monitor engine: decides when to query a VPN service and publishes what it finds."""

from __future__ import annotations

import dataclasses
import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from functools import partial
from typing import Callable

from vpnwatch.collectors.interfaces import NetworkChangeWatcher, resolve_local_ip
from vpnwatch.collectors.scutil import ServiceControl
from vpnwatch.config import AppConfig
from vpnwatch.enforcer import DisconnectEnforcer, should_reassert
from vpnwatch.enrichment.public_ip import PublicIPFetcher
from vpnwatch.models import ConnectionState, MonitorState, StatusSnapshot
from vpnwatch.parser import parse_status
from vpnwatch.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class MonitorEngine:
    """Thread-safe owner of all monitor state.

    Status checks are started by the fallback timer, by interface changes,
    by the disconnect enforcer, after control commands, and on demand. All
    of them go through :meth:`check_status`, which allows at most one
    outstanding query; extra triggers are dropped, not queued.

    `scutil` runs on a single background worker, so status queries and
    control commands execute in the order they were issued. Results are
    applied under the engine lock and tagged with the generation they were
    started in: stopping the monitor or switching services starts a new
    generation, and anything that arrives for an older one is discarded.
    """

    def __init__(
        self,
        config: AppConfig,
        control: ServiceControl | None = None,
        scheduler: Scheduler | None = None,
        executor: Executor | None = None,
        public_ip: PublicIPFetcher | None = None,
        watcher: NetworkChangeWatcher | None = None,
        local_ip_resolver: Callable[[], str | None] = resolve_local_ip,
    ):
        self.config = config
        self._control = control or ServiceControl(config.scutil_path, timeout=config.command_timeout)
        self._scheduler = scheduler or Scheduler()
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="scutil")
        if public_ip is None and config.public_ip_enabled:
            public_ip = PublicIPFetcher(
                url=config.public_ip_url,
                ttl=config.public_ip_ttl,
                timeout=config.public_ip_timeout,
            )
        self._public_ip = public_ip
        self._watcher = watcher or NetworkChangeWatcher(self._scheduler, config.network_watch_interval)
        self._resolve_local_ip = local_ip_resolver
        self._enforcer = DisconnectEnforcer(self._scheduler, config.enforcer_interval)

        self._lock = threading.RLock()
        self._state = MonitorState(service_name=config.service_name)
        self._running = False
        self._generation = 0
        self._check_in_flight = False
        self._fallback: TimerHandle | None = None
        self._pending: set[TimerHandle] = set()
        self._listeners: list[Callable[[], None]] = []

    # --- Published state ---

    def snapshot(self) -> MonitorState:
        """Copy of everything the monitor currently publishes."""
        with self._lock:
            return dataclasses.replace(self._state)

    @property
    def state(self) -> ConnectionState:
        with self._lock:
            return self._state.state

    @property
    def service_name(self) -> str:
        with self._lock:
            return self._state.service_name

    @property
    def wants_connected(self) -> bool | None:
        with self._lock:
            return self._state.wants_connected

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    @property
    def check_in_flight(self) -> bool:
        with self._lock:
            return self._check_in_flight

    @property
    def enforcer_armed(self) -> bool:
        with self._lock:
            return self._enforcer.armed

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Register a callback run after each published change.

        Callbacks run on whichever thread applied the change.
        """
        with self._lock:
            self._listeners.append(callback)

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener()
            except Exception:
                logger.exception("Monitor listener failed")

    # --- Lifecycle ---

    def start_monitoring(self) -> None:
        """Arm the timers and the network watcher, then check immediately."""
        with self._lock:
            if self._running:
                return
            self._running = True
            self._generation += 1
            self._arm_triggers()
            logger.info("Monitoring %s", self._state.service_name)
        self.check_status("start")

    def stop_monitoring(self) -> None:
        """Cancel every trigger. Results still in flight are discarded."""
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._generation += 1
            self._check_in_flight = False
            self._disarm_triggers()
            logger.info("Stopped monitoring %s", self._state.service_name)

    def close(self) -> None:
        """Stop monitoring and shut down the background workers."""
        self.stop_monitoring()
        self._executor.shutdown(wait=False, cancel_futures=True)
        if self._public_ip is not None:
            self._public_ip.shutdown()

    def _arm_triggers(self) -> None:
        """(Re)arm all triggers for the current generation. Caller holds the lock."""
        self._disarm_triggers()
        generation = self._generation
        self._fallback = self._scheduler.call_later(
            self.config.poll_interval,
            partial(self._on_trigger, generation, "timer"),
            repeat=True,
        )
        self._watcher.start(partial(self._on_trigger, generation, "network change"))
        if self._state.wants_connected is False and self.config.enforce_disconnect:
            self._enforcer.arm(partial(self._on_trigger, generation, "enforcer"))

    def _disarm_triggers(self) -> None:
        if self._fallback is not None:
            self._fallback.cancel()
            self._fallback = None
        self._watcher.stop()
        self._enforcer.disarm()
        for handle in self._pending:
            handle.cancel()
        self._pending.clear()

    def _on_trigger(self, generation: int, reason: str) -> None:
        self._request_check(reason, generation)

    # --- Status checks ---

    def check_status(self, reason: str = "manual") -> bool:
        """Query the service in the background.

        Returns False if the monitor is stopped or a check is already
        outstanding, in which case nothing is started.
        """
        return self._request_check(reason, None)

    def _request_check(self, reason: str, generation: int | None) -> bool:
        with self._lock:
            if not self._running:
                return False
            if generation is not None and generation != self._generation:
                return False
            if self._check_in_flight:
                logger.debug("Status check (%s) dropped: one already in flight", reason)
                return False
            self._check_in_flight = True
            generation = self._generation
            service = self._state.service_name
            if not self._submit(self._run_check, generation, service):
                self._check_in_flight = False
                return False
        return True

    def _submit(self, fn: Callable, *args) -> bool:
        try:
            self._executor.submit(fn, *args)
        except RuntimeError:
            logger.debug("Worker shut down; dropping %s", getattr(fn, "__name__", fn))
            return False
        return True

    def _run_check(self, generation: int, service: str) -> None:
        """Run one status query on the worker thread."""
        try:
            snapshot = parse_status(self._control.status(service))
        except Exception:
            logger.exception("Status check for %s failed", service)
            snapshot = StatusSnapshot()
        self._apply(generation, service, snapshot)

    def _apply(self, generation: int, service: str, snapshot: StatusSnapshot) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding late status for %s", service)
                return
            self._check_in_flight = False
            previous = self._state.state
            changed = self._state.apply_snapshot(snapshot)
            reassert = self.config.enforce_disconnect and should_reassert(
                self._state.wants_connected, snapshot.state
            )

        if previous is not snapshot.state:
            logger.info("%s: %s -> %s", service, previous.value, snapshot.state.value)
        if changed:
            self._notify()

        if reassert:
            # Listeners may have switched service, stopped monitoring or reconnected.
            with self._lock:
                reassert = generation == self._generation and should_reassert(
                    self._state.wants_connected, snapshot.state
                )
        if reassert:
            logger.info("%s came back (%s) after disconnect; stopping it again", service, snapshot.state.value)
            self._control.stop(service)
            self._schedule_check(self.config.settle_delay, generation, "settle after re-stop")

        self._refresh_host_info(generation)

    def _schedule_check(self, delay: float, generation: int, reason: str) -> None:
        """One-shot check after ``delay``, cancelled by stop or a service switch."""
        with self._lock:
            if not self._running or generation != self._generation:
                return
            handle: TimerHandle | None = None

            def _fire() -> None:
                with self._lock:
                    self._pending.discard(handle)
                self._request_check(reason, generation)

            handle = self._scheduler.call_later(delay, _fire)
            self._pending.add(handle)

    # --- Host addresses ---

    def _refresh_host_info(self, generation: int) -> None:
        local_ip = self._resolve_local_ip()
        with self._lock:
            if generation != self._generation:
                return
            before = (self._state.local_ip, self._state.public_ip)
            self._state.local_ip = local_ip
            if self._public_ip is not None and self._public_ip.ip is not None:
                self._state.public_ip = self._public_ip.ip
            changed = before != (self._state.local_ip, self._state.public_ip)
        if changed:
            self._notify()
        if self._public_ip is not None:
            self._public_ip.maybe_refresh(callback=self._on_public_ip)

    def _on_public_ip(self, address: str) -> None:
        with self._lock:
            if not self._running or self._state.public_ip == address:
                return
            self._state.public_ip = address
        logger.info("Public IP is now %s", address)
        self._notify()

    # --- Control ---

    def connect(self) -> None:
        """Start the service and re-check once it has had time to react."""
        with self._lock:
            self._state.wants_connected = True
            self._enforcer.disarm()
            service = self._state.service_name
            generation = self._generation
            self._submit(self._control.start, service)
        self._notify()
        self._schedule_check(self.config.settle_delay, generation, "settle after connect")

    def disconnect(self) -> None:
        """Stop the service and keep it stopped against on-demand reconnects."""
        with self._lock:
            self._state.wants_connected = False
            service = self._state.service_name
            generation = self._generation
            self._submit(self._control.stop, service)
            if self._running and self.config.enforce_disconnect:
                self._enforcer.arm(partial(self._on_trigger, generation, "enforcer"))
        self._notify()
        self._schedule_check(self.config.settle_delay, generation, "settle after disconnect")

    def set_service_name(self, name: str) -> None:
        """Monitor a different service and check it right away.

        Connection fields reset to unknown until the first check of the
        new service lands; an armed enforcer follows the new service.
        """
        name = name.strip()
        if not name:
            return
        with self._lock:
            old = self._state.service_name
            self._state.service_name = name
            self._state.clear_connection()
            self._generation += 1
            self._check_in_flight = False
            if self._running:
                self._arm_triggers()
            else:
                self._disarm_triggers()
        logger.info("Service changed: %s -> %s", old, name)
        self._notify()
        self.check_status("service change")

    def list_available_services(self) -> list[str]:
        """Configured service names, sorted. Blocks on `scutil`."""
        return self._control.list_services()
