"""Shared test fixtures for vpnwatch tests."""

from __future__ import annotations

import textwrap
from concurrent.futures import Executor, Future
from dataclasses import dataclass

import pytest

from vpnwatch.collectors.interfaces import NetworkChangeWatcher
from vpnwatch.config import AppConfig
from vpnwatch.engine import MonitorEngine
from vpnwatch.scheduler import TimerHandle

SERVICE = "ExpressVPN Lightway"

CONNECTED_OUTPUT = textwrap.dedent("""\
    Connected
    Extended Status <dictionary> {
      IPv4 : <dictionary> {
        Addresses : <array> {
          0 : 100.64.100.2
        }
        InterfaceName : utun4
        Router : 100.64.100.2
        SubnetMasks : <array> {
          0 : 255.255.255.255
        }
      }
      IPv6 : <dictionary> {
        Addresses : <array> {
          0 : fd00:a:b::2
        }
        InterfaceName : utun4
      }
      DNS : <dictionary> {
        ServerAddresses : <array> {
          0 : 10.255.255.1
        }
      }
      Status : 2
      LastStatusChangeTime : 02/24/2026 17:00:00
    }
""")

CONNECTING_OUTPUT = textwrap.dedent("""\
    Connecting
    Extended Status <dictionary> {
      IPv4 : <dictionary> {
        Addresses : <array> {
          0 : 100.64.100.2
        }
        InterfaceName : utun4
      }
      Status : 1
      LastStatusChangeTime : 02/24/2026 17:05:00
    }
""")

DISCONNECTED_OUTPUT = textwrap.dedent("""\
    Disconnected
    Extended Status <dictionary> {
      IPv4 : <dictionary> {
        Addresses : <array> {
          0 : 100.64.100.2
        }
      }
      Status : 0
      LastStatusChangeTime : 02/24/2026 18:00:00
    }
""")

LIST_OUTPUT = textwrap.dedent("""\
    Available network connection services in the current set (*=enabled):
    * (Disconnected)   3A2B8E0C-0000-4A11-9A55-5B1D7B0E2F10 VPN (com.expressvpn.ExpressVPN.lightway) "ExpressVPN Lightway"      [VPN/com.expressvpn.ExpressVPN.lightway]
    * (Connected)      9C1B44A2-7E0A-4B4E-8D0D-6E7D1C2B9A01 PPP --> L2TP       "Office VPN"                 [PPP/L2TP]
    * (Disconnected)   11AA22BB-33CC-44DD-55EE-66FF77889900 IPSec              "Backup IPSec"               [IPSec]
""")


class ManualScheduler:
    """Scheduler driven by an explicit clock instead of timer threads."""

    def __init__(self) -> None:
        self.now = 0.0
        self._entries: list[tuple[float, int, TimerHandle, float, object, bool]] = []
        self._seq = 0

    def call_later(self, delay, callback, *, repeat=False) -> TimerHandle:
        handle = TimerHandle()
        self._push(self.now + delay, handle, delay, callback, repeat)
        return handle

    def _push(self, due, handle, delay, callback, repeat) -> None:
        self._seq += 1
        self._entries.append((due, self._seq, handle, delay, callback, repeat))

    @property
    def active(self) -> int:
        return sum(1 for entry in self._entries if not entry[2].cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing everything that comes due in order."""
        target = self.now + seconds
        while True:
            due = [e for e in self._entries if not e[2].cancelled and e[0] <= target]
            if not due:
                break
            entry = min(due, key=lambda e: (e[0], e[1]))
            self._entries.remove(entry)
            when, _, handle, delay, callback, repeat = entry
            self.now = when
            callback()
            if repeat and not handle.cancelled:
                self._push(self.now + delay, handle, delay, callback, repeat)
        self._entries = [e for e in self._entries if not e[2].cancelled]
        self.now = target


class DeferredExecutor(Executor):
    """Executor that queues work until the test runs it."""

    def __init__(self) -> None:
        self.pending: list[tuple[Future, object, tuple, dict]] = []
        self._shutdown = False

    def submit(self, fn, /, *args, **kwargs):
        if self._shutdown:
            raise RuntimeError("cannot schedule new futures after shutdown")
        future: Future = Future()
        self.pending.append((future, fn, args, kwargs))
        return future

    def run_pending(self) -> int:
        """Run queued work, including work queued while running. Returns the count."""
        count = 0
        while self.pending:
            future, fn, args, kwargs = self.pending.pop(0)
            try:
                future.set_result(fn(*args, **kwargs))
            except Exception as e:
                future.set_exception(e)
            count += 1
        return count

    def shutdown(self, wait=True, *, cancel_futures=False):
        self._shutdown = True
        if cancel_futures:
            self.pending.clear()


class FakeControl:
    """Stands in for ServiceControl with scripted `scutil` output per service."""

    def __init__(self, default: str = DISCONNECTED_OUTPUT, services: list[str] | None = None):
        self.default = default
        self.services = services if services is not None else [SERVICE, "Office VPN", "Backup IPSec"]
        self.calls: list[tuple[str, str | None]] = []
        self._scripts: dict[str, list[str]] = {}

    def script(self, service: str, *outputs: str) -> None:
        """Queue status outputs for a service; the last one repeats."""
        self._scripts[service] = list(outputs)

    def status(self, service_name: str) -> str:
        self.calls.append(("status", service_name))
        queue = self._scripts.get(service_name)
        if not queue:
            return self.default
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def start(self, service_name: str) -> None:
        self.calls.append(("start", service_name))

    def stop(self, service_name: str) -> None:
        self.calls.append(("stop", service_name))

    def list_services(self) -> list[str]:
        self.calls.append(("list", None))
        return sorted(self.services)

    def count(self, op: str, service: str | None = None) -> int:
        return sum(1 for o, s in self.calls if o == op and (service is None or s == service))


@dataclass
class Harness:
    engine: MonitorEngine
    control: FakeControl
    scheduler: ManualScheduler
    executor: DeferredExecutor
    fingerprint: list[str]

    def run(self) -> int:
        return self.executor.run_pending()


def _test_config(tmp_path, **overrides) -> AppConfig:
    values = dict(
        service_name=SERVICE,
        poll_interval=10.0,
        settle_delay=0.5,
        enforcer_interval=0.5,
        network_watch_interval=2.0,
        public_ip_enabled=False,
        cache_dir=str(tmp_path / "cache"),
    )
    values.update(overrides)
    return AppConfig(**values)


@pytest.fixture
def make_harness(tmp_path):
    """Factory for an engine wired to fakes: manual clock, deferred worker, scripted scutil."""

    def _make(public_ip=None, **config_overrides) -> Harness:
        config = _test_config(tmp_path, **config_overrides)
        control = FakeControl()
        scheduler = ManualScheduler()
        executor = DeferredExecutor()
        fingerprint = ["net-a"]
        watcher = NetworkChangeWatcher(
            scheduler,
            interval=config.network_watch_interval,
            fingerprint=lambda: fingerprint[0],
        )
        engine = MonitorEngine(
            config,
            control=control,
            scheduler=scheduler,
            executor=executor,
            public_ip=public_ip,
            watcher=watcher,
            local_ip_resolver=lambda: "192.168.1.20",
        )
        return Harness(engine, control, scheduler, executor, fingerprint)

    return _make


@pytest.fixture
def harness(make_harness):
    return make_harness()


@pytest.fixture
def sample_config(tmp_path):
    """Create a sample config file and return its path."""
    config_content = textwrap.dedent("""\
        service_name = "Office VPN"
        enforce_disconnect = false

        [monitor]
        poll_interval = 5.0
        settle_delay = 1.0

        [enforcer]
        interval = 0.25

        [public_ip]
        url = "https://ip.example.test"
        ttl = 30.0

        [display]
        show_local_ip = true
    """)
    config_file = tmp_path / "config.toml"
    config_file.write_text(config_content)
    return config_file


@pytest.fixture
def default_config():
    """Return a default AppConfig."""
    return AppConfig()
