"""Network-connection control through `scutil --nc`."""

from __future__ import annotations

import logging
import subprocess

from vpnwatch.parser import parse_service_list

logger = logging.getLogger(__name__)

DEFAULT_SCUTIL = "/usr/sbin/scutil"


class ServiceControl:
    """Runs `scutil --nc` subcommands for VPN services.

    Every call blocks until the command exits or the timeout expires, so
    callers run it off the UI thread. Failures never raise: a command that
    cannot be launched or times out produces empty output, which the
    status parser reads as an unknown state.
    """

    def __init__(self, executable: str = DEFAULT_SCUTIL, timeout: float | None = 10.0):
        self.executable = executable
        self.timeout = timeout

    def run(self, *args: str) -> str:
        """Run `scutil --nc <args>` and return stdout and stderr merged."""
        cmd = [self.executable, "--nc", *args]
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.warning("%s timed out after %ss", " ".join(cmd), self.timeout)
            return ""
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning("Could not run %s: %s", " ".join(cmd), e)
            return ""
        return result.stdout or ""

    def status(self, service_name: str) -> str:
        return self.run("status", service_name)

    def start(self, service_name: str) -> None:
        logger.info("Starting %s", service_name)
        self.run("start", service_name)

    def stop(self, service_name: str) -> None:
        logger.info("Stopping %s", service_name)
        self.run("stop", service_name)

    def list_services(self) -> list[str]:
        """Names of all configured network services, sorted."""
        return parse_service_list(self.run("list"))
