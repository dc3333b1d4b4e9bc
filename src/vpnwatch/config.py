"""Configuration loading and management."""

from __future__ import annotations

import json
import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

STATE_FILE = "state.json"


@dataclass
class AppConfig:
    """Application configuration with sensible defaults."""

    # VPN service to monitor, as listed by `scutil --nc list`
    service_name: str = "ExpressVPN Lightway"
    scutil_path: str = "/usr/sbin/scutil"

    # Monitor timing (seconds)
    poll_interval: float = 10.0
    settle_delay: float = 0.5
    command_timeout: float = 10.0
    network_watch_interval: float = 2.0

    # Keep the tunnel down after an explicit disconnect
    enforce_disconnect: bool = True
    enforcer_interval: float = 0.5

    # Public IP lookup
    public_ip_enabled: bool = True
    public_ip_url: str = "https://api.ipify.org"
    public_ip_ttl: float = 60.0
    public_ip_timeout: float = 5.0

    # Display
    show_tunnel_ip: bool = True
    show_local_ip: bool = False
    show_public_ip: bool = False

    # Logging
    log_level: str = "WARNING"
    log_file: str = ""

    # Paths
    cache_dir: str = field(default_factory=lambda: str(Path.home() / ".cache" / "vpnwatch"))

    @classmethod
    def load(
        cls,
        config_path: str | None = None,
        cli_overrides: dict | None = None,
    ) -> AppConfig:
        """Load config from TOML file with CLI overrides.

        Resolution order: CLI flag > env var > remembered state > config file > defaults
        """
        config = cls()

        toml_path = _resolve_config_path(config_path)
        if toml_path and toml_path.exists():
            with open(toml_path, "rb") as f:
                data = tomllib.load(f)
            _apply_toml(config, data)

        # cache_dir may come from the CLI, so resolve it before reading state
        if cli_overrides and cli_overrides.get("cache_dir"):
            config.cache_dir = cli_overrides["cache_dir"]
        _apply_state(config)

        _apply_env(config)

        if cli_overrides:
            _apply_overrides(config, cli_overrides)

        _check_intervals(config)

        return config

    @property
    def state_path(self) -> Path:
        return Path(self.cache_dir) / STATE_FILE

    @property
    def resolved_log_file(self) -> Path:
        if self.log_file:
            return Path(self.log_file).expanduser()
        return Path(self.cache_dir) / "vpnwatch.log"

    def save_service_name(self, name: str) -> None:
        """Remember the monitored service across runs."""
        self.service_name = name
        path = self.state_path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps({"service_name": name}, indent=2))
        except OSError as e:
            logger.warning("Could not save service name to %s: %s", path, e)


def _resolve_config_path(explicit_path: str | None) -> Path | None:
    """Resolve config file path."""
    if explicit_path:
        return Path(explicit_path)
    xdg = os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))
    candidates = [
        Path(xdg) / "vpnwatch" / "config.toml",
        Path.home() / ".vpnwatch.toml",
    ]
    for p in candidates:
        if p.exists():
            return p
    return None


def _apply_toml(config: AppConfig, data: dict) -> None:
    """Apply TOML data to config."""
    section_map = {
        "monitor": ["poll_interval", "settle_delay", "command_timeout", "network_watch_interval"],
        "enforcer": ["enforcer_interval"],
        "public_ip": ["public_ip_enabled", "public_ip_url", "public_ip_ttl", "public_ip_timeout"],
        "display": ["show_tunnel_ip", "show_local_ip", "show_public_ip"],
        "log": ["log_level", "log_file"],
        "cache": ["cache_dir"],
    }

    for key in ("service_name", "scutil_path", "enforce_disconnect"):
        if key in data:
            setattr(config, key, data[key])

    # Sectioned keys: e.g. [public_ip] ttl -> public_ip_ttl
    for section, keys in section_map.items():
        if section in data:
            for key in keys:
                short_key = key.removeprefix(f"{section}_")
                if short_key in data[section]:
                    setattr(config, key, data[section][short_key])


def _apply_state(config: AppConfig) -> None:
    """Apply the service name remembered by save_service_name()."""
    path = config.state_path
    if not path.exists():
        return
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        logger.debug("Ignoring unreadable state file %s: %s", path, e)
        return
    if isinstance(data, dict) and isinstance(data.get("service_name"), str) and data["service_name"]:
        config.service_name = data["service_name"]


def _to_bool(value: str) -> bool:
    return value.lower() in ("1", "true", "yes")


def _apply_env(config: AppConfig) -> None:
    """Apply environment variable overrides (VPNWATCH_ prefix)."""
    env_map = {
        "VPNWATCH_SERVICE": ("service_name", str),
        "VPNWATCH_SCUTIL": ("scutil_path", str),
        "VPNWATCH_POLL_INTERVAL": ("poll_interval", float),
        "VPNWATCH_PUBLIC_IP_URL": ("public_ip_url", str),
        "VPNWATCH_PUBLIC_IP_ENABLED": ("public_ip_enabled", _to_bool),
        "VPNWATCH_ENFORCE_DISCONNECT": ("enforce_disconnect", _to_bool),
        "VPNWATCH_LOG_LEVEL": ("log_level", str),
    }
    for env_key, (attr, converter) in env_map.items():
        val = os.environ.get(env_key)
        if val is None:
            continue
        try:
            setattr(config, attr, converter(val))
        except ValueError:
            logger.warning("Ignoring invalid %s=%r", env_key, val)


# Timing values that must be positive.
POSITIVE_FIELDS = ("poll_interval", "network_watch_interval", "enforcer_interval", "command_timeout")


def _check_intervals(config: AppConfig) -> None:
    """Reset non-positive or non-numeric timing values to their defaults."""
    for name in POSITIVE_FIELDS:
        value = getattr(config, name)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
            continue
        default = getattr(AppConfig, name)
        logger.warning("Ignoring invalid %s=%r, using %s", name, value, default)
        setattr(config, name, default)


def _apply_overrides(config: AppConfig, overrides: dict) -> None:
    """Apply CLI argument overrides."""
    for key, value in overrides.items():
        if value is not None and hasattr(config, key):
            setattr(config, key, value)
