"""CLI entry point for vpnwatch."""

from __future__ import annotations

import argparse
import sys
import tomllib

from rich.console import Console
from rich.table import Table

from vpnwatch import __version__
from vpnwatch.config import AppConfig
from vpnwatch.logsetup import setup_logging


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0: {value!r}")
    return number


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="vpnwatch",
        description="Watch and control a macOS VPN service from the terminal",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"vpnwatch {__version__}",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--service",
        metavar="NAME",
        help="VPN service to monitor, as shown by `scutil --nc list`",
    )
    parser.add_argument(
        "--poll-interval",
        type=_positive_float,
        metavar="SECS",
        help="Fallback status check interval in seconds (default: 10.0)",
    )
    parser.add_argument(
        "--no-enforce",
        action="store_true",
        help="Do not fight on-demand reconnects after a disconnect",
    )
    parser.add_argument(
        "--no-public-ip",
        action="store_true",
        help="Disable public IP lookups",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Log level (default: WARNING)",
    )
    parser.add_argument(
        "--log-file",
        metavar="PATH",
        help="Log file for the UI (default: ~/.cache/vpnwatch/vpnwatch.log)",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--status",
        action="store_true",
        help="Print the current status once and exit",
    )
    mode.add_argument(
        "--list-services",
        action="store_true",
        help="List configured VPN services and exit",
    )
    return parser.parse_args(argv)


def _build_overrides(args: argparse.Namespace) -> dict:
    overrides: dict = {}
    if args.service:
        overrides["service_name"] = args.service
    if args.poll_interval is not None:
        overrides["poll_interval"] = args.poll_interval
    if args.no_enforce:
        overrides["enforce_disconnect"] = False
    if args.no_public_ip:
        overrides["public_ip_enabled"] = False
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.log_file:
        overrides["log_file"] = args.log_file
    return overrides


def print_status(config: AppConfig, console: Console | None = None) -> None:
    """Query the service once and print a table."""
    from vpnwatch.collectors.interfaces import resolve_local_ip
    from vpnwatch.collectors.scutil import ServiceControl
    from vpnwatch.parser import parse_status
    from vpnwatch.widgets.status_panel import STATE_STYLES

    console = console or Console()
    control = ServiceControl(config.scutil_path, timeout=config.command_timeout)
    snapshot = parse_status(control.status(config.service_name))

    table = Table(title=config.service_name, show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("State", f"[{STATE_STYLES[snapshot.state]}]{snapshot.state.value}[/]")
    table.add_row("Tunnel IP", snapshot.tunnel_ip or "-")
    table.add_row("Interface", snapshot.interface_name or "-")
    since = snapshot.connected_since.strftime("%Y-%m-%d %H:%M:%S %z") if snapshot.connected_since else "-"
    table.add_row("Since", since)
    table.add_row("Local IP", resolve_local_ip() or "-")
    console.print(table)


def print_services(config: AppConfig, console: Console | None = None) -> None:
    from vpnwatch.collectors.scutil import ServiceControl

    console = console or Console()
    control = ServiceControl(config.scutil_path, timeout=config.command_timeout)
    for name in control.list_services():
        marker = "*" if name == config.service_name else " "
        console.print(f"{marker} {name}", highlight=False)


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = AppConfig.load(config_path=args.config, cli_overrides=_build_overrides(args))
    except tomllib.TOMLDecodeError as e:
        print(f"vpnwatch: invalid config file: {e}", file=sys.stderr)
        sys.exit(2)

    if args.status or args.list_services:
        setup_logging(config.log_level)
        if args.status:
            print_status(config)
        else:
            print_services(config)
        return

    setup_logging(config.log_level, config.resolved_log_file)

    from vpnwatch.app import VPNWatchApp

    app = VPNWatchApp(config)
    app.run()


if __name__ == "__main__":
    main()
