"""Parsers for `scutil --nc` output."""

from __future__ import annotations

import re
from datetime import datetime

from vpnwatch.models import ConnectionState, StatusSnapshot
from vpnwatch.utils import is_ipv4

# Address entries inside an "Addresses : <array> {" block, e.g. "0 : 100.64.100.2"
_ADDRESS_ENTRY = re.compile(r"^\d+\s*:\s*(?P<ip>\S+)$")

# Tried in order; first one that parses wins.
_TIMESTAMP_FORMATS = (
    "%m/%d/%Y %H:%M:%S",    # 02/24/2026 17:00:00 (POSIX locale)
    "%Y-%m-%d %H:%M:%S %z",  # 2026-02-24 17:00:00 +0100
)


def parse_status(raw: str) -> StatusSnapshot:
    """Parse the output of `scutil --nc status <service>`.

    The first line carries the state. For disconnected and unrecognized
    states nothing else is read. For the active states the rest of the
    dump is scanned for the tunnel interface, the first IPv4 address of
    an ``Addresses`` block and ``LastStatusChangeTime``.

    The tunnel IP is only reported while connected; a connecting or
    disconnecting dump may still carry a stale address block.
    """
    lines = raw.splitlines()
    first = lines[0].strip() if lines else ""
    state = ConnectionState.from_token(first)
    if not state.is_active:
        return StatusSnapshot(state=state)

    tunnel_ip: str | None = None
    interface_name: str | None = None
    connected_since: datetime | None = None
    in_addresses = False

    for line in lines[1:]:
        trimmed = line.strip()

        if in_addresses:
            in_addresses = False
            address = _address_from_entry(trimmed)
            if address is not None:
                tunnel_ip = tunnel_ip or address
                continue
            if trimmed == "}":
                continue
            # Truncated block: the line still gets the regular key scan.

        if trimmed.startswith("Addresses : <array>"):
            in_addresses = True
            continue

        key, sep, value = trimmed.partition(" : ")
        if not sep:
            continue
        if key == "InterfaceName" and interface_name is None:
            interface_name = value.strip() or None
        elif key == "LastStatusChangeTime":
            connected_since = parse_timestamp(value)

    if state is not ConnectionState.CONNECTED:
        tunnel_ip = None

    return StatusSnapshot(
        state=state,
        tunnel_ip=tunnel_ip,
        interface_name=interface_name,
        connected_since=connected_since,
    )


def _address_from_entry(line: str) -> str | None:
    """Return the IPv4 address on an address-block line, if it holds one.

    A closing brace, an IPv6 entry or any other line ends the block
    without a result.
    """
    match = _ADDRESS_ENTRY.match(line)
    candidate = match.group("ip") if match else line
    return candidate if is_ipv4(candidate) else None


def parse_timestamp(value: str) -> datetime | None:
    """Parse a LastStatusChangeTime value into an aware datetime.

    Values without an offset are taken as local time.
    """
    value = value.strip()
    for fmt in _TIMESTAMP_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        return parsed if parsed.tzinfo else parsed.astimezone()
    return None


def parse_service_list(raw: str) -> list[str]:
    """Extract service names from `scutil --nc list` output.

    Each service line carries its name in the first pair of double quotes:

        * (Disconnected)   9C1B... PPP --> L2TP   "Office VPN"   [PPP/L2TP]

    Lines without a quoted name (such as the header) are skipped.
    """
    names: list[str] = []
    for line in raw.splitlines():
        start = line.find('"')
        if start == -1:
            continue
        end = line.find('"', start + 1)
        if end == -1:
            continue
        name = line[start + 1 : end]
        if name:
            names.append(name)
    return sorted(names)
