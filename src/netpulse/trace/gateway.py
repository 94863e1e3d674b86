"""
Default gateway lookup.

The gateway is reported as hop 1 without probing, so the lookup must be
quick and bounded.
"""

import ipaddress
import logging
import platform
import re
import socket
import struct
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

PROC_NET_ROUTE = Path("/proc/net/route")

RTF_UP = 0x0001
RTF_GATEWAY = 0x0002


def parse_proc_net_route(text: str) -> str | None:
    """Parse /proc/net/route and return the default gateway, lowest metric first."""
    best: tuple[int, str] | None = None
    for line in text.splitlines()[1:]:
        fields = line.split()
        if len(fields) < 8:
            continue
        try:
            destination = int(fields[1], 16)
            gateway = int(fields[2], 16)
            flags = int(fields[3], 16)
            metric = int(fields[6])
            mask = int(fields[7], 16)
        except ValueError:
            continue
        if destination != 0 or mask != 0 or not flags & RTF_UP or not flags & RTF_GATEWAY:
            continue
        address = socket.inet_ntoa(struct.pack("<L", gateway))
        if best is None or metric < best[0]:
            best = (metric, address)
    return best[1] if best else None


def parse_ip_route(text: str) -> str | None:
    """Parse `ip route show default` output."""
    for line in text.splitlines():
        match = re.search(r"^default\s+via\s+(\S+)", line.strip())
        if match:
            return _normalize(match.group(1))
    return None


def parse_bsd_route(text: str) -> str | None:
    """Parse `route -n get default` output (macOS/BSD)."""
    match = re.search(r"^\s*gateway:\s*(\S+)", text, re.MULTILINE)
    if match:
        return _normalize(match.group(1))
    return None


def parse_windows_route(text: str) -> str | None:
    """Parse `route print 0.0.0.0` output."""
    for line in text.splitlines():
        fields = line.split()
        if len(fields) >= 3 and fields[0] == "0.0.0.0" and fields[1] == "0.0.0.0":
            address = _normalize(fields[2])
            if address:
                return address
    return None


def _normalize(candidate: str) -> str | None:
    # Link-local IPv6 gateways carry a zone suffix ("fe80::1%en0")
    candidate = candidate.split("%", 1)[0]
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return None


def _run(cmd: list[str], timeout: float) -> str | None:
    try:
        output = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.warning(f"Gateway lookup timed out: {' '.join(cmd)}")
        return None
    except FileNotFoundError:
        logger.debug(f"{cmd[0]} command not found")
        return None
    return output.stdout


def resolve_gateway(timeout: float = 2.0, system: str | None = None) -> str | None:
    """Return the default-route gateway address, or None if there is none."""
    system = (system or platform.system()).lower()

    if system == "linux":
        try:
            gateway = parse_proc_net_route(PROC_NET_ROUTE.read_text())
            if gateway:
                return gateway
        except OSError as e:
            logger.debug(f"Cannot read {PROC_NET_ROUTE}: {e}")
        output = _run(["ip", "route", "show", "default"], timeout)
        return parse_ip_route(output) if output else None

    elif system == "darwin" or system.endswith("bsd"):
        output = _run(["route", "-n", "get", "default"], timeout)
        return parse_bsd_route(output) if output else None

    elif system == "windows":
        output = _run(["route", "print", "0.0.0.0"], timeout)
        return parse_windows_route(output) if output else None

    logger.warning(f"Gateway lookup unsupported on {system}")
    return None
