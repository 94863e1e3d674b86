"""
Core network information queries.

Single-shot reads of the active network's DNS resolvers and Wi-Fi
signal level.
"""

import logging
import platform
import re
import subprocess
from pathlib import Path

import dns.resolver

logger = logging.getLogger(__name__)

PROC_NET_WIRELESS = Path("/proc/net/wireless")
AIRPORT_BIN = (
    "/System/Library/PrivateFrameworks/Apple80211.framework/"
    "Versions/Current/Resources/airport"
)

# RSSI bounds used to bucket signal levels
MIN_RSSI = -100
MAX_RSSI = -55
SIGNAL_LEVELS = 5


class NetInfoError(Exception):
    """Platform network state could not be read."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.detail = detail


def get_dns_servers(resolv_conf: str | None = None) -> list[str]:
    """Return the DNS servers configured for the active network."""
    try:
        if resolv_conf:
            resolver = dns.resolver.Resolver(filename=resolv_conf)
        else:
            resolver = dns.resolver.Resolver()
    except (dns.resolver.NoResolverConfiguration, OSError) as e:
        raise NetInfoError("Failed to get DNS servers", str(e)) from e

    servers = [str(ns) for ns in resolver.nameservers]
    logger.debug(f"DNS servers: {servers}")
    return servers


def calculate_signal_level(rssi: int | float, num_levels: int = SIGNAL_LEVELS) -> int:
    """Map an RSSI in dBm onto 0..num_levels-1."""
    if rssi <= MIN_RSSI:
        return 0
    if rssi >= MAX_RSSI:
        return num_levels - 1
    input_range = MAX_RSSI - MIN_RSSI
    output_range = num_levels - 1
    return int((rssi - MIN_RSSI) * output_range / input_range)


def percent_to_rssi(percent: int | float) -> int:
    """Convert a 0-100 signal quality (netsh, nmcli) to an approximate dBm."""
    percent = max(0, min(100, percent))
    return int(percent / 2 - 100)


def parse_proc_net_wireless(text: str) -> int | None:
    """Return the signal level (dBm) of the first interface listed."""
    for line in text.splitlines()[2:]:
        if ":" not in line:
            continue
        _, _, rest = line.partition(":")
        fields = rest.split()
        if len(fields) < 3:
            continue
        try:
            level = float(fields[2].rstrip("."))
        except ValueError:
            continue
        # Some drivers report an unsigned byte
        if level > 0:
            level -= 256
        return int(level)
    return None


def parse_airport(text: str) -> int | None:
    match = re.search(r"agrCtlRSSI:\s*(-?\d+)", text)
    return int(match.group(1)) if match else None


def parse_netsh(text: str) -> int | None:
    match = re.search(r"^\s*Signal\s*:\s*(\d+)%", text, re.MULTILINE)
    return percent_to_rssi(int(match.group(1))) if match else None


def parse_nmcli(text: str) -> int | None:
    for line in text.splitlines():
        active, _, signal = line.partition(":")
        if active == "yes" and signal.strip().isdigit():
            return percent_to_rssi(int(signal))
    return None


def _run(cmd: list[str], timeout: float = 3.0) -> str | None:
    try:
        output = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.debug(f"{cmd[0]} unavailable: {e}")
        return None
    return output.stdout


def get_wifi_rssi(system: str | None = None) -> int | None:
    """Return the current Wi-Fi RSSI in dBm, or None when not on Wi-Fi."""
    system = (system or platform.system()).lower()

    if system == "linux":
        try:
            rssi = parse_proc_net_wireless(PROC_NET_WIRELESS.read_text())
            if rssi is not None:
                return rssi
        except OSError as e:
            logger.debug(f"Cannot read {PROC_NET_WIRELESS}: {e}")
        output = _run(["nmcli", "-t", "-f", "ACTIVE,SIGNAL", "dev", "wifi"])
        return parse_nmcli(output) if output else None

    elif system == "darwin":
        output = _run([AIRPORT_BIN, "-I"])
        return parse_airport(output) if output else None

    elif system == "windows":
        output = _run(["netsh", "wlan", "show", "interfaces"])
        return parse_netsh(output) if output else None

    return None


def get_signal_strength(system: str | None = None) -> int:
    """Return the Wi-Fi signal level, 0 (worst) to 4 (best)."""
    rssi = get_wifi_rssi(system)
    if rssi is None:
        raise NetInfoError("Failed to get signal strength", "no active Wi-Fi interface")
    return calculate_signal_level(rssi)
