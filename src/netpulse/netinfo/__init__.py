"""
Network Info Module

Point-in-time queries of DNS resolvers and Wi-Fi signal quality.
"""

from netpulse.netinfo.core import (
    NetInfoError,
    get_dns_servers,
    get_signal_strength,
    get_wifi_rssi,
    calculate_signal_level,
)

__all__ = [
    "NetInfoError",
    "get_dns_servers",
    "get_signal_strength",
    "get_wifi_rssi",
    "calculate_signal_level",
]
