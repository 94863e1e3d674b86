from netpulse.trace import gateway
from netpulse.trace.gateway import (
    parse_bsd_route,
    parse_ip_route,
    parse_proc_net_route,
    parse_windows_route,
    resolve_gateway,
)


PROC_NET_ROUTE = """\
Iface\tDestination\tGateway \tFlags\tRefCnt\tUse\tMetric\tMask\t\tMTU\tWindow\tIRTT
wlan0\t00000000\t0101A8C0\t0003\t0\t0\t600\t00000000\t0\t0\t0
eth0\t00000000\t0100000A\t0003\t0\t0\t100\t00000000\t0\t0\t0
eth0\t0000000A\t00000000\t0001\t0\t0\t100\t00FFFFFF\t0\t0\t0
"""

IP_ROUTE = "default via 192.168.1.1 dev wlan0 proto dhcp metric 600\n"

BSD_ROUTE = """\
   route to: default
destination: default
       mask: default
    gateway: 192.168.1.254
  interface: en0
"""

WINDOWS_ROUTE = """\
IPv4 Route Table
===========================================================================
Active Routes:
Network Destination        Netmask          Gateway       Interface  Metric
          0.0.0.0          0.0.0.0      192.168.0.1    192.168.0.23     25
"""


def test_proc_net_route_prefers_lowest_metric():
    assert parse_proc_net_route(PROC_NET_ROUTE) == "10.0.0.1"


def test_proc_net_route_without_default():
    header = PROC_NET_ROUTE.splitlines()[0]
    local_only = PROC_NET_ROUTE.splitlines()[3]
    assert parse_proc_net_route(f"{header}\n{local_only}\n") is None
    assert parse_proc_net_route("") is None


def test_ip_route():
    assert parse_ip_route(IP_ROUTE) == "192.168.1.1"
    assert parse_ip_route("10.0.0.0/24 dev eth0 scope link\n") is None


def test_bsd_route():
    assert parse_bsd_route(BSD_ROUTE) == "192.168.1.254"
    assert parse_bsd_route("route: writing to routing socket: not in table\n") is None


def test_bsd_route_link_local_v6():
    assert parse_bsd_route("    gateway: fe80::1%en0\n") == "fe80::1"


def test_windows_route():
    assert parse_windows_route(WINDOWS_ROUTE) == "192.168.0.1"


def test_resolve_gateway_linux_reads_proc(tmp_path, monkeypatch):
    route_file = tmp_path / "route"
    route_file.write_text(PROC_NET_ROUTE)
    monkeypatch.setattr(gateway, "PROC_NET_ROUTE", route_file)

    assert resolve_gateway(system="Linux") == "10.0.0.1"


def test_resolve_gateway_linux_falls_back_to_ip(tmp_path, monkeypatch):
    monkeypatch.setattr(gateway, "PROC_NET_ROUTE", tmp_path / "missing")
    calls = []

    def fake_run(cmd, timeout):
        calls.append(cmd)
        return IP_ROUTE

    monkeypatch.setattr(gateway, "_run", fake_run)

    assert resolve_gateway(system="Linux") == "192.168.1.1"
    assert calls == [["ip", "route", "show", "default"]]


def test_resolve_gateway_timeout_is_none(monkeypatch):
    monkeypatch.setattr(gateway, "_run", lambda cmd, timeout: None)
    assert resolve_gateway(system="Darwin") is None


def test_resolve_gateway_unsupported_platform():
    assert resolve_gateway(system="Plan9") is None
