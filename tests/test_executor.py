import sys
import threading
import time

import pytest

from netpulse.trace.executor import PingProbeExecutor, build_ping_command
from netpulse.trace.models import ProbeStatus

from conftest import python_command


def test_intermediate_responder(spawned):
    executor = PingProbeExecutor(command_builder=python_command(
        "print('From 10.0.0.1 icmp_seq=1 Time to live exceeded')"
    ))

    outcome = executor.probe("8.8.8.8", 2, timeout=5)

    assert outcome.status == ProbeStatus.RESPONDER
    assert outcome.address == "10.0.0.1"
    assert spawned[0].returncode is not None


def test_echo_reply_is_destination(spawned):
    executor = PingProbeExecutor(command_builder=python_command(
        "print('64 bytes from 10.0.0.9: icmp_seq=1 ttl=60 time=3.2 ms')"
    ))

    outcome = executor.probe("10.0.0.9", 5, timeout=5)

    assert outcome.status == ProbeStatus.DESTINATION
    assert outcome.address == "10.0.0.9"
    assert outcome.rtt_ms == 3.2


def test_silent_probe_is_no_response(spawned):
    executor = PingProbeExecutor(command_builder=python_command("import sys; sys.exit(1)"))

    outcome = executor.probe("8.8.8.8", 3, timeout=5)

    assert outcome.status == ProbeStatus.NO_RESPONSE
    assert spawned[0].returncode == 1


def test_timeout_kills_process(spawned):
    executor = PingProbeExecutor(command_builder=python_command("import time; time.sleep(30)"))

    started = time.monotonic()
    outcome = executor.probe("8.8.8.8", 3, timeout=0.3)

    assert outcome.status == ProbeStatus.NO_RESPONSE
    assert time.monotonic() - started < 5
    assert spawned[0].returncode is not None


def test_cancel_aborts_probe(spawned):
    executor = PingProbeExecutor(command_builder=python_command("import time; time.sleep(30)"))
    cancel = threading.Event()
    timer = threading.Timer(0.2, cancel.set)
    timer.start()

    started = time.monotonic()
    outcome = executor.probe("8.8.8.8", 3, timeout=20, cancel_event=cancel)
    timer.cancel()

    assert outcome.status == ProbeStatus.NO_RESPONSE
    assert time.monotonic() - started < 5
    assert spawned[0].returncode is not None


def test_already_cancelled_spawns_nothing(spawned):
    executor = PingProbeExecutor(command_builder=python_command("print('From 10.0.0.1')"))
    cancel = threading.Event()
    cancel.set()

    outcome = executor.probe("8.8.8.8", 3, timeout=5, cancel_event=cancel)

    assert outcome.status == ProbeStatus.NO_RESPONSE
    assert spawned == []


def test_missing_binary_is_error():
    executor = PingProbeExecutor(ping_binary="/nonexistent/netpulse-ping", system="Linux")

    outcome = executor.probe("8.8.8.8", 2, timeout=1)

    assert outcome.status == ProbeStatus.ERROR
    assert "not found" in outcome.reason


def test_unsupported_platform_is_error():
    outcome = PingProbeExecutor(system="Plan9").probe("8.8.8.8", 2, timeout=1)
    assert outcome.status == ProbeStatus.ERROR


def test_linux_command():
    assert build_ping_command("8.8.8.8", 4, 2.0, system="Linux") == [
        "ping", "-n", "-c", "1", "-t", "4", "-W", "2", "8.8.8.8",
    ]


def test_macos_command():
    cmd = build_ping_command("8.8.8.8", 4, 1.5, system="Darwin")
    assert cmd == ["ping", "-n", "-c", "1", "-m", "4", "-t", "2", "8.8.8.8"]
    assert build_ping_command("2001:db8::1", 4, 1.0, system="Darwin")[0] == "ping6"


def test_windows_command():
    assert build_ping_command("8.8.8.8", 4, 2.0, system="Windows") == [
        "ping", "-n", "1", "-i", "4", "-w", "2000", "8.8.8.8",
    ]


def test_unsupported_platform_command():
    with pytest.raises(ValueError):
        build_ping_command("8.8.8.8", 4, 2.0, system="Plan9")
