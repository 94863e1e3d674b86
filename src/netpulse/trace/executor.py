"""
Probe executors.

A probe sends one echo request with a limited TTL and reports who
answered. The production executor shells out to the platform ping tool;
tests substitute a scripted executor.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import ipaddress
import logging
import math
import platform
import subprocess
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable

from netpulse.trace.models import ProbeOutcome
from netpulse.trace.parser import parse_reply

logger = logging.getLogger(__name__)

# How often a running probe checks for cancellation
POLL_INTERVAL = 0.05

CommandBuilder = Callable[[str, int, float], list[str]]


class ProbeExecutor(ABC):
    """Runs a single bounded-TTL probe."""

    @abstractmethod
    def probe(
        self,
        target: str,
        ttl: int,
        timeout: float,
        cancel_event: threading.Event | None = None,
    ) -> ProbeOutcome:
        """Probe target at ttl and return within roughly timeout seconds.

        Implementations must release every resource they acquire before
        returning, and return promptly once cancel_event is set.
        """
        raise NotImplementedError


def build_ping_command(
    target: str,
    ttl: int,
    timeout: float,
    ping_binary: str = "ping",
    system: str | None = None,
) -> list[str]:
    """Build a single-echo ping command with the given TTL."""
    system = (system or platform.system()).lower()
    wait_s = str(max(1, math.ceil(timeout)))

    try:
        is_v6 = ipaddress.ip_address(target).version == 6
    except ValueError:
        is_v6 = False

    if system == "linux":
        return [ping_binary, "-n", "-c", "1", "-t", str(ttl), "-W", wait_s, target]
    elif system == "darwin" or system.endswith("bsd"):
        if is_v6:
            return ["ping6", "-n", "-c", "1", "-h", str(ttl), target]
        return [ping_binary, "-n", "-c", "1", "-m", str(ttl), "-t", wait_s, target]
    elif system == "windows":
        return [ping_binary, "-n", "1", "-i", str(ttl), "-w", str(int(timeout * 1000)), target]

    raise ValueError(f"Unsupported platform: {system}")


class PingProbeExecutor(ProbeExecutor):
    """Probe executor backed by the system ping command."""

    def __init__(
        self,
        ping_binary: str = "ping",
        system: str | None = None,
        command_builder: CommandBuilder | None = None,
    ):
        self.ping_binary = ping_binary
        self.system = system
        self._command_builder = command_builder

    def build_command(self, target: str, ttl: int, timeout: float) -> list[str]:
        if self._command_builder:
            return self._command_builder(target, ttl, timeout)
        return build_ping_command(target, ttl, timeout, self.ping_binary, self.system)

    def probe(
        self,
        target: str,
        ttl: int,
        timeout: float,
        cancel_event: threading.Event | None = None,
    ) -> ProbeOutcome:
        if cancel_event is not None and cancel_event.is_set():
            return ProbeOutcome.no_response()

        try:
            cmd = self.build_command(target, ttl, timeout)
        except ValueError as e:
            return ProbeOutcome.error(str(e))

        logger.debug(f"Probing {target} ttl={ttl}: {' '.join(cmd)}")

        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
            )
        except FileNotFoundError:
            return ProbeOutcome.error(f"{cmd[0]} command not found")
        except OSError as e:
            return ProbeOutcome.error(f"Failed to run {cmd[0]}: {e}")

        with proc:
            output = self._collect(proc, timeout, cancel_event)

        if output is None:
            return ProbeOutcome.no_response()

        reply = parse_reply(output)
        if reply is None:
            return ProbeOutcome.no_response()
        if reply.is_echo_reply:
            return ProbeOutcome.destination(reply.address, reply.rtt_ms)
        return ProbeOutcome.responder(reply.address, reply.rtt_ms)

    def _collect(
        self,
        proc: subprocess.Popen,
        timeout: float,
        cancel_event: threading.Event | None,
    ) -> str | None:
        """Wait for proc, returning its output or None on timeout/cancel.

        The process is always reaped before this returns.
        """
        deadline = time.monotonic() + timeout
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.debug("Probe timed out")
                    return None
                if cancel_event is not None and cancel_event.is_set():
                    logger.debug("Probe cancelled")
                    return None
                try:
                    stdout, _ = proc.communicate(timeout=min(POLL_INTERVAL, remaining))
                    return stdout or ""
                except subprocess.TimeoutExpired:
                    continue
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.communicate()
