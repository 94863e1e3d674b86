"""
Parse responder addresses out of ping output.

Handles the formats printed by iputils (Linux), BSD/macOS ping and
Windows ping when a single echo request is sent with a limited TTL:

    From 10.0.0.1 icmp_seq=1 Time to live exceeded
    From _gateway (192.168.1.1) icmp_seq=1 Time to live exceeded
    92 bytes from 10.0.0.1: Time to live exceeded
    Reply from 10.0.0.1: TTL expired in transit.
    64 bytes from 8.8.8.8: icmp_seq=1 ttl=117 time=10.2 ms
"""

import ipaddress
import re
from dataclasses import dataclass
from typing import Iterable

_FROM_RE = re.compile(r"\bfrom\s+(\S.*)$", re.IGNORECASE)
_NAMED_RE = re.compile(r"\S+\s+\(([^)\s]+)\)")
_RTT_RE = re.compile(r"\btime\s*[=<]\s*(\d+(?:\.\d+)?)\s*ms", re.IGNORECASE)
_ECHO_RE = re.compile(r"\b(?:bytes from|reply from)\b", re.IGNORECASE)
_ERROR_WORDS = ("exceeded", "expired", "unreachable", "prohibited", "redirect")


@dataclass(frozen=True)
class ParsedReply:
    """A responder line found in probe output."""
    address: str
    is_echo_reply: bool = False
    rtt_ms: float | None = None


def _valid_address(candidate: str) -> str | None:
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return None


def _extract_address(rest: str) -> str | None:
    named = _NAMED_RE.match(rest)
    if named:
        address = _valid_address(named.group(1))
        if address:
            return address

    token = rest.split()[0].rstrip(",")
    # "10.0.0.1:" and "fe80::1:" carry a trailing separator
    candidates = [token]
    if token.endswith(":"):
        candidates.insert(0, token[:-1])
    for candidate in candidates:
        address = _valid_address(candidate)
        if address:
            return address
    return None


def parse_line(line: str) -> ParsedReply | None:
    """Parse a single output line."""
    if not isinstance(line, str):
        return None
    line = line.strip()
    match = _FROM_RE.search(line)
    if not match:
        return None

    address = _extract_address(match.group(1))
    if not address:
        return None

    lowered = line.lower()
    is_echo = bool(_ECHO_RE.search(line)) and not any(w in lowered for w in _ERROR_WORDS)

    rtt = None
    rtt_match = _RTT_RE.search(line)
    if rtt_match:
        rtt = float(rtt_match.group(1))

    return ParsedReply(address=address, is_echo_reply=is_echo, rtt_ms=rtt)


def parse_reply(lines: Iterable[str] | str | None) -> ParsedReply | None:
    """Return the first responder line found, or None.

    Never raises: malformed, empty or non-text input simply has no match.
    """
    if lines is None:
        return None
    if isinstance(lines, str):
        lines = lines.splitlines()
    try:
        for line in lines:
            reply = parse_line(line)
            if reply:
                return reply
    except TypeError:
        return None
    return None


def parse_responder(lines: Iterable[str] | str | None) -> str | None:
    """Return the first responder address in probe output, or None."""
    reply = parse_reply(lines)
    return reply.address if reply else None
