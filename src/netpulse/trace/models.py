"""
Data models for the streaming traceroute.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable


class RunState(str, Enum):
    """Lifecycle state of a traceroute run."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.COMPLETED, RunState.CANCELLED, RunState.FAILED)


class ProbeStatus(str, Enum):
    """What a single probe observed."""
    RESPONDER = "responder"      # intermediate router answered (TTL exceeded)
    DESTINATION = "destination"  # echo reply from the target itself
    NO_RESPONSE = "no_response"  # timeout, silence, or cancelled
    ERROR = "error"              # probe could not be executed


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of one bounded-TTL probe."""
    status: ProbeStatus
    address: str | None = None
    rtt_ms: float | None = None
    reason: str | None = None

    @classmethod
    def responder(cls, address: str, rtt_ms: float | None = None) -> "ProbeOutcome":
        return cls(ProbeStatus.RESPONDER, address=address, rtt_ms=rtt_ms)

    @classmethod
    def destination(cls, address: str, rtt_ms: float | None = None) -> "ProbeOutcome":
        return cls(ProbeStatus.DESTINATION, address=address, rtt_ms=rtt_ms)

    @classmethod
    def no_response(cls) -> "ProbeOutcome":
        return cls(ProbeStatus.NO_RESPONSE)

    @classmethod
    def error(cls, reason: str) -> "ProbeOutcome":
        return cls(ProbeStatus.ERROR, reason=reason)

    @property
    def has_responder(self) -> bool:
        return self.status in (ProbeStatus.RESPONDER, ProbeStatus.DESTINATION) and bool(self.address)


@dataclass(frozen=True)
class Hop:
    """A single discovered hop."""
    ttl: int
    address: str | None = None
    is_gateway: bool = False
    is_destination: bool = False
    rtt_ms: float | None = None

    @property
    def label(self) -> str:
        return "gateway" if self.is_gateway else "hop"

    def to_dict(self) -> dict[str, Any]:
        return {
            "ttl": self.ttl,
            "label": self.label,
            "address": self.address,
            "is_destination": self.is_destination,
            "rtt_ms": self.rtt_ms,
        }


# Stream events

@dataclass(frozen=True)
class TraceEvent:
    """Base class for everything delivered to a result sink."""
    run_id: str

    kind = "event"
    terminal = False

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.kind, "run_id": self.run_id}


@dataclass(frozen=True)
class HopEvent(TraceEvent):
    hop: Hop = field(kw_only=True)

    kind = "hop"

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(self.hop.to_dict())
        return data


@dataclass(frozen=True)
class DestinationReached(TraceEvent):
    ttl: int = 0
    address: str | None = None

    kind = "destination-reached"

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({"ttl": self.ttl, "address": self.address})
        return data


@dataclass(frozen=True)
class EndOfStream(TraceEvent):
    kind = "end-of-stream"
    terminal = True


@dataclass(frozen=True)
class TraceError(TraceEvent):
    code: str = "TRACEROUTE_ERROR"
    message: str = ""

    kind = "error"
    terminal = True

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({"code": self.code, "message": self.message})
        return data


@dataclass(frozen=True)
class Cancelled(TraceEvent):
    kind = "cancelled"
    terminal = True


ResultSink = Callable[[TraceEvent], None]
