"""
Traceroute Module

Incremental traceroute that streams hops to a result sink as they are
discovered.
"""

from netpulse.trace.engine import (
    TracerouteEngine,
    RunHandle,
    EventDispatcher,
    resolve_target,
)
from netpulse.trace.errors import (
    TracerouteError,
    ValidationError,
    RunRejectedError,
    ResourceError,
)
from netpulse.trace.executor import (
    ProbeExecutor,
    PingProbeExecutor,
    build_ping_command,
)
from netpulse.trace.gateway import resolve_gateway
from netpulse.trace.models import (
    Hop,
    ProbeOutcome,
    ProbeStatus,
    RunState,
    TraceEvent,
    HopEvent,
    DestinationReached,
    EndOfStream,
    TraceError,
    Cancelled,
)
from netpulse.trace.parser import parse_responder, parse_reply

__all__ = [
    "TracerouteEngine",
    "RunHandle",
    "EventDispatcher",
    "resolve_target",
    "TracerouteError",
    "ValidationError",
    "RunRejectedError",
    "ResourceError",
    "ProbeExecutor",
    "PingProbeExecutor",
    "build_ping_command",
    "resolve_gateway",
    "Hop",
    "ProbeOutcome",
    "ProbeStatus",
    "RunState",
    "TraceEvent",
    "HopEvent",
    "DestinationReached",
    "EndOfStream",
    "TraceError",
    "Cancelled",
    "parse_responder",
    "parse_reply",
]
