"""
Streaming traceroute engine.

Each run probes one TTL at a time on its own worker thread and hands
events to a single delivery thread, so a result sink sees the hops of a
run in TTL order followed by exactly one terminal event.

Usage:
    engine = TracerouteEngine()
    handle = engine.start("8.8.8.8", print)
    handle.wait()

    for event in engine.stream("example.com"):
        ...

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import ipaddress
import logging
import queue
import socket
import threading
import time
import uuid
from typing import Callable, Iterator

from netpulse.config import TraceConfig, get_config
from netpulse.logging_config import track_error
from netpulse.trace.errors import (
    ResourceError,
    RunRejectedError,
    TracerouteError,
    ValidationError,
)
from netpulse.trace.executor import PingProbeExecutor, ProbeExecutor
from netpulse.trace.gateway import resolve_gateway
from netpulse.trace.models import (
    Cancelled,
    DestinationReached,
    EndOfStream,
    Hop,
    HopEvent,
    ProbeStatus,
    ResultSink,
    RunState,
    TraceError,
    TraceEvent,
)

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = "traceroute"

# First TTL that is actually probed; TTL 1 is the gateway
FIRST_PROBE_TTL = 2


def resolve_target(target: str) -> str:
    """Resolve a hostname to a single address. Literal addresses pass through."""
    try:
        return str(ipaddress.ip_address(target))
    except ValueError:
        pass

    try:
        results = socket.getaddrinfo(target, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise TracerouteError(f"Cannot resolve {target}: {e}")

    # Prefer IPv4, the probe tool's default family
    for family, _, _, _, sockaddr in results:
        if family == socket.AF_INET:
            return sockaddr[0]
    for _, _, _, _, sockaddr in results:
        return sockaddr[0]
    raise TracerouteError(f"Cannot resolve {target}: no addresses")


def validate_target(target: str) -> str:
    """Return the cleaned target or raise ValidationError."""
    if not isinstance(target, str) or not target.strip():
        raise ValidationError("Target must be a non-empty host name or address")
    target = target.strip()
    if target.startswith("-") or any(c.isspace() for c in target):
        raise ValidationError(f"Invalid target: {target!r}")
    return target


class EventDispatcher:
    """Delivers events to sinks from one dedicated thread, in posting order."""

    _STOP = object()

    def __init__(self, name: str = "netpulse-delivery"):
        self._queue: queue.Queue = queue.Queue()
        self._name = name
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    def _ensure_started(self) -> None:
        # Caller holds _lock
        if self._thread is None or not self._thread.is_alive():
            self._thread = threading.Thread(target=self._loop, name=self._name, daemon=True)
            self._thread.start()

    def post(
        self,
        sink: ResultSink,
        event: TraceEvent,
        on_delivered: Callable[[], None] | None = None,
    ) -> None:
        with self._lock:
            self._ensure_started()
            self._queue.put((sink, event, on_delivered))

    def _loop(self) -> None:
        while True:
            item = self._queue.get()
            if item is self._STOP:
                with self._lock:
                    # Anything posted after stop() is still delivered by this thread
                    if self._queue.empty():
                        self._thread = None
                        return
                continue
            sink, event, on_delivered = item
            try:
                sink(event)
            except Exception:
                logger.exception(f"Result sink failed on {event.kind} event", extra={"run_id": event.run_id})
            finally:
                if on_delivered is not None:
                    on_delivered()

    def stop(self, timeout: float | None = 5.0) -> None:
        """Deliver everything already posted, then stop the thread."""
        with self._lock:
            thread = self._thread
            if thread is None:
                return
            self._queue.put(self._STOP)
        if thread is threading.current_thread():
            # Stopping from inside a sink; the loop ends after this delivery
            return
        thread.join(timeout)
        if thread.is_alive():
            logger.warning("Event delivery did not stop in time")


class Run:
    """State of one traceroute invocation. Mutated only by the engine."""

    def __init__(self, target: str, sink: ResultSink, channel: str, max_hops: int):
        self.run_id = uuid.uuid4().hex[:8]
        self.target = target
        self.sink = sink
        self.channel = channel
        self.max_hops = max_hops
        self.current_ttl = FIRST_PROBE_TTL
        self.state = RunState.PENDING
        self.address: str | None = None

        self.cancel_event = threading.Event()
        self.delivered = threading.Event()  # terminal event reached the sink
        self.lock = threading.Lock()
        self.thread: threading.Thread | None = None


class RunHandle:
    """Caller-side view of a run."""

    def __init__(self, engine: "TracerouteEngine", run: Run):
        self._engine = engine
        self._run = run

    @property
    def run_id(self) -> str:
        return self._run.run_id

    @property
    def target(self) -> str:
        return self._run.target

    @property
    def channel(self) -> str:
        return self._run.channel

    @property
    def state(self) -> RunState:
        return self._run.state

    @property
    def done(self) -> bool:
        return self._run.delivered.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the terminal event has been delivered."""
        return self._run.delivered.wait(timeout)

    def cancel(self) -> None:
        self._engine.cancel(self)

    def __repr__(self) -> str:
        return f"RunHandle(run_id={self.run_id!r}, target={self.target!r}, state={self.state.value})"


class TracerouteEngine:
    """Runs incremental traceroutes and streams their hops."""

    def __init__(
        self,
        executor: ProbeExecutor | None = None,
        gateway_resolver: Callable[[], str | None] | None = None,
        address_resolver: Callable[[str], str] = resolve_target,
        config: TraceConfig | None = None,
        dispatcher: EventDispatcher | None = None,
    ):
        self.config = config or get_config()
        self.executor = executor or PingProbeExecutor(ping_binary=self.config.ping_binary)
        self.gateway_resolver = gateway_resolver or (
            lambda: resolve_gateway(timeout=self.config.gateway_timeout)
        )
        self.address_resolver = address_resolver
        self.dispatcher = dispatcher or EventDispatcher()

        self._active: dict[str, Run] = {}
        self._workers: set[Run] = set()  # runs whose worker thread may still be probing
        self._lock = threading.RLock()

    # Public API

    def start(
        self,
        target: str,
        sink: ResultSink,
        channel: str = DEFAULT_CHANNEL,
        max_hops: int | None = None,
        supersede: bool = False,
    ) -> RunHandle:
        """Register a run and start probing in the background.

        Raises:
            ValidationError: target is empty or malformed, or max_hops < 1
            RunRejectedError: channel already has an active run and
                supersede is False
        """
        target = validate_target(target)
        max_hops = self.config.max_hops if max_hops is None else max_hops
        if max_hops < 1:
            raise ValidationError(f"max_hops must be at least 1, got {max_hops}")

        run = Run(target, sink, channel, max_hops)

        with self._lock:
            current = self._active.get(channel)
            if current is not None:
                if not supersede:
                    raise RunRejectedError(
                        f"A traceroute to {current.target} is already running on '{channel}'"
                    )
                logger.info(f"Superseding run {current.run_id} on '{channel}'", extra={"run_id": run.run_id})
                self._cancel_run(current)
            self._active[channel] = run
            run.state = RunState.RUNNING
            run.thread = threading.Thread(
                target=self._execute,
                args=(run,),
                name=f"traceroute-{run.run_id}",
                daemon=True,
            )
            self._workers.add(run)
            run.thread.start()

        logger.info(f"Started: {target} (max_hops={max_hops})", extra={"run_id": run.run_id})
        return RunHandle(self, run)

    def cancel(self, handle: RunHandle) -> None:
        """Cancel a run. Cancelling a finished run does nothing."""
        self._cancel_run(handle._run)

    def active_run(self, channel: str = DEFAULT_CHANNEL) -> RunHandle | None:
        with self._lock:
            run = self._active.get(channel)
        return RunHandle(self, run) if run else None

    def stream(
        self,
        target: str,
        channel: str = DEFAULT_CHANNEL,
        max_hops: int | None = None,
        supersede: bool = False,
    ) -> Iterator[TraceEvent]:
        """Start a run and yield its events as they are delivered.

        Closing the iterator before the terminal event cancels the run.
        """
        events: queue.Queue = queue.Queue()
        handle = self.start(target, events.put, channel=channel, max_hops=max_hops, supersede=supersede)
        return self._drain(handle, events)

    def _drain(self, handle: RunHandle, events: queue.Queue) -> Iterator[TraceEvent]:
        finished = False
        try:
            while True:
                event = events.get()
                yield event
                if event.terminal:
                    finished = True
                    return
        finally:
            if not finished:
                handle.cancel()

    def shutdown(self, timeout: float | None = 5.0) -> None:
        """Cancel all runs, wait for their probes to be released, stop delivery."""
        with self._lock:
            runs = list(self._workers)
        for run in runs:
            self._cancel_run(run)

        deadline = None if timeout is None else time.monotonic() + timeout
        for run in runs:
            if run.thread is None or run.thread is threading.current_thread():
                continue
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            run.thread.join(remaining)
            if run.thread.is_alive():
                logger.warning("Worker still running after shutdown", extra={"run_id": run.run_id})

        self.dispatcher.stop(timeout)

    def __enter__(self) -> "TracerouteEngine":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()

    # Emission

    def _emit(self, run: Run, event: TraceEvent) -> bool:
        """Post a non-terminal event unless the run has already ended."""
        with run.lock:
            if run.state.is_terminal:
                return False
            self.dispatcher.post(run.sink, event)
            return True

    def _finish(
        self,
        run: Run,
        state: RunState,
        event: TraceEvent,
        preceding: tuple[TraceEvent, ...] = (),
    ) -> bool:
        """Move run to a terminal state and post its terminal event, once.

        Events in preceding are posted just ahead of the terminal event.
        """
        with run.lock:
            if run.state.is_terminal:
                return False
            run.state = state
            run.cancel_event.set()

        # Free the channel before the sink can observe the terminal event
        with self._lock:
            if self._active.get(run.channel) is run:
                del self._active[run.channel]

        # Nothing else can be posted for this run once its state is terminal
        for extra in preceding:
            self.dispatcher.post(run.sink, extra)
        self.dispatcher.post(run.sink, event, run.delivered.set)
        return True

    def _cancel_run(self, run: Run) -> None:
        if self._finish(run, RunState.CANCELLED, Cancelled(run.run_id)):
            logger.info(f"Cancelled at ttl={run.current_ttl}", extra={"run_id": run.run_id})

    # Probing loop

    def _pause(self, run: Run) -> None:
        if self.config.probe_delay > 0:
            run.cancel_event.wait(self.config.probe_delay)

    def _execute(self, run: Run) -> None:
        try:
            self._probe_path(run)
        except Exception as e:
            self._fail(run, e)
        finally:
            with self._lock:
                self._workers.discard(run)

    def _fail(self, run: Run, e: Exception) -> None:
        if run.state.is_terminal:
            logger.debug(f"Already ended, ignoring: {e}", extra={"run_id": run.run_id})
            return
        message = str(e) or e.__class__.__name__
        code = e.code if isinstance(e, TracerouteError) else TraceError.code
        track_error(
            "traceroute_failed",
            message,
            exception=e,
            context={"run_id": run.run_id, "target": run.target, "ttl": run.current_ttl},
        )
        self._finish(run, RunState.FAILED, TraceError(run.run_id, code=code, message=message))

    def _probe_path(self, run: Run) -> None:
        address = self.address_resolver(run.target)
        run.address = address
        logger.debug(f"{run.target} resolved to {address}", extra={"run_id": run.run_id})

        if run.cancel_event.is_set():
            return

        gateway = self.gateway_resolver()
        if gateway:
            reached = gateway == address
            hop = Hop(ttl=1, address=gateway, is_gateway=True, is_destination=reached)
            if not self._emit(run, HopEvent(run.run_id, hop=hop)):
                return
            if reached:
                self._complete(run, hop)
                return
            self._pause(run)

        for ttl in range(FIRST_PROBE_TTL, run.max_hops + 1):
            if run.cancel_event.is_set():
                return
            run.current_ttl = ttl

            outcome = self.executor.probe(address, ttl, self.config.probe_timeout, run.cancel_event)

            if outcome.status == ProbeStatus.ERROR:
                raise ResourceError(outcome.reason or f"Probe failed at ttl={ttl}")
            if not outcome.has_responder:
                logger.debug(f"No response at ttl={ttl}", extra={"run_id": run.run_id})
                continue

            reached = outcome.address == address or outcome.status == ProbeStatus.DESTINATION
            hop = Hop(ttl=ttl, address=outcome.address, is_destination=reached, rtt_ms=outcome.rtt_ms)
            if not self._emit(run, HopEvent(run.run_id, hop=hop)):
                return
            if reached:
                self._complete(run, hop)
                return
            self._pause(run)

        if self._finish(run, RunState.COMPLETED, EndOfStream(run.run_id)):
            logger.info(f"Ended after {run.max_hops} hops without reaching {run.target}", extra={"run_id": run.run_id})

    def _complete(self, run: Run, hop: Hop) -> None:
        reached = DestinationReached(run.run_id, ttl=hop.ttl, address=hop.address)
        if self._finish(run, RunState.COMPLETED, EndOfStream(run.run_id), preceding=(reached,)):
            logger.info(f"Reached {run.target} at ttl={hop.ttl}", extra={"run_id": run.run_id})
