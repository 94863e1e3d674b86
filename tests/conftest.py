import subprocess
import sys
import threading
import time

import pytest

from netpulse.config import TraceConfig
from netpulse.logging_config import get_error_stats, reset_error_stats
from netpulse.trace.engine import TracerouteEngine
from netpulse.trace import executor as executor_module
from netpulse.trace.executor import ProbeExecutor
from netpulse.trace.models import ProbeOutcome


class ScriptedExecutor(ProbeExecutor):
    """
    script: dict[ttl] -> address string, ProbeOutcome, or exception to raise.
    Unscripted TTLs get no response.
    """

    def __init__(self, script=None):
        self.script = dict(script or {})
        self.probed: list[int] = []
        self.targets: list[str] = []

    def probe(self, target, ttl, timeout, cancel_event=None):
        self.probed.append(ttl)
        self.targets.append(target)
        step = self.script.get(ttl)
        if step is None:
            return ProbeOutcome.no_response()
        if isinstance(step, BaseException):
            raise step
        if isinstance(step, ProbeOutcome):
            return step
        return ProbeOutcome.responder(step)


class TimedExecutor(ScriptedExecutor):
    """Scripted executor that also records when each probe was issued."""

    def __init__(self, script=None):
        super().__init__(script)
        self.issued_at: dict[int, float] = {}

    def probe(self, target, ttl, timeout, cancel_event=None):
        self.issued_at[ttl] = time.monotonic()
        return super().probe(target, ttl, timeout, cancel_event)


class BlockingExecutor(ProbeExecutor):
    """Holds every probe in flight until cancelled."""

    def __init__(self):
        self.started = threading.Event()
        self.released = threading.Event()

    def probe(self, target, ttl, timeout, cancel_event=None):
        self.started.set()
        cancel_event.wait(10)
        self.released.set()
        return ProbeOutcome.responder("10.9.9.9")


class Recorder:
    """Result sink that records delivered events."""

    def __init__(self):
        self.events = []
        self.threads = set()
        self.hop_seen = threading.Event()

    def __call__(self, event):
        self.threads.add(threading.current_thread().name)
        self.events.append(event)
        if event.kind == "hop":
            self.hop_seen.set()

    @property
    def kinds(self):
        return [e.kind for e in self.events]

    @property
    def hops(self):
        return [e.hop for e in self.events if e.kind == "hop"]


@pytest.fixture
def config():
    return TraceConfig(max_hops=30, probe_timeout=1.0, probe_delay=0.0, gateway_timeout=0.5)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_engine(config):
    engines = []

    def factory(executor=None, gateway=None, address_resolver=None, **overrides):
        cfg = TraceConfig(**{**config.__dict__, **overrides})
        kwargs = {}
        if address_resolver is not None:
            kwargs["address_resolver"] = address_resolver
        engine = TracerouteEngine(
            executor=executor or ScriptedExecutor(),
            gateway_resolver=gateway if callable(gateway) else (lambda: gateway),
            config=cfg,
            **kwargs,
        )
        engines.append(engine)
        return engine

    yield factory

    for engine in engines:
        engine.shutdown()


def python_command(code):
    """Command builder that runs a Python snippet in place of ping."""
    return lambda target, ttl, timeout: [sys.executable, "-c", code]


@pytest.fixture
def spawned(monkeypatch):
    """Record every process the executor spawns."""
    processes = []
    real_popen = subprocess.Popen

    class RecordingPopen(real_popen):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            processes.append(self)

    monkeypatch.setattr(executor_module.subprocess, "Popen", RecordingPopen)
    return processes


@pytest.fixture
def error_stats():
    reset_error_stats()
    yield get_error_stats
    reset_error_stats()
