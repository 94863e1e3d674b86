"""
Traceroute CLI commands.
"""

import json
from dataclasses import replace

import click
from rich.console import Console
from rich.live import Live
from rich.table import Table

from netpulse.config import get_config
from netpulse.trace.engine import TracerouteEngine
from netpulse.trace.errors import TracerouteError
from netpulse.trace.models import (
    Cancelled,
    DestinationReached,
    EndOfStream,
    HopEvent,
    TraceError,
)


def _hop_table(host: str) -> Table:
    table = Table(title=f"Traceroute: {host}", box=None)
    table.add_column("Hop", style="cyan", width=4)
    table.add_column("IP", style="white", width=40)
    table.add_column("RTT", style="white", width=10)
    table.add_column("", style="dim", width=12)
    return table


@click.command()
@click.argument("host")
@click.option("-m", "--max-hops", type=int, default=None, help="Maximum number of hops")
@click.option("-t", "--timeout", type=float, default=None, help="Timeout per probe in seconds")
@click.option("--delay", type=float, default=None, help="Pause after each hop in seconds")
@click.option("--json", "as_json", is_flag=True, help="Emit events as JSON lines")
def trace(host: str, max_hops: int | None, timeout: float | None, delay: float | None, as_json: bool):
    """Trace the route to a host, showing hops as they are found.

    Examples:
        netpulse trace 8.8.8.8
        netpulse trace example.com -m 20
        netpulse trace 1.1.1.1 --json
    """
    console = Console()

    config = get_config()
    overrides = {}
    if timeout is not None:
        overrides["probe_timeout"] = timeout
    if delay is not None:
        overrides["probe_delay"] = delay
    if overrides:
        config = replace(config, **overrides)

    engine = TracerouteEngine(config=config)
    try:
        events = engine.stream(host, max_hops=max_hops)
    except TracerouteError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    failed = False
    try:
        if as_json:
            for event in events:
                click.echo(json.dumps(event.to_dict()))
                failed = failed or isinstance(event, TraceError)
        else:
            failed = _render_live(console, host, events)
    except KeyboardInterrupt:
        events.close()
        if not as_json:
            console.print("[yellow]Traceroute cancelled[/yellow]")
    finally:
        engine.shutdown()

    if failed:
        raise SystemExit(1)


def _render_live(console: Console, host: str, events) -> bool:
    """Render events into a live table. Returns True if the run failed."""
    table = _hop_table(host)
    footer = ""
    failed = False

    with Live(table, console=console, refresh_per_second=8):
        for event in events:
            if isinstance(event, HopEvent):
                hop = event.hop
                rtt = f"{hop.rtt_ms:.1f}ms" if hop.rtt_ms is not None else "-"
                note = "gateway" if hop.is_gateway else ""
                if hop.is_destination:
                    note = "[green]destination[/green]"
                table.add_row(str(hop.ttl), hop.address or "*", rtt, note)
            elif isinstance(event, DestinationReached):
                footer = f"[green]Destination reached in {event.ttl} hops[/green]"
            elif isinstance(event, EndOfStream):
                if not footer:
                    footer = "[yellow]Destination not reached[/yellow]"
            elif isinstance(event, TraceError):
                footer = f"[red]Error:[/red] {event.message}"
                failed = True
            elif isinstance(event, Cancelled):
                footer = "[yellow]Traceroute cancelled[/yellow]"

    if not table.rows:
        console.print(f"[yellow]No hops discovered to {host}[/yellow]")
    if footer:
        console.print(footer)
    return failed
