"""
Network info CLI commands.
"""

import json

import click
from rich.console import Console
from rich.table import Table

from netpulse.config import get_config
from netpulse.netinfo.core import NetInfoError, get_dns_servers, get_signal_strength
from netpulse.trace.gateway import resolve_gateway


SIGNAL_LABELS = ["No signal", "Weak", "Fair", "Good", "Excellent"]


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def dns(as_json: bool):
    """Show the DNS servers of the active network.

    Examples:
        netpulse dns
        netpulse dns --json
    """
    console = Console()

    try:
        servers = get_dns_servers()
    except NetInfoError as e:
        console.print(f"[red]Error:[/red] {e} ({e.detail})")
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps(servers))
        return

    if not servers:
        console.print("[yellow]No DNS servers configured[/yellow]")
        return

    table = Table(title="DNS Servers", box=None)
    table.add_column("#", style="cyan", width=4)
    table.add_column("Server", style="white")
    for i, server in enumerate(servers, 1):
        table.add_row(str(i), server)
    console.print(table)


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def signal(as_json: bool):
    """Show the Wi-Fi signal level (0-4).

    Examples:
        netpulse signal
    """
    console = Console()

    try:
        level = get_signal_strength()
    except NetInfoError as e:
        console.print(f"[red]Error:[/red] {e} ({e.detail})")
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps({"level": level}))
        return

    color = "green" if level >= 3 else "yellow" if level == 2 else "red"
    bars = "▮" * level + "▯" * (4 - level)
    console.print(f"[cyan]Wi-Fi signal:[/cyan] [{color}]{bars} {level}/4[/{color}] {SIGNAL_LABELS[level]}")


@click.command()
def gateway():
    """Show the default gateway."""
    console = Console()

    with console.status("[cyan]Looking up default route...[/cyan]"):
        address = resolve_gateway(timeout=get_config().gateway_timeout)

    if not address:
        console.print("[yellow]No default route[/yellow]")
        raise SystemExit(1)

    console.print(f"[cyan]Default gateway:[/cyan] {address}")
