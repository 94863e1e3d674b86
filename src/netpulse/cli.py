"""
NetPulse command-line entry point.
"""

import click

from netpulse import __version__
from netpulse.logging_config import configure_logging
from netpulse.netinfo.cli import dns, gateway, signal
from netpulse.trace.cli import trace


@click.group()
@click.version_option(__version__, prog_name="netpulse")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log-file", type=click.Path(dir_okay=False), default=None, help="Also log to this file")
def main(debug: bool, log_file: str | None):
    """Network path and link diagnostics."""
    configure_logging(debug=debug, log_file=log_file)


main.add_command(trace)
main.add_command(dns)
main.add_command(signal)
main.add_command(gateway)


if __name__ == "__main__":
    main()
