"""
Configuration management for NetPulse.

Loads traceroute tuning from environment variables or a .env file.
"""

import logging
import os
from pathlib import Path
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Check common locations for .env
ENV_LOCATIONS = [
    Path.home() / ".netpulse" / ".env",
    Path.home() / ".config" / "netpulse" / ".env",
    Path.cwd() / ".env",
]


def load_env_file() -> Path | None:
    """Load the first .env file found. Returns its path, if any."""
    for env_path in ENV_LOCATIONS:
        if env_path.exists():
            load_dotenv(env_path)
            return env_path
    return None


def _env_number(name: str, default: float, cast: type = float):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid value for {name}: {raw!r}")
        return default
    if value < 0:
        logger.warning(f"Ignoring negative value for {name}: {raw!r}")
        return default
    return value


@dataclass
class TraceConfig:
    """Traceroute and probe configuration."""

    # Probing loop
    max_hops: int = 30
    probe_timeout: float = 2.0  # seconds per probe
    probe_delay: float = 0.5    # pause after each emitted hop

    # Gateway lookup gates the first emission, keep it short
    gateway_timeout: float = 2.0

    # External probe tool
    ping_binary: str = "ping"

    @classmethod
    def from_env(cls) -> "TraceConfig":
        """Load configuration from environment variables."""
        defaults = cls()
        max_hops = _env_number("NETPULSE_MAX_HOPS", defaults.max_hops, int)
        if max_hops < 1:
            logger.warning("NETPULSE_MAX_HOPS must be at least 1, using default")
            max_hops = defaults.max_hops
        return cls(
            max_hops=max_hops,
            probe_timeout=_env_number("NETPULSE_PROBE_TIMEOUT", defaults.probe_timeout),
            probe_delay=_env_number("NETPULSE_PROBE_DELAY", defaults.probe_delay),
            gateway_timeout=_env_number("NETPULSE_GATEWAY_TIMEOUT", defaults.gateway_timeout),
            ping_binary=os.getenv("NETPULSE_PING_BINARY", defaults.ping_binary) or defaults.ping_binary,
        )


# Global config instance
_config: TraceConfig | None = None


def get_config() -> TraceConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        load_env_file()
        _config = TraceConfig.from_env()
    return _config


def set_config(config: TraceConfig | None) -> None:
    """Set the global configuration instance (None resets it)."""
    global _config
    _config = config
