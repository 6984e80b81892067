"""
signed_store.config
-------------------
Validated settings for `signed-store serve`. The CLI fills them from its
options, which fall back to SIGNED_STORE_* environment variables.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from signed_store.constants import (
    DEFAULT_ACCESS_TRACKING,
    DEFAULT_LISTEN,
    DEFAULT_SWEEP_INTERVAL,
    DEFAULT_TTL,
)
from signed_store.utils import parse_duration

ACCESS_TRACKING_MODES = ("sqlite", "atime", "memory")


@dataclass
class Settings:
    key_file: str
    store_path: str
    listen: str = DEFAULT_LISTEN
    ttl: str = DEFAULT_TTL
    sweep_interval: str = DEFAULT_SWEEP_INTERVAL
    access_tracking: str = DEFAULT_ACCESS_TRACKING
    ledger_path: Optional[str] = None
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def __post_init__(self):
        # fail on a bad duration before anything starts
        self.ttl_seconds = parse_duration(self.ttl)
        self.sweep_interval_seconds = parse_duration(self.sweep_interval)
        if self.sweep_interval_seconds <= 0:
            raise ValueError("sweep interval must be positive")
        if self.access_tracking not in ACCESS_TRACKING_MODES:
            raise ValueError(f"Unknown access tracking mode: {self.access_tracking}")

    @property
    def host(self) -> str:
        return split_listen(self.listen)[0]

    @property
    def port(self) -> int:
        return split_listen(self.listen)[1]


def split_listen(listen: str) -> tuple[str, int]:
    """'host:port' -> (host, port). '[::1]:3000' style IPv6 is accepted."""
    host, sep, port = listen.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ValueError(f"listen address must be HOST:PORT, got {listen!r}")
    return host.strip("[]"), int(port)
