"""
config.py - environment-driven settings for the runner.

Everything has a sensible default except the channel key, which only the
listen mode needs. CLI flags in run_client.py override these.

    NVREMOTE_KEY            channel key (secret)
    NVREMOTE_HOST           relay host          (nvdaremote.com)
    NVREMOTE_PORT           relay port          (6837)
    NVREMOTE_ROLE           master | slave      (slave)
    NVREMOTE_FINGERPRINTS   pin cache path      (~/.nvremote/fingerprints.json)
    NVREMOTE_LOG_LEVEL      logging level       (INFO)
    NVREMOTE_POLL_INTERVAL  seconds between polls (0.1)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .messages import Role

DEFAULT_HOST = "nvdaremote.com"
DEFAULT_PORT = 6837
DEFAULT_FINGERPRINT_PATH = Path.home() / ".nvremote" / "fingerprints.json"
DEFAULT_POLL_INTERVAL = 0.1


@dataclass
class ClientConfig:
    key: Optional[str] = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    role: Role = Role.SLAVE
    fingerprint_path: Path = DEFAULT_FINGERPRINT_PATH
    log_level: str = "INFO"
    poll_interval: float = DEFAULT_POLL_INTERVAL

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        """Build a config from `environ` (defaults to os.environ)."""
        env = os.environ if environ is None else environ

        port_raw = env.get("NVREMOTE_PORT")
        try:
            port = int(port_raw) if port_raw else DEFAULT_PORT
        except ValueError:
            raise ValueError(f"NVREMOTE_PORT must be an integer, got {port_raw!r}") from None
        if not 0 < port < 65536:
            raise ValueError(f"NVREMOTE_PORT out of range: {port}")

        role_raw = env.get("NVREMOTE_ROLE")
        try:
            role = Role(role_raw.lower()) if role_raw else Role.SLAVE
        except ValueError:
            raise ValueError(f"NVREMOTE_ROLE must be 'master' or 'slave', got {role_raw!r}") from None

        interval_raw = env.get("NVREMOTE_POLL_INTERVAL")
        try:
            interval = float(interval_raw) if interval_raw else DEFAULT_POLL_INTERVAL
        except ValueError:
            raise ValueError(f"NVREMOTE_POLL_INTERVAL must be a number, got {interval_raw!r}") from None
        if interval < 0:
            raise ValueError("NVREMOTE_POLL_INTERVAL must not be negative")

        cache = env.get("NVREMOTE_FINGERPRINTS")
        return cls(
            key=env.get("NVREMOTE_KEY") or None,
            host=env.get("NVREMOTE_HOST") or DEFAULT_HOST,
            port=port,
            role=role,
            fingerprint_path=Path(cache).expanduser() if cache else DEFAULT_FINGERPRINT_PATH,
            log_level=(env.get("NVREMOTE_LOG_LEVEL") or "INFO").upper(),
            poll_interval=interval,
        )
