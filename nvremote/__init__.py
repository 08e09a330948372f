"""
nvremote - client for the remote-access relay protocol (pinned TLS edition).

What you get:
- Certificate pinning: every relay host must be pinned to its exact TLS
  certificate before we send it a channel key. Unknown hosts are rejected
  with the certificate attached so a human can decide to pin it.
- Newline-delimited JSON framing that survives fragmented/batched reads.
- Typed events (Motd, ChannelJoined, Beep, ...) with Invalid for noise.

Quick use:
    conn = await Connection.open("relay.example", key, Role.SLAVE)
    await conn.join()
    while (event := await conn.next_event()) is not None:
        ...

Pin a host with `python -m nvremote.run_client --mode trust --host relay.example`.
"""

from .errors import (
    CacheDecodeError,
    CacheError,
    CacheIoError,
    RemoteError,
    TransportError,
    TrustError,
    TrustMismatch,
    TrustRejected,
)
from .fingerprints import FingerprintStore
from .messages import (
    Beep,
    ChannelJoined,
    ChannelLeft,
    ChannelMessage,
    ClientJoined,
    ClientLeft,
    Event,
    Invalid,
    Motd,
    Role,
)
from .session import CallbackObserver, Connection, EventObserver
from .state import SessionPhase, SessionState
from .trust import TrustVerifier

__all__ = [
    "config", "crypto", "errors", "fingerprints", "framing", "messages",
    "reader", "run_client", "session", "state", "trust",
    "Beep", "CacheDecodeError", "CacheError", "CacheIoError", "CallbackObserver",
    "ChannelJoined", "ChannelLeft", "ChannelMessage", "ClientJoined", "ClientLeft",
    "Connection", "Event", "EventObserver", "FingerprintStore", "Invalid", "Motd",
    "RemoteError", "Role", "SessionPhase", "SessionState", "TransportError",
    "TrustError", "TrustMismatch", "TrustRejected", "TrustVerifier",
]
