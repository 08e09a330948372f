"""
errors.py - every way a relay session can fail, in one place.

Layout:
- RemoteError is the root so callers can catch "anything from nvremote".
- TransportError covers the socket/TLS side (connect, read, write, and
  transport-level protocol violations). Always fatal to the Connection.
- TrustError covers the pinning decision. Rejected = host never pinned,
  Mismatch = host pinned to a different certificate.
- CacheError covers the on-disk pin cache. Load failures never get here
  (they fall back to an empty cache); save and decode failures do.

Malformed relay records are NOT errors; they become `Invalid` events.
"""

from typing import Optional


class RemoteError(Exception):
    """Base class for all nvremote failures."""


class TransportError(RemoteError):
    """Connect/handshake/read/write failure. Not retried internally."""


class TrustError(RemoteError):
    """The presented certificate is not acceptable for this host."""

    def __init__(self, host: str, message: str) -> None:
        super().__init__(message)
        self.host = host


class TrustRejected(TrustError):
    """
    Host has no pinned certificate yet.

    Carries the certificate the server just presented so an operator can
    inspect it and pin it out of band (see `run_client --mode trust`).
    """

    def __init__(self, host: str, certificate: bytes) -> None:
        self.certificate = certificate
        self.fingerprint_hex = certificate.hex()
        super().__init__(
            host,
            f"Server certificate not trusted for host {host}: {self.fingerprint_hex}",
        )


class TrustMismatch(TrustError):
    """Pinned certificate differs from the presented one. Never auto-repaired."""

    def __init__(self, host: str) -> None:
        super().__init__(host, f"Certificate mismatch for host {host}.")


class CacheError(RemoteError):
    """Problems with the persistent pin cache."""


class CacheIoError(CacheError):
    def __init__(self, path: str, reason: Optional[BaseException] = None) -> None:
        self.path = path
        detail = f": {reason}" if reason else ""
        super().__init__(f"Could not save pin cache to {path}{detail}")


class CacheDecodeError(CacheError):
    """A stored pin is not valid hex. Treated as a defect, never masked."""

    def __init__(self, host: str) -> None:
        self.host = host
        super().__init__(f"Pinned certificate for host {host} is corrupted")
