"""
trust.py - decide whether a presented certificate may be used for a host.

Policy: trust on first use, with the "first use" confirmed by a human.
- Unknown host  -> TrustRejected (carries the certificate so it can be
  pinned out of band). We never pin from here.
- Pinned host   -> exact byte comparison against THAT host's pin only.
- No certificate at all -> transport-level protocol violation.

There is an escape hatch (`insecure_skip_verify`) for poking at dev relays.
It is off by default and shouts in the log every time it's used.
"""

import logging
from typing import Optional

from .errors import TransportError, TrustMismatch, TrustRejected
from .fingerprints import FingerprintStore

log = logging.getLogger(__name__)


class TrustVerifier:
    def __init__(self, store: FingerprintStore, insecure_skip_verify: bool = False) -> None:
        self.store = store
        self.insecure_skip_verify = insecure_skip_verify

    def verify(self, host: str, presented: Optional[bytes]) -> bytes:
        """
        Check the leaf certificate the server presented for `host`.

        `host` is used exactly as given; "Relay.example" and
        "relay.example" are different pins.

        Returns:
            The accepted certificate bytes.

        Raises:
            TransportError: the handshake produced no certificate.
            TrustRejected: host has no pin.
            TrustMismatch: host's pin differs from `presented`.
            CacheDecodeError: host's pin is corrupted on disk.
        """
        if not presented:
            raise TransportError(f"TLS handshake with {host} presented no certificate")

        if self.insecure_skip_verify:
            log.warning(
                "INSECURE: certificate verification skipped for %s; do not use in production",
                host,
            )
            return presented

        if not self.store.contains(host):
            log.warning("Rejecting %s: no pinned certificate for this host", host)
            raise TrustRejected(host, presented)

        if presented not in self.store.as_trust_anchors(host):
            log.warning("Rejecting %s: certificate does not match the pinned one", host)
            raise TrustMismatch(host)

        log.debug("Certificate for %s matches its pin", host)
        return presented
