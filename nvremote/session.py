import asyncio
import contextlib
import logging
import ssl
from typing import Any, Callable, Dict, Optional, Protocol, Tuple, Union

from . import crypto
from . import messages as m
from .config import DEFAULT_FINGERPRINT_PATH, DEFAULT_PORT
from .errors import CacheDecodeError, TransportError, TrustError
from .fingerprints import FingerprintStore, PathLike
from .framing import write_line
from .reader import ProtocolReader
from .state import SessionPhase, SessionState
from .trust import TrustVerifier

"""
session.py - open a pinned TLS session to a relay and drive it.

Flow:
1) TCP connect + TLS handshake (no CA roots; see crypto.client_tls_context).
2) Pull the server's leaf certificate and hand it to TrustVerifier.
   Unknown or mismatching host -> the socket is closed BEFORE we ever send
   the channel key.
3) join(): protocol_version, then join {channel, connection_type}.
4) next_event(): one decoded event per call, None once disconnected.

Writes are fire-and-forget; a failed write kills the Connection and is
never retried (a retried join could join the relay twice).
"""

log = logging.getLogger(__name__)


class EventObserver(Protocol):
    """Something that wants to see every decoded event. Must not block."""

    def on_event(self, event: m.Event) -> None:
        ...


class CallbackObserver:
    """Adapts a plain function to EventObserver."""

    def __init__(self, fn: Callable[[m.Event], None]) -> None:
        self.fn = fn

    def on_event(self, event: m.Event) -> None:
        self.fn(event)


async def _close_writer(writer: asyncio.StreamWriter) -> None:
    writer.close()
    # The peer may already be gone; nothing useful to do with that here.
    with contextlib.suppress(Exception):
        await writer.wait_closed()


async def establish_session(
    host: str,
    port: int,
    verifier: TrustVerifier,
    timeout: Optional[float] = None,
    state: Optional[SessionState] = None,
) -> Tuple[asyncio.StreamReader, asyncio.StreamWriter, bytes]:
    """
    Connect to host:port over TLS and run the pin check.

    Returns:
        (reader, writer, accepted_certificate_der)

    Raises:
        TransportError: connect/handshake failed or no certificate.
        TrustRejected / TrustMismatch: see trust.py.
        CacheDecodeError: the host's pin on disk is corrupted.
    """
    state = state if state is not None else SessionState()
    log.info("Connecting to %s:%d", host, port)

    # open_connection does the TCP connect and the TLS handshake in one step.
    state.phase = SessionPhase.HANDSHAKING
    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port, ssl=crypto.client_tls_context(), server_hostname=host),
            timeout=timeout,
        )
    except (OSError, ssl.SSLError, asyncio.TimeoutError) as exc:
        state.phase = SessionPhase.CLOSED
        raise TransportError(f"Could not connect to {host}:{port}: {exc!r}") from exc

    ssl_obj = writer.get_extra_info("ssl_object")
    presented = ssl_obj.getpeercert(binary_form=True) if ssl_obj is not None else None

    try:
        certificate = verifier.verify(host, presented)
    except (TrustError, CacheDecodeError):
        state.phase = SessionPhase.REJECTED
        await _close_writer(writer)
        raise
    except TransportError:
        state.phase = SessionPhase.CLOSED
        await _close_writer(writer)
        raise

    state.phase = SessionPhase.TRUSTED
    log.info("TLS session to %s:%d established (cert %s)", host, port, crypto.sha256_digest(certificate))
    return reader, writer, certificate


class Connection:
    """
    One relay session: pinned TLS stream + protocol reader + membership.

    Build it with `await Connection.open(...)`; the constructor just wires
    up an already-verified stream (handy for tests).
    """

    def __init__(
        self,
        host: str,
        port: int,
        key: str,
        role: Union[m.Role, str],
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        certificate: bytes,
        state: Optional[SessionState] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.channel = key
        self.role = m.Role(role)
        self.certificate = certificate
        self.state = state if state is not None else SessionState(phase=SessionPhase.TRUSTED)
        self._writer = writer
        self._reader = ProtocolReader(reader, self.state)
        self._observer: Optional[EventObserver] = None

    @classmethod
    async def open(
        cls,
        host: str,
        key: str,
        role: Union[m.Role, str] = m.Role.SLAVE,
        port: int = DEFAULT_PORT,
        fingerprint_path: PathLike = DEFAULT_FINGERPRINT_PATH,
        insecure_skip_verify: bool = False,
        timeout: Optional[float] = None,
    ) -> "Connection":
        """Load the pin cache, connect, verify, and return a ready Connection."""
        store = FingerprintStore.load(fingerprint_path)
        verifier = TrustVerifier(store, insecure_skip_verify=insecure_skip_verify)
        state = SessionState()
        reader, writer, certificate = await establish_session(host, port, verifier, timeout, state)
        return cls(host, port, key, role, reader, writer, certificate, state)

    # -----------------
    # Introspection
    # -----------------

    @property
    def membership_id(self) -> int:
        return self.state.membership_id

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    @property
    def connected(self) -> bool:
        return not self.state.closed

    def set_event_observer(self, observer: Optional[EventObserver]) -> None:
        """Called once per decoded event, in order. None removes it."""
        self._observer = observer

    # -----------------
    # Outbound
    # -----------------

    async def send(self, message: Dict[str, Any]) -> None:
        """Write one JSON object as a line. Failure closes the Connection."""
        if self.state.closed:
            raise TransportError(f"Connection to {self.host} is closed")
        try:
            await write_line(self._writer, message)
        except (OSError, ssl.SSLError) as exc:
            await self.close()
            raise TransportError(f"Write to {self.host} failed: {exc!r}") from exc

    async def join(self) -> None:
        """Announce our protocol version, then ask to join the channel."""
        if self.state.closed:
            raise TransportError(f"Connection to {self.host} is closed")
        self.state.phase = SessionPhase.JOINING
        await self.send(m.protocol_version())
        await self.send(m.join(self.channel, self.role))
        log.info("Join requested on %s as %s", self.host, self.role.value)

    # -----------------
    # Inbound
    # -----------------

    async def next_event(self) -> Optional[m.Event]:
        """
        Wait for the next event. None means the relay disconnected; every
        call after that also returns None.
        """
        if self.state.closed:
            return None
        try:
            event = await self._reader.next_event()
        except TransportError:
            await self.close()
            raise

        if event is None:
            await self.close()
            return None

        if self._observer is not None:
            self._observer.on_event(event)
        return event

    # -----------------
    # Teardown
    # -----------------

    async def close(self) -> None:
        if self.state.phase is not SessionPhase.CLOSED:
            log.debug("Closing connection to %s", self.host)
        self.state.phase = SessionPhase.CLOSED
        if not self._writer.is_closing():
            await _close_writer(self._writer)

    async def __aenter__(self) -> "Connection":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
