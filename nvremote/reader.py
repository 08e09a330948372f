import asyncio
import collections
import logging
import ssl
from typing import Deque, Optional

from . import messages as m
from .errors import TransportError
from .framing import FrameTooLarge, LineBuffer
from .state import SessionPhase, SessionState

"""
reader.py - turn the TLS byte stream into events, one per call.

How a call to next_event() works:
1) If earlier reads already left complete lines queued, decode the oldest.
2) Otherwise read one chunk (whatever the socket has, up to chunk_size),
   split it into complete lines and queue them in arrival order.
   A chunk holding only part of a line just loops and reads again.
3) Decoding happens as each line is handed out, and the line's session
   state effect is applied right then, so the membership id always
   matches the last event the caller has seen.
4) b"" from the socket = clean EOF: return None now and forever after.

Read errors close the reader and raise TransportError; they are never
retried here.
"""

log = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 4096


class ProtocolReader:
    def __init__(
        self,
        stream: asyncio.StreamReader,
        state: SessionState,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.stream = stream
        self.state = state
        self.chunk_size = chunk_size
        self._lines = LineBuffer()
        self._pending: Deque[bytes] = collections.deque()
        self._eof = False

    @property
    def at_eof(self) -> bool:
        return self._eof

    def _close(self) -> None:
        self._eof = True
        self.state.phase = SessionPhase.CLOSED

    async def next_event(self) -> Optional[m.Event]:
        """Next decoded event, or None once the relay has gone away."""
        while not self._pending:
            if self._eof:
                return None

            try:
                chunk = await self.stream.read(self.chunk_size)
            except (OSError, ssl.SSLError) as exc:
                self._close()
                raise TransportError(f"Read failed: {exc}") from exc

            if not chunk:
                if self._lines.pending:
                    log.debug("Discarding %d unterminated byte(s) at EOF", len(self._lines.pending))
                log.info("Relay closed the connection")
                self._close()
                return None

            try:
                lines = self._lines.feed(chunk)
            except FrameTooLarge as exc:
                self._close()
                raise TransportError(str(exc)) from exc

            self._pending.extend(lines)

        return self._decode(self._pending.popleft())

    def _decode(self, line: bytes) -> m.Event:
        event = m.decode_record(line)

        if isinstance(event, m.ChannelJoined):
            self.state.membership_id = event.membership_id
            self.state.phase = SessionPhase.JOINED
        elif isinstance(event, m.ChannelLeft):
            self.state.membership_id = 0
            self.state.phase = SessionPhase.LEFT

        log.debug("Decoded %r", event)
        return event
