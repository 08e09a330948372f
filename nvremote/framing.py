import asyncio
import json
from typing import Any, Dict, List

"""
framing.py - newline-delimited JSON framing for the relay protocol.

Protocol (simple on purpose):
- Each message = one compact UTF-8 JSON object followed by b"\\n".
- TCP/TLS hands us arbitrary chunks: a record can arrive split across
  several reads, or several records can arrive in one read. LineBuffer
  glues them back together and hands out whole lines, oldest first.
- Hard cap at 4 MiB per line so a buggy relay can't make us buffer forever.
"""

MAX_LINE_SIZE = 4 * 1024 * 1024  # 4 MiB hard limit
TERMINATOR = b"\n"


class FrameTooLarge(ValueError):
    """A single line grew past MAX_LINE_SIZE."""


class LineBuffer:
    """Incremental splitter: feed() chunks in, get complete lines out."""

    def __init__(self, max_line_size: int = MAX_LINE_SIZE) -> None:
        self._buf = bytearray()
        self.max_line_size = max_line_size

    def feed(self, data: bytes) -> List[bytes]:
        """
        Append `data` and return every complete line now available,
        without its terminator, in arrival order. A trailing partial line
        stays buffered for the next call.

        Raises:
            FrameTooLarge: a line (complete or pending) exceeds the cap.
        """
        self._buf.extend(data)
        lines: List[bytes] = []
        start = 0
        while True:
            idx = self._buf.find(TERMINATOR, start)
            if idx < 0:
                break
            if idx - start > self.max_line_size:
                raise FrameTooLarge(f"Line too large: {idx - start} > {self.max_line_size}")
            lines.append(bytes(self._buf[start:idx]))
            start = idx + 1
        del self._buf[:start]

        if len(self._buf) > self.max_line_size:
            raise FrameTooLarge(f"Line too large: {len(self._buf)} > {self.max_line_size}")
        return lines

    @property
    def pending(self) -> bytes:
        """Bytes of the unterminated partial line (if any)."""
        return bytes(self._buf)

    def clear(self) -> None:
        self._buf.clear()


def encode_line(obj: Dict[str, Any]) -> bytes:
    """Compact JSON + newline, ready to write to the socket."""
    # Compact separators; keep non-ASCII as UTF-8 (not \u escapes).
    payload = json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    if len(payload) > MAX_LINE_SIZE:
        raise FrameTooLarge("Line exceeds maximum size")
    return payload + TERMINATOR


async def write_line(writer: asyncio.StreamWriter, obj: Dict[str, Any]) -> None:
    """Serialize `obj` as one line and flush it."""
    writer.write(encode_line(obj))
    await writer.drain()  # Let the transport flush; important under backpressure.
