"""In-memory stand-ins for asyncio streams."""

from __future__ import annotations

import json
from typing import List, Union


class FakeStream:
    """Stands in for asyncio.StreamReader: hands out pre-set chunks in order."""

    def __init__(self, chunks: List[Union[bytes, BaseException]]) -> None:
        self.chunks = list(chunks)
        self.reads = 0

    async def read(self, n: int = -1) -> bytes:
        self.reads += 1
        if not self.chunks:
            return b""
        item = self.chunks.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class FakeWriter:
    """Stands in for asyncio.StreamWriter and records what was written."""

    def __init__(self, fail_with: BaseException | None = None) -> None:
        self.buffer = bytearray()
        self.fail_with = fail_with
        self.closed = False

    def write(self, data: bytes) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.buffer.extend(data)

    async def drain(self) -> None:
        return None

    def close(self) -> None:
        self.closed = True

    def is_closing(self) -> bool:
        return self.closed

    async def wait_closed(self) -> None:
        return None

    def lines(self) -> List[dict]:
        return [json.loads(line) for line in bytes(self.buffer).splitlines()]
