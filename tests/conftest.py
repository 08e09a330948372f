"""Shared fixtures: throwaway certificates and a scripted in-process TLS relay."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import List

import pytest
import pytest_asyncio

from nvremote import crypto


@pytest.fixture(scope="session")
def relay_cert() -> tuple[bytes, bytes]:
    """(cert_der, key_pem) for 127.0.0.1."""
    return crypto.generate_self_signed("127.0.0.1")


@pytest.fixture(scope="session")
def other_cert() -> tuple[bytes, bytes]:
    return crypto.generate_self_signed("127.0.0.1")


class ScriptedRelay:
    """
    Minimal TLS relay: after the client's first two lines (protocol_version,
    join) it sends `script` and then closes.
    """

    def __init__(self, script: List[bytes]) -> None:
        self.script = script
        self.received: List[dict] = []
        self.server: asyncio.AbstractServer | None = None
        self.port = 0

    async def handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            for _ in range(2):
                line = await reader.readline()
                if not line:
                    return
                self.received.append(json.loads(line))
            for chunk in self.script:
                writer.write(chunk)
                await writer.drain()
        except (ConnectionError, OSError):
            pass
        finally:
            writer.close()


@pytest_asyncio.fixture
async def relay(tmp_path: Path, relay_cert):
    cert_der, key_pem = relay_cert
    cert_path = tmp_path / "relay_cert.pem"
    key_path = tmp_path / "relay_key.pem"
    cert_path.write_bytes(crypto.der_to_pem(cert_der))
    key_path.write_bytes(key_pem)

    relay = ScriptedRelay(
        [
            b'{"type":"motd","motd":"welcome"}\n{"type":"channel_',
            b'joined","origin":7}\n',
            b'{"type":"tone","hz":500,"length":100,"left":50,"right":50}\n',
            b"garbage\n",
            b'{"type":"channel_left"}\n',
        ]
    )
    ctx = crypto.server_tls_context(str(cert_path), str(key_path))
    relay.server = await asyncio.start_server(relay.handle, "127.0.0.1", 0, ssl=ctx)
    relay.port = relay.server.sockets[0].getsockname()[1]
    try:
        yield relay
    finally:
        relay.server.close()
        await relay.server.wait_closed()
