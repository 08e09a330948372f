import enum
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

"""
messages.py - event types, record decoding, and outbound message builders.

What this module does:
- Defines the typed events a relay session produces (Motd, ChannelJoined,
  Beep, ...). They're frozen dataclasses: plain values, no behaviour.
- Turns one raw line from the relay into exactly one event. Anything we
  can't make sense of becomes Invalid(raw) instead of raising, so one bad
  record never takes a healthy session down.
- Builds the two messages a client has to send (protocol_version, join).

Session-state side effects (membership id) are NOT applied here; the
reader does that as it decodes, so this module stays pure.
"""

PROTOCOL_VERSION = 2

# -----------------------
# Wire type tags
# -----------------------
MOTD = "motd"
CHANNEL_JOINED = "channel_joined"
CHANNEL_LEFT = "channel_left"
CHANNEL_MESSAGE = "channel_message"
CLIENT_JOINED = "client_joined"
CLIENT_LEFT = "client_left"
TONE = "tone"
PROTOCOL_VERSION_MSG = "protocol_version"
JOIN = "join"


class Role(str, enum.Enum):
    """Which side of the remote session we are."""
    MASTER = "master"
    SLAVE = "slave"


# -----------------------
# Events
# -----------------------

@dataclass(frozen=True)
class Motd:
    text: str


@dataclass(frozen=True)
class ChannelJoined:
    membership_id: int


@dataclass(frozen=True)
class ChannelLeft:
    pass


@dataclass(frozen=True)
class ChannelMessage:
    text: str
    sender_id: int


@dataclass(frozen=True)
class ClientJoined:
    client_id: int
    name: str


@dataclass(frozen=True)
class ClientLeft:
    client_id: int


@dataclass(frozen=True)
class Beep:
    hz: int
    length: int
    left: int
    right: int


@dataclass(frozen=True)
class Invalid:
    raw: str


Event = Union[Motd, ChannelJoined, ChannelLeft, ChannelMessage, ClientJoined, ClientLeft, Beep, Invalid]


# -----------------------
# Decoding
# -----------------------

class _MissingField(Exception):
    pass


def _int(obj: Dict[str, Any], key: str) -> int:
    # bool is an int subclass in Python; JSON true/false is not a number here.
    value = obj.get(key)
    if not isinstance(value, int) or isinstance(value, bool):
        raise _MissingField(key)
    return value


def _str(obj: Dict[str, Any], key: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str):
        raise _MissingField(key)
    return value


def _obj(obj: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = obj.get(key)
    if not isinstance(value, dict):
        raise _MissingField(key)
    return value


def decode_record(raw: bytes) -> Event:
    """
    Decode one line (terminator already stripped) into an Event.

    Never raises: bad UTF-8, bad or too-deeply nested JSON, non-object JSON,
    unknown `type`, and missing/ill-typed fields all come back as
    Invalid(raw_text).
    """
    text = raw.decode("utf-8", errors="replace")
    try:
        doc = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError, RecursionError):
        return Invalid(text)
    if not isinstance(doc, dict):
        return Invalid(text)

    try:
        return _decode_typed(doc) or Invalid(text)
    except _MissingField:
        return Invalid(text)


def _decode_typed(doc: Dict[str, Any]) -> Optional[Event]:
    mt = doc.get("type")

    if mt == MOTD:
        return Motd(_str(doc, "motd"))

    if mt == CHANNEL_JOINED:
        return ChannelJoined(_int(doc, "origin"))

    if mt == CHANNEL_LEFT:
        return ChannelLeft()

    if mt == TONE:
        return Beep(_int(doc, "hz"), _int(doc, "length"), _int(doc, "left"), _int(doc, "right"))

    if mt == CHANNEL_MESSAGE:
        return ChannelMessage(_str(doc, "message"), _int(doc, "origin"))

    if mt == CLIENT_JOINED:
        client = _obj(doc, "client")
        return ClientJoined(_int(client, "id"), _str(client, "connection_type"))

    if mt == CLIENT_LEFT:
        return ClientLeft(_int(_obj(doc, "client"), "id"))

    return None


# -----------------------
# Outbound builders
# -----------------------

def protocol_version() -> Dict[str, Any]:
    """First thing we say after the handshake."""
    return {"type": PROTOCOL_VERSION_MSG, "version": PROTOCOL_VERSION}


def join(channel: str, role: Role) -> Dict[str, Any]:
    """Ask the relay to put us in `channel` as master or slave."""
    return {"type": JOIN, "channel": channel, "connection_type": Role(role).value}
