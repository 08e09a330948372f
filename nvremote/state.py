"""
state.py - per-connection bookkeeping.

    CONNECTING -> HANDSHAKING -> TRUSTED -> JOINING -> JOINED <-> LEFT -> CLOSED
                       \\-> REJECTED (trust failure)

membership_id is the id the relay gave us in the last channel_joined. It
goes back to 0 on channel_left and only then (0 = never joined or left).
"""

import enum
from dataclasses import dataclass


class SessionPhase(enum.Enum):
    CONNECTING = "connecting"
    HANDSHAKING = "handshaking"
    TRUSTED = "trusted"
    JOINING = "joining"
    JOINED = "joined"
    LEFT = "left"
    CLOSED = "closed"
    REJECTED = "rejected"


TERMINAL_PHASES = frozenset({SessionPhase.CLOSED, SessionPhase.REJECTED})


@dataclass
class SessionState:
    membership_id: int = 0
    phase: SessionPhase = SessionPhase.CONNECTING

    @property
    def closed(self) -> bool:
        return self.phase in TERMINAL_PHASES
