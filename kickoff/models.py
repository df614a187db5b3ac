import random
import time
import uuid
from typing import Any, Dict, Optional, Set

SLOT_A = 'A'
SLOT_B = 'B'
SLOTS = (SLOT_A, SLOT_B)

STATUS_WAITING = 'waiting'
STATUS_PLAYING = 'playing'
STATUS_FINISHED = 'finished'
# Index gives the lifecycle order; status never moves backwards
STATUS_ORDER = (STATUS_WAITING, STATUS_PLAYING, STATUS_FINISHED)

VISIBILITY_PUBLIC = 'public'
VISIBILITY_PRIVATE = 'private'

ROLE_SPECTATOR = 'spectator'

DIRECTIONS = ('left', 'center', 'right')

REASON_OPPONENT_DISCONNECTED = 'opponent_disconnected'
REASON_INVITE_EXPIRED = 'invite_expired'

# Excludes 0, O, 1 and I
INVITE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
INVITE_CODE_LENGTH = 6


def other(slot: str) -> str:
    return SLOT_B if slot == SLOT_A else SLOT_A


def generate_id() -> str:
    """Short opaque token used for match ids and guest ids."""
    return uuid.uuid4().hex[:8]


def generate_invite_code(taken: Set[str], length: int = INVITE_CODE_LENGTH, rng=random) -> str:
    """Generate a short invite code not present in ``taken``."""
    while True:
        code = ''.join(rng.choice(INVITE_ALPHABET) for _ in range(length))
        if code not in taken:
            return code


class Kick:
    def __init__(self, angle_deg: float, power: float):
        self.angle_deg = angle_deg
        self.power = power


class Dive:
    def __init__(self, direction: str):
        self.direction = direction


class Match:
    """In-memory state of a single shootout."""

    def __init__(self, match_id: str, visibility: str = VISIBILITY_PUBLIC,
                 invite_code: Optional[str] = None, max_rounds: int = 5,
                 created_at: Optional[float] = None):
        self.id = match_id
        self.visibility = visibility
        self.invite_code = invite_code if visibility == VISIBILITY_PRIVATE else None
        self.status = STATUS_WAITING
        self.players: Dict[str, Optional[str]] = {SLOT_A: None, SLOT_B: None}
        self.uids: Dict[str, Optional[str]] = {SLOT_A: None, SLOT_B: None}
        self.spectators: Set[str] = set()
        self.round = 1
        self.max_rounds = max_rounds
        self.score: Dict[str, int] = {SLOT_A: 0, SLOT_B: 0}
        self.turn = SLOT_A
        self.pending_kick: Optional[Kick] = None
        self.pending_dive: Optional[Dive] = None
        self.winner: Optional[str] = None
        self.finish_reason: Optional[str] = None
        self.created_at = created_at if created_at is not None else time.time()
        self.finished_at: Optional[float] = None

    @property
    def is_private(self) -> bool:
        return self.visibility == VISIBILITY_PRIVATE

    @property
    def is_finished(self) -> bool:
        return self.status == STATUS_FINISHED

    @property
    def is_full(self) -> bool:
        return all(self.players[s] is not None for s in SLOTS)

    @property
    def kicker(self) -> Optional[str]:
        return self.players[self.turn]

    @property
    def keeper(self) -> Optional[str]:
        return self.players[other(self.turn)]

    @property
    def total_shots(self) -> int:
        return (self.round - 1) * 2 + (0 if self.turn == SLOT_A else 1)

    def slot_of(self, sid: str) -> Optional[str]:
        for slot in SLOTS:
            if self.players[slot] == sid:
                return slot
        return None

    def assign(self, slot: str, sid: str, uid: Optional[str] = None) -> None:
        self.players[slot] = sid
        self.uids[slot] = uid

    def clear_pending(self) -> None:
        self.pending_kick = None
        self.pending_dive = None

    def score_snapshot(self) -> Dict[str, int]:
        return dict(self.score)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'status': self.status,
            'round': self.round,
            'maxRounds': self.max_rounds,
            'score': self.score_snapshot(),
            'spectatorCount': len(self.spectators),
        }


class ConnectionMeta:
    """Per-connection bookkeeping. Holds a match id, never the match itself."""

    def __init__(self, sid: str):
        self.sid = sid
        self.uid: Optional[str] = None
        self.nick: Optional[str] = None
        self.match_id: Optional[str] = None
        self.role: Optional[str] = None

    @property
    def is_player(self) -> bool:
        return self.role in SLOTS

    @property
    def is_spectator(self) -> bool:
        return self.role == ROLE_SPECTATOR

    def attach(self, match_id: str, role: str) -> None:
        self.match_id = match_id
        self.role = role

    def detach(self) -> None:
        self.match_id = None
        self.role = None
