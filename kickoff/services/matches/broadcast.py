"""Outbound event contract.

Payload builders are plain functions so the shapes can be asserted on
directly; ``Broadcaster`` decides who receives what.
"""
import logging
from typing import Any, Callable, Dict, Iterable, Optional

from kickoff.models import SLOTS, Match, other

logger = logging.getLogger(__name__)

Emit = Callable[..., Any]


def match_start_payload(match: Match, slot: str) -> Dict[str, Any]:
    return {'matchId': match.id, 'youAre': slot, 'maxRounds': match.max_rounds}


def your_turn_payload(match: Match, slot: str) -> Dict[str, Any]:
    return {
        'role': 'kicker' if slot == match.turn else 'keeper',
        'round': match.round,
        'youAre': slot,
        'score': match.score_snapshot(),
    }


def score_update_payload(match: Match) -> Dict[str, Any]:
    return {'score': match.score_snapshot(), 'round': match.round, 'turn': match.turn}


def shot_result_payload(match: Match, result: str, zone: str, next_turn: str) -> Dict[str, Any]:
    return {
        'result': result,
        'zone': zone,
        'score': match.score_snapshot(),
        'round': match.round,
        'nextTurn': next_turn,
    }


def match_over_payload(match: Match) -> Dict[str, Any]:
    payload = {'winner': match.winner, 'score': match.score_snapshot()}
    if match.finish_reason:
        payload['reason'] = match.finish_reason
    return payload


class Broadcaster:
    """Fire-and-forget delivery to players and spectators of a match.

    ``emit`` has the signature of ``SocketIO.emit``; a failed send is logged
    and dropped.
    """

    def __init__(self, emit: Emit, namespace: Optional[str] = '/'):
        self._emit = emit
        self.namespace = namespace

    def send(self, sid: Optional[str], event: str, payload: Dict[str, Any]) -> None:
        if not sid:
            return
        try:
            self._emit(event, payload, to=sid, namespace=self.namespace)
        except Exception as exc:
            logger.warning("emit %s to %s failed: %s", event, sid, exc)

    def send_many(self, sids: Iterable[Optional[str]], event: str, payload: Dict[str, Any]) -> None:
        for sid in sids:
            self.send(sid, event, payload)

    def to_spectators(self, match: Match, event: str, payload: Dict[str, Any]) -> None:
        self.send_many(sorted(match.spectators), event, payload)

    def to_everyone(self, match: Match, event: str, payload: Dict[str, Any],
                    skip: Optional[str] = None) -> None:
        self.send_many((match.players[s] for s in SLOTS if match.players[s] != skip), event, payload)
        self.to_spectators(match, event, payload)

    # ---- transitions ----

    def match_started(self, match: Match) -> None:
        for slot in SLOTS:
            self.send(match.players[slot], 'match_start', match_start_payload(match, slot))

    def turn(self, match: Match) -> None:
        self.send(match.kicker, 'your_turn', your_turn_payload(match, match.turn))
        keeper_slot = other(match.turn)
        self.send(match.keeper, 'your_turn', your_turn_payload(match, keeper_slot))
        self.to_spectators(match, 'score_update', score_update_payload(match))

    def snapshot(self, match: Match, sid: str) -> None:
        self.send(sid, 'score_update', score_update_payload(match))

    def shot_result(self, match: Match, result: str, zone: str, next_turn: str) -> None:
        self.to_everyone(match, 'shot_result', shot_result_payload(match, result, zone, next_turn))

    def match_over(self, match: Match, skip: Optional[str] = None) -> None:
        self.to_everyone(match, 'match_over', match_over_payload(match), skip=skip)

    def private_created(self, match: Match, sid: str) -> None:
        self.send(sid, 'private_created', {'matchId': match.id, 'code': match.invite_code})

    def error(self, sid: str, message: str) -> None:
        self.send(sid, 'error_msg', {'message': message})
