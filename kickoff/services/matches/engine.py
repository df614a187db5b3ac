import logging
import random
import threading
import time
from typing import Any, Dict, List, Optional, Tuple

from kickoff.messages import DiveMessage, HelloMessage, KickMessage
from kickoff.models import (
    REASON_INVITE_EXPIRED,
    REASON_OPPONENT_DISCONNECTED,
    ROLE_SPECTATOR,
    SLOT_A,
    SLOT_B,
    STATUS_FINISHED,
    STATUS_ORDER,
    STATUS_PLAYING,
    STATUS_WAITING,
    VISIBILITY_PRIVATE,
    VISIBILITY_PUBLIC,
    ConnectionMeta,
    Dive,
    Kick,
    Match,
    generate_id,
    generate_invite_code,
    other,
)
from .broadcast import Broadcaster
from .queue import MatchmakingQueue
from .registry import ConnectionRegistry
from .shots import ShotResolver, apply_outcome
from .store import MatchStore

logger = logging.getLogger(__name__)

ERROR_INVALID_CODE = 'Invalid code or room not available'
ERROR_ROOM_FULL = 'Room is already full'


class MatchService:
    """Match lifecycle: matchmaking, private invites, spectating, turns and
    shot resolution, termination.

    Locking: ``lobby_lock`` serializes everything that crosses matches
    (queue, registry attachment, match creation, disconnect bookkeeping).
    Each match additionally has its own lock from the store; kick and dive
    only ever take that one. Order is always lobby lock, then match lock.
    """

    def __init__(self, broadcaster: Broadcaster, rng=None, max_rounds: int = 5,
                 default_nick: str = 'Guest', finished_retention_sec: int = 0,
                 invite_ttl_sec: int = 0, clock=time.time, code_rng=None,
                 registry: Optional[ConnectionRegistry] = None,
                 queue: Optional[MatchmakingQueue] = None,
                 store: Optional[MatchStore] = None):
        self.broadcaster = broadcaster
        self.resolver = ShotResolver(rng)
        self.max_rounds = max_rounds
        self.default_nick = default_nick
        self.finished_retention_sec = finished_retention_sec
        self.invite_ttl_sec = invite_ttl_sec
        self.clock = clock
        self.code_rng = code_rng if code_rng is not None else random.SystemRandom()
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.queue = queue if queue is not None else MatchmakingQueue()
        self.store = store if store is not None else MatchStore()
        self.lobby_lock = threading.RLock()

    # ---- connection lifecycle ----

    def connect(self, sid: str) -> ConnectionMeta:
        return self.registry.connect(sid)

    def hello(self, sid: str, message: HelloMessage) -> Optional[Dict[str, Any]]:
        meta = self.registry.get(sid)
        if meta is None:
            return None
        meta.uid = message.uid or f'guest_{generate_id()}'
        meta.nick = message.nick or self.default_nick
        reply = {'serverTime': int(self.clock() * 1000), 'uid': meta.uid, 'nick': meta.nick}
        self.broadcaster.send(sid, 'hello_ok', reply)
        return reply

    def disconnect(self, sid: str) -> Optional[Match]:
        """Forget ``sid``; finish its match if it was a player.

        Returns the match that was finished, if any.
        """
        with self.lobby_lock:
            self.queue.remove_if_present(sid)
            meta = self.registry.disconnect(sid)
        if meta is None or not meta.match_id:
            return None
        match = self.store.get(meta.match_id)
        if match is None:
            return None
        with self.store.lock_for(match.id):
            if meta.is_spectator:
                match.spectators.discard(sid)
                return None
            slot = match.slot_of(sid)
            if slot is None or match.is_finished:
                return None
            remaining = other(slot)
            winner = remaining if match.players[remaining] else None
            logger.info("[disconnect] match=%s slot=%s left, winner=%s", match.id, slot, winner)
            self._finish(match, winner, REASON_OPPONENT_DISCONNECTED, departed=sid)
            return match

    # ---- matchmaking and joining ----

    def join_queue(self, sid: str) -> List[Match]:
        """Queue ``sid`` and pair the queue. Returns the matches created."""
        with self.lobby_lock:
            meta = self.registry.get(sid)
            if meta is None or self._is_engaged(meta):
                return []
            self.queue.enqueue(sid)
            logger.info("[queue] %s queued, size=%d", sid, len(self.queue))
            return [self._pair(first, second) for first, second in self.queue.pop_pairs()]

    def create_private(self, sid: str) -> Optional[Match]:
        with self.lobby_lock:
            meta = self.registry.get(sid)
            if meta is None or self._is_engaged(meta):
                return None
            self._leave_spectating(meta)
            match = self._create_match(VISIBILITY_PRIVATE)
            with self.store.lock_for(match.id):
                match.assign(SLOT_A, sid, meta.uid)
                meta.attach(match.id, SLOT_A)
            logger.info("[private] match=%s code=%s created by %s", match.id, match.invite_code, sid)
            self.broadcaster.private_created(match, sid)
            return match

    def join_by_code(self, sid: str, code: str) -> Optional[Match]:
        with self.lobby_lock:
            meta = self.registry.get(sid)
            if meta is None or self._is_engaged(meta):
                return None
            match = self.store.find_active_by_code(code)
            if match is None:
                self.broadcaster.error(sid, ERROR_INVALID_CODE)
                return None
            with self.store.lock_for(match.id):
                if match.status != STATUS_WAITING or match.players[SLOT_B] is not None:
                    self.broadcaster.error(sid, ERROR_ROOM_FULL)
                    return None
                self._leave_spectating(meta)
                match.assign(SLOT_B, sid, meta.uid)
                meta.attach(match.id, SLOT_B)
                self._start_if_ready(match)
            return match

    def spectate(self, sid: str, match_id: str) -> Optional[Match]:
        with self.lobby_lock:
            meta = self.registry.get(sid)
            if meta is None or self._is_playing(meta):
                return None
            match = self.store.get(match_id)
            if match is None or match.is_finished:
                return None
            self._leave_spectating(meta)
            with self.store.lock_for(match.id):
                if match.is_finished:
                    return None
                match.spectators.add(sid)
                meta.attach(match.id, ROLE_SPECTATOR)
                self.broadcaster.snapshot(match, sid)
            return match

    # ---- in-match actions ----

    def kick(self, sid: str, message: KickMessage) -> bool:
        match = self._player_match(sid)
        if match is None:
            return False
        with self.store.lock_for(match.id):
            if match.status != STATUS_PLAYING or match.kicker != sid:
                return False
            match.pending_kick = Kick(message.angle_deg, message.power)
            if match.pending_dive is not None:
                self._resolve_shot(match)
            return True

    def dive(self, sid: str, message: DiveMessage) -> bool:
        match = self._player_match(sid)
        if match is None:
            return False
        with self.store.lock_for(match.id):
            if match.status != STATUS_PLAYING or match.keeper != sid:
                return False
            match.pending_dive = Dive(message.direction)
            if match.pending_kick is not None:
                self._resolve_shot(match)
            return True

    # ---- listing and housekeeping ----

    def public_matches(self) -> List[Dict[str, Any]]:
        listing = []
        for match in self.store.public_listing():
            with self.store.lock_for(match.id):
                listing.append(match.to_dict())
        return listing

    def prune(self, now: Optional[float] = None) -> Tuple[List[Match], List[Match]]:
        """Expire stale private invites and evict old finished matches.

        A zero ``invite_ttl_sec`` or ``finished_retention_sec`` disables the
        corresponding step. Returns ``(expired, evicted)``.
        """
        now = self.clock() if now is None else now
        expired, evicted = [], []
        with self.lobby_lock:
            for match in self.store.all():
                with self.store.lock_for(match.id):
                    if (self.invite_ttl_sec and match.is_private
                            and match.status == STATUS_WAITING
                            and now - match.created_at >= self.invite_ttl_sec):
                        self._finish(match, None, REASON_INVITE_EXPIRED)
                        expired.append(match)
                    elif (self.finished_retention_sec and match.is_finished
                            and now - match.finished_at >= self.finished_retention_sec):
                        evicted.append(match)
            for match in evicted:
                self.store.evict(match.id)
        if expired or evicted:
            logger.info("[prune] expired=%d evicted=%d", len(expired), len(evicted))
        return expired, evicted

    # ---- internals ----

    def _is_engaged(self, meta: ConnectionMeta) -> bool:
        return meta.sid in self.queue or self._is_playing(meta)

    def _is_playing(self, meta: ConnectionMeta) -> bool:
        if not meta.is_player:
            return False
        match = self.store.get(meta.match_id)
        return match is not None and not match.is_finished

    def _leave_spectating(self, meta: ConnectionMeta) -> None:
        if not meta.is_spectator:
            return
        match = self.store.get(meta.match_id)
        if match is not None:
            with self.store.lock_for(match.id):
                match.spectators.discard(meta.sid)
        meta.detach()

    def _player_match(self, sid: str) -> Optional[Match]:
        meta = self.registry.get(sid)
        if meta is None or not meta.is_player:
            return None
        return self.store.get(meta.match_id)

    def _create_match(self, visibility: str) -> Match:
        self.prune()
        code = None
        if visibility == VISIBILITY_PRIVATE:
            code = generate_invite_code(self.store.active_codes(), rng=self.code_rng)
        match = Match(self.store.new_id(), visibility=visibility, invite_code=code,
                      max_rounds=self.max_rounds, created_at=self.clock())
        return self.store.add(match)

    def _pair(self, first: str, second: str) -> Match:
        metas = {sid: self.registry.get(sid) for sid in (first, second)}
        for meta in metas.values():
            if meta is not None:
                self._leave_spectating(meta)
        match = self._create_match(VISIBILITY_PUBLIC)
        with self.store.lock_for(match.id):
            for slot, sid in ((SLOT_A, first), (SLOT_B, second)):
                meta = metas[sid]
                match.assign(slot, sid, meta.uid if meta else None)
                if meta is not None:
                    meta.attach(match.id, slot)
            logger.info("[queue] paired %s (A) with %s (B) in match=%s", first, second, match.id)
            self._start_if_ready(match)
        return match

    def _set_status(self, match: Match, status: str) -> None:
        if STATUS_ORDER.index(status) <= STATUS_ORDER.index(match.status):
            raise ValueError(f"match {match.id} cannot move from {match.status} to {status}")
        match.status = status

    def _start_if_ready(self, match: Match) -> None:
        if match.status != STATUS_WAITING or not match.is_full:
            return
        self._set_status(match, STATUS_PLAYING)
        logger.info("[match_start] match=%s A=%s B=%s", match.id, match.players[SLOT_A], match.players[SLOT_B])
        self.broadcaster.match_started(match)
        self.broadcaster.turn(match)

    def _resolve_shot(self, match: Match) -> None:
        kick, dive = match.pending_kick, match.pending_dive
        match.clear_pending()
        shooter = match.turn
        outcome = self.resolver.resolve(kick, dive)
        apply_outcome(match.score, shooter, outcome)
        logger.info(
            "[shot] match=%s round=%d shooter=%s result=%s zone=%s score=%s",
            match.id, match.round, shooter, outcome.result, outcome.zone, match.score,
        )
        # Reported round is the one the shot belongs to
        self.broadcaster.shot_result(match, outcome.result, outcome.zone, other(shooter))

        if shooter == SLOT_B:
            match.round += 1
        match.turn = other(shooter)

        if self._shootout_decided(match):
            self._finish(match, self._leader(match))
        else:
            self.broadcaster.turn(match)

    def _shootout_decided(self, match: Match) -> bool:
        # Only a closed pair (turn back on A) can decide it, in regulation
        # and in sudden death alike
        if match.total_shots < match.max_rounds * 2 or match.turn != SLOT_A:
            return False
        return match.score[SLOT_A] != match.score[SLOT_B]

    @staticmethod
    def _leader(match: Match) -> str:
        if match.score[SLOT_A] > match.score[SLOT_B]:
            return SLOT_A
        if match.score[SLOT_B] > match.score[SLOT_A]:
            return SLOT_B
        return 'draw'

    def _finish(self, match: Match, winner: Optional[str], reason: Optional[str] = None,
                departed: Optional[str] = None) -> bool:
        if match.is_finished:
            return False
        self._set_status(match, STATUS_FINISHED)
        match.clear_pending()
        match.winner = winner
        match.finish_reason = reason
        match.finished_at = self.clock()
        logger.info("[match_over] match=%s winner=%s score=%s reason=%s", match.id, winner, match.score, reason)
        self.broadcaster.match_over(match, skip=departed)
        return True
