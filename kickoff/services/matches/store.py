import threading
from typing import Dict, List, Optional, Set

from kickoff.models import Match, generate_id


class MatchStore:
    """Owns every Match, keyed by id, plus one lock per match.

    Callers that mutate a match must hold ``lock_for(match.id)``. The store's
    own lock only guards the dictionaries, never a match's state.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._matches: Dict[str, Match] = {}
        self._locks: Dict[str, threading.RLock] = {}

    def new_id(self) -> str:
        with self._lock:
            while True:
                match_id = generate_id()
                if match_id not in self._matches:
                    return match_id

    def add(self, match: Match) -> Match:
        with self._lock:
            self._matches[match.id] = match
            self._locks[match.id] = threading.RLock()
        return match

    def get(self, match_id: Optional[str]) -> Optional[Match]:
        if not match_id:
            return None
        with self._lock:
            return self._matches.get(match_id)

    def lock_for(self, match_id: str) -> threading.RLock:
        with self._lock:
            lock = self._locks.get(match_id)
            if lock is None:
                # Evicted match; hand out a throwaway lock so callers still work
                lock = threading.RLock()
            return lock

    def evict(self, match_id: str) -> Optional[Match]:
        with self._lock:
            self._locks.pop(match_id, None)
            return self._matches.pop(match_id, None)

    def find_active_by_code(self, code: str) -> Optional[Match]:
        """Private, non-finished match holding ``code``."""
        if not code:
            return None
        with self._lock:
            for match in self._matches.values():
                if match.invite_code == code and not match.is_finished:
                    return match
        return None

    def active_codes(self) -> Set[str]:
        with self._lock:
            return {m.invite_code for m in self._matches.values()
                    if m.invite_code and not m.is_finished}

    def public_listing(self) -> List[Match]:
        """Public matches that have not finished, in creation order."""
        with self._lock:
            return [m for m in self._matches.values()
                    if not m.is_private and not m.is_finished]

    def all(self) -> List[Match]:
        with self._lock:
            return list(self._matches.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._matches)
