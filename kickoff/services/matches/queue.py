import threading
from collections import deque
from typing import Deque, List, Tuple


class MatchmakingQueue:
    """FIFO waiting list for public matchmaking.

    Pairing always takes the two oldest entries: the first becomes slot A,
    the second slot B.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self._entries: Deque[str] = deque()

    def enqueue(self, sid: str) -> bool:
        """Append ``sid`` to the tail. Returns False if it is already queued."""
        with self.lock:
            if sid in self._entries:
                return False
            self._entries.append(sid)
            return True

    def remove_if_present(self, sid: str) -> bool:
        with self.lock:
            try:
                self._entries.remove(sid)
            except ValueError:
                return False
            return True

    def pop_pairs(self) -> List[Tuple[str, str]]:
        pairs = []
        with self.lock:
            while len(self._entries) >= 2:
                first = self._entries.popleft()
                second = self._entries.popleft()
                pairs.append((first, second))
        return pairs

    def snapshot(self) -> List[str]:
        with self.lock:
            return list(self._entries)

    def __contains__(self, sid: str) -> bool:
        with self.lock:
            return sid in self._entries

    def __len__(self) -> int:
        with self.lock:
            return len(self._entries)
