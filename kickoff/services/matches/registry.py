import threading
from typing import Dict, Optional

from kickoff.models import ConnectionMeta


class ConnectionRegistry:
    """Maps a Socket.IO sid to its connection metadata."""

    def __init__(self):
        self._lock = threading.RLock()
        self._by_sid: Dict[str, ConnectionMeta] = {}

    def connect(self, sid: str) -> ConnectionMeta:
        with self._lock:
            meta = self._by_sid.get(sid)
            if meta is None:
                meta = ConnectionMeta(sid)
                self._by_sid[sid] = meta
            return meta

    def get(self, sid: str) -> Optional[ConnectionMeta]:
        with self._lock:
            return self._by_sid.get(sid)

    def disconnect(self, sid: str) -> Optional[ConnectionMeta]:
        with self._lock:
            return self._by_sid.pop(sid, None)

    def __contains__(self, sid: str) -> bool:
        with self._lock:
            return sid in self._by_sid

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_sid)
