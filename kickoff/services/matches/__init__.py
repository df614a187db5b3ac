"""Match domain services: queue, registry, store, shot resolution, broadcast.

Socket handlers and HTTP routes talk to ``MatchService`` only; everything
here is free of Flask so it can be exercised directly in tests.
"""
from .broadcast import Broadcaster
from .engine import MatchService
from .queue import MatchmakingQueue
from .registry import ConnectionRegistry
from .shots import ShotResolver
from .store import MatchStore

__all__ = [
    'Broadcaster',
    'ConnectionRegistry',
    'MatchService',
    'MatchStore',
    'MatchmakingQueue',
    'ShotResolver',
]
