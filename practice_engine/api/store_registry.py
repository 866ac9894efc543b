"""
Bounded registry of live session stores for the HTTP layer.

A store is only a cache of a persisted session: dropping one loses nothing,
the next request for that session resumes it from the gateway. Stores are
evicted when their session is completed, when they sit idle past the TTL,
and (oldest first) when the registry is over capacity.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from typing import Callable, Optional

from loguru import logger

from practice_engine.practice.session_store import PracticeSessionStore


class StoreRegistry:
    def __init__(
        self,
        idle_ttl_seconds: float,
        max_stores: int,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.idle_ttl_seconds = idle_ttl_seconds
        self.max_stores = max_stores
        self._monotonic = monotonic
        # session id -> (last used, store), least recently used first
        self._stores: OrderedDict[str, tuple[float, PracticeSessionStore]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._stores)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._stores

    def get(self, session_id: str) -> Optional[PracticeSessionStore]:
        """Return a live store and mark it as recently used."""
        self.prune()
        entry = self._stores.get(session_id)
        if entry is None:
            return None
        store = entry[1]
        self._stores[session_id] = (self._monotonic(), store)
        self._stores.move_to_end(session_id)
        return store

    def put(self, session_id: str, store: PracticeSessionStore) -> None:
        self._stores[session_id] = (self._monotonic(), store)
        self._stores.move_to_end(session_id)
        self.prune()

    def pop(self, session_id: str) -> Optional[PracticeSessionStore]:
        entry = self._stores.pop(session_id, None)
        return entry[1] if entry is not None else None

    def clear(self) -> None:
        self._stores.clear()

    def prune(self) -> int:
        """Evict completed, idle and over-capacity stores. Returns how many were dropped."""
        now = self._monotonic()
        stale = [
            session_id
            for session_id, (last_used, store) in self._stores.items()
            if not store.is_active or now - last_used >= self.idle_ttl_seconds
        ]
        for session_id in stale:
            del self._stores[session_id]

        overflow = 0
        while len(self._stores) > self.max_stores:
            self._stores.popitem(last=False)
            overflow += 1

        dropped = len(stale) + overflow
        if dropped:
            logger.debug(f"Evicted {dropped} session store(s), {len(self._stores)} live")
        return dropped
