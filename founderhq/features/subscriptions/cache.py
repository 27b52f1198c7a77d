"""
In-process TTL cache for resolved plans.

Best-effort and per-process: correctness never depends on it because the
server-side guards always re-read storage.
"""

import threading
import time
from typing import Callable, Dict, Optional, Tuple

from founderhq.models.plan import PlanId


class PlanCache:
    def __init__(self, ttl_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[PlanId, float]] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> Optional[PlanId]:
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return None
            plan, stored_at = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[user_id]
                return None
            return plan

    def set(self, user_id: str, plan: PlanId) -> None:
        with self._lock:
            self._entries[user_id] = (plan, self._clock())

    def invalidate(self, user_id: Optional[str] = None) -> None:
        """Drop one user's entry, or everything when user_id is None."""
        with self._lock:
            if user_id is None:
                self._entries.clear()
            else:
                self._entries.pop(user_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
