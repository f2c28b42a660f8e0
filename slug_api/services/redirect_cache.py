"""In-process TTL cache for public profile route decisions."""
from __future__ import annotations

import threading
import time
from typing import Any, Dict, Optional, Tuple

from slug_api.domain.slugs import OwnerType


class RedirectCache:
    """
    Remembers how ``/<route>/<slug>`` resolved (owner found or redirect target).

    Entries expire after ``ttl_seconds``; the reservation endpoints invalidate
    the slugs they touch so this process never serves a stale decision for them.
    """

    def __init__(self, ttl_seconds: int = 300) -> None:
        self.ttl_seconds = ttl_seconds
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key(owner_type: OwnerType, slug: str) -> str:
        return f"{owner_type.value}:{slug}"

    def get(self, key: str) -> Optional[Any]:
        if self.ttl_seconds <= 0:
            return None
        now = time.monotonic()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if now >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        if self.ttl_seconds <= 0:
            return
        with self._lock:
            self._entries[key] = (time.monotonic() + self.ttl_seconds, value)

    def invalidate(self, slug: str | None = None) -> None:
        with self._lock:
            if slug is None:
                self._entries.clear()
                return
            for owner_type in OwnerType:
                self._entries.pop(self.key(owner_type, slug), None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
