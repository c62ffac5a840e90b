"""
Caching Service.

Small in-memory TTL cache for slow-changing collaborator lookups such as the
current term. Each owner holds its own instance so tests and workers never
share state through a module global.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional


class TTLCache:

    def __init__(self, ttl_seconds: int = 300):
        self.ttl_seconds = ttl_seconds
        self._store: Dict[str, dict] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._store.get(key)
        if not entry:
            return None

        if datetime.utcnow() > entry["expires_at"]:
            del self._store[key]
            return None

        return entry["data"]

    def set(self, key: str, data: Any, ttl_seconds: Optional[int] = None):
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self._store[key] = {
            "data": data,
            "expires_at": datetime.utcnow() + timedelta(seconds=ttl),
        }

    def contains(self, key: str) -> bool:
        """True while a live entry exists, even if its value is None."""
        entry = self._store.get(key)
        return bool(entry) and datetime.utcnow() <= entry["expires_at"]

    def invalidate(self, key: str):
        self._store.pop(key, None)

    def clear(self):
        self._store.clear()
