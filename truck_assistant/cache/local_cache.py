"""Thread-safe key/value cache with per-entry expiry, persisted to JSON.

Keys are namespaced with a prefix. Each entry is stored as
``{"data", "timestamp", "expires"}`` (epoch milliseconds; ``expires`` is
null for entries that never expire). Expired entries are removed lazily
on read and in bulk by ``sweep_expired``.
"""

from __future__ import annotations

import copy
import json
import os
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

logger = structlog.get_logger()

DEFAULT_PREFIX = "truck-repair-"
_DEFAULT_MAX_SIZE: int = 5_000  # max cached entries


def _now_ms() -> int:
    return int(time.time() * 1000)


class LocalCache:
    """Prefixed TTL store, optionally backed by a JSON file."""

    def __init__(
        self,
        path: Optional[Path] = None,
        prefix: str = DEFAULT_PREFIX,
        max_size: int = _DEFAULT_MAX_SIZE,
    ) -> None:
        self._path = Path(path) if path else None
        self._prefix = prefix
        self._max_size = max_size
        self._lock = threading.Lock()
        self._store: Dict[str, dict] = {}

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Read entries from the backing file, if there is one."""
        if self._path is None or not self._path.exists():
            return
        with self._lock:
            with self._path.open("r", encoding="utf-8") as fh:
                raw = json.load(fh)
            self._store = {k: v for k, v in raw.items() if isinstance(v, dict) and "data" in v}
        logger.info("local_cache_loaded", path=str(self._path), entries=len(self._store))

    def _flush(self) -> None:
        """Write the store to disk. Caller holds the lock."""
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as fh:
            json.dump(self._store, fh, default=str)
        os.replace(tmp, self._path)

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def set(self, key: str, data: Any, ttl_minutes: Optional[float] = None) -> None:
        """Insert or overwrite *key*.

        If the cache is at capacity, the entry with the oldest timestamp
        is evicted.
        """
        now = _now_ms()
        entry = {
            "data": copy.deepcopy(data),
            "timestamp": now,
            "expires": now + int(ttl_minutes * 60_000) if ttl_minutes is not None else None,
        }
        full_key = self._prefix + key
        with self._lock:
            if full_key not in self._store and len(self._store) >= self._max_size:
                oldest = min(self._store, key=lambda k: self._store[k]["timestamp"])
                del self._store[oldest]
            self._store[full_key] = entry
            self._flush()

    def get(self, key: str) -> Optional[Any]:
        """Return the stored data or *None* (removes the entry if expired)."""
        full_key = self._prefix + key
        with self._lock:
            entry = self._store.get(full_key)
            if entry is None:
                return None
            expires = entry.get("expires")
            if expires is not None and _now_ms() > expires:
                del self._store[full_key]
                self._flush()
                return None
            return copy.deepcopy(entry["data"])

    def remove(self, key: str) -> bool:
        with self._lock:
            removed = self._store.pop(self._prefix + key, None) is not None
            if removed:
                self._flush()
        return removed

    def clear(self) -> None:
        """Drop every entry under this cache's prefix."""
        with self._lock:
            for k in [k for k in self._store if k.startswith(self._prefix)]:
                del self._store[k]
            self._flush()

    def keys(self) -> List[str]:
        with self._lock:
            return [k[len(self._prefix):] for k in self._store if k.startswith(self._prefix)]

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def sweep_expired(self) -> int:
        """Bulk-remove expired entries.  Returns count removed."""
        now = _now_ms()
        with self._lock:
            expired = [
                k for k, v in self._store.items()
                if v.get("expires") is not None and now > v["expires"]
            ]
            for k in expired:
                del self._store[k]
            if expired:
                self._flush()
        return len(expired)

    def export_data(self) -> Dict[str, Any]:
        """Live (unexpired) data keyed without the prefix."""
        self.sweep_expired()
        with self._lock:
            return {
                k[len(self._prefix):]: copy.deepcopy(v["data"])
                for k, v in self._store.items()
                if k.startswith(self._prefix)
            }

    def import_data(self, payload: Dict[str, Any]) -> int:
        """Store every item of *payload* without expiry. Returns the count."""
        for key, data in payload.items():
            self.set(key, data)
        return len(payload)

    def storage_info(self) -> dict:
        with self._lock:
            used = len(json.dumps(self._store, default=str).encode("utf-8"))
            return {
                "entries": len(self._store),
                "usedBytes": used,
                "maxEntries": self._max_size,
                "path": str(self._path) if self._path else None,
            }

    def size(self) -> int:
        with self._lock:
            return len(self._store)
