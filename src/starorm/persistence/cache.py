"""
Cache Pools - key/value stores used by the ``Cacheable`` model feature.
"""

import copy
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Optional


class CachePool(ABC):
    """Contract for cache backends"""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on a miss"""
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    def has(self, key: str) -> bool:
        return self.get(key) is not None


@dataclass
class CacheRecord:
    """Value stored in memory with expiry metadata"""
    value: Any
    stored_at: datetime = field(default_factory=datetime.now)
    expires_at: Optional[datetime] = None
    hits: int = 0

    def is_expired(self) -> bool:
        return self.expires_at is not None and datetime.now() > self.expires_at


class MemoryCachePool(CachePool):
    """Thread-safe in-process cache with per-entry TTL"""

    def __init__(self):
        self._records: Dict[str, CacheRecord] = {}
        self._lock = threading.RLock()
        self._stats = {"hits": 0, "misses": 0, "writes": 0, "evictions": 0}

    def get(self, key):
        with self._lock:
            record = self._records.get(key)
            if record is None:
                self._stats["misses"] += 1
                return None
            if record.is_expired():
                del self._records[key]
                self._stats["evictions"] += 1
                self._stats["misses"] += 1
                return None
            record.hits += 1
            self._stats["hits"] += 1
            return copy.deepcopy(record.value)

    def set(self, key, value, ttl=None):
        expires_at = datetime.now() + timedelta(seconds=ttl) if ttl else None
        with self._lock:
            self._records[key] = CacheRecord(copy.deepcopy(value), expires_at=expires_at)
            self._stats["writes"] += 1

    def delete(self, key):
        with self._lock:
            self._records.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def get_stats(self) -> Dict[str, int]:
        return self._stats.copy()


__all__ = ['CachePool', 'CacheRecord', 'MemoryCachePool']
