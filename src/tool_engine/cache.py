"""Result cache for repeated tool calls.

Language models often request the same call several times in one
conversation. The cache keys a successful result by tool name and the
normalized arguments (see normalize_arguments), so {"City": "Oslo"} and
{"city": "Oslo"} share an entry. Entries expire after a TTL and the cache is
bounded in size; when full, the oldest tenth of the entries is evicted.
"""

import copy
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any

from pydantic_core import PydanticSerializationError, to_jsonable_python

from tool_engine.llm import normalize_arguments

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheKey:
    """Identity of a cached call.

    Attributes:
        tool_name: Tool the call targets
        arguments: Normalized arguments rendered as canonical JSON
    """

    tool_name: str
    arguments: str

    @classmethod
    def from_call(cls, tool_name: str, arguments: Any) -> "CacheKey | None":
        """Build the key for a call, or None if the arguments are not JSON data."""
        try:
            document = to_jsonable_python({} if arguments is None else arguments)
        except PydanticSerializationError:
            return None
        rendered = json.dumps(
            normalize_arguments(document), sort_keys=True, ensure_ascii=False
        )
        return cls(tool_name=tool_name, arguments=rendered)


@dataclass
class CacheEntry:
    result: Any
    created_at: float
    ttl: float
    hit_count: int = 0

    def is_expired(self, now: float | None = None) -> bool:
        now = time.monotonic() if now is None else now
        return now - self.created_at > self.ttl


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time cache statistics.

    Attributes:
        total_entries: Entries currently stored, expired ones included
        total_hits: Hits summed over the stored entries
        expired_count: Stored entries past their TTL
        hit_rate: Hits per stored entry
    """

    total_entries: int
    total_hits: int
    expired_count: int
    hit_rate: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_entries": self.total_entries,
            "total_hits": self.total_hits,
            "expired_count": self.expired_count,
            "hit_rate": self.hit_rate,
        }


class ToolCallCache:
    """Thread-safe TTL and size bounded cache of tool results.

    Results are deep-copied on the way in and out, so callers can mutate
    what they get back without touching the cache.
    """

    def __init__(
        self, ttl: float = 300.0, max_size: int = 1000, enabled: bool = True
    ) -> None:
        """Initialize the cache.

        Args:
            ttl: Default lifetime of an entry in seconds
            max_size: Maximum number of stored entries
            enabled: A disabled cache stores nothing and never hits

        Raises:
            ValueError: If ttl or max_size is not positive
        """
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.ttl = ttl
        self.max_size = max_size
        self.enabled = enabled
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, tool_name: str, arguments: Any) -> Any | None:
        """Get the cached result of a call, or None on a miss."""
        if not self.enabled:
            return None
        key = CacheKey.from_call(tool_name, arguments)
        if key is None:
            return None

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired():
                del self._entries[key]
                return None
            entry.hit_count += 1
            result = entry.result

        return copy.deepcopy(result)

    def put(
        self, tool_name: str, arguments: Any, result: Any, ttl: float | None = None
    ) -> bool:
        """Store the result of a successful call.

        Args:
            tool_name: Tool the call targeted
            arguments: Arguments of the call
            result: Structured result to cache
            ttl: Lifetime override in seconds

        Returns:
            bool: Whether the result was stored
        """
        if not self.enabled:
            return False
        key = CacheKey.from_call(tool_name, arguments)
        if key is None:
            return False

        entry = CacheEntry(
            result=copy.deepcopy(result),
            created_at=time.monotonic(),
            ttl=self.ttl if ttl is None else ttl,
        )
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_size:
                self._evict()
            self._entries[key] = entry
        return True

    def _evict(self) -> None:
        # Caller holds the lock
        now = time.monotonic()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if len(self._entries) < self.max_size:
            return

        oldest = sorted(self._entries, key=lambda key: self._entries[key].created_at)
        for key in oldest[: max(self.max_size // 10, 1)]:
            del self._entries[key]
        logger.debug(f"Evicted {max(self.max_size // 10, 1)} cached results")

    def invalidate_tool(self, tool_name: str) -> int:
        """Drop every entry of a tool.

        Returns:
            int: Number of entries removed
        """
        with self._lock:
            keys = [key for key in self._entries if key.tool_name == tool_name]
            for key in keys:
                del self._entries[key]
        return len(keys)

    def cleanup_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = time.monotonic()
        with self._lock:
            keys = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in keys:
                del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        now = time.monotonic()
        with self._lock:
            entries = list(self._entries.values())

        total_hits = sum(entry.hit_count for entry in entries)
        return CacheStats(
            total_entries=len(entries),
            total_hits=total_hits,
            expired_count=sum(1 for entry in entries if entry.is_expired(now)),
            hit_rate=total_hits / len(entries) if entries else 0.0,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
