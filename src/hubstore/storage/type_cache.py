"""Bounded hash -> object type cache."""

import threading
from collections import OrderedDict
from typing import Optional

from hubstore.constants import DEFAULT_TYPE_CACHE_SIZE


class TypeCache:
    """Remembers which object type a hash was last seen as.

    The cache is only a hint used to narrow existence probes; a hit never
    stands in for asking the remote. Least recently used entries are evicted
    once ``maxsize`` is reached. Safe to share between threads.

    Example:
        >>> cache = TypeCache(maxsize=2)
        >>> cache.remember("abc...", "tree")
        >>> cache.get("abc...")
        'tree'
    """

    def __init__(self, maxsize: int = DEFAULT_TYPE_CACHE_SIZE) -> None:
        if maxsize < 1:
            raise ValueError(f"maxsize must be positive, got {maxsize}")
        self.maxsize = maxsize
        self._entries: "OrderedDict[str, str]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, object_hash: str) -> Optional[str]:
        with self._lock:
            object_type = self._entries.get(object_hash)
            if object_type is not None:
                self._entries.move_to_end(object_hash)
            return object_type

    def remember(self, object_hash: str, object_type: str) -> None:
        with self._lock:
            self._entries[object_hash] = object_type
            self._entries.move_to_end(object_hash)
            while len(self._entries) > self.maxsize:
                self._entries.popitem(last=False)

    def forget(self, object_hash: str) -> None:
        with self._lock:
            self._entries.pop(object_hash, None)

    def __contains__(self, object_hash: object) -> bool:
        with self._lock:
            return object_hash in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
