"""Module that implements the in-memory cache for raw response bodies."""

from __future__ import annotations

import collections
from dataclasses import dataclass
import threading
import time
from typing import Optional, Tuple

import fasteners
import lz4.frame

from bitbucketfs.constants import DEFAULT_CACHE_MAX_ENTRIES, DEFAULT_CACHE_TTL


@dataclass
class CacheEntry:
    """
    Cached response body for a single request URL.

    Bodies are compressed because a directory walk can easily accumulate thousands of
    listings and file contents, most of which compress very well. LZ4 is fast enough
    that decompressing on a cache hit is negligible compared to a network round trip.

    The expiry is absolute and set when the entry is stored. Accessing an entry does not
    extend its lifetime.
    """

    compressed_body: bytes
    expires_at: float

    @staticmethod
    def from_body(body: bytes, ttl: float) -> CacheEntry:
        """Wrap a raw response body into a CacheEntry that expires after ttl seconds."""
        return CacheEntry(
            compressed_body=lz4.frame.compress(body),
            expires_at=time.monotonic() + ttl,
        )

    @property
    def body(self) -> bytes:
        """Retrieve and decompress the original response body."""
        return lz4.frame.decompress(self.compressed_body)

    def expired(self) -> bool:
        """Check if the entry has outlived its time-to-live."""
        return time.monotonic() >= self.expires_at


class ResponseCache:
    """
    Bounded and time-limited map of request URLs to raw response bodies.

    Every entry costs one unit of capacity no matter how large its body is. When the
    cache is full, the least recently used entry is evicted to make room. Entries are
    also dropped once their time-to-live has passed, whichever happens first.

    Any number of threads may call get() and set() concurrently. A call to clear() waits
    for those to finish, blocks new ones until all entries are gone, and then lets them
    continue. This is implemented with a reader/writer lock where get() and set() are
    readers and clear() is the writer. A second, plain lock protects the entry map
    itself while readers are modifying the LRU order.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
        ttl: float = DEFAULT_CACHE_TTL,
    ) -> None:
        """
        Instantiate an empty cache.

        An invalid capacity or time-to-live is a configuration error and raises
        ValueError. There is no sensible way to continue without a working cache.
        """
        if max_entries <= 0:
            raise ValueError(f"cache capacity must be positive, got {max_entries}")
        if ttl <= 0:
            raise ValueError(f"cache time-to-live must be positive, got {ttl}")

        self._max_entries = max_entries
        self._ttl = ttl

        self._entries: collections.OrderedDict[str, CacheEntry] = (
            collections.OrderedDict()
        )

        self._clear_lock = fasteners.ReaderWriterLock()
        self._entries_lock = threading.Lock()

    @property
    def max_entries(self) -> int:
        """Return the maximum number of entries held at once."""
        return self._max_entries

    def count(self) -> int:
        """Return the number of cached entries, including any not yet purged."""
        with self._entries_lock:
            return len(self._entries)

    def get(self, key: str) -> Tuple[Optional[bytes], bool]:
        """
        Look up the response body stored for a request URL.

        Returns the body and True on a hit, or None and False if the key was never
        stored, has been evicted or has expired.
        """
        with self._clear_lock.read_lock():
            with self._entries_lock:
                entry = self._entries.get(key)

                if entry is None:
                    return None, False

                if entry.expired():
                    del self._entries[key]
                    return None, False

                self._entries.move_to_end(key)

            return entry.body, True

    def set(self, key: str, body: bytes) -> bool:
        """
        Store the response body for a request URL.

        Returns whether the body was stored, which is always the case since every
        entry has the same cost and the capacity is at least one.
        """
        entry = CacheEntry.from_body(body, self._ttl)

        with self._clear_lock.read_lock():
            with self._entries_lock:
                self._entries[key] = entry
                self._entries.move_to_end(key)

                self._evict()

        return True

    def clear(self) -> None:
        """Remove all entries, regardless of their time-to-live."""
        with self._clear_lock.write_lock():
            with self._entries_lock:
                self._entries.clear()

    def _evict(self) -> None:
        """
        Drop least recently used entries until the cache is within its capacity.

        Expired entries are purged lazily upon lookup, or by this LRU pass since they
        are never touched again. Must be called with the entries lock held.
        """
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)
