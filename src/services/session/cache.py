"""Key-value cache with per-entry TTL.

Entries expire two ways: a deferred removal scheduled on the running
event loop, and a lazy deadline check on every read. Each write gets a
fresh generation token; a deferred removal only deletes the entry if its
token still matches, so a timer left over from an earlier write can
never remove a later value stored under the same key.
"""

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, Iterator, Optional, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

_MISSING = object()


@dataclass
class _Entry(Generic[V]):
    value: V
    generation: int
    expires_at: float
    handle: Optional[asyncio.TimerHandle] = None


class ExpiringCache(Generic[K, V]):
    """
    Generic key→value store with per-entry TTL.

    Example:
        cache = ExpiringCache(default_ttl=1800, name="transcripts")
        cache.put((chat_id, message_id), entry)
        entry = cache.get((chat_id, message_id))  # None once expired
    """

    def __init__(
        self,
        default_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        name: str = "cache",
    ):
        """
        Initialize the cache.

        Args:
            default_ttl: TTL in seconds used when put() gets none
            clock: Monotonic time source for the lazy deadline check
            name: Label used in log lines
        """
        self._default_ttl = default_ttl
        self._clock = clock
        self._name = name
        self._entries: dict[K, _Entry[V]] = {}
        self._generations = itertools.count(1)

    def put(self, key: K, value: V, ttl: Optional[float] = None) -> None:
        """
        Store a value and schedule its removal after ttl seconds.

        Replacing an existing key cancels the previous removal.

        Raises:
            ValueError: If no positive TTL is available
        """
        ttl = self._default_ttl if ttl is None else ttl
        if ttl is None or ttl <= 0:
            raise ValueError(f"{self._name}: TTL must be positive, got {ttl!r}")

        previous = self._entries.get(key)
        if previous is not None and previous.handle is not None:
            previous.handle.cancel()

        generation = next(self._generations)
        self._entries[key] = _Entry(
            value=value,
            generation=generation,
            expires_at=self._clock() + ttl,
            handle=self._schedule_removal(key, generation, ttl),
        )

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        """Return the value, or default if absent or expired. Never extends the TTL."""
        entry = self._live_entry(key)
        if entry is None:
            return default
        return entry.value

    def delete(self, key: K) -> bool:
        """
        Remove an entry immediately.

        Returns:
            True if a live entry was removed; deleting an absent key is a no-op
        """
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        if entry.handle is not None:
            entry.handle.cancel()
        return self._clock() < entry.expires_at

    def pop(self, key: K, default: Optional[V] = None) -> Optional[V]:
        """Remove and return a live value."""
        entry = self._live_entry(key)
        if entry is None:
            return default
        self.delete(key)
        return entry.value

    def clear(self) -> None:
        """Drop every entry and cancel their scheduled removals."""
        for entry in self._entries.values():
            if entry.handle is not None:
                entry.handle.cancel()
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return self._live_entry(key) is not None  # type: ignore[arg-type]

    def __len__(self) -> int:
        return sum(1 for _ in self._live_keys())

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._live_keys()))

    def _live_keys(self) -> Iterator[K]:
        now = self._clock()
        for key, entry in list(self._entries.items()):
            if now < entry.expires_at:
                yield key

    def _live_entry(self, key: K) -> Optional[_Entry[V]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            self._remove_if_current(key, entry.generation)
            return None
        return entry

    def _schedule_removal(
        self, key: K, generation: int, ttl: float
    ) -> Optional[asyncio.TimerHandle]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop (sync callers): the deadline check on read still applies
            return None
        return loop.call_later(ttl, self._remove_if_current, key, generation)

    def _remove_if_current(self, key: K, generation: int) -> None:
        entry = self._entries.get(key)
        if entry is None:
            return
        if entry.generation != generation:
            logger.debug(f"{self._name}: skipped stale removal for {key!r}")
            return
        if entry.handle is not None:
            entry.handle.cancel()
        del self._entries[key]
        logger.debug(f"{self._name}: expired {key!r}")
