"""Idempotency guard for callback queries.

check_and_mark() is synchronous and must run before the first await of a
callback handler: a double tap then cannot get two handlers past the check.
"""

import logging
from collections import OrderedDict
from typing import Optional

logger = logging.getLogger(__name__)


class CallbackDeduplicator:
    """
    Remembers callback ids that were already handled.

    History is bounded: once max_entries ids are stored, the oldest are
    forgotten first.
    """

    def __init__(self, max_entries: Optional[int] = 10000):
        self._max_entries = max_entries
        self._seen: OrderedDict[str, None] = OrderedDict()

    def check_and_mark(self, event_id: str) -> bool:
        """
        Record an event id.

        Returns:
            True on first occurrence, False for every repeat
        """
        if event_id in self._seen:
            logger.debug(f"Duplicate callback ignored: {event_id}")
            return False

        self._seen[event_id] = None
        if self._max_entries is not None and len(self._seen) > self._max_entries:
            self._seen.popitem(last=False)
        return True

    def clear(self) -> None:
        self._seen.clear()

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._seen

    def __len__(self) -> int:
        return len(self._seen)
