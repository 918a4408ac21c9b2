"""
Selector Memory - process-local cache of healed selectors.

Remembers which healed selector resolved an original selector on a given
domain, so the next resolution tries it right after the original.

Entries are advisory: a missed or stale hint only degrades ranking.
Eviction is amortized - the owner calls evict_if_over_capacity()
periodically instead of on every write.

Usage:
    memory = SelectorMemory(capacity=100)
    memory.record("app.example.com", "#old-id", "[data-testid='new-id']")
    memory.query("app.example.com", "#old-id")
    # -> [CandidateSelector("[data-testid='new-id']", css, learned)]
"""

import logging
import threading
from collections import OrderedDict
from datetime import datetime
from typing import List, Tuple

from web_healer.engine.models import CandidateSelector, SelectorMemoryEntry, SelectorOrigin

logger = logging.getLogger(__name__)

_Key = Tuple[str, str, str]


class SelectorMemory:
    """
    Bounded LRU map of (domain, original, healed) -> SelectorMemoryEntry.

    Safe to share between orchestrators: writes are serialized by a lock,
    reads take a snapshot under the same lock.
    """

    def __init__(self, capacity: int = 100):
        if capacity < 2:
            raise ValueError("capacity must be at least 2")
        self.capacity = capacity
        self._entries: "OrderedDict[_Key, SelectorMemoryEntry]" = OrderedDict()
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, domain_scope: str, original: str, healed: str) -> SelectorMemoryEntry:
        """Create or refresh the entry for a successful heal."""
        key = (domain_scope, original, healed)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = SelectorMemoryEntry(
                    original_selector=original,
                    healed_selector=healed,
                    domain_scope=domain_scope,
                )
                self._entries[key] = entry
                logger.debug(f"Remembered heal on {domain_scope}: {original!r} -> {healed!r}")
            else:
                entry.last_used_at = datetime.now()
                entry.hits += 1
                self._entries.move_to_end(key)
            return entry

    def query(self, domain_scope: str, original: str) -> List[CandidateSelector]:
        """Healed selectors for original on domain_scope, most recently used first."""
        with self._lock:
            matches = [
                entry for (domain, orig, _), entry in self._entries.items()
                if domain == domain_scope and orig == original
            ]
        matches.reverse()
        return [
            CandidateSelector.create(entry.healed_selector, SelectorOrigin.LEARNED)
            for entry in matches
        ]

    def evict_if_over_capacity(self) -> int:
        """
        Drop the least recently used half once the bound is exceeded.

        Returns:
            Number of evicted entries
        """
        with self._lock:
            if len(self._entries) <= self.capacity:
                return 0
            keep = self.capacity // 2
            evicted = len(self._entries) - keep
            for _ in range(evicted):
                self._entries.popitem(last=False)
        logger.info(f"Selector memory cleaned: evicted {evicted}, kept {keep}")
        return evicted

    def entries(self) -> List[SelectorMemoryEntry]:
        """Snapshot of all entries, least recently used first."""
        with self._lock:
            return list(self._entries.values())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
