# Copyright 2026 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""In-memory implementation of MemoryStore.

Holds the per-NPC record index and the per-NPC write locks. Durable
subclasses override the ``_persist``/``_delete_unit`` hooks; because a
hook runs before the index is swapped, a failed commit never becomes
visible to readers.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from typing import Any

from npc_affect.models.affect import MemoryRecord, parse_memory_records, validate_npc_id
from npc_affect.models.npc_config import EvictionPolicy, MemoryConfig

from .base import MemoryStore
from .decay import lowest_weight_index

logger = logging.getLogger(__name__)


def evict(
    records: list[MemoryRecord],
    config: MemoryConfig,
    now: float,
) -> tuple[list[MemoryRecord], int]:
    """Trim ``records`` down to ``config.max_records``.

    Args:
        records: Records in insertion order (not mutated).
        config: Cap and eviction policy.
        now: Current unix time, used by the lowest-weight policy.

    Returns:
        (kept records, number evicted).
    """
    excess = len(records) - config.max_records
    if excess <= 0:
        return records, 0
    if config.eviction_policy is EvictionPolicy.FIFO:
        return records[excess:], excess
    kept = list(records)
    for _ in range(excess):
        del kept[lowest_weight_index(kept, now, config.decay_half_life)]
    return kept, excess


class InMemoryStore(MemoryStore):
    """Dict-based memory store. Nothing survives a restart.

    Args:
        clock: Source of the current unix time (for eviction scoring).
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._records: dict[str, list[MemoryRecord]] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._clock = clock

    def _lock_for(self, npc_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(npc_id)
            if lock is None:
                lock = self._locks[npc_id] = threading.Lock()
            return lock

    # --- Persistence hooks ---

    def _persist(self, npc_id: str, records: list[MemoryRecord]) -> None:
        """Durably write ``records`` as the NPC's full history."""

    def _delete_unit(self, npc_id: str) -> bool:
        """Remove the NPC's persisted unit. Returns True if one existed."""
        return False

    def _load_unit(self, npc_id: str) -> list[MemoryRecord] | None:
        """Read the NPC's persisted unit, or None if there is none."""
        return None

    def _unit_exists(self, npc_id: str) -> bool:
        return False

    def _current(self, npc_id: str) -> list[MemoryRecord]:
        """Committed records, loading the unit on first touch. Hold the lock."""
        records = self._records.get(npc_id)
        if records is None:
            records = self._load_unit(npc_id)
            if records is None:
                return []
            self._records[npc_id] = records
        return records

    # --- MemoryStore ---

    def append(
        self,
        npc_id: str,
        record: MemoryRecord,
        config: MemoryConfig | None = None,
    ) -> int:
        validate_npc_id(npc_id)
        config = config or MemoryConfig()
        with self._lock_for(npc_id):
            updated = [*self._current(npc_id), record]
            updated, evicted = evict(updated, config, self._clock())
            self._persist(npc_id, updated)
            self._records[npc_id] = updated
        if evicted:
            logger.debug("Evicted %d record(s) for NPC %s", evicted, npc_id)
        return evicted

    def all(self, npc_id: str) -> list[MemoryRecord]:
        # Lists are replaced on commit, never mutated, so this is a snapshot.
        records = self._records.get(npc_id)
        if records is None:
            validate_npc_id(npc_id)
            with self._lock_for(npc_id):
                records = self._current(npc_id)
        return list(records)

    def import_records(self, npc_id: str, records: Iterable[Any]) -> int:
        validate_npc_id(npc_id)
        parsed = parse_memory_records(records)
        with self._lock_for(npc_id):
            self._persist(npc_id, parsed)
            self._records[npc_id] = parsed
        logger.info("Imported %d record(s) for NPC %s", len(parsed), npc_id)
        return len(parsed)

    def clear(self, npc_id: str) -> None:
        validate_npc_id(npc_id)
        with self._lock_for(npc_id):
            if npc_id not in self._records and not self._unit_exists(npc_id):
                return
            self._persist(npc_id, [])
            self._records[npc_id] = []

    def remove_npc(self, npc_id: str) -> bool:
        validate_npc_id(npc_id)
        with self._lock_for(npc_id):
            existed = self._delete_unit(npc_id)
            existed = self._records.pop(npc_id, None) is not None or existed
        if existed:
            logger.info("Removed memory unit for NPC %s", npc_id)
        return existed

    def load_all_from_disk(self) -> int:
        return 0

    def npc_ids(self) -> list[str]:
        return list(self._records)

