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

"""Abstract per-NPC interaction memory.

Implementations:
  - InMemoryStore: dict-based index, nothing survives a restart (testing)
  - FileMemoryStore: one JSON file per NPC under a memory root
"""

from __future__ import annotations

import abc
from collections.abc import Iterable
from typing import Any

from npc_affect.models.affect import MemoryRecord
from npc_affect.models.npc_config import MemoryConfig


class MemoryStore(abc.ABC):
    """Interface for durable, per-NPC interaction history.

    Writes for one NPC are serialized; writes for different NPCs never
    contend. Readers always see the latest committed state.
    """

    @abc.abstractmethod
    def append(
        self,
        npc_id: str,
        record: MemoryRecord,
        config: MemoryConfig | None = None,
    ) -> int:
        """Append one record, evicting beyond ``config.max_records``.

        The record is committed before this returns.

        Args:
            npc_id: Owning NPC.
            record: The record to add.
            config: Size and eviction tunables. Defaults to MemoryConfig().

        Returns:
            Number of records evicted to make room.

        Raises:
            PersistenceFailed: If the commit failed. Nothing changed.
        """

    @abc.abstractmethod
    def all(self, npc_id: str) -> list[MemoryRecord]:
        """Return the NPC's records in insertion order (empty if none)."""

    @abc.abstractmethod
    def import_records(self, npc_id: str, records: Iterable[Any]) -> int:
        """Replace an NPC's history with ``records``.

        Every entry is validated before anything is written.

        Returns:
            Number of records imported.

        Raises:
            ConfigInvalid: On the first invalid record. Nothing changed.
            PersistenceFailed: If the commit failed. Nothing changed.
        """

    @abc.abstractmethod
    def clear(self, npc_id: str) -> None:
        """Delete all records for an NPC. Idempotent."""

    @abc.abstractmethod
    def remove_npc(self, npc_id: str) -> bool:
        """Delete the NPC's whole persisted unit.

        Returns:
            True if anything existed for this NPC.
        """

    @abc.abstractmethod
    def load_all_from_disk(self) -> int:
        """Rebuild the in-memory index from persisted units.

        Corrupt units are logged and skipped.

        Returns:
            Number of NPC units loaded.
        """

    @abc.abstractmethod
    def npc_ids(self) -> list[str]:
        """IDs of every NPC with a known memory unit."""

    def count(self, npc_id: str) -> int:
        return len(self.all(npc_id))

    def has(self, npc_id: str) -> bool:
        return npc_id in self.npc_ids()
