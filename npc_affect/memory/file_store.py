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

"""Durable MemoryStore: one JSON file per NPC under a memory root.

Each file holds the NPC's ordered record list and nothing else:

    [{"source_id": "player", "text": "...", "valence": 0.4,
      "arousal": 0.1, "timestamp": 1760000000.0}, ...]

Writes go to a temp file in the same directory and are swapped in with
``os.replace``, so a crash mid-write leaves the previous history intact
and readers never see a half-written unit.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
import time
from collections.abc import Callable
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from npc_affect.config import MEMORY_FILE_SUFFIX, MEMORY_ROOT
from npc_affect.errors import ConfigInvalid, PersistenceFailed
from npc_affect.models.affect import MemoryRecord, validate_npc_id

from .in_memory_store import InMemoryStore

logger = logging.getLogger(__name__)

_LOG_ADAPTER = TypeAdapter(list[MemoryRecord])


def encode_records(records: list[MemoryRecord]) -> bytes:
    return _LOG_ADAPTER.dump_json(records, indent=2)


def decode_records(data: bytes) -> list[MemoryRecord]:
    """Parse a memory unit.

    Raises:
        ValidationError: If the content is not a valid record list.
    """
    return _LOG_ADAPTER.validate_json(data)


class FileMemoryStore(InMemoryStore):
    """Memory store persisted as one JSON file per NPC.

    Args:
        root: Directory holding the per-NPC files. Created on first write.
        clock: Source of the current unix time (for eviction scoring).
    """

    def __init__(
        self,
        root: str | os.PathLike[str] = MEMORY_ROOT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(clock=clock)
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, npc_id: str) -> Path:
        """Location of the NPC's memory unit."""
        return self._root / f"{validate_npc_id(npc_id)}{MEMORY_FILE_SUFFIX}"

    # --- Persistence hooks ---

    def _persist(self, npc_id: str, records: list[MemoryRecord]) -> None:
        path = self.path_for(npc_id)
        data = encode_records(records)
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._root, prefix=f".{npc_id}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            logger.exception("Failed to write memory for NPC %s", npc_id)
            raise PersistenceFailed(
                f"Failed to write memory for NPC {npc_id!r}: {e}"
            ) from e

    def _delete_unit(self, npc_id: str) -> bool:
        try:
            self.path_for(npc_id).unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise PersistenceFailed(
                f"Failed to delete memory for NPC {npc_id!r}: {e}"
            ) from e
        return True

    def _load_unit(self, npc_id: str) -> list[MemoryRecord] | None:
        path = self.path_for(npc_id)
        try:
            return decode_records(path.read_bytes())
        except FileNotFoundError:
            return None
        except (OSError, ValidationError) as e:
            raise PersistenceFailed(f"Failed to read memory file {path}: {e}") from e

    def _unit_exists(self, npc_id: str) -> bool:
        return self.path_for(npc_id).exists()

    # --- MemoryStore ---

    def load_all_from_disk(self) -> int:
        """Load every readable memory file under the root.

        Unreadable or corrupt files are logged and skipped; they stay on
        disk untouched for inspection.

        Returns:
            Number of NPC memory files loaded.
        """
        if not self._root.is_dir():
            logger.info("Memory root %s does not exist yet.", self._root)
            return 0

        loaded = 0
        for path in sorted(self._root.glob(f"*{MEMORY_FILE_SUFFIX}")):
            npc_id = path.name[: -len(MEMORY_FILE_SUFFIX)]
            try:
                validate_npc_id(npc_id)
            except ConfigInvalid:
                logger.warning("Skipping memory file with invalid NPC id: %s", path)
                continue
            try:
                records = decode_records(path.read_bytes())
            except (OSError, ValidationError) as e:
                logger.warning("Skipping corrupt memory file %s: %s", path, e)
                continue
            with self._lock_for(npc_id):
                self._records[npc_id] = records
            loaded += 1
        return loaded

    def has(self, npc_id: str) -> bool:
        return npc_id in self._records or self._unit_exists(npc_id)
