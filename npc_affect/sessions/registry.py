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

"""Process-wide map of NPC id to its live evaluator.

The map is only mutated through ``create``/``remove``/``clear``.
Holders of an evaluator reference cannot change which evaluator an id
points to.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from npc_affect.errors import AlreadyExists, NotFound, PersistenceFailed
from npc_affect.models.npc_config import Identity, PersonalityTraits
from npc_affect.simulation.evaluator import MemoryEmotionEvaluator

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of one live session.

    Attributes:
        npc_id: Unique identifier.
        identity: Name and background.
        personality: Resting baseline.
        memory_count: Records currently stored for the NPC, or None if
            its memory unit could not be read.
    """

    npc_id: str
    identity: Identity
    personality: PersonalityTraits
    memory_count: int | None


class SessionRegistry:
    """Thread-safe registry of live MemoryEmotionEvaluators."""

    def __init__(self) -> None:
        self._sessions: dict[str, MemoryEmotionEvaluator] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, npc_id: object) -> bool:
        return npc_id in self._sessions

    def create(self, npc_id: str, evaluator: MemoryEmotionEvaluator) -> None:
        """Register ``evaluator`` under ``npc_id``.

        Raises:
            AlreadyExists: If the id already has a live evaluator.
        """
        with self._lock:
            if npc_id in self._sessions:
                raise AlreadyExists(f"NPC session {npc_id!r} already exists.")
            self._sessions[npc_id] = evaluator

    def get(self, npc_id: str) -> MemoryEmotionEvaluator:
        """Return the live evaluator for ``npc_id``.

        Raises:
            NotFound: If the id is unknown.
        """
        evaluator = self._sessions.get(npc_id)
        if evaluator is None:
            raise NotFound(f"NPC session {npc_id!r} not found.")
        return evaluator

    def with_evaluator(self, npc_id: str, fn: Callable[[MemoryEmotionEvaluator], T]) -> T:
        """Run ``fn`` against the NPC's evaluator.

        The registry lock is not held while ``fn`` runs: different NPCs
        proceed in parallel, and the evaluator serializes its own
        interaction evaluations.

        Raises:
            NotFound: If the id is unknown.
        """
        return fn(self.get(npc_id))

    def remove(self, npc_id: str) -> MemoryEmotionEvaluator:
        """Evict the NPC's evaluator. Persisted memory is left alone.

        Raises:
            NotFound: If the id is unknown.
        """
        with self._lock:
            evaluator = self._sessions.pop(npc_id, None)
        if evaluator is None:
            raise NotFound(f"NPC session {npc_id!r} not found.")
        return evaluator

    def list(self) -> list[tuple[str, SessionSnapshot]]:
        with self._lock:
            sessions = list(self._sessions.items())
        return [(npc_id, self._snapshot(npc_id, evaluator)) for npc_id, evaluator in sessions]

    def _snapshot(self, npc_id: str, evaluator: MemoryEmotionEvaluator) -> SessionSnapshot:
        try:
            memory_count = len(evaluator.memory())
        except PersistenceFailed as e:
            logger.warning("Cannot count memory for NPC %s: %s", npc_id, e.message)
            memory_count = None
        return SessionSnapshot(
            npc_id=npc_id,
            identity=evaluator.config.identity,
            personality=evaluator.config.personality,
            memory_count=memory_count,
        )

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
