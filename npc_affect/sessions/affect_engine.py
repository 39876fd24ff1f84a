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

"""The affect engine: owned context object behind every entry point.

Bundles the shared model cache, the memory store and the session
registry, and exposes NPC lifecycle, interaction evaluation, emotion
queries and memory introspection as plain structured data. Failures
are raised as typed ``AffectError`` subclasses.
"""

from __future__ import annotations

import contextlib
import logging
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from npc_affect.errors import NotFound
from npc_affect.memory.base import MemoryStore
from npc_affect.memory.in_memory_store import InMemoryStore
from npc_affect.models.affect import (
    EmotionPrediction,
    MemoryRecord,
    parse_memory_records,
    validate_npc_id,
)
from npc_affect.models.npc_config import NpcConfig, parse_npc_config
from npc_affect.prediction.model_cache import ModelCache
from npc_affect.simulation.evaluator import MemoryEmotionEvaluator

from .registry import SessionRegistry, SessionSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemorySnapshot:
    npc_id: str
    records: list[MemoryRecord]


class AffectEngine:
    """Entry point for NPC affect simulation.

    Live evaluators are not restored eagerly on startup: persisted
    memory is reloaded into the store, and a session created later under
    the same id sees that history.

    Args:
        store: Interaction memory. Defaults to a non-durable InMemoryStore.
        model_cache: Shared predictor cache. Defaults to the configured backend.
        registry: Live session map.
        clock: Source of the current unix time.
    """

    def __init__(
        self,
        store: MemoryStore | None = None,
        model_cache: ModelCache | None = None,
        registry: SessionRegistry | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store if store is not None else InMemoryStore(clock=clock)
        self._model_cache = model_cache if model_cache is not None else ModelCache()
        self._registry = registry if registry is not None else SessionRegistry()
        self._clock = clock

    @property
    def store(self) -> MemoryStore:
        return self._store

    @property
    def model_cache(self) -> ModelCache:
        return self._model_cache

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @property
    def is_model_ready(self) -> bool:
        return self._model_cache.is_ready

    # --- Lifecycle ---

    def initialize_model(self) -> bool:
        """Load the shared predictor. Returns True if this call loaded it."""
        return self._model_cache.initialize()

    def load_memories(self) -> int:
        """Reload all persisted NPC memory into the store."""
        count = self._store.load_all_from_disk()
        if count:
            logger.info("Loaded %d NPC memory unit(s) from disk.", count)
        else:
            logger.info("No existing NPC memory found (fresh start).")
        return count

    def shutdown(self) -> None:
        self._registry.clear()
        self._model_cache.shutdown()

    # --- NPC sessions ---

    def create_npc(
        self,
        config: NpcConfig | Any,
        memory: Iterable[Any] | None = None,
        npc_id: str | None = None,
    ) -> str:
        """Create an NPC session, optionally seeding its memory.

        Config and every seed record are validated before anything is
        registered or written.

        Args:
            config: NpcConfig or a mapping validated into one.
            memory: Seed records replacing any existing history.
            npc_id: Caller-chosen id; a uuid4 is generated if None.

        Returns:
            The NPC id.

        Raises:
            ConfigInvalid: If the config, id or any seed record is invalid.
            AlreadyExists: If a session with this id is live.
            PersistenceFailed: If seed memory could not be written.
        """
        npc_config = parse_npc_config(config)
        npc_id = validate_npc_id(npc_id) if npc_id is not None else str(uuid.uuid4())
        seed = parse_memory_records(memory) if memory is not None else None

        evaluator = MemoryEmotionEvaluator(
            npc_id,
            npc_config,
            self._store,
            model_cache=self._model_cache,
            clock=self._clock,
        )
        # Evaluations of the new session wait until the seed is in place.
        with evaluator.seeding():
            self._registry.create(npc_id, evaluator)
            if seed is not None:
                try:
                    self._store.import_records(npc_id, seed)
                except Exception:
                    with contextlib.suppress(NotFound):
                        self._registry.remove(npc_id)
                    raise
        logger.info("Created NPC session %s (%s).", npc_id, npc_config.identity.name)
        return npc_id

    def list_npcs(self) -> list[SessionSnapshot]:
        return [snapshot for _, snapshot in self._registry.list()]

    def remove_npc(self, npc_id: str) -> None:
        """Tear down the session and delete its persisted memory.

        Raises:
            NotFound: If neither a session nor persisted memory exists.
        """
        validate_npc_id(npc_id)
        try:
            evaluator = self._registry.remove(npc_id)
        except NotFound:
            evaluator = None
        if evaluator is not None:
            # Let an in-flight evaluation commit before the unit is deleted.
            evaluator.retire()
        had_session = evaluator is not None
        had_memory = self._store.remove_npc(npc_id)
        if not (had_session or had_memory):
            raise NotFound(f"NPC {npc_id!r} not found.")
        logger.info("Removed NPC %s.", npc_id)

    def has_npc(self, npc_id: str) -> bool:
        return npc_id in self._registry

    # --- Interactions and queries ---

    def evaluate_interaction(
        self,
        npc_id: str,
        text: str,
        source_id: str | None = None,
        timeout: float | None = None,
    ) -> EmotionPrediction:
        return self._registry.with_evaluator(
            npc_id, lambda e: e.evaluate_interaction(text, source_id, timeout=timeout)
        )

    def current_emotion(self, npc_id: str) -> EmotionPrediction:
        return self._registry.with_evaluator(
            npc_id, lambda e: e.calculate_current_emotion()
        )

    def emotion_towards_source(self, npc_id: str, source_id: str) -> EmotionPrediction:
        return self._registry.with_evaluator(
            npc_id, lambda e: e.calculate_current_emotion_towards_source(source_id)
        )

    # --- Memory ---

    def get_memory(self, npc_id: str) -> MemorySnapshot:
        records = self._registry.with_evaluator(npc_id, lambda e: e.memory())
        return MemorySnapshot(npc_id=npc_id, records=records)

    def clear_memory(self, npc_id: str) -> str:
        self._registry.get(npc_id)
        self._store.clear(npc_id)
        return f"Memory cleared for NPC {npc_id!r}."

