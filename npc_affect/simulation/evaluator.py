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

"""Per-NPC affect evaluation: personality + decayed memory + new stimulus.

An NPC is either Idle (no memory yet) or Active (at least one record).
Every operation is defined in both states; with no memory the current
emotion is exactly the personality baseline.
"""

from __future__ import annotations

import contextlib
import enum
import logging
import threading
import time
from collections.abc import Callable, Iterator
from typing import Any

from pydantic import ValidationError

from npc_affect.errors import (
    AffectError,
    ConfigInvalid,
    ModelNotReady,
    NotFound,
    OperationTimeout,
    PredictionFailed,
)
from npc_affect.memory.base import MemoryStore
from npc_affect.memory.decay import aggregate_emotion
from npc_affect.models.affect import EmotionPrediction, MemoryRecord, validate_npc_id
from npc_affect.models.npc_config import NpcConfig, parse_npc_config
from npc_affect.prediction.base import EmotionPredictor
from npc_affect.prediction.model_cache import ModelCache

logger = logging.getLogger(__name__)


class EvaluatorState(enum.Enum):
    IDLE = "idle"
    ACTIVE = "active"


def _remaining(deadline: float | None) -> float | None:
    if deadline is None:
        return None
    return max(deadline - time.monotonic(), 0.0)


class MemoryEmotionEvaluator:
    """Fuses an NPC's personality, its interaction history and new stimuli.

    Interaction evaluation is serialized per evaluator so every call sees
    the records committed by earlier ones. Emotion queries take a
    snapshot of the store and never block on evaluation.

    Args:
        npc_id: The NPC this evaluator is bound to.
        config: NpcConfig or a mapping validated into one.
        store: Where the NPC's records live.
        model_cache: Shared predictor cache.
        predictor: Optional override used instead of the cache.
        clock: Source of the current unix time.

    Raises:
        ConfigInvalid: If the id or config is invalid, or neither a model
            cache nor a predictor is supplied.
    """

    def __init__(
        self,
        npc_id: str,
        config: NpcConfig | Any,
        store: MemoryStore,
        model_cache: ModelCache | None = None,
        predictor: EmotionPredictor | None = None,
        clock: Callable[[], float] = time.time,
    ):
        if model_cache is None and predictor is None:
            raise ConfigInvalid("An evaluator needs a model cache or a predictor.")
        self.npc_id = validate_npc_id(npc_id)
        self.config = parse_npc_config(config)
        self._store = store
        self._model_cache = model_cache
        self._predictor = predictor
        self._clock = clock
        self._lock = threading.Lock()
        self._retired = False

    @property
    def state(self) -> EvaluatorState:
        if self._store.count(self.npc_id):
            return EvaluatorState.ACTIVE
        return EvaluatorState.IDLE

    @property
    def baseline(self) -> EmotionPrediction:
        return self.config.personality.as_emotion()

    def retire(self) -> None:
        """Stop accepting interactions.

        Waits for an in-flight evaluation to commit, so once this returns
        the evaluator never writes to the store again.
        """
        with self._lock:
            self._retired = True

    @contextlib.contextmanager
    def seeding(self) -> Iterator[None]:
        """Hold off interaction evaluation while memory is being seeded.

        If the body raises, the evaluator is retired before waiting
        evaluations are let through.
        """
        with self._lock:
            try:
                yield
            except BaseException:
                self._retired = True
                raise

    def _predict(self, text: str, timeout: float | None) -> EmotionPrediction:
        # An override predictor runs inline; only the deadline check after it
        # bounds the call.
        try:
            if self._predictor is not None:
                if not self._predictor.is_initialized:
                    raise ModelNotReady("Override predictor is not initialized.")
                return self._predictor.predict(text)
            return self._model_cache.predict(text, timeout=timeout)
        except AffectError:
            raise
        except Exception as e:
            raise PredictionFailed(f"Prediction failed: {e}") from e

    def evaluate_interaction(
        self,
        text: str,
        source_id: str | None = None,
        timeout: float | None = None,
    ) -> EmotionPrediction:
        """Record an interaction and return the NPC's resulting emotion.

        The record is committed to the store before the new emotion is
        computed from it. On any failure nothing is recorded.

        Args:
            text: What was said or done to the NPC.
            source_id: Who it came from, if known.
            timeout: Seconds to wait for the lock and the prediction.

        Returns:
            The NPC's current emotion after the interaction (not the raw
            prediction).

        Raises:
            ConfigInvalid: If the text or source id is invalid.
            ModelNotReady: If the shared model is not initialized.
            PredictionFailed: If inference failed.
            PersistenceFailed: If the record could not be committed.
            OperationTimeout: If ``timeout`` elapsed before the commit.
            NotFound: If the evaluator was retired by NPC removal.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        if not self._lock.acquire(timeout=-1 if timeout is None else timeout):
            raise OperationTimeout(
                f"Timed out waiting for NPC {self.npc_id!r} to finish another interaction."
            )
        try:
            if self._retired:
                raise NotFound(f"NPC session {self.npc_id!r} was removed.")
            prediction = self._predict(text, _remaining(deadline))
            if deadline is not None and time.monotonic() > deadline:
                raise OperationTimeout(
                    f"Interaction for NPC {self.npc_id!r} exceeded {timeout:.3f}s."
                )
            try:
                record = MemoryRecord.from_prediction(
                    text, prediction, source_id=source_id, timestamp=self._clock()
                )
            except ValidationError as e:
                raise ConfigInvalid(f"Invalid interaction: {e}") from e
            self._store.append(self.npc_id, record, self.config.memory_config)
            return self.calculate_current_emotion()
        finally:
            self._lock.release()

    def _blend(self, records: list[MemoryRecord]) -> EmotionPrediction:
        memory = self.config.memory_config
        return aggregate_emotion(
            self.baseline,
            records,
            now=self._clock(),
            half_life=memory.decay_half_life,
            baseline_weight=memory.baseline_weight,
        )

    def calculate_current_emotion(self) -> EmotionPrediction:
        """Blend the personality baseline with every stored record."""
        return self._blend(self._store.all(self.npc_id))

    def calculate_current_emotion_towards_source(self, source_id: str) -> EmotionPrediction:
        """Blend the baseline with records from ``source_id`` only.

        An unknown source yields the personality baseline, never the
        aggregate over other sources.
        """
        records = [r for r in self._store.all(self.npc_id) if r.source_id == source_id]
        return self._blend(records)

    def memory(self) -> list[MemoryRecord]:
        return self._store.all(self.npc_id)
