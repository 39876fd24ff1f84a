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

"""Tests for MemoryEmotionEvaluator."""

from __future__ import annotations

import threading

import pytest

from npc_affect.errors import (
    ConfigInvalid,
    ModelNotReady,
    OperationTimeout,
    PersistenceFailed,
    PredictionFailed,
)
from npc_affect.memory.in_memory_store import InMemoryStore
from npc_affect.models.affect import EmotionPrediction
from npc_affect.prediction.model_cache import ModelCache
from npc_affect.simulation.evaluator import EvaluatorState, MemoryEmotionEvaluator

from conftest import FakePredictor

HOUR = 3600.0


def _config(valence=0.0, arousal=0.0, **memory) -> dict:
    return {
        "identity": {"name": "Mira", "background": "Innkeeper"},
        "personality": {"valence": valence, "arousal": arousal},
        "memory_config": {"decay_half_life": HOUR, **memory},
    }


@pytest.fixture()
def store(clock):
    return InMemoryStore(clock=clock)


@pytest.fixture()
def evaluator(store, predictor, clock):
    return MemoryEmotionEvaluator("mira", _config(), store, predictor=predictor, clock=clock)


class _BrokenStore(InMemoryStore):
    def _persist(self, npc_id, records):
        raise PersistenceFailed("disk gone")


class TestConstruction:
    def test_needs_predictor_or_cache(self, store):
        with pytest.raises(ConfigInvalid):
            MemoryEmotionEvaluator("mira", _config(), store)

    def test_out_of_range_personality(self, store, predictor):
        with pytest.raises(ConfigInvalid):
            MemoryEmotionEvaluator("mira", _config(valence=1.5), store, predictor=predictor)

    def test_invalid_id(self, store, predictor):
        with pytest.raises(ConfigInvalid):
            MemoryEmotionEvaluator("../mira", _config(), store, predictor=predictor)


class TestEmotion:
    def test_no_memory_is_personality_baseline(self, store, predictor, clock):
        evaluator = MemoryEmotionEvaluator(
            "mira", _config(valence=0.3, arousal=-0.4), store, predictor=predictor, clock=clock
        )
        assert evaluator.state is EvaluatorState.IDLE
        assert evaluator.calculate_current_emotion() == EmotionPrediction(valence=0.3, arousal=-0.4)

    def test_fresh_interaction_biased_toward_baseline(self, evaluator):
        result = evaluator.evaluate_interaction("hello friend", "player")
        # baseline_weight 2.0 against a fresh record of weight 1.0
        assert result.valence == pytest.approx(0.8 / 3)
        assert result.arousal == pytest.approx(0.6 / 3)
        assert 0.0 < result.valence < 0.8
        assert evaluator.state is EvaluatorState.ACTIVE

    def test_returns_blended_state_not_raw_prediction(self, evaluator):
        result = evaluator.evaluate_interaction("hello friend")
        assert result != EmotionPrediction(valence=0.8, arousal=0.6)
        assert result == evaluator.calculate_current_emotion()

    def test_influence_fades_with_time(self, evaluator, clock):
        evaluator.evaluate_interaction("you are a thief", "player")
        fresh = evaluator.calculate_current_emotion()
        clock.advance(HOUR)
        faded = evaluator.calculate_current_emotion()
        clock.advance(24 * HOUR)
        gone = evaluator.calculate_current_emotion()

        assert fresh.valence < faded.valence < gone.valence < 0.0
        assert gone.valence == pytest.approx(0.0, abs=1e-6)

    def test_per_source_isolation(self, evaluator):
        evaluator.evaluate_interaction("hello friend", "alice")
        towards_alice = evaluator.calculate_current_emotion_towards_source("alice")

        evaluator.evaluate_interaction("you are a thief", "bob")
        evaluator.evaluate_interaction("you are a thief", "bob")

        assert evaluator.calculate_current_emotion_towards_source("alice") == towards_alice
        assert evaluator.calculate_current_emotion_towards_source("bob").valence < 0.0

    def test_unknown_source_is_baseline(self, evaluator):
        evaluator.evaluate_interaction("you are a thief", "bob")
        assert evaluator.calculate_current_emotion_towards_source("stranger") == evaluator.baseline

    def test_anonymous_records_only_in_overall(self, evaluator):
        evaluator.evaluate_interaction("hello friend")
        assert evaluator.calculate_current_emotion().valence > 0.0
        assert evaluator.calculate_current_emotion_towards_source("player") == evaluator.baseline

    def test_memory_capped(self, store, predictor, clock):
        evaluator = MemoryEmotionEvaluator(
            "mira", _config(max_records=3), store, predictor=predictor, clock=clock
        )
        for text in ["hello friend", "nice weather", "you are a thief", "hello friend"]:
            clock.advance(1.0)
            evaluator.evaluate_interaction(text)
        assert [r.text for r in evaluator.memory()] == [
            "nice weather",
            "you are a thief",
            "hello friend",
        ]


class TestFailures:
    def test_empty_text_rejected(self, evaluator):
        with pytest.raises(ConfigInvalid):
            evaluator.evaluate_interaction("   ")
        assert evaluator.memory() == []

    def test_prediction_failure_records_nothing(self, store, clock):
        predictor = FakePredictor(error=RuntimeError("CUDA out of memory"))
        predictor.initialize()
        evaluator = MemoryEmotionEvaluator("mira", _config(), store, predictor=predictor, clock=clock)
        with pytest.raises(PredictionFailed, match="CUDA"):
            evaluator.evaluate_interaction("hello")
        assert evaluator.memory() == []

    def test_persistence_failure_records_nothing(self, predictor, clock):
        store = _BrokenStore(clock=clock)
        evaluator = MemoryEmotionEvaluator("mira", _config(), store, predictor=predictor, clock=clock)
        with pytest.raises(PersistenceFailed):
            evaluator.evaluate_interaction("hello friend")
        assert evaluator.memory() == []
        assert evaluator.calculate_current_emotion() == evaluator.baseline

    def test_uninitialized_override_predictor(self, store):
        evaluator = MemoryEmotionEvaluator("mira", _config(), store, predictor=FakePredictor())
        with pytest.raises(ModelNotReady):
            evaluator.evaluate_interaction("hello")

    def test_uninitialized_model_cache(self, store):
        cache = ModelCache(factory=FakePredictor)
        evaluator = MemoryEmotionEvaluator("mira", _config(), store, model_cache=cache)
        with pytest.raises(ModelNotReady):
            evaluator.evaluate_interaction("hello")
        assert evaluator.memory() == []

    def test_slow_prediction_times_out_without_record(self, store, clock):
        predictor = FakePredictor(delay=0.2)
        predictor.initialize()
        evaluator = MemoryEmotionEvaluator("mira", _config(), store, predictor=predictor, clock=clock)
        with pytest.raises(OperationTimeout):
            evaluator.evaluate_interaction("hello", timeout=0.05)
        assert evaluator.memory() == []

    def test_waiting_for_busy_npc_times_out(self, evaluator):
        evaluator._lock.acquire()
        try:
            with pytest.raises(OperationTimeout):
                evaluator.evaluate_interaction("hello friend", timeout=0.05)
        finally:
            evaluator._lock.release()
        assert evaluator.memory() == []


class TestConcurrency:
    def test_parallel_interactions_lose_no_records(self, store, clock):
        predictor = FakePredictor(default=(0.5, 0.5), delay=0.001)
        predictor.initialize()
        evaluator = MemoryEmotionEvaluator("mira", _config(), store, predictor=predictor, clock=clock)
        barrier = threading.Barrier(50)
        errors = []

        def worker(i):
            barrier.wait()
            try:
                evaluator.evaluate_interaction(f"message {i}", f"source-{i % 5}")
            except Exception as e:  # pragma: no cover
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(50)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        texts = sorted(r.text for r in evaluator.memory())
        assert texts == sorted(f"message {i}" for i in range(50))
        assert predictor.calls == 50
