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

"""Shared fakes: a deterministic predictor and a controllable clock."""

from __future__ import annotations

import threading
import time

import pytest

from npc_affect.errors import ModelNotReady
from npc_affect.models.affect import EmotionPrediction
from npc_affect.prediction.base import EmotionPredictor, check_text

T0 = 1_760_000_000.0


class FakePredictor(EmotionPredictor):
    """Looks predictions up in a dict instead of running a model."""

    def __init__(
        self,
        responses: dict[str, tuple[float, float]] | None = None,
        default: tuple[float, float] = (0.0, 0.0),
        delay: float = 0.0,
        init_delay: float = 0.0,
        error: Exception | None = None,
    ):
        self.responses = responses or {}
        self.default = default
        self.delay = delay
        self.init_delay = init_delay
        self.error = error
        self.calls = 0
        self.initialize_calls = 0
        self._initialized = False
        self._counter_lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        with self._counter_lock:
            self.initialize_calls += 1
        time.sleep(self.init_delay)
        self._initialized = True

    def predict(self, text: str) -> EmotionPrediction:
        text = check_text(text)
        if not self._initialized:
            raise ModelNotReady("fake predictor not initialized")
        with self._counter_lock:
            self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        valence, arousal = self.responses.get(text, self.default)
        return EmotionPrediction.clamped(valence, arousal)


class FakeClock:
    def __init__(self, now: float = T0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def predictor() -> FakePredictor:
    p = FakePredictor(
        responses={
            "hello friend": (0.8, 0.6),
            "you are a thief": (-0.7, 0.7),
            "nice weather": (0.4, -0.2),
        }
    )
    p.initialize()
    return p
