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

"""Tests for decay weighting and baseline blending."""

import numpy as np
import pytest

from npc_affect.memory.decay import (
    aggregate_emotion,
    blend_affect,
    decay_weights,
    lowest_weight_index,
)
from npc_affect.models.affect import EmotionPrediction, MemoryRecord

HOUR = 3600.0


def _record(valence: float, arousal: float, timestamp: float, source_id=None) -> MemoryRecord:
    return MemoryRecord(
        source_id=source_id,
        text="something happened",
        valence=valence,
        arousal=arousal,
        timestamp=timestamp,
    )


def test_weight_halves_every_half_life():
    weights = decay_weights(np.array([100.0, 100.0 - HOUR, 100.0 - 2 * HOUR]), 100.0, HOUR)
    np.testing.assert_allclose(weights, [1.0, 0.5, 0.25])


def test_weight_strictly_decreasing_with_age():
    now = 10 * HOUR
    timestamps = now - np.array([0.0, 1.0, 60.0, HOUR, 5 * HOUR])
    weights = decay_weights(timestamps, now, HOUR)
    assert np.all(np.diff(weights) < 0)


def test_future_timestamps_count_as_fresh():
    weights = decay_weights(np.array([500.0]), 100.0, HOUR)
    assert weights[0] == 1.0


def test_no_records_returns_baseline_exactly():
    baseline = EmotionPrediction(valence=0.37, arousal=-0.21)
    result = aggregate_emotion(baseline, [], now=0.0, half_life=HOUR, baseline_weight=3.7)
    assert result == baseline


def test_fresh_record_blends_with_baseline_weight():
    baseline = EmotionPrediction(valence=0.0, arousal=0.0)
    records = [_record(0.8, 0.6, timestamp=0.0)]
    result = aggregate_emotion(baseline, records, now=0.0, half_life=HOUR, baseline_weight=1.0)
    assert result.valence == pytest.approx(0.4)
    assert result.arousal == pytest.approx(0.3)


def test_older_record_contributes_less():
    baseline = EmotionPrediction(valence=0.0, arousal=0.0)
    fresh = aggregate_emotion(
        baseline, [_record(0.8, 0.6, timestamp=HOUR)], now=HOUR, half_life=HOUR, baseline_weight=1.0
    )
    stale = aggregate_emotion(
        baseline, [_record(0.8, 0.6, timestamp=0.0)], now=HOUR, half_life=HOUR, baseline_weight=1.0
    )
    assert 0.0 < stale.valence < fresh.valence
    assert 0.0 < stale.arousal < fresh.arousal


def test_blend_clamps_output():
    result = blend_affect(
        baseline=np.array([1.0, 1.0]),
        emotions=np.array([[5.0, -5.0]]),
        weights=np.array([1.0]),
        baseline_weight=1.0,
    )
    np.testing.assert_allclose(result, [1.0, -1.0])


def test_lowest_weight_index_prefers_faint_stale_memory():
    now = 10 * HOUR
    records = [
        _record(0.9, 0.8, timestamp=now - 3 * HOUR),  # vivid but old
        _record(0.05, 0.0, timestamp=now - 2 * HOUR),  # faint
        _record(0.5, 0.5, timestamp=now),
    ]
    assert lowest_weight_index(records, now, HOUR) == 1
