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

"""Decay weighting and baseline blending over interaction records.

A record aged ``t`` seconds weighs ``0.5 ** (t / half_life)``. The
personality baseline acts as a zeroth record with a fixed weight, so:

    emotion = (w_b * baseline + sum(w_i * e_i)) / (w_b + sum(w_i))

computed per axis and clamped to the affect range.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from npc_affect.config import AFFECT_MAX, AFFECT_MIN
from npc_affect.models.affect import EmotionPrediction, MemoryRecord


def decay_weights(
    timestamps: np.ndarray, now: float, half_life: float
) -> np.ndarray:
    """Compute decay weights for records created at ``timestamps``.

    Records stamped in the future (clock skew, imported data) count as
    age zero.

    Args:
        timestamps: 1-dim array of unix times in seconds.
        now: Current unix time.
        half_life: Seconds after which a weight halves.

    Returns:
        1-dim float64 array of weights in (0, 1].
    """
    ages = np.maximum(now - np.asarray(timestamps, dtype=np.float64), 0.0)
    return np.power(0.5, ages / half_life)


def record_weights(
    records: Sequence[MemoryRecord], now: float, half_life: float
) -> np.ndarray:
    timestamps = np.array([r.timestamp for r in records], dtype=np.float64)
    return decay_weights(timestamps, now, half_life)


def blend_affect(
    baseline: np.ndarray,
    emotions: np.ndarray,
    weights: np.ndarray,
    baseline_weight: float,
) -> np.ndarray:
    """Weighted average of the baseline and record emotions, clamped.

    Args:
        baseline: Shape (2,) personality (valence, arousal).
        emotions: Shape (n, 2) record emotions.
        weights: Shape (n,) decay weights.
        baseline_weight: Fixed weight of the baseline.

    Returns:
        Shape (2,) blended (valence, arousal).
    """
    total = baseline_weight + float(weights.sum())
    weighted = baseline_weight * baseline + weights @ emotions
    return np.clip(weighted / total, AFFECT_MIN, AFFECT_MAX)


def aggregate_emotion(
    baseline: EmotionPrediction,
    records: Sequence[MemoryRecord],
    now: float,
    half_life: float,
    baseline_weight: float,
) -> EmotionPrediction:
    """Blend a baseline with the decay-weighted emotions of ``records``.

    With no records the baseline is returned unchanged.
    """
    if not records:
        return EmotionPrediction.clamped(baseline.valence, baseline.arousal)
    emotions = np.array([[r.valence, r.arousal] for r in records], dtype=np.float64)
    weights = record_weights(records, now, half_life)
    blended = blend_affect(baseline.to_array(), emotions, weights, baseline_weight)
    return EmotionPrediction.from_array(blended)


def lowest_weight_index(
    records: Sequence[MemoryRecord], now: float, half_life: float
) -> int:
    """Index of the least salient record.

    Salience is the decay weight times the affect intensity (distance
    from neutral), so a faint, stale memory goes before a vivid one of
    similar age. Ties resolve to the earliest position.
    """
    emotions = np.array([[r.valence, r.arousal] for r in records], dtype=np.float64)
    intensity = np.linalg.norm(emotions, axis=1)
    return int(np.argmin(record_weights(records, now, half_life) * intensity))
