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

"""Affect points and the durable interaction records built from them.

Affect is a (valence, arousal) pair. Both components live in
[AFFECT_MIN, AFFECT_MAX]; raw model output is clamped into that range,
while records arriving from outside (imports, seed memory) are rejected
when out of range.
"""

from __future__ import annotations

import math
import re
import time
from collections.abc import Iterable
from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from npc_affect.config import AFFECT_MAX, AFFECT_MIN, MAX_NPC_ID_LENGTH
from npc_affect.errors import ConfigInvalid

_NPC_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def clamp_affect(value: float) -> float:
    """Clamp a single affect component into the valid range."""
    return float(min(AFFECT_MAX, max(AFFECT_MIN, value)))


def validate_npc_id(npc_id: str) -> str:
    """Check that an NPC identifier is safe to use as a storage name.

    Raises:
        ConfigInvalid: If the id is empty, too long, or contains
            characters outside ``[A-Za-z0-9_.-]``.
    """
    if not isinstance(npc_id, str) or not npc_id:
        raise ConfigInvalid("NPC id must be a non-empty string.")
    if len(npc_id) > MAX_NPC_ID_LENGTH:
        raise ConfigInvalid(f"NPC id longer than {MAX_NPC_ID_LENGTH} characters.")
    if not _NPC_ID_PATTERN.match(npc_id) or ".." in npc_id:
        raise ConfigInvalid(f"NPC id {npc_id!r} contains unsupported characters.")
    return npc_id


class EmotionPrediction(BaseModel):
    """A single affect point: raw predictor output or an aggregate."""

    model_config = ConfigDict(frozen=True)

    valence: float = Field(ge=AFFECT_MIN, le=AFFECT_MAX)
    arousal: float = Field(ge=AFFECT_MIN, le=AFFECT_MAX)

    @classmethod
    def clamped(cls, valence: float, arousal: float) -> EmotionPrediction:
        """Build a prediction from possibly out-of-range components.

        Raises:
            ValueError: If either component is NaN or infinite.
        """
        if not (math.isfinite(valence) and math.isfinite(arousal)):
            raise ValueError("Affect components must be finite.")
        return cls(valence=clamp_affect(valence), arousal=clamp_affect(arousal))

    @classmethod
    def from_array(cls, values: np.ndarray) -> EmotionPrediction:
        return cls.clamped(float(values[0]), float(values[1]))

    def to_array(self) -> np.ndarray:
        return np.array([self.valence, self.arousal], dtype=np.float64)


class MemoryRecord(BaseModel):
    """One interaction an NPC remembers.

    Stored flat (source_id, text, valence, arousal, timestamp) so the
    on-disk field names stay stable. A nested ``emotion`` object is also
    accepted on input and flattened.

    Attributes:
        source_id: Who the interaction came from, if known.
        text: What was said or done.
        valence: Evoked valence.
        arousal: Evoked arousal.
        timestamp: Unix time in seconds when the interaction happened.
    """

    model_config = ConfigDict(frozen=True)

    source_id: str | None = None
    text: str = Field(min_length=1)
    valence: float = Field(ge=AFFECT_MIN, le=AFFECT_MAX)
    arousal: float = Field(ge=AFFECT_MIN, le=AFFECT_MAX)
    timestamp: float = Field(ge=0.0)

    @model_validator(mode="before")
    @classmethod
    def _flatten_emotion(cls, data: Any) -> Any:
        if isinstance(data, dict) and "emotion" in data:
            data = dict(data)
            emotion = data.pop("emotion")
            if isinstance(emotion, EmotionPrediction):
                emotion = emotion.model_dump()
            if isinstance(emotion, dict):
                for key in ("valence", "arousal"):
                    if key in emotion:
                        data.setdefault(key, emotion[key])
        return data

    @classmethod
    def from_prediction(
        cls,
        text: str,
        prediction: EmotionPrediction,
        source_id: str | None = None,
        timestamp: float | None = None,
    ) -> MemoryRecord:
        return cls(
            source_id=source_id,
            text=text,
            valence=prediction.valence,
            arousal=prediction.arousal,
            timestamp=time.time() if timestamp is None else timestamp,
        )

    @property
    def emotion(self) -> EmotionPrediction:
        return EmotionPrediction(valence=self.valence, arousal=self.arousal)


def parse_memory_records(raw: Iterable[Any]) -> list[MemoryRecord]:
    """Validate loosely-typed record payloads into MemoryRecords.

    Fails on the first invalid entry; nothing is returned partially.

    Args:
        raw: Sequence of MemoryRecord instances or mappings.

    Raises:
        ConfigInvalid: If ``raw`` is not a sequence or any entry is invalid.
    """
    if isinstance(raw, (str, bytes, dict)) or not isinstance(raw, Iterable):
        raise ConfigInvalid("Memory must be a list of records.")
    records: list[MemoryRecord] = []
    for index, item in enumerate(raw):
        if isinstance(item, MemoryRecord):
            records.append(item)
            continue
        try:
            records.append(MemoryRecord.model_validate(item))
        except ValidationError as e:
            raise ConfigInvalid(f"Invalid memory record at index {index}: {e}") from e
    return records
