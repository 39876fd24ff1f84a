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

"""Creation-time configuration for a single NPC.

All models are frozen: an NPC's identity, personality and memory
tunables never change after its evaluator is built.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from npc_affect.config import (
    AFFECT_MAX,
    AFFECT_MIN,
    DEFAULT_BASELINE_WEIGHT,
    DEFAULT_DECAY_HALF_LIFE_SECONDS,
    DEFAULT_MAX_RECORDS,
)
from npc_affect.errors import ConfigInvalid

from .affect import EmotionPrediction


class EvictionPolicy(str, enum.Enum):
    """Which record to drop when an NPC's memory exceeds max_records."""

    FIFO = "fifo"
    LOWEST_WEIGHT = "lowest_weight"


class Identity(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    background: str = ""


class PersonalityTraits(BaseModel):
    """Resting emotional disposition of an NPC."""

    model_config = ConfigDict(frozen=True)

    valence: float = Field(default=0.0, ge=AFFECT_MIN, le=AFFECT_MAX)
    arousal: float = Field(default=0.0, ge=AFFECT_MIN, le=AFFECT_MAX)

    def as_emotion(self) -> EmotionPrediction:
        return EmotionPrediction(valence=self.valence, arousal=self.arousal)


class MemoryConfig(BaseModel):
    """Tunables for history size and decay.

    Attributes:
        max_records: Cap on stored interactions per NPC.
        decay_half_life: Seconds after which a memory's weight halves.
        baseline_weight: Fixed weight of the personality baseline in the blend.
        eviction_policy: How to pick the record dropped beyond max_records.
    """

    model_config = ConfigDict(frozen=True)

    max_records: int = Field(default=DEFAULT_MAX_RECORDS, gt=0)
    decay_half_life: float = Field(default=DEFAULT_DECAY_HALF_LIFE_SECONDS, gt=0.0)
    baseline_weight: float = Field(default=DEFAULT_BASELINE_WEIGHT, gt=0.0)
    eviction_policy: EvictionPolicy = EvictionPolicy.FIFO


class NpcConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    identity: Identity
    personality: PersonalityTraits
    memory_config: MemoryConfig = Field(
        default_factory=MemoryConfig,
        validation_alias=AliasChoices("memory_config", "memory"),
    )


def parse_npc_config(data: Any) -> NpcConfig:
    """Validate a loosely-typed payload into an NpcConfig.

    Raises:
        ConfigInvalid: If the payload is malformed or out of range.
    """
    if isinstance(data, NpcConfig):
        return data
    try:
        return NpcConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigInvalid(f"Invalid NPC config: {e}") from e
