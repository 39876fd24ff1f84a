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

"""Tests for NPC config and affect record models."""

import math
import uuid

import pytest
from pydantic import ValidationError

from npc_affect.config import DEFAULT_DECAY_HALF_LIFE_SECONDS, DEFAULT_MAX_RECORDS
from npc_affect.errors import ConfigInvalid
from npc_affect.models.affect import (
    EmotionPrediction,
    MemoryRecord,
    parse_memory_records,
    validate_npc_id,
)
from npc_affect.models.npc_config import EvictionPolicy, NpcConfig, parse_npc_config


def _config_dict(**personality) -> dict:
    return {
        "identity": {"name": "Mira", "background": "Blacksmith"},
        "personality": personality or {"valence": 0.2, "arousal": -0.1},
    }


class TestNpcConfig:
    def test_parse_valid_config_uses_memory_defaults(self):
        config = parse_npc_config(_config_dict())
        assert config.identity.name == "Mira"
        assert config.personality.valence == pytest.approx(0.2)
        assert config.memory_config.max_records == DEFAULT_MAX_RECORDS
        assert config.memory_config.decay_half_life == DEFAULT_DECAY_HALF_LIFE_SECONDS
        assert config.memory_config.eviction_policy is EvictionPolicy.FIFO

    def test_memory_alias_is_accepted(self):
        data = _config_dict()
        data["memory"] = {"max_records": 5, "eviction_policy": "lowest_weight"}
        config = parse_npc_config(data)
        assert config.memory_config.max_records == 5
        assert config.memory_config.eviction_policy is EvictionPolicy.LOWEST_WEIGHT

    def test_out_of_range_personality_rejected(self):
        with pytest.raises(ConfigInvalid):
            parse_npc_config(_config_dict(valence=1.5, arousal=0.0))

    def test_empty_name_rejected(self):
        data = _config_dict()
        data["identity"]["name"] = ""
        with pytest.raises(ConfigInvalid):
            parse_npc_config(data)

    def test_non_positive_memory_tunables_rejected(self):
        data = _config_dict()
        data["memory_config"] = {"max_records": 0}
        with pytest.raises(ConfigInvalid):
            parse_npc_config(data)
        data["memory_config"] = {"decay_half_life": -1.0}
        with pytest.raises(ConfigInvalid):
            parse_npc_config(data)

    def test_missing_personality_rejected(self):
        with pytest.raises(ConfigInvalid):
            parse_npc_config({"identity": {"name": "Mira"}})

    def test_config_is_immutable(self):
        config = parse_npc_config(_config_dict())
        with pytest.raises(ValidationError):
            config.identity = None

    def test_parse_passes_instances_through(self):
        config = NpcConfig.model_validate(_config_dict())
        assert parse_npc_config(config) is config


class TestEmotionPrediction:
    def test_clamped_limits_range(self):
        p = EmotionPrediction.clamped(3.0, -7.5)
        assert p.valence == 1.0
        assert p.arousal == -1.0

    def test_clamped_rejects_nan(self):
        with pytest.raises(ValueError):
            EmotionPrediction.clamped(math.nan, 0.0)

    def test_direct_construction_validates_range(self):
        with pytest.raises(ValidationError):
            EmotionPrediction(valence=1.2, arousal=0.0)


class TestMemoryRecord:
    def test_nested_emotion_is_flattened(self):
        record = MemoryRecord.model_validate(
            {
                "source_id": "player",
                "text": "hi",
                "emotion": {"valence": 0.3, "arousal": 0.1},
                "timestamp": 10.0,
            }
        )
        assert record.valence == pytest.approx(0.3)
        assert record.emotion == EmotionPrediction(valence=0.3, arousal=0.1)

    def test_from_prediction(self):
        record = MemoryRecord.from_prediction(
            "hi", EmotionPrediction(valence=0.5, arousal=0.2), "guard", 42.0
        )
        assert record.source_id == "guard"
        assert record.timestamp == 42.0
        assert record.valence == pytest.approx(0.5)

    def test_out_of_range_record_rejected(self):
        with pytest.raises(ValidationError):
            MemoryRecord(text="hi", valence=2.0, arousal=0.0, timestamp=0.0)


class TestParseMemoryRecords:
    def test_reports_first_invalid_index(self):
        raw = [
            {"text": "ok", "valence": 0.1, "arousal": 0.1, "timestamp": 1.0},
            {"text": "", "valence": 0.1, "arousal": 0.1, "timestamp": 2.0},
        ]
        with pytest.raises(ConfigInvalid, match="index 1"):
            parse_memory_records(raw)

    def test_rejects_non_list(self):
        with pytest.raises(ConfigInvalid):
            parse_memory_records({"text": "not a list"})

    def test_empty_list_is_valid(self):
        assert parse_memory_records([]) == []


class TestValidateNpcId:
    def test_uuid_accepted(self):
        npc_id = str(uuid.uuid4())
        assert validate_npc_id(npc_id) == npc_id

    @pytest.mark.parametrize("bad", ["", "../etc/passwd", "a/b", ".hidden", "x" * 200])
    def test_unsafe_ids_rejected(self, bad):
        with pytest.raises(ConfigInvalid):
            validate_npc_id(bad)
