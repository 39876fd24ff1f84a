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

"""Pydantic request/response schemas for the Affect API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CreateNPCRequest(BaseModel):
    """Request to create a new NPC session.

    ``config`` and ``memory`` are passed through as raw JSON and
    validated by the engine, so malformed input maps to a 400 with the
    engine's own message.
    """

    config: dict[str, Any]
    memory: list[Any] | None = Field(
        default=None,
        description="Optional seed memory records (source_id, text, valence, arousal, timestamp).",
    )
    npc_id: str | None = Field(
        default=None,
        description="Caller-chosen NPC id. A UUID is generated if omitted.",
    )


class NPCSessionResponse(BaseModel):
    npc_id: str


class PersonalityResponse(BaseModel):
    valence: float
    arousal: float


class NPCSummaryResponse(BaseModel):
    """Summary of one live NPC session."""

    npc_id: str
    name: str
    background: str
    personality: PersonalityResponse
    memory_count: int | None = Field(
        description="Stored records, or null if the NPC's memory could not be read."
    )


class EvaluateInteractionRequest(BaseModel):
    """Request to evaluate an interaction directed at an NPC."""

    text: str
    source_id: str | None = None
    timeout_seconds: float | None = Field(
        default=None,
        gt=0.0,
        description="Give up (recording nothing) if not committed within this time.",
    )


class EmotionResponse(BaseModel):
    valence: float
    arousal: float


class MemoryRecordResponse(BaseModel):
    source_id: str | None
    text: str
    valence: float
    arousal: float
    timestamp: float


class MemoryResponse(BaseModel):
    npc_id: str
    records: list[MemoryRecordResponse]


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    version: str
    model_ready: bool
