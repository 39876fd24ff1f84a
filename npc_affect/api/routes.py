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

"""Affect API routes for game client communication.

Provides REST endpoints for model initialization, NPC session
management, interaction evaluation, emotion queries and memory
introspection. Engine errors are mapped to HTTP statuses here; the
engine itself knows nothing about HTTP.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from npc_affect.errors import AffectError, ErrorKind
from npc_affect.models.affect import EmotionPrediction
from npc_affect.sessions.affect_engine import AffectEngine

from .schemas import (
    CreateNPCRequest,
    EmotionResponse,
    EvaluateInteractionRequest,
    MemoryRecordResponse,
    MemoryResponse,
    MessageResponse,
    NPCSessionResponse,
    NPCSummaryResponse,
    PersonalityResponse,
)

logger = logging.getLogger(__name__)

# Module-level engine singleton (set during app startup)
_engine: AffectEngine | None = None

_STATUS_BY_KIND = {
    ErrorKind.CONFIG_INVALID: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ALREADY_EXISTS: 409,
    ErrorKind.MODEL_NOT_READY: 503,
    ErrorKind.PREDICTION_FAILED: 502,
    ErrorKind.PERSISTENCE_FAILED: 500,
    ErrorKind.TIMEOUT: 504,
}


def get_engine() -> AffectEngine:
    """Get the affect engine singleton.

    Raises:
        RuntimeError: If the engine is not initialized.
    """
    if _engine is None:
        raise RuntimeError("Affect engine not initialized.")
    return _engine


def set_engine(engine: AffectEngine | None) -> None:
    """Set the affect engine singleton."""
    global _engine
    _engine = engine


def _http_error(e: AffectError) -> HTTPException:
    status = _STATUS_BY_KIND.get(e.kind, 500)
    if status >= 500:
        logger.warning("Affect engine error (%s): %s", e.kind.value, e.message)
    return HTTPException(status_code=status, detail=e.message)


def _emotion_response(emotion: EmotionPrediction) -> EmotionResponse:
    return EmotionResponse(valence=emotion.valence, arousal=emotion.arousal)


affect_router = APIRouter(tags=["affect"])


# --- Model ---


@affect_router.post("/initialize", response_model=MessageResponse)
def initialize() -> MessageResponse:
    """Load the shared emotion model (idempotent)."""
    engine = get_engine()
    try:
        loaded = engine.initialize_model()
    except AffectError as e:
        raise _http_error(e) from e
    message = "Model initialized successfully" if loaded else "Model already initialized"
    return MessageResponse(message=message)


# --- NPC Endpoints ---


@affect_router.post("/npcs", response_model=NPCSessionResponse, status_code=201)
def create_npc(req: CreateNPCRequest) -> NPCSessionResponse:
    """Create a new NPC session, optionally with seed memory."""
    engine = get_engine()
    try:
        npc_id = engine.create_npc(req.config, memory=req.memory, npc_id=req.npc_id)
    except AffectError as e:
        raise _http_error(e) from e
    return NPCSessionResponse(npc_id=npc_id)


@affect_router.get("/npcs", response_model=list[NPCSummaryResponse])
def list_npcs() -> list[NPCSummaryResponse]:
    """List all live NPC sessions."""
    engine = get_engine()
    try:
        sessions = engine.list_npcs()
    except AffectError as e:
        raise _http_error(e) from e
    return [
        NPCSummaryResponse(
            npc_id=s.npc_id,
            name=s.identity.name,
            background=s.identity.background,
            personality=PersonalityResponse(
                valence=s.personality.valence, arousal=s.personality.arousal
            ),
            memory_count=s.memory_count,
        )
        for s in sessions
    ]


@affect_router.delete("/npcs/{npc_id}", response_model=MessageResponse)
def remove_npc(npc_id: str) -> MessageResponse:
    """Remove an NPC session and delete its memory."""
    engine = get_engine()
    try:
        engine.remove_npc(npc_id)
    except AffectError as e:
        raise _http_error(e) from e
    return MessageResponse(message=f"NPC session {npc_id!r} removed successfully")


# --- Interaction Endpoints ---


@affect_router.post("/npcs/{npc_id}/evaluate", response_model=EmotionResponse)
def evaluate_interaction(npc_id: str, req: EvaluateInteractionRequest) -> EmotionResponse:
    """Evaluate an interaction and return the NPC's resulting emotion."""
    engine = get_engine()
    try:
        emotion = engine.evaluate_interaction(
            npc_id, req.text, source_id=req.source_id, timeout=req.timeout_seconds
        )
    except AffectError as e:
        raise _http_error(e) from e
    return _emotion_response(emotion)


@affect_router.get("/npcs/{npc_id}/emotion", response_model=EmotionResponse)
def get_current_emotion(npc_id: str) -> EmotionResponse:
    """Get the NPC's current overall emotion."""
    engine = get_engine()
    try:
        return _emotion_response(engine.current_emotion(npc_id))
    except AffectError as e:
        raise _http_error(e) from e


@affect_router.get("/npcs/{npc_id}/emotion/{source_id}", response_model=EmotionResponse)
def get_emotion_by_source(npc_id: str, source_id: str) -> EmotionResponse:
    """Get the NPC's current emotion towards one source."""
    engine = get_engine()
    try:
        return _emotion_response(engine.emotion_towards_source(npc_id, source_id))
    except AffectError as e:
        raise _http_error(e) from e


# --- Memory Endpoints ---


@affect_router.get("/npcs/{npc_id}/memory", response_model=MemoryResponse)
def get_memory(npc_id: str) -> MemoryResponse:
    """Get every stored interaction record for an NPC."""
    engine = get_engine()
    try:
        snapshot = engine.get_memory(npc_id)
    except AffectError as e:
        raise _http_error(e) from e
    return MemoryResponse(
        npc_id=snapshot.npc_id,
        records=[MemoryRecordResponse(**r.model_dump()) for r in snapshot.records],
    )


@affect_router.delete("/npcs/{npc_id}/memory", response_model=MessageResponse)
def clear_memory(npc_id: str) -> MessageResponse:
    """Clear an NPC's memory, keeping the session."""
    engine = get_engine()
    try:
        return MessageResponse(message=engine.clear_memory(npc_id))
    except AffectError as e:
        raise _http_error(e) from e
