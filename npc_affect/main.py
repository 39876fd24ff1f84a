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

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from npc_affect.api.routes import affect_router, set_engine
from npc_affect.api.schemas import HealthResponse
from npc_affect.config import (
    AFFECT_MODEL_NAME,
    APP_NAME,
    APP_VERSION,
    DEFAULT_HOST,
    DEFAULT_PORT,
    MEMORY_ROOT,
    PREDICTOR_BACKEND,
)
from npc_affect.errors import AffectError
from npc_affect.memory.file_store import FileMemoryStore
from npc_affect.prediction.model_cache import ModelCache, create_predictor
from npc_affect.sessions.affect_engine import AffectEngine

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

allow_origins = (
    os.getenv("ALLOW_ORIGINS", "").split(",") if os.getenv("ALLOW_ORIGINS") else ["*"]
)
memory_root = os.getenv("NPC_MEMORY_DIR", MEMORY_ROOT)
predictor_backend = os.getenv("AFFECT_PREDICTOR_BACKEND", PREDICTOR_BACKEND)
model_name = os.getenv("AFFECT_MODEL_NAME") or (
    AFFECT_MODEL_NAME if predictor_backend == "transformers" else None
)
preload_model = os.getenv("PRELOAD_MODEL", "").lower() in ("1", "true", "yes")

# Owned engine context, torn down once at shutdown
_engine = AffectEngine(
    store=FileMemoryStore(memory_root),
    model_cache=ModelCache(lambda: create_predictor(predictor_backend, model_name)),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Reload persisted memory on startup; release the model on shutdown."""
    set_engine(_engine)
    _engine.load_memories()

    if preload_model:
        try:
            _engine.initialize_model()
        except AffectError:
            logger.exception("Model preload failed; POST /api/v1/initialize to retry.")

    yield

    _engine.shutdown()
    set_engine(None)
    logger.info("Affect engine shut down.")


app = FastAPI(title=APP_NAME, version=APP_VERSION, lifespan=lifespan)
app.description = "Persistent, evolving NPC emotional state"
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount affect API
app.include_router(affect_router, prefix="/api/v1")


@app.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Liveness probe with model readiness."""
    return HealthResponse(
        status="healthy",
        version=APP_VERSION,
        model_ready=_engine.is_model_ready,
    )


# Main execution
if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", DEFAULT_HOST)
    port = int(os.getenv("PORT", str(DEFAULT_PORT)))
    logger.info("Starting %s on %s:%d", APP_NAME, host, port)
    uvicorn.run(app, host=host, port=port)
