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

"""Process-wide holder of the single loaded EmotionPredictor.

The cache is an explicitly constructed object owned by the engine, not
a module global: tests hand it a factory that builds a fake predictor.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
import time
from collections.abc import Callable
from typing import TypeVar

from npc_affect.config import AFFECT_MODEL_NAME, INFERENCE_WORKERS, PREDICTOR_BACKEND
from npc_affect.errors import (
    AffectError,
    ConfigInvalid,
    ModelLoadFailed,
    ModelNotReady,
    OperationTimeout,
)
from npc_affect.models.affect import EmotionPrediction

from .base import EmotionPredictor

logger = logging.getLogger(__name__)

T = TypeVar("T")


def create_predictor(
    backend: str = PREDICTOR_BACKEND,
    model_name: str | None = None,
) -> EmotionPredictor:
    """Build an (uninitialized) predictor for the named backend.

    Raises:
        ConfigInvalid: If the backend is unknown.
    """
    if backend == "transformers":
        from .transformer_predictor import TransformerEmotionPredictor

        return TransformerEmotionPredictor(model_name or AFFECT_MODEL_NAME)
    if backend == "gemini":
        from .gemini_predictor import GeminiEmotionPredictor

        if model_name:
            return GeminiEmotionPredictor(model_name)
        return GeminiEmotionPredictor()
    raise ConfigInvalid(f"Unknown predictor backend {backend!r}.")


class ModelCache:
    """Lazily-initialized, load-once home of the shared predictor.

    Concurrent ``initialize`` calls block on one load; readers never see
    a half-initialized predictor because it is published only after
    ``initialize`` succeeded.

    Args:
        factory: Builds the predictor on first initialize.
        workers: Threads used for timeout-bounded predictions.
    """

    def __init__(
        self,
        factory: Callable[[], EmotionPredictor] = create_predictor,
        workers: int = INFERENCE_WORKERS,
    ):
        self._factory = factory
        self._workers = workers
        self._predictor: EmotionPredictor | None = None
        self._executor: concurrent.futures.ThreadPoolExecutor | None = None
        self._lock = threading.Lock()

    @property
    def is_ready(self) -> bool:
        return self._predictor is not None

    def initialize(self) -> bool:
        """Load the predictor if nobody has yet.

        Returns:
            True if this call performed the load, False if already loaded.

        Raises:
            ModelLoadFailed: If loading failed. The cache stays empty and
                a later call may retry.
        """
        if self._predictor is not None:
            return False
        with self._lock:
            if self._predictor is not None:
                return False
            logger.info("Initializing emotion predictor...")
            start = time.monotonic()
            try:
                predictor = self._factory()
                predictor.initialize()
            except AffectError:
                logger.exception("Emotion predictor failed to load.")
                raise
            except Exception as e:
                logger.exception("Emotion predictor failed to load.")
                raise ModelLoadFailed(f"Failed to load emotion predictor: {e}") from e
            self._executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=self._workers, thread_name_prefix="affect-inference"
            )
            self._predictor = predictor
            logger.info("Emotion predictor ready in %.2fs.", time.monotonic() - start)
            return True

    def with_predictor(self, fn: Callable[[EmotionPredictor], T]) -> T:
        """Run ``fn`` against the loaded predictor. Reads do not block each other.

        Raises:
            ModelNotReady: If ``initialize`` has not completed.
        """
        predictor = self._predictor
        if predictor is None:
            raise ModelNotReady("Model not initialized. Call initialize first.")
        return fn(predictor)

    def predict(self, text: str, timeout: float | None = None) -> EmotionPrediction:
        """Predict affect for ``text``, optionally bounded by ``timeout`` seconds.

        With a timeout, inference runs on the cache's worker pool and the
        caller stops waiting when it expires. A prediction that has already
        started keeps its worker until the backend returns; once every
        worker is held by such a prediction, later bounded calls time out
        until one finishes.

        Raises:
            ModelNotReady: If ``initialize`` has not completed.
            OperationTimeout: If inference outlived ``timeout``.
        """
        if timeout is None:
            return self.with_predictor(lambda p: p.predict(text))

        predictor, executor = self._predictor, self._executor
        if predictor is None or executor is None:
            raise ModelNotReady("Model not initialized. Call initialize first.")
        try:
            future = executor.submit(predictor.predict, text)
        except RuntimeError as e:
            raise ModelNotReady("Model cache has been shut down.") from e
        try:
            return future.result(timeout=timeout)
        except concurrent.futures.TimeoutError as e:
            if not future.cancel():
                logger.warning(
                    "Prediction still running after %.3fs timeout; its worker stays busy.",
                    timeout,
                )
            raise OperationTimeout(f"Prediction exceeded {timeout:.3f}s.") from e

    def shutdown(self) -> None:
        """Drop the predictor. A later ``initialize`` reloads it."""
        with self._lock:
            predictor, self._predictor = self._predictor, None
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)
        if predictor is not None:
            predictor.close()
            logger.info("Emotion predictor released.")
