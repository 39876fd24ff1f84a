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

"""Local HuggingFace backend for EmotionPredictor.

Two kinds of checkpoints are supported:
  - 2-output regression heads, read directly as (valence, arousal)
    after a tanh squash.
  - Categorical emotion classifiers, whose class probabilities are
    projected onto circumplex coordinates through LABEL_AFFECT.

torch and transformers are imported on ``initialize`` only, so the
rest of the engine (and its tests) never pays for them.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping

import numpy as np

from npc_affect.config import AFFECT_MODEL_NAME, MAX_INPUT_TOKENS, MAX_TEXT_LENGTH
from npc_affect.errors import ConfigInvalid, ModelLoadFailed, ModelNotReady, PredictionFailed
from npc_affect.models.affect import EmotionPrediction

from .base import EmotionPredictor, check_text, to_prediction

logger = logging.getLogger(__name__)

# Approximate positions on Russell's circumplex, (valence, arousal)
LABEL_AFFECT: dict[str, tuple[float, float]] = {
    "anger": (-0.6, 0.8),
    "annoyance": (-0.4, 0.4),
    "disgust": (-0.7, 0.3),
    "fear": (-0.7, 0.7),
    "joy": (0.8, 0.5),
    "love": (0.9, 0.3),
    "neutral": (0.0, 0.0),
    "optimism": (0.6, 0.2),
    "sadness": (-0.7, -0.4),
    "surprise": (0.2, 0.8),
}


def build_label_projection(id2label: Mapping[int, str]) -> np.ndarray:
    """Build the (num_labels, 2) matrix mapping class probabilities to affect.

    Raises:
        ModelLoadFailed: If a label has no known affect coordinates.
    """
    rows = []
    for idx in range(len(id2label)):
        raw_label = str(id2label[idx])
        coordinates = LABEL_AFFECT.get(raw_label.lower())
        if coordinates is None:
            raise ModelLoadFailed(f"No affect coordinates for model label {raw_label!r}.")
        rows.append(coordinates)
    return np.array(rows, dtype=np.float64)


def softmax(logits: np.ndarray) -> np.ndarray:
    shifted = np.exp(logits - np.max(logits))
    return shifted / shifted.sum()


def logits_to_affect(logits: np.ndarray, projection: np.ndarray | None) -> np.ndarray:
    """Convert one row of model logits to (valence, arousal).

    Args:
        logits: 1-dim logits for a single input.
        projection: Label projection matrix, or None for a regression head.

    Returns:
        Shape (2,) affect, not yet clamped.
    """
    logits = np.asarray(logits, dtype=np.float64)
    if projection is None:
        return np.tanh(logits[:2])
    return softmax(logits) @ projection


class TransformerEmotionPredictor(EmotionPredictor):
    """Sequence-classification model wrapped as an EmotionPredictor.

    Args:
        model_name: HuggingFace model id or local path.
        device: torch device string. Defaults to CUDA when available.
        max_text_length: Character limit for input text.
        max_input_tokens: Token limit; inputs beyond it are rejected.
    """

    def __init__(
        self,
        model_name: str = AFFECT_MODEL_NAME,
        device: str | None = None,
        max_text_length: int = MAX_TEXT_LENGTH,
        max_input_tokens: int = MAX_INPUT_TOKENS,
    ):
        self.model_name = model_name
        self.device = device
        self.max_text_length = max_text_length
        self.max_input_tokens = max_input_tokens
        self._tokenizer = None
        self._model = None
        self._projection: np.ndarray | None = None
        self._token_limit = max_input_tokens
        self._load_lock = threading.Lock()
        # Fast tokenizers are not re-entrant across threads.
        self._tokenizer_lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._model is not None

    def initialize(self) -> None:
        with self._load_lock:
            if self._model is not None:
                return
            try:
                import torch
                from transformers import AutoModelForSequenceClassification, AutoTokenizer

                device = self.device or ("cuda" if torch.cuda.is_available() else "cpu")
                logger.info("Loading %s on %s", self.model_name, device)
                tokenizer = AutoTokenizer.from_pretrained(self.model_name)
                model = AutoModelForSequenceClassification.from_pretrained(self.model_name)
                model.to(device)
                model.eval()
            except (ImportError, OSError, ValueError, RuntimeError) as e:
                raise ModelLoadFailed(
                    f"Failed to load model {self.model_name!r}: {e}"
                ) from e

            config = model.config
            if config.problem_type == "regression" and config.num_labels == 2:
                projection = None
            else:
                projection = build_label_projection(config.id2label)

            self.device = device
            self._token_limit = min(int(tokenizer.model_max_length), self.max_input_tokens)
            self._tokenizer = tokenizer
            self._projection = projection
            self._model = model

    def predict(self, text: str) -> EmotionPrediction:
        text = check_text(text, self.max_text_length)
        model = self._model
        if model is None:
            raise ModelNotReady(f"Model {self.model_name!r} is not initialized.")

        try:
            with self._tokenizer_lock:
                encoded = self._tokenizer(text, return_tensors="pt", truncation=False)
        except Exception as e:
            raise PredictionFailed(f"Tokenization failed: {e}") from e
        n_tokens = encoded["input_ids"].shape[-1]
        if n_tokens > self._token_limit:
            raise ConfigInvalid(
                f"Interaction text is {n_tokens} tokens; maximum is {self._token_limit}."
            )

        import torch

        try:
            with torch.inference_mode():
                inputs = {k: v.to(self.device) for k, v in encoded.items()}
                logits = model(**inputs).logits[0].float().cpu().numpy()
        except RuntimeError as e:
            raise PredictionFailed(f"Inference failed: {e}") from e

        return to_prediction(logits_to_affect(logits, self._projection))

    def close(self) -> None:
        with self._load_lock:
            self._model = None
            self._tokenizer = None
