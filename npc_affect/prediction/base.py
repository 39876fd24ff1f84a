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

"""Contract every text-to-affect backend satisfies."""

from __future__ import annotations

import abc
from collections.abc import Sequence

from npc_affect.config import MAX_TEXT_LENGTH
from npc_affect.errors import ConfigInvalid, PredictionFailed
from npc_affect.models.affect import EmotionPrediction


def check_text(text: str, max_length: int = MAX_TEXT_LENGTH) -> str:
    """Validate interaction text before it reaches a model.

    Raises:
        ConfigInvalid: If the text is empty, blank, or longer than
            ``max_length`` characters. Text is never truncated.
    """
    if not isinstance(text, str) or not text.strip():
        raise ConfigInvalid("Interaction text must be a non-empty string.")
    if len(text) > max_length:
        raise ConfigInvalid(
            f"Interaction text is {len(text)} characters; maximum is {max_length}."
        )
    return text


def to_prediction(values: Sequence[float]) -> EmotionPrediction:
    """Clamp raw (valence, arousal) output into an EmotionPrediction.

    Raises:
        PredictionFailed: If the backend produced NaN or infinite values.
    """
    try:
        return EmotionPrediction.clamped(float(values[0]), float(values[1]))
    except (ValueError, IndexError, TypeError) as e:
        raise PredictionFailed(f"Backend returned unusable affect {values!r}: {e}") from e


class EmotionPredictor(abc.ABC):
    """Maps text to a single bounded affect point.

    ``initialize`` loads the backend. It is expensive, explicit and
    idempotent. ``predict`` must be safe to call from many threads once
    the backend is loaded.
    """

    max_text_length: int = MAX_TEXT_LENGTH

    @property
    @abc.abstractmethod
    def is_initialized(self) -> bool:
        """Whether ``initialize`` has completed."""

    @abc.abstractmethod
    def initialize(self) -> None:
        """Load the backend. Subsequent calls are no-ops.

        Raises:
            ModelLoadFailed: If the backend could not be loaded.
        """

    @abc.abstractmethod
    def predict(self, text: str) -> EmotionPrediction:
        """Predict the affect evoked by ``text``.

        Raises:
            ConfigInvalid: If the text is empty or too long.
            ModelNotReady: If called before ``initialize``.
            PredictionFailed: If inference failed.
        """

    def close(self) -> None:
        """Release backend resources. Optional."""
