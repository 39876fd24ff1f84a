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

"""Gemini-backed EmotionPredictor via google.genai.

Asks the model to rate the text on valence and arousal and return
JSON. Useful where no local GPU/CPU budget exists for a classifier.
"""

from __future__ import annotations

import json
import threading
from typing import Any

from npc_affect.config import GEMINI_MODEL_NAME, MAX_TEXT_LENGTH
from npc_affect.errors import ModelLoadFailed, ModelNotReady, PredictionFailed
from npc_affect.models.affect import EmotionPrediction

from .base import EmotionPredictor, check_text, to_prediction

_AFFECT_INSTRUCTION = """\
You rate the emotional content of a line said to a video game character.

Return a JSON object with exactly two numeric fields:
- "valence": from -1.0 (very negative) to 1.0 (very positive)
- "arousal": from -1.0 (very calm) to 1.0 (very intense)

Respond with ONLY the JSON object.

Text:
"""


def parse_affect_json(payload: str | None) -> EmotionPrediction:
    """Parse the model's JSON answer into a clamped prediction.

    Raises:
        PredictionFailed: If the answer is missing, not JSON, or lacks
            numeric valence/arousal fields.
    """
    if not payload:
        raise PredictionFailed("Gemini returned an empty response.")
    try:
        data = json.loads(payload)
        values = (float(data["valence"]), float(data["arousal"]))
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise PredictionFailed(f"Unparseable affect response {payload!r}: {e}") from e
    return to_prediction(values)


class GeminiEmotionPredictor(EmotionPredictor):
    """Emotion predictor that delegates to a Gemini model.

    Args:
        model_name: Gemini model identifier.
        client: Pre-built ``genai.Client``. Created on ``initialize`` if None.
        max_text_length: Character limit for input text.
    """

    def __init__(
        self,
        model_name: str = GEMINI_MODEL_NAME,
        client: Any | None = None,
        max_text_length: int = MAX_TEXT_LENGTH,
    ):
        self.model_name = model_name
        self.max_text_length = max_text_length
        self._client = client
        self._lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._client is not None

    def initialize(self) -> None:
        with self._lock:
            if self._client is not None:
                return
            try:
                from google import genai

                self._client = genai.Client()
            except (ImportError, ValueError) as e:
                raise ModelLoadFailed(f"Failed to create Gemini client: {e}") from e

    def predict(self, text: str) -> EmotionPrediction:
        text = check_text(text, self.max_text_length)
        client = self._client
        if client is None:
            raise ModelNotReady("Gemini client is not initialized.")
        try:
            response = client.models.generate_content(
                model=self.model_name,
                contents=_AFFECT_INSTRUCTION + text,
                config={"response_mime_type": "application/json", "temperature": 0.0},
            )
        except Exception as e:
            raise PredictionFailed(f"Gemini request failed: {e}") from e
        return parse_affect_json(response.text)

    def close(self) -> None:
        with self._lock:
            self._client = None
