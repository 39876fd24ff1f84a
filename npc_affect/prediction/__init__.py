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

"""Text-to-affect prediction backends and the shared model cache.

    EmotionPredictor (ABC)
    +-- TransformerEmotionPredictor (local HuggingFace classifier)
    +-- GeminiEmotionPredictor (google.genai)
    ModelCache (load-once holder of one predictor)
"""

__all__ = [
    "EmotionPredictor",
    "GeminiEmotionPredictor",
    "ModelCache",
    "TransformerEmotionPredictor",
    "create_predictor",
]


def __getattr__(name: str):
    """Lazy imports to avoid loading model backends at import time."""
    if name == "EmotionPredictor":
        from .base import EmotionPredictor

        return EmotionPredictor
    if name in ("ModelCache", "create_predictor"):
        from .model_cache import ModelCache, create_predictor

        return {"ModelCache": ModelCache, "create_predictor": create_predictor}[name]
    if name == "TransformerEmotionPredictor":
        from .transformer_predictor import TransformerEmotionPredictor

        return TransformerEmotionPredictor
    if name == "GeminiEmotionPredictor":
        from .gemini_predictor import GeminiEmotionPredictor

        return GeminiEmotionPredictor
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
