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

"""Typed errors raised by the affect engine.

Every error carries a stable ``kind`` so outer layers (HTTP, agents,
game clients) can map failures to their own semantics without
inspecting messages.
"""

from __future__ import annotations

import enum


class ErrorKind(enum.Enum):
    CONFIG_INVALID = "config_invalid"
    MODEL_NOT_READY = "model_not_ready"
    PREDICTION_FAILED = "prediction_failed"
    PERSISTENCE_FAILED = "persistence_failed"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    TIMEOUT = "timeout"


class AffectError(Exception):
    """Base class for all engine errors."""

    kind: ErrorKind = ErrorKind.PREDICTION_FAILED

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigInvalid(AffectError):
    """Malformed or out-of-range NpcConfig, MemoryRecord or input text."""

    kind = ErrorKind.CONFIG_INVALID


class ModelNotReady(AffectError):
    """The predictor was used before the model was initialized."""

    kind = ErrorKind.MODEL_NOT_READY


class PredictionFailed(AffectError):
    """The inference backend failed. Callers may retry."""

    kind = ErrorKind.PREDICTION_FAILED


class ModelLoadFailed(PredictionFailed):
    """Loading the model failed; the cache stays uninitialized."""


class PersistenceFailed(AffectError):
    """Reading or writing a memory unit failed."""

    kind = ErrorKind.PERSISTENCE_FAILED


class NotFound(AffectError):
    kind = ErrorKind.NOT_FOUND


class AlreadyExists(AffectError):
    kind = ErrorKind.ALREADY_EXISTS


class OperationTimeout(AffectError):
    """A caller-supplied timeout elapsed before the operation committed."""

    kind = ErrorKind.TIMEOUT
