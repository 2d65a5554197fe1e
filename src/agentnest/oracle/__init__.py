from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Model oracle public API.
"""

from .base import ModelOracle
from .errors import ModelOracleError, ModelOracleExhaustedError, ModelOracleProtocolError
from .scripted import ScriptedOracle
from .types import (
    JSONObject,
    JSONValue,
    Message,
    ModelCompleted,
    ModelRequest,
    ModelResponse,
    ModelStreamEvent,
    ModelTextDelta,
    ToolCall,
    Usage,
)

__all__ = [
    "ModelOracle",
    "ScriptedOracle",
    "ModelOracleError",
    "ModelOracleExhaustedError",
    "ModelOracleProtocolError",
    "JSONObject",
    "JSONValue",
    "Message",
    "ModelCompleted",
    "ModelRequest",
    "ModelResponse",
    "ModelStreamEvent",
    "ModelTextDelta",
    "ToolCall",
    "Usage",
]
