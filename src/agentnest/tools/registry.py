from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module implements the ToolRegistry.
Tools are registered once at start-up, the registry is then frozen and only read
(lock-free dict lookups) while invocations are being served.
"""

import re
from typing import Any, Dict, Iterable, List

from pydantic import BaseModel

from .base import Tool, ToolSpec
from .errors import (
    ToolAlreadyRegisteredError,
    ToolNotFoundError,
    ToolRegistryFrozenError,
    ToolSchemaError,
)

_TOOL_NAME_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def validate_tool_schema(tool: Tool[Any, Any]) -> None:
    """
    Reject tools whose declared input schema cannot be exported to the model.

    Raises:
        ToolSchemaError: on an invalid name, a non-pydantic args model, or a
            parameters schema that is not a JSON object schema.
    """
    name = tool.spec.name
    if not isinstance(name, str) or not _TOOL_NAME_RE.match(name):
        raise ToolSchemaError(
            f"Invalid tool name {name!r}: expected 1-64 chars of [A-Za-z0-9_-]"
        )

    if not (isinstance(tool.args_model, type) and issubclass(tool.args_model, BaseModel)):
        raise ToolSchemaError(f"Tool '{name}' args_model must be a pydantic BaseModel subclass")

    schema = tool.spec.parameters_schema
    if not isinstance(schema, dict):
        raise ToolSchemaError(f"Tool '{name}' parameters schema must be a mapping")
    if schema.get("type") != "object":
        raise ToolSchemaError(
            f"Tool '{name}' parameters schema must have type 'object', got {schema.get('type')!r}"
        )

    properties = schema.get("properties", {})
    if not isinstance(properties, dict):
        raise ToolSchemaError(f"Tool '{name}' schema 'properties' must be a mapping")

    required = schema.get("required", [])
    if not isinstance(required, list) or not all(isinstance(r, str) for r in required):
        raise ToolSchemaError(f"Tool '{name}' schema 'required' must be a list of strings")
    unknown = [r for r in required if r not in properties]
    if unknown:
        raise ToolSchemaError(
            f"Tool '{name}' schema requires undeclared properties: {', '.join(unknown)}"
        )


class ToolRegistry:
    """
    Stores tools by name.

      - `register` is a start-up operation; it fails once the registry is frozen
      - `lookup` raises ToolNotFoundError for unknown names
      - `to_openai_function_tools` exports specs for the model oracle
    """

    def __init__(self, tools: Iterable[Tool[Any, Any]] | None = None) -> None:
        self._tools: Dict[str, Tool[Any, Any]] = {}
        self._frozen = False
        if tools is not None:
            self.register_many(tools)

    # ''''''''''''''''''''''''''''''''''''''
    # Registration
    # ''''''''''''''''''''''''''''''''''''''

    def register(self, tool: Tool[Any, Any]) -> None:
        if self._frozen:
            raise ToolRegistryFrozenError(
                f"Cannot register '{tool.spec.name}': registry is frozen"
            )
        validate_tool_schema(tool)
        name = tool.spec.name
        if name in self._tools:
            raise ToolAlreadyRegisteredError(f"Tool already registered: {name}")
        self._tools[name] = tool

    def register_many(self, tools: Iterable[Tool[Any, Any]]) -> None:
        for t in tools:
            self.register(t)

    def freeze(self) -> "ToolRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ''''''''''''''''''''''''''''''''''''''
    # Lookup
    # ''''''''''''''''''''''''''''''''''''''

    def lookup(self, name: str) -> Tool[Any, Any]:
        try:
            return self._tools[name]
        except KeyError as e:
            raise ToolNotFoundError(f"Unknown tool: {name}") from e

    def list(self) -> List[Tool[Any, Any]]:
        return list(self._tools.values())

    def names(self) -> List[str]:
        return list(self._tools.keys())

    def has(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    # ''''''''''''''''''''''''''''''''''''''
    # Export / specs
    # ''''''''''''''''''''''''''''''''''''''

    def specs(self) -> List[ToolSpec]:
        return [t.spec for t in self._tools.values()]

    def to_openai_function_tools(self) -> List[Dict[str, Any]]:
        """
        Export registry tools in OpenAI function-tool format:
        [
          {"type":"function","function":{"name":...,"description":...,"parameters":...}},
          ...
        ]
        """
        out: List[Dict[str, Any]] = []
        for t in self._tools.values():
            out.append(
                {
                    "type": "function",
                    "function": {
                        "name": t.spec.name,
                        "description": t.spec.description,
                        "parameters": t.spec.parameters_schema,
                    },
                }
            )
        return out
