"""Error kinds and the structured exception raised inside the dispatch layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

__all__ = [
    "INVALID_ARGUMENT",
    "UNKNOWN_TOOL",
    "VALIDATION_ERROR",
    "INTERNAL_ERROR",
    "STORE_ERROR",
    "DUPLICATE_NAME",
    "ToolError",
    "error_payload",
]

INVALID_ARGUMENT = "InvalidArgument"
UNKNOWN_TOOL = "UnknownTool"
VALIDATION_ERROR = "ValidationError"
INTERNAL_ERROR = "InternalError"
STORE_ERROR = "StoreError"
DUPLICATE_NAME = "DuplicateName"


@dataclass(slots=True)
class ToolError(Exception):
    """Failure carrying an error kind, a message and diagnostic context."""

    kind: str
    message: str
    context: Mapping[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


def error_payload(kind: str, message: str, *, context: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Build the ``error`` member of a response envelope."""

    return {
        "kind": kind,
        "message": message,
        "context": dict(context) if context else {},
    }
