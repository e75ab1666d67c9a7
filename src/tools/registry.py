"""
Registry mapping external tool names to their argument contracts and handlers.
"""

import logging
import re
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from jsonschema import Draft202012Validator

from dispatch.envelope import failure
from utils.constants import MCP_SERVER_NAME
from utils.context import AppContext
from utils.errors import DUPLICATE_NAME, INVALID_ARGUMENT, UNKNOWN_TOOL, ToolError

logger = logging.getLogger(f"{MCP_SERVER_NAME}.tools.registry")

Handler = Callable[..., Awaitable[dict[str, Any]]]

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def to_snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


@dataclass(frozen=True)
class Operation:
    """A callable tool: its catalog entry and the coroutine that serves it."""

    name: str
    description: str
    input_schema: dict[str, Any]
    handler: Handler
    read_only: bool = True
    validator: Draft202012Validator = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        Draft202012Validator.check_schema(self.input_schema)
        object.__setattr__(self, "validator", Draft202012Validator(self.input_schema))

    def catalog_entry(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


class ToolRegistry:
    def __init__(self, operations: Iterable[Operation] = ()):
        self._operations: dict[str, Operation] = {}
        for operation in operations:
            self.register(operation)

    def __len__(self) -> int:
        return len(self._operations)

    def register(self, operation: Operation) -> None:
        if operation.name in self._operations:
            raise ToolError(
                DUPLICATE_NAME,
                f"Tool {operation.name} is already registered",
                context={"tool": operation.name},
            )
        self._operations[operation.name] = operation

    def lookup(self, name: str) -> Operation | None:
        return self._operations.get(name)

    def names(self) -> list[str]:
        return list(self._operations)

    def list_catalog(self) -> list[dict[str, Any]]:
        """Catalog entries in registration order."""
        return [operation.catalog_entry() for operation in self._operations.values()]

    async def call(self, name: str, arguments: dict[str, Any] | None, app: AppContext) -> dict[str, Any]:
        """Validate arguments and run the named tool.

        Raises ``ToolError`` with kind ``UnknownTool`` when no tool has that
        name; every other failure comes back as an error envelope.
        """
        operation = self.lookup(name)
        if operation is None:
            raise ToolError(UNKNOWN_TOOL, f"Unknown tool: {name}", context={"tool": name})

        arguments = dict(arguments or {})
        violations = sorted(operation.validator.iter_errors(arguments), key=lambda e: list(e.path))
        if violations:
            errors = [
                {"path": "/".join(str(part) for part in error.path), "message": error.message}
                for error in violations
            ]
            logger.info(f"Rejected arguments for {name}: {errors[0]['message']}")
            return failure(
                ToolError(
                    INVALID_ARGUMENT,
                    f"Invalid arguments for {name}: {errors[0]['message']}",
                    context={"tool": name, "errors": errors},
                )
            )

        kwargs = {to_snake_case(key): value for key, value in arguments.items()}
        return await operation.handler(app, **kwargs)


def structured_argument(description: str, default: Any = None) -> dict[str, Any]:
    """Schema for an argument given either as a JSON object or a JSON string."""
    schema: dict[str, Any] = {"type": ["object", "string"], "description": description}
    if default is not None:
        schema["default"] = default
    return schema


COLLECTION_ARGUMENT = {
    "type": "string",
    "minLength": 1,
    "description": "Collection name, or the model name of a registered schema",
}
