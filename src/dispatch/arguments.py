"""
Parsing and normalization of structured tool arguments.

Filters, documents, updates and pipelines arrive either as JSON objects or as
JSON strings. Both forms may carry MongoDB Extended JSON wrappers such as
``{"$oid": ...}`` or ``{"$date": ...}``, which are decoded to BSON types.
"""

import json
from datetime import timezone
from typing import Any, Mapping

from bson import json_util
from bson.errors import BSONError

from utils.errors import INVALID_ARGUMENT, ToolError

# Only wrappers that cannot be confused with query operators; ``$type`` and
# ``$regex`` are left for the server to interpret.
EXTENDED_JSON_WRAPPERS = frozenset(
    {
        "$oid",
        "$date",
        "$numberInt",
        "$numberLong",
        "$numberDouble",
        "$numberDecimal",
        "$binary",
        "$uuid",
        "$timestamp",
        "$regularExpression",
        "$minKey",
        "$maxKey",
    }
)

JSON_OPTIONS = json_util.JSONOptions(tz_aware=True, tzinfo=timezone.utc)

SORT_DIRECTIONS = {
    1: 1,
    -1: -1,
    "1": 1,
    "-1": -1,
    "asc": 1,
    "ascending": 1,
    "desc": -1,
    "descending": -1,
}

SPECIAL_INDEX_TYPES = ("text", "2d", "2dsphere")

WRITE_STAGES = ("$out", "$merge")


def decode_extended_json(value: Any) -> Any:
    """Recursively replace Extended JSON wrappers with BSON values."""
    if isinstance(value, Mapping):
        decoded = {key: decode_extended_json(item) for key, item in value.items()}
        if len(decoded) <= 2 and any(key in EXTENDED_JSON_WRAPPERS for key in decoded):
            return json_util.object_hook(decoded, JSON_OPTIONS)
        return decoded
    if isinstance(value, (list, tuple)):
        return [decode_extended_json(item) for item in value]
    return value


def _load(value: Any, argument: str) -> Any:
    try:
        if isinstance(value, str):
            value = json.loads(value)
        return decode_extended_json(value)
    except json.JSONDecodeError as e:
        raise ToolError(
            INVALID_ARGUMENT,
            f"Argument '{argument}' is not valid JSON: {e.msg}",
            context={"argument": argument},
        ) from e
    except (BSONError, ValueError, TypeError, KeyError) as e:
        raise ToolError(
            INVALID_ARGUMENT,
            f"Argument '{argument}' contains invalid Extended JSON: {e}",
            context={"argument": argument},
        ) from e


def parse_document(value: Any, argument: str = "filter") -> dict[str, Any]:
    """Parse a mapping argument; ``None`` and the empty string mean ``{}``."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return {}
    parsed = _load(value, argument)
    if not isinstance(parsed, Mapping):
        raise ToolError(
            INVALID_ARGUMENT,
            f"Argument '{argument}' must be an object",
            context={"argument": argument},
        )
    return dict(parsed)


def parse_pipeline(value: Any) -> list[dict[str, Any]]:
    """Parse an aggregation pipeline: a non-empty list of single-operator stages."""
    parsed = _load(value, "pipeline") if value is not None else None
    if not isinstance(parsed, list) or not parsed:
        raise ToolError(
            INVALID_ARGUMENT,
            "Pipeline must be a non-empty array of stages",
            context={"argument": "pipeline"},
        )
    for position, stage in enumerate(parsed):
        if not isinstance(stage, Mapping):
            raise ToolError(
                INVALID_ARGUMENT,
                f"Pipeline stage {position} must be an object",
                context={"argument": "pipeline", "stage": position},
            )
        if len(stage) != 1 or not next(iter(stage)).startswith("$"):
            raise ToolError(
                INVALID_ARGUMENT,
                f"Pipeline stage {position} must have exactly one stage operator",
                context={"argument": "pipeline", "stage": position},
            )
    return [dict(stage) for stage in parsed]


def reject_write_stages(pipeline: list[dict[str, Any]]) -> None:
    """Refuse pipelines that write to the database through ``$out`` or ``$merge``."""
    for position, stage in enumerate(pipeline):
        operator = next(iter(stage))
        if operator in WRITE_STAGES:
            raise ToolError(
                INVALID_ARGUMENT,
                f"Pipeline stage {operator} writes to the database and is not allowed in read-only mode",
                context={"argument": "pipeline", "stage": position},
            )


def as_update_operators(update: Mapping[str, Any]) -> dict[str, Any]:
    """Wrap a plain field mapping in ``$set``; pass operator documents through."""
    if not update:
        raise ToolError(INVALID_ARGUMENT, "Update must not be empty", context={"argument": "update"})
    operators = [key for key in update if key.startswith("$")]
    if not operators:
        return {"$set": dict(update)}
    if len(operators) != len(update):
        raise ToolError(
            INVALID_ARGUMENT,
            "Update mixes update operators with plain fields",
            context={"argument": "update", "operators": operators},
        )
    return dict(update)


def normalize_sort(sort: Mapping[str, Any]) -> list[tuple[str, Any]] | None:
    if not sort:
        return None
    normalized = []
    for key, direction in sort.items():
        if isinstance(direction, Mapping) and "$meta" in direction:
            normalized.append((key, dict(direction)))
            continue
        lookup = direction.lower() if isinstance(direction, str) else direction
        if (
            isinstance(direction, bool)
            or not isinstance(lookup, (int, float, str))
            or lookup not in SORT_DIRECTIONS
        ):
            raise ToolError(
                INVALID_ARGUMENT,
                f"Invalid sort direction for '{key}': {direction!r}",
                context={"argument": "sort", "field": key},
            )
        normalized.append((key, SORT_DIRECTIONS[lookup]))
    return normalized


def normalize_index_direction(value: Any) -> int | str:
    if isinstance(value, bool):
        return 1
    if value == -1 or value == "-1":
        return -1
    if isinstance(value, str) and value in SPECIAL_INDEX_TYPES:
        return value
    return 1


def normalize_index_keys(keys: Mapping[str, Any]) -> list[tuple[str, int | str]]:
    """Turn an index key mapping into the (field, direction) list pymongo expects."""
    if not keys:
        raise ToolError(INVALID_ARGUMENT, "Index keys must not be empty", context={"argument": "keys"})
    return [(field, normalize_index_direction(value)) for field, value in keys.items()]


def normalize_count(value: Any, argument: str) -> int:
    """Validate ``limit``/``skip``: a non-negative integer, ``None`` meaning 0."""
    if value is None:
        return 0
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ToolError(
            INVALID_ARGUMENT,
            f"Argument '{argument}' must be a non-negative integer",
            context={"argument": argument, "value": value},
        )
    return value
