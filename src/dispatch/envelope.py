"""
Response envelopes.

Every operation answers with ``{"usedPath", "payload"}`` on success and
``{"usedPath" (when known), "error": {"kind", "message", "context"}}`` on
failure. Payloads and contexts are lowered to JSON-safe values here.
"""

import base64
import json
import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping
from uuid import UUID

import pydantic
from bson import ObjectId, json_util
from bson.decimal128 import Decimal128
from bson.errors import BSONError
from bson.json_util import RELAXED_JSON_OPTIONS
from pymongo.errors import PyMongoError

from utils.constants import MCP_SERVER_NAME
from utils.errors import (
    INTERNAL_ERROR,
    INVALID_ARGUMENT,
    STORE_ERROR,
    VALIDATION_ERROR,
    ToolError,
    error_payload,
)

logger = logging.getLogger(f"{MCP_SERVER_NAME}.dispatch.envelope")


class ExecutionPath(str, Enum):
    TYPED = "Typed"
    GENERIC = "Generic"


def to_plain(value: Any) -> Any:
    """Lower BSON and Python values into JSON-serializable structure."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (Decimal128, Decimal, UUID)):
        return str(value)
    if isinstance(value, Enum):
        return to_plain(value.value)
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, Mapping):
        return {str(key): to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_plain(item) for item in value]
    try:
        return json.loads(json_util.dumps(value, json_options=RELAXED_JSON_OPTIONS))
    except (TypeError, ValueError):
        return str(value)


def classify_exception(exc: BaseException) -> tuple[str, str, dict[str, Any]]:
    """Map an exception to ``(kind, message, context)``."""
    if isinstance(exc, ToolError):
        return exc.kind, exc.message, dict(exc.context or {})
    if isinstance(exc, pydantic.ValidationError):
        errors = [
            {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        return VALIDATION_ERROR, f"Validation failed: {exc.error_count()} error(s)", {"errors": errors}
    if isinstance(exc, PyMongoError):
        context: dict[str, Any] = {"storeError": type(exc).__name__}
        code = getattr(exc, "code", None)
        if code is not None:
            context["code"] = code
        return STORE_ERROR, str(exc), context
    if isinstance(exc, BSONError):
        return INVALID_ARGUMENT, str(exc), {}
    return INTERNAL_ERROR, f"Unexpected error: {type(exc).__name__}: {exc}", {}


def success(path: ExecutionPath | None, payload: Any) -> dict[str, Any]:
    envelope: dict[str, Any] = {}
    if path is not None:
        envelope["usedPath"] = path.value
    envelope["payload"] = to_plain(payload)
    return envelope


def failure(
    exc: BaseException,
    path: ExecutionPath | None = None,
    context: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    kind, message, details = classify_exception(exc)
    if kind == INTERNAL_ERROR:
        logger.error(f"Internal error: {message}", exc_info=exc)
    merged = {**to_plain(dict(context or {})), **to_plain(details)}
    envelope: dict[str, Any] = {}
    if path is not None:
        envelope["usedPath"] = path.value
    envelope["error"] = error_payload(kind, message, context=merged)
    return envelope
