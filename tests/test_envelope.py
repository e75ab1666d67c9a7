"""
Tests for response envelopes, value lowering and error classification.
"""

import json
import uuid
from datetime import datetime, timezone

import pydantic
from bson import Binary, ObjectId
from bson.decimal128 import Decimal128
from bson.errors import InvalidDocument
from bson.son import SON
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from dispatch.envelope import ExecutionPath, classify_exception, failure, success, to_plain
from utils.errors import ToolError


class TestToPlain:
    """Tests for lowering BSON values to JSON-safe structure."""

    def test_bson_values(self):
        oid = ObjectId("65f1a2b3c4d5e6f7a8b9c0d1")
        identifier = uuid.UUID("12345678-1234-5678-1234-567812345678")
        value = {
            "_id": oid,
            "when": datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
            "price": Decimal128("9.99"),
            "ref": identifier,
            "blob": Binary(b"\x00\x01"),
            "nested": SON([("ids", (oid,))]),
        }
        assert to_plain(value) == {
            "_id": "65f1a2b3c4d5e6f7a8b9c0d1",
            "when": "2024-01-02T03:04:05+00:00",
            "price": "9.99",
            "ref": "12345678-1234-5678-1234-567812345678",
            "blob": "AAE=",
            "nested": {"ids": ["65f1a2b3c4d5e6f7a8b9c0d1"]},
        }

    def test_result_is_json_serializable(self):
        json.dumps(to_plain([{"_id": ObjectId(), "n": 1, "ok": True, "none": None}]))

    def test_enum_lowered_to_value(self):
        assert to_plain(ExecutionPath.TYPED) == "Typed"


class TestClassifyException:
    def test_tool_error(self):
        kind, message, context = classify_exception(ToolError("InvalidArgument", "bad", {"argument": "x"}))
        assert (kind, message, context) == ("InvalidArgument", "bad", {"argument": "x"})

    def test_store_error_with_code(self):
        kind, _, context = classify_exception(DuplicateKeyError("E11000 duplicate key", code=11000))
        assert kind == "StoreError"
        assert context == {"storeError": "DuplicateKeyError", "code": 11000}

    def test_store_error_without_code(self):
        kind, message, context = classify_exception(ServerSelectionTimeoutError("no servers"))
        assert kind == "StoreError"
        assert message == "no servers"
        assert "code" not in context

    def test_bson_error(self):
        kind, _, _ = classify_exception(InvalidDocument("cannot encode object"))
        assert kind == "InvalidArgument"

    def test_pydantic_error(self):
        class Model(pydantic.BaseModel):
            name: str

        try:
            Model.model_validate({})
        except pydantic.ValidationError as e:
            kind, _, context = classify_exception(e)
        assert kind == "ValidationError"
        assert context["errors"][0]["field"] == "name"

    def test_unexpected_error(self):
        kind, message, _ = classify_exception(RuntimeError("boom"))
        assert kind == "InternalError"
        assert "RuntimeError" in message


class TestEnvelopes:
    def test_success(self):
        assert success(ExecutionPath.GENERIC, {"count": 3}) == {
            "usedPath": "Generic",
            "payload": {"count": 3},
        }

    def test_success_without_path(self):
        assert success(None, {"status": "ok"}) == {"payload": {"status": "ok"}}

    def test_failure_with_path_and_context(self):
        envelope = failure(
            ToolError("ValidationError", "Product validation failed", {"model": "Product"}),
            ExecutionPath.TYPED,
            {"collection": "products", "filter": {"_id": ObjectId("65f1a2b3c4d5e6f7a8b9c0d1")}},
        )
        assert envelope == {
            "usedPath": "Typed",
            "error": {
                "kind": "ValidationError",
                "message": "Product validation failed",
                "context": {
                    "collection": "products",
                    "filter": {"_id": "65f1a2b3c4d5e6f7a8b9c0d1"},
                    "model": "Product",
                },
            },
        }

    def test_failure_without_path_omits_used_path(self):
        envelope = failure(ToolError("InvalidArgument", "bad"))
        assert "usedPath" not in envelope
        assert envelope["error"] == {"kind": "InvalidArgument", "message": "bad", "context": {}}
