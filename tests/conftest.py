"""
Shared fixtures and utilities for the unit and MCP server integration tests.
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
from bson import ObjectId
from mcp import ClientSession, StdioServerParameters, stdio_client
from pymongo.errors import OperationFailure

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"

# Tools we expect to be registered by the server, in catalog order
EXPECTED_TOOLS = [
    "listCollections",
    "find",
    "insertOne",
    "updateOne",
    "deleteOne",
    "count",
    "aggregate",
    "createIndex",
    "dropIndex",
    "listIndexes",
    "getServerConfigurationStatus",
    "testConnection",
]

# Tools organized by category for validation
TOOLS_BY_CATEGORY = {
    "collection": {"listCollections"},
    "documents": {"find", "insertOne", "updateOne", "deleteOne", "count", "aggregate"},
    "indexes": {"createIndex", "dropIndex", "listIndexes"},
    "server": {"getServerConfigurationStatus", "testConnection"},
}

# Expected required parameters for tools that need them
TOOL_REQUIRED_PARAMS = {
    "find": ["collection"],
    "insertOne": ["collection", "document"],
    "updateOne": ["collection", "filter", "update"],
    "deleteOne": ["collection", "filter"],
    "count": ["collection"],
    "aggregate": ["collection", "pipeline"],
    "createIndex": ["collection", "keys"],
    "dropIndex": ["collection", "indexName"],
    "listIndexes": ["collection"],
}

PRODUCT_SCHEMA_YAML = """\
modelName: Product
collectionName: products
fields:
  name: {type: string, required: true}
  price: {type: number, required: true, min: 0}
  category: {type: string, enum: [tools, toys]}
  inStock: {type: boolean, default: true}
  createdAt: {type: date, default: now}
  tags: {type: array}
"""

# Minimum configuration needed to talk to a test deployment
REQUIRED_ENV_VARS = ("MONGODB_URI",)

# Default timeout (seconds) to guard against hangs when MongoDB
# is unreachable or slow. Override with MONGO_MCP_TEST_TIMEOUT if needed.
DEFAULT_TIMEOUT = int(os.getenv("MONGO_MCP_TEST_TIMEOUT", "120"))


def _build_env(extra: dict[str, str] | None = None) -> dict[str, str]:
    """Build the environment passed to the test server process."""
    env = os.environ.copy()
    missing = [var for var in REQUIRED_ENV_VARS if not env.get(var)]
    if missing:
        pytest.skip(
            "Integration tests require a MongoDB deployment. "
            f"Missing env vars: {', '.join(missing)}"
        )

    # Ensure the server module can be imported from the repo's src/ folder
    existing_path = env.get("PYTHONPATH")
    env["PYTHONPATH"] = (
        f"{SRC_DIR}{os.pathsep}{existing_path}" if existing_path else str(SRC_DIR)
    )

    # Force stdio transport for the test server to match stdio_client
    env["MONGO_MCP_TRANSPORT"] = "stdio"
    env.setdefault("MONGODB_DATABASE", "mcp_server_test")
    # Ensure unbuffered output to avoid stdout/stderr buffering surprises
    env.setdefault("PYTHONUNBUFFERED", "1")
    env.update(extra or {})
    return env


@asynccontextmanager
async def create_mcp_session(extra_env: dict[str, str] | None = None) -> AsyncIterator[ClientSession]:
    """Create a fresh MCP client session connected to the server over stdio."""
    env = _build_env(extra_env)
    params = StdioServerParameters(
        command=sys.executable,
        args=["-m", "mcp_server"],
        env=env,
    )

    async with asyncio.timeout(DEFAULT_TIMEOUT):
        async with stdio_client(params) as (read_stream, write_stream):
            async with ClientSession(read_stream, write_stream) as session:
                await session.initialize()
                yield session


def extract_payload(response: Any) -> Any:
    """Extract the JSON envelope from a tool response.

    Every tool answers with a single text content block holding the envelope.
    """
    content = getattr(response, "content", None) or []
    if not content:
        return None

    raw = getattr(content[0], "text", None)
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return raw
    return raw


# ---------------------------------------------------------------------------
# In-memory store doubles for unit tests
# ---------------------------------------------------------------------------


def _matches_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
        for operator, operand in condition.items():
            if operator == "$ne" and value == operand:
                return False
            if operator == "$eq" and value != operand:
                return False
            if operator == "$in" and value not in operand:
                return False
            if operator == "$gt" and not (value is not None and value > operand):
                return False
        return True
    return value == condition


def matches(document: dict[str, Any], filter: dict[str, Any] | None) -> bool:
    """Evaluate the subset of query language the unit tests use."""
    return all(
        _matches_condition(document.get(field), condition)
        for field, condition in (filter or {}).items()
    )


class FakeCursor:
    def __init__(self, documents: list[dict[str, Any]]):
        self.documents = documents

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        return list(self.documents)


class RecordingCollection:
    """Async collection double that keeps documents in memory and records every call."""

    def __init__(self, name: str, documents: list[dict[str, Any]] | None = None):
        self.name = name
        self.documents = [dict(document) for document in documents or []]
        self.indexes = [{"v": 2, "key": {"_id": 1}, "name": "_id_"}]
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.failures: dict[str, Exception] = {}

    def _record(self, method: str, **arguments: Any) -> None:
        self.calls.append((method, arguments))
        if method in self.failures:
            raise self.failures[method]

    def last_call(self, method: str) -> dict[str, Any]:
        for name, arguments in reversed(self.calls):
            if name == method:
                return arguments
        raise AssertionError(f"{method} was never called on {self.name}")

    def find(self, filter=None, projection=None, sort=None, limit=0, skip=0):
        self._record("find", filter=filter, projection=projection, sort=sort, limit=limit, skip=skip)
        found = [dict(d) for d in self.documents if matches(d, filter)]
        for field, direction in reversed(sort or []):
            found.sort(key=lambda d: d.get(field), reverse=direction == -1)
        found = found[skip:]
        if limit:
            found = found[:limit]
        return FakeCursor(found)

    async def insert_one(self, document):
        self._record("insert_one", document=dict(document))
        document.setdefault("_id", ObjectId())
        self.documents.append(dict(document))
        return SimpleNamespace(inserted_id=document["_id"], acknowledged=True)

    async def update_one(self, filter, update, upsert=False):
        self._record("update_one", filter=filter, update=update, upsert=upsert)
        for document in self.documents:
            if matches(document, filter):
                before = dict(document)
                document.update(update.get("$set", {}))
                for field in update.get("$unset", {}):
                    document.pop(field, None)
                return SimpleNamespace(
                    matched_count=1,
                    modified_count=int(before != document),
                    upserted_id=None,
                    acknowledged=True,
                )
        upserted_id = None
        if upsert:
            created = {k: v for k, v in filter.items() if not isinstance(v, dict)}
            created.update(update.get("$set", {}))
            created["_id"] = upserted_id = ObjectId()
            self.documents.append(created)
        return SimpleNamespace(
            matched_count=0, modified_count=0, upserted_id=upserted_id, acknowledged=True
        )

    async def delete_one(self, filter):
        self._record("delete_one", filter=filter)
        for position, document in enumerate(self.documents):
            if matches(document, filter):
                del self.documents[position]
                return SimpleNamespace(deleted_count=1, acknowledged=True)
        return SimpleNamespace(deleted_count=0, acknowledged=True)

    async def count_documents(self, filter):
        self._record("count_documents", filter=filter)
        return sum(1 for d in self.documents if matches(d, filter))

    async def aggregate(self, pipeline):
        self._record("aggregate", pipeline=pipeline)
        results = [dict(d) for d in self.documents]
        for stage in pipeline:
            if "$match" in stage:
                results = [d for d in results if matches(d, stage["$match"])]
        return FakeCursor(results)

    async def create_index(self, keys, **options):
        self._record("create_index", keys=keys, options=options)
        name = options.get("name") or "_".join(f"{field}_{direction}" for field, direction in keys)
        self.indexes.append({"v": 2, "key": dict(keys), **options, "name": name})
        return name

    async def drop_index(self, index_or_name):
        self._record("drop_index", name=index_or_name)
        for position, index in enumerate(self.indexes):
            if index["name"] == index_or_name:
                del self.indexes[position]
                return
        raise OperationFailure(f"index not found with name [{index_or_name}]", code=27)

    async def list_indexes(self):
        self._record("list_indexes")
        return FakeCursor(self.indexes)


class FakeDatabase:
    def __init__(self, name: str = "mcp_unit_test"):
        self.name = name
        self.collections: dict[str, RecordingCollection] = {}

    def __getitem__(self, name: str) -> RecordingCollection:
        if name not in self.collections:
            self.collections[name] = RecordingCollection(name)
        return self.collections[name]

    async def list_collection_names(self) -> list[str]:
        return list(self.collections)


@pytest.fixture
def database() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def schema_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "schemas"
    directory.mkdir()
    (directory / "product.yaml").write_text(PRODUCT_SCHEMA_YAML, encoding="utf-8")
    return directory


@pytest.fixture
def registry(schema_dir: Path):
    from schemas import SchemaRegistry

    return SchemaRegistry.discover(schema_dir)


@pytest.fixture
def executor(database: FakeDatabase, registry):
    from dispatch import DocumentExecutor

    return DocumentExecutor(database, registry)
