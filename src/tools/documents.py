"""
Tools for document operations.

This module contains tools for finding, inserting, updating, deleting, counting and aggregating documents.
Each call is routed through the dispatch layer, which picks the typed or generic path per collection.
"""

import logging
from typing import Any

from utils.constants import MCP_SERVER_NAME
from utils.context import AppContext

from .registry import COLLECTION_ARGUMENT, Operation, structured_argument

logger = logging.getLogger(f"{MCP_SERVER_NAME}.tools.documents")


async def find(
    app: AppContext,
    collection: str,
    filter: Any = None,
    projection: Any = None,
    sort: Any = None,
    limit: int = 0,
    skip: int = 0,
) -> dict[str, Any]:
    """Query documents with filtering, projection, sorting and pagination."""
    return await app.executor.find(
        collection, filter=filter, projection=projection, sort=sort, limit=limit, skip=skip
    )


async def insert_one(app: AppContext, collection: str, document: Any) -> dict[str, Any]:
    """Insert a single document into a collection."""
    return await app.executor.insert_one(collection, document)


async def update_one(
    app: AppContext, collection: str, filter: Any, update: Any, upsert: bool = False
) -> dict[str, Any]:
    """Update a single document in a collection."""
    return await app.executor.update_one(collection, filter, update, upsert=upsert)


async def delete_one(
    app: AppContext, collection: str, filter: Any, hard_delete: bool = False
) -> dict[str, Any]:
    """Soft delete a single document; hard delete only when asked to."""
    if hard_delete:
        logger.info(f"Hard delete requested on {collection}")
    return await app.executor.delete_one(collection, filter, hard_delete=hard_delete)


async def count(app: AppContext, collection: str, filter: Any = None) -> dict[str, Any]:
    """Count documents in a collection with optional filtering."""
    return await app.executor.count(collection, filter)


async def aggregate(app: AppContext, collection: str, pipeline: Any) -> dict[str, Any]:
    """Execute an aggregation pipeline on a collection."""
    return await app.executor.aggregate(collection, pipeline)


FIND = Operation(
    name="find",
    description=(
        "Query documents with filtering, projection, and pagination. "
        "Soft-deleted documents are excluded unless the filter mentions isDeleted."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "collection": COLLECTION_ARGUMENT,
            "filter": structured_argument("MongoDB filter query", default={}),
            "projection": structured_argument("Fields to include or exclude", default={}),
            "sort": structured_argument(
                "Sort order (e.g. {name: 1} for ascending, {name: -1} for descending)", default={}
            ),
            "limit": {
                "type": "integer",
                "minimum": 0,
                "default": 0,
                "description": "Maximum number of documents to return (0 means no limit)",
            },
            "skip": {
                "type": "integer",
                "minimum": 0,
                "default": 0,
                "description": "Number of documents to skip",
            },
        },
        "required": ["collection"],
        "additionalProperties": False,
    },
    handler=find,
    read_only=True,
)

INSERT_ONE = Operation(
    name="insertOne",
    description=(
        "Insert a single document into a collection. "
        "Collections with a registered schema apply its defaults and validation."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "collection": COLLECTION_ARGUMENT,
            "document": structured_argument("Document to insert"),
        },
        "required": ["collection", "document"],
        "additionalProperties": False,
    },
    handler=insert_one,
    read_only=False,
)

UPDATE_ONE = Operation(
    name="updateOne",
    description=(
        "Update a single document in a collection. "
        "A plain field mapping is applied as {$set: ...}."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "collection": COLLECTION_ARGUMENT,
            "filter": structured_argument("Filter to match the document to update"),
            "update": structured_argument(
                "Update operations to apply to the document (e.g. {$set: {name: 'new name'}})"
            ),
            "upsert": {
                "type": "boolean",
                "default": False,
                "description": "Insert a new document if no match is found",
            },
        },
        "required": ["collection", "filter", "update"],
        "additionalProperties": False,
    },
    handler=update_one,
    read_only=False,
)

DELETE_ONE = Operation(
    name="deleteOne",
    description=(
        "Soft delete a single document from a collection by setting isDeleted and deletedAt. "
        "Set hardDelete to remove it permanently."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "collection": COLLECTION_ARGUMENT,
            "filter": structured_argument("Filter to match the document to delete"),
            "hardDelete": {
                "type": "boolean",
                "default": False,
                "description": "Permanently remove the document instead of soft deleting it",
            },
        },
        "required": ["collection", "filter"],
        "additionalProperties": False,
    },
    handler=delete_one,
    read_only=False,
)

COUNT = Operation(
    name="count",
    description="Count documents in a collection with optional filtering",
    input_schema={
        "type": "object",
        "properties": {
            "collection": COLLECTION_ARGUMENT,
            "filter": structured_argument("MongoDB filter query", default={}),
        },
        "required": ["collection"],
        "additionalProperties": False,
    },
    handler=count,
    read_only=True,
)

AGGREGATE = Operation(
    name="aggregate",
    description=(
        "Execute an aggregation pipeline on a collection. "
        "$out and $merge stages are rejected in read-only mode."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "collection": COLLECTION_ARGUMENT,
            "pipeline": {
                "type": ["array", "string"],
                "items": {"type": "object"},
                "description": (
                    "MongoDB aggregation pipeline stages (e.g. [{$match: {...}}, {$group: {...}}])"
                ),
            },
        },
        "required": ["collection", "pipeline"],
        "additionalProperties": False,
    },
    handler=aggregate,
    read_only=True,
)
