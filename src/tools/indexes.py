"""
Tools for index management.

This module contains tools for creating, dropping and listing the indexes of a collection.
"""

import logging
from typing import Any

from utils.constants import MCP_SERVER_NAME
from utils.context import AppContext

from .registry import COLLECTION_ARGUMENT, Operation, structured_argument

logger = logging.getLogger(f"{MCP_SERVER_NAME}.tools.indexes")


async def create_index(
    app: AppContext, collection: str, keys: Any, options: Any = None
) -> dict[str, Any]:
    """Create a new index on a collection."""
    return await app.executor.create_index(collection, keys, options)


async def drop_index(app: AppContext, collection: str, index_name: str) -> dict[str, Any]:
    """Remove an index from a collection."""
    logger.info(f"Dropping index {index_name} on {collection}")
    return await app.executor.drop_index(collection, index_name)


async def list_indexes(app: AppContext, collection: str) -> dict[str, Any]:
    """List indexes for a collection."""
    return await app.executor.list_indexes(collection)


CREATE_INDEX = Operation(
    name="createIndex",
    description="Create a new index on a collection",
    input_schema={
        "type": "object",
        "properties": {
            "collection": COLLECTION_ARGUMENT,
            "keys": structured_argument(
                "Fields to index (e.g. {name: 1} for ascending, {location: '2dsphere'} for geospatial)"
            ),
            "options": {
                "type": ["object", "string"],
                "description": "Index options (e.g. {unique: true})",
                "properties": {
                    "unique": {
                        "type": "boolean",
                        "description": "If true, the index will only accept unique values",
                    },
                    "name": {"type": "string", "description": "Custom name for the index"},
                    "sparse": {
                        "type": "boolean",
                        "description": "If true, the index only references documents with the specified field",
                    },
                    "expireAfterSeconds": {
                        "type": "integer",
                        "minimum": 0,
                        "description": "TTL in seconds for documents (requires a date field)",
                    },
                    "partialFilterExpression": {
                        "type": "object",
                        "description": "Only index documents matching this filter",
                    },
                },
                "default": {},
            },
        },
        "required": ["collection", "keys"],
        "additionalProperties": False,
    },
    handler=create_index,
    read_only=False,
)

DROP_INDEX = Operation(
    name="dropIndex",
    description="Remove an index from a collection",
    input_schema={
        "type": "object",
        "properties": {
            "collection": COLLECTION_ARGUMENT,
            "indexName": {
                "type": "string",
                "minLength": 1,
                "description": "Name of the index to drop",
            },
        },
        "required": ["collection", "indexName"],
        "additionalProperties": False,
    },
    handler=drop_index,
    read_only=False,
)

LIST_INDEXES = Operation(
    name="listIndexes",
    description="List indexes for a collection",
    input_schema={
        "type": "object",
        "properties": {"collection": COLLECTION_ARGUMENT},
        "required": ["collection"],
        "additionalProperties": False,
    },
    handler=list_indexes,
    read_only=True,
)
