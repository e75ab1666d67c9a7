"""
Tools for collection discovery.
"""

from typing import Any

from utils.context import AppContext

from .registry import Operation


async def list_collections(app: AppContext) -> dict[str, Any]:
    """List the collections in the database and those bound to a schema."""
    return await app.executor.list_collections()


LIST_COLLECTIONS = Operation(
    name="listCollections",
    description="List available collections in the database and which ones have a registered schema",
    input_schema={
        "type": "object",
        "properties": {},
        "required": [],
        "additionalProperties": False,
    },
    handler=list_collections,
    read_only=True,
)
