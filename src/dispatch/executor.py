"""
Dual-path executor.

Each operation resolves the collection once, picks the typed or generic handle
from the result, applies the soft-delete conventions, and returns an envelope.
Failures are converted to error envelopes here and never propagate to the
caller. Task cancellation is not a failure and is allowed through.
"""

import logging
from typing import Any, Awaitable, Callable

from pymongo.asynchronous.database import AsyncDatabase

from schemas import SchemaRegistry
from utils.constants import MCP_SERVER_NAME
from utils.errors import INTERNAL_ERROR, INVALID_ARGUMENT, ToolError

from .arguments import (
    as_update_operators,
    normalize_count,
    normalize_index_keys,
    normalize_sort,
    parse_document,
    parse_pipeline,
    reject_write_stages,
)
from .envelope import ExecutionPath, failure, success
from .handles import GenericHandle, TypedHandle
from .resolver import ResolvedCollection, resolve_collection
from .soft_delete import (
    exclude_soft_deleted,
    exclude_soft_deleted_from_pipeline,
    soft_delete_update,
)

logger = logging.getLogger(f"{MCP_SERVER_NAME}.dispatch.executor")

Operation = Callable[[GenericHandle], Awaitable[Any]]


class DocumentExecutor:
    def __init__(self, database: AsyncDatabase, registry: SchemaRegistry, read_only: bool = False):
        self.database = database
        self.registry = registry
        self.read_only = read_only

    def select_handle(self, resolved: ResolvedCollection) -> GenericHandle:
        """Pick the handle for a resolved collection; typed whenever a schema is bound."""
        collection = self.database[resolved.physical_name]
        if resolved.schema is None:
            return GenericHandle(collection)

        model = self.registry.model_for(resolved.schema)
        if model is None:
            raise ToolError(
                INTERNAL_ERROR,
                f"Schema {resolved.schema.model_name} has no typed model bound",
                context={"model": resolved.schema.model_name},
            )
        return TypedHandle(collection, model)

    async def _execute(
        self,
        operation: str,
        collection: Any,
        request: dict[str, Any],
        run: Operation,
    ) -> dict[str, Any]:
        path = None
        context = {"operation": operation, "collection": collection, **request}
        try:
            resolved = resolve_collection(self.registry, collection)
            path = ExecutionPath.TYPED if resolved.is_typed else ExecutionPath.GENERIC
            handle = self.select_handle(resolved)
            logger.debug(
                f"{operation} on {resolved.identifier} -> {handle.name} via {path.value} path"
            )
            payload = await run(handle)
        except Exception as e:
            logger.info(f"{operation} on {collection!r} failed: {e}")
            return failure(e, path, context)
        return success(path, payload)

    async def find(
        self,
        collection: str,
        filter: Any = None,
        projection: Any = None,
        sort: Any = None,
        limit: int | None = 0,
        skip: int | None = 0,
    ) -> dict[str, Any]:
        async def run(handle: GenericHandle) -> list[Any]:
            query = exclude_soft_deleted(handle.prepare_filter(parse_document(filter, "filter")))
            return await handle.find(
                query,
                projection=parse_document(projection, "projection"),
                sort=normalize_sort(parse_document(sort, "sort")),
                limit=normalize_count(limit, "limit"),
                skip=normalize_count(skip, "skip"),
            )

        request = {"filter": filter, "projection": projection, "sort": sort, "limit": limit, "skip": skip}
        return await self._execute("find", collection, request, run)

    async def insert_one(self, collection: str, document: Any) -> dict[str, Any]:
        async def run(handle: GenericHandle) -> dict[str, Any]:
            record = handle.prepare_document(parse_document(document, "document"))
            return await handle.insert_one(record)

        return await self._execute("insertOne", collection, {"document": document}, run)

    async def update_one(
        self, collection: str, filter: Any, update: Any, upsert: bool = False
    ) -> dict[str, Any]:
        async def run(handle: GenericHandle) -> dict[str, Any]:
            query = exclude_soft_deleted(handle.prepare_filter(parse_document(filter, "filter")))
            operators = handle.prepare_update(as_update_operators(parse_document(update, "update")))
            return await handle.update_one(query, operators, upsert=bool(upsert))

        request = {"filter": filter, "update": update, "upsert": upsert}
        return await self._execute("updateOne", collection, request, run)

    async def delete_one(
        self, collection: str, filter: Any, hard_delete: bool = False
    ) -> dict[str, Any]:
        async def run(handle: GenericHandle) -> dict[str, Any]:
            query = exclude_soft_deleted(handle.prepare_filter(parse_document(filter, "filter")))
            if hard_delete:
                result = await handle.delete_one(query)
                return {**result, "softDeleted": False}

            result = await handle.update_one(query, soft_delete_update())
            message = (
                "Document marked as deleted"
                if result["matchedCount"]
                else "No matching document to delete"
            )
            return {
                "matchedCount": result["matchedCount"],
                "modifiedCount": result["modifiedCount"],
                "acknowledged": result["acknowledged"],
                "softDeleted": True,
                "message": message,
            }

        request = {"filter": filter, "hardDelete": hard_delete}
        return await self._execute("deleteOne", collection, request, run)

    async def count(self, collection: str, filter: Any = None) -> dict[str, Any]:
        async def run(handle: GenericHandle) -> dict[str, int]:
            query = exclude_soft_deleted(handle.prepare_filter(parse_document(filter, "filter")))
            return {"count": await handle.count(query)}

        return await self._execute("count", collection, {"filter": filter}, run)

    async def aggregate(self, collection: str, pipeline: Any) -> dict[str, Any]:
        async def run(handle: GenericHandle) -> list[Any]:
            stages = parse_pipeline(pipeline)
            if self.read_only:
                reject_write_stages(stages)
            stages = exclude_soft_deleted_from_pipeline(stages)
            return await handle.aggregate(stages)

        return await self._execute("aggregate", collection, {"pipeline": pipeline}, run)

    async def create_index(
        self, collection: str, keys: Any, options: Any = None
    ) -> dict[str, Any]:
        async def run(handle: GenericHandle) -> dict[str, str]:
            key_list = normalize_index_keys(parse_document(keys, "keys"))
            index_name = await handle.create_index(key_list, **parse_document(options, "options"))
            return {"indexName": index_name}

        request = {"keys": keys, "options": options}
        return await self._execute("createIndex", collection, request, run)

    async def drop_index(self, collection: str, index_name: Any) -> dict[str, Any]:
        async def run(handle: GenericHandle) -> dict[str, Any]:
            if not isinstance(index_name, str) or not index_name.strip():
                raise ToolError(
                    INVALID_ARGUMENT,
                    "Index name must be a non-empty string",
                    context={"argument": "indexName"},
                )
            await handle.drop_index(index_name.strip())
            return {"acknowledged": True, "indexName": index_name.strip()}

        return await self._execute("dropIndex", collection, {"indexName": index_name}, run)

    async def list_indexes(self, collection: str) -> dict[str, Any]:
        async def run(handle: GenericHandle) -> list[Any]:
            return await handle.list_indexes()

        return await self._execute("listIndexes", collection, {}, run)

    async def list_collections(self) -> dict[str, Any]:
        """List physical collections alongside those bound to a schema."""
        try:
            collections = sorted(await self.database.list_collection_names())
        except Exception as e:
            logger.info(f"listCollections failed: {e}")
            return failure(e, ExecutionPath.GENERIC, {"operation": "listCollections"})

        with_schemas = [descriptor.collection_name for descriptor in self.registry.descriptors()]
        return success(
            ExecutionPath.GENERIC,
            {
                "collections": collections,
                "collectionsWithSchemas": with_schemas,
                "totalCollections": len(collections),
                "totalCollectionsWithSchemas": len(with_schemas),
            },
        )
