"""
Collection handles for the two execution paths.

``GenericHandle`` talks to the collection with no structural assumptions.
``TypedHandle`` routes the same calls through the pydantic model bound to the
collection's schema: inserted records get defaults and validation, updates and
``_id`` filters are cast to declared types, and results are lowered to plain
structure.
"""

from typing import Any, Mapping

from pymongo.asynchronous.collection import AsyncCollection

from schemas import TypedModel

from .envelope import to_plain


class GenericHandle:
    def __init__(self, collection: AsyncCollection):
        self.collection = collection

    @property
    def name(self) -> str:
        return self.collection.name

    def prepare_filter(self, filter: Mapping[str, Any]) -> dict[str, Any]:
        return dict(filter)

    def prepare_document(self, document: Mapping[str, Any]) -> dict[str, Any]:
        return dict(document)

    def prepare_update(self, update: Mapping[str, Any]) -> dict[str, Any]:
        return dict(update)

    def lower(self, document: Mapping[str, Any]) -> Any:
        return document

    async def find(
        self,
        filter: Mapping[str, Any],
        projection: Mapping[str, Any] | None = None,
        sort: list[tuple[str, Any]] | None = None,
        limit: int = 0,
        skip: int = 0,
    ) -> list[Any]:
        # An empty projection would make the server return only ``_id``.
        cursor = self.collection.find(
            filter, projection or None, sort=sort, limit=limit, skip=skip
        )
        return [self.lower(document) for document in await cursor.to_list(None)]

    async def insert_one(self, document: Mapping[str, Any]) -> dict[str, Any]:
        result = await self.collection.insert_one(dict(document))
        return {"insertedId": result.inserted_id, "acknowledged": result.acknowledged}

    async def update_one(
        self, filter: Mapping[str, Any], update: Mapping[str, Any], upsert: bool = False
    ) -> dict[str, Any]:
        result = await self.collection.update_one(filter, update, upsert=upsert)
        return {
            "matchedCount": result.matched_count,
            "modifiedCount": result.modified_count,
            "upsertedId": result.upserted_id,
            "acknowledged": result.acknowledged,
        }

    async def delete_one(self, filter: Mapping[str, Any]) -> dict[str, Any]:
        result = await self.collection.delete_one(filter)
        return {"deletedCount": result.deleted_count, "acknowledged": result.acknowledged}

    async def count(self, filter: Mapping[str, Any]) -> int:
        return await self.collection.count_documents(filter)

    async def aggregate(self, pipeline: list[Mapping[str, Any]]) -> list[Any]:
        cursor = await self.collection.aggregate(pipeline)
        return [self.lower(document) for document in await cursor.to_list(None)]

    async def create_index(self, keys: list[tuple[str, Any]], **options: Any) -> str:
        return await self.collection.create_index(keys, **options)

    async def drop_index(self, index_name: str) -> None:
        await self.collection.drop_index(index_name)

    async def list_indexes(self) -> list[Any]:
        cursor = await self.collection.list_indexes()
        return await cursor.to_list(None)


class TypedHandle(GenericHandle):
    def __init__(self, collection: AsyncCollection, model: TypedModel):
        super().__init__(collection)
        self.model = model

    def prepare_filter(self, filter: Mapping[str, Any]) -> dict[str, Any]:
        return self.model.cast_filter(filter)

    def prepare_document(self, document: Mapping[str, Any]) -> dict[str, Any]:
        return self.model.validate_document(document)

    def prepare_update(self, update: Mapping[str, Any]) -> dict[str, Any]:
        return self.model.cast_update(update)

    def lower(self, document: Mapping[str, Any]) -> Any:
        return to_plain(document)
