from dataclasses import dataclass

from schemas import SchemaDescriptor, SchemaRegistry
from utils.errors import INVALID_ARGUMENT, ToolError


@dataclass(frozen=True)
class ResolvedCollection:
    """Execution target for one call: the requested name and its bound schema, if any."""

    identifier: str
    schema: SchemaDescriptor | None = None

    @property
    def physical_name(self) -> str:
        """Collection actually addressed in the store."""
        if self.schema is not None:
            return self.schema.collection_name
        return self.identifier

    @property
    def is_typed(self) -> bool:
        return self.schema is not None


def resolve_collection(registry: SchemaRegistry, name: object) -> ResolvedCollection:
    if not isinstance(name, str) or not name.strip():
        raise ToolError(
            INVALID_ARGUMENT,
            "Collection name must be a non-empty string",
            context={"collection": name},
        )
    identifier = name.strip()
    return ResolvedCollection(identifier=identifier, schema=registry.lookup(identifier))
