"""
Declarative collection schemas and the registry that serves them.
"""

from .descriptor import (
    FieldSpec,
    SchemaDefinitionError,
    SchemaDescriptor,
    TypedModel,
    cast_object_id,
    pluralize,
)
from .registry import SchemaDiagnostic, SchemaRegistry, load_schema_file

__all__ = [
    "FieldSpec",
    "SchemaDefinitionError",
    "SchemaDescriptor",
    "SchemaDiagnostic",
    "SchemaRegistry",
    "TypedModel",
    "cast_object_id",
    "load_schema_file",
    "pluralize",
]
