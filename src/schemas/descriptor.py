"""
Schema descriptors and the typed models built from them.

A descriptor is parsed from a declarative definition (a JSON or YAML mapping)
and never from executable code. Each registered descriptor gets a
``TypedModel``: a pydantic model generated from the declared fields that
applies defaults and validation on the typed execution path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Annotated, Any, Literal, Mapping, Optional

from bson import ObjectId
from pydantic import AfterValidator, BeforeValidator, ConfigDict, Field, TypeAdapter, ValidationError, create_model

from utils.constants import DELETED_AT_FIELD, MCP_SERVER_NAME, SOFT_DELETE_FIELD
from utils.errors import VALIDATION_ERROR, ToolError

logger = logging.getLogger(f"{MCP_SERVER_NAME}.schemas.descriptor")

_MISSING = object()

_NUMERIC_TYPES = {"number", "integer"}

# Every record carries the soft-delete markers whether or not its schema declares them.
IMPLICIT_FIELDS = {
    SOFT_DELETE_FIELD: "boolean",
    DELETED_AT_FIELD: "date",
}

FIELD_TYPE_ALIASES = {
    "string": "string",
    "str": "string",
    "number": "number",
    "double": "number",
    "float": "number",
    "decimal": "number",
    "integer": "integer",
    "int": "integer",
    "boolean": "boolean",
    "bool": "boolean",
    "date": "date",
    "datetime": "date",
    "objectid": "objectId",
    "object": "object",
    "map": "object",
    "array": "array",
    "list": "array",
    "mixed": "any",
    "any": "any",
}


class SchemaDefinitionError(ValueError):
    """Raised when a schema source does not describe a valid descriptor."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def cast_object_id(value: Any) -> Any:
    """Turn a 24-character hex string into an ObjectId; leave anything else alone."""
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


def _coerce_object_id(value: Any) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise ValueError("value is not a valid ObjectId")


def _bounds(minimum: Any, maximum: Any):
    def check(value: Any) -> Any:
        if minimum is not None and value < minimum:
            raise ValueError(f"must be greater than or equal to {minimum}")
        if maximum is not None and value > maximum:
            raise ValueError(f"must be less than or equal to {maximum}")
        return value

    return check


def _base_annotation(field_type: str) -> Any:
    if field_type == "string":
        return str
    if field_type == "number":
        return int | float
    if field_type == "integer":
        return int
    if field_type == "boolean":
        return bool
    if field_type == "date":
        return datetime
    if field_type == "objectId":
        return Annotated[Any, BeforeValidator(_coerce_object_id)]
    if field_type == "object":
        return dict[str, Any]
    if field_type == "array":
        return list[Any]
    return Any


def pluralize(name: str) -> str:
    """Derive a collection name from a model name the way ODMs conventionally do."""
    word = name.lower()
    if word.endswith("s"):
        return word
    if word.endswith("y") and len(word) > 1 and word[-2] not in "aeiou":
        return word[:-1] + "ies"
    if word.endswith(("x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


@dataclass(frozen=True)
class FieldSpec:
    """Declared type and constraints of one field."""

    name: str
    type: str
    required: bool = False
    default: Any = _MISSING
    enum: tuple[Any, ...] | None = None
    min: Any = None
    max: Any = None
    unique: bool = False
    index: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING

    @classmethod
    def parse(cls, name: str, raw: Any) -> FieldSpec:
        if isinstance(raw, str):
            raw = {"type": raw}
        if not isinstance(raw, Mapping):
            raise SchemaDefinitionError(f"Field '{name}' must be a type name or a mapping")

        type_name = raw.get("type", "any")
        if isinstance(type_name, list):
            type_name = "array"
        if not isinstance(type_name, str) or type_name.lower() not in FIELD_TYPE_ALIASES:
            raise SchemaDefinitionError(f"Field '{name}' has unknown type {type_name!r}")
        field_type = FIELD_TYPE_ALIASES[type_name.lower()]

        enum = raw.get("enum")
        if enum is not None and (not isinstance(enum, list) or not enum):
            raise SchemaDefinitionError(f"Field '{name}' enum must be a non-empty list")

        for bound in ("min", "max"):
            value = raw.get(bound)
            if value is None:
                continue
            if field_type not in _NUMERIC_TYPES:
                raise SchemaDefinitionError(
                    f"Field '{name}' of type {field_type} does not support '{bound}'"
                )
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise SchemaDefinitionError(f"Field '{name}' '{bound}' must be a number")

        default = raw.get("default", _MISSING)
        if isinstance(default, str) and default.lower() == "now" and field_type != "date":
            raise SchemaDefinitionError(f"Field '{name}' uses default 'now' but is not a date")

        return cls(
            name=name,
            type=field_type,
            required=bool(raw.get("required", False)),
            default=default,
            enum=tuple(enum) if enum else None,
            min=raw.get("min"),
            max=raw.get("max"),
            unique=bool(raw.get("unique", False)),
            index=bool(raw.get("index", False)),
        )

    def annotation(self) -> Any:
        annotation = Literal[self.enum] if self.enum else _base_annotation(self.type)
        if self.min is not None or self.max is not None:
            annotation = Annotated[annotation, AfterValidator(_bounds(self.min, self.max))]
        if not self.required:
            annotation = Optional[annotation]
        return annotation

    def field_info(self) -> Any:
        if self.has_default:
            if self.type == "date" and isinstance(self.default, str) and self.default.lower() == "now":
                return Field(default_factory=utcnow, alias=self.name)
            return Field(default=self.default, alias=self.name)
        if self.required:
            return Field(..., alias=self.name)
        return Field(default=None, alias=self.name)

    def describe(self) -> dict[str, Any]:
        description: dict[str, Any] = {"type": self.type, "required": self.required}
        if self.has_default:
            description["default"] = self.default
        if self.enum:
            description["enum"] = list(self.enum)
        if self.min is not None:
            description["min"] = self.min
        if self.max is not None:
            description["max"] = self.max
        if self.unique:
            description["unique"] = True
        return description


@dataclass(frozen=True)
class SchemaDescriptor:
    """A named record shape bound to a physical collection."""

    model_name: str
    collection_name: str
    fields: Mapping[str, FieldSpec]
    strict: bool = True
    source: str | None = None

    @classmethod
    def from_definition(cls, definition: Any, source: str | None = None) -> SchemaDescriptor:
        if not isinstance(definition, Mapping):
            raise SchemaDefinitionError("Schema definition must be a mapping")

        model_name = definition.get("modelName")
        if not isinstance(model_name, str) or not model_name.strip():
            raise SchemaDefinitionError("Schema definition requires a non-empty 'modelName'")
        model_name = model_name.strip()

        collection_name = definition.get("collectionName")
        if collection_name is None:
            collection_name = pluralize(model_name)
        elif not isinstance(collection_name, str) or not collection_name.strip():
            raise SchemaDefinitionError("'collectionName' must be a non-empty string")
        collection_name = collection_name.strip()

        raw_fields = definition.get("fields")
        if not isinstance(raw_fields, Mapping):
            raise SchemaDefinitionError(f"Schema '{model_name}' requires a 'fields' mapping")

        fields = {}
        for name, raw in raw_fields.items():
            if not isinstance(name, str) or not name:
                raise SchemaDefinitionError(f"Schema '{model_name}' has an invalid field name")
            if name == "_id":
                logger.debug(f"Ignoring declared _id field in schema {model_name}")
                continue
            fields[name] = FieldSpec.parse(name, raw)

        strict = definition.get("strict", True)
        if not isinstance(strict, bool):
            raise SchemaDefinitionError("'strict' must be a boolean")

        return cls(
            model_name=model_name,
            collection_name=collection_name,
            fields=MappingProxyType(fields),
            strict=strict,
            source=source,
        )

    def describe(self) -> dict[str, Any]:
        return {
            "modelName": self.model_name,
            "collectionName": self.collection_name,
            "strict": self.strict,
            "fields": {name: spec.describe() for name, spec in self.fields.items()},
        }


class TypedModel:
    """Pydantic model generated from a descriptor."""

    def __init__(self, descriptor: SchemaDescriptor):
        self.descriptor = descriptor
        # Field names in a schema may clash with pydantic attributes, so the
        # model uses positional attribute names and aliases the real ones.
        self._aliases: dict[str, str] = {}
        self._fields = dict(descriptor.fields)
        for name, field_type in IMPLICIT_FIELDS.items():
            self._fields.setdefault(name, FieldSpec(name=name, type=field_type))

        definitions: dict[str, Any] = {}
        for index, (name, spec) in enumerate(self._fields.items()):
            attribute = f"field_{index}"
            self._aliases[attribute] = name
            definitions[attribute] = (spec.annotation(), spec.field_info())

        self.model = create_model(
            descriptor.model_name,
            __config__=ConfigDict(extra="ignore" if descriptor.strict else "allow"),
            **definitions,
        )
        self._defaulted = {name for name, spec in descriptor.fields.items() if spec.has_default}
        self._adapters: dict[str, TypeAdapter] = {}

    @property
    def name(self) -> str:
        return self.descriptor.model_name

    def validate_document(self, document: Mapping[str, Any]) -> dict[str, Any]:
        """Apply defaults and validation; return the record to persist."""
        payload = dict(document)
        has_id = "_id" in payload
        identifier = payload.pop("_id", None)

        try:
            instance = self.model.model_validate(payload)
        except ValidationError as e:
            errors = self.describe_errors(e)
            summary = "; ".join(f"{err['field']}: {err['message']}" for err in errors)
            raise ToolError(
                VALIDATION_ERROR,
                f"{self.name} validation failed: {summary}",
                context={"model": self.name, "errors": errors},
            ) from e

        dumped = instance.model_dump(by_alias=True)
        provided = {self._aliases.get(attribute, attribute) for attribute in instance.model_fields_set}
        record = {
            key: value
            for key, value in dumped.items()
            if key in provided or key in self._defaulted or key not in self._fields
        }
        if has_id:
            record = {"_id": cast_object_id(identifier), **record}
        return record

    def cast_update(self, update: Mapping[str, Any]) -> dict[str, Any]:
        """Cast ``$set``/``$setOnInsert`` values of declared fields to their declared types."""
        cast = dict(update)
        for operator in ("$set", "$setOnInsert"):
            values = cast.get(operator)
            if not isinstance(values, Mapping):
                continue
            converted = {}
            for key, value in values.items():
                spec = self._fields.get(key)
                if spec is None:
                    converted[key] = value
                    continue
                try:
                    converted[key] = self._adapter(spec).validate_python(value)
                except ValidationError as e:
                    raise ToolError(
                        VALIDATION_ERROR,
                        f"{self.name} validation failed: {key}: {e.errors()[0]['msg']}",
                        context={"model": self.name, "field": key, "operator": operator},
                    ) from e
            cast[operator] = converted
        return cast

    def cast_filter(self, filter: Mapping[str, Any]) -> dict[str, Any]:
        """Cast a hex string ``_id`` (or ``$in`` list of them) to ObjectId."""
        cast = dict(filter)
        identifier = cast.get("_id")
        if isinstance(identifier, str):
            cast["_id"] = cast_object_id(identifier)
        elif isinstance(identifier, Mapping) and isinstance(identifier.get("$in"), list):
            cast["_id"] = {**identifier, "$in": [cast_object_id(v) for v in identifier["$in"]]}
        return cast

    def describe_errors(self, error: ValidationError) -> list[dict[str, Any]]:
        described = []
        for item in error.errors():
            location = [self._aliases.get(str(part), str(part)) for part in item.get("loc", ())]
            described.append(
                {
                    "field": ".".join(location) or "<document>",
                    "message": item.get("msg", ""),
                    "type": item.get("type", ""),
                }
            )
        return described

    def _adapter(self, spec: FieldSpec) -> TypeAdapter:
        adapter = self._adapters.get(spec.name)
        if adapter is None:
            adapter = TypeAdapter(spec.annotation())
            self._adapters[spec.name] = adapter
        return adapter
