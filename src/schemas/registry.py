"""
Schema registry: discovers descriptor files once at startup and answers
lookups by model name or collection name for the lifetime of the server.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from utils.constants import MCP_SERVER_NAME, SCHEMA_FILE_SUFFIXES

from .descriptor import SchemaDefinitionError, SchemaDescriptor, TypedModel

logger = logging.getLogger(f"{MCP_SERVER_NAME}.schemas.registry")


@dataclass(frozen=True)
class SchemaDiagnostic:
    """A schema source that was skipped during discovery."""

    source: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"source": self.source, "message": self.message}


def _definitions(data: Any) -> list[Any]:
    if isinstance(data, dict) and "schemas" in data and "modelName" not in data:
        data = data["schemas"]
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return data
    raise SchemaDefinitionError("Schema file must contain a mapping or a list of mappings")


def load_schema_file(path: Path) -> list[SchemaDescriptor]:
    """Parse every descriptor declared in a JSON or YAML file."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        documents = [json.loads(text)]
    else:
        documents = [doc for doc in yaml.safe_load_all(text) if doc is not None]

    descriptors = []
    for document in documents:
        for definition in _definitions(document):
            descriptors.append(SchemaDescriptor.from_definition(definition, source=str(path)))
    return descriptors


class SchemaRegistry:
    """Descriptors keyed by collection name, case-insensitively.

    The registry is populated during startup and treated as read-only
    afterwards.
    """

    def __init__(self) -> None:
        self._descriptors: dict[str, SchemaDescriptor] = {}
        self._models: dict[str, TypedModel] = {}
        self.diagnostics: list[SchemaDiagnostic] = []

    def __len__(self) -> int:
        return len(self._descriptors)

    @classmethod
    def discover(cls, directory: Path | str | None) -> SchemaRegistry:
        """Load every schema file under ``directory``.

        Unreadable or malformed files are skipped with a diagnostic. A missing
        directory yields an empty registry, and every call is then served by
        the generic path.
        """
        registry = cls()
        if directory is None:
            logger.info("No schema path configured, all collections use the generic path")
            return registry

        root = Path(directory)
        if not root.is_dir():
            logger.warning(f"Schema path {root} is not a directory, all collections use the generic path")
            registry.diagnostics.append(SchemaDiagnostic(str(root), "Schema path is not a directory"))
            return registry

        for path in registry._schema_files(root):
            try:
                descriptors = load_schema_file(path)
            except (OSError, UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
                registry._skip(path, f"Cannot parse schema file: {e}")
                continue
            except SchemaDefinitionError as e:
                registry._skip(path, str(e))
                continue

            for descriptor in descriptors:
                try:
                    registry.register(descriptor)
                except (SchemaDefinitionError, TypeError, ValueError) as e:
                    registry._skip(path, f"Cannot build model {descriptor.model_name}: {e}")

        if registry:
            names = ", ".join(d.model_name for d in registry.descriptors())
            logger.info(f"Loaded {len(registry)} schema(s) from {root}: {names}")
        else:
            logger.info(f"No valid schemas found in {root}, all collections use the generic path")
        return registry

    def register(self, descriptor: SchemaDescriptor) -> None:
        """Add a descriptor, replacing any earlier one with the same model or collection name."""
        model = TypedModel(descriptor)
        key = descriptor.collection_name.lower()
        model_key = descriptor.model_name.lower()

        for existing_key, existing in list(self._descriptors.items()):
            if existing_key == key or existing.model_name.lower() == model_key:
                del self._descriptors[existing_key]
                self._models.pop(existing_key, None)
                logger.warning(
                    f"Schema {descriptor.model_name} ({descriptor.source}) replaces "
                    f"{existing.model_name} ({existing.source})"
                )

        self._descriptors[key] = descriptor
        self._models[key] = model

    def lookup(self, identifier: str) -> SchemaDescriptor | None:
        """Find a descriptor by model name first, then by collection name."""
        key = identifier.strip().lower()
        if not key:
            return None
        for descriptor in self._descriptors.values():
            if descriptor.model_name.lower() == key:
                return descriptor
        return self._descriptors.get(key)

    def has(self, identifier: str) -> bool:
        return self.lookup(identifier) is not None

    def model_for(self, descriptor: SchemaDescriptor) -> TypedModel | None:
        model = self._models.get(descriptor.collection_name.lower())
        if model is None or model.descriptor is not descriptor:
            return None
        return model

    def descriptors(self) -> list[SchemaDescriptor]:
        return list(self._descriptors.values())

    def _schema_files(self, root: Path) -> list[Path]:
        def on_error(error: OSError) -> None:
            self._skip(Path(error.filename or root), f"Cannot read directory: {error.strerror or error}")

        found = []
        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            dirnames.sort()
            for filename in filenames:
                if Path(filename).suffix.lower() in SCHEMA_FILE_SUFFIXES:
                    found.append(Path(dirpath) / filename)
        return sorted(found)

    def _skip(self, path: Path, message: str) -> None:
        logger.warning(f"Skipping schema source {path}: {message}")
        self.diagnostics.append(SchemaDiagnostic(str(path), message))
