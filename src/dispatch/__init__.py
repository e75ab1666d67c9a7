"""
Schema-aware dispatch: collection resolution, typed/generic execution and
response envelopes.
"""

from .envelope import ExecutionPath, failure, success, to_plain
from .executor import DocumentExecutor
from .handles import GenericHandle, TypedHandle
from .resolver import ResolvedCollection, resolve_collection
from .soft_delete import (
    DELETED_AT_FIELD,
    SOFT_DELETE_FIELD,
    exclude_soft_deleted,
    exclude_soft_deleted_from_pipeline,
    soft_delete_update,
)

__all__ = [
    "DELETED_AT_FIELD",
    "SOFT_DELETE_FIELD",
    "DocumentExecutor",
    "ExecutionPath",
    "GenericHandle",
    "ResolvedCollection",
    "TypedHandle",
    "exclude_soft_deleted",
    "exclude_soft_deleted_from_pipeline",
    "failure",
    "resolve_collection",
    "soft_delete_update",
    "success",
    "to_plain",
]
