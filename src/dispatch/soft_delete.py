"""
Soft-delete conventions shared by both execution paths.

Records are never removed by default: a delete marks ``isDeleted`` and stamps
``deletedAt``, and every read excludes marked records unless the caller's
filter names ``isDeleted`` itself.
"""

from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from utils.constants import DELETED_AT_FIELD, SOFT_DELETE_FIELD


def constrains_soft_delete(filter: Mapping[str, Any]) -> bool:
    """True when the caller already placed a top-level ``isDeleted`` condition."""
    return SOFT_DELETE_FIELD in filter


def exclude_soft_deleted(filter: Mapping[str, Any] | None) -> dict[str, Any]:
    """Return a copy of ``filter`` that skips soft-deleted records."""
    augmented = dict(filter or {})
    if not constrains_soft_delete(augmented):
        augmented[SOFT_DELETE_FIELD] = {"$ne": True}
    return augmented


def exclude_soft_deleted_from_pipeline(pipeline: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Return a copy of ``pipeline`` whose first stage filters out soft-deleted records.

    A leading ``$match`` gets the condition merged in; otherwise a new
    ``$match`` stage is prepended.
    """
    stages = [dict(stage) for stage in pipeline]
    if stages and "$match" in stages[0] and isinstance(stages[0]["$match"], Mapping):
        stages[0]["$match"] = exclude_soft_deleted(stages[0]["$match"])
        return stages
    return [{"$match": {SOFT_DELETE_FIELD: {"$ne": True}}}, *stages]


def soft_delete_update(now: datetime | None = None) -> dict[str, Any]:
    """Update document that marks a record as soft-deleted."""
    return {
        "$set": {
            SOFT_DELETE_FIELD: True,
            DELETED_AT_FIELD: now or datetime.now(timezone.utc),
        }
    }
