"""Shared response envelopes and request helpers."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Keys that identify a record; ignored in update bodies so the ID stays immutable
IDENTITY_FIELDS = frozenset({"id", "_id"})


def drop_identity_fields(data: Any) -> Any:
    """Strip identity keys from a raw update body."""
    if isinstance(data, dict):
        return {key: value for key, value in data.items() if key not in IDENTITY_FIELDS}
    return data


class UpdateResult(BaseModel):
    """Result of a partial update."""

    message: str
    modified_count: int = Field(..., serialization_alias="modifiedCount")

    model_config = ConfigDict(populate_by_name=True)


class DeleteResult(BaseModel):
    """Result of a delete."""

    message: str
    deleted_count: int = Field(..., serialization_alias="deletedCount")

    model_config = ConfigDict(populate_by_name=True)


__all__ = [
    "IDENTITY_FIELDS",
    "drop_identity_fields",
    "UpdateResult",
    "DeleteResult",
]
