"""Conversion of descriptor objects into plain dicts."""

from __future__ import annotations

from functools import singledispatch
from typing import Any

from gstore.models import Blob, BlobId, BlobInfo, BucketInfo

_BLOB_INFO_FIELDS = (
    "cache_control",
    "create_time",
    "update_time",
    "delete_time",
    "content_disposition",
    "content_encoding",
    "content_language",
    "content_type",
)


@singledispatch
def to_record(value: Any) -> Any:
    """Return ``value`` as plain data; unknown types are returned unchanged."""
    return value


@to_record.register
def _(value: list) -> list[Any]:
    return [to_record(item) for item in value]


@to_record.register
def _(value: tuple) -> list[Any]:
    return [to_record(item) for item in value]


@to_record.register
def _(value: BlobId) -> dict[str, Any]:
    return {"bucket": value.bucket, "name": value.name}


@to_record.register
def _(value: BucketInfo) -> dict[str, Any]:
    return {
        "name": value.name,
        "location": value.location,
        "storage_class": value.storage_class,
    }


@to_record.register
def _(value: BlobInfo) -> dict[str, Any]:
    record: dict[str, Any] = {"blob_id": to_record(value.blob_id)}
    record.update((name, getattr(value, name)) for name in _BLOB_INFO_FIELDS)
    return record


@to_record.register
def _(value: Blob) -> dict[str, Any]:
    return {
        "blob_id": to_record(value.blob_id),
        "name": value.name,
        "content_type": value.content_type,
    }
