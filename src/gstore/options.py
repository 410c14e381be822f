"""Translation of option mappings into bucket, blob and listing descriptors.

Each operation has a fixed vocabulary of option names. Only recognised names
are applied; anything else is ignored so that one options mapping can be
shared between calls. Names use hyphens (``content-type``), and the
``snake_case`` spelling is accepted as the same option.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
import json
from typing import Any

from loguru import logger

from gstore.models import BlobId, BlobInfo, BucketInfo
from gstore.uri import to_blob_id

Options = Mapping[str, Any]

# ---------------------------------------------------------------------------
# Dispatch helpers
# ---------------------------------------------------------------------------


def _normalise_key(key: str) -> str:
    return str(key).replace("_", "-")


def _collect(
    options: Options | None,
    table: Mapping[str, Callable[[Any], tuple[str, Any]]],
    *,
    target: str,
) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for key, value in (options or {}).items():
        setter = table.get(_normalise_key(key))
        if setter is None:
            logger.debug("Ignoring unknown {} option: {}", target, key)
            continue
        # An explicit None leaves the field at its default.
        if value is None:
            continue
        attr, converted = setter(value)
        fields[attr] = converted
    return fields


def _set(attr: str, convert: Callable[[Any], Any] = str) -> Callable[[Any], tuple[str, Any]]:
    return lambda value: (attr, convert(value))


def _positive_int(value: Any) -> int:
    number = int(value)
    if number < 1:
        raise ValueError(f"page-size must be a positive integer, got {value!r}")
    return number


# ---------------------------------------------------------------------------
# Buckets
# ---------------------------------------------------------------------------

BUCKET_OPTIONS: dict[str, Callable[[Any], tuple[str, Any]]] = {
    "index-page": _set("index_page"),
    "location": _set("location"),
    "not-found-page": _set("not_found_page"),
    "storage-class": _set("storage_class"),
    "versioning-enabled": _set("versioning_enabled", bool),
}


def bucket_info(bucket_name: str, options: Options | None = None) -> BucketInfo:
    """Build a ``BucketInfo`` for ``bucket_name`` from an options mapping.

    Recognised options: ``index-page``, ``location``, ``not-found-page``,
    ``storage-class``, ``versioning-enabled``.
    """
    return BucketInfo(name=bucket_name, **_collect(options, BUCKET_OPTIONS, target="bucket"))


# ---------------------------------------------------------------------------
# Blobs
# ---------------------------------------------------------------------------

BLOB_OPTIONS: dict[str, Callable[[Any], tuple[str, Any]]] = {
    "cache-control": _set("cache_control"),
    "content-disposition": _set("content_disposition"),
    "content-encoding": _set("content_encoding"),
    "content-language": _set("content_language"),
    "content-type": _set("content_type"),
}


def blob_info(blob_id: BlobId | str, options: Options | None = None) -> BlobInfo:
    """Build a ``BlobInfo`` for a ``BlobId`` or ``gs://`` URI.

    Recognised options: ``cache-control``, ``content-disposition``,
    ``content-encoding``, ``content-language``, ``content-type``.
    """
    return BlobInfo(
        blob_id=to_blob_id(blob_id),
        **_collect(options, BLOB_OPTIONS, target="blob"),
    )


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

DIRECTORY_DELIMITER = "/"


def version_page_token(key_marker: str | None, version_id_marker: str | None) -> str | None:
    """Pack the two ``ListObjectVersions`` markers into one page token."""
    if key_marker is None:
        return None
    return json.dumps([key_marker, version_id_marker])


def split_version_page_token(page_token: str) -> tuple[str, str | None]:
    """Unpack a version page token into ``(key_marker, version_id_marker)``.

    A token that was not made by ``version_page_token`` is taken as a bare
    key marker.
    """
    try:
        markers = json.loads(page_token)
    except ValueError:
        return page_token, None
    if (
        isinstance(markers, list)
        and len(markers) == 2
        and isinstance(markers[0], str)
        and (markers[1] is None or isinstance(markers[1], str))
    ):
        return markers[0], markers[1]
    return page_token, None


@dataclass(frozen=True, slots=True)
class BlobListOptions:
    """Options for a single list request."""

    current_directory: bool = False
    page_size: int | None = None
    page_token: str | None = None
    prefix: str | None = None
    versions: bool = False

    def with_page_token(self, page_token: str | None) -> BlobListOptions:
        return replace(self, page_token=page_token)

    def with_prefix(self, prefix: str | None) -> BlobListOptions:
        return replace(self, prefix=prefix)

    def request_params(self, bucket: str) -> dict[str, Any]:
        """Keyword arguments for ``ListObjectsV2`` or ``ListObjectVersions``."""
        params: dict[str, Any] = {"Bucket": bucket}
        if self.prefix:
            params["Prefix"] = self.prefix
        if self.current_directory:
            params["Delimiter"] = DIRECTORY_DELIMITER
        if self.page_size is not None:
            params["MaxKeys"] = self.page_size
        if self.page_token and self.versions:
            key_marker, version_id_marker = split_version_page_token(self.page_token)
            params["KeyMarker"] = key_marker
            if version_id_marker:
                params["VersionIdMarker"] = version_id_marker
        elif self.page_token:
            params["ContinuationToken"] = self.page_token
        return params


LIST_OPTIONS: dict[str, Callable[[Any], tuple[str, Any]]] = {
    "current-directory": _set("current_directory", bool),
    "page-size": _set("page_size", _positive_int),
    "page-token": _set("page_token"),
    "prefix": _set("prefix"),
    "versions": _set("versions", bool),
}


def blob_list_options(options: Options | BlobListOptions | None = None) -> BlobListOptions:
    """Build ``BlobListOptions`` from a mapping (an instance passes through).

    Recognised options: ``current-directory``, ``page-size``, ``page-token``,
    ``prefix``, ``versions``.

    Raises:
        ValueError: If ``page-size`` is not a positive integer.
    """
    if isinstance(options, BlobListOptions):
        return options
    return BlobListOptions(**_collect(options, LIST_OPTIONS, target="list"))
