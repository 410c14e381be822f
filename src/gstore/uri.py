"""Parsing of ``gs://bucket/name`` addresses."""

from __future__ import annotations

import re

from gstore.errors import InvalidSchemeError, InvalidUriError
from gstore.models import GS_SCHEME, BlobId

_SEPARATOR = re.compile(r"/+")
_EXPECTED_SCHEME = f"{GS_SCHEME}:"


def split_gs_uri(uri: str) -> tuple[str, str]:
    """Split a ``gs://`` URI into ``(bucket, path)``; path may be empty.

    The URI is split on the first two runs of ``/`` only, so the path keeps
    any further slashes verbatim.

    Raises:
        InvalidSchemeError: If the scheme is not exactly ``gs:``.
        InvalidUriError: If there is no bucket.
    """
    if not isinstance(uri, str):
        raise InvalidUriError(f"Expected a gs:// URI string, got {type(uri).__name__}", input=uri)
    parts = _SEPARATOR.split(uri, maxsplit=2)
    if parts[0] != _EXPECTED_SCHEME:
        raise InvalidSchemeError(f"Invalid scheme in {uri!r}, expected gs://", input=uri)
    bucket = parts[1] if len(parts) > 1 else ""
    if not bucket:
        raise InvalidUriError(f"No bucket in {uri!r}", input=uri)
    path = parts[2] if len(parts) > 2 else ""
    return bucket, path


def read_gs_uri(uri: str) -> BlobId:
    """Parse ``gs://bucket/name`` into a ``BlobId``.

    Raises:
        InvalidSchemeError: If the scheme is not exactly ``gs:``.
        InvalidUriError: If the bucket or object name is missing.
    """
    bucket, name = split_gs_uri(uri)
    if not name:
        raise InvalidUriError(f"No object name in {uri!r}", input=uri)
    return BlobId(bucket, name)


def to_blob_id(bucket_or_uri: BlobId | str, name: str | None = None) -> BlobId:
    """Normalise a ``(bucket, name)`` pair, a URI or a ``BlobId``.

    Examples:
        >>> to_blob_id("my-bucket", "a/b.json")
        BlobId(bucket='my-bucket', name='a/b.json')
        >>> to_blob_id("gs://my-bucket/a/b.json")
        BlobId(bucket='my-bucket', name='a/b.json')
    """
    if name is not None:
        if not isinstance(bucket_or_uri, str):
            raise TypeError("A bucket name string is required alongside an object name")
        return BlobId(bucket_or_uri, name)
    if isinstance(bucket_or_uri, BlobId):
        return bucket_or_uri
    return read_gs_uri(bucket_or_uri)
