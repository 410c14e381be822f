"""Blob lookup, creation, deletion, copy and listing."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from loguru import logger

from gstore.errors import ObjectNotFoundError, translate_errors
from gstore.models import Blob, BlobId, BlobInfo, ListingPage
from gstore.options import BlobListOptions, Options, blob_list_options, version_page_token
from gstore.service import Storage
from gstore.uri import split_gs_uri, to_blob_id

# ---------------------------------------------------------------------------
# Response mapping
# ---------------------------------------------------------------------------


def _strip_etag(etag: str | None) -> str | None:
    return etag.strip('"') if etag else None


def _info_from_head(blob_id: BlobId, response: Mapping[str, Any]) -> BlobInfo:
    headers = response.get("ResponseMetadata", {}).get("HTTPHeaders", {})
    return BlobInfo(
        blob_id=blob_id,
        cache_control=response.get("CacheControl"),
        content_disposition=response.get("ContentDisposition"),
        content_encoding=response.get("ContentEncoding"),
        content_language=response.get("ContentLanguage"),
        content_type=response.get("ContentType"),
        size=response.get("ContentLength"),
        etag=_strip_etag(response.get("ETag")),
        generation=response.get("VersionId") or headers.get("x-goog-generation"),
        storage_class=response.get("StorageClass"),
        update_time=response.get("LastModified"),
    )


def _info_from_listing(bucket: str, entry: Mapping[str, Any]) -> BlobInfo:
    return BlobInfo(
        blob_id=BlobId(bucket, entry["Key"]),
        size=entry.get("Size"),
        etag=_strip_etag(entry.get("ETag")),
        generation=entry.get("VersionId"),
        storage_class=entry.get("StorageClass"),
        update_time=entry.get("LastModified"),
    )


def _head(storage: Storage, blob_id: BlobId) -> BlobInfo | None:
    try:
        with translate_errors(f"Failed to look up {blob_id}"):
            response = storage.client.head_object(Bucket=blob_id.bucket, Key=blob_id.name)
    except ObjectNotFoundError:
        return None
    return _info_from_head(blob_id, response)


# ---------------------------------------------------------------------------
# Single objects
# ---------------------------------------------------------------------------


def get_blob(storage: Storage, blob_id: BlobId | str) -> Blob | None:
    """Look up an object by ``BlobId`` or ``gs://`` URI.

    Returns:
        A ``Blob`` handle, or *None* if the object (or its bucket) does not
        exist.
    """
    info = _head(storage, to_blob_id(blob_id))
    return Blob(info, storage) if info is not None else None


def create_blob(storage: Storage, info: BlobInfo) -> Blob:
    """Create a zero-length object carrying ``info``'s content metadata."""
    blob_id = info.blob_id
    with translate_errors(f"Failed to create {blob_id}"):
        response = storage.client.put_object(
            Bucket=blob_id.bucket, Key=blob_id.name, Body=b"", **info.write_args()
        )
    logger.bind(bucket=blob_id.bucket, key=blob_id.name).info("Created blob: {}", blob_id)
    created = BlobInfo(
        blob_id=blob_id,
        cache_control=info.cache_control,
        content_disposition=info.content_disposition,
        content_encoding=info.content_encoding,
        content_language=info.content_language,
        content_type=info.content_type,
        size=0,
        etag=_strip_etag(response.get("ETag")),
        generation=response.get("VersionId"),
    )
    return Blob(created, storage)


def delete_blob(storage: Storage, blob_id: BlobId | str) -> bool:
    """Delete an object.

    Returns:
        True if deleted, False if it did not exist.
    """
    blob_id = to_blob_id(blob_id)
    try:
        with translate_errors(f"Failed to delete {blob_id}"):
            storage.client.delete_object(Bucket=blob_id.bucket, Key=blob_id.name)
    except ObjectNotFoundError:
        return False
    logger.bind(bucket=blob_id.bucket, key=blob_id.name).info("Deleted blob: {}", blob_id)
    return True


def copy(storage: Storage, source: BlobId | str, target: BlobId | str) -> BlobInfo:
    """Copy an object server-side and wait for the copy to finish.

    Large objects are copied in parts by the managed transfer; the call
    returns only once every part has been copied.

    Returns:
        The target object's descriptor.

    Raises:
        ObjectNotFoundError: If the source object does not exist.
    """
    source_id = to_blob_id(source)
    target_id = to_blob_id(target)
    with translate_errors(f"Failed to copy {source_id} to {target_id}"):
        storage.client.copy(
            CopySource={"Bucket": source_id.bucket, "Key": source_id.name},
            Bucket=target_id.bucket,
            Key=target_id.name,
        )
    logger.bind(source=source_id.uri, target=target_id.uri).info(
        "Copied {} to {}", source_id, target_id
    )
    info = _head(storage, target_id)
    if info is None:
        raise ObjectNotFoundError(f"Copy target {target_id} not found after copy")
    return info


def copy_blob(source: Blob, target: BlobId | str) -> Blob:
    """Copy a resolved blob to ``target``, returning the new blob's handle."""
    return Blob(copy(source.storage, source.blob_id, target), source.storage)


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


def list_blobs(
    storage: Storage, bucket: str, options: Options | BlobListOptions | None = None
) -> ListingPage:
    """Fetch one page of a bucket listing.

    Only the first page is fetched; pass the returned ``next_page_token`` as
    the ``page-token`` option to continue.

    Raises:
        ObjectNotFoundError: If the bucket does not exist.
        ValueError: If ``page-size`` is not a positive integer.
    """
    list_options = blob_list_options(options)
    params = list_options.request_params(bucket)
    with translate_errors(f"Failed to list bucket {bucket!r}"):
        if list_options.versions:
            response = storage.client.list_object_versions(**params)
        else:
            response = storage.client.list_objects_v2(**params)

    entries = response.get("Versions" if list_options.versions else "Contents") or []
    prefixes = tuple(p["Prefix"] for p in response.get("CommonPrefixes") or [])
    if list_options.versions:
        next_token = (
            version_page_token(response.get("NextKeyMarker"), response.get("NextVersionIdMarker"))
            if response.get("IsTruncated")
            else None
        )
    else:
        next_token = response.get("NextContinuationToken")
    return ListingPage(
        blobs=tuple(Blob(_info_from_listing(bucket, entry), storage) for entry in entries),
        prefixes=prefixes,
        next_page_token=next_token or None,
    )


class BlobListing:
    """Lazy, restartable listing across all pages.

    Every iteration issues the paged list requests again; nothing is cached
    between iterations.
    """

    def __init__(self, storage: Storage, bucket: str, options: BlobListOptions) -> None:
        self.storage = storage
        self.bucket = bucket
        self.options = options

    def pages(self) -> Iterator[ListingPage]:
        options = self.options
        while True:
            page = list_blobs(self.storage, self.bucket, options)
            yield page
            if not page.has_next_page:
                return
            options = options.with_page_token(page.next_page_token)

    def __iter__(self) -> Iterator[Blob]:
        for page in self.pages():
            yield from page.blobs

    def __repr__(self) -> str:
        return f"BlobListing(bucket={self.bucket!r}, prefix={self.options.prefix!r})"


def ls(
    storage: Storage,
    bucket_or_uri: BlobId | str,
    path: str | Options | None = None,
    options: Options | None = None,
) -> BlobListing:
    """List blobs under a path.

    Usage::

        ls(storage, "gs://bucket/path/")
        ls(storage, "gs://bucket/path/", {"page-size": 100})
        ls(storage, "bucket", "path/")
        ls(storage, "bucket", "path/", {"versions": True})

    A blank path lists the bucket root; otherwise the path is used as the
    listing prefix, overriding any ``prefix`` option.
    """
    if path is None or isinstance(path, Mapping):
        if options is None and isinstance(path, Mapping):
            options = path
        if isinstance(bucket_or_uri, BlobId):
            bucket, path = bucket_or_uri.bucket, bucket_or_uri.name
        else:
            bucket, path = split_gs_uri(bucket_or_uri)
    else:
        if not isinstance(bucket_or_uri, str):
            raise TypeError("A bucket name string is required alongside a path")
        bucket = bucket_or_uri

    list_options = blob_list_options(options)
    if path and path.strip():
        list_options = list_options.with_prefix(path)
    return BlobListing(storage, bucket, list_options)
