"""Bucket lookup, creation and deletion."""

from __future__ import annotations

from typing import Any

from botocore.exceptions import ClientError
from loguru import logger

from gstore.errors import (
    BucketExistsError,
    ObjectNotFoundError,
    error_code,
    translate_errors,
)
from gstore.models import BucketInfo
from gstore.service import Storage

_NO_WEBSITE_CODES = frozenset({"NoSuchWebsiteConfiguration"})


def _read_location(storage: Storage, name: str) -> str | None:
    with translate_errors(f"Failed to read location of bucket {name!r}"):
        response = storage.client.get_bucket_location(Bucket=name)
    return response.get("LocationConstraint") or None


def _read_versioning(storage: Storage, name: str) -> bool:
    with translate_errors(f"Failed to read versioning of bucket {name!r}"):
        response = storage.client.get_bucket_versioning(Bucket=name)
    return response.get("Status") == "Enabled"


def _read_website(storage: Storage, name: str) -> dict[str, Any]:
    with translate_errors(f"Failed to read website pages of bucket {name!r}"):
        try:
            return storage.client.get_bucket_website(Bucket=name)
        except ClientError as exc:
            if error_code(exc) in _NO_WEBSITE_CODES:
                return {}
            raise


def get_bucket(storage: Storage, bucket_name: str) -> BucketInfo | None:
    """Look up a bucket.

    Returns:
        The bucket's descriptor, or *None* if it does not exist.

    Raises:
        BackendError: On transport or permission failures.
    """
    try:
        with translate_errors(f"Failed to look up bucket {bucket_name!r}"):
            head = storage.client.head_bucket(Bucket=bucket_name)
    except ObjectNotFoundError:
        return None

    headers = head.get("ResponseMetadata", {}).get("HTTPHeaders", {})
    website = _read_website(storage, bucket_name)
    return BucketInfo(
        name=bucket_name,
        location=_read_location(storage, bucket_name),
        storage_class=headers.get("x-goog-storage-class"),
        versioning_enabled=_read_versioning(storage, bucket_name),
        index_page=website.get("IndexDocument", {}).get("Suffix"),
        not_found_page=website.get("ErrorDocument", {}).get("Key"),
    )


def create_bucket(storage: Storage, info: BucketInfo) -> BucketInfo:
    """Create a bucket from its descriptor.

    Versioning and website pages are applied once the bucket exists.

    Returns:
        The descriptor as read back from the backend.

    Raises:
        BucketExistsError: If the bucket name is already taken.
        BackendError: On transport or permission failures.
    """
    with translate_errors(f"Failed to create bucket {info.name!r}"):
        storage.client.create_bucket(**info.create_params())

    if info.versioning_enabled is not None:
        status = "Enabled" if info.versioning_enabled else "Suspended"
        with translate_errors(f"Failed to set versioning on bucket {info.name!r}"):
            storage.client.put_bucket_versioning(
                Bucket=info.name, VersioningConfiguration={"Status": status}
            )

    website_params = info.website_params()
    if website_params is not None:
        with translate_errors(f"Failed to set website pages on bucket {info.name!r}"):
            storage.client.put_bucket_website(**website_params)

    logger.bind(bucket=info.name, location=info.location).info(
        "Created bucket: {}", info.name
    )
    return get_bucket(storage, info.name) or info


def get_or_create_bucket(storage: Storage, info: BucketInfo) -> BucketInfo:
    """Fetch a bucket, creating it if it doesn't exist.

    The lookup and the creation are separate requests. When another caller
    creates the bucket in between, the resulting ``BucketExistsError`` counts
    as success and the bucket is read back.

    Raises:
        BucketExistsError: If the bucket was reported taken but still cannot
            be read (e.g. it belongs to someone else).
        BackendError: On transport or permission failures.
    """
    bucket = get_bucket(storage, info.name)
    if bucket is not None:
        return bucket

    logger.bind(bucket=info.name).info("Creating new bucket: {}", info.name)
    try:
        return create_bucket(storage, info)
    except BucketExistsError:
        logger.bind(bucket=info.name).info(
            "Bucket {} was created concurrently, reading it back", info.name
        )
        bucket = get_bucket(storage, info.name)
        if bucket is None:
            raise
        return bucket


def delete_bucket(storage: Storage, bucket_name: str) -> bool:
    """Delete an empty bucket.

    Returns:
        True if deleted, False if the bucket did not exist.

    Raises:
        BucketNotEmptyError: If the bucket still holds objects.
        BackendError: On transport or permission failures.
    """
    try:
        with translate_errors(f"Failed to delete bucket {bucket_name!r}"):
            storage.client.delete_bucket(Bucket=bucket_name)
    except ObjectNotFoundError:
        return False
    logger.bind(bucket=bucket_name).info("Deleted bucket: {}", bucket_name)
    return True
