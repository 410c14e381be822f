"""Value records for buckets, blobs and listing pages."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from gstore.service import Storage
    from gstore.streams import BlobReader, BlobWriter

GS_SCHEME = "gs"


@dataclass(frozen=True, slots=True)
class BlobId:
    """Addresses one object: a (bucket, name) pair."""

    bucket: str
    name: str

    def __post_init__(self) -> None:
        if not self.bucket or not self.name:
            raise ValueError(
                f"BlobId needs both a bucket and a name, got {self.bucket!r}/{self.name!r}"
            )

    @property
    def uri(self) -> str:
        return f"{GS_SCHEME}://{self.bucket}/{self.name}"

    def __str__(self) -> str:
        return self.uri


@dataclass(frozen=True, slots=True)
class BucketInfo:
    """Bucket descriptor. Unset fields are left to backend defaults."""

    name: str
    location: str | None = None
    storage_class: str | None = None
    versioning_enabled: bool | None = None
    index_page: str | None = None
    not_found_page: str | None = None

    def create_params(self) -> dict[str, Any]:
        """Keyword arguments for ``CreateBucket``."""
        params: dict[str, Any] = {"Bucket": self.name}
        bucket_config: dict[str, str] = {}
        if self.location:
            bucket_config["LocationConstraint"] = self.location
        if self.storage_class:
            bucket_config["StorageClass"] = self.storage_class
        if bucket_config:
            params["CreateBucketConfiguration"] = bucket_config
        return params

    def website_params(self) -> dict[str, Any] | None:
        """Keyword arguments for ``PutBucketWebsite``, if any page is set."""
        if not self.index_page and not self.not_found_page:
            return None
        website: dict[str, Any] = {}
        if self.index_page:
            website["IndexDocument"] = {"Suffix": self.index_page}
        if self.not_found_page:
            website["ErrorDocument"] = {"Key": self.not_found_page}
        return {"Bucket": self.name, "WebsiteConfiguration": website}


_WRITE_ARG_FIELDS = (
    ("cache_control", "CacheControl"),
    ("content_disposition", "ContentDisposition"),
    ("content_encoding", "ContentEncoding"),
    ("content_language", "ContentLanguage"),
    ("content_type", "ContentType"),
)


@dataclass(frozen=True, slots=True)
class BlobInfo:
    """Object descriptor: id, content metadata and backend-set properties."""

    blob_id: BlobId
    cache_control: str | None = None
    content_disposition: str | None = None
    content_encoding: str | None = None
    content_language: str | None = None
    content_type: str | None = None
    # Set by the backend, never by the client.
    size: int | None = None
    etag: str | None = None
    generation: str | None = None
    storage_class: str | None = None
    create_time: datetime | None = None
    update_time: datetime | None = None
    delete_time: datetime | None = None

    @property
    def bucket(self) -> str:
        return self.blob_id.bucket

    @property
    def name(self) -> str:
        return self.blob_id.name

    def write_args(self) -> dict[str, str]:
        """Content metadata as boto3 upload arguments (``ContentType`` etc.)."""
        return {
            arg: value
            for attr, arg in _WRITE_ARG_FIELDS
            if (value := getattr(self, attr)) is not None
        }

    def with_blob_id(self, blob_id: BlobId) -> BlobInfo:
        return replace(self, blob_id=blob_id)


@dataclass(frozen=True)
class Blob:
    """A ``BlobInfo`` bound to the ``Storage`` it was read from."""

    info: BlobInfo
    storage: Storage = field(compare=False, repr=False)

    @property
    def blob_id(self) -> BlobId:
        return self.info.blob_id

    @property
    def bucket(self) -> str:
        return self.info.bucket

    @property
    def name(self) -> str:
        return self.info.name

    @property
    def content_type(self) -> str | None:
        return self.info.content_type

    @property
    def size(self) -> int | None:
        return self.info.size

    def reader(self) -> BlobReader:
        from gstore.streams import read_channel

        return read_channel(self)

    def writer(self) -> BlobWriter:
        from gstore.streams import write_channel

        return write_channel(self)

    def copy_to(self, target: BlobId | str) -> Blob:
        from gstore.blobs import copy_blob

        return copy_blob(self, target)

    def delete(self) -> bool:
        from gstore.blobs import delete_blob

        return delete_blob(self.storage, self.blob_id)


@dataclass(frozen=True, slots=True)
class ListingPage:
    """One page of a listing; continue with ``next_page_token``."""

    blobs: tuple[Blob, ...] = ()
    prefixes: tuple[str, ...] = ()
    next_page_token: str | None = None

    @property
    def has_next_page(self) -> bool:
        return self.next_page_token is not None

    def __iter__(self) -> Iterator[Blob]:
        return iter(self.blobs)

    def __len__(self) -> int:
        return len(self.blobs)
