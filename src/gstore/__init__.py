"""Convenience layer over object storage addressed by ``gs://bucket/name`` URIs."""

from __future__ import annotations

from gstore.blobs import (
    BlobListing,
    copy,
    copy_blob,
    create_blob,
    delete_blob,
    get_blob,
    list_blobs,
    ls,
)
from gstore.buckets import (
    create_bucket,
    delete_bucket,
    get_bucket,
    get_or_create_bucket,
)
from gstore.coerce import to_record
from gstore.config import StorageConfig, load_storage_config_from_env
from gstore.errors import (
    BackendError,
    BucketExistsError,
    BucketNotEmptyError,
    ClosedHandleError,
    InvalidSchemeError,
    InvalidUriError,
    ObjectNotFoundError,
    StorageConfigError,
    StorageError,
)
from gstore.models import Blob, BlobId, BlobInfo, BucketInfo, ListingPage
from gstore.options import BlobListOptions, blob_info, blob_list_options, bucket_info
from gstore.service import Storage, build_storage, init
from gstore.streams import (
    BlobInputStream,
    BlobOutputStream,
    BlobReader,
    BlobWriter,
    copy_file_to_storage,
    create_blob_writer,
    file_to_stream,
    read_channel,
    stream_to_file,
    to_input_stream,
    to_output_stream,
    write_channel,
)
from gstore.uri import read_gs_uri, split_gs_uri, to_blob_id

__all__ = [
    "BackendError",
    "Blob",
    "BlobId",
    "BlobInfo",
    "BlobInputStream",
    "BlobListOptions",
    "BlobListing",
    "BlobOutputStream",
    "BlobReader",
    "BlobWriter",
    "BucketExistsError",
    "BucketInfo",
    "BucketNotEmptyError",
    "ClosedHandleError",
    "InvalidSchemeError",
    "InvalidUriError",
    "ListingPage",
    "ObjectNotFoundError",
    "Storage",
    "StorageConfig",
    "StorageConfigError",
    "StorageError",
    "blob_info",
    "blob_list_options",
    "bucket_info",
    "build_storage",
    "copy",
    "copy_blob",
    "copy_file_to_storage",
    "create_blob",
    "create_blob_writer",
    "create_bucket",
    "delete_blob",
    "delete_bucket",
    "file_to_stream",
    "get_blob",
    "get_bucket",
    "get_or_create_bucket",
    "init",
    "list_blobs",
    "load_storage_config_from_env",
    "ls",
    "read_channel",
    "read_gs_uri",
    "split_gs_uri",
    "stream_to_file",
    "to_blob_id",
    "to_input_stream",
    "to_output_stream",
    "to_record",
    "write_channel",
]
