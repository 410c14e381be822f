"""Shared test fixtures: an in-memory stand-in for the boto3 S3 client."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
import hashlib
import io
from typing import Any

from botocore.exceptions import ClientError
import pytest

from gstore.config import StorageConfig
from gstore.service import Storage


def client_error(code: str, status: int, operation: str) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": code},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


@dataclass
class FakeObject:
    data: bytes
    metadata: dict[str, str] = field(default_factory=dict)
    last_modified: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def etag(self) -> str:
        return f'"{hashlib.md5(self.data).hexdigest()}"'  # noqa: S324


@dataclass
class FakeBucket:
    location: str | None = None
    storage_class: str | None = None
    versioning: str | None = None
    website: dict[str, Any] | None = None
    objects: dict[str, FakeObject] = field(default_factory=dict)
    # Version ids per key, newest first. Keys not listed have one version, "1".
    versions: dict[str, list[str]] = field(default_factory=dict)


class FakeBody(io.BytesIO):
    """Streaming body with the ``read(amt)``/``close()`` surface boto3 returns."""


class InMemoryS3Client:
    """Implements the subset of the boto3 S3 client used by gstore.

    Follows the storage interop API where it differs from AWS: deleting a
    missing object is a 404.
    """

    def __init__(self) -> None:
        self.buckets: dict[str, FakeBucket] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.bodies: list[FakeBody] = []
        self.closed = False

    def _record(self, operation: str, **kwargs: Any) -> None:
        self.calls.append((operation, kwargs))

    def call_count(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    def _bucket(self, name: str, operation: str) -> FakeBucket:
        bucket = self.buckets.get(name)
        if bucket is None:
            raise client_error("NoSuchBucket", 404, operation)
        return bucket

    def _object(self, bucket: str, key: str, operation: str, code: str = "NoSuchKey") -> FakeObject:
        obj = self._bucket(bucket, operation).objects.get(key)
        if obj is None:
            raise client_error(code, 404, operation)
        return obj

    # Buckets

    def head_bucket(self, *, Bucket: str) -> dict[str, Any]:
        self._record("head_bucket", Bucket=Bucket)
        if Bucket not in self.buckets:
            raise client_error("404", 404, "HeadBucket")
        headers = {}
        if self.buckets[Bucket].storage_class:
            headers["x-goog-storage-class"] = self.buckets[Bucket].storage_class
        return {"ResponseMetadata": {"HTTPStatusCode": 200, "HTTPHeaders": headers}}

    def create_bucket(self, *, Bucket: str, CreateBucketConfiguration: dict | None = None) -> dict:
        self._record("create_bucket", Bucket=Bucket, CreateBucketConfiguration=CreateBucketConfiguration)
        if Bucket in self.buckets:
            raise client_error("BucketAlreadyOwnedByYou", 409, "CreateBucket")
        config = CreateBucketConfiguration or {}
        self.buckets[Bucket] = FakeBucket(
            location=config.get("LocationConstraint"),
            storage_class=config.get("StorageClass"),
        )
        return {"Location": f"/{Bucket}"}

    def get_bucket_location(self, *, Bucket: str) -> dict[str, Any]:
        return {"LocationConstraint": self._bucket(Bucket, "GetBucketLocation").location}

    def get_bucket_versioning(self, *, Bucket: str) -> dict[str, Any]:
        status = self._bucket(Bucket, "GetBucketVersioning").versioning
        return {"Status": status} if status else {}

    def put_bucket_versioning(self, *, Bucket: str, VersioningConfiguration: dict) -> dict:
        self._bucket(Bucket, "PutBucketVersioning").versioning = VersioningConfiguration["Status"]
        return {}

    def get_bucket_website(self, *, Bucket: str) -> dict[str, Any]:
        website = self._bucket(Bucket, "GetBucketWebsite").website
        if website is None:
            raise client_error("NoSuchWebsiteConfiguration", 404, "GetBucketWebsite")
        return dict(website)

    def put_bucket_website(self, *, Bucket: str, WebsiteConfiguration: dict) -> dict:
        self._bucket(Bucket, "PutBucketWebsite").website = WebsiteConfiguration
        return {}

    def delete_bucket(self, *, Bucket: str) -> dict:
        self._record("delete_bucket", Bucket=Bucket)
        bucket = self._bucket(Bucket, "DeleteBucket")
        if bucket.objects:
            raise client_error("BucketNotEmpty", 409, "DeleteBucket")
        del self.buckets[Bucket]
        return {}

    # Objects

    def head_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        self._record("head_object", Bucket=Bucket, Key=Key)
        if Bucket not in self.buckets:
            raise client_error("404", 404, "HeadObject")
        obj = self._object(Bucket, Key, "HeadObject", code="404")
        return {
            "ContentLength": len(obj.data),
            "ETag": obj.etag,
            "LastModified": obj.last_modified,
            **obj.metadata,
        }

    def put_object(self, *, Bucket: str, Key: str, Body: bytes = b"", **metadata: str) -> dict:
        self._record("put_object", Bucket=Bucket, Key=Key, **metadata)
        obj = FakeObject(bytes(Body), dict(metadata))
        self._bucket(Bucket, "PutObject").objects[Key] = obj
        return {"ETag": obj.etag}

    def get_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        obj = self._object(Bucket, Key, "GetObject")
        body = FakeBody(obj.data)
        self.bodies.append(body)
        return {"Body": body, "ContentLength": len(obj.data), **obj.metadata}

    def delete_object(self, *, Bucket: str, Key: str) -> dict:
        self._record("delete_object", Bucket=Bucket, Key=Key)
        self._object(Bucket, Key, "DeleteObject")
        del self.buckets[Bucket].objects[Key]
        return {}

    def copy(self, CopySource: dict[str, str], Bucket: str, Key: str, **_: Any) -> None:
        self._record("copy", CopySource=CopySource, Bucket=Bucket, Key=Key)
        source = self._object(CopySource["Bucket"], CopySource["Key"], "CopyObject")
        self._bucket(Bucket, "CopyObject").objects[Key] = FakeObject(
            source.data, dict(source.metadata)
        )

    def upload_fileobj(
        self, Fileobj: Any, Bucket: str, Key: str, ExtraArgs: dict | None = None, **_: Any
    ) -> None:
        self._record("upload_fileobj", Bucket=Bucket, Key=Key, ExtraArgs=ExtraArgs)
        data = Fileobj.read()
        self._bucket(Bucket, "PutObject").objects[Key] = FakeObject(data, dict(ExtraArgs or {}))

    # Listing

    def _entries(self, bucket: FakeBucket, prefix: str, delimiter: str | None) -> list[tuple[str, bool]]:
        entries: dict[str, bool] = {}
        for key in sorted(bucket.objects):
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix):]
            if delimiter and delimiter in rest:
                entries[prefix + rest.split(delimiter, 1)[0] + delimiter] = True
            else:
                entries[key] = False
        return sorted(entries.items())

    def _page(self, bucket_name: str, operation: str, params: dict[str, Any], marker: str | None) -> tuple[list, list, str | None]:
        bucket = self._bucket(bucket_name, operation)
        entries = self._entries(bucket, params.get("Prefix", ""), params.get("Delimiter"))
        start = int(marker) if marker else 0
        max_keys = params.get("MaxKeys", 1000)
        page = entries[start:start + max_keys]
        next_marker = str(start + max_keys) if start + max_keys < len(entries) else None
        contents = [key for key, is_prefix in page if not is_prefix]
        prefixes = [{"Prefix": key} for key, is_prefix in page if is_prefix]
        return contents, prefixes, next_marker

    def list_objects_v2(self, **params: Any) -> dict[str, Any]:
        self._record("list_objects_v2", **params)
        bucket_name = params["Bucket"]
        keys, prefixes, next_token = self._page(
            bucket_name, "ListObjectsV2", params, params.get("ContinuationToken")
        )
        objects = self.buckets[bucket_name].objects
        response: dict[str, Any] = {
            "IsTruncated": next_token is not None,
            "Contents": [
                {
                    "Key": key,
                    "Size": len(objects[key].data),
                    "ETag": objects[key].etag,
                    "LastModified": objects[key].last_modified,
                    "StorageClass": "STANDARD",
                }
                for key in keys
            ],
        }
        if prefixes:
            response["CommonPrefixes"] = prefixes
        if next_token is not None:
            response["NextContinuationToken"] = next_token
        return response

    def list_object_versions(self, **params: Any) -> dict[str, Any]:
        """Pages through (key, version) rows like ListObjectVersions.

        A key marker alone resumes after every version of that key; with a
        version id marker it resumes right after that version.
        """
        self._record("list_object_versions", **params)
        bucket = self._bucket(params["Bucket"], "ListObjectVersions")
        rows: list[tuple[str, str | None]] = []
        for key, is_prefix in self._entries(bucket, params.get("Prefix", ""), params.get("Delimiter")):
            if is_prefix:
                rows.append((key, None))
            else:
                rows.extend((key, version) for version in bucket.versions.get(key, ["1"]))

        start = 0
        key_marker = params.get("KeyMarker")
        version_marker = params.get("VersionIdMarker")
        if key_marker is not None and version_marker:
            start = rows.index((key_marker, version_marker)) + 1
        elif key_marker is not None:
            start = next((i for i, (key, _) in enumerate(rows) if key > key_marker), len(rows))
        max_keys = params.get("MaxKeys", 1000)
        page = rows[start:start + max_keys]
        truncated = start + max_keys < len(rows)

        response: dict[str, Any] = {
            "IsTruncated": truncated,
            "Versions": [
                {
                    "Key": key,
                    "VersionId": version,
                    "Size": len(bucket.objects[key].data),
                    "IsLatest": version == bucket.versions.get(key, ["1"])[0],
                }
                for key, version in page
                if version is not None
            ],
        }
        prefixes = [{"Prefix": key} for key, version in page if version is None]
        if prefixes:
            response["CommonPrefixes"] = prefixes
        if truncated:
            last_key, last_version = page[-1]
            response["NextKeyMarker"] = last_key
            if last_version is not None:
                response["NextVersionIdMarker"] = last_version
        return response

    def close(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def make_config() -> StorageConfig:
    return StorageConfig(
        access_key_id="GOOG1EXAMPLE",
        secret_access_key="secret",
        project="demo-project",
    )


@pytest.fixture
def fake_client() -> InMemoryS3Client:
    return InMemoryS3Client()


@pytest.fixture
def storage(fake_client: InMemoryS3Client) -> Storage:
    return Storage(fake_client, make_config())


@pytest.fixture
def bucket(fake_client: InMemoryS3Client) -> str:
    fake_client.buckets["my-bucket"] = FakeBucket(location="EU")
    return "my-bucket"
