"""Tests for gs:// URI parsing."""

from __future__ import annotations

import pytest

from gstore.errors import InvalidSchemeError, InvalidUriError
from gstore.models import BlobId
from gstore.uri import read_gs_uri, split_gs_uri, to_blob_id


class TestReadGsUri:
    @pytest.mark.parametrize(
        ("uri", "bucket", "name"),
        [
            ("gs://my-bucket/out.json", "my-bucket", "out.json"),
            ("gs://my-bucket/a/b/c.txt", "my-bucket", "a/b/c.txt"),
            ("gs:///my-bucket//nested//name", "my-bucket", "nested//name"),
            ("gs://my-bucket/dir/", "my-bucket", "dir/"),
        ],
    )
    def test_splits_on_first_two_slash_runs(self, uri, bucket, name):
        assert read_gs_uri(uri) == BlobId(bucket, name)

    @pytest.mark.parametrize(
        "uri",
        ["s3://my-bucket/key", "GS://my-bucket/key", "gcs://my-bucket/key", "my-bucket/key"],
    )
    def test_rejects_other_schemes(self, uri):
        with pytest.raises(InvalidSchemeError) as excinfo:
            read_gs_uri(uri)

        assert excinfo.value.input == uri

    def test_invalid_scheme_is_a_value_error(self):
        with pytest.raises(ValueError):
            read_gs_uri("http://example.com/file")

    @pytest.mark.parametrize("uri", ["gs://my-bucket", "gs://my-bucket/", "gs://"])
    def test_requires_bucket_and_name(self, uri):
        with pytest.raises(InvalidUriError):
            read_gs_uri(uri)


class TestSplitGsUri:
    def test_blank_path_is_allowed(self):
        assert split_gs_uri("gs://my-bucket") == ("my-bucket", "")
        assert split_gs_uri("gs://my-bucket/") == ("my-bucket", "")

    def test_keeps_prefix_path(self):
        assert split_gs_uri("gs://my-bucket/logs/2026/") == ("my-bucket", "logs/2026/")

    def test_rejects_non_string(self):
        with pytest.raises(InvalidUriError):
            split_gs_uri(42)  # type: ignore[arg-type]


class TestToBlobId:
    def test_from_bucket_and_name(self):
        assert to_blob_id("my-bucket", "a/b.json") == BlobId("my-bucket", "a/b.json")

    def test_from_uri(self):
        assert to_blob_id("gs://my-bucket/a/b.json") == BlobId("my-bucket", "a/b.json")

    def test_blob_id_passes_through(self):
        blob_id = BlobId("my-bucket", "a/b.json")

        assert to_blob_id(blob_id) is blob_id
        assert to_blob_id(to_blob_id(blob_id)) is blob_id

    def test_blob_id_requires_both_parts(self):
        with pytest.raises(ValueError):
            BlobId("my-bucket", "")
        with pytest.raises(ValueError):
            BlobId("", "name")

    def test_uri_round_trips(self):
        blob_id = to_blob_id("gs://my-bucket/a/b.json")

        assert blob_id.uri == "gs://my-bucket/a/b.json"
        assert str(blob_id) == "gs://my-bucket/a/b.json"
