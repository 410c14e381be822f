"""The caller-owned storage service handle."""

from __future__ import annotations

from collections.abc import Mapping
from types import TracebackType
from typing import Any

import boto3
from botocore.config import Config
from loguru import logger

from gstore.config import (
    StorageConfig,
    load_storage_config_from_env,
    storage_config_from_options,
)

# Carried from create_bucket to the CreateBucket request body. Not part of the
# S3 request model, so it must leave the params before validation.
_STORAGE_CLASS_CONTEXT_KEY = "gstore_storage_class"
_CREATE_BUCKET_CLOSE_TAG = b"</CreateBucketConfiguration>"


class Storage:
    """Shared handle over one boto3 S3 client.

    Holds no mutable state of its own; the client's connection pool is the
    only shared resource, so one instance may serve several threads.
    """

    def __init__(self, client: Any, config: StorageConfig | None = None) -> None:
        self._client = client
        self._config = config

    @property
    def client(self) -> Any:
        return self._client

    @property
    def config(self) -> StorageConfig | None:
        return self._config

    def close(self) -> None:
        """Release the client's connection pool."""
        close = getattr(self._client, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> Storage:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        endpoint = self._config.endpoint_url if self._config else None
        return f"Storage(endpoint_url={endpoint!r})"


# ---------------------------------------------------------------------------
# Client construction
# ---------------------------------------------------------------------------


def _stash_storage_class(params: dict[str, Any], context: dict[str, Any], **_: Any) -> None:
    bucket_config = params.get("CreateBucketConfiguration")
    if not bucket_config or "StorageClass" not in bucket_config:
        return
    context[_STORAGE_CLASS_CONTEXT_KEY] = bucket_config.pop("StorageClass")
    if not bucket_config:
        params.pop("CreateBucketConfiguration")


def _write_storage_class(params: dict[str, Any], context: dict[str, Any], **_: Any) -> None:
    storage_class = context.get(_STORAGE_CLASS_CONTEXT_KEY)
    if not storage_class:
        return
    element = f"<StorageClass>{storage_class}</StorageClass>".encode()
    body = params.get("body") or b""
    if isinstance(body, str):
        body = body.encode("utf-8")
    if _CREATE_BUCKET_CLOSE_TAG in body:
        params["body"] = body.replace(
            _CREATE_BUCKET_CLOSE_TAG, element + _CREATE_BUCKET_CLOSE_TAG
        )
    else:
        params["body"] = (
            b"<CreateBucketConfiguration>" + element + _CREATE_BUCKET_CLOSE_TAG
        )


def _project_header_handler(project: str) -> Any:
    def _add_project_header(params: dict[str, Any], **_: Any) -> None:
        params.setdefault("headers", {})["x-goog-project-id"] = project

    return _add_project_header


def _build_client(config: StorageConfig) -> Any:
    """Create a boto3 S3 client for the configured endpoint."""
    client = boto3.client(
        "s3",
        endpoint_url=config.endpoint_url,
        aws_access_key_id=config.access_key_id,
        aws_secret_access_key=config.secret_access_key,
        region_name=config.region,
        config=Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
            request_checksum_calculation="when_required",
            response_checksum_validation="when_required",
        ),
    )
    events = client.meta.events
    events.register("before-parameter-build.s3.CreateBucket", _stash_storage_class)
    events.register("before-call.s3.CreateBucket", _write_storage_class)
    if config.project:
        events.register(
            "before-call.s3.CreateBucket", _project_header_handler(config.project)
        )
    return client


def build_storage(config: StorageConfig | None = None) -> Storage:
    """Create a ``Storage`` handle.

    Args:
        config: Connection settings. Loaded from env if *None*.

    Raises:
        StorageConfigError: If config cannot be loaded from env.
    """
    if config is None:
        config = load_storage_config_from_env()
    storage = Storage(_build_client(config), config)
    logger.bind(endpoint=config.endpoint_url, project=config.project).debug(
        "Built storage client for {}", config.endpoint_url
    )
    return storage


def init(options: Mapping[str, Any]) -> Storage:
    """Build a ``Storage`` handle from an option mapping.

    See ``storage_config_from_options`` for the recognised keys.
    """
    return build_storage(storage_config_from_options(options))
