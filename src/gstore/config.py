"""Connection settings for the object-storage backend."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import json
import os
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv

from gstore.errors import StorageConfigError

DEFAULT_ENDPOINT_URL = "https://storage.googleapis.com"
DEFAULT_REGION = "auto"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """HMAC credentials and endpoint for the S3-compatible storage API."""

    access_key_id: str
    secret_access_key: str
    project: str | None = None
    endpoint_url: str = DEFAULT_ENDPOINT_URL
    region: str = DEFAULT_REGION

    def __repr__(self) -> str:
        return (
            f"StorageConfig(access_key_id={self.access_key_id!r}, "
            f"secret_access_key='***', project={self.project!r}, "
            f"endpoint_url={self.endpoint_url!r}, region={self.region!r})"
        )


def _env(name: str) -> str | None:
    value = os.environ.get(name, "").strip()
    return value or None


def load_credentials_file(path: str | Path) -> tuple[str, str]:
    """Read an HMAC key file.

    Accepts the JSON printed by ``gcloud storage hmac create`` (``accessId`` /
    ``secret``, optionally nested under ``metadata``) as well as plain
    ``access_key_id`` / ``secret_access_key`` keys.

    Raises:
        StorageConfigError: If the file is unreadable or lacks either value.
    """
    try:
        data = json.loads(Path(path).expanduser().read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise StorageConfigError(f"Cannot read credentials file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise StorageConfigError(f"Credentials file {path} must hold a JSON object")
    return _credentials_from_mapping(data, source=str(path))


def _credentials_from_mapping(data: Mapping[str, Any], *, source: str) -> tuple[str, str]:
    metadata = data.get("metadata")
    access_id = (
        data.get("access_key_id")
        or data.get("accessId")
        or (metadata.get("accessId") if isinstance(metadata, Mapping) else None)
    )
    secret = data.get("secret_access_key") or data.get("secret")
    if not access_id or not secret:
        raise StorageConfigError(f"Credentials from {source} need an access id and a secret")
    return str(access_id), str(secret)


def load_storage_config_from_env() -> StorageConfig:
    """Load storage configuration from the environment (and ``.env``).

    Env vars: GSTORE_ACCESS_KEY_ID and GSTORE_SECRET_ACCESS_KEY, or
    GSTORE_CREDENTIALS_FILE pointing at an HMAC key file. Optional:
    GSTORE_PROJECT, GSTORE_ENDPOINT_URL, GSTORE_REGION.

    Raises:
        StorageConfigError: If no usable credentials are configured.
    """
    load_dotenv(find_dotenv(usecwd=True), override=False)

    access_key_id = _env("GSTORE_ACCESS_KEY_ID")
    secret_access_key = _env("GSTORE_SECRET_ACCESS_KEY")
    credentials_file = _env("GSTORE_CREDENTIALS_FILE")

    if (access_key_id is None or secret_access_key is None) and credentials_file:
        access_key_id, secret_access_key = load_credentials_file(credentials_file)

    missing = [
        name
        for name, value in (
            ("GSTORE_ACCESS_KEY_ID", access_key_id),
            ("GSTORE_SECRET_ACCESS_KEY", secret_access_key),
        )
        if value is None
    ]
    if missing:
        raise StorageConfigError(
            f"Missing required storage env var(s): {', '.join(missing)} "
            "(or set GSTORE_CREDENTIALS_FILE)"
        )

    return StorageConfig(
        access_key_id=str(access_key_id),
        secret_access_key=str(secret_access_key),
        project=_env("GSTORE_PROJECT"),
        endpoint_url=_env("GSTORE_ENDPOINT_URL") or DEFAULT_ENDPOINT_URL,
        region=_env("GSTORE_REGION") or DEFAULT_REGION,
    )


def storage_config_from_options(options: Mapping[str, Any]) -> StorageConfig:
    """Build a config from an option mapping.

    Recognised keys: ``project``, ``credentials`` (key file path or a mapping
    with the access id and secret), ``endpoint``, ``region``. Other keys are
    ignored.

    Raises:
        StorageConfigError: If ``credentials`` is missing or unusable.
    """
    credentials = options.get("credentials")
    if credentials is None:
        raise StorageConfigError("Storage options need 'credentials'")
    if isinstance(credentials, Mapping):
        access_key_id, secret_access_key = _credentials_from_mapping(
            credentials, source="options"
        )
    else:
        access_key_id, secret_access_key = load_credentials_file(credentials)

    return StorageConfig(
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        project=options.get("project"),
        endpoint_url=options.get("endpoint") or DEFAULT_ENDPOINT_URL,
        region=options.get("region") or DEFAULT_REGION,
    )
