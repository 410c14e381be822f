"""Exception taxonomy and botocore error translation."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from botocore.exceptions import BotoCoreError, ClientError

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class StorageError(Exception):
    """Base error for gstore operations."""


class StorageConfigError(StorageError):
    """Missing or invalid storage configuration."""


class InvalidUriError(StorageError, ValueError):
    """A storage URI could not be parsed into a bucket and object name."""

    def __init__(self, message: str, *, input: object) -> None:  # noqa: A002
        super().__init__(message)
        self.input = input


class InvalidSchemeError(InvalidUriError):
    """A storage URI does not start with the ``gs:`` scheme."""


class BucketExistsError(StorageError):
    """The bucket name is already taken."""


class BucketNotEmptyError(StorageError):
    """The backend refused to delete a bucket that still holds objects."""


class ObjectNotFoundError(StorageError):
    """The bucket or object does not exist."""


class BackendError(StorageError):
    """Transport, permission, quota or any other backend failure."""

    def __init__(
        self, message: str, *, code: str | None = None, status: int | None = None
    ) -> None:
        super().__init__(message)
        self.code = code
        self.status = status


class ClosedHandleError(StorageError, ValueError):
    """Read or write attempted on a released stream handle."""


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------

_NOT_FOUND_CODES = frozenset({"404", "NoSuchBucket", "NoSuchKey", "NotFound"})
_BUCKET_EXISTS_CODES = frozenset({"BucketAlreadyExists", "BucketAlreadyOwnedByYou"})
_BUCKET_NOT_EMPTY_CODES = frozenset({"BucketNotEmpty"})


def error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def error_status(exc: ClientError) -> int | None:
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return int(status) if status is not None else None


def translate_client_error(exc: ClientError, message: str) -> StorageError:
    """Map a botocore ``ClientError`` onto the gstore taxonomy.

    Args:
        exc: Error raised by the boto3 client.
        message: Context prefix, e.g. ``"Failed to create bucket 'b'"``.

    Returns:
        The translated error; callers raise it ``from exc``.
    """
    code = error_code(exc)
    status = error_status(exc)
    full_message = f"{message}: {exc}"
    if code in _BUCKET_EXISTS_CODES:
        return BucketExistsError(full_message)
    if code in _BUCKET_NOT_EMPTY_CODES:
        return BucketNotEmptyError(full_message)
    if code in _NOT_FOUND_CODES or status == 404:
        return ObjectNotFoundError(full_message)
    return BackendError(full_message, code=code or None, status=status)


@contextmanager
def translate_errors(message: str) -> Iterator[None]:
    """Re-raise botocore failures inside the block as ``StorageError``s."""
    try:
        yield
    except ClientError as exc:
        raise translate_client_error(exc, message) from exc
    except BotoCoreError as exc:
        raise BackendError(f"{message}: {exc}") from exc
