"""Streaming read/write handles and local-file bridges."""

from __future__ import annotations

from collections.abc import Mapping
import io
import os
from pathlib import Path
import shutil
import tempfile
from types import TracebackType
from typing import IO, Any

from loguru import logger

from gstore.errors import ClosedHandleError, translate_errors
from gstore.models import Blob, BlobId, BlobInfo
from gstore.options import blob_info
from gstore.service import Storage

DEFAULT_CHUNK_SIZE = 4 * 1024 * 1024
# Writes larger than this spill from memory to a temporary file.
DEFAULT_SPOOL_SIZE = 8 * 1024 * 1024

DEFAULT_FILE_OPTIONS: Mapping[str, str] = {
    "content-type": "application/json",
    "content-encoding": "UTF-8",
}

LocalPath = str | os.PathLike[str]

# ---------------------------------------------------------------------------
# Handles
# ---------------------------------------------------------------------------


class BlobReader(io.RawIOBase):
    """Sequential reader over an object's content.

    The object is requested on the first read. Close the reader on every
    exit path (or use it as a context manager) to release the connection.
    Not safe for concurrent use.
    """

    def __init__(self, storage: Storage, blob_id: BlobId) -> None:
        super().__init__()
        self._storage = storage
        self._blob_id = blob_id
        self._body: Any = None

    @property
    def blob_id(self) -> BlobId:
        return self._blob_id

    def readable(self) -> bool:
        return True

    def _check_open(self) -> None:
        if self.closed:
            raise ClosedHandleError(f"Reader for {self._blob_id} is closed")

    def _open_body(self) -> Any:
        if self._body is None:
            with translate_errors(f"Failed to open {self._blob_id} for reading"):
                response = self._storage.client.get_object(
                    Bucket=self._blob_id.bucket, Key=self._blob_id.name
                )
            self._body = response["Body"]
        return self._body

    def readinto(self, buffer: Any) -> int:
        self._check_open()
        view = memoryview(buffer).cast("B")
        with translate_errors(f"Failed to read {self._blob_id}"):
            data = self._open_body().read(len(view))
        size = len(data)
        view[:size] = data
        return size

    def close(self) -> None:
        if self.closed:
            return
        try:
            if self._body is not None:
                self._body.close()
        finally:
            self._body = None
            super().close()


class BlobWriter(io.RawIOBase):
    """Sequential writer for one object.

    Bytes are spooled locally and uploaded when the writer is closed, so the
    object is neither created nor replaced before ``close()`` returns. A
    ``with`` block left by an exception discards the content instead.
    Not safe for concurrent use.
    """

    def __init__(
        self, storage: Storage, info: BlobInfo, *, spool_size: int = DEFAULT_SPOOL_SIZE
    ) -> None:
        super().__init__()
        self._storage = storage
        self._info = info
        self._spool: IO[bytes] = tempfile.SpooledTemporaryFile(max_size=spool_size)
        self._written = 0

    @property
    def info(self) -> BlobInfo:
        return self._info

    def writable(self) -> bool:
        return True

    def _check_open(self) -> None:
        if self.closed:
            raise ClosedHandleError(f"Writer for {self._info.blob_id} is closed")

    def write(self, data: Any) -> int:
        self._check_open()
        size = self._spool.write(data)
        self._written += size
        return size

    def close(self) -> None:
        """Upload the spooled content and release the handle."""
        if self.closed:
            return
        blob_id = self._info.blob_id
        try:
            self._spool.seek(0)
            with translate_errors(f"Failed to upload {blob_id}"):
                self._storage.client.upload_fileobj(
                    self._spool,
                    blob_id.bucket,
                    blob_id.name,
                    ExtraArgs=self._info.write_args() or None,
                )
            logger.bind(bucket=blob_id.bucket, key=blob_id.name, size=self._written).info(
                "Uploaded blob: {} ({} bytes)", blob_id, self._written
            )
        finally:
            self._spool.close()
            super().close()

    def abort(self) -> None:
        """Release the handle without uploading anything."""
        if self.closed:
            return
        try:
            self._spool.close()
        finally:
            super().close()
        logger.bind(bucket=self._info.bucket, key=self._info.name).debug(
            "Discarded writer for {}", self._info.blob_id
        )

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            self.abort()
        else:
            self.close()

    def __del__(self) -> None:
        # Never upload from the garbage collector.
        if not self.closed:
            self.abort()


# ---------------------------------------------------------------------------
# Channels
# ---------------------------------------------------------------------------


def read_channel(blob: Blob) -> BlobReader:
    """Open a reader over ``blob``'s content."""
    return BlobReader(blob.storage, blob.blob_id)


def create_blob_writer(storage: Storage, info: BlobInfo) -> BlobWriter:
    """Open a writer that creates or replaces the object described by ``info``."""
    return BlobWriter(storage, info)


def write_channel(blob: Blob) -> BlobWriter:
    """Open a writer that replaces ``blob``'s content, keeping its metadata."""
    return BlobWriter(blob.storage, blob.info)


class BlobInputStream(io.BufferedReader):
    """Buffered reader over a ``BlobReader``.

    Reads after close raise ``ClosedHandleError``, as on the raw reader.
    """

    def _check_open(self) -> None:
        if self.closed:
            raise ClosedHandleError(f"Input stream for {self.raw.blob_id} is closed")

    def read(self, size: int | None = -1) -> bytes:
        self._check_open()
        return super().read(size)

    def read1(self, size: int = -1) -> bytes:
        self._check_open()
        return super().read1(size)

    def readinto(self, buffer: Any) -> int:
        self._check_open()
        return super().readinto(buffer)

    def readinto1(self, buffer: Any) -> int:
        self._check_open()
        return super().readinto1(buffer)

    def readline(self, size: int | None = -1) -> bytes:
        self._check_open()
        return super().readline(size)

    def peek(self, size: int = 0) -> bytes:
        self._check_open()
        return super().peek(size)

    def __next__(self) -> bytes:
        self._check_open()
        return super().__next__()


class BlobOutputStream(io.BufferedWriter):
    """Buffered writer over a ``BlobWriter``.

    A ``with`` block left by an exception aborts the writer, so nothing is
    uploaded.
    """

    def write(self, data: Any) -> int:
        if self.closed:
            raise ClosedHandleError(f"Output stream for {self.raw.info.blob_id} is closed")
        return super().write(data)

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            # Buffered bytes are dropped along with the spool.
            self.raw.abort()
        else:
            self.close()


def to_input_stream(reader: BlobReader, buffer_size: int = DEFAULT_CHUNK_SIZE) -> BlobInputStream:
    return BlobInputStream(reader, buffer_size=buffer_size)


def to_output_stream(writer: BlobWriter, buffer_size: int = DEFAULT_CHUNK_SIZE) -> BlobOutputStream:
    return BlobOutputStream(writer, buffer_size=buffer_size)


# ---------------------------------------------------------------------------
# Local files
# ---------------------------------------------------------------------------


def stream_to_file(input_stream: IO[bytes], local_path: LocalPath) -> int:
    """Write an input stream to disk, returning the number of bytes written."""
    with open(local_path, "wb") as dest:
        shutil.copyfileobj(input_stream, dest, DEFAULT_CHUNK_SIZE)
        return dest.tell()


def file_to_stream(local_path: LocalPath, output_stream: IO[bytes]) -> int:
    """Write a local file to an output stream, returning the bytes copied."""
    copied = 0
    with open(local_path, "rb") as src:
        while chunk := src.read(DEFAULT_CHUNK_SIZE):
            output_stream.write(chunk)
            copied += len(chunk)
    return copied


# ---------------------------------------------------------------------------
# Convenience
# ---------------------------------------------------------------------------


def copy_file_to_storage(
    storage: Storage,
    src: LocalPath,
    dest_uri: BlobId | str,
    options: Mapping[str, Any] | None = None,
) -> BlobInfo:
    """Copy a local file to a blob in storage.

    By default the content is typed as JSON encoded in UTF-8; passing
    ``options`` replaces those defaults entirely.

    Returns:
        The descriptor the object was written with.

    Raises:
        InvalidSchemeError: If ``dest_uri`` is not a ``gs://`` URI.
        OSError: If the local file cannot be read. Nothing is uploaded.
    """
    info = blob_info(dest_uri, DEFAULT_FILE_OPTIONS if options is None else options)
    with open(src, "rb") as source, create_blob_writer(storage, info) as target:
        shutil.copyfileobj(source, target, DEFAULT_CHUNK_SIZE)
    logger.bind(src=str(Path(src)), dest=info.blob_id.uri).info(
        "Copied {} to {}", Path(src), info.blob_id
    )
    return info
