# src/extraction/uploads.py

import logging
import os
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from src.extraction.errors import FileTooLargeError

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_MB", "20")) * 1024 * 1024
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class UploadedFile:
    """An upload stored on disk for the duration of one request."""

    path: Path
    content_type: Optional[str]
    size: int

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


def save_upload(
    fileobj: BinaryIO,
    content_type: Optional[str],
    upload_dir=None,
    max_bytes: Optional[int] = None,
) -> UploadedFile:
    """
    Streams an upload to a uniquely named file under upload_dir.

    Raises FileTooLargeError as soon as more than max_bytes have been read;
    the partial file is removed before the error leaves this function.
    """
    if max_bytes is None:
        max_bytes = MAX_UPLOAD_BYTES
    directory = Path(upload_dir or UPLOAD_DIR)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / uuid.uuid4().hex

    size = 0
    try:
        with path.open("wb") as out:
            while True:
                chunk = fileobj.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_bytes:
                    raise FileTooLargeError(
                        f"Upload exceeds the {max_bytes} byte limit.",
                    )
                out.write(chunk)
    except BaseException:
        _remove(path)
        raise

    logger.info("Stored upload %s (%s bytes, %s)", path.name, size, content_type)
    return UploadedFile(path=path, content_type=content_type, size=size)


def discard_upload(uploaded: UploadedFile) -> None:
    """Deletes a stored upload. A file that is already gone is not an error."""
    _remove(uploaded.path)


def _remove(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error("Error deleting file %s: %s", path, e)


@contextmanager
def stored_upload(
    fileobj: BinaryIO,
    content_type: Optional[str],
    upload_dir=None,
    max_bytes: Optional[int] = None,
) -> Iterator[UploadedFile]:
    """
    Stores an upload and guarantees it is deleted when the block exits,
    whether the block returns normally or raises.
    """
    uploaded = save_upload(fileobj, content_type, upload_dir=upload_dir, max_bytes=max_bytes)
    try:
        yield uploaded
    finally:
        discard_upload(uploaded)
