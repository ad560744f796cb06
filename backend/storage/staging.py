# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Staging store – the server-side area holding sealed file contents.

Layout
------
One flat directory.  A blob is named by a uuid4 string and holds the
client's nonce frame followed by its sealed chunks, byte for byte as they
arrived.  While an upload is in flight the blob lives at ``<uuid>.part``;
``StagingWriter.commit`` renames it into place before the database row that
references it is written, and the caller deletes it again if that write
fails.  ``.part`` files left by crashed or cancelled uploads are removed by
:meth:`StagingStore.sweep`.
"""

import os
import time
import uuid
from datetime import timedelta
from pathlib import Path
from typing import BinaryIO, Iterator

from core.logger import logger

PART_SUFFIX = ".part"


class StagingError(Exception):
    pass


class StagingWriter:
    """Writable handle for an inbound stream.  Use as a context manager."""

    def __init__(self, part_path: Path, final_path: Path):
        self._part_path = part_path
        self._final_path = final_path
        # "x" refuses to clobber an existing upload
        self._file: BinaryIO = open(part_path, "xb")
        self._committed = False

    def write(self, data: bytes) -> int:
        return self._file.write(data)

    def commit(self) -> None:
        """Flush, close and move the blob to its final name."""
        self._file.flush()
        os.fsync(self._file.fileno())
        self._file.close()
        os.replace(self._part_path, self._final_path)
        self._committed = True

    def __enter__(self) -> "StagingWriter":
        return self

    def close(self) -> None:
        """Drop the partial blob unless it was committed."""
        if self._committed:
            return
        try:
            self._file.close()
        finally:
            self._part_path.unlink(missing_ok=True)

    def __exit__(self, exc_type, exc, tb) -> bool:
        # An error raised by close() here carries the in-flight one as
        # its __context__, so neither is lost.
        self.close()
        return False


class StagingReader:
    """Readable handle yielding fixed-size chunks.  Use as a context manager."""

    def __init__(self, path: Path, chunk_size: int):
        self._file: BinaryIO = open(path, "rb")
        self._chunk_size = chunk_size

    def get_chunk(self) -> bytes:
        """Next chunk of at most ``chunk_size`` bytes; ``b""`` at end of blob."""
        return self._file.read(self._chunk_size)

    def chunks(self) -> Iterator[bytes]:
        while True:
            chunk = self.get_chunk()
            if not chunk:
                return
            yield chunk

    def close(self) -> None:
        self._file.close()

    def __enter__(self) -> "StagingReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False


class StagingStore:

    def __init__(self, folder: str | Path, chunk_size: int):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.folder = Path(folder)
        self.folder.mkdir(parents=True, exist_ok=True)
        self.chunk_size = chunk_size

    @staticmethod
    def new_name() -> str:
        return str(uuid.uuid4())

    def path(self, name: str) -> Path:
        """Absolute path of blob *name*.  Names must be uuid strings."""
        try:
            canonical = str(uuid.UUID(name))
        except (ValueError, TypeError):
            raise StagingError(f"invalid staging name {name!r}") from None
        if canonical != name:
            raise StagingError(f"invalid staging name {name!r}")
        return self.folder / name

    def create(self, name: str) -> StagingWriter:
        final_path = self.path(name)
        if final_path.exists():
            raise StagingError(f"staging blob {name} exists")
        part_path = final_path.with_name(name + PART_SUFFIX)
        try:
            return StagingWriter(part_path, final_path)
        except FileExistsError:
            raise StagingError(f"staging blob {name} is being written") from None

    def open(self, name: str) -> StagingReader:
        return StagingReader(self.path(name), self.chunk_size)

    def exists(self, name: str) -> bool:
        return self.path(name).exists()

    def delete(self, name: str) -> None:
        """Remove a blob.  A blob that is already gone is not an error."""
        self.path(name).unlink(missing_ok=True)

    def sweep(self, older_than: timedelta) -> int:
        """Remove ``.part`` leftovers last modified before *older_than* ago."""
        cutoff = time.time() - older_than.total_seconds()
        removed = 0
        for part in self.folder.glob("*" + PART_SUFFIX):
            try:
                if part.stat().st_mtime < cutoff:
                    part.unlink()
                    removed += 1
            except FileNotFoundError:
                continue
        if removed:
            logger.info("staging sweep removed %d unfinished upload(s) from %s", removed, self.folder)
        return removed
