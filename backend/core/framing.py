# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Length-prefixed message framing for the file streams.

HTTP bodies are plain byte streams, so the file RPCs carry their messages
as frames::

    +------+----------------+-----------------+
    | kind | length (u32 BE)| payload         |
    +------+----------------+-----------------+
      1 B        4 B          ``length`` bytes

``FILE_INFO`` and ``STATUS`` payloads are JSON, ``CONTENT`` payloads are
raw ciphertext.  A ``STATUS`` frame terminates a server stream with an
error once the HTTP response has already started.
"""

import enum
import struct
from typing import AsyncIterable, AsyncIterator, Iterable, Iterator

_HEADER = struct.Struct(">BI")
HEADER_SIZE = _HEADER.size

# Generous floor; a frame is one sealed chunk or a small JSON document
MAX_FRAME_SIZE = 4 * 1024 * 1024

# Room above one chunk for its AEAD tag
FRAME_HEADROOM = 64 * 1024


class FrameKind(enum.IntEnum):
    FILE_INFO = 1
    CONTENT = 2
    STATUS = 3


class FramingError(ValueError):
    pass


def frame_limit(chunk_size: int) -> int:
    """Largest frame a stream cut at *chunk_size* may carry."""
    return max(MAX_FRAME_SIZE, chunk_size + FRAME_HEADROOM)


def encode_frame(kind: FrameKind, payload: bytes, max_frame_size: int = MAX_FRAME_SIZE) -> bytes:
    if len(payload) > max_frame_size:
        raise FramingError(f"frame of {len(payload)} bytes exceeds {max_frame_size}")
    return _HEADER.pack(kind, len(payload)) + payload


class FrameDecoder:
    """
    Incremental decoder.  ``feed`` accepts arbitrary slices of the byte
    stream and returns every frame completed so far, in order.
    """

    def __init__(self, max_frame_size: int = MAX_FRAME_SIZE):
        self._buffer = bytearray()
        self._max_frame_size = max_frame_size

    def feed(self, data: bytes) -> list[tuple[FrameKind, bytes]]:
        self._buffer.extend(data)
        frames = []

        while len(self._buffer) >= HEADER_SIZE:
            kind, length = _HEADER.unpack_from(self._buffer)
            if length > self._max_frame_size:
                raise FramingError(f"frame of {length} bytes exceeds {self._max_frame_size}")
            try:
                kind = FrameKind(kind)
            except ValueError:
                raise FramingError(f"unknown frame kind {kind}") from None

            end = HEADER_SIZE + length
            if len(self._buffer) < end:
                break
            frames.append((kind, bytes(self._buffer[HEADER_SIZE:end])))
            del self._buffer[:end]

        return frames

    def close(self) -> None:
        """Raise if the stream ended in the middle of a frame."""
        if self._buffer:
            raise FramingError(f"stream truncated: {len(self._buffer)} dangling bytes")


def iter_frames(chunks: Iterable[bytes], max_frame_size: int = MAX_FRAME_SIZE) -> Iterator[tuple[FrameKind, bytes]]:
    decoder = FrameDecoder(max_frame_size)
    for chunk in chunks:
        yield from decoder.feed(chunk)
    decoder.close()


async def aiter_frames(
    chunks: AsyncIterable[bytes], max_frame_size: int = MAX_FRAME_SIZE
) -> AsyncIterator[tuple[FrameKind, bytes]]:
    decoder = FrameDecoder(max_frame_size)
    async for chunk in chunks:
        for frame in decoder.feed(chunk):
            yield frame
    decoder.close()
