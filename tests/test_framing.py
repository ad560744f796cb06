"""
Tests for the length-prefixed stream framing.
"""

import asyncio

import pytest

from core.framing import (
    HEADER_SIZE,
    MAX_FRAME_SIZE,
    FrameDecoder,
    FrameKind,
    FramingError,
    aiter_frames,
    encode_frame,
    frame_limit,
    iter_frames,
)

FRAMES = [
    (FrameKind.FILE_INFO, b'{"name": "n"}'),
    (FrameKind.CONTENT, bytes(range(256)) * 5),
    (FrameKind.CONTENT, b""),
    (FrameKind.STATUS, b'{"code": "Internal", "detail": "boom"}'),
]


def _stream() -> bytes:
    return b"".join(encode_frame(kind, payload) for kind, payload in FRAMES)


def test_header_layout():
    frame = encode_frame(FrameKind.CONTENT, b"abc")

    assert len(frame) == HEADER_SIZE + 3
    assert frame[:HEADER_SIZE] == b"\x02\x00\x00\x00\x03"


@pytest.mark.parametrize("piece", [1, 2, 5, 7, 100, 4096])
def test_decoder_handles_any_split(piece):
    data = _stream()
    decoder = FrameDecoder()
    frames = []
    for offset in range(0, len(data), piece):
        frames.extend(decoder.feed(data[offset:offset + piece]))
    decoder.close()

    assert frames == FRAMES


def test_truncated_stream_is_an_error():
    data = _stream()[:-3]

    with pytest.raises(FramingError, match="truncated"):
        list(iter_frames([data]))


def test_unknown_kind_is_an_error():
    with pytest.raises(FramingError, match="unknown frame kind"):
        FrameDecoder().feed(b"\x09\x00\x00\x00\x00")


def test_oversized_frame_is_rejected():
    decoder = FrameDecoder(max_frame_size=8)

    with pytest.raises(FramingError, match="exceeds"):
        decoder.feed(encode_frame(FrameKind.CONTENT, b"x" * 9))


def test_encoder_honours_frame_limit():
    with pytest.raises(FramingError, match="exceeds"):
        encode_frame(FrameKind.CONTENT, b"x" * 9, max_frame_size=8)

    assert len(encode_frame(FrameKind.CONTENT, b"x" * 8, max_frame_size=8)) == HEADER_SIZE + 8


def test_frame_limit_grows_with_chunk_size():
    assert frame_limit(1024) == MAX_FRAME_SIZE
    # A sealed chunk of the largest size still fits in one frame
    assert frame_limit(MAX_FRAME_SIZE) >= MAX_FRAME_SIZE + 16


def test_aiter_frames():
    data = _stream()

    async def chunks():
        for offset in range(0, len(data), 33):
            yield data[offset:offset + 33]

    async def collect():
        return [frame async for frame in aiter_frames(chunks())]

    assert asyncio.run(collect()) == FRAMES
