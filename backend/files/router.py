# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
File endpoints – chunked, client-encrypted file transfer.

Streams are framed with :mod:`core.framing`.  Uploads (``POST /files`` and
``PUT /files``) start with a FILE_INFO frame followed by CONTENT frames; the
first CONTENT frame is the client's nonce and every further one a sealed
chunk.  The server writes CONTENT payloads to the staging blob unmodified.
Staging I/O runs in the threadpool, never on the event loop.

Persistence order
-----------------
1. Drain every CONTENT frame into ``<uuid>.part``.
2. Sync and rename ``<uuid>.part`` → ``<uuid>``.
3. Commit the database row pointing at ``<uuid>``; if that fails, remove
   ``<uuid>`` again.
4. (update only) remove the blob the row referenced before.

A committed row therefore always points at a complete blob, and concurrent
updates of one file each publish their own blob before racing for the row.
A failure before step 3 leaves no row and no blob.  A failure in step 4 is
reported as Internal although the new content is already durable.

``GET /files/{id}`` answers with one FILE_INFO frame and then the blob in
CONTENT frames of at most ``chunk_size`` bytes.  An I/O error after the
response has started is reported in a trailing STATUS frame.
"""

import json
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import StreamingResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.requests import ClientDisconnect

from database import get_db
from core.framing import FrameKind, FramingError, aiter_frames, encode_frame, frame_limit
from core.logger import logger
from core.rpc import call_storage, get_retry_policy, get_staging
from core.security import get_caller_id
from core.status import StatusCode, StatusError
from files.schemas import ChunkSize, FileInfo, FileList
from storage import repository as repo
from storage.retry import RetryPolicy
from storage.staging import StagingError, StagingStore, StagingWriter
from vault.router import require_id
from vault.schemas import ItemID

router = APIRouter(prefix="/files", tags=["files"])

FRAMES_MEDIA_TYPE = "application/octet-stream"


# ---------------------------------------------------------------------------
# Stream helpers
# ---------------------------------------------------------------------------


async def _receive_file_info(frames) -> FileInfo:
    try:
        kind, payload = await anext(frames)
    except StopAsyncIteration:
        raise StatusError(StatusCode.INVALID_ARGUMENT, "missing file info") from None
    except (FramingError, ClientDisconnect) as exc:
        raise StatusError(StatusCode.UNKNOWN, "cannot receive file info") from exc

    if kind is not FrameKind.FILE_INFO:
        raise StatusError(StatusCode.INVALID_ARGUMENT, "first message must carry file info")
    try:
        return FileInfo.model_validate_json(payload)
    except ValidationError as exc:
        raise StatusError(StatusCode.INVALID_ARGUMENT, "malformed file info") from exc


async def _receive_content(frames, blob: StagingWriter) -> int:
    """Append every CONTENT payload to *blob*, in arrival order."""
    written = 0
    try:
        async for kind, payload in frames:
            if kind is not FrameKind.CONTENT:
                raise StatusError(StatusCode.INVALID_ARGUMENT, f"unexpected {kind.name} frame")
            await run_in_threadpool(blob.write, payload)
            written += len(payload)
    except (FramingError, ClientDisconnect) as exc:
        raise StatusError(StatusCode.UNKNOWN, "cannot receive content") from exc
    except OSError as exc:
        logger.exception("cannot write staging blob")
        raise StatusError(StatusCode.INTERNAL, "cannot write content") from exc
    return written


@asynccontextmanager
async def _staging_blob(staging: StagingStore, name: str):
    try:
        writer = await run_in_threadpool(staging.create, name)
    except (OSError, StagingError) as exc:
        logger.exception("cannot create staging blob %s", name)
        raise StatusError(StatusCode.INTERNAL, "cannot create file") from exc
    # Synchronous cleanup: it must also run under cancellation
    with writer:
        yield writer


async def _receive_blob(frames, staging: StagingStore) -> tuple[str, int]:
    """Store the remaining CONTENT frames under a fresh, fully synced blob name."""
    name = staging.new_name()
    async with _staging_blob(staging, name) as blob:
        size = await _receive_content(frames, blob)
        try:
            await run_in_threadpool(blob.commit)
        except OSError as exc:
            logger.exception("cannot finalize staging blob %s", name)
            raise StatusError(StatusCode.INTERNAL, "cannot finalize file") from exc
    return name, size


async def _discard_blob(staging: StagingStore, name: str) -> None:
    """Remove a blob no row ever came to reference.  The caller re-raises its own error."""
    try:
        await run_in_threadpool(staging.delete, name)
    except (OSError, StagingError):
        logger.exception("cannot remove unreferenced staging blob %s", name)


async def _remove_blob(staging: StagingStore, name: str) -> None:
    try:
        await run_in_threadpool(staging.delete, name)
    except (OSError, StagingError) as exc:
        logger.exception("cannot remove staging blob %s; it is orphaned", name)
        raise StatusError(StatusCode.INTERNAL, "cannot remove file content") from exc


def _stream_file(info: FileInfo, staging: StagingStore, name: str):
    """
    Body of GET /files/{id}.  Runs in the threadpool.  The blob is opened
    on first iteration, so a response that is never sent holds no handle.
    """
    limit = frame_limit(staging.chunk_size)
    yield encode_frame(FrameKind.FILE_INFO, info.model_dump_json().encode("utf-8"), limit)
    try:
        with staging.open(name) as reader:
            for chunk in reader.chunks():
                yield encode_frame(FrameKind.CONTENT, chunk, limit)
    except (OSError, StagingError):
        logger.exception("cannot read staging blob for file %s", info.id)
        trailer = StatusError(StatusCode.INTERNAL, "cannot read file content")
        yield encode_frame(FrameKind.STATUS, json.dumps(trailer.to_dict()).encode("utf-8"), limit)


# ---------------------------------------------------------------------------
# GET /files/chunk-size
# ---------------------------------------------------------------------------


@router.get("/chunk-size", response_model=ChunkSize)
async def get_chunk_size(staging: StagingStore = Depends(get_staging)):
    """Bytes per chunk, for both upload send sizes and download emit sizes."""
    return ChunkSize(size=staging.chunk_size)


# ---------------------------------------------------------------------------
# POST /files  – upload a new file
# ---------------------------------------------------------------------------


@router.post("", response_model=ItemID)
async def create_file(
    request: Request,
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
    staging: StagingStore = Depends(get_staging),
):
    frames = aiter_frames(request.stream(), frame_limit(staging.chunk_size))
    info = await _receive_file_info(frames)

    name, size = await _receive_blob(frames, staging)
    try:
        item = await call_storage(
            policy, repo.files.create, db, user_id,
            name=info.name, path_to_file=name, meta=info.meta,
        )
    except StatusError:
        await _discard_blob(staging, name)
        raise

    logger.info("file %s stored for user %s (%d bytes)", item.id, user_id, size)
    return ItemID(id=item.id)


# ---------------------------------------------------------------------------
# PUT /files  – replace a file's content and info
# ---------------------------------------------------------------------------


@router.put("", response_model=ItemID)
async def update_file(
    request: Request,
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
    staging: StagingStore = Depends(get_staging),
):
    frames = aiter_frames(request.stream(), frame_limit(staging.chunk_size))
    info = await _receive_file_info(frames)
    file_id = require_id(info.id, "File")

    name, size = await _receive_blob(frames, staging)
    try:
        item, previous = await call_storage(
            policy, repo.files.update_file, db, user_id, file_id,
            name=info.name, path_to_file=name, meta=info.meta,
        )
    except StatusError:
        await _discard_blob(staging, name)
        raise

    # Only now is the old content unreferenced
    await _remove_blob(staging, previous)

    logger.info("file %s replaced for user %s (%d bytes)", item.id, user_id, size)
    return ItemID(id=item.id)


# ---------------------------------------------------------------------------
# GET /files/{id}  – download
# ---------------------------------------------------------------------------


@router.get("/{file_id}")
async def get_file(
    file_id: str,
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
    staging: StagingStore = Depends(get_staging),
):
    file_id = require_id(file_id, "File")
    item = await call_storage(policy, repo.files.get, db, user_id, file_id)

    # Checked up front so a missing blob is still a plain Internal response
    try:
        found = await run_in_threadpool(staging.exists, item.path_to_file)
    except (OSError, StagingError) as exc:
        logger.exception("cannot open staging blob for file %s", item.id)
        raise StatusError(StatusCode.INTERNAL, "cannot open file content") from exc
    if not found:
        logger.error("staging blob %s of file %s is missing", item.path_to_file, item.id)
        raise StatusError(StatusCode.INTERNAL, "cannot open file content")

    body = _stream_file(FileInfo.model_validate(item), staging, item.path_to_file)
    return StreamingResponse(body, media_type=FRAMES_MEDIA_TYPE)


# ---------------------------------------------------------------------------
# GET /files  – list file infos
# ---------------------------------------------------------------------------


@router.get("", response_model=FileList)
async def get_files(
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    items = await call_storage(policy, repo.files.get_all, db, user_id)
    return FileList(files=[FileInfo.model_validate(i) for i in items])


# ---------------------------------------------------------------------------
# DELETE /files/{id}
# ---------------------------------------------------------------------------


@router.delete("/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_file(
    file_id: str,
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
    staging: StagingStore = Depends(get_staging),
):
    file_id = require_id(file_id, "File")
    item = await call_storage(policy, repo.files.delete, db, user_id, file_id)
    await _remove_blob(staging, item.path_to_file)
