# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""Pydantic models for the file endpoints and the FILE_INFO / STATUS frames."""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, field_validator


class FileInfo(BaseModel):
    """
    First frame of every file stream.  ``id`` is empty on create; ``name``
    and ``meta`` are client-sealed ciphertext.
    """

    id: str = ""
    name: str = ""
    meta: str = ""
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("updated_at")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class FileList(BaseModel):
    files: List[FileInfo]


class ChunkSize(BaseModel):
    size: int
