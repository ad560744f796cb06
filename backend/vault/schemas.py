# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the password, bank and text endpoints."""

from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, field_validator


# -- Requests --------------------------------------------------------------
# Every string field is client-sealed ciphertext (hex, nonce appended).  The
# server stores it verbatim and never looks inside.


class PasswordFields(BaseModel):
    name: str = ""
    login: str = ""
    password: str = ""
    meta: str = ""


class BankFields(BaseModel):
    name: str = ""
    card_number: str = ""
    cvc: str = ""
    owner: str = ""
    expiration: str = ""
    meta: str = ""


class TextFields(BaseModel):
    name: str = ""
    text: str = ""
    meta: str = ""


# -- Responses -------------------------------------------------------------


class ItemID(BaseModel):
    id: str


class _Stored(BaseModel):
    id: str
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("updated_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        # SQLite hands back naive datetimes; they are stored as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class PasswordRecord(PasswordFields, _Stored):
    pass


class BankRecord(BankFields, _Stored):
    pass


class TextRecord(TextFields, _Stored):
    pass


class PasswordList(BaseModel):
    passwords: List[PasswordRecord]


class BankList(BaseModel):
    banks: List[BankRecord]


class TextList(BaseModel):
    texts: List[TextRecord]
