# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""Plaintext records as the client's callers see them.  Never sent as-is."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Password(BaseModel):
    id: str = ""
    name: str = ""
    login: str = ""
    password: str = ""
    meta: str = ""
    updated_at: Optional[datetime] = None


class Bank(BaseModel):
    id: str = ""
    name: str = ""
    card_number: str = ""
    cvc: str = ""
    owner: str = ""
    expiration: str = ""
    meta: str = ""
    updated_at: Optional[datetime] = None


class Text(BaseModel):
    id: str = ""
    name: str = ""
    text: str = ""
    meta: str = ""
    updated_at: Optional[datetime] = None


class File(BaseModel):
    id: str = ""
    name: str = ""
    meta: str = ""
    updated_at: Optional[datetime] = None
