# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the auth endpoints."""

from pydantic import BaseModel


# -- Requests --------------------------------------------------------------


class Credentials(BaseModel):
    login: str
    password: str


# -- Responses -------------------------------------------------------------


class TokenResponse(BaseModel):
    token: str
