# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""User ORM model."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime

from database import Base


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    login = Column(String(150), nullable=False)
    # sha256 hex of the login – the lookup key, unique per installation
    login_hash = Column(String(64), unique=True, nullable=False, index=True)
    # hex-encoded random salt
    salt = Column(String(255), nullable=False)
    # passlib pbkdf2_sha256 string of password + salt
    password_verifier = Column(String(255), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
