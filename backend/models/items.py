# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
ORM models for the four item kinds.

Every text column except ids holds client-sealed ciphertext (hex with the
nonce appended).  The server never decrypts them.  ``File.path_to_file`` is
the uuid of the staging blob holding the file's sealed contents.
"""

import sqlalchemy as sa

from database import Base
from models.user import new_id, utcnow


class _ItemColumns:
    id = sa.Column(sa.String(36), primary_key=True, default=new_id)
    name = sa.Column(sa.Text, nullable=False, default="")
    meta = sa.Column(sa.Text, nullable=False, default="")
    updated_at = sa.Column(sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


def _owner_column():
    return sa.Column(
        sa.String(36),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class Password(_ItemColumns, Base):
    __tablename__ = "passwords"

    owner_user_id = _owner_column()
    login = sa.Column(sa.Text, nullable=False, default="")
    password = sa.Column(sa.Text, nullable=False, default="")


class Bank(_ItemColumns, Base):
    __tablename__ = "banks"

    owner_user_id = _owner_column()
    card_number = sa.Column(sa.Text, nullable=False, default="")
    cvc = sa.Column(sa.Text, nullable=False, default="")
    owner = sa.Column(sa.Text, nullable=False, default="")
    expiration = sa.Column(sa.Text, nullable=False, default="")


class Text(_ItemColumns, Base):
    __tablename__ = "texts"

    owner_user_id = _owner_column()
    text = sa.Column(sa.Text, nullable=False, default="")


class File(_ItemColumns, Base):
    __tablename__ = "files"

    owner_user_id = _owner_column()
    path_to_file = sa.Column(sa.String(36), nullable=False)
