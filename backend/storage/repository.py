# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Relational persistence for users and the four item kinds.

Ownership invariant
-------------------
Every item query carries ``owner_user_id == <caller>`` in its WHERE clause.
Knowing an item id is never enough to read, change or delete another
user's row: such a request behaves exactly like a missing id.

Error contract
--------------
Only the typed errors from :mod:`storage.errors` are raised for known
conditions.  Driver exceptions for anything else (lost connections,
serialization failures) propagate untouched so the retry helper can judge
them; the session is rolled back first.
"""

from contextlib import contextmanager
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.items import Bank, File, Password, Text
from models.user import User, utcnow
from storage.errors import (
    BankNotFound,
    FileNotFound,
    NotFound,
    PasswordNotFound,
    TextNotFound,
    UserAlreadyExists,
    UserNotFound,
)


@contextmanager
def _transaction(db: Session):
    """Commit on success, roll back and re-raise on any error."""
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserStore:

    def create_user(self, db: Session, login: str, login_hash: str, salt: str, verifier: str) -> User:
        user = User(login=login, login_hash=login_hash, salt=salt, password_verifier=verifier)
        with _transaction(db):
            db.add(user)
            try:
                db.flush()
            except IntegrityError as exc:
                raise UserAlreadyExists(login) from exc
        return user

    def get_user(self, db: Session, login: str, login_hash: str) -> User:
        user = db.scalars(
            select(User).where(User.login_hash == login_hash, User.login == login)
        ).first()
        if user is None:
            raise UserNotFound(login)
        return user


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


class ItemStore:
    """
    CRUD for one item kind.  *fields* names the ciphertext columns a caller
    may write; ``id``, ``owner_user_id`` and ``updated_at`` are managed here.
    """

    def __init__(self, model, not_found: type[NotFound], fields: Iterable[str]):
        self.model = model
        self.not_found = not_found
        self.fields = tuple(fields)

    def _values(self, values: dict) -> dict:
        unknown = set(values) - set(self.fields)
        if unknown:
            raise TypeError(f"{self.model.__name__} has no writable field(s) {sorted(unknown)}")
        return {name: values.get(name, "") for name in self.fields}

    def _owned(self, user_id: str, item_id: str):
        return select(self.model).where(
            self.model.id == item_id,
            self.model.owner_user_id == user_id,
        )

    def create(self, db: Session, user_id: str, **values):
        item = self.model(owner_user_id=user_id, **self._values(values))
        with _transaction(db):
            db.add(item)
            try:
                db.flush()
            except IntegrityError as exc:
                # the only constraint a fresh item can break is its owner FK
                raise UserNotFound(user_id) from exc
        return item

    def update(self, db: Session, user_id: str, item_id: str, **values):
        stmt = (
            update(self.model)
            .where(self.model.id == item_id, self.model.owner_user_id == user_id)
            .values(updated_at=utcnow(), **self._values(values))
        )
        with _transaction(db):
            result = db.execute(stmt)
            if result.rowcount == 0:
                raise self.not_found(item_id)
        return self.get(db, user_id, item_id)

    def get(self, db: Session, user_id: str, item_id: str):
        item = db.scalars(
            self._owned(user_id, item_id).execution_options(populate_existing=True)
        ).first()
        if item is None:
            raise self.not_found(item_id)
        return item

    def get_all(self, db: Session, user_id: str) -> list:
        return list(
            db.scalars(
                select(self.model)
                .where(self.model.owner_user_id == user_id)
                .order_by(self.model.updated_at.desc())
            )
        )

    def delete(self, db: Session, user_id: str, item_id: str):
        """Delete the caller's row and return it (detached)."""
        with _transaction(db):
            item = db.scalars(self._owned(user_id, item_id)).first()
            if item is None:
                raise self.not_found(item_id)
            db.delete(item)
        return item


class FileStore(ItemStore):

    def update_file(self, db: Session, user_id: str, item_id: str, **values) -> tuple[File, str]:
        """
        Point the row at a new staging blob.  Returns the updated row and the
        path it referenced before, so the caller can remove the old blob once
        this commit has succeeded.
        """
        values = self._values(values)
        with _transaction(db):
            item = db.scalars(self._owned(user_id, item_id).with_for_update()).first()
            if item is None:
                raise self.not_found(item_id)
            previous_path = item.path_to_file
            for name, value in values.items():
                setattr(item, name, value)
            item.updated_at = utcnow()
        return item, previous_path


users = UserStore()
passwords = ItemStore(Password, PasswordNotFound, ("name", "login", "password", "meta"))
banks = ItemStore(Bank, BankNotFound, ("name", "card_number", "cvc", "owner", "expiration", "meta"))
texts = ItemStore(Text, TextNotFound, ("name", "text", "meta"))
files = FileStore(File, FileNotFound, ("name", "path_to_file", "meta"))
