# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Vault endpoints – CRUD for passwords, bank cards and text notes.

Invariants enforced by every handler
------------------------------------
* The caller id comes from the ``user_id`` header set by ``AuthMiddleware``;
  nothing in the request body can name a different owner.
* Repository queries always filter on that owner.  Another user's item id
  is reported exactly like a missing one: Unknown("unknown <Kind>ID <id>").
* Field values are opaque ciphertext.  They are stored and returned
  verbatim.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database import get_db
from core.rpc import call_storage, get_retry_policy
from core.security import get_caller_id
from core.status import StatusCode, StatusError
from storage import repository as repo
from storage.retry import RetryPolicy
from vault.schemas import (
    BankFields,
    BankList,
    BankRecord,
    ItemID,
    PasswordFields,
    PasswordList,
    PasswordRecord,
    TextFields,
    TextList,
    TextRecord,
)

passwords_router = APIRouter(prefix="/passwords", tags=["passwords"])
banks_router = APIRouter(prefix="/banks", tags=["banks"])
texts_router = APIRouter(prefix="/texts", tags=["texts"])


def require_id(value: str, kind: str) -> str:
    """Strip *value*; an empty id is InvalidArgument("empty <Kind>ID")."""
    value = value.strip()
    if not value:
        raise StatusError(StatusCode.INVALID_ARGUMENT, f"empty {kind}ID")
    return value


# ---------------------------------------------------------------------------
# /passwords
# ---------------------------------------------------------------------------


@passwords_router.post("", response_model=ItemID)
async def create_password(
    body: PasswordFields,
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    item = await call_storage(policy, repo.passwords.create, db, user_id, **body.model_dump())
    return ItemID(id=item.id)


@passwords_router.put("/{item_id}", response_model=ItemID)
async def update_password(
    item_id: str,
    body: PasswordFields,
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    item_id = require_id(item_id, "Password")
    item = await call_storage(policy, repo.passwords.update, db, user_id, item_id, **body.model_dump())
    return ItemID(id=item.id)


@passwords_router.get("/{item_id}", response_model=PasswordRecord)
async def get_password(
    item_id: str,
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    item_id = require_id(item_id, "Password")
    item = await call_storage(policy, repo.passwords.get, db, user_id, item_id)
    return PasswordRecord.model_validate(item)


@passwords_router.get("", response_model=PasswordList)
async def get_passwords(
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    items = await call_storage(policy, repo.passwords.get_all, db, user_id)
    return PasswordList(passwords=[PasswordRecord.model_validate(i) for i in items])


@passwords_router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_password(
    item_id: str,
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    item_id = require_id(item_id, "Password")
    await call_storage(policy, repo.passwords.delete, db, user_id, item_id)


# ---------------------------------------------------------------------------
# /banks
# ---------------------------------------------------------------------------


@banks_router.post("", response_model=ItemID)
async def create_bank(
    body: BankFields,
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    item = await call_storage(policy, repo.banks.create, db, user_id, **body.model_dump())
    return ItemID(id=item.id)


@banks_router.put("/{item_id}", response_model=ItemID)
async def update_bank(
    item_id: str,
    body: BankFields,
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    item_id = require_id(item_id, "Bank")
    item = await call_storage(policy, repo.banks.update, db, user_id, item_id, **body.model_dump())
    return ItemID(id=item.id)


@banks_router.get("/{item_id}", response_model=BankRecord)
async def get_bank(
    item_id: str,
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    item_id = require_id(item_id, "Bank")
    item = await call_storage(policy, repo.banks.get, db, user_id, item_id)
    return BankRecord.model_validate(item)


@banks_router.get("", response_model=BankList)
async def get_banks(
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    items = await call_storage(policy, repo.banks.get_all, db, user_id)
    return BankList(banks=[BankRecord.model_validate(i) for i in items])


@banks_router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bank(
    item_id: str,
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    item_id = require_id(item_id, "Bank")
    await call_storage(policy, repo.banks.delete, db, user_id, item_id)


# ---------------------------------------------------------------------------
# /texts
# ---------------------------------------------------------------------------


@texts_router.post("", response_model=ItemID)
async def create_text(
    body: TextFields,
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    item = await call_storage(policy, repo.texts.create, db, user_id, **body.model_dump())
    return ItemID(id=item.id)


@texts_router.put("/{item_id}", response_model=ItemID)
async def update_text(
    item_id: str,
    body: TextFields,
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    item_id = require_id(item_id, "Text")
    item = await call_storage(policy, repo.texts.update, db, user_id, item_id, **body.model_dump())
    return ItemID(id=item.id)


@texts_router.get("/{item_id}", response_model=TextRecord)
async def get_text(
    item_id: str,
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    item_id = require_id(item_id, "Text")
    item = await call_storage(policy, repo.texts.get, db, user_id, item_id)
    return TextRecord.model_validate(item)


@texts_router.get("", response_model=TextList)
async def get_texts(
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    items = await call_storage(policy, repo.texts.get_all, db, user_id)
    return TextList(texts=[TextRecord.model_validate(i) for i in items])


@texts_router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_text(
    item_id: str,
    user_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    item_id = require_id(item_id, "Text")
    await call_storage(policy, repo.texts.delete, db, user_id, item_id)
