# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Auth endpoints – registration and login.  Both are exempt from the bearer
token check and both answer with a fresh token whose subject is the user id.

Security notes
--------------
* The plaintext login is looked up through its SHA-256 digest; the password
  is only ever compared as a PBKDF2 verifier under the user's stored salt.
* Login and password are trimmed before use, so " alice " and "alice" are
  the same account.
"""

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from database import get_db
from core.config import settings
from core.logger import logger
from core.rpc import call_storage, get_retry_policy
from core.security import (
    Tokener,
    derive_verifier,
    generate_salt,
    get_tokener,
    hash_login,
    verify_password,
)
from core.status import StatusCode, StatusError
from storage import repository as repo
from storage.errors import UserNotFound
from storage.retry import RetryPolicy
from auth.schemas import Credentials, TokenResponse

router = APIRouter(prefix="/auth", tags=["auth"])


def _validate(body: Credentials) -> tuple[str, str]:
    """Trimmed login and password; empty values are InvalidArgument."""
    login = body.login.strip()
    password = body.password.strip()

    missing = [name for name, value in (("login", login), ("password", password)) if not value]
    if missing:
        raise StatusError(StatusCode.INVALID_ARGUMENT, "empty " + " and ".join(missing))
    return login, password


def _mint(tokener: Tokener, user_id: str) -> TokenResponse:
    try:
        return TokenResponse(token=tokener.get_token(user_id))
    except Exception as exc:
        logger.exception("cannot sign token for user %s", user_id)
        raise StatusError(StatusCode.INTERNAL, "cannot sign token") from exc


# ---------------------------------------------------------------------------
# POST /auth/register
# ---------------------------------------------------------------------------


@router.post("/register", response_model=TokenResponse)
async def register(
    body: Credentials,
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
    tokener: Tokener = Depends(get_tokener),
):
    """Create an account and return a signed token for it."""
    login, password = _validate(body)

    salt = generate_salt(settings.salt_length)
    verifier = await run_in_threadpool(derive_verifier, password, salt)

    user = await call_storage(policy, repo.users.create_user, db, login, hash_login(login), salt, verifier)
    logger.info("registered user %s", user.id)
    return _mint(tokener, user.id)


# ---------------------------------------------------------------------------
# POST /auth/login
# ---------------------------------------------------------------------------


@router.post("/login", response_model=TokenResponse)
async def login(
    body: Credentials,
    db: Session = Depends(get_db),
    policy: RetryPolicy = Depends(get_retry_policy),
    tokener: Tokener = Depends(get_tokener),
):
    """Check the credentials and return a signed token."""
    login, password = _validate(body)

    try:
        user = await call_storage(policy, repo.users.get_user, db, login, hash_login(login))
    except StatusError as exc:
        if isinstance(exc.__cause__, UserNotFound):
            raise StatusError(StatusCode.UNKNOWN, f"unknown user {login}") from exc.__cause__
        raise

    try:
        valid = await run_in_threadpool(verify_password, password, user.salt, user.password_verifier)
    except ValueError as exc:
        logger.exception("unreadable verifier for user %s", user.id)
        raise StatusError(StatusCode.INTERNAL, "cannot verify password") from exc

    if not valid:
        raise StatusError(StatusCode.PERMISSION_DENIED, "invalid password")

    return _mint(tokener, user.id)
