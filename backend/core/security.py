# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Central security module.  Login derivation, bearer tokens and the auth
guard live here.  Item and file contents never reach this module – they
arrive already sealed by the client.

Responsibilities
----------------
1. Login hashing / password verifiers          (hashlib sha256, passlib pbkdf2_sha256)
2. JWT creation / verification                  (PyJWT / HS256)
3. Bearer-token middleware                      (replaces ``authorization``
                                                 with a verified ``user_id``)
4. FastAPI dependency returning the caller id
"""

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from functools import lru_cache

import jwt as _jwt        # PyJWT
from passlib.hash import pbkdf2_sha256 as _pbkdf2
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.config import settings
from core.logger import logger
from core.status import StatusCode, StatusError

# ---------------------------------------------------------------------------
# 1.  Login derivation
# ---------------------------------------------------------------------------
# The login itself is looked up by its SHA-256 digest.  The password is never
# stored: only PBKDF2-SHA256( password, salt ) in passlib's modular format,
# with the salt kept in its own column.


def hash_login(login: str) -> str:
    """Deterministic lookup key for *login*."""
    return hashlib.sha256(login.encode("utf-8")).hexdigest()


def generate_salt(length: int) -> str:
    """*length* random bytes, hex-encoded."""
    return secrets.token_hex(length)


def derive_verifier(password: str, salt: str, rounds: int | None = None) -> str:
    """PBKDF2-SHA256 of *password* under the hex-encoded *salt*."""
    hasher = _pbkdf2.using(salt=bytes.fromhex(salt), rounds=rounds or settings.password_rounds)
    return hasher.hash(password)


def verify_password(password: str, salt: str, verifier: str) -> bool:
    """Constant-time comparison of a freshly derived verifier."""
    candidate = derive_verifier(password, salt, rounds=_pbkdf2.from_string(verifier).rounds)
    return hmac.compare_digest(candidate, verifier)


# ---------------------------------------------------------------------------
# 2.  JWT – bearer tokens
# ---------------------------------------------------------------------------


class InvalidToken(Exception):
    pass


class Tokener:
    """Mints and verifies HS256 tokens whose subject is the user id."""

    def __init__(self, secret: str, lifetime: timedelta):
        self._secret = secret
        self._lifetime = lifetime

    def get_token(self, subject: str) -> str:
        claims = {
            "sub": subject,
            "exp": datetime.now(timezone.utc) + self._lifetime,
        }
        return _jwt.encode(claims, self._secret, algorithm="HS256")

    def get_subject(self, token: str) -> str:
        """Return the ``sub`` claim.  Raises :class:`InvalidToken` on any failure."""
        try:
            claims = _jwt.decode(
                token,
                self._secret,
                algorithms=["HS256"],
                options={"require": ["exp", "sub"]},
            )
        except _jwt.InvalidTokenError as exc:   # also covers ExpiredSignatureError
            raise InvalidToken(str(exc)) from exc
        return claims["sub"]


@lru_cache
def get_tokener() -> Tokener:
    return Tokener(settings.secret_key, timedelta(minutes=settings.access_token_expire_minutes))


# ---------------------------------------------------------------------------
# 3.  Bearer-token middleware
# ---------------------------------------------------------------------------
# One middleware covers unary routes and the file streams alike: the header
# rewrite happens on the ASGI scope before the route reads the body.

AUTH_HEADER = "authorization"
AUTH_SCHEME = "Bearer"
USER_ID_HEADER = "user_id"

# Register / Auth issue tokens and therefore cannot require one.  The rest
# are not RPCs (liveness probe, API docs).
EXEMPT_PATHS = frozenset({
    "/auth/register",
    "/auth/login",
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
})


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Verify ``authorization: Bearer <jwt>`` and replace it with
    ``user_id: <subject>`` for the downstream handlers.
    """

    def __init__(self, app, tokener_factory=get_tokener, exempt=EXEMPT_PATHS):
        super().__init__(app)
        self._tokener_factory = tokener_factory
        self._exempt = exempt

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self._exempt:
            return await call_next(request)

        try:
            user_id = self._authenticate(request.headers.get(AUTH_HEADER))
        except StatusError as exc:
            logger.info("auth rejected %s %s | %s", request.method, request.url.path, exc.detail)
            return JSONResponse(exc.to_dict(), status_code=exc.code.http_status)

        # Drop the credential and anything posing as a verified identity
        headers = [
            (name, value)
            for name, value in request.scope["headers"]
            if name not in (AUTH_HEADER.encode(), USER_ID_HEADER.encode())
        ]
        headers.append((USER_ID_HEADER.encode(), user_id.encode("utf-8")))
        request.scope["headers"] = headers

        return await call_next(request)

    def _authenticate(self, header: str | None) -> str:
        if header is None:
            raise StatusError(StatusCode.UNAUTHENTICATED, f"missing {AUTH_HEADER}")

        scheme, sep, token = header.partition(" ")
        if not sep or not scheme:
            raise StatusError(StatusCode.UNAUTHENTICATED, "bad authorization string")
        if scheme != AUTH_SCHEME:
            raise StatusError(StatusCode.UNAUTHENTICATED, f"request unauthenticated with {AUTH_SCHEME}")

        try:
            return self._tokener_factory().get_subject(token.strip())
        except InvalidToken:
            raise StatusError(StatusCode.PERMISSION_DENIED, "invalid auth token")


# ---------------------------------------------------------------------------
# 4.  FastAPI dependency
# ---------------------------------------------------------------------------


def get_caller_id(request: Request) -> str:
    """
    Dependency: the verified user id placed by :class:`AuthMiddleware`.
    Raises Unauthenticated if the route was reached without it.
    """
    user_id = request.headers.get(USER_ID_HEADER)
    if not user_id:
        raise StatusError(StatusCode.UNAUTHENTICATED, f"missing {USER_ID_HEADER}")
    return user_id
