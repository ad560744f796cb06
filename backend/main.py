# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
FastAPI application factory.

Responsibilities
----------------
* Instantiate the FastAPI app.
* Register the bearer-token guard and request logging.
* Render every :class:`StatusError` as ``{"code", "detail"}`` with its HTTP
  status, including request validation failures (InvalidArgument).
* Mount the feature routers (auth, passwords, banks, texts, files).
* Sweep unfinished uploads out of the staging area at startup.
* Expose a /health endpoint for container liveness checks.
"""

import time
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from auth.router import router as auth_router
from files.router import router as files_router
from vault.router import banks_router, passwords_router, texts_router
from core.config import settings
from core.logger import logger
from core.rpc import get_staging
from core.security import AuthMiddleware
from core.status import StatusCode, StatusError

app = FastAPI(title="Vaultkeeper", version="1.0.0")


# ---------------------------------------------------------------------------
# Request-logging middleware
# ---------------------------------------------------------------------------
# Logs every inbound request: method, path, client IP, status, latency.
# Bodies are never echoed; they carry credentials or ciphertext.


class _RequestLogMiddleware(BaseHTTPMiddleware):
    """Log method, path, client IP, response status and latency (ms)."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        client_ip = request.client.host if request.client else "unknown"

        logger.info(
            "%s %s | client=%s status=%d latency=%.1fms",
            request.method,
            request.url.path,
            client_ip,
            response.status_code,
            elapsed_ms,
        )
        return response


# Added last → runs first, so rejected requests are logged too
app.add_middleware(AuthMiddleware)
app.add_middleware(_RequestLogMiddleware)


# ---------------------------------------------------------------------------
# Error rendering
# ---------------------------------------------------------------------------


def _status_response(exc: StatusError) -> JSONResponse:
    return JSONResponse(exc.to_dict(), status_code=exc.code.http_status)


@app.exception_handler(StatusError)
async def _on_status_error(request: Request, exc: StatusError):
    return _status_response(exc)


@app.exception_handler(RequestValidationError)
async def _on_validation_error(request: Request, exc: RequestValidationError):
    fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
    return _status_response(StatusError(StatusCode.INVALID_ARGUMENT, f"malformed request: {fields}"))


@app.exception_handler(Exception)
async def _on_unhandled(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return _status_response(StatusError(StatusCode.INTERNAL, "internal error"))


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(auth_router)
app.include_router(passwords_router)
app.include_router(banks_router)
app.include_router(texts_router)
app.include_router(files_router)


# ---------------------------------------------------------------------------
# Lifecycle / health check
# ---------------------------------------------------------------------------


@app.on_event("startup")
async def _on_startup():
    staging = get_staging()
    staging.sweep(timedelta(minutes=settings.staging_grace_minutes))
    logger.info("Vaultkeeper service starting up (staging=%s, chunk_size=%d)", staging.folder, staging.chunk_size)


@app.on_event("shutdown")
async def _on_shutdown():
    logger.info("Vaultkeeper service shutting down")


@app.get("/health")
def health():
    return {"status": "ok"}
