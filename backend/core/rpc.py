# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Shared plumbing for the route handlers.

* ``call_storage`` runs a blocking repository call in the threadpool under
  the retry policy and translates typed storage errors into protocol
  status codes.  It is the only place that classification happens.
* ``get_retry_policy`` / ``get_staging`` are FastAPI dependencies so tests
  can swap them through ``app.dependency_overrides``.
"""

from functools import lru_cache

from starlette.concurrency import run_in_threadpool

from core.config import settings
from core.logger import logger
from core.status import StatusCode, StatusError
from storage.errors import NotFound, UserAlreadyExists
from storage.retry import RetryPolicy, retry
from storage.staging import StagingStore


def get_retry_policy() -> RetryPolicy:
    return RetryPolicy.from_settings(settings)


@lru_cache
def get_staging() -> StagingStore:
    return StagingStore(settings.staging_dir, settings.chunk_size)


async def call_storage(policy: RetryPolicy, fn, *args, **kwargs):
    """
    ``fn(*args, **kwargs)`` with retries.  Raises :class:`StatusError`:

    * ``<Kind>NotFound``   → Unknown("unknown <Kind>ID <key>")
    * ``UserAlreadyExists`` → AlreadyExists("user <login> already exists")
    * anything else        → Internal (details are logged, not returned)
    """
    try:
        return await retry(policy, lambda: run_in_threadpool(fn, *args, **kwargs))
    except NotFound as exc:
        raise StatusError(StatusCode.UNKNOWN, f"unknown {exc.kind}ID {exc.key}") from exc
    except UserAlreadyExists as exc:
        raise StatusError(StatusCode.ALREADY_EXISTS, f"user {exc} already exists") from exc
    except Exception as exc:
        logger.exception("storage call %s failed", getattr(fn, "__qualname__", fn))
        raise StatusError(StatusCode.INTERNAL, "internal storage error") from exc
