# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Alembic environment – runs migrations on the application's own engine.

The database URL comes from etc/app.conf (or DATABASE_URL) through the
Settings class, so there is a single source of truth for the connection
string.  SQLite cannot ALTER most constraints in place; migrations against
it run in batch mode.
"""

import os
import sys

# ---------------------------------------------------------------------------
# Path setup – make sure ``backend/`` is importable so that
# ``from core.config import settings`` and model imports work.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

from alembic import context  # noqa: E402

from core.config import settings  # noqa: E402
from database import Base, engine  # noqa: E402

# Import every ORM model so that Base.metadata knows about all tables.
import models.user        # noqa: F401, E402
import models.items       # noqa: F401, E402

_BATCH = settings.database_url.startswith("sqlite")


def run_migrations_online():
    with engine.connect() as conn:
        context.configure(
            connection=conn,
            target_metadata=Base.metadata,
            render_as_batch=_BATCH,
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


def run_migrations_offline():
    """Emit SQL to stdout without touching a database."""
    context.configure(
        url=settings.database_url,
        target_metadata=Base.metadata,
        literal_binds=True,
        render_as_batch=_BATCH,
    )
    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
