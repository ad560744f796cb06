# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
SQLAlchemy engine, session factory, declarative base, and the FastAPI
dependency that provides a DB session per request.
"""

import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from core.config import settings

# pool_pre_ping keeps idle connections alive across server-side timeouts
engine = create_engine(settings.database_url, pool_pre_ping=True)

# Rows stay readable after commit; handlers convert them outside the session
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

Base = declarative_base()


@event.listens_for(Engine, "connect")
def _sqlite_foreign_keys(dbapi_connection, _connection_record):
    # SQLite ignores REFERENCES unless asked; item rows must point at a user
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_db():
    """
    FastAPI dependency.  Yields a session for the duration of the request,
    then closes it.  Use with Depends(get_db).
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
