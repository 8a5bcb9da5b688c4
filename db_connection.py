"""
db_connection.py — Backend selection for the whitelist store

  DATABASE_URL set and reachable  -> PostgreSQL (psycopg2)
  otherwise                       -> SQLite file at DB_PATH

The backend is chosen once at import. WhitelistStore writes its SQL once and
asks this module for the engine-specific bits (placeholder, row cursor,
primary key column).
"""
import os
import sqlite3
from contextlib import contextmanager

import config


def _postgres_url() -> str:
    """DATABASE_URL in the postgresql:// form psycopg2 expects, or ''."""
    url = os.getenv("DATABASE_URL", "").strip()
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url if url.startswith("postgresql://") else ""


def _postgres_reachable(url: str) -> bool:
    try:
        psycopg2.connect(url).close()
    except Exception as e:
        print(f"[DB] PostgreSQL unavailable ({e}), whitelist store falls back to SQLite")
        return False
    return True


DATABASE_URL = _postgres_url()
USE_POSTGRES = False

if DATABASE_URL:
    import psycopg2
    import psycopg2.extras
    USE_POSTGRES = _postgres_reachable(DATABASE_URL)

print(f"[DB] Whitelist store backend: {'PostgreSQL' if USE_POSTGRES else 'SQLite'}")


def get_conn(sqlite_path: str = None):
    if USE_POSTGRES:
        return psycopg2.connect(DATABASE_URL)
    conn = sqlite3.connect(sqlite_path or config.DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def connection(sqlite_path: str = None):
    """Open, commit on success, always close."""
    conn = get_conn(sqlite_path)
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def ph() -> str:
    return "%s" if USE_POSTGRES else "?"


def dict_cursor(conn):
    """Cursor whose rows convert with dict(row) on either engine."""
    if USE_POSTGRES:
        return conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
    return conn.cursor()


def serial_pk() -> str:
    return "SERIAL PRIMARY KEY" if USE_POSTGRES else "INTEGER PRIMARY KEY AUTOINCREMENT"
