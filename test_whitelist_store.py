# test_whitelist_store.py -- SQLite-backed whitelist records
import sqlite3

import pytest

import db_connection
from discord_helpers import format_date
from whitelist_store import SYNC_DISCORD_ID, SYNC_DISCORD_NAME, WhitelistStore

pytestmark = pytest.mark.skipif(db_connection.USE_POSTGRES, reason="DATABASE_URL points at PostgreSQL")


@pytest.fixture
def store(tmp_path):
    return WhitelistStore(db_path=str(tmp_path / "whitelist.db"))


def test_add_and_lookup(store):
    assert store.is_whitelisted("Steve") is None

    store.add("Steve", 1234, "steve#0001")
    row = store.is_whitelisted("Steve")
    assert row["username"] == "Steve"
    assert row["added_by_discord_id"] == "1234"
    assert row["added_by_discord_username"] == "steve#0001"
    format_date(row["added_at"])            # SQLite timestamp string is parseable


def test_duplicate_username_rejected(store):
    store.add("Steve", 1, "a")
    with pytest.raises(sqlite3.IntegrityError):
        store.add("Steve", 2, "b")


def test_remove(store):
    store.add("Steve", 1, "a")
    assert store.remove("Steve") is True
    assert store.remove("Steve") is False
    assert store.is_whitelisted("Steve") is None


def test_get_all_newest_first(store):
    for name in ("Alice", "Bob", "Carol"):
        store.add(name, 1, "admin")
    assert [r["username"] for r in store.get_all()] == ["Carol", "Bob", "Alice"]


def test_sync_with_server_whitelist(store):
    store.add("Alice", 1, "admin")
    store.add("Ghost", 1, "admin")

    server = [
        {"uuid": "u1", "name": "alice"},      # same player, different case
        {"uuid": "u2", "name": "Bob"},
        {"uuid": "u3"},                       # malformed entry ignored
    ]
    assert store.sync_with_server_whitelist(server) == {"added": 1, "removed": 1}

    names = {r["username"] for r in store.get_all()}
    assert names == {"Alice", "Bob"}
    bob = store.is_whitelisted("Bob")
    assert bob["added_by_discord_id"] == SYNC_DISCORD_ID
    assert bob["added_by_discord_username"] == SYNC_DISCORD_NAME

    # second pass is a no-op
    assert store.sync_with_server_whitelist(server) == {"added": 0, "removed": 0}


def test_store_reopens_existing_database(tmp_path):
    path = str(tmp_path / "whitelist.db")
    WhitelistStore(db_path=path).add("Steve", 1, "a")
    assert WhitelistStore(db_path=path).is_whitelisted("Steve") is not None


def test_failed_write_is_not_committed(store):
    with pytest.raises(sqlite3.OperationalError):
        with db_connection.connection(store.db_path) as conn:
            conn.cursor().execute(
                "INSERT INTO whitelist (username, added_by_discord_id, added_by_discord_username) "
                "VALUES ('Steve', '1', 'a')"
            )
            conn.cursor().execute("SELECT * FROM no_such_table")
    assert store.is_whitelisted("Steve") is None


@pytest.mark.parametrize("raw,expected", [
    ("postgres://u:p@db:5432/wl", "postgresql://u:p@db:5432/wl"),
    ("postgresql://u:p@db/wl", "postgresql://u:p@db/wl"),
    ("sqlite:///whitelist.db", ""),
    ("", ""),
])
def test_postgres_url_normalised(monkeypatch, raw, expected):
    monkeypatch.setenv("DATABASE_URL", raw)
    assert db_connection._postgres_url() == expected
