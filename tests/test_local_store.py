"""Tests for the SQLite key-value local store."""

import sqlite3

import pytest

from pym_write.errors import PersistenceError
from pym_write.local_store import HISTORY_KEY, THEME_KEY, LocalStore


class TestLocalStore:
    """Tests for LocalStore basics."""

    def test_init_creates_db(self, temp_db):
        """Initializing creates database file."""
        LocalStore(temp_db)
        assert temp_db.exists()

    def test_init_creates_parent_directory(self, tmp_path):
        """Missing parent directories are created."""
        path = tmp_path / "nested" / "dir" / "store.db"
        LocalStore(path)
        assert path.exists()

    def test_init_creates_table(self, store):
        """kv_store table exists after init."""
        conn = store._get_connection()
        try:
            tables = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
            assert "kv_store" in [t[0] for t in tables]
        finally:
            conn.close()


class TestKeyValueOperations:
    """Tests for get/set/remove."""

    def test_get_absent_key(self, store):
        """Unset keys should read as None.
test_set_then_get"""
        assert store.get(THEME_KEY) is None

    def test_set_then_get(self, store):
        """A stored value should read back unchanged."""
        store.set(THEME_KEY, "dark")
        assert store.get(THEME_KEY) == "dark"

    def test_set_overwrites(self, store):
        """Setting a key again should replace its value."""
        store.set(THEME_KEY, "dark")
        store.set(THEME_KEY, "typewriter")
        assert store.get(THEME_KEY) == "typewriter"

    def test_values_survive_reopen(self, temp_db):
        """A second store on the same file sees committed values."""
        LocalStore(temp_db).set(HISTORY_KEY, "[]")
        assert LocalStore(temp_db).get(HISTORY_KEY) == "[]"

    def test_remove(self, store):
        """Removed keys should read as None."""
        store.set(THEME_KEY, "dark")
        store.remove(THEME_KEY)
        assert store.get(THEME_KEY) is None

    def test_remove_absent_key_is_not_an_error(self, store):
        """Removing an unset key should do nothing."""
        store.remove("never-set")
        assert store.get("never-set") is None

    def test_keys_sorted(self, store):
        """keys should list stored keys in order."""
        store.set("b", "2")
        store.set("a", "1")
        assert store.keys() == ["a", "b"]

    def test_empty_string_value(self, store):
        """An empty string is a stored value, not an absent one."""
        store.set("k", "")
        assert store.get("k") == ""


class TestStoreErrors:
    """sqlite failures surface as PersistenceError."""

    def test_sqlite_error_wrapped(self, store, monkeypatch):
        """sqlite errors should surface as PersistenceError."""
        def broken_connection():
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(store, "_get_connection", broken_connection)

        with pytest.raises(PersistenceError):
            store.set(THEME_KEY, "dark")

    def test_unopenable_path(self, tmp_path):
        """A directory in place of the database file cannot be opened."""
        path = tmp_path / "store.db"
        path.mkdir()
        with pytest.raises(PersistenceError):
            LocalStore(path)
