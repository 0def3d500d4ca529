"""Tests for database setup and versioned migrations."""

import sqlite3

import pytest

from pidea.db.database import Database, DatabaseNotInitializedError
from pidea.db.migrations import Migration, MigrationError, MigrationRunner, registered_migrations


def _table_names(db: Database) -> set[str]:
    with db.get_connection() as conn:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    return {row["name"] for row in rows}


class TestDatabase:
    """Test schema setup."""

    def test_queries_before_setup_fail(self, tmp_path):
        db = Database(str(tmp_path / "fresh.db"))
        with pytest.raises(DatabaseNotInitializedError):
            db.execute_query("SELECT 1")

    def test_setup_creates_tables(self, database):
        tables = _table_names(database)
        assert {"chat_sessions", "chat_messages", "projects", "project_interfaces", "analysis"} <= tables
        assert database.initialized

    def test_setup_creates_parent_directory(self, tmp_path):
        db = Database(str(tmp_path / "nested" / "dir" / "pidea.db"))
        db.setup()
        assert (tmp_path / "nested" / "dir" / "pidea.db").exists()

    def test_transaction_rolls_back_on_error(self, database):
        with pytest.raises(sqlite3.Error):
            database.execute_transaction(
                [
                    (
                        "INSERT INTO chat_sessions (id, user_id, title, status, created_at, updated_at) "
                        "VALUES ('s1', 'me', 't', 'active', 'x', 'x')",
                        (),
                    ),
                    ("INSERT INTO missing_table VALUES (1)", ()),
                ]
            )

        assert database.execute_query("SELECT id FROM chat_sessions") == []


class TestMigrationRunner:
    """Test applying and rolling back migrations."""

    def test_all_registered_migrations_applied(self, database):
        runner = MigrationRunner(database)
        assert runner.applied_versions() == [m.version for m in registered_migrations()]
        assert runner.pending() == []

    def test_apply_is_idempotent(self, database):
        assert MigrationRunner(database).apply_pending() == []

    def test_rollback_newest(self, database):
        runner = MigrationRunner(database)
        newest = registered_migrations()[-1]

        assert runner.rollback() == [newest.version]
        assert "analysis" not in _table_names(database)
        assert [m.version for m in runner.pending()] == [newest.version]

        assert runner.apply_pending() == [newest.version]
        assert "analysis" in _table_names(database)

    def test_failing_migration_rolls_back(self, tmp_path):
        db = Database(str(tmp_path / "broken.db"))
        good = Migration(version=1, name="ok", up=("CREATE TABLE a (id TEXT)",), down=("DROP TABLE a",))
        bad = Migration(
            version=2,
            name="broken",
            up=("CREATE TABLE b (id TEXT)", "INSERT INTO missing_table VALUES (1)"),
            down=("DROP TABLE b",),
        )
        runner = MigrationRunner(db, [good, bad])

        with pytest.raises(MigrationError, match="002_broken"):
            runner.apply_pending()

        assert runner.applied_versions() == [1]
        assert "b" not in _table_names(db)
