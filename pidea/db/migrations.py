"""Versioned schema migrations with rollback.

Every migration is a pair of statement lists: ``up`` creates or alters schema
and ``down`` reverts it. Applied versions are recorded in ``schema_migrations``
so each migration runs once per database file.
"""
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pidea.db.database import Database


logger = structlog.get_logger(__name__)


class MigrationError(Exception):
    """Raised when a migration cannot be applied or rolled back"""
    pass


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    up: tuple[str, ...]
    down: tuple[str, ...]


_migrations: list[Migration] = []


def register_migration(version: int, name: str, up: list[str], down: list[str]) -> Migration:
    if any(m.version == version for m in _migrations):
        raise MigrationError(f"Migration version {version} is already registered")

    migration = Migration(version=version, name=name, up=tuple(up), down=tuple(down))
    _migrations.append(migration)
    _migrations.sort(key=lambda m: m.version)
    return migration


def registered_migrations() -> list[Migration]:
    return list(_migrations)


class MigrationRunner:
    def __init__(self, db: "Database", migrations: list[Migration] | None = None) -> None:
        self.db = db
        self.migrations = sorted(
            migrations if migrations is not None else registered_migrations(),
            key=lambda m: m.version,
        )

    def _ensure_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                version INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                applied_at TEXT NOT NULL
            )
            """
        )
        conn.commit()

    def applied_versions(self) -> list[int]:
        with self.db.get_connection() as conn:
            self._ensure_table(conn)
            rows = conn.execute("SELECT version FROM schema_migrations ORDER BY version").fetchall()
            return [row["version"] for row in rows]

    def pending(self) -> list[Migration]:
        applied = set(self.applied_versions())
        return [m for m in self.migrations if m.version not in applied]

    def _run_in_transaction(self, conn: sqlite3.Connection, statements: tuple[str, ...], bookkeeping: tuple[str, tuple]) -> None:
        conn.execute("BEGIN")
        try:
            for statement in statements:
                conn.execute(statement)
            conn.execute(*bookkeeping)
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise

    def apply_pending(self) -> list[int]:
        """Apply all pending migrations in version order, return applied versions"""
        applied: list[int] = []
        conn = self.db.get_connection()
        try:
            self._ensure_table(conn)
            for migration in self.pending():
                try:
                    self._run_in_transaction(
                        conn,
                        migration.up,
                        (
                            "INSERT INTO schema_migrations (version, name, applied_at) VALUES (?, ?, ?)",
                            (migration.version, migration.name, datetime.now(timezone.utc).isoformat()),
                        ),
                    )
                except sqlite3.Error as e:
                    raise MigrationError(
                        f"Migration {migration.version:03d}_{migration.name} failed: {e}"
                    ) from e

                logger.info("migration applied", version=migration.version, name=migration.name)
                applied.append(migration.version)
        finally:
            conn.close()

        return applied

    def rollback(self, steps: int = 1) -> list[int]:
        """Revert the newest applied migrations, return reverted versions"""
        by_version = {m.version: m for m in self.migrations}
        targets = sorted(self.applied_versions(), reverse=True)[:steps]

        reverted: list[int] = []
        conn = self.db.get_connection()
        try:
            for version in targets:
                migration = by_version.get(version)
                if migration is None:
                    raise MigrationError(f"Applied migration {version} is not registered, cannot roll back")
                try:
                    self._run_in_transaction(
                        conn,
                        migration.down,
                        ("DELETE FROM schema_migrations WHERE version = ?", (version,)),
                    )
                except sqlite3.Error as e:
                    raise MigrationError(
                        f"Rollback of {migration.version:03d}_{migration.name} failed: {e}"
                    ) from e

                logger.info("migration rolled back", version=migration.version, name=migration.name)
                reverted.append(version)
        finally:
            conn.close()

        return reverted


register_migration(
    version=1,
    name="create_projects",
    up=[
        """
        CREATE TABLE IF NOT EXISTS projects (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT,
            workspace_path TEXT NOT NULL,
            type TEXT NOT NULL DEFAULT 'development',
            ide_type TEXT NOT NULL DEFAULT 'cursor',
            ide_port INTEGER,
            ide_status TEXT DEFAULT 'inactive',
            backend_port INTEGER,
            frontend_port INTEGER,
            database_port INTEGER,
            start_command TEXT,
            build_command TEXT,
            dev_command TEXT,
            test_command TEXT,
            framework TEXT,
            language TEXT,
            package_manager TEXT,
            status TEXT NOT NULL DEFAULT 'active',
            priority INTEGER DEFAULT 0,
            last_accessed TEXT,
            access_count INTEGER DEFAULT 0,
            metadata TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            created_by TEXT NOT NULL DEFAULT 'me'
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_projects_workspace_path ON projects(workspace_path)",
        "CREATE INDEX IF NOT EXISTS idx_projects_status ON projects(status)",
    ],
    down=[
        "DROP INDEX IF EXISTS idx_projects_status",
        "DROP INDEX IF EXISTS idx_projects_workspace_path",
        "DROP TABLE IF EXISTS projects",
    ],
)


register_migration(
    version=2,
    name="create_project_interfaces",
    up=[
        """
        CREATE TABLE IF NOT EXISTS project_interfaces (
            id TEXT PRIMARY KEY,
            project_id TEXT NOT NULL,
            interface_type TEXT NOT NULL,
            interface_id TEXT NOT NULL,
            name TEXT,
            config TEXT,
            status TEXT NOT NULL DEFAULT 'inactive',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY (project_id) REFERENCES projects (id) ON DELETE CASCADE,
            UNIQUE (project_id, interface_id)
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_project_interfaces_project_id ON project_interfaces(project_id)",
    ],
    down=[
        "DROP INDEX IF EXISTS idx_project_interfaces_project_id",
        "DROP TABLE IF EXISTS project_interfaces",
    ],
)


register_migration(
    version=3,
    name="create_analysis",
    up=[
        """
        CREATE TABLE IF NOT EXISTS analysis (
            id TEXT PRIMARY KEY,
            project_id TEXT NOT NULL,
            analysis_type TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending',
            progress INTEGER DEFAULT 0,
            started_at TEXT,
            completed_at TEXT,
            error TEXT,
            result TEXT,
            execution_time INTEGER,
            overall_score REAL,
            critical_issues_count INTEGER DEFAULT 0,
            warnings_count INTEGER DEFAULT 0,
            recommendations_count INTEGER DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY (project_id) REFERENCES projects (id)
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_analysis_project_type ON analysis(project_id, analysis_type)",
    ],
    down=[
        "DROP INDEX IF EXISTS idx_analysis_project_type",
        "DROP TABLE IF EXISTS analysis",
    ],
)
