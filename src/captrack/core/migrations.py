"""Database migrations for captrack."""

import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any


class Migration(ABC):
    """Base class for database migrations."""

    @property
    @abstractmethod
    def version(self) -> str:
        """Version identifier for this migration."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of this migration."""

    @abstractmethod
    def up(self, conn: sqlite3.Connection) -> None:
        """Apply the migration."""


class Migration001UniqueDailyEntries(Migration):
    """Enforce one entry per (developer, date, project) at the storage layer."""

    @property
    def version(self) -> str:
        return "001"

    @property
    def description(self) -> str:
        return "Add unique index on daily_entries (developer_id, date, project_id)"

    def up(self, conn: sqlite3.Connection) -> None:
        # Unassigned (flagged) entries legitimately share a NULL project_id
        conn.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS idx_daily_entries_unique_project
            ON daily_entries(developer_id, date, project_id)
            WHERE project_id IS NOT NULL
        """)


class Migration002ModelEventPromptIndex(Migration):
    """Speed up the circuit breaker's recent-events lookup."""

    @property
    def version(self) -> str:
        return "002"

    @property
    def description(self) -> str:
        return "Add (prompt, event_type, timestamp) index on model_events for circuit breaker lookups"

    def up(self, conn: sqlite3.Connection) -> None:
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_model_events_prompt_type_timestamp
            ON model_events(prompt, event_type, timestamp)
        """)


class Migration003ToolEventResponsePreview(Migration):
    """Store a sanitized response preview alongside tool events."""

    @property
    def version(self) -> str:
        return "003"

    @property
    def description(self) -> str:
        return "Add response_preview column to tool_events"

    def up(self, conn: sqlite3.Connection) -> None:
        try:
            conn.execute("ALTER TABLE tool_events ADD COLUMN response_preview TEXT")
        except sqlite3.OperationalError as e:
            if "duplicate column name" not in str(e).lower():
                raise


class MigrationRunner:
    """Manages database migrations."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.migrations = [
            Migration001UniqueDailyEntries(),
            Migration002ModelEventPromptIndex(),
            Migration003ToolEventResponsePreview(),
        ]

    def _get_db_connection(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _ensure_migrations_table(self, conn: sqlite3.Connection) -> None:
        """Create migrations table if it doesn't exist."""
        conn.execute("""
            CREATE TABLE IF NOT EXISTS _captrack_migrations (
                version TEXT PRIMARY KEY,
                description TEXT NOT NULL,
                applied_at TEXT NOT NULL
            )
        """)

    def _is_migration_applied(self, conn: sqlite3.Connection, version: str) -> bool:
        cursor = conn.execute("SELECT 1 FROM _captrack_migrations WHERE version = ?", (version,))
        return cursor.fetchone() is not None

    def _mark_migration_applied(self, conn: sqlite3.Connection, migration: Migration) -> None:
        conn.execute(
            """
            INSERT INTO _captrack_migrations (version, description, applied_at)
            VALUES (?, ?, ?)
            """,
            (migration.version, migration.description, datetime.now().isoformat()),
        )

    def run_migrations(self) -> list[str]:
        """Run all pending migrations."""
        applied_migrations = []

        with self._get_db_connection() as conn:
            self._ensure_migrations_table(conn)

            for migration in self.migrations:
                if not self._is_migration_applied(conn, migration.version):
                    migration.up(conn)
                    self._mark_migration_applied(conn, migration)
                    applied_migrations.append(f"{migration.version}: {migration.description}")

        return applied_migrations

    def get_migration_status(self) -> dict[str, Any]:
        """Get status of all migrations."""
        status = {"applied": [], "pending": [], "total": len(self.migrations)}

        with self._get_db_connection() as conn:
            self._ensure_migrations_table(conn)

            for migration in self.migrations:
                migration_info = {"version": migration.version, "description": migration.description}
                if self._is_migration_applied(conn, migration.version):
                    status["applied"].append(migration_info)
                else:
                    status["pending"].append(migration_info)

        return status
