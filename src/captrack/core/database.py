"""Database operations for activity records, daily entries and model telemetry."""

import json
import logging
import sqlite3
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path

from captrack.core.company_time import as_utc
from captrack.core.migrations import MigrationRunner
from captrack.core.models import (
    ActivitySession,
    ClaudePathMapping,
    CommitRecord,
    DailyBreakdown,
    DailyEntry,
    Developer,
    DuplicateEntryError,
    EntryStatus,
    HistoricalEntry,
    ModelEvent,
    ModelEventType,
    PeriodLockedError,
    PeriodStatus,
    Project,
    ProjectPhase,
    PromptType,
    ToolEvent,
    WorkType,
)
from captrack.core.settings import settings

logger = logging.getLogger(__name__)

INACTIVE_PROJECT_STATUSES = ("abandoned", "suspended")
HISTORY_STATUSES = (EntryStatus.CONFIRMED.value, EntryStatus.APPROVED.value)


def _ts(value: datetime) -> str:
    """Fixed-width UTC ISO timestamp so stored values sort lexicographically."""
    return as_utc(value).isoformat(timespec="microseconds")


def _ts_or_none(value: datetime | None) -> str | None:
    return _ts(value) if value is not None else None


class AttributionDatabase:
    """Manages the SQLite store behind the attribution pipeline."""

    def __init__(self, db_path: Path | None = None):
        if db_path is None:
            db_path = settings.resolved_database_path
        else:
            db_path = Path(db_path)

        self.db_path = db_path.resolve()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._create_tables()
        self._run_migrations()

    @contextmanager
    def _get_db_connection(self) -> Generator[sqlite3.Connection]:
        """Context manager that ensures database connections are properly closed."""
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA journal_mode=WAL")
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _run_migrations(self) -> None:
        """Run any pending database migrations."""
        migration_runner = MigrationRunner(self.db_path)
        applied_migrations = migration_runner.run_migrations()

        if applied_migrations:
            logger.debug(f"Applied migrations: {applied_migrations}")

    def _create_tables(self) -> None:
        """Create database tables."""
        with self._get_db_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS developers (
                    id TEXT PRIMARY KEY,
                    email TEXT NOT NULL,
                    display_name TEXT NOT NULL,
                    adjustment_factor REAL NOT NULL DEFAULT 1.0,
                    active INTEGER NOT NULL DEFAULT 1
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS projects (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT,
                    phase TEXT NOT NULL,
                    management_authorized INTEGER NOT NULL DEFAULT 0,
                    probable_to_complete INTEGER NOT NULL DEFAULT 1,
                    repo_paths TEXT DEFAULT '[]',
                    claude_paths TEXT DEFAULT '[]',
                    parent_project_id TEXT,
                    enhancement_label TEXT,
                    go_live_date TEXT,
                    status TEXT NOT NULL DEFAULT 'active',
                    monitored INTEGER NOT NULL DEFAULT 1
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS activity_sessions (
                    id TEXT PRIMARY KEY,
                    developer_id TEXT NOT NULL,
                    session_id TEXT NOT NULL,
                    project_path TEXT NOT NULL,
                    started_at TEXT NOT NULL,
                    ended_at TEXT,
                    duration_seconds INTEGER,
                    total_input_tokens INTEGER DEFAULT 0,
                    total_output_tokens INTEGER DEFAULT 0,
                    message_count INTEGER DEFAULT 0,
                    tool_use_count INTEGER DEFAULT 0,
                    model TEXT,
                    tool_breakdown TEXT,
                    files_referenced TEXT DEFAULT '[]',
                    first_user_prompt TEXT,
                    user_prompt_count INTEGER,
                    daily_breakdown TEXT
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS commits (
                    id TEXT PRIMARY KEY,
                    developer_id TEXT NOT NULL,
                    commit_hash TEXT NOT NULL,
                    repo_path TEXT NOT NULL,
                    committed_at TEXT NOT NULL,
                    message TEXT NOT NULL,
                    files_changed INTEGER DEFAULT 0,
                    insertions INTEGER DEFAULT 0,
                    deletions INTEGER DEFAULT 0
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS tool_events (
                    id TEXT PRIMARY KEY,
                    developer_id TEXT NOT NULL,
                    tool_name TEXT NOT NULL,
                    project_path TEXT,
                    timestamp TEXT NOT NULL,
                    tool_input TEXT DEFAULT '{}'
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS daily_entries (
                    id TEXT PRIMARY KEY,
                    developer_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    project_id TEXT,
                    hours_raw REAL NOT NULL,
                    adjustment_factor REAL NOT NULL DEFAULT 1.0,
                    hours_estimated REAL NOT NULL,
                    phase_auto TEXT,
                    description_auto TEXT,
                    confidence_score REAL,
                    model_used TEXT,
                    model_fallback INTEGER DEFAULT 0,
                    source_session_ids TEXT DEFAULT '[]',
                    source_commit_ids TEXT DEFAULT '[]',
                    status TEXT NOT NULL,
                    work_type TEXT,
                    outlier_flag TEXT,
                    hours_confirmed REAL,
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS model_events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    event_type TEXT NOT NULL,
                    model_attempted TEXT NOT NULL,
                    model_used TEXT,
                    target_date TEXT,
                    error_message TEXT,
                    attempt INTEGER,
                    latency_ms INTEGER,
                    prompt TEXT NOT NULL DEFAULT 'generation'
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS period_locks (
                    year INTEGER NOT NULL,
                    month INTEGER NOT NULL,
                    status TEXT NOT NULL,
                    PRIMARY KEY (year, month)
                )
            """)

            conn.execute("CREATE INDEX IF NOT EXISTS idx_sessions_developer ON activity_sessions(developer_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_commits_developer ON commits(developer_id, committed_at)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tool_events_developer ON tool_events(developer_id, timestamp)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_daily_entries_date ON daily_entries(date)")

    def save_developer(self, developer: Developer) -> None:
        with self._get_db_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO developers (id, email, display_name, adjustment_factor, active)
                VALUES (?, ?, ?, ?, ?)
            """,
                (
                    developer.id,
                    developer.email,
                    developer.display_name,
                    developer.adjustment_factor,
                    int(developer.active),
                ),
            )

    def list_active_developers(self) -> list[Developer]:
        """Get all developers whose activity should be attributed."""
        with self._get_db_connection() as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute("SELECT * FROM developers WHERE active = 1 ORDER BY email").fetchall()
            return [
                Developer(
                    id=row["id"],
                    email=row["email"],
                    display_name=row["display_name"],
                    adjustment_factor=row["adjustment_factor"],
                    active=bool(row["active"]),
                )
                for row in rows
            ]

    def save_project(self, project: Project) -> None:
        with self._get_db_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO projects (
                    id, name, description, phase, management_authorized, probable_to_complete,
                    repo_paths, claude_paths, parent_project_id, enhancement_label,
                    go_live_date, status, monitored
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    project.id,
                    project.name,
                    project.description,
                    project.phase.value,
                    int(project.management_authorized),
                    int(project.probable_to_complete),
                    json.dumps(project.repo_paths),
                    json.dumps([mapping.model_dump() for mapping in project.claude_paths]),
                    project.parent_project_id,
                    project.enhancement_label,
                    project.go_live_date.isoformat() if project.go_live_date else None,
                    project.status,
                    int(project.monitored),
                ),
            )

    def list_monitored_projects(self) -> list[Project]:
        """Get the projects the pipeline may attribute hours to."""
        placeholders = ",".join("?" for _ in INACTIVE_PROJECT_STATUSES)
        with self._get_db_connection() as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                f"SELECT * FROM projects WHERE monitored = 1 AND status NOT IN ({placeholders}) ORDER BY name",
                INACTIVE_PROJECT_STATUSES,
            ).fetchall()

            return [
                Project(
                    id=row["id"],
                    name=row["name"],
                    description=row["description"],
                    phase=ProjectPhase(row["phase"]),
                    management_authorized=bool(row["management_authorized"]),
                    probable_to_complete=bool(row["probable_to_complete"]),
                    repo_paths=json.loads(row["repo_paths"] or "[]"),
                    claude_paths=[ClaudePathMapping(**item) for item in json.loads(row["claude_paths"] or "[]")],
                    parent_project_id=row["parent_project_id"],
                    enhancement_label=row["enhancement_label"],
                    go_live_date=date.fromisoformat(row["go_live_date"]) if row["go_live_date"] else None,
                    status=row["status"],
                    monitored=bool(row["monitored"]),
                )
                for row in rows
            ]

    def save_session(self, session: ActivitySession) -> None:
        with self._get_db_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO activity_sessions (
                    id, developer_id, session_id, project_path, started_at, ended_at,
                    duration_seconds, total_input_tokens, total_output_tokens, message_count,
                    tool_use_count, model, tool_breakdown, files_referenced, first_user_prompt,
                    user_prompt_count, daily_breakdown
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    session.id,
                    session.developer_id,
                    session.session_id,
                    session.project_path,
                    _ts(session.started_at),
                    _ts_or_none(session.ended_at),
                    session.duration_seconds,
                    session.total_input_tokens,
                    session.total_output_tokens,
                    session.message_count,
                    session.tool_use_count,
                    session.model,
                    json.dumps(session.tool_breakdown) if session.tool_breakdown is not None else None,
                    json.dumps(session.files_referenced),
                    session.first_user_prompt,
                    session.user_prompt_count,
                    json.dumps([day.model_dump(mode="json") for day in session.daily_breakdown])
                    if session.daily_breakdown is not None
                    else None,
                ),
            )

    def get_sessions_overlapping(self, developer_id: str, start: datetime, end: datetime) -> list[ActivitySession]:
        """Get sessions whose time span overlaps [start, end].

        Open sessions (no end time) only count when they started inside the window.
        """
        with self._get_db_connection() as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                """
                SELECT * FROM activity_sessions
                WHERE developer_id = ?
                  AND started_at <= ?
                  AND (ended_at >= ? OR (ended_at IS NULL AND started_at >= ?))
                ORDER BY started_at
            """,
                (developer_id, _ts(end), _ts(start), _ts(start)),
            ).fetchall()

            sessions = []
            for row in rows:
                breakdown = None
                if row["daily_breakdown"]:
                    breakdown = [DailyBreakdown.model_validate(day) for day in json.loads(row["daily_breakdown"])]

                sessions.append(
                    ActivitySession(
                        id=row["id"],
                        developer_id=row["developer_id"],
                        session_id=row["session_id"],
                        project_path=row["project_path"],
                        started_at=datetime.fromisoformat(row["started_at"]),
                        ended_at=datetime.fromisoformat(row["ended_at"]) if row["ended_at"] else None,
                        duration_seconds=row["duration_seconds"],
                        total_input_tokens=row["total_input_tokens"] or 0,
                        total_output_tokens=row["total_output_tokens"] or 0,
                        message_count=row["message_count"] or 0,
                        tool_use_count=row["tool_use_count"] or 0,
                        model=row["model"],
                        tool_breakdown=json.loads(row["tool_breakdown"]) if row["tool_breakdown"] else None,
                        files_referenced=json.loads(row["files_referenced"] or "[]"),
                        first_user_prompt=row["first_user_prompt"],
                        user_prompt_count=row["user_prompt_count"],
                        daily_breakdown=breakdown,
                    )
                )
            return sessions

    def save_commit(self, commit: CommitRecord) -> None:
        with self._get_db_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO commits (
                    id, developer_id, commit_hash, repo_path, committed_at,
                    message, files_changed, insertions, deletions
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    commit.id,
                    commit.developer_id,
                    commit.commit_hash,
                    commit.repo_path,
                    _ts(commit.committed_at),
                    commit.message,
                    commit.files_changed,
                    commit.insertions,
                    commit.deletions,
                ),
            )

    def get_commits_between(self, developer_id: str, start: datetime, end: datetime) -> list[CommitRecord]:
        with self._get_db_connection() as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                """
                SELECT * FROM commits
                WHERE developer_id = ? AND committed_at >= ? AND committed_at <= ?
                ORDER BY committed_at
            """,
                (developer_id, _ts(start), _ts(end)),
            ).fetchall()

            return [
                CommitRecord(
                    id=row["id"],
                    developer_id=row["developer_id"],
                    commit_hash=row["commit_hash"],
                    repo_path=row["repo_path"],
                    committed_at=datetime.fromisoformat(row["committed_at"]),
                    message=row["message"],
                    files_changed=row["files_changed"] or 0,
                    insertions=row["insertions"] or 0,
                    deletions=row["deletions"] or 0,
                )
                for row in rows
            ]

    def save_tool_event(self, event: ToolEvent) -> None:
        with self._get_db_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO tool_events (
                    id, developer_id, tool_name, project_path, timestamp, tool_input, response_preview
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    event.id,
                    event.developer_id,
                    event.tool_name,
                    event.project_path,
                    _ts(event.timestamp),
                    json.dumps(event.tool_input),
                    event.response_preview,
                ),
            )

    def get_tool_events_between(self, developer_id: str, start: datetime, end: datetime) -> list[ToolEvent]:
        with self._get_db_connection() as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                """
                SELECT * FROM tool_events
                WHERE developer_id = ? AND timestamp >= ? AND timestamp <= ?
                ORDER BY timestamp
            """,
                (developer_id, _ts(start), _ts(end)),
            ).fetchall()

            return [
                ToolEvent(
                    id=row["id"],
                    developer_id=row["developer_id"],
                    tool_name=row["tool_name"],
                    project_path=row["project_path"],
                    timestamp=datetime.fromisoformat(row["timestamp"]),
                    tool_input=json.loads(row["tool_input"] or "{}"),
                    response_preview=row["response_preview"],
                )
                for row in rows
            ]

    def count_activity_between(self, start: datetime, end: datetime) -> tuple[int, int]:
        """Count raw sessions and commits in a window across all developers.

        Returns:
            Tuple of (session_count, commit_count)
        """
        with self._get_db_connection() as conn:
            session_count = conn.execute(
                """
                SELECT COUNT(*) FROM activity_sessions
                WHERE started_at <= ? AND (ended_at >= ? OR (ended_at IS NULL AND started_at >= ?))
            """,
                (_ts(end), _ts(start), _ts(start)),
            ).fetchone()[0]
            commit_count = conn.execute(
                "SELECT COUNT(*) FROM commits WHERE committed_at >= ? AND committed_at <= ?",
                (_ts(start), _ts(end)),
            ).fetchone()[0]
            return session_count, commit_count

    def count_entries(self, developer_id: str, date_str: str) -> int:
        with self._get_db_connection() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM daily_entries WHERE developer_id = ? AND date = ?",
                (developer_id, date_str),
            ).fetchone()[0]

    def count_entries_for_date(self, date_str: str) -> int:
        with self._get_db_connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM daily_entries WHERE date = ?", (date_str,)).fetchone()[0]

    def save_daily_entries(self, entries: Iterable[DailyEntry]) -> int:
        """Save a developer's entries for one date in a single transaction.

        Raises:
            DuplicateEntryError: If an entry for the same (developer, date, project) already exists
        """
        entries = list(entries)
        try:
            with self._get_db_connection() as conn:
                conn.executemany(
                    """
                    INSERT INTO daily_entries (
                        id, developer_id, date, project_id, hours_raw, adjustment_factor,
                        hours_estimated, phase_auto, description_auto, confidence_score,
                        model_used, model_fallback, source_session_ids, source_commit_ids,
                        status, work_type, outlier_flag, hours_confirmed, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                    [
                        (
                            entry.id,
                            entry.developer_id,
                            entry.date,
                            entry.project_id,
                            entry.hours_raw,
                            entry.adjustment_factor,
                            entry.hours_estimated,
                            entry.phase_auto.value if entry.phase_auto else None,
                            entry.description_auto,
                            entry.confidence_score,
                            entry.model_used,
                            int(entry.model_fallback),
                            json.dumps(entry.source_session_ids),
                            json.dumps(entry.source_commit_ids),
                            entry.status.value,
                            entry.work_type.value if entry.work_type else None,
                            entry.outlier_flag,
                            entry.hours_confirmed,
                            _ts(entry.created_at),
                        )
                        for entry in entries
                    ],
                )
        except sqlite3.IntegrityError as e:
            raise DuplicateEntryError(f"Daily entry already exists: {e}") from e

        return len(entries)

    def get_daily_entries(self, developer_id: str | None = None, date_str: str | None = None) -> list[DailyEntry]:
        query = "SELECT * FROM daily_entries WHERE 1 = 1"
        params: list[str] = []
        if developer_id is not None:
            query += " AND developer_id = ?"
            params.append(developer_id)
        if date_str is not None:
            query += " AND date = ?"
            params.append(date_str)
        query += " ORDER BY date, created_at"

        with self._get_db_connection() as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(query, params).fetchall()

            return [
                DailyEntry(
                    id=row["id"],
                    developer_id=row["developer_id"],
                    date=row["date"],
                    project_id=row["project_id"],
                    hours_raw=row["hours_raw"],
                    adjustment_factor=row["adjustment_factor"],
                    hours_estimated=row["hours_estimated"],
                    phase_auto=ProjectPhase(row["phase_auto"]) if row["phase_auto"] else None,
                    description_auto=row["description_auto"] or "",
                    confidence_score=row["confidence_score"] or 0.0,
                    model_used=row["model_used"],
                    model_fallback=bool(row["model_fallback"]),
                    source_session_ids=json.loads(row["source_session_ids"] or "[]"),
                    source_commit_ids=json.loads(row["source_commit_ids"] or "[]"),
                    status=EntryStatus(row["status"]),
                    work_type=WorkType(row["work_type"]) if row["work_type"] else None,
                    outlier_flag=row["outlier_flag"],
                    hours_confirmed=row["hours_confirmed"],
                    created_at=datetime.fromisoformat(row["created_at"]),
                )
                for row in rows
            ]

    def update_entry_review(self, entry_id: str, status: EntryStatus, hours_confirmed: float | None) -> None:
        """Record the outcome of human review on an entry."""
        with self._get_db_connection() as conn:
            conn.execute(
                "UPDATE daily_entries SET status = ?, hours_confirmed = ? WHERE id = ?",
                (status.value, hours_confirmed, entry_id),
            )

    def get_confirmed_history(self, developer_id: str, start_date: str, end_date: str) -> list[HistoricalEntry]:
        """Get reviewed entries with dates in [start_date, end_date)."""
        placeholders = ",".join("?" for _ in HISTORY_STATUSES)
        with self._get_db_connection() as conn:
            rows = conn.execute(
                f"""
                SELECT date, hours_confirmed, project_id FROM daily_entries
                WHERE developer_id = ? AND date >= ? AND date < ? AND status IN ({placeholders})
                ORDER BY date
            """,
                (developer_id, start_date, end_date, *HISTORY_STATUSES),
            ).fetchall()

            return [
                HistoricalEntry(date=date.fromisoformat(row[0]), hours_confirmed=row[1], project_id=row[2])
                for row in rows
            ]

    def save_model_event(self, event: ModelEvent) -> int:
        with self._get_db_connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO model_events (
                    timestamp, event_type, model_attempted, model_used, target_date,
                    error_message, attempt, latency_ms, prompt
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    _ts(event.timestamp),
                    event.event_type.value,
                    event.model_attempted,
                    event.model_used,
                    event.target_date,
                    event.error_message,
                    event.attempt,
                    event.latency_ms,
                    event.prompt.value,
                ),
            )
            return cursor.lastrowid or 0

    def _row_to_model_event(self, row: sqlite3.Row) -> ModelEvent:
        return ModelEvent(
            id=row["id"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
            event_type=ModelEventType(row["event_type"]),
            model_attempted=row["model_attempted"],
            model_used=row["model_used"],
            target_date=row["target_date"],
            error_message=row["error_message"],
            attempt=row["attempt"],
            latency_ms=row["latency_ms"],
            prompt=PromptType(row["prompt"]),
        )

    def get_recent_model_events(
        self, prompt: PromptType, limit: int, event_types: Iterable[ModelEventType] | None = None
    ) -> list[ModelEvent]:
        """Get the newest model events for a prompt type, newest first."""
        query = "SELECT * FROM model_events WHERE prompt = ?"
        params: list[str | int] = [prompt.value]
        if event_types is not None:
            types = [event_type.value for event_type in event_types]
            query += f" AND event_type IN ({','.join('?' for _ in types)})"
            params.extend(types)
        query += " ORDER BY timestamp DESC, id DESC LIMIT ?"
        params.append(limit)

        with self._get_db_connection() as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(query, params).fetchall()
            return [self._row_to_model_event(row) for row in rows]

    def get_model_events_since(self, since: datetime) -> list[ModelEvent]:
        with self._get_db_connection() as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                "SELECT * FROM model_events WHERE timestamp >= ? ORDER BY timestamp, id",
                (_ts(since),),
            ).fetchall()
            return [self._row_to_model_event(row) for row in rows]

    def get_period_status(self, year: int, month: int) -> PeriodStatus:
        """Get the lock state of an accounting period. Unknown periods are open."""
        with self._get_db_connection() as conn:
            row = conn.execute(
                "SELECT status FROM period_locks WHERE year = ? AND month = ?", (year, month)
            ).fetchone()
            return PeriodStatus(row[0]) if row else PeriodStatus.OPEN

    def set_period_status(self, year: int, month: int, status: PeriodStatus) -> None:
        with self._get_db_connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO period_locks (year, month, status) VALUES (?, ?, ?)",
                (year, month, status.value),
            )

    def assert_period_open(self, date_str: str) -> None:
        """Raise if the accounting period containing the date is locked.

        Raises:
            PeriodLockedError: If the period is locked
        """
        day = date.fromisoformat(date_str)
        if self.get_period_status(day.year, day.month) == PeriodStatus.LOCKED:
            raise PeriodLockedError(day.year, day.month)
