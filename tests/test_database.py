"""Tests for AttributionDatabase."""

from datetime import date, timedelta

import pytest
from conftest import (
    TARGET_DATE,
    make_breakdown,
    make_commit,
    make_developer,
    make_project,
    make_session,
    make_tool_event,
    utc,
)

from captrack.core.company_time import day_bounds
from captrack.core.database import AttributionDatabase
from captrack.core.models import (
    DailyEntry,
    DuplicateEntryError,
    EntryStatus,
    ModelEvent,
    ModelEventType,
    PeriodLockedError,
    PeriodStatus,
    ProjectPhase,
    PromptType,
    WorkType,
)

DAY_START, DAY_END = day_bounds(TARGET_DATE, "America/New_York")


def make_entry(**overrides) -> DailyEntry:
    values = {
        "developer_id": "dev-1",
        "date": TARGET_DATE,
        "project_id": "proj-acme",
        "hours_raw": 3.0,
        "hours_estimated": 3.0,
        "phase_auto": ProjectPhase.APPLICATION_DEVELOPMENT,
        "work_type": WorkType.CODING,
        "source_session_ids": ["sess-row-1"],
    }
    values.update(overrides)
    return DailyEntry(**values)


class TestDatabaseInit:
    def test_init__creates_database_file_and_parent(self, tmp_path):
        db_path = tmp_path / "nested" / "captrack.db"

        AttributionDatabase(db_path)

        assert db_path.exists()

    def test_init__reopening_existing_database_is_safe(self, tmp_path):
        db = AttributionDatabase(tmp_path / "captrack.db")
        db.save_developer(make_developer())

        reopened = AttributionDatabase(tmp_path / "captrack.db")

        assert [d.id for d in reopened.list_active_developers()] == ["dev-1"]


class TestDevelopersAndProjects:
    def test_list_active_developers__excludes_inactive(self, db):
        db.save_developer(make_developer(id="dev-2", email="zed@example.com", display_name="Zed"))
        db.save_developer(make_developer())
        db.save_developer(make_developer(id="dev-3", email="old@example.com", display_name="Old", active=False))

        developers = db.list_active_developers()

        assert [d.email for d in developers] == ["ada@example.com", "zed@example.com"]

    def test_list_monitored_projects__round_trips_paths(self, db):
        db.save_project(make_project(go_live_date=date(2025, 11, 1), parent_project_id="proj-core"))

        project = db.list_monitored_projects()[0]

        assert project.repo_paths == ["/home/ada/acme"]
        assert project.claude_paths[0].claude_path == "-home-ada-acme"
        assert project.go_live_date == date(2025, 11, 1)
        assert project.parent_project_id == "proj-core"

    def test_list_monitored_projects__skips_unmonitored_and_closed(self, db):
        db.save_project(make_project())
        db.save_project(make_project(id="proj-off", name="Off", monitored=False))
        db.save_project(make_project(id="proj-dead", name="Dead", status="abandoned"))
        db.save_project(make_project(id="proj-hold", name="Hold", status="suspended"))

        assert [p.id for p in db.list_monitored_projects()] == ["proj-acme"]


class TestRawActivity:
    def test_get_sessions_overlapping__round_trips_breakdown(self, db):
        db.save_session(make_session())

        sessions = db.get_sessions_overlapping("dev-1", DAY_START, DAY_END)

        assert len(sessions) == 1
        assert sessions[0].breakdown_for(TARGET_DATE).active_minutes == 120.0
        assert sessions[0].tool_breakdown == {"Edit": 10, "Read": 8, "Bash": 7}
        assert sessions[0].started_at == utc(2026, 2, 10, 14, 0)

    def test_get_sessions_overlapping__includes_sessions_spanning_the_day(self, db):
        db.save_session(make_session(id="s-span", started_at=utc(2026, 2, 9, 20), ended_at=utc(2026, 2, 11, 8)))
        db.save_session(make_session(id="s-before", started_at=utc(2026, 2, 9, 1), ended_at=utc(2026, 2, 9, 3)))

        ids = [s.id for s in db.get_sessions_overlapping("dev-1", DAY_START, DAY_END)]

        assert ids == ["s-span"]

    def test_get_sessions_overlapping__open_session_needs_start_in_window(self, db):
        db.save_session(make_session(id="s-open", ended_at=None))
        db.save_session(make_session(id="s-stale", started_at=utc(2026, 2, 1, 9), ended_at=None))

        ids = [s.id for s in db.get_sessions_overlapping("dev-1", DAY_START, DAY_END)]

        assert ids == ["s-open"]

    def test_get_sessions_overlapping__filters_by_developer(self, db):
        db.save_session(make_session(developer_id="dev-2"))

        assert db.get_sessions_overlapping("dev-1", DAY_START, DAY_END) == []

    def test_get_commits_between__uses_utc_window(self, db):
        db.save_commit(make_commit())
        db.save_commit(make_commit(id="c-late-evening", committed_at=utc(2026, 2, 11, 3, 0)))
        db.save_commit(make_commit(id="c-next-day", committed_at=utc(2026, 2, 11, 6, 0)))

        ids = [c.id for c in db.get_commits_between("dev-1", DAY_START, DAY_END)]

        assert ids == ["commit-row-1", "c-late-evening"]

    def test_get_tool_events_between__round_trips_preview(self, db):
        db.save_tool_event(make_tool_event(response_preview="ok"))

        events = db.get_tool_events_between("dev-1", DAY_START, DAY_END)

        assert events[0].response_preview == "ok"
        assert events[0].tool_input == {"file_path": "/home/ada/acme/src/app.py"}

    def test_count_activity_between__counts_all_developers(self, db):
        db.save_session(make_session())
        db.save_session(make_session(id="sess-row-2", developer_id="dev-2"))
        db.save_commit(make_commit())

        assert db.count_activity_between(DAY_START, DAY_END) == (2, 1)


class TestDailyEntries:
    def test_save_daily_entries__round_trips(self, db):
        assert db.save_daily_entries([make_entry(outlier_flag="flag", model_fallback=True)]) == 1

        entry = db.get_daily_entries("dev-1", TARGET_DATE)[0]
        assert entry.phase_auto == ProjectPhase.APPLICATION_DEVELOPMENT
        assert entry.work_type == WorkType.CODING
        assert entry.source_session_ids == ["sess-row-1"]
        assert entry.model_fallback is True
        assert entry.outlier_flag == "flag"
        assert db.count_entries("dev-1", TARGET_DATE) == 1
        assert db.count_entries_for_date(TARGET_DATE) == 1

    def test_save_daily_entries__rejects_second_entry_for_project(self, db):
        db.save_daily_entries([make_entry()])

        with pytest.raises(DuplicateEntryError):
            db.save_daily_entries([make_entry()])

    def test_save_daily_entries__batch_is_all_or_nothing(self, db):
        db.save_daily_entries([make_entry()])

        with pytest.raises(DuplicateEntryError):
            db.save_daily_entries([make_entry(project_id="proj-other"), make_entry()])

        assert db.count_entries("dev-1", TARGET_DATE) == 1

    def test_save_daily_entries__unassigned_entries_may_repeat(self, db):
        flagged = [make_entry(project_id=None, status=EntryStatus.FLAGGED) for _ in range(2)]

        assert db.save_daily_entries(flagged) == 2

    def test_get_confirmed_history__window_and_statuses(self, db):
        start = date(2026, 1, 11)
        entries = [
            make_entry(date=(start - timedelta(days=1)).isoformat(), status=EntryStatus.CONFIRMED, hours_confirmed=9.0),
            make_entry(date=start.isoformat(), status=EntryStatus.CONFIRMED, hours_confirmed=4.0),
            make_entry(date="2026-01-20", status=EntryStatus.APPROVED, hours_confirmed=5.0),
            make_entry(date="2026-01-21", status=EntryStatus.PENDING),
            make_entry(date="2026-01-22", status=EntryStatus.DISPUTED, hours_confirmed=1.0),
            make_entry(date=TARGET_DATE, status=EntryStatus.CONFIRMED, hours_confirmed=6.0),
        ]
        db.save_daily_entries(entries)

        history = db.get_confirmed_history("dev-1", start.isoformat(), TARGET_DATE)

        assert [(h.date.isoformat(), h.hours_confirmed) for h in history] == [
            ("2026-01-11", 4.0),
            ("2026-01-20", 5.0),
        ]

    def test_update_entry_review__records_confirmation(self, db):
        entry = make_entry()
        db.save_daily_entries([entry])

        db.update_entry_review(entry.id, EntryStatus.CONFIRMED, 2.5)

        stored = db.get_daily_entries("dev-1", TARGET_DATE)[0]
        assert stored.status == EntryStatus.CONFIRMED
        assert stored.hours_confirmed == 2.5


class TestModelEvents:
    def test_save_model_event__assigns_increasing_ids(self, db):
        first = db.save_model_event(ModelEvent(event_type=ModelEventType.SUCCESS, model_attempted="m"))
        second = db.save_model_event(ModelEvent(event_type=ModelEventType.SUCCESS, model_attempted="m"))

        assert second > first

    def test_get_recent_model_events__newest_first_with_type_filter(self, db):
        for minute, event_type in enumerate([ModelEventType.FALLBACK, ModelEventType.RETRY, ModelEventType.SUCCESS]):
            db.save_model_event(
                ModelEvent(timestamp=utc(2026, 2, 10, 12, minute), event_type=event_type, model_attempted="m")
            )
        db.save_model_event(
            ModelEvent(
                timestamp=utc(2026, 2, 10, 12, 9),
                event_type=ModelEventType.SUCCESS,
                model_attempted="m",
                prompt=PromptType.CLASSIFICATION,
            )
        )

        recent = db.get_recent_model_events(
            PromptType.GENERATION, 5, event_types=[ModelEventType.SUCCESS, ModelEventType.FALLBACK]
        )

        assert [e.event_type for e in recent] == [ModelEventType.SUCCESS, ModelEventType.FALLBACK]
        assert len(db.get_recent_model_events(PromptType.GENERATION, 2)) == 2

    def test_get_model_events_since__ascending(self, db):
        db.save_model_event(ModelEvent(timestamp=utc(2026, 2, 10, 9), event_type=ModelEventType.RETRY, model_attempted="m"))
        db.save_model_event(ModelEvent(timestamp=utc(2026, 2, 10, 8), event_type=ModelEventType.ERROR, model_attempted="m"))
        db.save_model_event(ModelEvent(timestamp=utc(2026, 2, 9, 8), event_type=ModelEventType.ERROR, model_attempted="m"))

        events = db.get_model_events_since(utc(2026, 2, 10))

        assert [e.event_type for e in events] == [ModelEventType.ERROR, ModelEventType.RETRY]
        assert events[0].timestamp == utc(2026, 2, 10, 8)


class TestPeriodLocks:
    def test_get_period_status__defaults_to_open(self, db):
        assert db.get_period_status(2026, 2) == PeriodStatus.OPEN

    def test_assert_period_open__raises_only_when_locked(self, db):
        db.set_period_status(2026, 1, PeriodStatus.SOFT_CLOSE)
        db.set_period_status(2026, 2, PeriodStatus.LOCKED)

        db.assert_period_open("2026-01-31")
        with pytest.raises(PeriodLockedError, match="2026-02"):
            db.assert_period_open(TARGET_DATE)

    def test_set_period_status__replaces_existing(self, db):
        db.set_period_status(2026, 2, PeriodStatus.LOCKED)
        db.set_period_status(2026, 2, PeriodStatus.OPEN)

        assert db.get_period_status(2026, 2) == PeriodStatus.OPEN


def test_breakdown_dates_survive_storage(db):
    """Per-day slices keep their company-timezone dates."""
    db.save_session(make_session(daily_breakdown=[make_breakdown(date="2026-02-09"), make_breakdown()]))

    session = db.get_sessions_overlapping("dev-1", DAY_START, DAY_END)[0]

    assert [d.date for d in session.daily_breakdown] == ["2026-02-09", TARGET_DATE]
