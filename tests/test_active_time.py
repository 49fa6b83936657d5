"""Tests for gap-aware active time."""

from datetime import timedelta

from conftest import utc

from captrack.core.active_time import (
    calculate_active_time,
    estimate_active_time_from_duration,
)
from captrack.core.models import ActiveTimeSource


class TestCalculateActiveTime:
    def test_calculate_active_time__no_events(self):
        result = calculate_active_time([])

        assert result.active_minutes == 0
        assert result.event_count == 0

    def test_calculate_active_time__single_event_counts_one_minute(self):
        result = calculate_active_time([utc(2026, 2, 10, 15)])

        assert result.active_minutes == 1
        assert result.event_count == 1

    def test_calculate_active_time__excludes_idle_gaps(self):
        """Gaps of five minutes or more are breaks."""
        base = utc(2026, 2, 10, 15)
        timestamps = [base, base + timedelta(minutes=2), base + timedelta(minutes=4), base + timedelta(minutes=34)]

        result = calculate_active_time(timestamps)

        assert result.active_minutes == 4
        assert result.total_minutes == 34
        assert result.idle_minutes == 30
        assert result.source == ActiveTimeSource.TOOL_EVENTS

    def test_calculate_active_time__sorts_input(self):
        base = utc(2026, 2, 10, 15)

        result = calculate_active_time([base + timedelta(minutes=3), base, base + timedelta(minutes=1)])

        assert result.active_minutes == 3


class TestEstimates:
    def test_estimate_active_time_from_duration__sixty_percent(self):
        result = estimate_active_time_from_duration(3 * 3600)

        assert result.total_minutes == 180
        assert result.active_minutes == 108
        assert result.source == ActiveTimeSource.SESSION_DURATION

    def test_estimate_active_time_from_duration__missing_duration(self):
        assert estimate_active_time_from_duration(None).active_minutes == 0
        assert estimate_active_time_from_duration(0).source == ActiveTimeSource.ESTIMATE
