"""Gap-aware active time from event timestamps.

Active time is the sum of intervals between consecutive events where the gap is
below the idle threshold. Longer gaps are treated as breaks.
"""

from collections.abc import Iterable
from datetime import datetime

from captrack.core.models import ActiveTimeResult, ActiveTimeSource

IDLE_THRESHOLD_SECONDS = 5 * 60

# Share of a session's wall-clock duration assumed to be active when no events exist
DURATION_ACTIVE_RATIO = 0.6


def calculate_active_time(timestamps: Iterable[datetime]) -> ActiveTimeResult:
    """Calculate active minutes from a collection of event timestamps."""
    ordered = sorted(timestamps)

    if not ordered:
        return ActiveTimeResult(source=ActiveTimeSource.TOOL_EVENTS)

    if len(ordered) == 1:
        # A lone event still represents some work
        return ActiveTimeResult(active_minutes=1, total_minutes=1, event_count=1)

    active_seconds = 0.0
    for previous, current in zip(ordered, ordered[1:]):
        gap = (current - previous).total_seconds()
        if gap < IDLE_THRESHOLD_SECONDS:
            active_seconds += gap

    total_seconds = (ordered[-1] - ordered[0]).total_seconds()
    active_minutes = round(active_seconds / 60)
    total_minutes = round(total_seconds / 60)

    return ActiveTimeResult(
        active_minutes=active_minutes,
        total_minutes=total_minutes,
        idle_minutes=total_minutes - active_minutes,
        event_count=len(ordered),
        source=ActiveTimeSource.TOOL_EVENTS,
    )


def estimate_active_time_from_duration(duration_seconds: int | None) -> ActiveTimeResult:
    """Estimate active time from a session's duration when no events are available."""
    if not duration_seconds or duration_seconds <= 0:
        return ActiveTimeResult(source=ActiveTimeSource.ESTIMATE)

    total_minutes = round(duration_seconds / 60)
    active_minutes = round(total_minutes * DURATION_ACTIVE_RATIO)

    return ActiveTimeResult(
        active_minutes=active_minutes,
        total_minutes=total_minutes,
        idle_minutes=total_minutes - active_minutes,
        event_count=0,
        source=ActiveTimeSource.SESSION_DURATION,
    )
