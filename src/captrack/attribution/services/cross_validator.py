"""Statistical outlier detection for hour estimates against confirmed history."""

import statistics
from collections import defaultdict
from collections.abc import Iterable

from captrack.core.models import CrossValidationResult, HistoricalEntry

MIN_DATA_POINTS = 5
Z_SCORE_THRESHOLD = 2.0
PROJECT_MULTIPLIER_THRESHOLD = 3.0


def _daily_totals(entries: Iterable[HistoricalEntry]) -> list[float]:
    totals: dict[str, float] = defaultdict(float)
    for entry in entries:
        if entry.hours_confirmed is None:
            continue
        totals[entry.date.isoformat()] += entry.hours_confirmed
    return list(totals.values())


def cross_validate_entry(
    hours_estimate: float,
    project_id: str | None,
    project_name: str,
    historical_entries: list[HistoricalEntry],
) -> CrossValidationResult:
    """Compare an estimate with the developer's trailing daily totals.

    Flags a day-level z-score beyond 2 standard deviations, and a per-project
    estimate above 3x that project's daily average. Pure, no I/O.
    """
    daily_totals = _daily_totals(historical_entries)
    if len(daily_totals) < MIN_DATA_POINTS:
        return CrossValidationResult()

    mean = statistics.fmean(daily_totals)
    std_dev = statistics.pstdev(daily_totals, mu=mean)
    z_score = (hours_estimate - mean) / std_dev if std_dev > 0 else 0.0

    flags = []
    if std_dev > 0 and abs(z_score) > Z_SCORE_THRESHOLD:
        direction = "above" if z_score > 0 else "below"
        flags.append(
            f"Hours estimate ({hours_estimate:.1f}h) is {abs(z_score):.1f} standard deviations {direction} "
            f"the 30-day average ({mean:.1f}h/day, stddev {std_dev:.1f}h)"
        )

    if project_id:
        project_entries = [
            entry for entry in historical_entries if entry.project_id == project_id and entry.hours_confirmed is not None
        ]
        if len(project_entries) >= MIN_DATA_POINTS:
            project_avg = statistics.fmean(_daily_totals(project_entries))
            if project_avg > 0 and hours_estimate > project_avg * PROJECT_MULTIPLIER_THRESHOLD:
                flags.append(
                    f'Hours for "{project_name}" ({hours_estimate:.1f}h) is >{PROJECT_MULTIPLIER_THRESHOLD:g}x '
                    f"the project average ({project_avg:.1f}h/day)"
                )

    return CrossValidationResult(
        is_outlier=bool(flags),
        flag="; ".join(flags) if flags else None,
        z_score=z_score,
        avg_hours_per_day=mean,
        std_dev=std_dev,
    )
