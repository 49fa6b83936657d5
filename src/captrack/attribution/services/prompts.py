"""Prompt construction for daily-entry generation and work-type classification."""

from collections import Counter, defaultdict

from pydantic import BaseModel, Field

from captrack.core.active_time import calculate_active_time, estimate_active_time_from_duration
from captrack.core.company_time import format_local_time
from captrack.core.models import (
    ActivitySession,
    ClassificationInput,
    CommitRecord,
    Developer,
    HistoricalStats,
    Project,
    ToolEvent,
    WorkType,
)
from captrack.core.settings import Settings, settings

MAX_FILES_SHOWN = 10


class DailyActivityContext(BaseModel):
    """Everything the model sees about one developer's day."""

    developer: Developer
    date: str
    projects: list[Project] = Field(default_factory=list)
    sessions: list[ActivitySession] = Field(default_factory=list)
    commits: list[CommitRecord] = Field(default_factory=list)
    tool_events: list[ToolEvent] = Field(default_factory=list)


def _format_tool_counts(counts: dict[str, int]) -> str:
    ordered = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return ", ".join(f"{name}:{count}" for name, count in ordered)


def _short_path(path: str) -> str:
    return "/".join(path.split("/")[-2:])


def _project_section(projects: list[Project]) -> str:
    if not projects:
        return "No projects configured"

    lines = []
    for project in projects:
        treatment = "capitalized" if project.phase.capitalizable else "expensed"
        lines.append(f"- {project.name} (ID: {project.id}, phase: {project.phase.value}, {treatment})")
        if project.description:
            lines.append(f"    Description: {project.description}")
        if project.parent_project_id:
            label = f" ({project.enhancement_label})" if project.enhancement_label else ""
            lines.append(f"    Enhancement of project {project.parent_project_id}{label}")
        if project.go_live_date:
            lines.append(f"    Went live: {project.go_live_date.isoformat()}")
        lines.append(f"    Repos: {', '.join(project.repo_paths) or 'none'}")
        claude_paths = ", ".join(f"{m.claude_path} -> {m.local_path}" for m in project.claude_paths)
        lines.append(f"    Claude paths: {claude_paths or 'none'}")
    return "\n".join(lines)


class _TranscriptBudget:
    """Shared character budget for transcripts across all sessions in a prompt."""

    def __init__(self, limit: int):
        self.remaining = limit

    def take(self, line: str) -> bool:
        if len(line) > self.remaining:
            self.remaining = 0
            return False
        self.remaining -= len(line)
        return True


def _session_lines(session: ActivitySession, date_str: str, budget: _TranscriptBudget, tz_name: str) -> list[str]:
    day = session.day_view(date_str)
    lines = [
        f"- Session {session.session_id[:8]} | project: {session.project_path} | {day.message_count} msgs | "
        f"{day.tool_use_count} tools | {session.total_tokens} tokens | {session.model or 'unknown'}"
    ]

    if day.active_minutes > 0 and day.first_timestamp and day.last_timestamp:
        first = format_local_time(day.first_timestamp, tz_name)
        last = format_local_time(day.last_timestamp, tz_name)
        active_hours = f"{day.active_minutes / 60:.1f}"
        lines.append(f"    Active time: {active_hours}h (gap-aware: idle gaps between messages excluded)")
        wall_hours = f"{day.wall_clock_minutes / 60:.1f}" if day.wall_clock_minutes else None
        if wall_hours and wall_hours != active_hours:
            lines.append(f"    Wall clock span: {first} - {last} ({wall_hours}h total span, includes breaks)")
        else:
            lines.append(f"    Time span: {first} - {last}")
    elif session.breakdown_for(date_str) is None and session.duration_seconds:
        estimate = estimate_active_time_from_duration(session.duration_seconds)
        lines.append(
            f"    Active time: {estimate.active_minutes / 60:.1f}h (estimated from {estimate.total_minutes}min duration)"
        )

    if session.tool_breakdown:
        lines.append(f"    Tools used: {_format_tool_counts(session.tool_breakdown)}")

    if session.files_referenced:
        files = ", ".join(_short_path(f) for f in session.files_referenced[:MAX_FILES_SHOWN])
        extra = len(session.files_referenced) - MAX_FILES_SHOWN
        more = f" (+{extra} more)" if extra > 0 else ""
        lines.append(f"    Files touched: {files}{more}")

    if day.user_prompts:
        lines.append(f"    Developer conversation transcript ({len(day.user_prompts)} prompts):")
        for index, prompt in enumerate(day.user_prompts):
            line = f'      [{format_local_time(prompt.time, tz_name)}] "{prompt.text}"'
            if not budget.take(line):
                lines.append(f"      ... ({len(day.user_prompts) - index} more prompts truncated)")
                break
            lines.append(line)
    elif day.user_prompt_samples:
        lines.append(f"    Developer said ({day.user_prompt_count or len(day.user_prompt_samples)} prompts, samples):")
        for sample in day.user_prompt_samples[:8]:
            lines.append(f'      - "{sample}"')

    return lines


def _sessions_section(ctx: DailyActivityContext, config: Settings) -> str:
    if not ctx.sessions:
        return "No sessions"

    days = [session.day_view(ctx.date) for session in ctx.sessions]
    totals = (
        f"Totals: {len(ctx.sessions)} session(s) | {sum(d.message_count for d in days)} messages | "
        f"{sum(d.tool_use_count for d in days)} tool uses | {sum(d.user_prompt_count for d in days)} human prompts | "
        f"{sum(s.total_tokens for s in ctx.sessions)} tokens"
    )

    budget = _TranscriptBudget(config.transcript_char_budget)
    lines = [totals]
    for session in ctx.sessions:
        lines.extend(_session_lines(session, ctx.date, budget, config.timezone))
    return "\n".join(lines)


def _commit_line(commit: CommitRecord) -> str:
    return (
        f"- {commit.commit_hash[:8]} | {commit.repo_path} | {commit.message} | "
        f"+{commit.insertions}/-{commit.deletions} in {commit.files_changed} files"
    )


def _commits_section(ctx: DailyActivityContext) -> str:
    if not ctx.commits:
        return "No commits"

    lines = [
        f"Totals: {len(ctx.commits)} commit(s) | +{sum(c.insertions for c in ctx.commits)}"
        f"/-{sum(c.deletions for c in ctx.commits)} in {sum(c.files_changed for c in ctx.commits)} files"
    ]

    grouped: dict[str, list[CommitRecord]] = defaultdict(list)
    unmatched: list[CommitRecord] = []
    names = {project.id: project.name for project in ctx.projects}
    for commit in ctx.commits:
        project = next((p for p in ctx.projects if p.matches_repo_path(commit.repo_path)), None)
        if project is None:
            unmatched.append(commit)
        else:
            grouped[project.id].append(commit)

    for project_id, commits in grouped.items():
        lines.append(f"### {names[project_id]} (ID: {project_id})")
        lines.extend(_commit_line(c) for c in commits)
    if unmatched:
        lines.append("### Unmatched repositories")
        lines.extend(_commit_line(c) for c in unmatched)
    return "\n".join(lines)


def _tool_events_section(events: list[ToolEvent], tz_name: str) -> str:
    if not events:
        return ""

    by_project: dict[str, list[ToolEvent]] = defaultdict(list)
    for event in sorted(events, key=lambda e: e.timestamp):
        by_project[event.project_path or "unknown"].append(event)

    lines = [
        f"## Real-Time Tool Events from Hooks ({len(events)} events)",
        "These are individual tool invocations captured as they happened. They show when the assistant was "
        "executing commands or editing files and corroborate the session data above.",
    ]
    for project_path, project_events in by_project.items():
        counts = Counter(e.tool_name for e in project_events)
        active = calculate_active_time(e.timestamp for e in project_events)
        first = format_local_time(project_events[0].timestamp, tz_name)
        last = format_local_time(project_events[-1].timestamp, tz_name)
        lines.append(
            f"- Project: {project_path} | {len(project_events)} events | {first} - {last} | "
            f"{_format_tool_counts(dict(counts))} | ~{active.active_minutes} min active"
        )
    return "\n".join(lines) + "\n\n"


def _history_section(stats: HistoricalStats | None) -> str:
    if stats is None:
        return ""
    return (
        f"## Historical Baseline (last {stats.period_days} days)\n"
        f"- Confirmed days: {stats.confirmed_days}\n"
        f"- Average confirmed hours per day: {stats.avg_hours_per_day:.1f}h\n"
        f"- Average projects per day: {stats.avg_projects_per_day:.1f}\n"
        "Estimates far outside this baseline will be flagged for review; only deviate when the evidence "
        "clearly supports it.\n\n"
    )


PHASE_RULES = """## ASC 350-40 Phase Rules
- **Preliminary**: conceptual design, evaluating alternatives, choosing technology. Expensed.
- **Application Development**: coding, testing, installation, data conversion, new features and substantial
  enhancements. Capitalized.
- **Post-Implementation**: training, maintenance, minor production fixes, routine support. Expensed.

Only application development hours are eligible for capitalization. The project's recorded phase is
authoritative; your phase suggestion is advisory.

## Phase Guidance
- Default to **application_development** for coding work on a project that has not been released.
- Use **preliminary** only for pure research or evaluation with no code written.
- Use **post_implementation** only for maintenance on released software.
- New functionality on a post-implementation project is an enhancement: set `enhancementSuggested` to true and
  explain why in `enhancementReason`."""


def build_daily_entry_prompt(
    ctx: DailyActivityContext, historical_stats: HistoricalStats | None = None, config: Settings | None = None
) -> str:
    """Build the generation prompt asking for one JSON entry per project worked on."""
    config = config or settings
    return f"""You are helping track software capitalization under ASC 350-40.

## Context
Developer: {ctx.developer.display_name} ({ctx.developer.email})
Date: {ctx.date}

## Active Projects
{_project_section(ctx.projects)}

## Claude Code Sessions ({ctx.date})
{_sessions_section(ctx, config)}

## Git Commits ({ctx.date})
{_commits_section(ctx)}

{_tool_events_section(ctx.tool_events, config.timezone)}{_history_section(historical_stats)}{PHASE_RULES}

## Instructions
Group the activity for {ctx.date} by project and produce one entry per project the developer worked on.

1. **Project match**: match sessions by Claude path and commits by repo path. Use the project ID from the list
   above. If activity matches no listed project, set "projectId" to null and name the repository.
2. **Hours**: estimate active human hours. The gap-aware "Active time" is the upper bound; the developer
   directs and reviews while the assistant types, so human time is usually 30-50% of it. Use the transcript
   timestamps and commits to refine. A workday rarely exceeds 8 hours. Be conservative.
3. **Summary**: one or two sentences naming the specific features, components or fixes, using commit messages
   as the primary source.
4. **Confidence**: 0.0-1.0, how well the evidence supports the project match and the hours.
5. **Reasoning**: cite sessions, active time, prompt count, commits and lines changed.

Respond with a JSON array:
```json
[
  {{
    "projectId": "id-or-null",
    "projectName": "Project Name",
    "summary": "What was done",
    "hoursEstimate": 2.5,
    "phaseSuggestion": "application_development",
    "confidence": 0.85,
    "reasoning": "Evidence for this estimate",
    "enhancementSuggested": false,
    "enhancementReason": null
  }}
]
```

If there is no meaningful activity for the date, return an empty array: []"""


def build_classification_prompt(data: ClassificationInput) -> str:
    """Build the prompt asking the model for exactly one work category."""
    categories = ", ".join(work_type.value for work_type in WorkType)
    tools = (
        ", ".join(f"{name}:{count}" for name, count in data.tool_breakdown.items()) if data.tool_breakdown else "none"
    )
    commits = "; ".join(data.commit_messages[:5]) or "none"
    files = ", ".join(data.files_referenced[:10]) or "none"
    prompts = "; ".join(data.user_prompt_samples[:3]) or "none"
    return f"""Classify the following developer work into exactly ONE category.

Categories: {categories}

Context:
- Summary: {data.summary}
- Commit messages: {commits}
- Files: {files}
- Developer prompts: {prompts}
- Tool usage: {tools}

Respond with ONLY a JSON object: {{"workType": "category", "confidence": 0.0-1.0}}"""
