"""Daily entry generation: turns a developer's raw activity into reviewed-or-flagged hour entries."""

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

import pytz

from captrack.attribution.services.cross_validator import cross_validate_entry
from captrack.attribution.services.model_gateway import ModelGateway
from captrack.attribution.services.prompts import DailyActivityContext, build_daily_entry_prompt
from captrack.attribution.services.response_parser import decode_candidates, is_valid_candidates_response
from captrack.attribution.services.work_type_classifier import WorkTypeClassifier
from captrack.core.company_time import day_bounds, local_date_string, previous_dates, yesterday_string
from captrack.core.database import AttributionDatabase
from captrack.core.lock import GenerationLock
from captrack.core.models import (
    LOW_ACTIVITY_FLAG,
    ActivitySession,
    ClassificationInput,
    ClassificationResult,
    CommitRecord,
    CompletionOptions,
    CompletionResult,
    CrossValidationResult,
    DailyEntry,
    Developer,
    EntryCandidate,
    EntryStatus,
    GapDetectionResult,
    GenerationRunResult,
    HistoricalEntry,
    HistoricalStats,
    ModelResponseError,
    PeriodLockedError,
    Project,
    ProjectPhase,
    PromptType,
)
from captrack.core.settings import Settings, settings

logger = logging.getLogger(__name__)

MIN_MESSAGES = 3
MIN_ACTIVE_MINUTES = 5

UNMATCHED_ACTION = "Action needed: Assign to an existing project, create a new project, or dismiss."
LOW_ACTIVITY_ACTION = "Action needed: Verify this work actually happened on this project, adjust hours, or dismiss."
ENHANCEMENT_FALLBACK_REASON = "model flagged possible enhancement work"
ENHANCEMENT_DETECTED_NOTE = (
    "Enhancement Detected: AI classified this as active development work on a post-implementation project. "
    "Consider creating an Enhancement Project."
)


@dataclass
class CandidateEvidence:
    """Raw activity that ties a model candidate to a registered project."""

    project: Project | None
    sessions: list[ActivitySession] = field(default_factory=list)
    commits: list[CommitRecord] = field(default_factory=list)
    message_count: int = 0
    active_minutes: float = 0.0

    @property
    def session_ids(self) -> list[str]:
        return [s.id for s in self.sessions]

    @property
    def commit_ids(self) -> list[str]:
        return [c.id for c in self.commits]

    @property
    def has_evidence(self) -> bool:
        return bool(self.sessions or self.commits)

    @property
    def is_minimal(self) -> bool:
        return (
            bool(self.sessions)
            and not self.commits
            and self.message_count < MIN_MESSAGES
            and self.active_minutes < MIN_ACTIVE_MINUTES
        )


def summarize_history(entries: list[HistoricalEntry], period_days: int) -> HistoricalStats | None:
    """Average confirmed hours and projects per confirmed day, or None without history."""
    days: dict[date, set[str]] = {}
    total_hours = 0.0
    for entry in entries:
        projects = days.setdefault(entry.date, set())
        if entry.project_id:
            projects.add(entry.project_id)
        total_hours += entry.hours_confirmed or 0.0

    if not days:
        return None

    return HistoricalStats(
        avg_hours_per_day=total_hours / len(days),
        avg_projects_per_day=sum(len(p) for p in days.values()) / len(days),
        confirmed_days=len(days),
        period_days=period_days,
    )


def collect_evidence(
    project: Project | None, sessions: Iterable[ActivitySession], commits: Iterable[CommitRecord], date_str: str
) -> CandidateEvidence:
    if project is None:
        return CandidateEvidence(project=None)

    matched_sessions = [s for s in sessions if project.matches_session_path(s.project_path)]
    matched_commits = [c for c in commits if project.matches_repo_path(c.repo_path)]
    days = [s.day_view(date_str) for s in matched_sessions]
    return CandidateEvidence(
        project=project,
        sessions=matched_sessions,
        commits=matched_commits,
        message_count=sum(d.message_count for d in days),
        active_minutes=sum(d.active_minutes for d in days),
    )


def build_classification_input(candidate: EntryCandidate, evidence: CandidateEvidence, date_str: str) -> ClassificationInput:
    tool_breakdown: dict[str, int] = {}
    files: list[str] = []
    prompts: list[str] = []
    for session in evidence.sessions:
        for tool, count in (session.tool_breakdown or {}).items():
            tool_breakdown[tool] = tool_breakdown.get(tool, 0) + count
        files.extend(session.files_referenced)
        day = session.day_view(date_str)
        if day.user_prompts:
            prompts.extend(p.text for p in day.user_prompts)
        else:
            prompts.extend(day.user_prompt_samples)

    return ClassificationInput(
        tool_breakdown=tool_breakdown or None,
        files_referenced=files,
        user_prompt_samples=prompts,
        commit_messages=[c.message for c in evidence.commits],
        summary=candidate.summary,
    )


class EntryAttributionEngine:
    """Generates daily entries for every active developer and guards them before storage."""

    def __init__(
        self,
        db: AttributionDatabase | None = None,
        gateway: ModelGateway | None = None,
        classifier: WorkTypeClassifier | None = None,
        config: Settings | None = None,
    ):
        self.db = db or AttributionDatabase()
        self.config = config or settings
        self.gateway = gateway or ModelGateway(db=self.db, config=self.config)
        self.classifier = classifier or WorkTypeClassifier(self.gateway, config=self.config)

    def generate_entries_for_date(self, target_date: str | None = None) -> GenerationRunResult:
        """Generate entries for all active developers on a date (default: yesterday).

        Per-developer failures are collected in the result and never stop the run.
        """
        date_str = target_date or yesterday_string(tz_name=self.config.timezone)

        try:
            self.db.assert_period_open(date_str)
        except PeriodLockedError as e:
            logger.warning(f"Skipping generation for {date_str}: {e}")
            return GenerationRunResult(date=date_str)

        start, end = day_bounds(date_str, self.config.timezone)
        developers = self.db.list_active_developers()
        projects = self.db.list_monitored_projects()
        result = GenerationRunResult(date=date_str, developers=len(developers))

        for developer in developers:
            try:
                result.entries_created += self._generate_for_developer(developer, date_str, start, end, projects)
            except Exception as e:
                message = f"Failed to generate entries for {developer.email}: {e}"
                logger.error(message)
                result.errors.append(message)

        logger.info(
            f"Generated {result.entries_created} entries for {date_str} "
            f"({result.developers} developers, {len(result.errors)} errors)"
        )
        return result

    def generate_with_gap_detection(self, now: datetime | None = None) -> GapDetectionResult:
        """Run the daily generation, then backfill recent dates that have activity but no entries."""
        now = now or datetime.now(pytz.UTC)
        today = local_date_string(now, self.config.timezone)
        primary = self.generate_entries_for_date(yesterday_string(now, self.config.timezone))

        backfilled = []
        for date_str in previous_dates(today, 2, self.config.gap_lookback_days):
            if self.db.count_entries_for_date(date_str) > 0:
                continue

            start, end = day_bounds(date_str, self.config.timezone)
            session_count, commit_count = self.db.count_activity_between(start, end)
            if session_count == 0 and commit_count == 0:
                continue

            logger.info(f"Missing entries for {date_str} ({session_count} sessions, {commit_count} commits), generating")
            try:
                backfilled.append(self.generate_entries_for_date(date_str))
            except Exception as e:
                logger.error(f"Gap backfill failed for {date_str}: {e}")
                backfilled.append(GenerationRunResult(date=date_str, errors=[str(e)]))

        return GapDetectionResult(primary=primary, backfilled=backfilled)

    def _generate_for_developer(
        self, developer: Developer, date_str: str, start: datetime, end: datetime, projects: list[Project]
    ) -> int:
        lock = GenerationLock(developer.id, date_str, config=self.config)
        with lock.acquire() as acquired:
            if not acquired:
                logger.warning(f"Generation for {developer.email} on {date_str} is already running, skipping")
                return 0
            return self._generate_locked(developer, date_str, start, end, projects)

    def _generate_locked(
        self, developer: Developer, date_str: str, start: datetime, end: datetime, projects: list[Project]
    ) -> int:
        if self.db.count_entries(developer.id, date_str) > 0:
            logger.debug(f"Entries already exist for {developer.email} on {date_str}")
            return 0

        sessions = self.db.get_sessions_overlapping(developer.id, start, end)
        commits = self.db.get_commits_between(developer.id, start, end)
        tool_events = self.db.get_tool_events_between(developer.id, start, end)
        if not sessions and not commits and not tool_events:
            return 0

        # A multi-day session only counts on dates where its breakdown shows work
        sessions = [s for s in sessions if s.is_active_on(date_str)]
        if not sessions and not commits and not tool_events:
            return 0

        history_start = (date.fromisoformat(date_str) - timedelta(days=self.config.history_window_days)).isoformat()
        history = self.db.get_confirmed_history(developer.id, history_start, date_str)

        ctx = DailyActivityContext(
            developer=developer,
            date=date_str,
            projects=projects,
            sessions=sessions,
            commits=commits,
            tool_events=tool_events,
        )
        completion = self.gateway.complete(
            build_daily_entry_prompt(ctx, summarize_history(history, self.config.history_window_days), self.config),
            CompletionOptions(
                max_tokens=self.config.generation_max_tokens,
                json_mode=True,
                target_date=date_str,
                prompt_type=PromptType.GENERATION,
                response_check=is_valid_candidates_response,
            ),
        )

        candidates, ok = decode_candidates(completion.text)
        if not ok:
            raise ModelResponseError(f"Unparseable entry response from {completion.model_used}")
        if not candidates:
            logger.info(f"Model found no attributable work for {developer.email} on {date_str}")
            return 0

        projects_by_id = {p.id: p for p in projects}
        evidence = [
            collect_evidence(projects_by_id.get(c.project_id) if c.project_id else None, sessions, commits, date_str)
            for c in candidates
        ]
        classifications = self._classify_all(
            [build_classification_input(c, e, date_str) for c, e in zip(candidates, evidence)], date_str
        )

        entries = []
        claimed: set[str] = set()
        for candidate, candidate_evidence, classification in zip(candidates, evidence, classifications):
            validation = cross_validate_entry(
                candidate.hours_estimate, candidate.project_id, candidate.project_name, history
            )
            entry = self._build_entry(
                developer, date_str, candidate, candidate_evidence, classification, validation, claimed, commits, completion
            )
            if entry.project_id is not None:
                claimed.add(entry.project_id)
            entries.append(entry)

        return self.db.save_daily_entries(entries)

    def _classify_all(self, inputs: list[ClassificationInput], date_str: str) -> list[ClassificationResult]:
        workers = max(1, min(self.config.classification_workers, len(inputs)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(lambda data: self.classifier.classify(data, date_str), inputs))

    def _build_entry(
        self,
        developer: Developer,
        date_str: str,
        candidate: EntryCandidate,
        evidence: CandidateEvidence,
        classification: ClassificationResult,
        validation: CrossValidationResult,
        claimed: set[str],
        commits: list[CommitRecord],
        completion: CompletionResult,
    ) -> DailyEntry:
        """Apply the guard chain to one candidate. The first guard that matches decides the status."""
        footer = f"\n\n---\nConfidence: {candidate.confidence * 100:.0f}%\nReasoning: {candidate.reasoning}"
        base = dict(
            developer_id=developer.id,
            date=date_str,
            hours_raw=candidate.hours_estimate,
            adjustment_factor=developer.adjustment_factor,
            hours_estimated=round(candidate.hours_estimate * developer.adjustment_factor, 2),
            confidence_score=candidate.confidence,
            model_used=completion.model_used,
            model_fallback=completion.fallback,
            work_type=classification.work_type,
        )
        project = evidence.project

        if project is None:
            repo_commit_ids = [
                c.id for c in commits if c.repo_path.rstrip("/").split("/")[-1] in candidate.project_name
            ]
            return DailyEntry(
                **base,
                project_id=None,
                description_auto=f"⚠️ Unmatched Project: {candidate.project_name}\n\n{candidate.summary}{footer}"
                f"\n\n{UNMATCHED_ACTION}",
                source_commit_ids=repo_commit_ids,
                status=EntryStatus.FLAGGED,
                outlier_flag=validation.flag,
            )

        if project.id in claimed:
            return DailyEntry(
                **base,
                project_id=None,
                description_auto=f'⚠️ Duplicate Attribution: "{project.name}" already has an entry for this date'
                f"\n\n{candidate.summary}{footer}\n\nAction needed: Merge with the existing entry or dismiss.",
                source_session_ids=evidence.session_ids,
                source_commit_ids=evidence.commit_ids,
                status=EntryStatus.FLAGGED,
                outlier_flag=validation.flag,
            )

        if not evidence.has_evidence:
            return DailyEntry(
                **base,
                project_id=None,
                description_auto=f'⚠️ Unmatched Activity (AI suggested "{project.name}" but no matching source data '
                f"found)\n\n{candidate.summary}{footer}\n\nAction needed: Assign to the correct project or dismiss. "
                f'The session/commit paths did not match any registered paths for "{project.name}".',
                status=EntryStatus.FLAGGED,
                outlier_flag=validation.flag,
            )

        if evidence.is_minimal:
            return DailyEntry(
                **base,
                project_id=project.id,
                phase_auto=project.phase,
                description_auto=f'⚠️ Low Activity: Session path matched "{project.name}" but only '
                f"{evidence.message_count} message(s) and {round(evidence.active_minutes)} min active time on this "
                f"date.\n\n{candidate.summary}{footer}\n\n{LOW_ACTIVITY_ACTION}",
                source_session_ids=evidence.session_ids,
                status=EntryStatus.FLAGGED,
                outlier_flag=LOW_ACTIVITY_FLAG,
            )

        status = EntryStatus.PENDING
        note = ""
        if candidate.enhancement_suggested:
            status = EntryStatus.FLAGGED
            note = f"\n\n⚠️ Enhancement Suggested: {candidate.enhancement_reason or ENHANCEMENT_FALLBACK_REASON}"
        elif (
            project.phase == ProjectPhase.POST_IMPLEMENTATION
            and candidate.phase_suggestion == ProjectPhase.APPLICATION_DEVELOPMENT
        ):
            status = EntryStatus.FLAGGED
            note = f"\n\n⚠️ {ENHANCEMENT_DETECTED_NOTE}"
        elif validation.is_outlier:
            status = EntryStatus.FLAGGED

        return DailyEntry(
            **base,
            project_id=project.id,
            phase_auto=project.phase,
            description_auto=f"{candidate.summary}{footer}{note}",
            source_session_ids=evidence.session_ids,
            source_commit_ids=evidence.commit_ids,
            status=status,
            outlier_flag=validation.flag,
        )
