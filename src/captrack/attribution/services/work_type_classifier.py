"""Work-type classification: ordered heuristic rules, escalated to the model when unsure."""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from captrack.attribution.services.model_gateway import ModelGateway
from captrack.attribution.services.prompts import build_classification_prompt
from captrack.attribution.services.response_parser import decode_classification, is_valid_classification_response
from captrack.core.models import (
    ClassificationInput,
    ClassificationResult,
    CompletionOptions,
    PromptType,
    WorkType,
)
from captrack.core.settings import Settings, settings

logger = logging.getLogger(__name__)

ESCALATION_THRESHOLD = 0.7

DEVOPS_KEYWORDS = re.compile(
    r"\b(deploy|ci|cd|docker|k8s|kubernetes|terraform|pipeline|github.actions|jenkins|helm|ansible|nginx|infrastructure)\b",
    re.IGNORECASE,
)
DEVOPS_FILES = re.compile(r"dockerfile|docker-compose|\.ya?ml$|terraform|\.tf$|Jenkinsfile|\.github", re.IGNORECASE)
TEST_FILES = re.compile(
    r"\.(test|spec)\.(ts|tsx|js|jsx|py|go|rs|java)$"
    r"|(^|/)test_[^/]*\.py$"
    r"|_test\.(py|go)$"
    r"|(^|/)tests?/"
)
DOC_FILES = re.compile(r"\.(md|mdx|rst|txt)$|README|CHANGELOG|LICENSE|CONTRIBUTING", re.IGNORECASE)
DEBUG_KEYWORDS = re.compile(
    r"\b(fix|bug|error|crash|issue|patch|hotfix|broken|fault|defect|exception|trace|stack)\b", re.IGNORECASE
)
REFACTOR_KEYWORDS = re.compile(
    r"\b(refactor|rename|clean|extract|reorganize|simplify|restructure|decouple|split|merge|move)\b", re.IGNORECASE
)
REVIEW_KEYWORDS = re.compile(r"\b(review|pr\b|pull.request|code.review|approve|feedback|comment)\b", re.IGNORECASE)


@dataclass(frozen=True)
class ClassificationSignals:
    """Derived counts and text the heuristic rules look at."""

    text: str
    prompt_text: str
    files: list[str]
    commit_messages: list[str]
    bash_count: int
    read_count: int
    edit_count: int
    total_tool_uses: int

    @classmethod
    def from_input(cls, data: ClassificationInput) -> "ClassificationSignals":
        breakdown = data.tool_breakdown or {}
        return cls(
            text=" ".join([*data.commit_messages, data.summary]),
            prompt_text=" ".join(data.user_prompt_samples),
            files=data.files_referenced,
            commit_messages=data.commit_messages,
            bash_count=_tool_count(breakdown, "Bash"),
            read_count=_tool_count(breakdown, "Read"),
            edit_count=_tool_count(breakdown, "Edit"),
            total_tool_uses=sum(breakdown.values()),
        )


@dataclass(frozen=True)
class HeuristicRule:
    name: str
    predicate: Callable[[ClassificationSignals], bool]
    work_type: WorkType
    confidence: float


def _tool_count(breakdown: dict[str, int], tool: str) -> int:
    return breakdown.get(tool, breakdown.get(tool.lower(), 0))


def _share(items: list[str], pattern: re.Pattern[str]) -> float:
    if not items:
        return 0.0
    return sum(1 for item in items if pattern.search(item)) / len(items)


def _bash_heavy_devops(s: ClassificationSignals) -> bool:
    return s.total_tool_uses > 0 and s.bash_count / s.total_tool_uses > 0.4 and bool(DEVOPS_KEYWORDS.search(s.text))


def _devops_config_files(s: ClassificationSignals) -> bool:
    return bool(DEVOPS_KEYWORDS.search(s.text)) and any(DEVOPS_FILES.search(f) for f in s.files)


def _mostly_tests(s: ClassificationSignals) -> bool:
    return _share(s.files, TEST_FILES) >= 0.7


def _mostly_docs(s: ClassificationSignals) -> bool:
    return _share(s.files, DOC_FILES) >= 0.7


def _fix_commits(s: ClassificationSignals) -> bool:
    return _share(s.commit_messages, DEBUG_KEYWORDS) >= 0.5


def _refactor_commits(s: ClassificationSignals) -> bool:
    return _share(s.commit_messages, REFACTOR_KEYWORDS) >= 0.5


def _read_only(s: ClassificationSignals) -> bool:
    return s.read_count > 0 and s.edit_count == 0 and len(s.commit_messages) <= 1


def _read_heavy(s: ClassificationSignals) -> bool:
    return s.read_count > 0 and s.edit_count > 0 and s.read_count / s.edit_count > 3 and not s.commit_messages


def _review_language(s: ClassificationSignals) -> bool:
    return bool(REVIEW_KEYWORDS.search(s.prompt_text) or REVIEW_KEYWORDS.search(s.text))


# First match wins, so order encodes precedence
HEURISTIC_RULES: list[HeuristicRule] = [
    HeuristicRule("bash_heavy_devops", _bash_heavy_devops, WorkType.DEVOPS, 0.85),
    HeuristicRule("devops_config_files", _devops_config_files, WorkType.DEVOPS, 0.8),
    HeuristicRule("mostly_tests", _mostly_tests, WorkType.TESTING, 0.85),
    HeuristicRule("mostly_docs", _mostly_docs, WorkType.DOCUMENTATION, 0.85),
    HeuristicRule("fix_commits", _fix_commits, WorkType.DEBUGGING, 0.8),
    HeuristicRule("refactor_commits", _refactor_commits, WorkType.REFACTORING, 0.8),
    HeuristicRule("read_only", _read_only, WorkType.RESEARCH, 0.75),
    HeuristicRule("read_heavy", _read_heavy, WorkType.RESEARCH, 0.7),
    HeuristicRule("review_language", _review_language, WorkType.CODE_REVIEW, 0.7),
]


def classify_heuristic(data: ClassificationInput) -> ClassificationResult:
    """Classify work from activity signals alone. Pure, no I/O."""
    signals = ClassificationSignals.from_input(data)

    for rule in HEURISTIC_RULES:
        if rule.predicate(signals):
            return ClassificationResult(work_type=rule.work_type, confidence=rule.confidence)

    has_evidence = bool(signals.commit_messages) and signals.total_tool_uses > 0
    return ClassificationResult(work_type=WorkType.CODING, confidence=0.6 if has_evidence else 0.5)


class WorkTypeClassifier:
    """Classifies entries, asking the model only when the heuristics are unsure."""

    def __init__(self, gateway: ModelGateway | None = None, config: Settings | None = None):
        self.config = config or settings
        self.gateway = gateway or ModelGateway(config=self.config)

    def classify(self, data: ClassificationInput, target_date: str | None = None) -> ClassificationResult:
        """Classify the work behind one entry. Never raises."""
        heuristic = classify_heuristic(data)
        if heuristic.confidence >= ESCALATION_THRESHOLD:
            return heuristic

        try:
            completion = self.gateway.complete(
                build_classification_prompt(data),
                CompletionOptions(
                    max_tokens=self.config.classification_max_tokens,
                    json_mode=True,
                    target_date=target_date,
                    prompt_type=PromptType.CLASSIFICATION,
                    response_check=is_valid_classification_response,
                ),
            )
        except Exception as e:
            logger.warning(f"Model classification unavailable, keeping heuristic {heuristic.work_type.value}: {e}")
            return heuristic

        result, ok = decode_classification(completion.text)
        if not ok or result is None:
            logger.debug(f"Unusable classification response, keeping heuristic {heuristic.work_type.value}")
            return heuristic

        return result
