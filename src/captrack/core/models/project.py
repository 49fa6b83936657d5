"""Projects and developers as seen by the attribution pipeline."""

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field


class ProjectPhase(str, Enum):
    """ASC 350-40 lifecycle phase. Only application development is capitalizable."""

    PRELIMINARY = "preliminary"
    APPLICATION_DEVELOPMENT = "application_development"
    POST_IMPLEMENTATION = "post_implementation"

    @property
    def capitalizable(self) -> bool:
        return self is ProjectPhase.APPLICATION_DEVELOPMENT


class ClaudePathMapping(BaseModel):
    """Pairs the Claude Code project directory name with the local checkout path."""

    claude_path: str
    local_path: str


class Project(BaseModel):
    """A tracked software project. Its phase is the source of truth for capitalizability."""

    id: str
    name: str
    description: str | None = None
    phase: ProjectPhase = ProjectPhase.APPLICATION_DEVELOPMENT
    management_authorized: bool = False
    probable_to_complete: bool = True
    repo_paths: list[str] = Field(default_factory=list)
    claude_paths: list[ClaudePathMapping] = Field(default_factory=list)
    parent_project_id: str | None = None
    enhancement_label: str | None = None
    go_live_date: date | None = None
    status: str = "active"
    monitored: bool = True

    @property
    def session_paths(self) -> set[str]:
        """All paths a session's project_path may carry for this project."""
        paths = set()
        for mapping in self.claude_paths:
            paths.add(mapping.claude_path)
            paths.add(mapping.local_path)
            paths.add(local_path_to_claude_path(mapping.local_path))
        return paths

    def matches_session_path(self, path: str) -> bool:
        return path in self.session_paths

    def matches_repo_path(self, path: str) -> bool:
        return path in self.repo_paths


class Developer(BaseModel):
    """A developer whose activity is attributed."""

    id: str
    email: str
    display_name: str
    adjustment_factor: float = Field(default=1.0, ge=0, description="Per-developer multiplier applied to raw hours")
    active: bool = True


def local_path_to_claude_path(local_path: str) -> str:
    """Convert a local path to the directory name Claude Code uses under ~/.claude/projects.

    /home/dev/projects/foo -> -home-dev-projects-foo
    """
    return local_path.replace("/", "-")

