"""Data models for coding-agent adapters."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from agentctl.runtime.events.models import AgentEvent  # noqa: TC001
from agentctl.runtime.process.models import SandboxProfile  # noqa: TC001


class AgentCapability(str, Enum):
    """What an external coding agent is able to do."""

    CODE_EDIT = "code-edit"
    CODE_GENERATE = "code-generate"
    CODE_REVIEW = "code-review"
    CODE_TEST = "code-test"
    CODE_DEBUG = "code-debug"
    CODE_REFACTOR = "code-refactor"
    SHELL = "shell"
    FILE_READ = "file-read"
    FILE_WRITE = "file-write"
    GIT = "git"
    WEB_SEARCH = "web-search"
    WEB_FETCH = "web-fetch"


class AgentInfo(BaseModel):
    """Static descriptor of a supported agent CLI."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    version: str = "1.0.0"
    capabilities: list[AgentCapability] = Field(default_factory=list)
    binary: str = Field(..., description="Executable name looked up on PATH.")
    required_env: list[str] = Field(default_factory=list, description="Credential variables the tool reads.")
    required_env_mode: Literal["all", "any"] = Field(
        default="all",
        description="Whether every variable is needed, or any one of them suffices.",
    )


class AgentJob(BaseModel):
    """A coding task to hand to an agent, with its workspace and constraints."""

    model_config = ConfigDict(frozen=True)

    id: str
    workspace_id: str = Field(..., description="Workspace root path.")
    agent_id: str
    task: str
    context_files: list[str] = Field(default_factory=list)
    profile: SandboxProfile
    metadata: dict[str, Any] = Field(default_factory=dict)


class DetectResult(BaseModel):
    """Whether an agent CLI is installed, and which version."""

    installed: bool
    version: str | None = None
    path: str | None = None


class AuthResult(BaseModel):
    """Whether an agent CLI appears to be authenticated."""

    valid: bool
    reason: str | None = None


class RunStatus(str, Enum):
    """Coarse lifecycle state of a run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_final(self) -> bool:
        return self in (RunStatus.COMPLETED, RunStatus.FAILED, RunStatus.CANCELLED)


class Artifact(BaseModel):
    """A file the agent reported touching during a run."""

    id: str
    run_id: str
    path: str
    operation: Literal["create", "update", "delete"]
    content: str | None = None
    diff: str | None = None
    timestamp: int = Field(..., description="Epoch milliseconds.")


class AgentRunResult(BaseModel):
    """Status snapshot of a run."""

    run_id: str
    status: RunStatus
    exit_code: int | None = None
    started_at: datetime
    completed_at: datetime | None = None
    artifacts: list[Artifact] = Field(default_factory=list)
    events: list[AgentEvent] = Field(default_factory=list)
    error_message: str | None = None
