"""Data models for the agent event stream."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AgentEventType(str, Enum):
    """Fixed set of event kinds a run can produce."""

    TASK_START = "task_start"
    TASK_COMPLETE = "task_complete"
    TOOL_USE = "tool_use"
    FILE_EDIT = "file_edit"
    FILE_CREATE = "file_create"
    SHELL_EXEC = "shell_exec"
    THINKING = "thinking"
    ERROR = "error"
    PROGRESS = "progress"

    @property
    def is_terminal(self) -> bool:
        return self in (AgentEventType.TASK_COMPLETE, AgentEventType.ERROR)


LIFECYCLE_EVENT_TYPES = frozenset(
    {AgentEventType.TASK_START, AgentEventType.TASK_COMPLETE, AgentEventType.ERROR}
)


class AgentEvent(BaseModel):
    """One typed, ordered unit of progress information for a run."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique event id.")
    run_id: str = Field(..., description="Run this event belongs to.")
    type: AgentEventType
    timestamp: int = Field(..., description="Epoch milliseconds.")
    data: dict[str, Any] = Field(default_factory=dict)
    sequence: int = Field(..., ge=0, description="Position within the run, starting at 0.")
