"""Path and command policy enforcement."""

from agentctl.runtime.workspace.guard import WorkspaceGuard
from agentctl.runtime.workspace.models import FileOperation, ValidationResult, WorkspacePolicy

__all__ = [
    "FileOperation",
    "ValidationResult",
    "WorkspaceGuard",
    "WorkspacePolicy",
]
