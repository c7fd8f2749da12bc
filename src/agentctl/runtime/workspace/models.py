"""Data models for the workspace policy subsystem."""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FileOperation(str, Enum):
    """Kind of file access being validated."""

    READ = "read"
    WRITE = "write"
    DELETE = "delete"


class WorkspacePolicy(BaseModel):
    """Declarative allow/deny rules for one workspace root.

    Path rules are glob patterns matched against the root-relative POSIX
    path.  Command rules are regular expressions searched anywhere in the
    command string.  Empty allow lists mean "no positive restriction".
    """

    model_config = ConfigDict(frozen=True)

    allowed_paths: list[str] = Field(default_factory=list, description="Glob patterns a path must match.")
    forbidden_paths: list[str] = Field(default_factory=list, description="Glob patterns that always deny.")
    allowed_commands: list[str] = Field(default_factory=list, description="Regexes a command must match.")
    forbidden_commands: list[str] = Field(default_factory=list, description="Regexes that always deny.")
    max_file_size_bytes: int | None = Field(default=None, gt=0, description="Largest file size allowed.")
    max_files_per_op: int | None = Field(default=None, gt=0, description="Largest path batch allowed.")

    @field_validator("allowed_commands", "forbidden_commands")
    @classmethod
    def _check_regexes(cls, patterns: list[str]) -> list[str]:
        for pattern in patterns:
            try:
                re.compile(pattern)
            except re.error as exc:
                msg = f"invalid command pattern {pattern!r}: {exc}"
                raise ValueError(msg) from exc
        return patterns

    def merged_with(self, other: WorkspacePolicy) -> WorkspacePolicy:
        """Combine two policies: pattern lists are unioned, limits take the stricter value."""
        return WorkspacePolicy(
            allowed_paths=_union(self.allowed_paths, other.allowed_paths),
            forbidden_paths=_union(self.forbidden_paths, other.forbidden_paths),
            allowed_commands=_union(self.allowed_commands, other.allowed_commands),
            forbidden_commands=_union(self.forbidden_commands, other.forbidden_commands),
            max_file_size_bytes=_stricter(self.max_file_size_bytes, other.max_file_size_bytes),
            max_files_per_op=_stricter(self.max_files_per_op, other.max_files_per_op),
        )


class ValidationResult(BaseModel):
    """Outcome of a policy check."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: str | None = None

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> ValidationResult:
        return cls(allowed=False, reason=reason)


def _union(first: list[str], second: list[str]) -> list[str]:
    return list(dict.fromkeys([*first, *second]))


def _stricter(first: int | None, second: int | None) -> int | None:
    if first is None:
        return second
    if second is None:
        return first
    return min(first, second)
