"""Tests for workspace policy data models."""

import pytest
from pydantic import ValidationError

from agentctl.runtime.workspace.models import FileOperation, ValidationResult, WorkspacePolicy


class TestFileOperation:
    def test_values(self) -> None:
        assert FileOperation.READ == "read"
        assert FileOperation.WRITE == "write"
        assert FileOperation.DELETE == "delete"


class TestWorkspacePolicy:
    def test_defaults(self) -> None:
        policy = WorkspacePolicy()
        assert policy.allowed_paths == []
        assert policy.forbidden_paths == []
        assert policy.allowed_commands == []
        assert policy.forbidden_commands == []
        assert policy.max_file_size_bytes is None
        assert policy.max_files_per_op is None

    def test_frozen(self) -> None:
        policy = WorkspacePolicy()
        with pytest.raises(ValidationError):
            policy.max_files_per_op = 3  # type: ignore[misc]

    def test_invalid_command_regex_rejected(self) -> None:
        with pytest.raises(ValidationError, match="invalid command pattern"):
            WorkspacePolicy(forbidden_commands=["rm ("])

    def test_limits_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            WorkspacePolicy(max_file_size_bytes=0)
        with pytest.raises(ValidationError):
            WorkspacePolicy(max_files_per_op=-1)

    def test_from_dict(self) -> None:
        policy = WorkspacePolicy.model_validate(
            {"forbidden_paths": ["secrets/**"], "forbidden_commands": [r"rm\s+-rf"]}
        )
        assert policy.forbidden_paths == ["secrets/**"]
        assert policy.forbidden_commands == [r"rm\s+-rf"]


class TestMergedWith:
    def test_unions_patterns_without_duplicates(self) -> None:
        base = WorkspacePolicy(forbidden_paths=[".git/**", "dist/**"])
        extra = WorkspacePolicy(forbidden_paths=["dist/**", "secrets/**"], allowed_paths=["src/**"])
        merged = base.merged_with(extra)
        assert merged.forbidden_paths == [".git/**", "dist/**", "secrets/**"]
        assert merged.allowed_paths == ["src/**"]

    def test_takes_stricter_limits(self) -> None:
        first = WorkspacePolicy(max_file_size_bytes=1000, max_files_per_op=None)
        second = WorkspacePolicy(max_file_size_bytes=500, max_files_per_op=10)
        merged = first.merged_with(second)
        assert merged.max_file_size_bytes == 500
        assert merged.max_files_per_op == 10

    def test_originals_unchanged(self) -> None:
        base = WorkspacePolicy(forbidden_commands=["sudo"])
        base.merged_with(WorkspacePolicy(forbidden_commands=["curl"]))
        assert base.forbidden_commands == ["sudo"]


class TestValidationResult:
    def test_ok(self) -> None:
        result = ValidationResult.ok()
        assert result.allowed is True
        assert result.reason is None

    def test_deny(self) -> None:
        result = ValidationResult.deny("nope")
        assert result.allowed is False
        assert result.reason == "nope"
