"""Tests for agent data models."""

import pytest
from pydantic import ValidationError

from agentctl.agents.models import AgentCapability, AgentInfo, AgentJob, RunStatus
from agentctl.runtime.process.models import SandboxProfile


class TestAgentInfo:
    def test_defaults(self) -> None:
        info = AgentInfo(id="x", name="X", binary="x")
        assert info.version == "1.0.0"
        assert info.capabilities == []
        assert info.required_env == []
        assert info.required_env_mode == "all"

    def test_capability_values(self) -> None:
        info = AgentInfo(id="x", name="X", binary="x", capabilities=["code-edit", "shell"])
        assert info.capabilities == [AgentCapability.CODE_EDIT, AgentCapability.SHELL]

    def test_invalid_env_mode(self) -> None:
        with pytest.raises(ValidationError):
            AgentInfo(id="x", name="X", binary="x", required_env_mode="some")


class TestAgentJob:
    def test_from_dict(self) -> None:
        job = AgentJob.model_validate(
            {
                "id": "job-1",
                "workspace_id": "/work",
                "agent_id": "codex",
                "task": "refactor",
                "profile": {"name": "p", "timeout_ms": 1000},
            }
        )
        assert job.context_files == []
        assert isinstance(job.profile, SandboxProfile)
        assert job.metadata == {}


class TestRunStatus:
    def test_final_states(self) -> None:
        assert {s for s in RunStatus if s.is_final} == {
            RunStatus.COMPLETED,
            RunStatus.FAILED,
            RunStatus.CANCELLED,
        }
