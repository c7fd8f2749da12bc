"""Tests for the agent registry."""

import pytest

from agentctl.agents.adapter import BASELINE_FORBIDDEN_PATHS, AgentAdapter
from agentctl.agents.registry import AGENT_IDS, TOOLS, all_adapters, create_adapter, get_tool
from agentctl.runtime.errors import UnknownAgentError
from agentctl.runtime.workspace.models import WorkspacePolicy


class TestRegistry:
    def test_known_agents(self) -> None:
        assert AGENT_IDS == ["claude-code", "gemini-cli", "codex"]
        assert set(TOOLS) == set(AGENT_IDS)

    def test_get_tool(self) -> None:
        assert get_tool("codex").info.binary == "codex"

    def test_unknown_agent(self) -> None:
        with pytest.raises(UnknownAgentError) as exc_info:
            get_tool("cursor")
        assert exc_info.value.known == AGENT_IDS

    def test_create_adapter(self) -> None:
        policy = WorkspacePolicy(forbidden_paths=["secrets/**"])
        adapter = create_adapter("claude-code", policy=policy, binary="/opt/bin/claude")
        assert isinstance(adapter, AgentAdapter)
        assert adapter.info().id == "claude-code"
        assert adapter.info().binary == "/opt/bin/claude"
        assert "secrets/**" in adapter.policy.forbidden_paths
        assert set(BASELINE_FORBIDDEN_PATHS) <= set(adapter.policy.forbidden_paths)

    def test_create_unknown_adapter(self) -> None:
        with pytest.raises(UnknownAgentError):
            create_adapter("cursor")

    def test_all_adapters(self) -> None:
        adapters = all_adapters()
        assert list(adapters) == AGENT_IDS
        assert all(a.info().id == aid for aid, a in adapters.items())
