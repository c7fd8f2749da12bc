"""Registry of the supported agent CLIs.

The set of tools is closed: adapters are built from the definitions
below and nothing else.
"""

from __future__ import annotations

import functools

from agentctl.agents.adapter import AgentAdapter, ToolDefinition
from agentctl.agents.tools import CLAUDE_CODE, CODEX, GEMINI_CLI
from agentctl.runtime.errors import UnknownAgentError
from agentctl.runtime.process.supervisor import (
    DEFAULT_KILL_GRACE,
    DEFAULT_MAX_OUTPUT_BYTES,
    ProcessSupervisor,
)
from agentctl.runtime.workspace.models import WorkspacePolicy  # noqa: TC001

TOOLS: dict[str, ToolDefinition] = {
    tool.info.id: tool for tool in (CLAUDE_CODE, GEMINI_CLI, CODEX)
}

AGENT_IDS: list[str] = list(TOOLS)


def get_tool(agent_id: str) -> ToolDefinition:
    """Return the definition for *agent_id*.

    Raises:
        UnknownAgentError: *agent_id* is not a supported tool.
    """
    try:
        return TOOLS[agent_id]
    except KeyError:
        raise UnknownAgentError(agent_id, AGENT_IDS) from None


def create_adapter(
    agent_id: str,
    *,
    policy: WorkspacePolicy | None = None,
    binary: str | None = None,
    kill_grace: float | None = DEFAULT_KILL_GRACE,
    max_output_bytes: int | None = DEFAULT_MAX_OUTPUT_BYTES,
) -> AgentAdapter:
    """Build an adapter for *agent_id* with the given runtime limits.

    Raises:
        UnknownAgentError: *agent_id* is not a supported tool.
    """
    return AgentAdapter(
        get_tool(agent_id),
        policy=policy,
        binary=binary,
        supervisor_factory=functools.partial(
            ProcessSupervisor,
            kill_grace=kill_grace,
            max_output_bytes=max_output_bytes,
        ),
    )


def all_adapters(
    *,
    policy: WorkspacePolicy | None = None,
    kill_grace: float | None = DEFAULT_KILL_GRACE,
    max_output_bytes: int | None = DEFAULT_MAX_OUTPUT_BYTES,
) -> dict[str, AgentAdapter]:
    """One adapter per supported tool, keyed by agent id."""
    return {
        agent_id: create_adapter(
            agent_id,
            policy=policy,
            kill_grace=kill_grace,
            max_output_bytes=max_output_bytes,
        )
        for agent_id in AGENT_IDS
    }
