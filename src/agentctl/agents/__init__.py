"""Coding-agent adapters: one shared lifecycle over the supported CLIs."""

from agentctl.agents.adapter import (
    BASELINE_POLICY,
    AgentAdapter,
    AgentInvocation,
    CodingAgent,
    ToolDefinition,
)
from agentctl.agents.models import (
    AgentCapability,
    AgentInfo,
    AgentJob,
    AgentRunResult,
    Artifact,
    AuthResult,
    DetectResult,
    RunStatus,
)
from agentctl.agents.registry import AGENT_IDS, all_adapters, create_adapter, get_tool

__all__ = [
    "AGENT_IDS",
    "BASELINE_POLICY",
    "AgentAdapter",
    "AgentCapability",
    "AgentInfo",
    "AgentInvocation",
    "AgentJob",
    "AgentRunResult",
    "Artifact",
    "AuthResult",
    "CodingAgent",
    "DetectResult",
    "RunStatus",
    "ToolDefinition",
    "all_adapters",
    "create_adapter",
    "get_tool",
]
