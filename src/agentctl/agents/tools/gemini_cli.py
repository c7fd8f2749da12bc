"""Gemini CLI — Google's coding agent.

argv: ``gemini code --instruction TASK [--context PATH]... --directory WORKSPACE --format json``

Either ``GEMINI_API_KEY`` or ``GOOGLE_API_KEY`` authenticates the tool.
"""

from __future__ import annotations

from agentctl.agents.adapter import AgentInvocation, ToolDefinition
from agentctl.agents.models import AgentCapability, AgentInfo

GEMINI_CLI_BINARY = "gemini"


def build_gemini_cli_args(invocation: AgentInvocation) -> list[str]:
    args = ["code", "--instruction", invocation.task]
    for path in invocation.context_files:
        args.extend(["--context", str(path)])
    args.extend(["--directory", str(invocation.workspace), "--format", "json"])
    return args


GEMINI_CLI = ToolDefinition(
    info=AgentInfo(
        id="gemini-cli",
        name="Gemini CLI",
        capabilities=[
            AgentCapability.CODE_EDIT,
            AgentCapability.CODE_GENERATE,
            AgentCapability.CODE_REVIEW,
            AgentCapability.CODE_TEST,
            AgentCapability.SHELL,
            AgentCapability.FILE_READ,
            AgentCapability.FILE_WRITE,
            AgentCapability.WEB_SEARCH,
        ],
        binary=GEMINI_CLI_BINARY,
        required_env=["GEMINI_API_KEY", "GOOGLE_API_KEY"],
        required_env_mode="any",
    ),
    build_args=build_gemini_cli_args,
    auth_args=("auth", "status"),
    auth_timeout_ms=10_000,
    auth_needs_network=True,
)
