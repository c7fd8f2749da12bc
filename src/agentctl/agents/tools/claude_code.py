"""Claude Code — Anthropic's autonomous coding agent.

argv: ``claude-code --prompt TASK [--file PATH]... --cwd WORKSPACE``
"""

from __future__ import annotations

from agentctl.agents.adapter import AgentInvocation, ToolDefinition
from agentctl.agents.models import AgentCapability, AgentInfo

CLAUDE_CODE_BINARY = "claude-code"


def build_claude_code_args(invocation: AgentInvocation) -> list[str]:
    args = ["--prompt", invocation.task]
    for path in invocation.context_files:
        args.extend(["--file", str(path)])
    args.extend(["--cwd", str(invocation.workspace)])
    return args


CLAUDE_CODE = ToolDefinition(
    info=AgentInfo(
        id="claude-code",
        name="Claude Code",
        capabilities=[
            AgentCapability.CODE_EDIT,
            AgentCapability.CODE_GENERATE,
            AgentCapability.CODE_REVIEW,
            AgentCapability.CODE_TEST,
            AgentCapability.CODE_DEBUG,
            AgentCapability.CODE_REFACTOR,
            AgentCapability.SHELL,
            AgentCapability.FILE_READ,
            AgentCapability.FILE_WRITE,
            AgentCapability.GIT,
            AgentCapability.WEB_SEARCH,
            AgentCapability.WEB_FETCH,
        ],
        binary=CLAUDE_CODE_BINARY,
        required_env=["ANTHROPIC_API_KEY"],
    ),
    build_args=build_claude_code_args,
    auth_args=("--help",),
    auth_timeout_ms=5000,
    auth_needs_network=False,
)
