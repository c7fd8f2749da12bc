"""OpenAI Codex CLI.

argv: ``codex execute --task TASK [--include PATH]... --workspace WORKSPACE --stream``

``--stream`` asks for line-oriented output so events arrive while the
tool is still working.
"""

from __future__ import annotations

from agentctl.agents.adapter import AgentInvocation, ToolDefinition
from agentctl.agents.models import AgentCapability, AgentInfo

CODEX_BINARY = "codex"


def build_codex_args(invocation: AgentInvocation) -> list[str]:
    args = ["execute", "--task", invocation.task]
    for path in invocation.context_files:
        args.extend(["--include", str(path)])
    args.extend(["--workspace", str(invocation.workspace), "--stream"])
    return args


CODEX = ToolDefinition(
    info=AgentInfo(
        id="codex",
        name="OpenAI Codex",
        capabilities=[
            AgentCapability.CODE_EDIT,
            AgentCapability.CODE_GENERATE,
            AgentCapability.CODE_REVIEW,
            AgentCapability.CODE_REFACTOR,
            AgentCapability.SHELL,
            AgentCapability.FILE_READ,
            AgentCapability.FILE_WRITE,
        ],
        binary=CODEX_BINARY,
        required_env=["OPENAI_API_KEY"],
    ),
    build_args=build_codex_args,
    auth_args=("auth", "check"),
    auth_timeout_ms=10_000,
    auth_needs_network=True,
)
