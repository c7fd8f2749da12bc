"""Tool definitions for the supported agent CLIs."""

from agentctl.agents.tools.claude_code import CLAUDE_CODE
from agentctl.agents.tools.codex import CODEX
from agentctl.agents.tools.gemini_cli import GEMINI_CLI

__all__ = ["CLAUDE_CODE", "CODEX", "GEMINI_CLI"]
