"""agentctl — run autonomous coding-agent CLIs under workspace and process controls."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from agentctl.agents.adapter import AgentAdapter as AgentAdapter
    from agentctl.agents.registry import create_adapter as create_adapter

_LAZY_EXPORTS = {
    "AgentAdapter": "agentctl.agents.adapter",
    "create_adapter": "agentctl.agents.registry",
}


def __getattr__(name: str) -> object:
    module_path = _LAZY_EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'agentctl' has no attribute {name!r}")
