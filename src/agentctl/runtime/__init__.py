"""Agent execution runtime: policy enforcement, process supervision and event normalization."""

from agentctl.runtime.errors import (
    AgentRuntimeError,
    ProcessError,
    ProcessKilledError,
    ProcessSpawnError,
    RunNotFoundError,
    SupervisorBusyError,
    UnknownAgentError,
)

__all__ = [
    "AgentRuntimeError",
    "ProcessError",
    "ProcessKilledError",
    "ProcessSpawnError",
    "RunNotFoundError",
    "SupervisorBusyError",
    "UnknownAgentError",
]
