"""Shared error types for the agent execution runtime."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agentctl.runtime.process.models import ProcessResult


class AgentRuntimeError(Exception):
    """Base error for all agent runtime failures."""


class ProcessError(AgentRuntimeError):
    """A supervised process could not be started or did not finish normally."""


class ProcessSpawnError(ProcessError):
    """The external binary could not be spawned (missing, not executable, ...)."""

    def __init__(self, command: str, detail: str = "") -> None:
        self.command = command
        self.detail = detail
        super().__init__(f"Failed to spawn {command}" + (f": {detail}" if detail else ""))


class ProcessKilledError(ProcessError):
    """The supervised process was terminated by a signal.

    ``timed_out`` is set when the supervisor's own timeout sent the signal.
    ``result`` carries whatever output was captured before the kill.
    """

    def __init__(
        self,
        signal: str,
        *,
        timed_out: bool = False,
        result: ProcessResult | None = None,
    ) -> None:
        self.signal = signal
        self.timed_out = timed_out
        self.result = result
        msg = f"Process killed by signal: {signal}"
        if timed_out:
            msg += " (timeout)"
        super().__init__(msg)


class SupervisorBusyError(ProcessError):
    """A supervisor was asked to run a second process."""

    def __init__(self) -> None:
        super().__init__("ProcessSupervisor already owns a process; create a new one per run")


class RunNotFoundError(AgentRuntimeError):
    """No live (or recently finished) run is tracked under the given id."""

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        super().__init__(f"No active run found for run_id: {run_id}")


class UnknownAgentError(AgentRuntimeError):
    """The requested agent id is not one of the supported tools."""

    def __init__(self, agent_id: str, known: list[str] | None = None) -> None:
        self.agent_id = agent_id
        self.known = known or []
        msg = f"Unknown agent: {agent_id}"
        if self.known:
            msg += f" (expected one of: {', '.join(self.known)})"
        super().__init__(msg)
