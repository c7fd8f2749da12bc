"""Supervised execution of external agent tools."""

from agentctl.runtime.process.models import ProcessResult, SandboxProfile
from agentctl.runtime.process.supervisor import ProcessSupervisor

__all__ = [
    "ProcessResult",
    "ProcessSupervisor",
    "SandboxProfile",
]
