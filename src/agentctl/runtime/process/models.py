"""Data models for the process supervision subsystem."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SandboxProfile(BaseModel):
    """Execution constraints for one run."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Profile name, for logs.")
    allow_network: bool = Field(default=False, description="Whether the tool may use the network.")
    allow_shell: bool = Field(default=False, description="Whether the tool may run shell commands.")
    timeout_ms: int = Field(..., gt=0, description="Wall-clock limit for the process.")
    env: dict[str, str] = Field(default_factory=dict, description="Variables overlaid on the host environment.")
    cwd: str | None = Field(default=None, description="Working directory override.")

    @property
    def timeout(self) -> float:
        """Timeout in seconds."""
        return self.timeout_ms / 1000


class ProcessResult(BaseModel):
    """Output of a process that exited on its own."""

    exit_code: int | None = Field(..., description="Process exit code.")
    signal: str | None = Field(default=None, description="Terminating signal name, if any.")
    stdout: str = Field(default="", description="Captured stdout.")
    stderr: str = Field(default="", description="Captured stderr.")
    duration_ms: int = Field(default=0, description="Wall-clock run time.")
    truncated: bool = Field(default=False, description="Whether retained output hit the size cap.")
