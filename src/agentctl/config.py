"""Runtime settings loaded from an ``agentctl.yaml`` file.

Example::

    policy:
      forbidden_paths: ["secrets/**"]
      forbidden_commands: ["rm\\\\s+-rf"]
    profile:
      timeout_ms: 300000
      env:
        ANTHROPIC_API_KEY: ${ANTHROPIC_API_KEY}
    supervisor:
      kill_grace_ms: 5000
    telemetry:
      enabled: false
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from agentctl.runtime.process.models import SandboxProfile
from agentctl.runtime.process.supervisor import DEFAULT_KILL_GRACE, DEFAULT_MAX_OUTPUT_BYTES
from agentctl.runtime.workspace.models import WorkspacePolicy

DEFAULT_CONFIG_FILE = "agentctl.yaml"


class ConfigError(Exception):
    """Raised when a settings file fails parsing or validation."""


class ProfileSettings(BaseModel):
    """Defaults for the sandbox profile of CLI-launched runs."""

    timeout_ms: int = Field(default=300_000, gt=0)
    allow_network: bool = True
    allow_shell: bool = True
    env: dict[str, str] = Field(default_factory=dict)
    cwd: str | None = None

    def to_profile(self, name: str = "cli-run", **overrides: Any) -> SandboxProfile:
        """Build a :class:`SandboxProfile`, letting *overrides* win over file values."""
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return SandboxProfile(name=name, **values)


class SupervisorSettings(BaseModel):
    """Process supervision limits."""

    kill_grace_ms: int | None = Field(default=int(DEFAULT_KILL_GRACE * 1000), ge=0)
    max_output_bytes: int | None = Field(default=DEFAULT_MAX_OUTPUT_BYTES, gt=0)

    @property
    def kill_grace(self) -> float | None:
        return None if self.kill_grace_ms is None else self.kill_grace_ms / 1000


class TelemetrySettings(BaseModel):
    """Optional telemetry configuration."""

    enabled: bool = False
    otlp_endpoint: str | None = None


class RuntimeSettings(BaseModel):
    """Top-level settings file schema."""

    policy: WorkspacePolicy = Field(default_factory=WorkspacePolicy)
    profile: ProfileSettings = Field(default_factory=ProfileSettings)
    supervisor: SupervisorSettings = Field(default_factory=SupervisorSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"


class SettingsLoader:
    """Load and validate a settings YAML file into :class:`RuntimeSettings`."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> RuntimeSettings:
        """Read YAML, interpolate env vars, and validate.

        Environment variables in the form ``${VAR}`` or ``$VAR`` are expanded
        using :func:`os.path.expandvars` before YAML parsing.  An empty file
        yields the defaults.

        Raises:
            ConfigError: On read errors, YAML parse errors or schema validation failures.
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot read {self._path}: {exc}") from exc

        expanded = os.path.expandvars(raw)

        try:
            data: Any = yaml.safe_load(expanded)
        except yaml.YAMLError as exc:
            raise ConfigError(f"YAML parse error: {exc}") from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("Settings YAML must be a mapping")

        try:
            return RuntimeSettings.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc


def load_settings(path: str | Path | None = None) -> RuntimeSettings:
    """Load *path*, or ``./agentctl.yaml`` when present, or the defaults."""
    if path is not None:
        return SettingsLoader(Path(path)).load()
    default = Path.cwd() / DEFAULT_CONFIG_FILE
    if default.is_file():
        return SettingsLoader(default).load()
    return RuntimeSettings()
