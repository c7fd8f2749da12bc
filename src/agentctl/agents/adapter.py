"""AgentAdapter — drives one external coding-agent CLI through its lifecycle.

Lifecycle: ``NotDetected -> Detected -> Authenticated -> Running ->
{Completed, Failed, Cancelled}``.

Every supported tool shares this one implementation.  What differs per
tool (binary, argv shape, auth check) lives in a :class:`ToolDefinition`;
the workspace guard, process supervisor and output normalizer are
injected as factories so each run gets fresh instances.

Typical usage::

    adapter = create_adapter("claude-code")
    async for event in adapter.execute(job):
        render(event)
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
import uuid
from collections import OrderedDict
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from agentctl.agents.models import (
    AgentInfo,
    AgentJob,
    AgentRunResult,
    Artifact,
    AuthResult,
    DetectResult,
    RunStatus,
)
from agentctl.runtime.errors import (
    ProcessError,
    ProcessKilledError,
    ProcessSpawnError,
    RunNotFoundError,
)
from agentctl.runtime.events.models import LIFECYCLE_EVENT_TYPES, AgentEvent, AgentEventType
from agentctl.runtime.events.normalizer import LineSplitter, OutputEventNormalizer
from agentctl.runtime.process.models import ProcessResult, SandboxProfile
from agentctl.runtime.process.supervisor import ProcessSupervisor
from agentctl.runtime.workspace.guard import WorkspaceGuard
from agentctl.runtime.workspace.models import FileOperation, WorkspacePolicy
from agentctl.utils.telemetry import (
    ATTR_AGENT_BINARY,
    ATTR_AGENT_ID,
    ATTR_AUTH_VALID,
    ATTR_CONTEXT_FILES,
    ATTR_EVENT_COUNT,
    ATTR_EXIT_CODE,
    ATTR_INSTALLED,
    ATTR_JOB_ID,
    ATTR_REJECTED_FILES,
    ATTR_RUN_ID,
    ATTR_RUN_STATUS,
    get_tracer,
)

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

DETECT_TIMEOUT_MS = 5000

# Version-control metadata and build output are never handed to a tool.
BASELINE_FORBIDDEN_PATHS = (
    ".git/**",
    ".hg/**",
    ".svn/**",
    "node_modules/**",
    "dist/**",
    "build/**",
    "__pycache__/**",
)
BASELINE_POLICY = WorkspacePolicy(forbidden_paths=list(BASELINE_FORBIDDEN_PATHS))

_VERSION_RE = re.compile(r"(\d+\.\d+\.\d+)")
_RECENT_RUNS_LIMIT = 256

_DETECT_PROFILE = SandboxProfile(
    name="detect",
    allow_network=False,
    allow_shell=False,
    timeout_ms=DETECT_TIMEOUT_MS,
)

_ARTIFACT_OPERATIONS = {
    "created": "create",
    "updated": "update",
    "modified": "update",
    "deleted": "delete",
}


@dataclass(frozen=True)
class AgentInvocation:
    """Everything a tool needs to build its command line for one run."""

    task: str
    context_files: list[Path]
    workspace: Path
    profile: SandboxProfile


ArgvBuilder = Callable[[AgentInvocation], list[str]]


@dataclass(frozen=True)
class ToolDefinition:
    """Per-tool knowledge: descriptor, argv convention and auth check."""

    info: AgentInfo
    build_args: ArgvBuilder
    version_args: tuple[str, ...] = ("--version",)
    auth_args: tuple[str, ...] = ("--help",)
    auth_timeout_ms: int = 5000
    auth_needs_network: bool = False


@runtime_checkable
class CodingAgent(Protocol):
    """Shared capability interface of every supported agent."""

    def info(self) -> AgentInfo: ...
    async def detect(self) -> DetectResult: ...
    async def validate_auth(self) -> AuthResult: ...
    def execute(self, job: AgentJob) -> AsyncIterator[AgentEvent]: ...
    async def cancel(self, run_id: str) -> None: ...
    async def get_run_status(self, run_id: str) -> AgentRunResult: ...


SupervisorFactory = Callable[[], ProcessSupervisor]
NormalizerFactory = Callable[[], OutputEventNormalizer]
GuardFactory = Callable[[str, WorkspacePolicy], WorkspaceGuard]


def lifecycle_normalizer() -> OutputEventNormalizer:
    """Normalizer that keeps tool output from forging lifecycle events."""
    return OutputEventNormalizer(reserved_types=LIFECYCLE_EVENT_TYPES)


@dataclass
class _RunState:
    run_id: str
    job_id: str
    supervisor: ProcessSupervisor
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: RunStatus = RunStatus.PENDING
    exit_code: int | None = None
    completed_at: datetime | None = None
    error_message: str | None = None
    cancel_requested: bool = False
    artifacts: list[Artifact] = field(default_factory=list)

    def record(self, event: AgentEvent) -> None:
        """Track files the tool reports touching."""
        if event.type not in (AgentEventType.FILE_EDIT, AgentEventType.FILE_CREATE):
            return
        path = event.data.get("path")
        if not isinstance(path, str):
            return
        if event.type == AgentEventType.FILE_CREATE:
            operation = "create"
        else:
            operation = _ARTIFACT_OPERATIONS.get(str(event.data.get("operation", "")), "update")
        self.artifacts.append(
            Artifact(
                id=str(uuid.uuid4()),
                run_id=self.run_id,
                path=path,
                operation=operation,  # type: ignore[arg-type]
                timestamp=event.timestamp,
            )
        )

    def finish(self, status: RunStatus, exit_code: int | None, error: str | None) -> None:
        self.status = status
        self.exit_code = exit_code
        self.error_message = error
        self.completed_at = datetime.now(timezone.utc)

    def snapshot(self) -> AgentRunResult:
        status = self.status
        if not status.is_final:
            if self.supervisor.is_running():
                status = RunStatus.RUNNING
            elif self.supervisor.started_at is not None:
                status = RunStatus.COMPLETED
        return AgentRunResult(
            run_id=self.run_id,
            status=status,
            exit_code=self.exit_code,
            started_at=self.started_at,
            completed_at=self.completed_at,
            artifacts=list(self.artifacts),
            error_message=self.error_message,
        )


class AgentAdapter:
    """Run one external coding-agent CLI under workspace and process controls.

    Satisfies the :class:`CodingAgent` protocol.  Any number of runs may be
    live at once; each owns its own supervisor and normalizer, tracked by
    run id.
    """

    def __init__(
        self,
        tool: ToolDefinition,
        *,
        policy: WorkspacePolicy | None = None,
        binary: str | None = None,
        supervisor_factory: SupervisorFactory | None = None,
        normalizer_factory: NormalizerFactory | None = None,
        guard_factory: GuardFactory = WorkspaceGuard,
    ) -> None:
        self._tool = tool
        self._binary = binary or tool.info.binary
        self._policy = BASELINE_POLICY.merged_with(policy) if policy else BASELINE_POLICY
        self._supervisor_factory = supervisor_factory or ProcessSupervisor
        self._normalizer_factory = normalizer_factory or lifecycle_normalizer
        self._guard_factory = guard_factory
        self._active: dict[str, _RunState] = {}
        self._finished: OrderedDict[str, _RunState] = OrderedDict()

    @property
    def policy(self) -> WorkspacePolicy:
        return self._policy

    def info(self) -> AgentInfo:
        if self._binary == self._tool.info.binary:
            return self._tool.info
        return self._tool.info.model_copy(update={"binary": self._binary})

    def active_runs(self) -> list[str]:
        return list(self._active)

    async def detect(self) -> DetectResult:
        """Probe ``<binary> --version``; never raises."""
        name = self._tool.info.name
        with _tracer.start_as_current_span("agent.detect") as span:
            span.set_attribute(ATTR_AGENT_ID, self._tool.info.id)
            span.set_attribute(ATTR_AGENT_BINARY, self._binary)
            try:
                result = await self._supervisor_factory().run(
                    self._binary, list(self._tool.version_args), _DETECT_PROFILE
                )
            except ProcessError as exc:
                logger.debug("%s not detected: %s", name, exc)
                span.set_attribute(ATTR_INSTALLED, False)
                return DetectResult(installed=False)

            if result.exit_code != 0:
                logger.debug("%s version probe exited with %s", name, result.exit_code)
                span.set_attribute(ATTR_INSTALLED, False)
                return DetectResult(installed=False)

            match = _VERSION_RE.search(result.stdout) or _VERSION_RE.search(result.stderr)
            version = match.group(1) if match else None
            path = shutil.which(self._binary) or self._binary
            logger.info("%s detected (version=%s, path=%s)", name, version, path)
            span.set_attribute(ATTR_INSTALLED, True)
            return DetectResult(installed=True, version=version, path=path)

    async def validate_auth(self) -> AuthResult:
        """Check credentials are present, then run the tool's auth check; never raises."""
        with _tracer.start_as_current_span("agent.validate_auth") as span:
            span.set_attribute(ATTR_AGENT_ID, self._tool.info.id)
            result = await self._validate_auth()
            span.set_attribute(ATTR_AUTH_VALID, result.valid)
            return result

    async def _validate_auth(self) -> AuthResult:
        reason = self._missing_env_reason()
        if reason is not None:
            return AuthResult(valid=False, reason=reason)

        profile = SandboxProfile(
            name="auth-check",
            allow_network=self._tool.auth_needs_network,
            allow_shell=False,
            timeout_ms=self._tool.auth_timeout_ms,
        )
        try:
            result = await self._supervisor_factory().run(
                self._binary, list(self._tool.auth_args), profile
            )
        except ProcessError as exc:
            return AuthResult(valid=False, reason=str(exc))

        if result.exit_code == 0:
            return AuthResult(valid=True)
        return AuthResult(
            valid=False,
            reason=f"{self._tool.info.name} auth check exited with code {result.exit_code}",
        )

    def _missing_env_reason(self) -> str | None:
        info = self._tool.info
        missing = [name for name in info.required_env if not os.environ.get(name)]
        if not missing:
            return None
        if info.required_env_mode == "any":
            if len(missing) < len(info.required_env):
                return None
            return f"{' or '.join(missing)} environment variable not set"
        noun = "variable" if len(missing) == 1 else "variables"
        return f"{', '.join(missing)} environment {noun} not set"

    async def execute(self, job: AgentJob) -> AsyncIterator[AgentEvent]:
        """Run *job* and yield its events as they happen.

        The first event is always ``task_start`` (sequence 0) and the last
        is exactly one ``task_complete`` or ``error``.  Closing the iterator
        early kills the process.
        """
        run_id = str(uuid.uuid4())
        info = self._tool.info
        normalizer = self._normalizer_factory()
        normalizer.reset()
        guard = self._guard_factory(job.workspace_id, self._policy)
        context_files, rejected = self._screen_context_files(guard, job.context_files)
        args = self._tool.build_args(
            AgentInvocation(
                task=job.task,
                context_files=context_files,
                workspace=guard.root,
                profile=job.profile,
            )
        )

        state = _RunState(run_id=run_id, job_id=job.id, supervisor=self._supervisor_factory())
        self._active[run_id] = state
        span = _tracer.start_span(
            "agent.execute",
            attributes={
                ATTR_AGENT_ID: info.id,
                ATTR_JOB_ID: job.id,
                ATTR_RUN_ID: run_id,
                ATTR_CONTEXT_FILES: len(context_files),
                ATTR_REJECTED_FILES: len(rejected),
            },
        )
        task: asyncio.Task[ProcessResult] | None = None

        logger.info("Starting %s run %s for job %s", info.name, run_id, job.id)
        try:
            yield normalizer.create_event(
                run_id,
                AgentEventType.TASK_START,
                {"task": job.task, "job_id": job.id, "agent_id": info.id},
            )
            for path, reason in rejected:
                yield normalizer.create_event(
                    run_id,
                    AgentEventType.PROGRESS,
                    {
                        "message": f"Context file skipped: {path}",
                        "diagnostic": "context_file_rejected",
                        "path": path,
                        "reason": reason,
                    },
                )

            if not state.cancel_requested:
                lines: asyncio.Queue[str | None] = asyncio.Queue()
                task = self._spawn(state, args, job.profile, guard.root, lines)
                while True:
                    line = await lines.get()
                    if line is None:
                        break
                    event = normalizer.parse_line(line, run_id)
                    if event is not None:
                        state.record(event)
                        yield event

            terminal = self._terminal_event(normalizer, state, task, job.profile)
            span.set_attribute(ATTR_RUN_STATUS, state.status.value)
            if state.exit_code is not None:
                span.set_attribute(ATTR_EXIT_CODE, state.exit_code)
            yield terminal
        finally:
            if task is not None and not task.done():
                logger.warning("Run %s closed before the process exited; killing it", run_id)
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
            if not state.status.is_final:
                state.finish(RunStatus.CANCELLED, None, "run abandoned by consumer")
            span.set_attribute(ATTR_EVENT_COUNT, normalizer.next_sequence)
            span.end()
            self._active.pop(run_id, None)
            self._remember(state)

    async def cancel(self, run_id: str) -> None:
        """Request termination of a live run.

        Raises:
            RunNotFoundError: *run_id* is unknown or already finished.
        """
        state = self._active.get(run_id)
        if state is None:
            raise RunNotFoundError(run_id)

        logger.info("Cancelling %s run %s", self._tool.info.name, run_id)
        state.cancel_requested = True
        state.supervisor.terminate()

    async def get_run_status(self, run_id: str) -> AgentRunResult:
        """Snapshot of a live or recently finished run.

        Raises:
            RunNotFoundError: *run_id* is not tracked.
        """
        state = self._active.get(run_id) or self._finished.get(run_id)
        if state is None:
            raise RunNotFoundError(run_id)
        return state.snapshot()

    def _spawn(
        self,
        state: _RunState,
        args: list[str],
        profile: SandboxProfile,
        workspace: Path,
        lines: asyncio.Queue[str | None],
    ) -> asyncio.Task[ProcessResult]:
        """Start the process; complete output lines are queued, ``None`` marks the end."""
        splitters = (LineSplitter(), LineSplitter())

        def feeder(splitter: LineSplitter) -> Callable[[str], None]:
            def on_chunk(chunk: str) -> None:
                for line in splitter.feed(chunk):
                    lines.put_nowait(line)

            return on_chunk

        def on_done(_: asyncio.Task[ProcessResult]) -> None:
            for splitter in splitters:
                for line in splitter.flush():
                    lines.put_nowait(line)
            lines.put_nowait(None)

        task = asyncio.create_task(
            state.supervisor.run(
                self._binary,
                args,
                profile,
                cwd=workspace,
                on_stdout=feeder(splitters[0]),
                on_stderr=feeder(splitters[1]),
            )
        )
        task.add_done_callback(on_done)
        return task

    def _terminal_event(
        self,
        normalizer: OutputEventNormalizer,
        state: _RunState,
        task: asyncio.Task[ProcessResult] | None,
        profile: SandboxProfile,
    ) -> AgentEvent:
        """Build the single closing event of a run and record its outcome."""
        name = self._tool.info.name
        result: ProcessResult | None = None
        data: dict[str, Any]

        if task is None:
            data = {"error": "Run cancelled before the process started", "reason": "cancelled"}
            status = RunStatus.CANCELLED
        else:
            try:
                result = task.result()
            except ProcessKilledError as exc:
                result = exc.result
                data = {"error": str(exc), "signal": exc.signal}
                if exc.timed_out:
                    data.update(error=f"Process timed out after {profile.timeout_ms}ms", reason="timeout")
                    status = RunStatus.FAILED
                elif state.cancel_requested:
                    data.update(error="Run cancelled", reason="cancelled")
                    status = RunStatus.CANCELLED
                else:
                    data["reason"] = "signal"
                    status = RunStatus.FAILED
            except ProcessSpawnError as exc:
                data = {"error": str(exc), "reason": "spawn_failed"}
                status = RunStatus.FAILED
            except Exception as exc:
                logger.exception("%s run %s failed unexpectedly", name, state.run_id)
                data = {"error": str(exc), "reason": "internal"}
                status = RunStatus.FAILED
            else:
                data = {"exit_code": result.exit_code, "duration_ms": result.duration_ms}
                if state.supervisor.timed_out:
                    data.update(error=f"Process timed out after {profile.timeout_ms}ms", reason="timeout")
                    status = RunStatus.FAILED
                elif state.supervisor.terminated:
                    data.update(error="Run cancelled", reason="cancelled")
                    status = RunStatus.CANCELLED
                elif result.exit_code == 0:
                    status = RunStatus.COMPLETED
                else:
                    data.update(error=f"Process exited with code {result.exit_code}", reason="exit_code")
                    status = RunStatus.FAILED

        if result is not None:
            data.setdefault("duration_ms", result.duration_ms)
            if result.truncated:
                data["truncated"] = True

        exit_code = result.exit_code if result is not None else None
        state.finish(status, exit_code, data.get("error"))

        if status == RunStatus.COMPLETED:
            logger.info("%s run %s completed in %sms", name, state.run_id, data.get("duration_ms"))
            return normalizer.create_event(state.run_id, AgentEventType.TASK_COMPLETE, data)

        logger.error("%s run %s %s: %s", name, state.run_id, status.value, data.get("error"))
        return normalizer.create_event(state.run_id, AgentEventType.ERROR, data)

    @staticmethod
    def _screen_context_files(
        guard: WorkspaceGuard,
        files: list[str],
    ) -> tuple[list[Path], list[tuple[str, str]]]:
        """Split context files into accepted absolute paths and (path, reason) rejections."""
        accepted: list[Path] = []
        rejected: list[tuple[str, str]] = []
        for file in files:
            verdict = guard.validate_path(file, FileOperation.READ)
            if verdict.allowed:
                accepted.append(guard.absolute_path(file))
            else:
                logger.warning("Context file %s blocked by workspace policy: %s", file, verdict.reason)
                rejected.append((file, verdict.reason or ""))
        return accepted, rejected

    def _remember(self, state: _RunState) -> None:
        self._finished[state.run_id] = state
        while len(self._finished) > _RECENT_RUNS_LIMIT:
            self._finished.popitem(last=False)
