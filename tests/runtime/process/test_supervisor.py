"""Tests for ProcessSupervisor, using real child processes."""

from __future__ import annotations

import asyncio
import sys
import time
from typing import TYPE_CHECKING

import pytest

from agentctl.runtime.errors import ProcessKilledError, ProcessSpawnError, SupervisorBusyError
from agentctl.runtime.process.models import SandboxProfile
from agentctl.runtime.process.supervisor import ProcessSupervisor

if TYPE_CHECKING:
    from pathlib import Path

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="requires POSIX shell tools")

_SCHEDULING_SLACK = 0.5


def _profile(timeout_ms: int = 10_000, **kwargs) -> SandboxProfile:
    return SandboxProfile(name="test", timeout_ms=timeout_ms, **kwargs)


class TestRun:
    async def test_echo(self) -> None:
        result = await ProcessSupervisor().run("echo", ["hello"], _profile())
        assert result.exit_code == 0
        assert result.signal is None
        assert result.stdout.strip() == "hello"
        assert result.duration_ms >= 0

    async def test_nonzero_exit_is_a_result(self) -> None:
        result = await ProcessSupervisor().run("sh", ["-c", "exit 42"], _profile())
        assert result.exit_code == 42
        assert result.signal is None

    async def test_stderr_captured(self) -> None:
        result = await ProcessSupervisor().run("sh", ["-c", "echo oops >&2"], _profile())
        assert result.stderr.strip() == "oops"
        assert result.stdout == ""

    async def test_env_overlay(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AGENTCTL_AMBIENT", "from-host")
        profile = _profile(env={"AGENTCTL_EXTRA": "from-profile"})
        result = await ProcessSupervisor().run(
            "sh", ["-c", 'echo "$AGENTCTL_AMBIENT $AGENTCTL_EXTRA"'], profile
        )
        assert result.stdout.strip() == "from-host from-profile"

    async def test_cwd_argument_wins_over_profile(self, tmp_path: Path) -> None:
        other = tmp_path / "other"
        other.mkdir()
        profile = _profile(cwd=str(other))

        result = await ProcessSupervisor().run("pwd", [], profile, cwd=tmp_path)
        assert result.stdout.strip().endswith(tmp_path.name)

        result = await ProcessSupervisor().run("pwd", [], profile)
        assert result.stdout.strip().endswith("other")

    async def test_stdin_is_closed(self) -> None:
        result = await ProcessSupervisor().run("cat", [], _profile(timeout_ms=2000))
        assert result.exit_code == 0
        assert result.stdout == ""

    async def test_callbacks_receive_output(self) -> None:
        out: list[str] = []
        err: list[str] = []
        result = await ProcessSupervisor().run(
            "sh",
            ["-c", "echo one; echo two >&2; echo three"],
            _profile(),
            on_stdout=out.append,
            on_stderr=err.append,
        )
        assert "".join(out) == "one\nthree\n"
        assert "".join(err) == "two\n"
        assert result.stdout == "one\nthree\n"

    async def test_missing_binary_raises_spawn_error(self) -> None:
        with pytest.raises(ProcessSpawnError) as exc_info:
            await ProcessSupervisor().run("nonexistent_agent_binary_xyz", [], _profile())
        assert exc_info.value.command == "nonexistent_agent_binary_xyz"

    async def test_single_use(self) -> None:
        supervisor = ProcessSupervisor()
        await supervisor.run("true", [], _profile())
        with pytest.raises(SupervisorBusyError):
            await supervisor.run("true", [], _profile())


class TestTimeout:
    async def test_timeout_kills_process(self) -> None:
        supervisor = ProcessSupervisor()
        started = time.monotonic()
        with pytest.raises(ProcessKilledError) as exc_info:
            await supervisor.run("sleep", ["10"], _profile(timeout_ms=100))
        elapsed = time.monotonic() - started

        assert exc_info.value.timed_out is True
        assert exc_info.value.signal == "SIGTERM"
        assert supervisor.timed_out is True
        assert elapsed < 0.1 + _SCHEDULING_SLACK

    async def test_partial_output_kept_on_timeout(self) -> None:
        with pytest.raises(ProcessKilledError) as exc_info:
            await ProcessSupervisor().run(
                "sh", ["-c", "echo before; sleep 10"], _profile(timeout_ms=300)
            )
        assert exc_info.value.result is not None
        assert exc_info.value.result.stdout.strip() == "before"

    async def test_escalates_to_sigkill(self) -> None:
        supervisor = ProcessSupervisor(kill_grace=0.1)
        with pytest.raises(ProcessKilledError) as exc_info:
            await supervisor.run(
                "sh", ["-c", 'trap "" TERM; sleep 5 & wait'], _profile(timeout_ms=100)
            )
        assert exc_info.value.timed_out is True
        assert exc_info.value.signal == "SIGKILL"

    async def test_fast_exit_not_timed_out(self) -> None:
        supervisor = ProcessSupervisor()
        result = await supervisor.run("true", [], _profile(timeout_ms=5000))
        assert result.exit_code == 0
        assert supervisor.timed_out is False


class TestKill:
    def test_kill_without_process_is_noop(self) -> None:
        supervisor = ProcessSupervisor()
        assert supervisor.kill() is False
        assert supervisor.kill() is False
        assert supervisor.is_running() is False
        assert supervisor.pid is None

    async def test_kill_running_process(self) -> None:
        supervisor = ProcessSupervisor()
        task = asyncio.create_task(supervisor.run("sleep", ["10"], _profile()))
        while not supervisor.is_running():
            await asyncio.sleep(0.01)

        assert supervisor.pid is not None
        assert supervisor.started_at is not None
        assert supervisor.kill() is True

        with pytest.raises(ProcessKilledError) as exc_info:
            await task
        assert exc_info.value.timed_out is False
        assert supervisor.is_running() is False
        assert supervisor.kill() is False

    async def test_terminate_before_spawn_is_applied(self) -> None:
        supervisor = ProcessSupervisor()
        task = asyncio.create_task(supervisor.run("sleep", ["10"], _profile()))
        await asyncio.sleep(0)
        supervisor.terminate()

        with pytest.raises(ProcessKilledError):
            await asyncio.wait_for(task, timeout=5)
        assert supervisor.terminated is True

    async def test_terminate_before_run_starts_skips_spawn(self) -> None:
        supervisor = ProcessSupervisor()
        task = asyncio.create_task(supervisor.run("sleep", ["10"], _profile()))
        assert supervisor.terminate() is False

        started = time.monotonic()
        with pytest.raises(ProcessKilledError) as exc_info:
            await task
        assert time.monotonic() - started < _SCHEDULING_SLACK
        assert exc_info.value.signal == "SIGTERM"
        assert exc_info.value.result is None
        assert supervisor.terminated is True
        assert supervisor.started_at is None

    async def test_terminate_after_exit_is_not_recorded(self) -> None:
        supervisor = ProcessSupervisor()
        result = await supervisor.run("true", [], _profile())
        assert result.exit_code == 0
        assert supervisor.terminate() is False
        assert supervisor.terminated is False

    async def test_cancelling_run_kills_child(self) -> None:
        supervisor = ProcessSupervisor()
        task = asyncio.create_task(supervisor.run("sleep", ["10"], _profile()))
        while not supervisor.is_running():
            await asyncio.sleep(0.01)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        for _ in range(100):
            if not supervisor.is_running():
                break
            await asyncio.sleep(0.01)
        assert supervisor.is_running() is False


class TestOutputCap:
    async def test_truncates_retained_output(self) -> None:
        streamed: list[str] = []
        supervisor = ProcessSupervisor(max_output_bytes=16)
        result = await supervisor.run(
            "sh",
            ["-c", "printf '%s\\n' aaaaaaaaaa; sleep 0.05; printf '%s\\n' bbbbbbbbbb"],
            _profile(),
            on_stdout=streamed.append,
        )
        assert result.truncated is True
        assert result.stdout == "aaaaaaaaaa\n"
        assert "".join(streamed) == "aaaaaaaaaa\nbbbbbbbbbb\n"

    async def test_within_cap(self) -> None:
        result = await ProcessSupervisor(max_output_bytes=1024).run("echo", ["hi"], _profile())
        assert result.truncated is False

    async def test_invalid_utf8_replaced(self) -> None:
        result = await ProcessSupervisor().run("printf", ["\\377ok"], _profile())
        assert result.stdout.endswith("ok")
        assert "\ufffd" in result.stdout
