"""ProcessSupervisor — spawns and supervises exactly one external process.

The supervised tool never gets interactive input: stdin is always closed.
Output is streamed to callbacks as it arrives and retained (up to a cap)
for post-hoc inspection.  A single timer bounds the wall-clock run time;
when it fires the process group receives SIGTERM, followed by SIGKILL if
it is still alive after ``kill_grace`` seconds.

One supervisor belongs to one run.  Create a new instance per process.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import os
import signal
import time
from collections.abc import Callable

from agentctl.runtime.errors import ProcessKilledError, ProcessSpawnError, SupervisorBusyError
from agentctl.runtime.process.models import ProcessResult, SandboxProfile

logger = logging.getLogger(__name__)

OutputCallback = Callable[[str], None]

DEFAULT_KILL_GRACE = 5.0
DEFAULT_MAX_OUTPUT_BYTES = 10 * 1024 * 1024

_READ_SIZE = 64 * 1024
_POSIX = os.name == "posix"
_SIGKILL = getattr(signal, "SIGKILL", signal.SIGTERM)


class ProcessSupervisor:
    """Own the spawn/timeout/kill lifecycle of one external process."""

    def __init__(
        self,
        *,
        kill_grace: float | None = DEFAULT_KILL_GRACE,
        max_output_bytes: int | None = DEFAULT_MAX_OUTPUT_BYTES,
    ) -> None:
        self._kill_grace = kill_grace
        self._max_output_bytes = max_output_bytes
        self._process: asyncio.subprocess.Process | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._timers: list[asyncio.TimerHandle] = []
        self._used = False
        self._timed_out = False
        self._terminate_pending = False
        self._terminated = False
        self._started_at: float | None = None

    @property
    def pid(self) -> int | None:
        """PID of the live process, or ``None`` when nothing is running."""
        return self._process.pid if self.is_running() else None  # type: ignore[union-attr]

    @property
    def started_at(self) -> float | None:
        """Epoch seconds at which the process was spawned."""
        return self._started_at

    @property
    def timed_out(self) -> bool:
        """Whether the timeout timer fired for this run."""
        return self._timed_out

    @property
    def terminated(self) -> bool:
        """Whether :meth:`terminate` delivered SIGTERM or stopped the spawn."""
        return self._terminated

    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def run(
        self,
        command: str,
        args: list[str],
        profile: SandboxProfile,
        *,
        cwd: str | os.PathLike[str] | None = None,
        on_stdout: OutputCallback | None = None,
        on_stderr: OutputCallback | None = None,
    ) -> ProcessResult:
        """Spawn *command* and wait for it to exit.

        Returns a :class:`ProcessResult` whenever the process exits on its
        own, whatever the exit code.

        Raises:
            ProcessSpawnError: The binary could not be started.
            ProcessKilledError: The process died from a signal (timeout,
                :meth:`kill`, or an outside signal). Also raised without
                spawning when :meth:`terminate` came first.
            SupervisorBusyError: This supervisor already ran a process.
        """
        if self._used:
            raise SupervisorBusyError()
        self._used = True
        if self._terminate_pending:
            logger.info("Terminated before spawn; not starting %s", command)
            self._terminated = True
            raise ProcessKilledError(_name_of(signal.SIGTERM))

        env = {**os.environ, **profile.env}
        workdir = cwd if cwd is not None else profile.cwd

        logger.info(
            "Spawning %s %s (profile=%s, cwd=%s, timeout=%dms)",
            command,
            args,
            profile.name,
            workdir,
            profile.timeout_ms,
        )

        started = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                command,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=workdir,
                env=env,
                start_new_session=_POSIX,
            )
        except OSError as exc:
            logger.debug("Failed to spawn %s: %s", command, exc)
            raise ProcessSpawnError(command, str(exc)) from exc

        self._process = proc
        self._started_at = time.time()
        self._loop = asyncio.get_running_loop()
        self._timers.append(
            self._loop.call_later(profile.timeout, self._on_timeout, profile.timeout_ms)
        )
        if self._terminate_pending:
            self.terminate()

        stdout = _StreamBuffer(self._max_output_bytes)
        stderr = _StreamBuffer(self._max_output_bytes)
        try:
            await asyncio.gather(
                self._pump(proc.stdout, stdout, on_stdout, "stdout"),
                self._pump(proc.stderr, stderr, on_stderr, "stderr"),
                proc.wait(),
            )
        except BaseException:
            # Cancelled or a callback failed: never leave the child behind.
            self._send(_SIGKILL)
            raise
        finally:
            self._disarm()

        duration_ms = int((time.monotonic() - started) * 1000)
        returncode = proc.returncode
        signal_name = _signal_name(returncode)

        logger.info(
            "Process %d exited (code=%s, signal=%s, %dms)",
            proc.pid,
            returncode,
            signal_name,
            duration_ms,
        )

        result = ProcessResult(
            exit_code=returncode if signal_name is None else None,
            signal=signal_name,
            stdout=stdout.text(),
            stderr=stderr.text(),
            duration_ms=duration_ms,
            truncated=stdout.truncated or stderr.truncated,
        )
        if signal_name is not None:
            raise ProcessKilledError(signal_name, timed_out=self._timed_out, result=result)
        return result

    def kill(self, sig: int = signal.SIGTERM) -> bool:
        """Send *sig* to the process; ``False`` when no process is running."""
        if not self.is_running():
            return False
        logger.info("Killing process %d with %s", self._process.pid, _name_of(sig))  # type: ignore[union-attr]
        return self._send(sig)

    def terminate(self) -> bool:
        """Send SIGTERM and arm the SIGKILL escalation timer.

        Called before :meth:`run` spawns, the request is held: the process is
        never started, or is signalled as soon as it exists.
        """
        if self._process is None:
            self._terminate_pending = True
            return False
        sent = self.kill(signal.SIGTERM)
        if sent:
            self._terminated = True
        if sent and self._kill_grace is not None and self._loop is not None:
            self._timers.append(self._loop.call_later(self._kill_grace, self._escalate))
        return sent

    def _on_timeout(self, timeout_ms: int) -> None:
        if not self.is_running():
            return
        self._timed_out = True
        logger.warning("Process timeout reached after %dms, terminating", timeout_ms)
        self.terminate()

    def _escalate(self) -> None:
        if self.is_running():
            logger.warning(
                "Process %d ignored SIGTERM for %.1fs, sending SIGKILL",
                self._process.pid,  # type: ignore[union-attr]
                self._kill_grace,
            )
            self._send(_SIGKILL)

    def _send(self, sig: int) -> bool:
        proc = self._process
        if proc is None or proc.returncode is not None:
            return False
        try:
            if _POSIX:
                # The child leads its own session, so this reaches its whole tree.
                os.killpg(proc.pid, sig)
            else:
                proc.send_signal(sig)
        except ProcessLookupError:
            return False
        except PermissionError:
            proc.send_signal(sig)
        return True

    def _disarm(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()

    async def _pump(
        self,
        stream: asyncio.StreamReader | None,
        buffer: _StreamBuffer,
        callback: OutputCallback | None,
        name: str,
    ) -> None:
        if stream is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            chunk = await stream.read(_READ_SIZE)
            text = decoder.decode(chunk, final=not chunk)
            if text:
                if buffer.append(text, len(chunk)):
                    logger.warning(
                        "%s exceeded %d bytes; further output is streamed but not retained",
                        name,
                        self._max_output_bytes,
                    )
                if callback is not None:
                    callback(text)
            if not chunk:
                return


class _StreamBuffer:
    """Accumulates decoded output up to a byte budget."""

    __slots__ = ("_chunks", "_size", "_limit", "truncated")

    def __init__(self, limit: int | None) -> None:
        self._chunks: list[str] = []
        self._size = 0
        self._limit = limit
        self.truncated = False

    def append(self, text: str, size: int) -> bool:
        """Store *text*; return ``True`` the first time the cap is hit."""
        if self.truncated:
            return False
        if self._limit is not None and self._size + size > self._limit:
            self.truncated = True
            return True
        self._chunks.append(text)
        self._size += size
        return False

    def text(self) -> str:
        return "".join(self._chunks)


def _signal_name(returncode: int | None) -> str | None:
    if returncode is None or returncode >= 0 or not _POSIX:
        return None
    return _name_of(-returncode)


def _name_of(sig: int) -> str:
    try:
        return signal.Signals(sig).name
    except ValueError:
        return f"SIG{sig}"
