"""Output normalizer — turns raw agent CLI output lines into AgentEvents.

Each non-blank line produces exactly one event.  Lines are tried as
structured JSON records first, then against an ordered list of phrasing
rules; anything unrecognised becomes a ``progress`` event carrying the
raw text (graceful degradation, nothing is dropped).
"""

from __future__ import annotations

import json
import logging
import re
import time
import uuid
from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable
from typing import Any

from agentctl.runtime.events.models import AgentEvent, AgentEventType

logger = logging.getLogger(__name__)

_FILE_RE = re.compile(r"^(Created|Updated|Modified|Deleted)\s+(.+)$", re.IGNORECASE)
_SHELL_RE = re.compile(r"^(Running|Executing)\s+command:\s+(.+)$", re.IGNORECASE)
_TASK_START_RE = re.compile(r"^(Starting|Beginning)\s+task:\s+(.+)$", re.IGNORECASE)
_TASK_COMPLETE_RE = re.compile(r"^(Completed|Finished)\s+task", re.IGNORECASE)
_ERROR_RE = re.compile(r"^(Error|Failed|Exception):", re.IGNORECASE)

_SEPARATORS_RE = re.compile(r"[\s\-]+")

_EVENT_ALIASES: dict[str, AgentEventType] = {
    **{t.value: t for t in AgentEventType},
    "start": AgentEventType.TASK_START,
    "complete": AgentEventType.TASK_COMPLETE,
    "done": AgentEventType.TASK_COMPLETE,
    "tool": AgentEventType.TOOL_USE,
    "file": AgentEventType.FILE_EDIT,
    "edit": AgentEventType.FILE_EDIT,
    "create": AgentEventType.FILE_CREATE,
    "shell": AgentEventType.SHELL_EXEC,
    "command": AgentEventType.SHELL_EXEC,
    "think": AgentEventType.THINKING,
    "fail": AgentEventType.ERROR,
}

_Rule = tuple[re.Pattern[str], AgentEventType, Callable[[re.Match[str], str], dict[str, Any]]]

# First match wins.
_RULES: list[_Rule] = [
    (
        _FILE_RE,
        AgentEventType.FILE_EDIT,
        lambda m, _: {"operation": m.group(1).lower(), "path": m.group(2).strip()},
    ),
    (_SHELL_RE, AgentEventType.SHELL_EXEC, lambda m, _: {"command": m.group(2).strip()}),
    (_TASK_START_RE, AgentEventType.TASK_START, lambda m, _: {"task": m.group(2).strip()}),
    (_TASK_COMPLETE_RE, AgentEventType.TASK_COMPLETE, lambda _, line: {"message": line}),
    (_ERROR_RE, AgentEventType.ERROR, lambda _, line: {"message": line}),
]


def normalize_event_type(name: str) -> AgentEventType:
    """Map a free-form event name onto :class:`AgentEventType`.

    Case and separators (``-``, ``_``, spaces) are ignored; unknown names
    become ``progress``.
    """
    key = _SEPARATORS_RE.sub("_", name.strip().lower())
    return _EVENT_ALIASES.get(key, AgentEventType.PROGRESS)


class OutputEventNormalizer:
    """Per-run converter from output lines to sequenced :class:`AgentEvent`s.

    *reserved_types* lists event types the tool output must not produce
    directly (the adapter owns the run lifecycle).  A line that would map
    to one of them is emitted as ``progress`` with ``reported_type`` set.
    """

    def __init__(
        self,
        *,
        start_sequence: int = 0,
        reserved_types: Iterable[AgentEventType] = (),
    ) -> None:
        self._sequence = start_sequence
        self._reserved = frozenset(reserved_types)

    @property
    def next_sequence(self) -> int:
        return self._sequence

    def reset(self, start: int = 0) -> None:
        """Restart sequence numbering, e.g. at the beginning of a run."""
        self._sequence = start

    def create_event(
        self,
        run_id: str,
        event_type: AgentEventType,
        data: dict[str, Any] | None = None,
    ) -> AgentEvent:
        """Stamp a new event with a fresh id, the current time and the next sequence."""
        event = AgentEvent(
            id=str(uuid.uuid4()),
            run_id=run_id,
            type=event_type,
            timestamp=int(time.time() * 1000),
            data=data or {},
            sequence=self._sequence,
        )
        self._sequence += 1
        return event

    def parse_line(self, line: str, run_id: str) -> AgentEvent | None:
        """Convert one output line; ``None`` only for blank lines."""
        text = line.strip()
        if not text:
            return None

        parsed = self._parse_structured(text) if text[0] in "{[" else None
        if parsed is None:
            parsed = self._parse_patterns(text)
        if parsed is None:
            parsed = (AgentEventType.PROGRESS, {"message": text})

        event_type, data = parsed
        if event_type in self._reserved:
            data = {**data, "reported_type": event_type.value}
            event_type = AgentEventType.PROGRESS
        return self.create_event(run_id, event_type, data)

    async def parse_stream(
        self,
        lines: AsyncIterable[str] | Iterable[str],
        run_id: str,
    ) -> AsyncIterator[AgentEvent]:
        """Yield one event per non-blank line, in arrival order."""
        if isinstance(lines, AsyncIterable):
            async for line in lines:
                event = self.parse_line(line, run_id)
                if event is not None:
                    logger.debug("Parsed %s event #%d", event.type.value, event.sequence)
                    yield event
        else:
            for line in lines:
                event = self.parse_line(line, run_id)
                if event is not None:
                    logger.debug("Parsed %s event #%d", event.type.value, event.sequence)
                    yield event

    @staticmethod
    def _parse_structured(text: str) -> tuple[AgentEventType, dict[str, Any]] | None:
        try:
            record = json.loads(text)
        except ValueError:
            return None
        if not isinstance(record, dict):
            return None

        if record.get("type") == "tool_use":
            return AgentEventType.TOOL_USE, {
                "tool": record.get("tool", record.get("name")),
                "input": record.get("input"),
            }

        name = record.get("event")
        if isinstance(name, str):
            payload = record.get("data", {})
            if not isinstance(payload, dict):
                payload = {"value": payload}
            return normalize_event_type(name), payload

        return None

    @staticmethod
    def _parse_patterns(text: str) -> tuple[AgentEventType, dict[str, Any]] | None:
        for regex, event_type, build in _RULES:
            match = regex.match(text)
            if match:
                return event_type, build(match, text)
        return None


class LineSplitter:
    """Reassembles complete lines from arbitrarily split output chunks."""

    def __init__(self) -> None:
        self._pending = ""

    def feed(self, chunk: str) -> list[str]:
        """Add *chunk*; return the lines it completed (without terminators)."""
        self._pending += chunk
        *complete, self._pending = self._pending.split("\n")
        return [line.rstrip("\r") for line in complete]

    def flush(self) -> list[str]:
        """Return the trailing partial line, if any."""
        rest, self._pending = self._pending.rstrip("\r"), ""
        return [rest] if rest else []


def split_lines(text: str) -> list[str]:
    """Split buffered output into non-blank lines."""
    return [line for line in text.splitlines() if line.strip()]
