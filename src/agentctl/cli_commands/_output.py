"""Shared CLI output formatters."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from agentctl.agents.models import AgentInfo, DetectResult  # noqa: TC001
from agentctl.runtime.events.models import AgentEvent, AgentEventType
from agentctl.runtime.workspace.models import ValidationResult  # noqa: TC001

console = Console()

_EVENT_STYLES: dict[AgentEventType, tuple[str, str]] = {
    AgentEventType.TASK_START: ("green", "start"),
    AgentEventType.TOOL_USE: ("blue", "tool"),
    AgentEventType.FILE_EDIT: ("yellow", "edit"),
    AgentEventType.FILE_CREATE: ("green", "create"),
    AgentEventType.SHELL_EXEC: ("cyan", "shell"),
    AgentEventType.THINKING: ("dim", "think"),
    AgentEventType.PROGRESS: ("dim", "..."),
    AgentEventType.ERROR: ("red", "error"),
    AgentEventType.TASK_COMPLETE: ("green", "done"),
}


def print_agents_table(infos: list[AgentInfo]) -> None:
    """Pretty-print agent descriptors as a table."""
    table = Table(title="Coding Agents")
    table.add_column("Name", style="cyan")
    table.add_column("ID")
    table.add_column("Version")
    table.add_column("Binary")
    table.add_column("Capabilities")
    table.add_column("Required env")

    for info in infos:
        env_joiner = " | " if info.required_env_mode == "any" else ", "
        table.add_row(
            info.name,
            info.id,
            info.version,
            info.binary,
            _truncate(", ".join(c.value for c in info.capabilities)),
            env_joiner.join(info.required_env) or "-",
        )

    console.print(table)


def print_detect_results(results: dict[str, DetectResult]) -> None:
    """One line per agent: installed (with version/path) or not."""
    for agent_id, result in results.items():
        if result.installed:
            details = " ".join(
                part
                for part in (
                    f"v{result.version}" if result.version else "",
                    f"({result.path})" if result.path else "",
                )
                if part
            )
            console.print(f"  [green]✓ {agent_id}[/green] [dim]{escape(details)}[/dim]")
        else:
            console.print(f"  [dim]✗ {agent_id} not installed[/dim]")


def print_event(event: AgentEvent) -> None:
    """Render one run event as a single line."""
    style, label = _EVENT_STYLES[event.type]
    console.print(f"  [{style}]{label:>6}[/{style}] {escape(describe_event(event))}")


def describe_event(event: AgentEvent) -> str:
    data = event.data
    if event.type == AgentEventType.TASK_START:
        return f"run {event.run_id}: {data.get('task', '')}"
    if event.type == AgentEventType.TOOL_USE:
        return str(data.get("tool") or "?")
    if event.type in (AgentEventType.FILE_EDIT, AgentEventType.FILE_CREATE):
        operation = data.get("operation")
        path = data.get("path", "?")
        return f"{operation} {path}" if operation else str(path)
    if event.type == AgentEventType.SHELL_EXEC:
        return str(data.get("command", ""))
    if event.type == AgentEventType.THINKING:
        return str(data.get("content") or data.get("message", ""))
    if event.type == AgentEventType.ERROR:
        return str(data.get("error") or data.get("message", ""))
    if event.type == AgentEventType.TASK_COMPLETE:
        return f"completed in {data.get('duration_ms', '?')}ms (events: {event.sequence + 1})"
    return str(data.get("message", data))


def print_validation_table(title: str, rows: list[tuple[str, ValidationResult]]) -> None:
    """Pretty-print policy verdicts."""
    table = Table(title=title)
    table.add_column("Subject", style="cyan")
    table.add_column("Verdict")
    table.add_column("Reason")

    for subject, result in rows:
        verdict = "[green]allowed[/green]" if result.allowed else "[red]denied[/red]"
        table.add_row(escape(subject), verdict, escape(result.reason or ""))

    console.print(table)


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
