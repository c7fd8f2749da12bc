"""``agentctl agent`` — detect, authenticate and run coding agents."""

from __future__ import annotations

import asyncio
import json
import sys
import uuid
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.markup import escape

from agentctl.cli_commands._output import (
    console,
    print_agents_table,
    print_detect_results,
    print_event,
)

if TYPE_CHECKING:
    from agentctl.agents.adapter import AgentAdapter
    from agentctl.agents.models import DetectResult
    from agentctl.config import RuntimeSettings
    from agentctl.runtime.events.models import AgentEvent

_BINARY_HELP = "Use this executable instead of the tool's default binary name."


def _adapter(settings: RuntimeSettings, agent_id: str, binary: str | None = None) -> AgentAdapter:
    """Build the adapter for *agent_id*, exiting with an error if it is unknown."""
    from agentctl.agents.registry import create_adapter
    from agentctl.runtime.errors import UnknownAgentError

    try:
        return create_adapter(
            agent_id,
            policy=settings.policy,
            binary=binary,
            kill_grace=settings.supervisor.kill_grace,
            max_output_bytes=settings.supervisor.max_output_bytes,
        )
    except UnknownAgentError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        sys.exit(1)


@click.group()
def agent() -> None:
    """Manage autonomous coding agents."""


@agent.command("list")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format.",
)
def list_agents(fmt: str) -> None:
    """List the supported coding agents."""
    from agentctl.agents.registry import TOOLS

    infos = [tool.info for tool in TOOLS.values()]
    if fmt == "json":
        console.print_json(json.dumps([info.model_dump(mode="json") for info in infos]))
    else:
        print_agents_table(infos)


@agent.command("detect")
@click.option("--agent", "agent_id", default=None, help="Only check this agent.")
@click.option("--binary", default=None, help=_BINARY_HELP)
@click.pass_obj
def detect(settings: RuntimeSettings, agent_id: str | None, binary: str | None) -> None:
    """Detect which coding agents are installed."""
    from agentctl.agents.registry import AGENT_IDS

    agent_ids = [agent_id] if agent_id else AGENT_IDS
    adapters = [_adapter(settings, aid, binary if agent_id else None) for aid in agent_ids]

    async def _detect() -> dict[str, DetectResult]:
        results = await asyncio.gather(*(a.detect() for a in adapters))
        return dict(zip(agent_ids, results))

    console.print("\n[bold]Detecting coding agents[/bold]\n")
    print_detect_results(asyncio.run(_detect()))
    console.print()


@agent.command("auth")
@click.argument("agent_id", metavar="AGENT")
@click.option("--binary", default=None, help=_BINARY_HELP)
@click.pass_obj
def auth(settings: RuntimeSettings, agent_id: str, binary: str | None) -> None:
    """Validate that AGENT is authenticated."""
    adapter = _adapter(settings, agent_id, binary)
    result = asyncio.run(adapter.validate_auth())

    if result.valid:
        console.print(f"[green]{agent_id} authentication valid[/green]")
        return
    console.print(f"[red]Authentication failed:[/red] {escape(result.reason or 'unknown reason')}")
    sys.exit(1)


@agent.command("run")
@click.argument("agent_id", metavar="AGENT")
@click.argument("task")
@click.option(
    "--workspace",
    type=click.Path(file_okay=False),
    default=".",
    help="Workspace root directory.",
)
@click.option("--file", "files", multiple=True, help="Context file (repeatable).")
@click.option("--timeout", "timeout_ms", type=click.IntRange(min=1), default=None, help="Timeout in milliseconds.")
@click.option("--network/--no-network", default=None, help="Allow network access.")
@click.option("--shell/--no-shell", default=None, help="Allow shell commands.")
@click.option("--binary", default=None, help=_BINARY_HELP)
@click.option("--json", "as_json", is_flag=True, help="Print events as JSON lines.")
@click.pass_obj
def run(
    settings: RuntimeSettings,
    agent_id: str,
    task: str,
    workspace: str,
    files: tuple[str, ...],
    timeout_ms: int | None,
    network: bool | None,
    shell: bool | None,
    binary: str | None,
    as_json: bool,
) -> None:
    """Run TASK with AGENT inside a workspace.

    Exits non-zero when the run ends with an error event.
    """
    from agentctl.agents.models import AgentJob
    from agentctl.runtime.events.models import AgentEventType

    adapter = _adapter(settings, agent_id, binary)
    workspace_root = str(Path(workspace).resolve())

    job = AgentJob(
        id=f"job-{uuid.uuid4().hex[:12]}",
        workspace_id=workspace_root,
        agent_id=agent_id,
        task=task,
        context_files=list(files),
        profile=settings.profile.to_profile(
            timeout_ms=timeout_ms,
            allow_network=network,
            allow_shell=shell,
        ),
    )

    if not as_json:
        console.print(f"\n[bold]Running {escape(agent_id)}[/bold]")
        console.print(f"[dim]Task: {escape(task)}[/dim]")
        console.print(f"[dim]Workspace: {escape(str(workspace_root))}[/dim]")
        if files:
            console.print(f"[dim]Context files: {escape(', '.join(files))}[/dim]")
        console.print()

    async def _run() -> AgentEvent | None:
        last: AgentEvent | None = None
        async for event in adapter.execute(job):
            last = event
            if as_json:
                click.echo(event.model_dump_json())
            else:
                print_event(event)
        return last

    try:
        last = asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted; the agent process was stopped.[/yellow]")
        sys.exit(130)

    if last is None or last.type == AgentEventType.ERROR:
        sys.exit(1)
